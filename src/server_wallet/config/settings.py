"""Server wallet configuration.

Sources, highest priority first:

1. ``SERVERWALLET_*`` environment variables; sections nest with ``__``
   (``SERVERWALLET_WALLET__PRIVATE_KEY``).
2. The YAML file named by ``SERVERWALLET_CONFIG_PATH`` or ``AppConfig.from_yaml``.
3. The defaults below.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseEngine(enum.StrEnum):
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class Network(enum.StrEnum):
    """BSV network the server wallet operates on."""

    MAIN = "main"
    TEST = "test"


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000


class DatabaseConfig(BaseModel):
    """Output store connection.  Pool sizes apply to PostgreSQL only."""

    engine: DatabaseEngine = DatabaseEngine.SQLITE
    dsn: str = "sqlite+aiosqlite:///./server_wallet.db"
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=5, ge=0)
    debug_sql: bool = False


class RegistryConfig(BaseModel):
    path: str = Field(
        default=".identity-registry.json",
        description="JSON document holding the ordered registry entries",
    )


class WalletConfig(BaseModel):
    """Server wallet key source and funding defaults."""

    state_path: str = Field(
        default=".server-wallet.json",
        description="JSON document holding the persisted wallet key",
    )
    private_key: str = Field(
        default="",
        description="Externally supplied hex private key; never persisted",
    )
    network: Network = Network.MAIN
    default_basket: str = "default"
    default_request_satoshis: int = Field(default=1000, gt=0)
    default_request_memo: str = "Test server wallet funding"
    receive_description: str = "Desktop wallet funding"


class MetricsConfig(BaseModel):
    enabled: bool = True


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Read a YAML mapping; a missing, empty or non-mapping file gives ``{}``."""
    p = Path(path)
    if not p.is_file():
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        elif value is not None:
            merged[key] = value
    return merged


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SERVERWALLET_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    config_path: str = ""

    server: ServerConfig = Field(default_factory=ServerConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    wallet: WalletConfig = Field(default_factory=WalletConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @model_validator(mode="before")
    @classmethod
    def _layer_yaml(cls, values: Any) -> Any:
        if not isinstance(values, dict) or not values.get("config_path"):
            return values
        return _merge(_load_yaml(values["config_path"]), values)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Load *path* as the YAML layer; environment variables still win."""
        return cls(config_path=str(path))
