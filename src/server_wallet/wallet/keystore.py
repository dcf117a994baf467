"""Wallet keystore — persisted ``{privateKey, identityKey}`` document."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from server_wallet.errors.wallet_errors import StorageError
from server_wallet.utils.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class PersistedWallet:
    private_key_hex: str = dataclasses.field(repr=False)
    identity_key: str | None


class WalletKeyStore:
    """Single-writer JSON file holding the server wallet key.

    Scoped to one process; rewritten wholesale on every save.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> PersistedWallet | None:
        """Read the persisted key, or None if absent or unreadable."""
        if not self._path.exists():
            return None
        try:
            data = read_json(self._path)
        except (OSError, ValueError) as exc:
            logger.warning("Wallet state %s unreadable, ignoring: %s", self._path, exc)
            return None
        if not isinstance(data, dict):
            return None
        private_key = data.get("privateKey")
        if not private_key or not isinstance(private_key, str):
            return None
        identity_key = data.get("identityKey")
        return PersistedWallet(
            private_key_hex=private_key,
            identity_key=identity_key if isinstance(identity_key, str) else None,
        )

    def save(self, private_key_hex: str, identity_key: str) -> None:
        """Persist the wallet key.

        Raises:
            StorageError: If the file cannot be written.
        """
        try:
            write_json_atomic(
                self._path,
                {"privateKey": private_key_hex, "identityKey": identity_key},
            )
        except OSError as exc:
            msg = f"Failed to persist wallet key: {exc}"
            raise StorageError(msg) from exc

    def delete(self) -> None:
        """Remove the persisted key; a missing file is not an error.

        Raises:
            StorageError: If an existing file cannot be removed.
        """
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            msg = f"Failed to delete wallet state: {exc}"
            raise StorageError(msg) from exc
