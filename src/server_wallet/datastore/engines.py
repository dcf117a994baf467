"""Async engine construction for the output store.

SQLite (aiosqlite) is the default; PostgreSQL (asyncpg) gets a pooled engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from server_wallet.config.settings import DatabaseEngine

if TYPE_CHECKING:
    from server_wallet.config.settings import DatabaseConfig


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    kwargs: dict[str, Any] = {"echo": config.debug_sql}
    if config.engine is DatabaseEngine.POSTGRESQL:
        kwargs.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_pre_ping=True,
        )
    elif config.dsn.endswith(":memory:"):
        # every session must see the same in-memory database
        kwargs["poolclass"] = StaticPool
    return create_async_engine(config.dsn, **kwargs)
