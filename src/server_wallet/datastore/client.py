"""Output datastore — owns the async engine behind the wallet output table."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from server_wallet.datastore.engines import create_engine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine
    from sqlalchemy.orm import DeclarativeBase

    from server_wallet.config.settings import DatabaseConfig


class Datastore:
    """Opens the configured database and hands out sessions.

    Reads use :meth:`session`; writes use :meth:`transaction`, which commits
    when the block exits cleanly and rolls back otherwise.
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self, *, base: type[DeclarativeBase] | None = None) -> None:
        """Connect, creating the tables of *base* when given."""
        engine = create_engine(self._config)
        if base is not None:
            async with engine.begin() as conn:
                await conn.run_sync(base.metadata.create_all)
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    async def close(self) -> None:
        engine, self._engine, self._sessions = self._engine, None, None
        if engine is not None:
            await engine.dispose()

    def session(self) -> AsyncSession:
        """Return a new session for use as an async context manager."""
        if self._sessions is None:
            msg = "Output datastore is closed"
            raise RuntimeError(msg)
        return self._sessions()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session whose work is committed as one unit."""
        async with self.session() as session, session.begin():
            yield session
