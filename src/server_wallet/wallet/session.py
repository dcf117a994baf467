"""Wallet session manager — the single lazily created server wallet.

State machine::

    ABSENT ──ensure_active──▶ INITIALIZING ──success──▶ ACTIVE
       ▲                           │ failure                │
       └───────────────────────────┴──────── reset ─────────┘

At most one initialization runs at a time.  Concurrent callers join the
in-flight task instead of starting another, because initialization may
generate and persist a new key.  A reset bumps a generation counter, and any
initialization started under an older generation finishes without caching
or persisting anything.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from typing import TYPE_CHECKING, Any

from server_wallet.bsv.keys import generate_private_key, identity_key_for, private_key_from_hex
from server_wallet.errors.definitions import ErrWalletNotReady, ErrWalletReset

if TYPE_CHECKING:
    from server_wallet.config.settings import Network, WalletConfig
    from server_wallet.metrics.collector import EngineMetrics
    from server_wallet.wallet.keystore import WalletKeyStore

logger = logging.getLogger(__name__)


class SessionState(enum.StrEnum):
    """Lifecycle state of the server wallet session."""

    ABSENT = "absent"
    INITIALIZING = "initializing"
    ACTIVE = "active"


@dataclasses.dataclass(frozen=True)
class WalletSession:
    """An active server wallet identity.

    Attributes:
        private_key: 32-byte root private key.
        identity_key: Hex compressed public key of ``private_key``.
        network: Network the wallet operates on.
        external: True if the key came from configuration (never persisted).
    """

    private_key: bytes = dataclasses.field(repr=False)
    identity_key: str
    network: Network
    external: bool = False

    @property
    def private_key_hex(self) -> str:
        return self.private_key.hex()

    def describe(self) -> dict[str, Any]:
        return {
            "state": SessionState.ACTIVE.value,
            "identityKey": self.identity_key,
            "network": self.network.value,
            "external": self.external,
        }


@dataclasses.dataclass(frozen=True)
class WalletStatus:
    """Persisted-state summary; reading it never initializes the wallet."""

    saved: bool
    identity_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.saved:
            return {"saved": False}
        return {"saved": True, "identityKey": self.identity_key}


class WalletSessionManager:
    """Owns the process-wide server wallet session.

    Public surface: :meth:`status`, :meth:`ensure_active`, :meth:`reset`, and
    :meth:`require_active` for operations that need an active session.
    """

    def __init__(
        self,
        config: WalletConfig,
        keystore: WalletKeyStore,
        *,
        metrics: EngineMetrics | None = None,
    ) -> None:
        self._config = config
        self._keystore = keystore
        self._metrics = metrics
        self._session: WalletSession | None = None
        self._init_task: asyncio.Task[WalletSession] | None = None
        self._generation = 0
        self._persist_lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        if self._session is not None:
            return SessionState.ACTIVE
        if self._init_task is not None:
            return SessionState.INITIALIZING
        return SessionState.ABSENT

    async def status(self) -> WalletStatus:
        """Report whether a wallet key is persisted, and its identity key."""
        persisted = await asyncio.to_thread(self._keystore.load)
        if persisted is None:
            return WalletStatus(saved=False)
        return WalletStatus(saved=True, identity_key=persisted.identity_key)

    def require_active(self) -> WalletSession:
        """Return the active session without initializing.

        Raises:
            StateError: If the wallet is not active.
        """
        if self._session is None:
            raise ErrWalletNotReady
        return self._session

    async def ensure_active(self) -> WalletSession:
        """Return the active session, initializing it at most once.

        Raises:
            StateError: If a reset discarded the initialization.
            StorageError: If a generated key could not be persisted.
            ValueError: If the configured or persisted key is invalid.
        """
        if self._session is not None:
            return self._session

        # No await between the check and the assignment: joining is atomic
        # on the event loop.
        task = self._init_task
        if task is None:
            task = asyncio.create_task(self._initialize(self._generation))
            task.add_done_callback(self._init_finished)
            self._init_task = task
        return await asyncio.shield(task)

    async def reset(self) -> None:
        """Forget the session and delete persisted key material.

        Safe in any state; an in-flight initialization is discarded.
        """
        self._generation += 1
        self._session = None
        self._init_task = None
        async with self._persist_lock:
            await asyncio.to_thread(self._keystore.delete)
        logger.info("Server wallet reset")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _init_finished(self, task: asyncio.Task[WalletSession]) -> None:
        if self._init_task is task:
            self._init_task = None
        if not task.cancelled() and task.exception() is not None:
            logger.error("Server wallet initialization failed: %s", task.exception())

    async def _resolve_key(self) -> tuple[bytes, bool]:
        """Pick the root key: configured, then persisted, then fresh."""
        if self._config.private_key:
            return private_key_from_hex(self._config.private_key), True
        persisted = await asyncio.to_thread(self._keystore.load)
        if persisted is not None:
            return private_key_from_hex(persisted.private_key_hex), False
        return generate_private_key(), False

    async def _initialize(self, generation: int) -> WalletSession:
        if self._metrics is not None:
            with self._metrics.track_wallet_init():
                return await self._create_session(generation)
        return await self._create_session(generation)

    async def _create_session(self, generation: int) -> WalletSession:
        private_key, external = await self._resolve_key()
        session = WalletSession(
            private_key=private_key,
            identity_key=identity_key_for(private_key),
            network=self._config.network,
            external=external,
        )

        async with self._persist_lock:
            if generation != self._generation:
                raise ErrWalletReset
            if not external:
                await asyncio.to_thread(
                    self._keystore.save, session.private_key_hex, session.identity_key
                )
                # A reset that arrived during the write is waiting on this
                # lock and will delete the file.
                if generation != self._generation:
                    raise ErrWalletReset
            self._session = session

        logger.info("Server wallet active: %s (network=%s)", session.identity_key, session.network)
        return session
