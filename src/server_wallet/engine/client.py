"""ServerWalletEngine — central engine client owning all services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from server_wallet.config.settings import AppConfig
    from server_wallet.datastore.client import Datastore
    from server_wallet.metrics.collector import EngineMetrics
    from server_wallet.registry.service import TagRegistryService
    from server_wallet.wallet.internalize import FundingInternalizer
    from server_wallet.wallet.outputs import OutputService
    from server_wallet.wallet.payment_request import PaymentRequestService
    from server_wallet.wallet.session import WalletSessionManager

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def _require(service: _T | None) -> _T:
    if service is None:
        msg = "Engine not initialized. Call initialize() first."
        raise RuntimeError(msg)
    return service


class ServerWalletEngine:
    """Owns the output datastore, the tag registry and the server wallet.

    Provides lifecycle management and a service registry: properties raise
    ``RuntimeError`` until :meth:`initialize` has run.
    """

    def __init__(self, config: AppConfig, *, metrics: EngineMetrics | None = None) -> None:
        self._config = config
        self._metrics = metrics
        self._initialized = False

        self._datastore: Datastore | None = None
        self._registry: TagRegistryService | None = None
        self._sessions: WalletSessionManager | None = None
        self._payment_requests: PaymentRequestService | None = None
        self._outputs: OutputService | None = None
        self._internalizer: FundingInternalizer | None = None

    async def initialize(self) -> None:
        """Open the datastore and build the services.

        The wallet session itself stays absent until first requested.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        from server_wallet.datastore.client import Datastore
        from server_wallet.registry.service import TagRegistryService
        from server_wallet.registry.store import RegistryStore
        from server_wallet.wallet.internalize import FundingInternalizer
        from server_wallet.wallet.keystore import WalletKeyStore
        from server_wallet.wallet.models import Base
        from server_wallet.wallet.outputs import OutputRepository, OutputService
        from server_wallet.wallet.payment_request import PaymentRequestService
        from server_wallet.wallet.session import WalletSessionManager

        wallet_cfg = self._config.wallet

        self._datastore = Datastore(self._config.db)
        await self._datastore.open(base=Base)

        registry_store = RegistryStore(self._config.registry.path)
        self._registry = TagRegistryService(registry_store, metrics=self._metrics)
        if self._metrics is not None:
            self._metrics.set_registry_entry_count(len(registry_store.load()))

        self._sessions = WalletSessionManager(
            wallet_cfg,
            WalletKeyStore(wallet_cfg.state_path),
            metrics=self._metrics,
        )
        self._payment_requests = PaymentRequestService(
            self._sessions,
            default_satoshis=wallet_cfg.default_request_satoshis,
            default_memo=wallet_cfg.default_request_memo,
        )

        output_repo = OutputRepository(self._datastore)
        self._outputs = OutputService(
            output_repo,
            self._sessions,
            default_basket=wallet_cfg.default_basket,
        )
        self._internalizer = FundingInternalizer(
            self._sessions,
            output_repo,
            basket=wallet_cfg.default_basket,
            description=wallet_cfg.receive_description,
            metrics=self._metrics,
        )
        if self._metrics is not None:
            self._metrics.set_output_count(await output_repo.count())

        self._initialized = True
        logger.info("Server wallet engine initialized")

    async def close(self) -> None:
        """Tear down services and close the datastore."""
        if self._datastore is not None:
            await self._datastore.close()
        self._datastore = None
        self._registry = None
        self._sessions = None
        self._payment_requests = None
        self._outputs = None
        self._internalizer = None
        self._initialized = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def metrics(self) -> EngineMetrics | None:
        return self._metrics

    @property
    def datastore(self) -> Datastore:
        return _require(self._datastore)

    @property
    def registry(self) -> TagRegistryService:
        return _require(self._registry)

    @property
    def sessions(self) -> WalletSessionManager:
        return _require(self._sessions)

    @property
    def payment_requests(self) -> PaymentRequestService:
        return _require(self._payment_requests)

    @property
    def outputs(self) -> OutputService:
        return _require(self._outputs)

    @property
    def internalizer(self) -> FundingInternalizer:
        return _require(self._internalizer)
