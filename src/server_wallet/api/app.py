"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from server_wallet import __version__
from server_wallet.api.base import router as base_router
from server_wallet.api.errors import install_error_handlers
from server_wallet.api.middleware.cors import setup_cors
from server_wallet.api.registry import router as registry_router
from server_wallet.api.wallet import router as wallet_router
from server_wallet.config.settings import AppConfig
from server_wallet.engine.client import ServerWalletEngine
from server_wallet.metrics.collector import EngineMetrics
from server_wallet.metrics.middleware import PrometheusMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the engine for the lifetime of the app.

    The wallet itself stays absent until the first action that needs it.
    """
    engine = ServerWalletEngine(app.state.config, metrics=getattr(app.state, "metrics", None))
    try:
        await engine.initialize()
        app.state.engine = engine
        logger.info("Server wallet engine started")
        yield
    finally:
        await engine.close()
        logger.info("Server wallet engine shut down")


def create_app(*, config: AppConfig | None = None) -> FastAPI:
    """Build the app; *config* defaults to one read from the environment."""
    app = FastAPI(
        title="py-server-wallet",
        version=__version__,
        description="Identity tag registry and BRC-29 funded server wallet",
        lifespan=_lifespan,
    )
    app.state.config = config if config is not None else AppConfig()

    setup_cors(app)
    if app.state.config.metrics.enabled:
        app.state.metrics = EngineMetrics()
        app.add_middleware(PrometheusMiddleware, registry=app.state.metrics.registry)
    install_error_handlers(app)

    app.include_router(base_router)
    app.include_router(registry_router)
    app.include_router(wallet_router)
    return app
