"""FastAPI dependency injection helpers.

Usage in a route::

    @router.get("")
    async def handler(
        action: Annotated[str, Depends(action_param("create"))],
        engine: Annotated[ServerWalletEngine, Depends(get_engine)],
    ) -> ...:
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Query, Request
from fastapi.routing import APIRoute

from server_wallet.engine.client import ServerWalletEngine  # noqa: TC001
from server_wallet.errors.wallet_errors import StateError

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from fastapi import Response

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def get_engine(request: Request) -> ServerWalletEngine:
    """Retrieve the engine stored on ``app.state`` during lifespan startup.

    Raises:
        StateError: If the engine is not initialized.
    """
    engine: ServerWalletEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        msg = "Server wallet engine is not initialized"
        raise StateError(msg)
    return engine


# ---------------------------------------------------------------------------
# Action dispatch
# ---------------------------------------------------------------------------


def action_param(default: str | None = None) -> Callable[..., str]:
    """Build a dependency resolving the ``action`` query parameter.

    The resolved action is stored on ``request.state`` so error responses can
    name it.  *default* is also kept on the dependency for :class:`ActionRoute`.
    """

    def _resolve(
        request: Request,
        action: Annotated[str | None, Query()] = None,
    ) -> str:
        resolved = action or default or ""
        request.state.action = resolved
        return resolved

    _resolve.default_action = default  # type: ignore[attr-defined]
    return _resolve


class ActionRoute(APIRoute):
    """Route that records its default action before the body is parsed.

    FastAPI reads the JSON body ahead of resolving dependencies, so a
    malformed body fails before ``action_param`` runs.
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()
        default = next(
            (
                dep.call.default_action
                for dep in self.dependant.dependencies
                if getattr(dep.call, "default_action", None)
            ),
            None,
        )

        async def _handle(request: Request) -> Response:
            request.state.default_action = default
            return await handler(request)

        return _handle


def current_action(request: Request) -> str:
    """Return the action for *request*.

    Falls back to the raw query string, then the route's default action,
    when the request failed before ``action_param`` ran.
    """
    recorded = getattr(request.state, "action", "")
    if recorded:
        return recorded
    return (
        request.query_params.get("action")
        or getattr(request.state, "default_action", None)
        or "request"
    )
