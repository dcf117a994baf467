"""Failure envelope for every API route.

Errors render as ``{"success": false, "error": "<action> failed: <message>"}``
with the status code carried by the error.  An unknown action is reported
without the prefix.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from server_wallet.api.dependencies import current_action
from server_wallet.errors.wallet_errors import UnknownActionError, WalletError

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)


def failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def describe_validation_error(exc: RequestValidationError) -> str:
    """Flatten pydantic errors into ``field: message`` pairs."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


async def _on_wallet_error(request: Request, exc: WalletError) -> JSONResponse:
    if isinstance(exc, UnknownActionError):
        return failure(exc.status_code, exc.message)
    return failure(exc.status_code, f"{current_action(request)} failed: {exc.message}")


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return failure(400, f"{current_action(request)} failed: {describe_validation_error(exc)}")


async def _on_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    action = current_action(request)
    logger.exception("Unhandled error during %s", action)
    return failure(500, f"{action} failed: {exc}")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WalletError, _on_wallet_error)
    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(Exception, _on_unexpected_error)
