"""Identity registry endpoints.

GET  ``?action=lookup&query=<text>``   search tags by substring
GET  ``?action=list&identityKey=<key>`` list the tags of one identity
POST ``?action=register`` ``{tag, identityKey}``
POST ``?action=revoke``   ``{tag, identityKey}``
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from server_wallet.api.dependencies import ActionRoute, action_param, get_engine
from server_wallet.api.schemas import TagRequest
from server_wallet.engine.client import ServerWalletEngine  # noqa: TC001
from server_wallet.errors.wallet_errors import UnknownActionError

router = APIRouter(
    prefix="/api/identity-registry", tags=["identity-registry"], route_class=ActionRoute
)


@router.get("")
async def registry_query(
    action: Annotated[str, Depends(action_param())],
    engine: Annotated[ServerWalletEngine, Depends(get_engine)],
    query: str | None = None,
    identity_key: Annotated[str | None, Query(alias="identityKey")] = None,
) -> dict[str, Any]:
    """Read-only registry actions."""
    if action == "lookup":
        normalized, results = await engine.registry.lookup(query)
        return {"success": True, "query": normalized, "results": results}

    if action == "list":
        tags = await engine.registry.list_for_identity(identity_key)
        return {"success": True, "tags": tags}

    raise UnknownActionError(action)


@router.post("")
async def registry_mutate(
    action: Annotated[str, Depends(action_param())],
    engine: Annotated[ServerWalletEngine, Depends(get_engine)],
    body: TagRequest | None = None,
) -> dict[str, Any]:
    """Registry mutations: bind or unbind a tag."""
    if action not in ("register", "revoke"):
        raise UnknownActionError(action)

    body = body or TagRequest()
    if action == "register":
        result = await engine.registry.register(body.tag, body.identity_key)
        return {"success": True, "message": result.message, "tag": result.tag}

    revoked = await engine.registry.revoke(body.tag, body.identity_key)
    return {"success": True, "message": revoked.message, "tag": revoked.tag}
