"""Server wallet endpoints.

GET  ``?action=create``   initialize the wallet (default GET action)
GET  ``?action=status``   report whether a wallet key is saved
GET  ``?action=request``  issue a BRC-29 payment request
GET  ``?action=balance``  sum the outputs of a basket
GET  ``?action=outputs``  list the outputs of a basket
GET  ``?action=reset``    delete the saved wallet and forget the session
POST ``?action=receive``  internalize a funding transaction (default POST action)
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from server_wallet.api.dependencies import ActionRoute, action_param, get_engine
from server_wallet.api.schemas import ReceiveRequest
from server_wallet.engine.client import ServerWalletEngine  # noqa: TC001
from server_wallet.errors.wallet_errors import UnknownActionError
from server_wallet.wallet.internalize import IncomingFunding

router = APIRouter(prefix="/api/server-wallet", tags=["server-wallet"], route_class=ActionRoute)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _output_to_dict(o: Any) -> dict[str, Any]:
    return {
        "outpoint": o.outpoint,
        "satoshis": o.satoshis,
        "spendable": o.spendable,
        "tags": list(o.tags or []),
        "labels": list(o.labels or []),
    }


async def _create(engine: ServerWalletEngine) -> dict[str, Any]:
    session = await engine.sessions.ensure_active()
    return {
        "success": True,
        "serverIdentityKey": session.identity_key,
        "status": {
            "state": engine.sessions.state.value,
            "network": session.network.value,
            "external": session.external,
        },
    }


async def _status(engine: ServerWalletEngine) -> dict[str, Any]:
    status = await engine.sessions.status()
    return {"success": True, **status.to_dict()}


async def _reset(engine: ServerWalletEngine) -> dict[str, Any]:
    await engine.sessions.reset()
    return {"success": True, "message": "Server wallet reset"}


async def _request(
    engine: ServerWalletEngine,
    amount: int | None,
    memo: str | None,
) -> dict[str, Any]:
    session = await engine.sessions.ensure_active()
    request = engine.payment_requests.create_request(satoshis=amount, memo=memo)
    return {
        "success": True,
        "paymentRequest": request.to_dict(),
        "serverIdentityKey": session.identity_key,
    }


async def _balance(engine: ServerWalletEngine, basket: str | None) -> dict[str, Any]:
    await engine.sessions.ensure_active()
    summary = await engine.outputs.balance(basket)
    return {"success": True, **summary.to_dict()}


async def _outputs(engine: ServerWalletEngine, basket: str | None) -> dict[str, Any]:
    await engine.sessions.ensure_active()
    basket = basket or engine.outputs.default_basket
    outputs = await engine.outputs.list_outputs(basket)
    return {
        "success": True,
        "basket": basket,
        "totalOutputs": len(outputs),
        "outputs": [_output_to_dict(o) for o in outputs],
    }


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("")
async def wallet_query(
    action: Annotated[str, Depends(action_param("create"))],
    engine: Annotated[ServerWalletEngine, Depends(get_engine)],
    amount: int | None = None,
    memo: str | None = None,
    basket: str | None = None,
) -> dict[str, Any]:
    """Lifecycle, payment request and balance actions."""
    if action == "create":
        return await _create(engine)
    if action == "status":
        return await _status(engine)
    if action == "reset":
        return await _reset(engine)
    if action == "request":
        return await _request(engine, amount, memo)
    if action == "balance":
        return await _balance(engine, basket)
    if action == "outputs":
        return await _outputs(engine, basket)
    raise UnknownActionError(action)


@router.post("")
async def wallet_receive(
    action: Annotated[str, Depends(action_param("receive"))],
    engine: Annotated[ServerWalletEngine, Depends(get_engine)],
    body: ReceiveRequest | None = None,
) -> dict[str, Any]:
    """Internalize a funded transaction built against a payment request."""
    if action != "receive":
        raise UnknownActionError(action)

    session = await engine.sessions.ensure_active()
    body = body or ReceiveRequest()
    receipt = await engine.internalizer.receive(
        IncomingFunding(
            tx=body.tx,
            sender_identity_key=body.sender_identity_key,
            derivation_prefix=body.derivation_prefix,
            derivation_suffix=body.derivation_suffix,
            output_index=body.output_index,
            description=body.description,
        )
    )
    return {
        "success": True,
        **receipt.to_dict(),
        "serverIdentityKey": session.identity_key,
    }
