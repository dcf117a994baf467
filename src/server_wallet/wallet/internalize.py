"""Funding internalization — validate and credit BRC-29 payments exactly once.

A funded transaction is accepted only if its designated output pays the
P2PKH script of the key derived from this wallet's root key, the sender's
identity key and the request's derivation prefix/suffix.  Crediting is
keyed by outpoint, so a resubmitted transaction is a no-op.

Crediting is two-phase: the output is first tracked without a basket and
then moved into the default basket.  Outputs left between the phases
(orphans) are swept into the basket by the next receive.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError

from server_wallet.bsv.brc42 import brc29_locking_script
from server_wallet.bsv.keys import is_identity_key
from server_wallet.bsv.script import p2pkh_pubkey_hash
from server_wallet.bsv.transaction import parse_transaction_payload
from server_wallet.errors.definitions import (
    ErrInvalidSenderKey,
    ErrInvalidTransaction,
    ErrMissingFundingFields,
)
from server_wallet.errors.wallet_errors import DerivationMismatch, ValidationError
from server_wallet.wallet.models import WalletOutput

if TYPE_CHECKING:
    from server_wallet.bsv.transaction import Transaction
    from server_wallet.metrics.collector import EngineMetrics
    from server_wallet.wallet.outputs import OutputRepository
    from server_wallet.wallet.session import WalletSession, WalletSessionManager

logger = logging.getLogger(__name__)

FUNDING_TAGS = ["funding"]
FUNDING_LABELS = ["brc29"]


class ReceiptStatus(enum.StrEnum):
    """Outcome of a successful receive."""

    INTERNALIZED = "internalized"
    ALREADY_INTERNALIZED = "already_internalized"


@dataclasses.dataclass(frozen=True)
class IncomingFunding:
    """A funded transaction submitted against a payment request."""

    tx: Any
    sender_identity_key: str | None
    derivation_prefix: str | None
    derivation_suffix: str | None
    output_index: int | None = None
    description: str | None = None


@dataclasses.dataclass(frozen=True)
class Receipt:
    """Confirmation of a receive, including orphans recovered on the way."""

    status: ReceiptStatus
    txid: str
    output_index: int
    satoshis: int
    sender_identity_key: str
    recipient_identity_key: str
    reinternalized: list[str] = dataclasses.field(default_factory=list)

    @property
    def credited(self) -> bool:
        return self.status is ReceiptStatus.INTERNALIZED

    @property
    def message(self) -> str:
        if self.credited:
            return "Payment internalized successfully"
        return "Payment already internalized"

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "status": self.status.value,
            "serverIdentityKey": self.recipient_identity_key,
            "senderIdentityKey": self.sender_identity_key,
            "txid": self.txid,
            "outputIndex": self.output_index,
            "satoshis": self.satoshis,
            "reinternalized": list(self.reinternalized),
        }


class FundingInternalizer:
    """Applies incoming funding to the active wallet's output set."""

    def __init__(
        self,
        sessions: WalletSessionManager,
        repository: OutputRepository,
        *,
        basket: str = "default",
        description: str = "",
        metrics: EngineMetrics | None = None,
    ) -> None:
        self._sessions = sessions
        self._repo = repository
        self._basket = basket
        self._description = description
        self._metrics = metrics
        self._lock = asyncio.Lock()

    async def receive(self, funding: IncomingFunding) -> Receipt:
        """Validate *funding* and credit its designated output once.

        Raises:
            StateError: If the wallet is not active.
            ValidationError: Missing fields, bad transaction, bad sender key
                or output index out of range.
            DerivationMismatch: The output does not pay the derived key.
        """
        wallet = self._sessions.require_active()
        if self._metrics is None:
            return await self._receive(wallet, funding)
        with self._metrics.track_receive():
            receipt = await self._receive(wallet, funding)
        self._metrics.set_output_count(await self._repo.count())
        return receipt

    async def _receive(self, wallet: WalletSession, funding: IncomingFunding) -> Receipt:
        if not (
            funding.tx
            and funding.sender_identity_key
            and funding.derivation_prefix
            and funding.derivation_suffix
        ):
            raise ErrMissingFundingFields

        try:
            tx = parse_transaction_payload(funding.tx)
        except ValueError as exc:
            raise ErrInvalidTransaction from exc
        if not is_identity_key(funding.sender_identity_key):
            raise ErrInvalidSenderKey

        index = 0 if funding.output_index is None else funding.output_index
        if not 0 <= index < len(tx.outputs):
            msg = (
                f"outputIndex {index} is out of range for a transaction with "
                f"{len(tx.outputs)} outputs"
            )
            raise ValidationError(msg)

        txid = tx.txid()
        self._verify_derivation(wallet, funding, tx, txid, index)

        async with self._lock:
            status = await self._credit(wallet, funding, tx, txid, index)
            reinternalized = await self._recover_orphans(wallet)

        if status is ReceiptStatus.INTERNALIZED:
            logger.info(
                "Internalized %s.%d (%d sats) from %s",
                txid,
                index,
                tx.outputs[index].value,
                funding.sender_identity_key,
            )
        else:
            logger.info("Ignored duplicate funding %s.%d", txid, index)

        return Receipt(
            status=status,
            txid=txid,
            output_index=index,
            satoshis=tx.outputs[index].value,
            sender_identity_key=funding.sender_identity_key,
            recipient_identity_key=wallet.identity_key,
            reinternalized=reinternalized,
        )

    @staticmethod
    def _verify_derivation(
        wallet: WalletSession,
        funding: IncomingFunding,
        tx: Transaction,
        txid: str,
        index: int,
    ) -> None:
        expected = brc29_locking_script(
            wallet.private_key,
            bytes.fromhex(funding.sender_identity_key or ""),
            funding.derivation_prefix or "",
            funding.derivation_suffix or "",
        )
        script = tx.outputs[index].script_pubkey
        if p2pkh_pubkey_hash(script) is None:
            msg = f"Output {index} of {txid} is not a P2PKH output"
            raise DerivationMismatch(msg)
        if script != expected:
            msg = (
                f"Output {index} of {txid} does not pay the key derived from "
                "senderIdentityKey, derivationPrefix and derivationSuffix"
            )
            raise DerivationMismatch(msg)

    async def _credit(
        self,
        wallet: WalletSession,
        funding: IncomingFunding,
        tx: Transaction,
        txid: str,
        index: int,
    ) -> ReceiptStatus:
        existing = await self._repo.get(txid, index)
        if existing is not None and existing.is_internalized:
            return ReceiptStatus.ALREADY_INTERNALIZED

        if existing is None:
            output = tx.outputs[index]
            try:
                await self._repo.track(
                    WalletOutput(
                        tx_id=txid,
                        vout=index,
                        identity_key=wallet.identity_key,
                        satoshis=output.value,
                        locking_script=output.script_pubkey.hex(),
                        spendable=True,
                        tags=[],
                        labels=[],
                        description="",
                        sender_identity_key=funding.sender_identity_key or "",
                        derivation_prefix=funding.derivation_prefix or "",
                        derivation_suffix=funding.derivation_suffix or "",
                    )
                )
            except IntegrityError:
                logger.debug("Outpoint %s.%d tracked concurrently", txid, index)

        assigned = await self._repo.assign_basket(
            txid,
            index,
            self._basket,
            tags=FUNDING_TAGS,
            labels=FUNDING_LABELS,
            description=funding.description or self._description,
        )
        return ReceiptStatus.INTERNALIZED if assigned else ReceiptStatus.ALREADY_INTERNALIZED

    async def _recover_orphans(self, wallet: WalletSession) -> list[str]:
        """Move tracked-but-unbasketed outputs into the basket.

        Advisory only: failures are logged and reported as nothing recovered.
        """
        recovered: list[str] = []
        try:
            for orphan in await self._repo.list_orphans(wallet.identity_key):
                if await self._repo.assign_basket(orphan.tx_id, orphan.vout, self._basket):
                    recovered.append(orphan.outpoint)
        except Exception:
            logger.exception("Orphan output recovery failed")
            return []
        if recovered:
            logger.info("Re-internalized %d orphaned output(s): %s", len(recovered), recovered)
        return recovered
