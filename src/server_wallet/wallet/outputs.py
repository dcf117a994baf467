"""Output store — repository and balance queries over wallet outputs."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update

from server_wallet.wallet.models import WalletOutput

if TYPE_CHECKING:
    from server_wallet.datastore.client import Datastore
    from server_wallet.wallet.session import WalletSessionManager


class OutputRepository:
    """Data access layer for wallet outputs."""

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def get(self, tx_id: str, vout: int) -> WalletOutput | None:
        """Find an output by its ``(tx_id, vout)`` outpoint."""
        async with self._ds.session() as session:
            return await session.get(WalletOutput, (tx_id, vout))

    async def track(self, output: WalletOutput) -> WalletOutput:
        """Persist a newly seen output with no basket.

        Raises:
            sqlalchemy.exc.IntegrityError: If the outpoint is already tracked.
        """
        output.basket = None
        async with self._ds.transaction() as session:
            session.add(output)
        return output

    async def assign_basket(
        self,
        tx_id: str,
        vout: int,
        basket: str,
        **values: Any,
    ) -> bool:
        """Move a tracked output into *basket*.

        Only rows without a basket are updated, so an outpoint is credited at
        most once.  Extra column values (tags, labels, description) are set in
        the same statement.

        Returns:
            True if this call performed the assignment.
        """
        async with self._ds.transaction() as session:
            stmt = (
                update(WalletOutput)
                .where(
                    WalletOutput.tx_id == tx_id,
                    WalletOutput.vout == vout,
                    WalletOutput.basket.is_(None),
                )
                .values(basket=basket, **values)
            )
            result = await session.execute(stmt)
            return result.rowcount > 0  # type: ignore[attr-defined]

    async def list_by_basket(self, identity_key: str, basket: str) -> list[WalletOutput]:
        """List every output of a wallet in *basket*, oldest first."""
        async with self._ds.session() as session:
            stmt = (
                select(WalletOutput)
                .where(
                    WalletOutput.identity_key == identity_key,
                    WalletOutput.basket == basket,
                )
                .order_by(WalletOutput.created_at.asc(), WalletOutput.vout.asc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def list_orphans(self, identity_key: str) -> list[WalletOutput]:
        """List spendable outputs of a wallet that were never internalized."""
        async with self._ds.session() as session:
            stmt = (
                select(WalletOutput)
                .where(
                    WalletOutput.identity_key == identity_key,
                    WalletOutput.basket.is_(None),
                    WalletOutput.spendable.is_(True),
                )
                .order_by(WalletOutput.created_at.asc(), WalletOutput.vout.asc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count(self) -> int:
        """Count all tracked outputs."""
        async with self._ds.session() as session:
            result = await session.execute(select(func.count()).select_from(WalletOutput))
            return int(result.scalar_one())


@dataclasses.dataclass(frozen=True)
class BalanceSummary:
    """Aggregate of the outputs held in one basket."""

    basket: str
    total_outputs: int
    total_satoshis: int
    spendable_outputs: int
    spendable_satoshis: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "basket": self.basket,
            "totalOutputs": self.total_outputs,
            "totalSatoshis": self.total_satoshis,
            "spendableOutputs": self.spendable_outputs,
            "spendableSatoshis": self.spendable_satoshis,
        }


class OutputService:
    """Balance and listing queries for the active server wallet."""

    def __init__(
        self,
        repository: OutputRepository,
        sessions: WalletSessionManager,
        *,
        default_basket: str = "default",
    ) -> None:
        self._repo = repository
        self._sessions = sessions
        self._default_basket = default_basket

    @property
    def default_basket(self) -> str:
        return self._default_basket

    async def list_outputs(self, basket: str | None = None) -> list[WalletOutput]:
        """List outputs in *basket* (default basket when omitted).

        Raises:
            StateError: If the wallet is not active.
        """
        wallet = self._sessions.require_active()
        return await self._repo.list_by_basket(wallet.identity_key, basket or self._default_basket)

    async def balance(self, basket: str | None = None) -> BalanceSummary:
        """Sum the outputs in *basket*, split into total and spendable."""
        basket = basket or self._default_basket
        outputs = await self.list_outputs(basket)
        spendable = [o for o in outputs if o.spendable]
        return BalanceSummary(
            basket=basket,
            total_outputs=len(outputs),
            total_satoshis=sum(o.satoshis for o in outputs),
            spendable_outputs=len(spendable),
            spendable_satoshis=sum(o.satoshis for o in spendable),
        )
