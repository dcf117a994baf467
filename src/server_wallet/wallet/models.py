"""SQLAlchemy ORM models for the wallet output store."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for the output store."""


class WalletOutput(Base):
    """An output owned by the server wallet.

    Identified by its ``(tx_id, vout)`` outpoint.  ``basket`` is NULL while
    the output is tracked but not yet internalized; such rows are orphans
    until a later recovery pass assigns them a basket.
    """

    __tablename__ = "wallet_outputs"

    tx_id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Transaction ID")
    vout: Mapped[int] = mapped_column(Integer, primary_key=True, comment="Output index")
    identity_key: Mapped[str] = mapped_column(
        String(66), nullable=False, index=True, comment="Owning wallet identity key"
    )
    satoshis: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="Value in satoshis")
    locking_script: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Hex-encoded locking script"
    )
    basket: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True, default=None, comment="NULL until internalized"
    )
    spendable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    labels: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    description: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    sender_identity_key: Mapped[str] = mapped_column(String(66), nullable=False, default="")
    derivation_prefix: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    derivation_suffix: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    @property
    def outpoint(self) -> str:
        """``<txid>.<vout>`` outpoint string."""
        return f"{self.tx_id}.{self.vout}"

    @property
    def is_internalized(self) -> bool:
        """Check if the output has been assigned to a basket."""
        return self.basket is not None

    def __repr__(self) -> str:
        return f"<WalletOutput {self.tx_id[:16]}.{self.vout} sats={self.satoshis}>"
