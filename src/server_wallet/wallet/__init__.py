"""Server wallet — session, payment requests, funding internalization."""

from __future__ import annotations

from server_wallet.wallet.internalize import (
    FundingInternalizer,
    IncomingFunding,
    Receipt,
    ReceiptStatus,
)
from server_wallet.wallet.payment_request import PaymentRequest, PaymentRequestService
from server_wallet.wallet.session import SessionState, WalletSession, WalletSessionManager

__all__ = [
    "FundingInternalizer",
    "IncomingFunding",
    "PaymentRequest",
    "PaymentRequestService",
    "Receipt",
    "ReceiptStatus",
    "SessionState",
    "WalletSession",
    "WalletSessionManager",
]
