"""Error taxonomy shared by the registry, wallet and HTTP boundary."""

from __future__ import annotations

from server_wallet.errors.wallet_errors import (
    ConflictError,
    DerivationMismatch,
    NotFoundError,
    StateError,
    StorageError,
    UnknownActionError,
    ValidationError,
    WalletError,
)

__all__ = [
    "ConflictError",
    "DerivationMismatch",
    "NotFoundError",
    "StateError",
    "StorageError",
    "UnknownActionError",
    "ValidationError",
    "WalletError",
]
