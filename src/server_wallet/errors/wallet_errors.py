"""WalletError — base exception and the error taxonomy."""

from __future__ import annotations


class WalletError(Exception):
    """Base error for all server wallet and registry operations.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code the boundary layer responds with.
        code: Machine-readable error code string.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        code: str = "wallet-error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class ValidationError(WalletError):
    """A required field is missing, empty, or malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=400, code="validation-error")


class UnknownActionError(WalletError):
    """The ``action`` query parameter names no known operation."""

    def __init__(self, action: str | None) -> None:
        super().__init__(f"Unknown action: {action}", status_code=400, code="unknown-action")
        self.action = action


class ConflictError(WalletError):
    """A tag is already owned by a different identity key."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=409, code="conflict")


class NotFoundError(WalletError):
    """The target of an operation does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404, code="not-found")


class StateError(WalletError):
    """An operation was attempted before its precondition holds."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=409, code="invalid-state")


class DerivationMismatch(WalletError):
    """The designated funding output does not pay the derived receiving key.

    A security-relevant rejection, never a transient fault.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=500, code="derivation-mismatch")


class StorageError(WalletError):
    """Persisted state could not be written."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=500, code="storage-error")
