"""Pre-built error instances for fixed-message failures."""

from __future__ import annotations

from server_wallet.errors.wallet_errors import NotFoundError, StateError, ValidationError

# -- Registry --------------------------------------------------------------

ErrEmptyQuery = ValidationError("Missing query parameter")
ErrMissingIdentityKey = ValidationError("Missing identityKey parameter")
ErrMissingTagFields = ValidationError("Missing required fields: tag, identityKey")
ErrTagEmpty = ValidationError("Tag cannot be empty")
ErrInvalidIdentityKey = ValidationError(
    "identityKey must be a 33-byte compressed public key (66 hex characters)"
)
ErrTagNotFound = NotFoundError("Tag not found or does not belong to this identity")

# -- Wallet session --------------------------------------------------------

ErrWalletNotReady = StateError("Server wallet is not initialized")
ErrWalletReset = StateError("Wallet was reset during initialization")

# -- Payment requests ------------------------------------------------------

ErrInvalidAmount = ValidationError("amount must be a positive integer number of satoshis")

# -- Funding internalization -----------------------------------------------

ErrMissingFundingFields = ValidationError(
    "Missing required fields: tx, senderIdentityKey, derivationPrefix, derivationSuffix"
)
ErrInvalidTransaction = ValidationError("tx is not a valid raw transaction")
ErrInvalidSenderKey = ValidationError("senderIdentityKey is not a valid compressed public key")
