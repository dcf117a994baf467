"""Payment request protocol — BRC-29 funding requests from the server wallet."""

from __future__ import annotations

import base64
import dataclasses
import secrets
from typing import TYPE_CHECKING, Any

from server_wallet.errors.definitions import ErrInvalidAmount

if TYPE_CHECKING:
    from server_wallet.wallet.session import WalletSessionManager

# 128 bits each for the derivation prefix and suffix
DERIVATION_ENTROPY_BYTES = 16


def random_derivation_value(nbytes: int = DERIVATION_ENTROPY_BYTES) -> str:
    """Base64 of *nbytes* from the OS CSPRNG."""
    return base64.b64encode(secrets.token_bytes(nbytes)).decode("ascii")


@dataclasses.dataclass(frozen=True)
class PaymentRequest:
    """A request for a sender to fund the server wallet.

    The sender combines its own private key with ``recipient_identity_key``
    and the derivation prefix/suffix to compute a one-time receiving key
    that only the two parties can link to this request.
    """

    satoshis: int
    memo: str
    derivation_prefix: str
    derivation_suffix: str
    recipient_identity_key: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "satoshis": self.satoshis,
            "memo": self.memo,
            "derivationPrefix": self.derivation_prefix,
            "derivationSuffix": self.derivation_suffix,
            "recipientIdentityKey": self.recipient_identity_key,
            "serverIdentityKey": self.recipient_identity_key,
        }


class PaymentRequestService:
    """Issues payment requests bound to the active wallet identity.

    Requests are stateless: nothing is stored, and the prefix/suffix come
    back with the funded transaction.
    """

    def __init__(
        self,
        sessions: WalletSessionManager,
        *,
        default_satoshis: int = 1000,
        default_memo: str = "",
    ) -> None:
        self._sessions = sessions
        self._default_satoshis = default_satoshis
        self._default_memo = default_memo

    def create_request(
        self,
        satoshis: int | None = None,
        memo: str | None = None,
    ) -> PaymentRequest:
        """Create a funding request with a fresh derivation prefix/suffix.

        Raises:
            StateError: If the wallet is not active.
            ValidationError: If *satoshis* is not a positive integer.
        """
        wallet = self._sessions.require_active()
        amount = self._default_satoshis if satoshis is None else satoshis
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ErrInvalidAmount
        return PaymentRequest(
            satoshis=amount,
            memo=self._default_memo if memo is None else memo,
            derivation_prefix=random_derivation_value(),
            derivation_suffix=random_derivation_value(),
            recipient_identity_key=wallet.identity_key,
        )
