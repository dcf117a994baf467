"""BRC-42 key derivation and BRC-29 payment invoice numbers.

Two parties, a sender holding ``a`` and a recipient holding ``b``, agree on
an invoice number.  Each side computes the ECDH shared point
``S = a·B = b·A`` and the scalar ``h = HMAC-SHA256(compressed(S), invoice)``.

- The sender derives the recipient's one-time public key as ``B + h·G``.
- The recipient derives the matching private key as ``b + h (mod n)``.

Nobody without ``a`` or ``b`` can compute ``h``.  BRC-29 fixes the protocol
(``3241645161d8``, security level 2) and uses ``"<prefix> <suffix>"`` as the
key id, so every payment request gets its own receiving key.
"""

from __future__ import annotations

from server_wallet.bsv.keys import (
    CURVE_ORDER,
    point_to_compressed,
    private_key_to_public_key,
    public_key_to_point,
    scalar_base_mult,
    shared_secret,
)
from server_wallet.bsv.script import p2pkh_lock_script_from_pubkey
from server_wallet.utils.crypto import hmac_sha256

BRC29_PROTOCOL_ID = "3241645161d8"
BRC29_SECURITY_LEVEL = 2


def brc29_invoice_number(derivation_prefix: str, derivation_suffix: str) -> str:
    """Build the BRC-29 invoice number for a prefix/suffix pair.

    Format: ``<security level>-<protocol id>-<prefix> <suffix>``.
    """
    return f"{BRC29_SECURITY_LEVEL}-{BRC29_PROTOCOL_ID}-{derivation_prefix} {derivation_suffix}"


def _invoice_scalar(secret: bytes, invoice_number: str) -> int:
    return int.from_bytes(hmac_sha256(secret, invoice_number.encode("utf-8")), "big")


def derive_child_public_key(
    recipient_pubkey: bytes,
    sender_privkey: bytes,
    invoice_number: str,
) -> bytes:
    """Sender side: the recipient's one-time public key for *invoice_number*.

    Returns:
        33-byte compressed public key.
    """
    h = _invoice_scalar(shared_secret(sender_privkey, recipient_pubkey), invoice_number)
    child = public_key_to_point(recipient_pubkey) + scalar_base_mult(h)
    return point_to_compressed(child)


def derive_child_private_key(
    recipient_privkey: bytes,
    sender_pubkey: bytes,
    invoice_number: str,
) -> bytes:
    """Recipient side: the one-time private key for *invoice_number*.

    Raises:
        ValueError: If *sender_pubkey* is not a valid point or the derived
            scalar is zero.
    """
    h = _invoice_scalar(shared_secret(recipient_privkey, sender_pubkey), invoice_number)
    child = (int.from_bytes(recipient_privkey, "big") + h) % CURVE_ORDER
    if child == 0:
        msg = "Derived private key is invalid (key == 0)"
        raise ValueError(msg)
    return child.to_bytes(32, "big")


def brc29_locking_script(
    recipient_privkey: bytes,
    sender_pubkey: bytes,
    derivation_prefix: str,
    derivation_suffix: str,
) -> bytes:
    """P2PKH locking script the recipient expects a BRC-29 payment to use."""
    invoice = brc29_invoice_number(derivation_prefix, derivation_suffix)
    child_priv = derive_child_private_key(recipient_privkey, sender_pubkey, invoice)
    return p2pkh_lock_script_from_pubkey(private_key_to_public_key(child_priv))
