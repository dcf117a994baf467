"""secp256k1 keys — private key generation, identity keys, ECDH.

Provides the key handling the server wallet needs:
- Random private key generation and hex validation
- Compressed public (identity) key derivation and validation
- Elliptic curve point arithmetic for ECDH and BRC-42 derivation
"""

from __future__ import annotations

import re

from ecdsa import SECP256k1, SigningKey, VerifyingKey
from ecdsa.ellipticcurve import INFINITY, PointJacobi

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CURVE = SECP256k1
CURVE_ORDER = _CURVE.order
_CURVE_GEN = _CURVE.generator

PRIVATE_KEY_LENGTH = 32
COMPRESSED_KEY_LENGTH = 33

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


# ---------------------------------------------------------------------------
# Private keys
# ---------------------------------------------------------------------------


def generate_private_key() -> bytes:
    """Generate a fresh random 32-byte secp256k1 private key."""
    return SigningKey.generate(curve=_CURVE).to_string()


def private_key_from_hex(hex_str: str) -> bytes:
    """Decode and validate a hex-encoded private key.

    Raises:
        ValueError: If the string is not 64 hex characters or the scalar is
            outside ``[1, n)``.
    """
    hex_str = hex_str.strip()
    if len(hex_str) != PRIVATE_KEY_LENGTH * 2 or not _HEX_RE.match(hex_str):
        msg = "Private key must be 64 hex characters"
        raise ValueError(msg)
    raw = bytes.fromhex(hex_str)
    scalar = int.from_bytes(raw, "big")
    if not 0 < scalar < CURVE_ORDER:
        msg = "Private key is out of range for secp256k1"
        raise ValueError(msg)
    return raw


def private_key_to_public_key(privkey_bytes: bytes) -> bytes:
    """Derive the 33-byte SEC compressed public key of a 32-byte private key."""
    vk = SigningKey.from_string(privkey_bytes, curve=_CURVE).get_verifying_key()
    return vk.to_string("compressed")


def identity_key_for(privkey_bytes: bytes) -> str:
    """Return the hex identity key (compressed public key) for a private key."""
    return private_key_to_public_key(privkey_bytes).hex()


# ---------------------------------------------------------------------------
# Public keys
# ---------------------------------------------------------------------------


def is_identity_key(value: str) -> bool:
    """Check that *value* is a hex-encoded 33-byte compressed curve point."""
    if len(value) != COMPRESSED_KEY_LENGTH * 2 or not _HEX_RE.match(value):
        return False
    if value[:2] not in ("02", "03"):
        return False
    try:
        public_key_to_point(bytes.fromhex(value))
    except ValueError:
        return False
    return True


# ---------------------------------------------------------------------------
# Point arithmetic
# ---------------------------------------------------------------------------


def public_key_to_point(pubkey: bytes) -> PointJacobi:
    """Decode a SEC-encoded public key (33, 64 or 65 bytes) to a curve point.

    Raises:
        ValueError: If the bytes do not encode a point on secp256k1.
    """
    try:
        vk = VerifyingKey.from_string(pubkey, curve=_CURVE)
    except Exception as exc:  # noqa: BLE001 - ecdsa raises several unrelated types
        msg = f"Invalid public key: {exc}"
        raise ValueError(msg) from exc
    return vk.pubkey.point


def point_to_compressed(point: PointJacobi) -> bytes:
    """Encode a curve point as a 33-byte compressed public key."""
    if point == INFINITY:
        msg = "Cannot encode the point at infinity"
        raise ValueError(msg)
    prefix = b"\x02" if point.y() % 2 == 0 else b"\x03"
    return prefix + point.x().to_bytes(32, "big")


def scalar_base_mult(scalar: int) -> PointJacobi:
    """Return ``scalar·G``."""
    return _CURVE_GEN * (scalar % CURVE_ORDER)


def shared_secret(privkey_bytes: bytes, pubkey: bytes) -> bytes:
    """ECDH: the compressed encoding of ``pubkey·privkey``.

    Symmetric: ``shared_secret(a, B) == shared_secret(b, A)``.
    """
    scalar = int.from_bytes(privkey_bytes, "big")
    point = public_key_to_point(pubkey) * scalar
    return point_to_compressed(point)
