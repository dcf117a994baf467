"""P2PKH locking scripts, the only template a BRC-29 funding output uses."""

from __future__ import annotations

from server_wallet.utils.crypto import hash160

OP_DUP = 0x76
OP_HASH160 = 0xA9
OP_EQUALVERIFY = 0x88
OP_CHECKSIG = 0xAC

_HASH_LEN = 20
_PREFIX = bytes([OP_DUP, OP_HASH160, _HASH_LEN])
_SUFFIX = bytes([OP_EQUALVERIFY, OP_CHECKSIG])


def p2pkh_lock_script(pubkey_hash: bytes) -> bytes:
    """``OP_DUP OP_HASH160 <pubkey_hash> OP_EQUALVERIFY OP_CHECKSIG``."""
    if len(pubkey_hash) != _HASH_LEN:
        msg = f"pubkey_hash must be 20 bytes, got {len(pubkey_hash)}"
        raise ValueError(msg)
    return _PREFIX + pubkey_hash + _SUFFIX


def p2pkh_lock_script_from_pubkey(pubkey: bytes) -> bytes:
    return p2pkh_lock_script(hash160(pubkey))


def p2pkh_pubkey_hash(script: bytes) -> bytes | None:
    """Return the hash a P2PKH script pays to, or None for any other script."""
    if len(script) != len(_PREFIX) + _HASH_LEN + len(_SUFFIX):
        return None
    if not (script.startswith(_PREFIX) and script.endswith(_SUFFIX)):
        return None
    return script[len(_PREFIX) : -len(_SUFFIX)]
