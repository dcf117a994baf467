"""Raw transaction codec.

Funding arrives as a fully signed transaction built by the paying wallet.
The server only needs to read it back: locate the designated output, compare
its locking script and compute the txid that keys the credit.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any

from server_wallet.utils.crypto import sha256d

FINAL_SEQUENCE = 0xFFFFFFFF
MAX_SATOSHIS = 21_000_000 * 100_000_000

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_I32 = struct.Struct("<i")
_U64 = struct.Struct("<Q")
_I64 = struct.Struct("<q")


def encode_varint(n: int) -> bytes:
    """Bitcoin CompactSize encoding of *n*."""
    if n < 0xFD:
        return bytes([n])
    if n <= 0xFFFF:
        return b"\xfd" + _U16.pack(n)
    if n <= 0xFFFFFFFF:
        return b"\xfe" + _U32.pack(n)
    return b"\xff" + _U64.pack(n)


class ByteReader:
    """Cursor over a byte string; every read past the end raises ValueError."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def take(self, n: int, what: str = "data") -> bytes:
        if n > self.remaining:
            msg = f"Unexpected end of data reading {what}"
            raise ValueError(msg)
        chunk = self._data[self._pos : self._pos + n]
        self._pos += n
        return chunk

    def unpack(self, fmt: struct.Struct, what: str) -> int:
        return fmt.unpack(self.take(fmt.size, what))[0]

    def varint(self) -> int:
        prefix = self.take(1, "varint")[0]
        if prefix < 0xFD:
            return prefix
        width = {0xFD: _U16, 0xFE: _U32, 0xFF: _U64}[prefix]
        return self.unpack(width, "varint")

    def var_bytes(self, what: str) -> bytes:
        return self.take(self.varint(), what)


@dataclass
class TxInput:
    prev_tx_id: bytes
    prev_tx_out_index: int
    script_sig: bytes = b""
    sequence: int = FINAL_SEQUENCE

    def serialize(self) -> bytes:
        return b"".join(
            (
                self.prev_tx_id,
                _U32.pack(self.prev_tx_out_index),
                encode_varint(len(self.script_sig)),
                self.script_sig,
                _U32.pack(self.sequence),
            )
        )


@dataclass
class TxOutput:
    value: int
    script_pubkey: bytes

    def serialize(self) -> bytes:
        return _I64.pack(self.value) + encode_varint(len(self.script_pubkey)) + self.script_pubkey


@dataclass
class Transaction:
    """A transaction as it appears on the wire."""

    version: int = 1
    inputs: list[TxInput] = field(default_factory=list)
    outputs: list[TxOutput] = field(default_factory=list)
    locktime: int = 0

    def serialize(self) -> bytes:
        parts = [_I32.pack(self.version), encode_varint(len(self.inputs))]
        parts.extend(i.serialize() for i in self.inputs)
        parts.append(encode_varint(len(self.outputs)))
        parts.extend(o.serialize() for o in self.outputs)
        parts.append(_U32.pack(self.locktime))
        return b"".join(parts)

    def to_hex(self) -> str:
        return self.serialize().hex()

    def txid(self) -> str:
        """Double SHA-256 of the raw bytes, displayed big-endian."""
        return sha256d(self.serialize())[::-1].hex()

    @classmethod
    def from_bytes(cls, data: bytes) -> Transaction:
        """Parse a raw transaction.

        Raises:
            ValueError: If *data* is truncated, has bytes after the locktime or
                carries an output value outside the money range.
        """
        reader = ByteReader(data)
        version = reader.unpack(_I32, "version")
        inputs = [
            TxInput(
                prev_tx_id=reader.take(32, "prev_tx_id"),
                prev_tx_out_index=reader.unpack(_U32, "prev_tx_out_index"),
                script_sig=reader.var_bytes("script_sig"),
                sequence=reader.unpack(_U32, "sequence"),
            )
            for _ in range(reader.varint())
        ]
        outputs = [
            TxOutput(
                value=reader.unpack(_I64, "value"),
                script_pubkey=reader.var_bytes("script_pubkey"),
            )
            for _ in range(reader.varint())
        ]
        for i, out in enumerate(outputs):
            if not 0 <= out.value <= MAX_SATOSHIS:
                msg = f"Output {i} value {out.value} is outside 0..{MAX_SATOSHIS}"
                raise ValueError(msg)
        locktime = reader.unpack(_U32, "locktime")
        if reader.remaining:
            msg = f"Trailing {reader.remaining} byte(s) after transaction"
            raise ValueError(msg)
        return cls(version=version, inputs=inputs, outputs=outputs, locktime=locktime)

    @classmethod
    def from_hex(cls, hex_str: str) -> Transaction:
        return cls.from_bytes(bytes.fromhex(hex_str))

    def add_input(
        self,
        prev_tx_id: bytes,
        prev_tx_out_index: int,
        script_sig: bytes = b"",
        sequence: int = FINAL_SEQUENCE,
    ) -> TxInput:
        inp = TxInput(prev_tx_id, prev_tx_out_index, script_sig, sequence)
        self.inputs.append(inp)
        return inp

    def add_output(self, value: int, script_pubkey: bytes) -> TxOutput:
        out = TxOutput(value, script_pubkey)
        self.outputs.append(out)
        return out


def parse_transaction_payload(payload: Any) -> Transaction:
    """Decode a submitted ``tx`` value into a :class:`Transaction`.

    Accepts a hex string or a list of byte values (the shape JS wallet
    clients serialise ``number[]`` transactions into).

    Raises:
        ValueError: If the payload has another shape or does not decode.
    """
    if isinstance(payload, str):
        raw = bytes.fromhex(payload.strip())
    elif isinstance(payload, list):
        if not all(isinstance(b, int) and not isinstance(b, bool) for b in payload):
            msg = "Transaction byte array must contain integers"
            raise ValueError(msg)
        raw = bytes(payload)
    else:
        msg = f"Unsupported transaction payload type: {type(payload).__name__}"
        raise ValueError(msg)
    return Transaction.from_bytes(raw)
