"""Spendable transparent inputs and expected outputs.

Inputs can be handed over one by one or in the bulk binary encoding:

    u16 LE count
    per input: pubkey[33] txid[32] u32 LE vout u64 LE amount
               u16 LE script_len script[script_len]
"""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Self

from t2z.errors import CodecError, InvalidRequestError
from t2z.pczt.request import MAX_MONEY
from t2z.zcash.address import decode_transparent_address

_MAX_COUNT = 0xFFFF
_MAX_SCRIPT_LEN = 0xFFFF
_FIXED_SIZE = 33 + 32 + 4 + 8 + 2


@dataclass(frozen=True)
class TransparentInput:
    """A transparent UTXO the proposer may spend.

    Attributes:
        pubkey: 33-byte compressed public key that controls the output.
        txid: 32-byte id of the funding transaction (internal byte order).
        vout: Output index within the funding transaction.
        amount: Value in zatoshis.
        script_pubkey: Locking script of the output being spent.
    """

    pubkey: bytes
    txid: bytes
    vout: int
    amount: int
    script_pubkey: bytes

    def __post_init__(self) -> None:
        if len(self.pubkey) != 33 or self.pubkey[0] not in (0x02, 0x03):
            msg = "pubkey must be a 33-byte compressed public key"
            raise InvalidRequestError(msg)
        if len(self.txid) != 32:
            msg = f"txid must be 32 bytes, got {len(self.txid)}"
            raise InvalidRequestError(msg)
        if not 0 <= self.vout <= 0xFFFFFFFF:
            msg = f"vout {self.vout} out of range"
            raise InvalidRequestError(msg)
        if not 0 <= self.amount <= MAX_MONEY:
            msg = f"amount {self.amount} out of range 0..{MAX_MONEY}"
            raise InvalidRequestError(msg)
        if not self.script_pubkey or len(self.script_pubkey) > _MAX_SCRIPT_LEN:
            msg = f"script_pubkey length {len(self.script_pubkey)} invalid"
            raise InvalidRequestError(msg)

    @property
    def txid_hex(self) -> str:
        """Funding txid in display (reversed) hex."""
        return self.txid[::-1].hex()


@dataclass(frozen=True)
class TransparentOutput:
    """A transparent output the caller expects to see (e.g. change)."""

    script_pubkey: bytes
    value: int

    @classmethod
    def to_address(cls, address: str, value: int) -> Self:
        """Expected output paying *value* to a transparent address.

        Raises:
            InvalidRequestError: If *address* is not a transparent address.
        """
        try:
            decoded = decode_transparent_address(address)
        except ValueError as exc:
            msg = f"Invalid transparent address {address!r}: {exc}"
            raise InvalidRequestError(msg) from exc
        return cls(script_pubkey=decoded.script_pubkey(), value=value)


def serialize_transparent_inputs(inputs: Sequence[TransparentInput]) -> bytes:
    """Encode inputs in the bulk binary format.

    Raises:
        InvalidRequestError: If there are more inputs than a u16 can count.
    """
    if len(inputs) > _MAX_COUNT:
        msg = f"Too many inputs for bulk encoding: {len(inputs)}"
        raise InvalidRequestError(msg)
    result = struct.pack("<H", len(inputs))
    for inp in inputs:
        result += inp.pubkey
        result += inp.txid
        result += struct.pack("<I", inp.vout)
        result += struct.pack("<Q", inp.amount)
        result += struct.pack("<H", len(inp.script_pubkey))
        result += inp.script_pubkey
    return result


def parse_transparent_inputs(data: bytes) -> list[TransparentInput]:
    """Decode the bulk binary format.

    Raises:
        CodecError: On truncation, trailing bytes, or an invalid input.
    """
    if len(data) < 2:
        msg = "Input list too short for count"
        raise CodecError(msg)
    (count,) = struct.unpack_from("<H", data, 0)
    pos = 2
    inputs: list[TransparentInput] = []
    for i in range(count):
        if pos + _FIXED_SIZE > len(data):
            msg = f"Input {i} truncated"
            raise CodecError(msg)
        pubkey = data[pos : pos + 33]
        txid = data[pos + 33 : pos + 65]
        vout, amount, script_len = struct.unpack_from("<IQH", data, pos + 65)
        pos += _FIXED_SIZE
        if pos + script_len > len(data):
            msg = f"Input {i} script truncated"
            raise CodecError(msg)
        script = data[pos : pos + script_len]
        pos += script_len
        try:
            inputs.append(TransparentInput(pubkey, txid, vout, amount, script))
        except InvalidRequestError as exc:
            msg = f"Input {i} invalid: {exc.message}"
            raise CodecError(msg) from exc
    if pos != len(data):
        msg = f"{len(data) - pos} trailing bytes after input list"
        raise CodecError(msg)
    return inputs
