"""Unified addresses: Bech32m, F4Jumble, typed receivers.

A unified address bundles receivers for several pools into one string:

    bech32m(hrp, F4Jumble(TLV receivers || hrp padded to 16 bytes))

Receivers are encoded in ascending typecode order.  Unknown typecodes are
kept so an address can be decoded and re-encoded without loss.
"""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass

from bech32 import CHARSET, bech32_hrp_expand, bech32_polymod, convertbits

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_BECH32M_CONST = 0x2BC830A3
_PADDING_LEN = 16

MAINNET_HRP = "u"
TESTNET_HRP = "utest"
REGTEST_HRP = "uregtest"
_KNOWN_HRPS = (MAINNET_HRP, TESTNET_HRP, REGTEST_HRP)

_F4_MIN_LEN = 48
_F4_MAX_LEN = 4_194_368


class ReceiverType(int, enum.Enum):
    """Receiver typecodes."""

    P2PKH = 0x00
    P2SH = 0x01
    SAPLING = 0x02
    ORCHARD = 0x03


_RECEIVER_LENGTHS = {
    ReceiverType.P2PKH: 20,
    ReceiverType.P2SH: 20,
    ReceiverType.SAPLING: 43,
    ReceiverType.ORCHARD: 43,
}

ORCHARD_RECEIVER_SIZE = _RECEIVER_LENGTHS[ReceiverType.ORCHARD]

# ---------------------------------------------------------------------------
# Bech32m
# ---------------------------------------------------------------------------


def _bech32m_checksum(hrp: str, data: list[int]) -> list[int]:
    values = bech32_hrp_expand(hrp) + data
    polymod = bech32_polymod(values + [0] * 6) ^ _BECH32M_CONST
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def bech32m_encode(hrp: str, payload: bytes) -> str:
    """Bech32m-encode *payload* with no overall length limit."""
    data = convertbits(list(payload), 8, 5, True)
    combined = data + _bech32m_checksum(hrp, data)
    return hrp + "1" + "".join(CHARSET[d] for d in combined)


def bech32m_decode(text: str) -> tuple[str, bytes]:
    """Decode a Bech32m string into ``(hrp, payload)``.

    Raises:
        ValueError: On mixed case, bad characters, or a bad checksum.
    """
    if text.lower() != text and text.upper() != text:
        msg = "Bech32m string has mixed case"
        raise ValueError(msg)
    text = text.lower()
    pos = text.rfind("1")
    if pos < 1 or pos + 7 > len(text):
        msg = "Bech32m separator missing or data too short"
        raise ValueError(msg)
    hrp = text[:pos]
    if any(ord(ch) < 33 or ord(ch) > 126 for ch in hrp):
        msg = "Bech32m human-readable part has invalid characters"
        raise ValueError(msg)
    try:
        data = [CHARSET.index(ch) for ch in text[pos + 1 :]]
    except ValueError as exc:
        msg = "Bech32m data part has invalid characters"
        raise ValueError(msg) from exc
    if bech32_polymod(bech32_hrp_expand(hrp) + data) != _BECH32M_CONST:
        msg = "Bech32m checksum mismatch"
        raise ValueError(msg)
    decoded = convertbits(data[:-6], 5, 8, False)
    if decoded is None:
        msg = "Bech32m data has invalid padding"
        raise ValueError(msg)
    return hrp, bytes(decoded)


# ---------------------------------------------------------------------------
# F4Jumble
# ---------------------------------------------------------------------------


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b, strict=True))


def _h(i: int, u: bytes, length: int) -> bytes:
    person = b"UA_F4Jumble_H" + bytes([i, 0, 0])
    return hashlib.blake2b(u, digest_size=length, person=person).digest()


def _g(i: int, u: bytes, length: int) -> bytes:
    out = b""
    j = 0
    while len(out) < length:
        person = b"UA_F4Jumble_G" + bytes([i]) + j.to_bytes(2, "little")
        out += hashlib.blake2b(u, digest_size=64, person=person).digest()
        j += 1
    return out[:length]


def _split(message: bytes) -> tuple[bytes, bytes]:
    if not _F4_MIN_LEN <= len(message) <= _F4_MAX_LEN:
        msg = f"F4Jumble input length {len(message)} out of range"
        raise ValueError(msg)
    left = min(64, len(message) // 2)
    return message[:left], message[left:]


def f4jumble(message: bytes) -> bytes:
    """Apply the F4Jumble permutation."""
    a, b = _split(message)
    x = _xor(b, _g(0, a, len(b)))
    y = _xor(a, _h(0, x, len(a)))
    d = _xor(x, _g(1, y, len(x)))
    c = _xor(y, _h(1, d, len(y)))
    return c + d


def f4jumble_inv(message: bytes) -> bytes:
    """Invert :func:`f4jumble`."""
    c, d = _split(message)
    y = _xor(c, _h(1, d, len(c)))
    x = _xor(d, _g(1, y, len(d)))
    a = _xor(y, _h(0, x, len(y)))
    b = _xor(x, _g(0, a, len(x)))
    return a + b


# ---------------------------------------------------------------------------
# Unified address
# ---------------------------------------------------------------------------


def _write_compact(n: int) -> bytes:
    if n < 0xFD:
        return bytes([n])
    if n <= 0xFFFF:
        return b"\xfd" + n.to_bytes(2, "little")
    return b"\xfe" + n.to_bytes(4, "little")


def _read_compact(data: bytes, pos: int) -> tuple[int, int]:
    if pos >= len(data):
        msg = "Truncated receiver encoding"
        raise ValueError(msg)
    first = data[pos]
    if first < 0xFD:
        return first, pos + 1
    width = 2 if first == 0xFD else 4
    if first == 0xFF or pos + 1 + width > len(data):
        msg = "Truncated receiver encoding"
        raise ValueError(msg)
    return int.from_bytes(data[pos + 1 : pos + 1 + width], "little"), pos + 1 + width


def _hrp_padding(hrp: str) -> bytes:
    raw = hrp.encode("ascii")
    if len(raw) > _PADDING_LEN:
        msg = f"HRP too long for unified address padding: {hrp}"
        raise ValueError(msg)
    return raw + b"\x00" * (_PADDING_LEN - len(raw))


@dataclass(frozen=True)
class UnifiedAddress:
    """A decoded unified address.

    Attributes:
        hrp: Human-readable part (``u``, ``utest`` or ``uregtest``).
        receivers: ``(typecode, data)`` pairs in ascending typecode order.
    """

    hrp: str
    receivers: tuple[tuple[int, bytes], ...]

    def receiver(self, typecode: ReceiverType) -> bytes | None:
        for code, data in self.receivers:
            if code == typecode:
                return data
        return None

    @property
    def has_orchard(self) -> bool:
        return self.receiver(ReceiverType.ORCHARD) is not None

    def encode(self) -> str:
        return encode_unified_address(self.hrp, dict(self.receivers))


def encode_unified_address(hrp: str, receivers: dict[int, bytes]) -> str:
    """Encode receivers into a unified address string.

    Args:
        hrp: Human-readable part.
        receivers: Mapping of typecode to raw receiver bytes.

    Raises:
        ValueError: If there are no receivers or a known receiver has the
            wrong length.
    """
    if not receivers:
        msg = "A unified address needs at least one receiver"
        raise ValueError(msg)
    body = b""
    for code in sorted(receivers):
        data = receivers[code]
        expected = _RECEIVER_LENGTHS.get(code)
        if expected is not None and len(data) != expected:
            msg = f"Receiver {int(code):#x} must be {expected} bytes, got {len(data)}"
            raise ValueError(msg)
        body += _write_compact(code) + _write_compact(len(data)) + data
    return bech32m_encode(hrp, f4jumble(body + _hrp_padding(hrp)))


def decode_unified_address(address: str) -> UnifiedAddress:
    """Decode a unified address string.

    Raises:
        ValueError: If the encoding, padding, or receiver list is invalid.
    """
    hrp, jumbled = bech32m_decode(address)
    if hrp not in _KNOWN_HRPS:
        msg = f"Unknown unified address HRP: {hrp}"
        raise ValueError(msg)
    raw = f4jumble_inv(jumbled)
    body, padding = raw[:-_PADDING_LEN], raw[-_PADDING_LEN:]
    if padding != _hrp_padding(hrp):
        msg = "Unified address padding does not match HRP"
        raise ValueError(msg)

    receivers: list[tuple[int, bytes]] = []
    pos = 0
    while pos < len(body):
        code, pos = _read_compact(body, pos)
        length, pos = _read_compact(body, pos)
        if pos + length > len(body):
            msg = "Truncated receiver data"
            raise ValueError(msg)
        data = body[pos : pos + length]
        pos += length
        if receivers and code <= receivers[-1][0]:
            msg = "Unified address receivers are out of order or duplicated"
            raise ValueError(msg)
        if code in _RECEIVER_LENGTHS and len(data) != _RECEIVER_LENGTHS[code]:
            msg = f"Receiver {int(code):#x} has invalid length {len(data)}"
            raise ValueError(msg)
        receivers.append((code, data))
    if not receivers:
        msg = "Unified address has no receivers"
        raise ValueError(msg)
    return UnifiedAddress(hrp=hrp, receivers=tuple(receivers))


def is_unified_address(address: str) -> bool:
    """Cheap prefix check; does not validate the checksum."""
    lowered = address.lower()
    return any(lowered.startswith(hrp + "1") for hrp in _KNOWN_HRPS)
