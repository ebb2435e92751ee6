"""Transparent scripts: P2PKH, P2SH, push data, script type detection.

Only the standard forms the protocol handles are built here:
- P2PKH lock and unlock scripts
- P2SH lock scripts (payment destinations only, never spent)
- Script type classification for input validation
"""

from __future__ import annotations

import enum
import struct

from t2z.utils.crypto import hash160

HASH_SIZE = 20

# ---------------------------------------------------------------------------
# Opcodes
# ---------------------------------------------------------------------------


class OpCode(int, enum.Enum):
    """Opcodes used by the standard transparent scripts."""

    OP_0 = 0x00
    OP_PUSHDATA1 = 0x4C
    OP_PUSHDATA2 = 0x4D
    OP_PUSHDATA4 = 0x4E
    OP_RETURN = 0x6A
    OP_DUP = 0x76
    OP_EQUAL = 0x87
    OP_EQUALVERIFY = 0x88
    OP_HASH160 = 0xA9
    OP_CHECKSIG = 0xAC


class ScriptType(enum.StrEnum):
    """Known script types."""

    P2PKH = "pubkeyhash"
    P2SH = "scripthash"
    NULL_DATA = "nulldata"
    UNKNOWN = "unknown"


# Fixed bytes around the 20-byte hash of each standard template.
_P2PKH_HEAD = bytes([OpCode.OP_DUP, OpCode.OP_HASH160, HASH_SIZE])
_P2PKH_TAIL = bytes([OpCode.OP_EQUALVERIFY, OpCode.OP_CHECKSIG])
_P2SH_HEAD = bytes([OpCode.OP_HASH160, HASH_SIZE])
_P2SH_TAIL = bytes([OpCode.OP_EQUAL])

# ---------------------------------------------------------------------------
# Data push helpers
# ---------------------------------------------------------------------------


def push_data(data: bytes) -> bytes:
    """Encode a minimal data push of *data*."""
    n = len(data)
    if n == 0:
        prefix = bytes([OpCode.OP_0])
    elif n < OpCode.OP_PUSHDATA1:
        prefix = bytes([n])
    elif n <= 0xFF:
        prefix = bytes([OpCode.OP_PUSHDATA1, n])
    elif n <= 0xFFFF:
        prefix = bytes([OpCode.OP_PUSHDATA2]) + struct.pack("<H", n)
    else:
        prefix = bytes([OpCode.OP_PUSHDATA4]) + struct.pack("<I", n)
    return prefix + data


def _check_hash(value: bytes, name: str) -> None:
    if len(value) != HASH_SIZE:
        msg = f"{name} must be {HASH_SIZE} bytes, got {len(value)}"
        raise ValueError(msg)


# ---------------------------------------------------------------------------
# Locking scripts
# ---------------------------------------------------------------------------


def p2pkh_lock_script(pubkey_hash: bytes) -> bytes:
    """Build a P2PKH locking script.

    OP_DUP OP_HASH160 <20 bytes> OP_EQUALVERIFY OP_CHECKSIG

    Raises:
        ValueError: If *pubkey_hash* is not 20 bytes.
    """
    _check_hash(pubkey_hash, "pubkey_hash")
    return _P2PKH_HEAD + pubkey_hash + _P2PKH_TAIL


def p2pkh_lock_script_from_pubkey(pubkey: bytes) -> bytes:
    return p2pkh_lock_script(hash160(pubkey))


def p2sh_lock_script(script_hash: bytes) -> bytes:
    """Build a P2SH locking script: OP_HASH160 <20 bytes> OP_EQUAL."""
    _check_hash(script_hash, "script_hash")
    return _P2SH_HEAD + script_hash + _P2SH_TAIL


def p2pkh_unlock_script(signature: bytes, pubkey: bytes) -> bytes:
    """Build a P2PKH scriptSig: ``<sig> <pubkey>``.

    Args:
        signature: DER-encoded signature with the sighash type byte appended.
        pubkey: 33-byte compressed public key.
    """
    return push_data(signature) + push_data(pubkey)


# ---------------------------------------------------------------------------
# Script type detection
# ---------------------------------------------------------------------------


def _matches(script: bytes, head: bytes, tail: bytes) -> bool:
    return (
        len(script) == len(head) + HASH_SIZE + len(tail)
        and script.startswith(head)
        and script.endswith(tail)
    )


def detect_script_type(script: bytes) -> ScriptType:
    """Classify a locking script."""
    if _matches(script, _P2PKH_HEAD, _P2PKH_TAIL):
        return ScriptType.P2PKH
    if _matches(script, _P2SH_HEAD, _P2SH_TAIL):
        return ScriptType.P2SH
    if script[:1] == bytes([OpCode.OP_RETURN]):
        return ScriptType.NULL_DATA
    return ScriptType.UNKNOWN


def extract_pubkey_hash(script: bytes) -> bytes | None:
    """The 20-byte key hash of a P2PKH script, or None for any other script."""
    if detect_script_type(script) is not ScriptType.P2PKH:
        return None
    return script[len(_P2PKH_HEAD) : len(_P2PKH_HEAD) + HASH_SIZE]
