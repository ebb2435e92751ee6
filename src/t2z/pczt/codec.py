"""PCZT wire format: magic plus compact-size key/value maps.

Layout::

    b"pczt\\xff"
    global map
    one map per transparent input
    one map per transparent output
    one map per Orchard action

Every map is a sequence of ``<keylen><keytype||keydata><valuelen><value>``
entries terminated by a single ``0x00``.  Entries are written sorted by
key bytes and unrecognised entries are carried through untouched, so a
canonical encoding re-serializes to the same bytes.
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Callable
from typing import Any

from t2z.errors import CodecError
from t2z.pczt.document import (
    PCZT_FORMAT_VERSION,
    ActionEntry,
    GlobalFields,
    InputEntry,
    OutputEntry,
    Pczt,
    PcztState,
    Unknown,
)
from t2z.pczt.request import MAX_MONEY, MEMO_SIZE
from t2z.zcash.sighash import SIGHASH_ALL
from t2z.zcash.transaction import (
    SIGNATURE_SIZE,
    TX_VERSION_V5,
    OrchardAction,
    encode_compact_size,
)
from t2z.zcash.unified import ORCHARD_RECEIVER_SIZE

logger = logging.getLogger(__name__)

MAGIC = b"pczt\xff"

# ---------------------------------------------------------------------------
# Key types
# ---------------------------------------------------------------------------

GLOBAL_FORMAT_VERSION = 0x00
GLOBAL_TX_VERSION = 0x01
GLOBAL_VERSION_GROUP_ID = 0x02
GLOBAL_BRANCH_ID = 0x03
GLOBAL_LOCK_TIME = 0x04
GLOBAL_EXPIRY_HEIGHT = 0x05
GLOBAL_INPUT_COUNT = 0x06
GLOBAL_OUTPUT_COUNT = 0x07
GLOBAL_ACTION_COUNT = 0x08
GLOBAL_FEE = 0x09
GLOBAL_NETWORK = 0x0A
GLOBAL_ANCHOR = 0x0B
GLOBAL_ORCHARD_FLAGS = 0x0C
GLOBAL_ZKPROOF = 0x0D
GLOBAL_BINDING_SIG = 0x0E

INPUT_TXID = 0x00
INPUT_INDEX = 0x01
INPUT_SEQUENCE = 0x02
INPUT_VALUE = 0x03
INPUT_SCRIPT = 0x04
INPUT_PUBKEY = 0x05
INPUT_SIGHASH_TYPE = 0x06
INPUT_SIGNATURE = 0x07

OUTPUT_VALUE = 0x00
OUTPUT_SCRIPT = 0x01
OUTPUT_USER_ADDRESS = 0x02

ACTION_RECIPIENT = 0x00
ACTION_VALUE = 0x01
ACTION_MEMO = 0x02
ACTION_USER_ADDRESS = 0x03
ACTION_PROOF = 0x04

_ACTION_PROOF_SIZE = OrchardAction.SIZE + SIGNATURE_SIZE

# ---------------------------------------------------------------------------
# Value encoders / decoders
# ---------------------------------------------------------------------------


def _u8(n: int) -> bytes:
    return struct.pack("<B", n)


def _u32(n: int) -> bytes:
    return struct.pack("<I", n)


def _u64(n: int) -> bytes:
    return struct.pack("<Q", n)


def _int_decoder(fmt: str) -> Callable[[bytes], int]:
    size = struct.calcsize(fmt)

    def decode(value: bytes) -> int:
        if len(value) != size:
            msg = f"expected {size}-byte integer, got {len(value)} bytes"
            raise CodecError(msg)
        return struct.unpack(fmt, value)[0]

    return decode


_read_u8 = _int_decoder("<B")
_read_u32 = _int_decoder("<I")
_read_u64 = _int_decoder("<Q")


def _read_amount(value: bytes) -> int:
    amount = _read_u64(value)
    if amount > MAX_MONEY:
        msg = f"amount {amount} exceeds MAX_MONEY"
        raise CodecError(msg)
    return amount


def _read_sighash_type(value: bytes) -> int:
    hash_type = _read_u8(value)
    if hash_type != SIGHASH_ALL:
        msg = f"unsupported sighash type 0x{hash_type:02x}"
        raise CodecError(msg)
    return hash_type


def _fixed(size: int) -> Callable[[bytes], bytes]:
    def decode(value: bytes) -> bytes:
        if len(value) != size:
            msg = f"expected {size} bytes, got {len(value)}"
            raise CodecError(msg)
        return value

    return decode


def _nonempty(value: bytes) -> bytes:
    if not value:
        msg = "expected non-empty value"
        raise CodecError(msg)
    return value


def _text(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError as exc:
        msg = "expected UTF-8 text"
        raise CodecError(msg) from exc


def _action_proof(value: bytes) -> OrchardAction:
    _fixed(_ACTION_PROOF_SIZE)(value)
    return OrchardAction.from_description(value[: OrchardAction.SIZE], value[OrchardAction.SIZE :])


# ---------------------------------------------------------------------------
# Map writing
# ---------------------------------------------------------------------------


def _write_map(known: dict[int, bytes | None], unknown: Unknown) -> bytes:
    entries = [(bytes([key_type]), value) for key_type, value in known.items() if value is not None]
    entries.extend(unknown)
    entries.sort(key=lambda item: item[0])
    result = b""
    for key, value in entries:
        result += encode_compact_size(len(key)) + key
        result += encode_compact_size(len(value)) + value
    return result + b"\x00"


def _opt(value: Any, encode: Callable[[Any], bytes]) -> bytes | None:
    return None if value is None else encode(value)


def _encode_global(state: PcztState) -> bytes:
    g = state.global_fields
    known: dict[int, bytes | None] = {
        GLOBAL_FORMAT_VERSION: _u32(PCZT_FORMAT_VERSION),
        GLOBAL_TX_VERSION: _u32(g.tx_version),
        GLOBAL_VERSION_GROUP_ID: _u32(g.version_group_id),
        GLOBAL_BRANCH_ID: _u32(g.consensus_branch_id),
        GLOBAL_LOCK_TIME: _u32(g.lock_time),
        GLOBAL_EXPIRY_HEIGHT: _u32(g.expiry_height),
        GLOBAL_INPUT_COUNT: _u32(len(state.inputs)),
        GLOBAL_OUTPUT_COUNT: _u32(len(state.outputs)),
        GLOBAL_ACTION_COUNT: _u32(len(state.actions)),
        GLOBAL_FEE: _u64(g.fee),
        GLOBAL_NETWORK: _u8(1 if g.use_mainnet else 0),
        GLOBAL_ANCHOR: g.anchor,
        GLOBAL_ORCHARD_FLAGS: _u8(g.orchard_flags),
        GLOBAL_ZKPROOF: g.zkproof,
        GLOBAL_BINDING_SIG: g.binding_sig,
    }
    return _write_map(known, g.unknown)


def _encode_input(entry: InputEntry) -> bytes:
    known: dict[int, bytes | None] = {
        INPUT_TXID: entry.txid,
        INPUT_INDEX: _u32(entry.vout),
        INPUT_SEQUENCE: _u32(entry.sequence),
        INPUT_VALUE: _u64(entry.value),
        INPUT_SCRIPT: entry.script_pubkey,
        INPUT_PUBKEY: entry.pubkey,
        INPUT_SIGHASH_TYPE: _u8(entry.sighash_type),
        INPUT_SIGNATURE: entry.signature,
    }
    return _write_map(known, entry.unknown)


def _encode_output(entry: OutputEntry) -> bytes:
    known: dict[int, bytes | None] = {
        OUTPUT_VALUE: _u64(entry.value),
        OUTPUT_SCRIPT: entry.script_pubkey,
        OUTPUT_USER_ADDRESS: _opt(entry.user_address, str.encode),
    }
    return _write_map(known, entry.unknown)


def _encode_action(entry: ActionEntry) -> bytes:
    proof = None
    if entry.proof is not None:
        proof = entry.proof.serialize_description() + entry.proof.spend_auth_sig
    known: dict[int, bytes | None] = {
        ACTION_RECIPIENT: entry.recipient,
        ACTION_VALUE: _u64(entry.value),
        ACTION_MEMO: entry.memo,
        ACTION_USER_ADDRESS: _opt(entry.user_address, str.encode),
        ACTION_PROOF: proof,
    }
    return _write_map(known, entry.unknown)


def encode_state(state: PcztState) -> bytes:
    """Serialize a document snapshot."""
    result = MAGIC + _encode_global(state)
    for inp in state.inputs:
        result += _encode_input(inp)
    for out in state.outputs:
        result += _encode_output(out)
    for action in state.actions:
        result += _encode_action(action)
    return result


def serialize_pczt(pczt: Pczt) -> bytes:
    """Serialize a live handle.  The handle stays usable.

    Raises:
        HandleConsumedError: If the handle is dead.
    """
    return encode_state(pczt._peek())


# ---------------------------------------------------------------------------
# Map reading
# ---------------------------------------------------------------------------


class _Reader:
    def __init__(self, data: bytes, pos: int) -> None:
        self.data = data
        self.pos = pos

    def compact_size(self) -> int:
        data, pos = self.data, self.pos
        if pos >= len(data):
            msg = "truncated compact size"
            raise CodecError(msg)
        first = data[pos]
        width = {0xFD: 2, 0xFE: 4, 0xFF: 8}.get(first, 0)
        if pos + 1 + width > len(data):
            msg = "truncated compact size"
            raise CodecError(msg)
        self.pos = pos + 1 + width
        if width == 0:
            return first
        return int.from_bytes(data[pos + 1 : pos + 1 + width], "little")

    def take(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            msg = f"truncated data: need {n} bytes at offset {self.pos}"
            raise CodecError(msg)
        chunk = self.data[self.pos : self.pos + n]
        self.pos += n
        return chunk

    def read_map(self, what: str) -> tuple[dict[int, bytes], Unknown]:
        known: dict[int, bytes] = {}
        unknown: list[tuple[bytes, bytes]] = []
        seen: set[bytes] = set()
        while True:
            key_len = self.compact_size()
            if key_len == 0:
                break
            key = self.take(key_len)
            value = self.take(self.compact_size())
            if key in seen:
                msg = f"duplicate key {key.hex()} in {what} map"
                raise CodecError(msg)
            seen.add(key)
            if len(key) == 1:
                known[key[0]] = value
            else:
                unknown.append((key, value))
        return known, tuple(unknown)


class _Fields:
    """Known entries of one map, consumed field by field."""

    def __init__(self, known: dict[int, bytes], unknown: Unknown, what: str, recognised: set[int]) -> None:
        self.what = what
        self.known = {k: v for k, v in known.items() if k in recognised}
        extra = tuple((bytes([k]), v) for k, v in known.items() if k not in recognised)
        self.unknown = tuple(sorted(unknown + extra))

    def required(self, key: int, decode: Callable[[bytes], Any]) -> Any:
        if key not in self.known:
            msg = f"{self.what} map is missing required key {key:#04x}"
            raise CodecError(msg)
        return self._decode(key, decode)

    def optional(self, key: int, decode: Callable[[bytes], Any]) -> Any:
        if key not in self.known:
            return None
        return self._decode(key, decode)

    def _decode(self, key: int, decode: Callable[[bytes], Any]) -> Any:
        try:
            return decode(self.known[key])
        except CodecError as exc:
            msg = f"{self.what} key {key:#04x}: {exc.message}"
            raise CodecError(msg) from exc
        except ValueError as exc:
            msg = f"{self.what} key {key:#04x}: {exc}"
            raise CodecError(msg) from exc


_GLOBAL_KEYS = set(range(GLOBAL_FORMAT_VERSION, GLOBAL_BINDING_SIG + 1))
_INPUT_KEYS = set(range(INPUT_TXID, INPUT_SIGNATURE + 1))
_OUTPUT_KEYS = {OUTPUT_VALUE, OUTPUT_SCRIPT, OUTPUT_USER_ADDRESS}
_ACTION_KEYS = {ACTION_RECIPIENT, ACTION_VALUE, ACTION_MEMO, ACTION_USER_ADDRESS, ACTION_PROOF}


def decode_state(data: bytes) -> PcztState:
    """Parse bytes into a document snapshot.

    Raises:
        CodecError: On any malformed input.
    """
    if data[: len(MAGIC)] != MAGIC:
        msg = "bad magic: not a PCZT"
        raise CodecError(msg)
    reader = _Reader(data, len(MAGIC))

    g = _Fields(*reader.read_map("global"), "global", _GLOBAL_KEYS)
    version = g.required(GLOBAL_FORMAT_VERSION, _read_u32)
    if version != PCZT_FORMAT_VERSION:
        msg = f"unsupported PCZT format version {version}"
        raise CodecError(msg)
    tx_version = g.required(GLOBAL_TX_VERSION, _read_u32)
    if tx_version != TX_VERSION_V5:
        msg = f"unsupported transaction version {tx_version}"
        raise CodecError(msg)
    n_inputs = g.required(GLOBAL_INPUT_COUNT, _read_u32)
    n_outputs = g.required(GLOBAL_OUTPUT_COUNT, _read_u32)
    n_actions = g.required(GLOBAL_ACTION_COUNT, _read_u32)
    network = g.required(GLOBAL_NETWORK, _read_u8)
    if network not in (0, 1):
        msg = f"unknown network flag {network}"
        raise CodecError(msg)
    global_fields = GlobalFields(
        consensus_branch_id=g.required(GLOBAL_BRANCH_ID, _read_u32),
        expiry_height=g.required(GLOBAL_EXPIRY_HEIGHT, _read_u32),
        use_mainnet=network == 1,
        fee=g.required(GLOBAL_FEE, _read_amount),
        tx_version=tx_version,
        version_group_id=g.required(GLOBAL_VERSION_GROUP_ID, _read_u32),
        lock_time=g.required(GLOBAL_LOCK_TIME, _read_u32),
        orchard_flags=g.required(GLOBAL_ORCHARD_FLAGS, _read_u8),
        anchor=g.optional(GLOBAL_ANCHOR, _fixed(32)),
        zkproof=g.optional(GLOBAL_ZKPROOF, _nonempty),
        binding_sig=g.optional(GLOBAL_BINDING_SIG, _fixed(SIGNATURE_SIZE)),
        unknown=g.unknown,
    )

    inputs = []
    for i in range(n_inputs):
        f = _Fields(*reader.read_map(f"input {i}"), f"input {i}", _INPUT_KEYS)
        inputs.append(
            InputEntry(
                txid=f.required(INPUT_TXID, _fixed(32)),
                vout=f.required(INPUT_INDEX, _read_u32),
                value=f.required(INPUT_VALUE, _read_amount),
                script_pubkey=f.required(INPUT_SCRIPT, _nonempty),
                pubkey=f.required(INPUT_PUBKEY, _fixed(33)),
                sequence=f.required(INPUT_SEQUENCE, _read_u32),
                sighash_type=f.required(INPUT_SIGHASH_TYPE, _read_sighash_type),
                signature=f.optional(INPUT_SIGNATURE, _fixed(SIGNATURE_SIZE)),
                unknown=f.unknown,
            )
        )

    outputs = []
    for i in range(n_outputs):
        f = _Fields(*reader.read_map(f"output {i}"), f"output {i}", _OUTPUT_KEYS)
        outputs.append(
            OutputEntry(
                value=f.required(OUTPUT_VALUE, _read_amount),
                script_pubkey=f.required(OUTPUT_SCRIPT, _nonempty),
                user_address=f.optional(OUTPUT_USER_ADDRESS, _text),
                unknown=f.unknown,
            )
        )

    actions = []
    for i in range(n_actions):
        f = _Fields(*reader.read_map(f"action {i}"), f"action {i}", _ACTION_KEYS)
        actions.append(
            ActionEntry(
                recipient=f.optional(ACTION_RECIPIENT, _fixed(ORCHARD_RECEIVER_SIZE)),
                value=f.required(ACTION_VALUE, _read_amount),
                memo=f.required(ACTION_MEMO, _fixed(MEMO_SIZE)),
                user_address=f.optional(ACTION_USER_ADDRESS, _text),
                proof=f.optional(ACTION_PROOF, _action_proof),
                unknown=f.unknown,
            )
        )

    if reader.pos != len(data):
        msg = f"{len(data) - reader.pos} trailing bytes after PCZT"
        raise CodecError(msg)
    return PcztState(
        global_fields=global_fields,
        inputs=tuple(inputs),
        outputs=tuple(outputs),
        actions=tuple(actions),
    )


def parse_pczt(data: bytes) -> Pczt:
    """Parse bytes into a fresh, independent handle.

    Raises:
        CodecError: On any malformed input.
    """
    state = decode_state(data)
    logger.debug(
        "Parsed PCZT: %d inputs, %d outputs, %d actions",
        len(state.inputs),
        len(state.outputs),
        len(state.actions),
    )
    return Pczt(state)
