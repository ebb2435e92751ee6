"""Transaction serialisation: Zcash v5 transparent and Orchard bundles.

Provides pure-Python v5 transaction serialization and deserialization:
- CompactSize encoding/decoding
- TxInput / TxOutput data classes
- OrchardAction / OrchardBundle for the shielded part
- Transaction class with serialize / deserialize
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from io import BytesIO

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TX_VERSION_V5 = 5
OVERWINTERED_FLAG = 1 << 31
V5_VERSION_GROUP_ID = 0x26A7270A

DEFAULT_SEQUENCE = 0xFFFFFFFF

ENC_CIPHERTEXT_SIZE = 580
OUT_CIPHERTEXT_SIZE = 80
SIGNATURE_SIZE = 64

# Orchard bundle flags
FLAG_SPENDS_ENABLED = 0x01
FLAG_OUTPUTS_ENABLED = 0x02

# ---------------------------------------------------------------------------
# CompactSize encoding / decoding
# ---------------------------------------------------------------------------


def encode_compact_size(n: int) -> bytes:
    """Encode an integer as a CompactSize."""
    if n < 0:
        msg = f"CompactSize cannot encode negative value {n}"
        raise ValueError(msg)
    if n < 0xFD:
        return struct.pack("<B", n)
    if n <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", n)
    if n <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", n)
    return b"\xff" + struct.pack("<Q", n)


def _read_exact(stream: BytesIO, n: int, what: str) -> bytes:
    data = stream.read(n)
    if len(data) != n:
        msg = f"Unexpected end of stream reading {what}"
        raise ValueError(msg)
    return data


def read_compact_size(stream: BytesIO) -> int:
    """Read a CompactSize from a byte stream."""
    n = _read_exact(stream, 1, "compact size")[0]
    if n < 0xFD:
        return n
    if n == 0xFD:
        return struct.unpack("<H", _read_exact(stream, 2, "compact size"))[0]
    if n == 0xFE:
        return struct.unpack("<I", _read_exact(stream, 4, "compact size"))[0]
    return struct.unpack("<Q", _read_exact(stream, 8, "compact size"))[0]


# ---------------------------------------------------------------------------
# Transparent
# ---------------------------------------------------------------------------


@dataclass
class TxInput:
    """A transparent input.

    Attributes:
        prev_tx_id: 32-byte hash of the previous transaction (internal byte order).
        prev_tx_out_index: Index of the output in the previous transaction.
        script_sig: Unlocking script (scriptSig).
        sequence: Sequence number (default 0xFFFFFFFF).
    """

    prev_tx_id: bytes
    prev_tx_out_index: int
    script_sig: bytes = b""
    sequence: int = DEFAULT_SEQUENCE

    @property
    def prev_tx_id_hex(self) -> str:
        """Previous transaction ID in display (reversed) hex."""
        return self.prev_tx_id[::-1].hex()

    def outpoint(self) -> bytes:
        return self.prev_tx_id + struct.pack("<I", self.prev_tx_out_index)

    def serialize(self) -> bytes:
        result = self.outpoint()
        result += encode_compact_size(len(self.script_sig))
        result += self.script_sig
        result += struct.pack("<I", self.sequence)
        return result

    @classmethod
    def deserialize(cls, stream: BytesIO) -> TxInput:
        prev_tx_id = _read_exact(stream, 32, "prev_tx_id")
        prev_tx_out_index = struct.unpack("<I", _read_exact(stream, 4, "prevout index"))[0]
        script_len = read_compact_size(stream)
        script_sig = _read_exact(stream, script_len, "script_sig")
        sequence = struct.unpack("<I", _read_exact(stream, 4, "sequence"))[0]
        return cls(
            prev_tx_id=prev_tx_id,
            prev_tx_out_index=prev_tx_out_index,
            script_sig=script_sig,
            sequence=sequence,
        )


@dataclass
class TxOutput:
    """A transparent output.

    Attributes:
        value: Output value in zatoshis.
        script_pubkey: Locking script (scriptPubKey).
    """

    value: int
    script_pubkey: bytes

    def serialize(self) -> bytes:
        result = struct.pack("<q", self.value)
        result += encode_compact_size(len(self.script_pubkey))
        result += self.script_pubkey
        return result

    @classmethod
    def deserialize(cls, stream: BytesIO) -> TxOutput:
        value = struct.unpack("<q", _read_exact(stream, 8, "output value"))[0]
        script_len = read_compact_size(stream)
        script_pubkey = _read_exact(stream, script_len, "script_pubkey")
        return cls(value=value, script_pubkey=script_pubkey)


# ---------------------------------------------------------------------------
# Orchard
# ---------------------------------------------------------------------------


@dataclass
class OrchardAction:
    """The effecting data of one Orchard action plus its spend authorization.

    Attributes:
        cv: Value commitment.
        nullifier: Nullifier of the (possibly dummy) spent note.
        rk: Randomized spend validating key.
        cmx: Extracted note commitment of the new note.
        ephemeral_key: Ephemeral public key for note encryption.
        enc_ciphertext: 580-byte encrypted note plaintext.
        out_ciphertext: 80-byte outgoing ciphertext.
        spend_auth_sig: 64-byte RedPallas spend authorization signature.
    """

    cv: bytes
    nullifier: bytes
    rk: bytes
    cmx: bytes
    ephemeral_key: bytes
    enc_ciphertext: bytes
    out_ciphertext: bytes
    spend_auth_sig: bytes = b"\x00" * SIGNATURE_SIZE

    SIZE = 32 * 5 + ENC_CIPHERTEXT_SIZE + OUT_CIPHERTEXT_SIZE

    def __post_init__(self) -> None:
        for name in ("cv", "nullifier", "rk", "cmx", "ephemeral_key"):
            if len(getattr(self, name)) != 32:
                msg = f"Orchard action {name} must be 32 bytes"
                raise ValueError(msg)
        if len(self.enc_ciphertext) != ENC_CIPHERTEXT_SIZE:
            msg = f"enc_ciphertext must be {ENC_CIPHERTEXT_SIZE} bytes"
            raise ValueError(msg)
        if len(self.out_ciphertext) != OUT_CIPHERTEXT_SIZE:
            msg = f"out_ciphertext must be {OUT_CIPHERTEXT_SIZE} bytes"
            raise ValueError(msg)
        if len(self.spend_auth_sig) != SIGNATURE_SIZE:
            msg = f"spend_auth_sig must be {SIGNATURE_SIZE} bytes"
            raise ValueError(msg)

    def serialize_description(self) -> bytes:
        """Serialize the action description (without its signature)."""
        return (
            self.cv
            + self.nullifier
            + self.rk
            + self.cmx
            + self.ephemeral_key
            + self.enc_ciphertext
            + self.out_ciphertext
        )

    @classmethod
    def deserialize_description(cls, stream: BytesIO) -> OrchardAction:
        raw = _read_exact(stream, cls.SIZE, "Orchard action")
        return cls.from_description(raw)

    @classmethod
    def from_description(cls, raw: bytes, spend_auth_sig: bytes | None = None) -> OrchardAction:
        if len(raw) != cls.SIZE:
            msg = f"Orchard action description must be {cls.SIZE} bytes, got {len(raw)}"
            raise ValueError(msg)
        enc_end = 160 + ENC_CIPHERTEXT_SIZE
        return cls(
            cv=raw[0:32],
            nullifier=raw[32:64],
            rk=raw[64:96],
            cmx=raw[96:128],
            ephemeral_key=raw[128:160],
            enc_ciphertext=raw[160:enc_end],
            out_ciphertext=raw[enc_end:],
            spend_auth_sig=spend_auth_sig if spend_auth_sig is not None else b"\x00" * SIGNATURE_SIZE,
        )


@dataclass
class OrchardBundle:
    """An authorized Orchard bundle.

    Attributes:
        actions: Non-empty list of actions.
        flags: Spends/outputs enabled bits.
        value_balance: Net value leaving the Orchard pool (negative when shielding).
        anchor: 32-byte note commitment tree root.
        proof: Aggregated Halo 2 proof bytes.
        binding_sig: 64-byte binding signature.
    """

    actions: list[OrchardAction]
    flags: int
    value_balance: int
    anchor: bytes
    proof: bytes
    binding_sig: bytes

    def serialize(self) -> bytes:
        result = encode_compact_size(len(self.actions))
        for action in self.actions:
            result += action.serialize_description()
        result += struct.pack("<B", self.flags)
        result += struct.pack("<q", self.value_balance)
        result += self.anchor
        result += encode_compact_size(len(self.proof))
        result += self.proof
        for action in self.actions:
            result += action.spend_auth_sig
        result += self.binding_sig
        return result

    @classmethod
    def deserialize(cls, stream: BytesIO) -> OrchardBundle | None:
        """Read the Orchard part; returns None when there are no actions."""
        n_actions = read_compact_size(stream)
        if n_actions == 0:
            return None
        actions = [OrchardAction.deserialize_description(stream) for _ in range(n_actions)]
        flags = _read_exact(stream, 1, "Orchard flags")[0]
        value_balance = struct.unpack("<q", _read_exact(stream, 8, "Orchard value balance"))[0]
        anchor = _read_exact(stream, 32, "Orchard anchor")
        proof = _read_exact(stream, read_compact_size(stream), "Orchard proof")
        for action in actions:
            action.spend_auth_sig = _read_exact(stream, SIGNATURE_SIZE, "spend auth signature")
        binding_sig = _read_exact(stream, SIGNATURE_SIZE, "binding signature")
        return cls(
            actions=actions,
            flags=flags,
            value_balance=value_balance,
            anchor=anchor,
            proof=proof,
            binding_sig=binding_sig,
        )


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------


@dataclass
class Transaction:
    """A Zcash v5 transaction (no Sapling bundle).

    Attributes:
        consensus_branch_id: Branch ID the transaction commits to.
        lock_time: Transaction lock time.
        expiry_height: Height after which the transaction is invalid (0 = never).
        inputs: Transparent inputs.
        outputs: Transparent outputs.
        orchard: Orchard bundle, or None.
        version_group_id: Version group ID (v5 by default).
    """

    consensus_branch_id: int
    lock_time: int = 0
    expiry_height: int = 0
    inputs: list[TxInput] = field(default_factory=list)
    outputs: list[TxOutput] = field(default_factory=list)
    orchard: OrchardBundle | None = None
    version_group_id: int = V5_VERSION_GROUP_ID

    @property
    def header(self) -> int:
        return TX_VERSION_V5 | OVERWINTERED_FLAG

    def serialize_header(self) -> bytes:
        return struct.pack(
            "<IIIII",
            self.header,
            self.version_group_id,
            self.consensus_branch_id,
            self.lock_time,
            self.expiry_height,
        )

    def serialize(self) -> bytes:
        """Serialize the transaction to raw bytes."""
        result = self.serialize_header()
        result += encode_compact_size(len(self.inputs))
        for inp in self.inputs:
            result += inp.serialize()
        result += encode_compact_size(len(self.outputs))
        for out in self.outputs:
            result += out.serialize()
        # Sapling: no spends, no outputs
        result += encode_compact_size(0) + encode_compact_size(0)
        if self.orchard is None:
            result += encode_compact_size(0)
        else:
            result += self.orchard.serialize()
        return result

    def to_hex(self) -> str:
        return self.serialize().hex()

    @classmethod
    def deserialize(cls, stream: BytesIO) -> Transaction:
        """Deserialize a v5 transaction from a byte stream.

        Raises:
            ValueError: If the header is not v5 or a Sapling bundle is present.
        """
        header, vgid, branch_id, lock_time, expiry = struct.unpack(
            "<IIIII", _read_exact(stream, 20, "transaction header")
        )
        if header != TX_VERSION_V5 | OVERWINTERED_FLAG or vgid != V5_VERSION_GROUP_ID:
            msg = f"Not a v5 transaction (header {header:#x}, group {vgid:#x})"
            raise ValueError(msg)
        n_inputs = read_compact_size(stream)
        inputs = [TxInput.deserialize(stream) for _ in range(n_inputs)]
        n_outputs = read_compact_size(stream)
        outputs = [TxOutput.deserialize(stream) for _ in range(n_outputs)]
        if read_compact_size(stream) != 0 or read_compact_size(stream) != 0:
            msg = "Sapling bundles are not supported"
            raise ValueError(msg)
        orchard = OrchardBundle.deserialize(stream)
        return cls(
            consensus_branch_id=branch_id,
            lock_time=lock_time,
            expiry_height=expiry,
            inputs=inputs,
            outputs=outputs,
            orchard=orchard,
            version_group_id=vgid,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> Transaction:
        """Deserialize a transaction, rejecting trailing bytes."""
        stream = BytesIO(data)
        tx = cls.deserialize(stream)
        if stream.read(1):
            msg = "Trailing bytes after transaction"
            raise ValueError(msg)
        return tx

    @classmethod
    def from_hex(cls, hex_str: str) -> Transaction:
        return cls.from_bytes(bytes.fromhex(hex_str))

    @property
    def size(self) -> int:
        return len(self.serialize())
