"""ZIP-244 transaction identifiers and signature digests.

Every digest is a personalised BLAKE2b-256 over the transaction's parts,
so a signature commits to the header (including the consensus branch ID),
all transparent inputs and outputs, and the Orchard effecting data.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence

from t2z.utils.crypto import blake2b_256
from t2z.zcash.transaction import OrchardBundle, Transaction, encode_compact_size

SIGHASH_ALL = 0x01

_TX_HASH_PERSONAL = b"ZcashTxHash_"


def _header_digest(tx: Transaction) -> bytes:
    return blake2b_256(tx.serialize_header(), b"ZTxIdHeadersHash")


def _prevouts_digest(tx: Transaction) -> bytes:
    return blake2b_256(b"".join(inp.outpoint() for inp in tx.inputs), b"ZTxIdPrevoutHash")


def _sequence_digest(tx: Transaction) -> bytes:
    data = b"".join(struct.pack("<I", inp.sequence) for inp in tx.inputs)
    return blake2b_256(data, b"ZTxIdSequencHash")


def _outputs_digest(tx: Transaction) -> bytes:
    return blake2b_256(b"".join(out.serialize() for out in tx.outputs), b"ZTxIdOutputsHash")


def _transparent_digest(tx: Transaction) -> bytes:
    if not tx.inputs and not tx.outputs:
        return blake2b_256(b"", b"ZTxIdTranspaHash")
    return blake2b_256(
        _prevouts_digest(tx) + _sequence_digest(tx) + _outputs_digest(tx),
        b"ZTxIdTranspaHash",
    )


def _sapling_digest() -> bytes:
    return blake2b_256(b"", b"ZTxIdSaplingHash")


def orchard_digest(bundle: OrchardBundle | None) -> bytes:
    """Digest of the Orchard effecting data (proof and signatures excluded)."""
    if bundle is None or not bundle.actions:
        return blake2b_256(b"", b"ZTxIdOrchardHash")
    compact = b""
    memos = b""
    noncompact = b""
    for action in bundle.actions:
        enc = action.enc_ciphertext
        compact += action.nullifier + action.cmx + action.ephemeral_key + enc[:52]
        memos += enc[52:564]
        noncompact += action.cv + action.rk + enc[564:] + action.out_ciphertext
    data = (
        blake2b_256(compact, b"ZTxIdOrcActCHash")
        + blake2b_256(memos, b"ZTxIdOrcActMHash")
        + blake2b_256(noncompact, b"ZTxIdOrcActNHash")
        + struct.pack("<B", bundle.flags)
        + struct.pack("<q", bundle.value_balance)
        + bundle.anchor
    )
    return blake2b_256(data, b"ZTxIdOrchardHash")


def _root(tx: Transaction, transparent: bytes) -> bytes:
    personal = _TX_HASH_PERSONAL + struct.pack("<I", tx.consensus_branch_id)
    data = _header_digest(tx) + transparent + _sapling_digest() + orchard_digest(tx.orchard)
    return blake2b_256(data, personal)


def txid_digest(tx: Transaction) -> bytes:
    """ZIP-244 transaction identifier (internal byte order)."""
    return _root(tx, _transparent_digest(tx))


def _transparent_sig_digest(
    tx: Transaction,
    amounts: Sequence[int],
    script_pubkeys: Sequence[bytes],
    txin: bytes,
    hash_type: int,
) -> bytes:
    if not tx.inputs:
        return _transparent_digest(tx)
    if len(amounts) != len(tx.inputs) or len(script_pubkeys) != len(tx.inputs):
        msg = "amounts and script_pubkeys must cover every input"
        raise ValueError(msg)
    amounts_digest = blake2b_256(
        b"".join(struct.pack("<q", amount) for amount in amounts), b"ZTxTrAmountsHash"
    )
    scripts_digest = blake2b_256(
        b"".join(encode_compact_size(len(s)) + s for s in script_pubkeys), b"ZTxTrScriptsHash"
    )
    data = (
        struct.pack("<B", hash_type)
        + _prevouts_digest(tx)
        + amounts_digest
        + scripts_digest
        + _sequence_digest(tx)
        + _outputs_digest(tx)
        + blake2b_256(txin, b"Zcash___TxInHash")
    )
    return blake2b_256(data, b"ZTxIdTranspaHash")


def transparent_signature_digest(
    tx: Transaction,
    input_index: int,
    amounts: Sequence[int],
    script_pubkeys: Sequence[bytes],
    hash_type: int = SIGHASH_ALL,
) -> bytes:
    """Signature digest for transparent input *input_index*.

    Args:
        tx: The transaction being signed (scriptSigs are ignored).
        input_index: Which input the signature is for.
        amounts: Value of every input's previous output.
        script_pubkeys: Locking script of every input's previous output.
        hash_type: Only SIGHASH_ALL is supported.

    Raises:
        ValueError: On an unsupported hash type or bad index.
    """
    if hash_type != SIGHASH_ALL:
        msg = f"Unsupported sighash type {hash_type:#x}"
        raise ValueError(msg)
    if not 0 <= input_index < len(tx.inputs):
        msg = f"input index {input_index} out of range"
        raise ValueError(msg)
    inp = tx.inputs[input_index]
    txin = (
        inp.outpoint()
        + struct.pack("<q", amounts[input_index])
        + encode_compact_size(len(script_pubkeys[input_index]))
        + script_pubkeys[input_index]
        + struct.pack("<I", inp.sequence)
    )
    return _root(tx, _transparent_sig_digest(tx, amounts, script_pubkeys, txin, hash_type))


def shielded_signature_digest(
    tx: Transaction,
    amounts: Sequence[int],
    script_pubkeys: Sequence[bytes],
) -> bytes:
    """Digest signed by the Orchard binding and spend authorization signatures."""
    return _root(tx, _transparent_sig_digest(tx, amounts, script_pubkeys, b"", SIGHASH_ALL))
