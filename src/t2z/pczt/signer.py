"""Signer roles: sighash extraction and signature insertion."""

from __future__ import annotations

import logging
from dataclasses import replace

from t2z.errors import IndexOutOfRangeError, InvalidSignatureError
from t2z.pczt.document import Pczt, PcztState
from t2z.zcash.keys import (
    COMPACT_SIGNATURE_SIZE,
    private_key_to_public_key,
    sign_sighash,
    verify_compact_signature,
)
from t2z.zcash.sighash import transparent_signature_digest

logger = logging.getLogger(__name__)


def _check_index(state: PcztState, input_index: int) -> None:
    if not 0 <= input_index < len(state.inputs):
        raise IndexOutOfRangeError(input_index, len(state.inputs))


def input_sighash(state: PcztState, input_index: int) -> bytes:
    """ZIP-244 SIGHASH_ALL digest for one input of a document snapshot.

    Raises:
        IndexOutOfRangeError: If *input_index* is not an input of *state*.
        IncompleteDocumentError: If Orchard actions are not yet proved.
    """
    _check_index(state, input_index)
    tx = state.to_transaction(orchard=state.orchard_bundle())
    return transparent_signature_digest(
        tx,
        input_index,
        state.input_amounts,
        state.input_scripts,
        state.inputs[input_index].sighash_type,
    )


def get_sighash(pczt: Pczt, input_index: int) -> bytes:
    """Return the 32-byte digest to sign for *input_index*.  Does not consume.

    Raises:
        HandleConsumedError: If *pczt* is dead.
        IndexOutOfRangeError: If *input_index* is out of range.
        IncompleteDocumentError: If Orchard actions are not yet proved.
    """
    return input_sighash(pczt._peek(), input_index)


def append_signature(pczt: Pczt, input_index: int, signature: bytes) -> Pczt:
    """Insert a compact ``r || s`` signature for *input_index*.

    Always consumes *pczt*, including on failure.

    Raises:
        HandleConsumedError: If *pczt* is dead.
        IndexOutOfRangeError: If *input_index* is out of range.
        InvalidSignatureError: If the signature is malformed, high-S, or does
            not verify against the input's public key.
    """
    state = pczt._take()
    _check_index(state, input_index)
    if len(signature) != COMPACT_SIGNATURE_SIZE:
        msg = f"Signature must be {COMPACT_SIGNATURE_SIZE} bytes, got {len(signature)}"
        raise InvalidSignatureError(msg)
    entry = state.inputs[input_index]
    sighash = input_sighash(state, input_index)
    if not verify_compact_signature(entry.pubkey, sighash, bytes(signature)):
        msg = f"Signature for input {input_index} does not verify"
        raise InvalidSignatureError(msg)

    inputs = list(state.inputs)
    inputs[input_index] = replace(entry, signature=bytes(signature))
    logger.info("Appended signature for input %d", input_index)
    return Pczt(replace(state, inputs=tuple(inputs)))


def sign_input(pczt: Pczt, input_index: int, privkey: bytes) -> Pczt:
    """Sign *input_index* with a raw private key and append the signature.

    For signers that hold the key in process.  External signers use
    :func:`get_sighash` and :func:`append_signature` instead.  Always
    consumes *pczt*, including on failure.

    Raises:
        HandleConsumedError: If *pczt* is dead.
        IndexOutOfRangeError: If *input_index* is out of range.
        InvalidSignatureError: If *privkey* is not the key of the input.
        IncompleteDocumentError: If Orchard actions are not yet proved.
    """
    state = pczt._take()
    _check_index(state, input_index)
    try:
        pubkey = private_key_to_public_key(privkey)
    except ValueError as exc:
        raise InvalidSignatureError(str(exc)) from exc
    if pubkey != state.inputs[input_index].pubkey:
        msg = f"Private key does not control input {input_index}"
        raise InvalidSignatureError(msg)
    signature = sign_sighash(privkey, input_sighash(state, input_index))
    return append_signature(Pczt(state), input_index, signature)
