"""Spend finalizer and transaction extractor."""

from __future__ import annotations

import logging

from t2z.errors import BalanceError, IncompleteDocumentError, InvalidSignatureError
from t2z.pczt.document import Pczt, PcztState
from t2z.pczt.fees import calculate_fee
from t2z.pczt.signer import input_sighash
from t2z.zcash.keys import compact_to_der, verify_compact_signature
from t2z.zcash.script import p2pkh_unlock_script
from t2z.zcash.sighash import txid_digest
from t2z.zcash.transaction import Transaction

logger = logging.getLogger(__name__)


def _check_balance(state: PcztState) -> None:
    fee = state.global_fields.fee
    total_in = state.total_input_value
    total_out = state.total_output_value
    if total_in != total_out + fee:
        msg = f"Inputs ({total_in}) != outputs ({total_out}) + fee ({fee})"
        raise BalanceError(msg)
    payments = sum(1 for a in state.actions if not a.is_dummy)
    minimum = calculate_fee(len(state.inputs), len(state.outputs), payments)
    if fee < minimum:
        msg = f"Fee {fee} is below the conventional fee {minimum}"
        raise BalanceError(msg)


def finalize_and_extract(pczt: Pczt) -> bytes:
    """Finalize every input and extract the raw v5 transaction.

    Always consumes *pczt*, including on failure.

    Raises:
        HandleConsumedError: If *pczt* is dead.
        IncompleteDocumentError: If an input is unsigned or the Orchard
            bundle is not fully proved.
        InvalidSignatureError: If a stored signature does not verify.
        BalanceError: If value is not conserved or the fee is too low.
    """
    state = pczt._take()
    unsigned = [i for i, inp in enumerate(state.inputs) if not inp.is_signed]
    if unsigned:
        msg = f"Inputs {unsigned} are not signed"
        raise IncompleteDocumentError(msg)
    orchard = state.orchard_bundle()
    _check_balance(state)

    script_sigs = []
    for i, inp in enumerate(state.inputs):
        sighash = input_sighash(state, i)
        if not verify_compact_signature(inp.pubkey, sighash, inp.signature):  # type: ignore[arg-type]
            msg = f"Signature for input {i} does not verify"
            raise InvalidSignatureError(msg)
        der = compact_to_der(inp.signature) + bytes([inp.sighash_type])  # type: ignore[arg-type]
        script_sigs.append(p2pkh_unlock_script(der, inp.pubkey))

    tx = state.to_transaction(orchard=orchard, script_sigs=script_sigs)
    raw = tx.serialize()
    logger.info("Finalized transaction %s (%d bytes)", txid_digest(tx)[::-1].hex(), len(raw))
    return raw


def transaction_id(tx_bytes: bytes) -> str:
    """ZIP-244 txid of a raw v5 transaction, in display (reversed) hex.

    Raises:
        ValueError: If *tx_bytes* is not a v5 transaction.
    """
    return txid_digest(Transaction.from_bytes(tx_bytes))[::-1].hex()
