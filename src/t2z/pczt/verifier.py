"""Verifier role: check a PCZT against the trusted request before signing.

A signer that did not build the document itself must confirm that every
output is one it asked for.  Payments are matched by destination and
amount (and memo for Orchard); expected change is matched by script and
amount; anything left over is an unexpected output.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from t2z.errors import (
    AmountMismatchError,
    MemoMismatchError,
    RecipientMismatchError,
    UnexpectedOutputError,
)
from t2z.pczt.document import ActionEntry, OutputEntry, Pczt
from t2z.pczt.inputs import TransparentOutput
from t2z.pczt.request import Payment, TransactionRequest, encode_memo
from t2z.zcash.address import Pool

logger = logging.getLogger(__name__)


def _match_transparent(
    remaining: list[OutputEntry], script: bytes, amount: int, what: str
) -> None:
    candidates = [out for out in remaining if out.script_pubkey == script]
    if not candidates:
        msg = f"No output pays {what}"
        raise RecipientMismatchError(msg)
    for out in candidates:
        if out.value == amount:
            remaining.remove(out)
            return
    found = ", ".join(str(out.value) for out in candidates)
    msg = f"Output to {what} carries {found} zatoshis, expected {amount}"
    raise AmountMismatchError(msg)


def _match_orchard(remaining: list[ActionEntry], payment: Payment, receiver: bytes) -> None:
    candidates = [a for a in remaining if a.recipient == receiver]
    if not candidates:
        msg = f"No Orchard action pays {payment.address}"
        raise RecipientMismatchError(msg)
    by_amount = [a for a in candidates if a.value == payment.amount]
    if not by_amount:
        found = ", ".join(str(a.value) for a in candidates)
        msg = f"Orchard action to {payment.address} carries {found} zatoshis, expected {payment.amount}"
        raise AmountMismatchError(msg)
    memo = encode_memo(payment.memo)
    for action in by_amount:
        if action.memo == memo:
            remaining.remove(action)
            return
    msg = f"Orchard action to {payment.address} has a different memo"
    raise MemoMismatchError(msg)


def verify_before_signing(
    pczt: Pczt,
    request: TransactionRequest,
    expected_change: Sequence[TransparentOutput] = (),
) -> None:
    """Check that *pczt* pays exactly *request* plus *expected_change*.

    Does not consume the handle and has no side effects.

    Raises:
        HandleConsumedError: If *pczt* is dead.
        RecipientMismatchError: A payment's destination is missing.
        AmountMismatchError: A destination receives the wrong amount.
        MemoMismatchError: An Orchard payment carries the wrong memo.
        UnexpectedOutputError: The document pays something not requested.
    """
    state = pczt._peek()
    outputs = list(state.outputs)
    actions = [a for a in state.actions if not a.is_dummy]

    for payment in request.payments:
        recipient = payment.resolve()
        if recipient.pool is Pool.ORCHARD:
            _match_orchard(actions, payment, recipient.orchard_receiver)  # type: ignore[arg-type]
        else:
            _match_transparent(outputs, recipient.script_pubkey, payment.amount, payment.address)  # type: ignore[arg-type]

    for change in expected_change:
        _match_transparent(outputs, change.script_pubkey, change.value, f"change script {change.script_pubkey.hex()}")

    if outputs:
        out = outputs[0]
        msg = f"Unexpected transparent output of {out.value} zatoshis to script {out.script_pubkey.hex()}"
        raise UnexpectedOutputError(msg)
    if actions:
        msg = f"Unexpected Orchard action of {actions[0].value} zatoshis"
        raise UnexpectedOutputError(msg)
    for action in state.actions:
        if action.is_dummy and action.value != 0:
            msg = f"Padding action carries {action.value} zatoshis"
            raise UnexpectedOutputError(msg)
    logger.debug("PCZT verified against %d payments", len(request.payments))
