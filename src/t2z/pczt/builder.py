"""Proposer role: turn spendable inputs and a payment request into a PCZT."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from t2z.config.settings import ProtocolConfig
from t2z.errors import CodecError, InsufficientFundsError, InvalidRequestError
from t2z.pczt.document import ActionEntry, GlobalFields, InputEntry, OutputEntry, Pczt, PcztState
from t2z.pczt.fees import calculate_fee
from t2z.pczt.inputs import TransparentInput, parse_transparent_inputs
from t2z.pczt.request import EMPTY_MEMO, MAX_MONEY, TransactionRequest, encode_memo
from t2z.utils.crypto import hash160
from t2z.zcash.address import Pool, decode_transparent_address
from t2z.zcash.consensus import (
    NU5,
    Network,
    branch_id_for_height,
    expiry_height_for,
    supports_orchard,
)
from t2z.zcash.script import extract_pubkey_hash, p2pkh_lock_script_from_pubkey

logger = logging.getLogger(__name__)


def _coerce_inputs(inputs: Sequence[TransparentInput] | bytes) -> tuple[TransparentInput, ...]:
    if isinstance(inputs, (bytes, bytearray)):
        try:
            return tuple(parse_transparent_inputs(bytes(inputs)))
        except CodecError as exc:
            msg = f"Malformed input list: {exc.message}"
            raise InvalidRequestError(msg) from exc
    return tuple(inputs)


def _validate_inputs(inputs: tuple[TransparentInput, ...]) -> int:
    """Check every input is a spendable P2PKH output and return the total value."""
    if not inputs:
        msg = "At least one transparent input is required"
        raise InvalidRequestError(msg)
    seen: set[tuple[bytes, int]] = set()
    total = 0
    for i, inp in enumerate(inputs):
        if not isinstance(inp, TransparentInput):
            msg = f"Input {i} is not a TransparentInput"
            raise InvalidRequestError(msg)
        pubkey_hash = extract_pubkey_hash(inp.script_pubkey)
        if pubkey_hash is None:
            msg = f"Input {i} is not a P2PKH output"
            raise InvalidRequestError(msg)
        if pubkey_hash != hash160(inp.pubkey):
            msg = f"Input {i} pubkey does not match its P2PKH script"
            raise InvalidRequestError(msg)
        outpoint = (inp.txid, inp.vout)
        if outpoint in seen:
            msg = f"Input {i} spends {inp.txid_hex}:{inp.vout} twice"
            raise InvalidRequestError(msg)
        seen.add(outpoint)
        total += inp.amount
    if total > MAX_MONEY:
        msg = f"Total input value {total} exceeds MAX_MONEY"
        raise InvalidRequestError(msg)
    return total


def _change_script(change_address: str | None, first_input: TransparentInput) -> bytes:
    if change_address is None:
        return p2pkh_lock_script_from_pubkey(first_input.pubkey)
    try:
        return decode_transparent_address(change_address).script_pubkey()
    except ValueError as exc:
        msg = f"Change address must be a transparent address: {change_address!r}"
        raise InvalidRequestError(msg) from exc


def propose_transaction(
    inputs: Sequence[TransparentInput] | bytes,
    request: TransactionRequest,
    change_address: str | None = None,
    *,
    config: ProtocolConfig | None = None,
) -> Pczt:
    """Build an unproved, unsigned PCZT paying *request* from *inputs*.

    Args:
        inputs: Spendable P2PKH outputs, or their bulk binary encoding.
        request: Payments to make.  Locked against further changes on return.
        change_address: Transparent address for change; defaults to P2PKH
            of the first input's public key.
        config: Protocol parameters (expiry delta).

    Returns:
        A fresh :class:`Pczt` handle.

    Raises:
        InvalidRequestError: If the inputs, request, or change address are invalid.
        InsufficientFundsError: If the inputs cannot cover payments plus fee.
    """
    config = config or ProtocolConfig()
    spendable = _coerce_inputs(inputs)
    total_in = _validate_inputs(spendable)

    network = Network.from_flag(request.use_mainnet)
    height = request.target_height
    if not supports_orchard(height, network):
        msg = (
            f"Target height {height} is before NU5 activation "
            f"({NU5.activation_height(network)} on {network})"
        )
        raise InvalidRequestError(msg)

    outputs: list[OutputEntry] = []
    actions: list[ActionEntry] = []
    for payment in request.payments:
        recipient = payment.resolve()
        if recipient.pool is Pool.ORCHARD:
            actions.append(
                ActionEntry(
                    recipient=recipient.orchard_receiver,
                    value=payment.amount,
                    memo=encode_memo(payment.memo),
                    user_address=payment.address,
                )
            )
        else:
            outputs.append(
                OutputEntry(
                    value=payment.amount,
                    script_pubkey=recipient.script_pubkey,  # type: ignore[arg-type]
                    user_address=payment.address,
                )
            )

    total_pay = request.total_amount
    if total_pay > MAX_MONEY:
        msg = f"Total payment amount {total_pay} exceeds MAX_MONEY"
        raise InvalidRequestError(msg)

    change_script = _change_script(change_address, spendable[0])
    n_in, n_out, n_orchard = len(spendable), len(outputs), len(actions)
    fee = calculate_fee(n_in, n_out + 1, n_orchard)
    change = total_in - total_pay - fee
    if change > 0:
        outputs.append(OutputEntry(value=change, script_pubkey=change_script, user_address=change_address))
    elif change < 0:
        fee_without_change = calculate_fee(n_in, n_out, n_orchard)
        if total_in - total_pay - fee_without_change < 0:
            required = total_pay + fee_without_change
            msg = f"Insufficient funds: need {required} zatoshis, have {total_in}"
            raise InsufficientFundsError(msg, required=required, available=total_in)
        # Too little left for a change output; the remainder goes to the fee.
        fee = total_in - total_pay

    if len(actions) == 1:
        actions.append(ActionEntry(recipient=None, value=0, memo=EMPTY_MEMO))

    state = PcztState(
        global_fields=GlobalFields(
            consensus_branch_id=branch_id_for_height(height, network),
            expiry_height=expiry_height_for(height, config.expiry_delta),
            use_mainnet=request.use_mainnet,
            fee=fee,
        ),
        inputs=tuple(
            InputEntry(
                txid=inp.txid,
                vout=inp.vout,
                value=inp.amount,
                script_pubkey=inp.script_pubkey,
                pubkey=inp.pubkey,
            )
            for inp in spendable
        ),
        outputs=tuple(outputs),
        actions=tuple(actions),
    )
    request.lock()
    logger.info(
        "Proposed PCZT: %d inputs (%d zat), %d transparent outputs, %d Orchard actions, fee %d",
        n_in,
        total_in,
        len(outputs),
        len(actions),
        fee,
    )
    return Pczt(state)
