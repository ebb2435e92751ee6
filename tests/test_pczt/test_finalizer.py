"""Tests for the spend finalizer and transaction extractor."""

from __future__ import annotations

from dataclasses import replace

import pytest
from tests.helpers import ORCHARD_ADDRESS, PRIVKEY, PUBKEY, make_input, make_request

from t2z.errors import BalanceError, HandleConsumedError, IncompleteDocumentError, InvalidSignatureError
from t2z.pczt.builder import propose_transaction
from t2z.pczt.document import Pczt
from t2z.pczt.finalizer import finalize_and_extract, transaction_id
from t2z.pczt.request import Payment
from t2z.pczt.signer import append_signature, get_sighash
from t2z.zcash.keys import sign_sighash
from t2z.zcash.sighash import txid_digest
from t2z.zcash.transaction import Transaction


def _signed() -> Pczt:
    pczt = propose_transaction([make_input()], make_request())
    return append_signature(pczt, 0, sign_sighash(PRIVKEY, get_sighash(pczt, 0)))


class TestFinalize:
    def test_extracts_v5_transaction(self) -> None:
        raw = finalize_and_extract(_signed())
        tx = Transaction.from_bytes(raw)
        assert raw[:4].hex() == "05000080"
        assert tx.orchard is None
        assert [out.value for out in tx.outputs] == [50_000_000, 49_990_000]

    def test_script_sig(self) -> None:
        tx = Transaction.from_bytes(finalize_and_extract(_signed()))
        script_sig = tx.inputs[0].script_sig
        der_len = script_sig[0]
        assert script_sig[1] == 0x30
        assert script_sig[der_len] == 0x01
        assert script_sig[der_len + 1] == 33
        assert script_sig[der_len + 2 :] == PUBKEY

    def test_consumes(self) -> None:
        pczt = _signed()
        finalize_and_extract(pczt)
        with pytest.raises(HandleConsumedError):
            finalize_and_extract(pczt)

    def test_unsigned(self) -> None:
        pczt = propose_transaction([make_input()], make_request())
        with pytest.raises(IncompleteDocumentError, match="not signed"):
            finalize_and_extract(pczt)
        assert pczt.is_consumed

    def test_unproved(self) -> None:
        pczt = propose_transaction([make_input()], make_request(Payment(ORCHARD_ADDRESS, 1_000_000)))
        state = pczt.state
        inputs = (replace(state.inputs[0], signature=b"\x01" * 64),)
        with pytest.raises(IncompleteDocumentError, match="not been proved"):
            finalize_and_extract(Pczt(replace(state, inputs=inputs)))

    def test_value_not_conserved(self) -> None:
        state = _signed().state
        tampered = replace(state, global_fields=replace(state.global_fields, fee=20_000))
        with pytest.raises(BalanceError, match="!="):
            finalize_and_extract(Pczt(tampered))

    def test_fee_too_low(self) -> None:
        state = _signed().state
        change = replace(state.outputs[1], value=state.outputs[1].value + 5_000)
        tampered = replace(
            state,
            global_fields=replace(state.global_fields, fee=5_000),
            outputs=(state.outputs[0], change),
        )
        with pytest.raises(BalanceError, match="below the conventional fee"):
            finalize_and_extract(Pczt(tampered))

    def test_bad_stored_signature(self) -> None:
        state = _signed().state
        bogus = sign_sighash(PRIVKEY, b"\x42" * 32)
        tampered = replace(state, inputs=(replace(state.inputs[0], signature=bogus),))
        with pytest.raises(InvalidSignatureError):
            finalize_and_extract(Pczt(tampered))


class TestTransactionId:
    def test_display_order(self) -> None:
        raw = finalize_and_extract(_signed())
        txid = transaction_id(raw)
        assert len(txid) == 64
        assert txid == txid_digest(Transaction.from_bytes(raw))[::-1].hex()

    def test_not_a_transaction(self) -> None:
        with pytest.raises(ValueError):
            transaction_id(b"\x01\x00\x00\x00")
