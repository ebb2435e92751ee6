"""Tests for the proposer role."""

from __future__ import annotations

import pytest
from tests.helpers import (
    ORCHARD_ADDRESS,
    ORCHARD_RECEIVER,
    P2PKH_SCRIPT,
    PUBKEY,
    TARGET_HEIGHT,
    TESTNET_RECIPIENT,
    TESTNET_RECIPIENT_2,
    TESTNET_RECIPIENT_3,
    make_input,
    make_request,
)

from t2z.config import ProtocolConfig
from t2z.errors import InsufficientFundsError, InvalidRequestError
from t2z.pczt.builder import propose_transaction
from t2z.pczt.inputs import serialize_transparent_inputs
from t2z.pczt.request import EMPTY_MEMO, Payment, TransactionRequest, encode_memo
from t2z.zcash.address import decode_transparent_address
from t2z.zcash.consensus import NU5, NU6, NU6_1
from t2z.zcash.script import p2sh_lock_script


def _script(address: str) -> bytes:
    return decode_transparent_address(address).script_pubkey()


class TestTransparentProposal:
    def test_payment_with_change(self) -> None:
        pczt = propose_transaction([make_input(100_000_000)], make_request())
        assert pczt.fee == 10_000
        assert [(o.value, o.script_pubkey) for o in pczt.outputs] == [
            (50_000_000, _script(TESTNET_RECIPIENT)),
            (49_990_000, P2PKH_SCRIPT),
        ]
        assert pczt.outputs[0].user_address == TESTNET_RECIPIENT
        assert pczt.outputs[1].user_address is None
        assert pczt.actions == ()

    def test_input_entry(self) -> None:
        inp = make_input(100_000_000, vout=3)
        pczt = propose_transaction([inp], make_request())
        entry = pczt.inputs[0]
        assert (entry.txid, entry.vout, entry.value) == (inp.txid, 3, 100_000_000)
        assert entry.pubkey == PUBKEY
        assert entry.signature is None

    def test_explicit_change_address(self) -> None:
        pczt = propose_transaction([make_input()], make_request(), TESTNET_RECIPIENT_2)
        assert pczt.outputs[1].script_pubkey == _script(TESTNET_RECIPIENT_2)
        assert pczt.outputs[1].user_address == TESTNET_RECIPIENT_2

    def test_shielded_change_address_rejected(self) -> None:
        with pytest.raises(InvalidRequestError, match="Change address"):
            propose_transaction([make_input()], make_request(), ORCHARD_ADDRESS)

    def test_exact_amount_has_no_change(self) -> None:
        request = make_request(Payment(TESTNET_RECIPIENT, 20_000_000), Payment(TESTNET_RECIPIENT_2, 20_000_000))
        pczt = propose_transaction([make_input(40_015_000)], request)
        assert len(pczt.outputs) == 2
        assert pczt.fee == 15_000

    def test_dust_change_goes_to_fee(self) -> None:
        request = make_request(Payment(TESTNET_RECIPIENT, 20_000_000), Payment(TESTNET_RECIPIENT_2, 20_000_000))
        pczt = propose_transaction([make_input(40_012_000)], request)
        assert len(pczt.outputs) == 2
        assert pczt.fee == 12_000
        state = pczt.state
        assert state.total_input_value == state.total_output_value + state.global_fields.fee

    def test_insufficient_funds(self) -> None:
        with pytest.raises(InsufficientFundsError) as exc_info:
            propose_transaction([make_input(50_005_000)], make_request())
        assert exc_info.value.required == 50_010_000
        assert exc_info.value.available == 50_005_000
        assert exc_info.value.code == "insufficient-funds"

    def test_multiple_inputs(self) -> None:
        inputs = [make_input(30_000_000, vout=0), make_input(30_000_000, vout=1)]
        pczt = propose_transaction(inputs, make_request(Payment(TESTNET_RECIPIENT_3, 50_000_000)))
        assert len(pczt.inputs) == 2
        assert pczt.fee == 10_000
        assert pczt.outputs[-1].value == 9_990_000

    def test_bulk_inputs(self) -> None:
        data = serialize_transparent_inputs([make_input()])
        pczt = propose_transaction(data, make_request())
        assert pczt.inputs[0].value == 100_000_000

    def test_malformed_bulk_inputs(self) -> None:
        with pytest.raises(InvalidRequestError, match="Malformed input list"):
            propose_transaction(b"\x01\x00\x02", make_request())


class TestInputValidation:
    def test_no_inputs(self) -> None:
        with pytest.raises(InvalidRequestError, match="At least one"):
            propose_transaction([], make_request())

    def test_not_p2pkh(self) -> None:
        inp = make_input(script=p2sh_lock_script(b"\x22" * 20))
        with pytest.raises(InvalidRequestError, match="not a P2PKH"):
            propose_transaction([inp], make_request())

    def test_pubkey_mismatch(self) -> None:
        inp = make_input(pubkey=b"\x02" + b"\x11" * 32)
        with pytest.raises(InvalidRequestError, match="pubkey does not match"):
            propose_transaction([inp], make_request())

    def test_duplicate_outpoint(self) -> None:
        with pytest.raises(InvalidRequestError, match="twice"):
            propose_transaction([make_input(vout=1), make_input(vout=1)], make_request())

    def test_request_not_locked_on_failure(self) -> None:
        request = make_request()
        with pytest.raises(InsufficientFundsError):
            propose_transaction([make_input(1_000)], request)
        assert not request.is_locked


class TestConsensus:
    def test_branch_and_expiry(self) -> None:
        pczt = propose_transaction([make_input()], make_request())
        assert pczt.consensus_branch_id == NU5.branch_id
        assert pczt.expiry_height == TARGET_HEIGHT + 40

    def test_nu6_height(self) -> None:
        pczt = propose_transaction([make_input()], make_request(target_height=3_000_000))
        assert pczt.consensus_branch_id == NU6.branch_id

    def test_expiry_delta_from_config(self) -> None:
        pczt = propose_transaction([make_input()], make_request(), config=ProtocolConfig(expiry_delta=100))
        assert pczt.expiry_height == TARGET_HEIGHT + 100

    def test_no_target_height(self) -> None:
        pczt = propose_transaction([make_input()], make_request(target_height=None))
        assert pczt.consensus_branch_id == NU6_1.branch_id
        assert pczt.expiry_height == 0

    def test_before_nu5(self) -> None:
        with pytest.raises(InvalidRequestError, match="before NU5"):
            propose_transaction([make_input()], make_request(target_height=1_000_000))

    def test_testnet_heights(self) -> None:
        request = TransactionRequest([Payment(TESTNET_RECIPIENT, 1_000)], target_height=1_800_000, use_mainnet=False)
        with pytest.raises(InvalidRequestError, match="before NU5"):
            propose_transaction([make_input()], request)

    def test_nu6_1_height(self) -> None:
        pczt = propose_transaction([make_input()], make_request(target_height=3_200_000))
        assert pczt.consensus_branch_id == 0x4DEC4DF0

    def test_network_flag(self) -> None:
        request = TransactionRequest([Payment(TESTNET_RECIPIENT, 1_000)], target_height=3_000_000, use_mainnet=False)
        pczt = propose_transaction([make_input()], request)
        assert pczt.state.global_fields.use_mainnet is False
        assert pczt.consensus_branch_id == NU6.branch_id


class TestOrchardProposal:
    def test_single_payment_is_padded(self) -> None:
        request = make_request(Payment(ORCHARD_ADDRESS, 1_000_000, memo="hello"))
        pczt = propose_transaction([make_input()], request)
        assert pczt.fee == 15_000
        assert len(pczt.actions) == 2
        real, dummy = pczt.actions
        assert real.recipient == ORCHARD_RECEIVER
        assert real.value == 1_000_000
        assert real.memo == encode_memo("hello")
        assert real.user_address == ORCHARD_ADDRESS
        assert dummy.is_dummy
        assert dummy.value == 0
        assert dummy.memo == EMPTY_MEMO
        assert [o.value for o in pczt.outputs] == [98_985_000]
        assert pczt.state.value_balance == -1_000_000
        assert not pczt.is_proved

    def test_mixed_payments(self) -> None:
        request = make_request(
            Payment(TESTNET_RECIPIENT, 5_000_000),
            Payment(ORCHARD_ADDRESS, 1_000_000),
            Payment(ORCHARD_ADDRESS, 2_000_000),
        )
        pczt = propose_transaction([make_input()], request)
        assert len(pczt.actions) == 2
        assert not any(a.is_dummy for a in pczt.actions)
        # logical actions: max(1 in, 2 out) + 2 Orchard
        assert pczt.fee == 20_000
        assert pczt.outputs[-1].value == 100_000_000 - 8_000_000 - 20_000
