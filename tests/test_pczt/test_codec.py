"""Tests for the PCZT wire format."""

from __future__ import annotations

from dataclasses import replace

import pytest
from tests.helpers import ORCHARD_ADDRESS, FakeProvingBackend, make_input, make_request

from t2z.errors import CodecError, HandleConsumedError
from t2z.pczt.builder import propose_transaction
from t2z.pczt.codec import MAGIC, decode_state, encode_state, parse_pczt, serialize_pczt
from t2z.pczt.document import Pczt
from t2z.pczt.prover import prove_transaction
from t2z.pczt.request import MAX_MONEY, Payment


def _entry(key: int, value: bytes) -> bytes:
    return bytes([1, key, len(value)]) + value


@pytest.fixture
def transparent() -> Pczt:
    return propose_transaction([make_input()], make_request())


@pytest.fixture
def proved(prover: FakeProvingBackend) -> Pczt:
    pczt = propose_transaction([make_input()], make_request(Payment(ORCHARD_ADDRESS, 1_000_000, memo="hi")))
    return prove_transaction(pczt, prover)


class TestRoundTrip:
    def test_magic(self, transparent: Pczt) -> None:
        assert serialize_pczt(transparent).startswith(MAGIC)

    def test_transparent(self, transparent: Pczt) -> None:
        data = serialize_pczt(transparent)
        parsed = parse_pczt(data)
        assert parsed.state == transparent.state
        assert serialize_pczt(parsed) == data

    def test_proved_orchard(self, proved: Pczt) -> None:
        data = serialize_pczt(proved)
        parsed = parse_pczt(data)
        assert parsed.state == proved.state
        assert parsed.is_proved
        assert parsed.actions[1].is_dummy

    def test_serialize_does_not_consume(self, transparent: Pczt) -> None:
        serialize_pczt(transparent)
        assert not transparent.is_consumed

    def test_serialize_dead_handle(self, transparent: Pczt) -> None:
        transparent.free()
        with pytest.raises(HandleConsumedError):
            serialize_pczt(transparent)

    def test_parse_gives_independent_handle(self, transparent: Pczt) -> None:
        parsed = parse_pczt(serialize_pczt(transparent))
        parsed.free()
        assert not transparent.is_consumed

    def test_unknown_entries_preserved(self, transparent: Pczt) -> None:
        state = transparent.state
        state = replace(
            state,
            global_fields=replace(state.global_fields, unknown=((b"\xfc\x01", b"proprietary"),)),
            outputs=(replace(state.outputs[0], unknown=((b"\x7f", b"future"),)), state.outputs[1]),
        )
        data = encode_state(state)
        decoded = decode_state(data)
        assert decoded == state
        assert encode_state(decoded) == data


class TestMalformed:
    def test_bad_magic(self, transparent: Pczt) -> None:
        data = serialize_pczt(transparent)
        with pytest.raises(CodecError, match="bad magic"):
            parse_pczt(b"psbt\xff" + data[len(MAGIC) :])

    def test_empty(self) -> None:
        with pytest.raises(CodecError, match="bad magic"):
            parse_pczt(b"")

    def test_truncated(self, transparent: Pczt) -> None:
        data = serialize_pczt(transparent)
        with pytest.raises(CodecError, match="truncated"):
            parse_pczt(data[:-1])

    def test_truncated_value(self, transparent: Pczt) -> None:
        data = serialize_pczt(transparent)
        with pytest.raises(CodecError, match="truncated"):
            parse_pczt(data[: len(MAGIC) + 5])

    def test_trailing_bytes(self, transparent: Pczt) -> None:
        data = serialize_pczt(transparent)
        with pytest.raises(CodecError, match="trailing bytes"):
            parse_pczt(data + b"\x00")

    def test_duplicate_key(self) -> None:
        data = MAGIC + _entry(0x00, b"\x01\x00\x00\x00") * 2 + b"\x00"
        with pytest.raises(CodecError, match="duplicate key"):
            parse_pczt(data)

    def test_missing_key(self) -> None:
        data = MAGIC + _entry(0x00, b"\x01\x00\x00\x00") + b"\x00"
        with pytest.raises(CodecError, match="missing required key"):
            parse_pczt(data)

    def test_unsupported_format_version(self) -> None:
        data = MAGIC + _entry(0x00, b"\x02\x00\x00\x00") + b"\x00"
        with pytest.raises(CodecError, match="format version"):
            parse_pczt(data)

    def test_unsupported_tx_version(self) -> None:
        data = MAGIC + _entry(0x00, b"\x01\x00\x00\x00") + _entry(0x01, b"\x04\x00\x00\x00") + b"\x00"
        with pytest.raises(CodecError, match="transaction version"):
            parse_pczt(data)

    def test_bad_network_flag(self, transparent: Pczt) -> None:
        data = serialize_pczt(transparent)
        network_entry = _entry(0x0A, b"\x01")
        assert data.count(network_entry) == 1
        with pytest.raises(CodecError, match="network"):
            parse_pczt(data.replace(network_entry, _entry(0x0A, b"\x02")))

    def test_bad_field_width(self, transparent: Pczt) -> None:
        data = serialize_pczt(transparent)
        network_entry = _entry(0x0A, b"\x01")
        with pytest.raises(CodecError, match="0x0a"):
            parse_pczt(data.replace(network_entry, _entry(0x0A, b"\x01\x00")))


class TestFieldRanges:
    def test_non_sighash_all_type_rejected(self, transparent: Pczt) -> None:
        state = transparent.state
        state = replace(state, inputs=(replace(state.inputs[0], sighash_type=0x02),))
        with pytest.raises(CodecError, match="sighash type 0x02"):
            parse_pczt(encode_state(state))

    def test_input_value_above_max_money(self, transparent: Pczt) -> None:
        state = transparent.state
        state = replace(state, inputs=(replace(state.inputs[0], value=2**63 + 5),))
        with pytest.raises(CodecError, match="MAX_MONEY"):
            parse_pczt(encode_state(state))

    def test_output_value_above_max_money(self, transparent: Pczt) -> None:
        state = transparent.state
        state = replace(state, outputs=(replace(state.outputs[0], value=MAX_MONEY + 1), state.outputs[1]))
        with pytest.raises(CodecError, match="output 0"):
            decode_state(encode_state(state))

    def test_action_value_above_max_money(self, proved: Pczt) -> None:
        state = proved.state
        actions = (replace(state.actions[0], value=MAX_MONEY + 1), *state.actions[1:])
        with pytest.raises(CodecError, match="action 0"):
            decode_state(encode_state(replace(state, actions=actions)))

    def test_fee_above_max_money(self, transparent: Pczt) -> None:
        state = transparent.state
        state = replace(state, global_fields=replace(state.global_fields, fee=2**64 - 1))
        with pytest.raises(CodecError, match="MAX_MONEY"):
            decode_state(encode_state(state))

    def test_max_money_accepted(self, transparent: Pczt) -> None:
        state = transparent.state
        state = replace(state, inputs=(replace(state.inputs[0], value=MAX_MONEY),))
        assert decode_state(encode_state(state)).inputs[0].value == MAX_MONEY
