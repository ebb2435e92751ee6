"""Tests for transparent inputs and their bulk encoding."""

from __future__ import annotations

import pytest
from tests.helpers import P2PKH_SCRIPT, PUBKEY, TESTNET_RECIPIENT, make_input

from t2z.errors import CodecError, InvalidRequestError
from t2z.pczt.inputs import (
    TransparentInput,
    TransparentOutput,
    parse_transparent_inputs,
    serialize_transparent_inputs,
)
from t2z.zcash.address import decode_transparent_address


class TestTransparentInput:
    def test_txid_hex(self) -> None:
        inp = make_input(txid=bytes(range(32)))
        assert inp.txid_hex == bytes(range(32))[::-1].hex()

    def test_uncompressed_pubkey(self) -> None:
        with pytest.raises(InvalidRequestError, match="compressed"):
            TransparentInput(b"\x04" + b"\x00" * 64, b"\x00" * 32, 0, 1, P2PKH_SCRIPT)

    def test_short_txid(self) -> None:
        with pytest.raises(InvalidRequestError, match="txid"):
            TransparentInput(PUBKEY, b"\x00" * 31, 0, 1, P2PKH_SCRIPT)

    def test_amount_range(self) -> None:
        with pytest.raises(InvalidRequestError, match="amount"):
            TransparentInput(PUBKEY, b"\x00" * 32, 0, -5, P2PKH_SCRIPT)

    def test_empty_script(self) -> None:
        with pytest.raises(InvalidRequestError, match="script_pubkey"):
            TransparentInput(PUBKEY, b"\x00" * 32, 0, 1, b"")


class TestTransparentOutput:
    def test_to_address(self) -> None:
        out = TransparentOutput.to_address(TESTNET_RECIPIENT, 500)
        assert out.value == 500
        assert out.script_pubkey == decode_transparent_address(TESTNET_RECIPIENT).script_pubkey()

    def test_to_bad_address(self) -> None:
        with pytest.raises(InvalidRequestError):
            TransparentOutput.to_address("u1nope", 500)


class TestBulkEncoding:
    def test_layout(self) -> None:
        inputs = [make_input(100_000, vout=0), make_input(250_000, vout=7)]
        data = serialize_transparent_inputs(inputs)
        assert data[:2] == b"\x02\x00"
        assert len(data) == 2 + 2 * (33 + 32 + 4 + 8 + 2 + len(P2PKH_SCRIPT))
        assert data[2:35] == PUBKEY
        assert parse_transparent_inputs(data) == inputs

    def test_empty_list(self) -> None:
        assert parse_transparent_inputs(b"\x00\x00") == []

    def test_too_short_for_count(self) -> None:
        with pytest.raises(CodecError, match="too short"):
            parse_transparent_inputs(b"\x01")

    def test_truncated_fixed_part(self) -> None:
        data = serialize_transparent_inputs([make_input()])
        with pytest.raises(CodecError, match="truncated"):
            parse_transparent_inputs(data[:40])

    def test_truncated_script(self) -> None:
        data = serialize_transparent_inputs([make_input()])
        with pytest.raises(CodecError, match="truncated"):
            parse_transparent_inputs(data[:-1])

    def test_trailing_bytes(self) -> None:
        data = serialize_transparent_inputs([make_input()])
        with pytest.raises(CodecError, match="trailing"):
            parse_transparent_inputs(data + b"\x00")

    def test_invalid_input(self) -> None:
        data = bytearray(serialize_transparent_inputs([make_input()]))
        data[2] = 0x05
        with pytest.raises(CodecError, match="invalid") as exc_info:
            parse_transparent_inputs(bytes(data))
        assert isinstance(exc_info.value.__cause__, InvalidRequestError)
