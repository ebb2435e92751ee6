"""Tests for the PCZT document and its move-only handle."""

from __future__ import annotations

import copy
import pickle

import pytest
from tests.helpers import ORCHARD_ADDRESS, make_input, make_request

from t2z.errors import HandleConsumedError, IncompleteDocumentError
from t2z.pczt.builder import propose_transaction
from t2z.pczt.document import Pczt
from t2z.pczt.request import Payment


@pytest.fixture
def pczt() -> Pczt:
    return propose_transaction([make_input()], make_request())


class TestHandle:
    def test_views(self, pczt: Pczt) -> None:
        assert len(pczt.inputs) == 1
        assert len(pczt.outputs) == 2
        assert pczt.actions == ()
        assert pczt.fee == 10_000
        assert pczt.is_proved
        assert not pczt.is_fully_signed
        assert "fee=10000" in repr(pczt)

    def test_copy_refused(self, pczt: Pczt) -> None:
        with pytest.raises(TypeError):
            copy.copy(pczt)

    def test_deepcopy_refused(self, pczt: Pczt) -> None:
        with pytest.raises(TypeError):
            copy.deepcopy(pczt)

    def test_pickle_refused(self, pczt: Pczt) -> None:
        with pytest.raises(TypeError):
            pickle.dumps(pczt)

    def test_free(self, pczt: Pczt) -> None:
        pczt.free()
        assert pczt.is_consumed
        assert repr(pczt) == "Pczt(<consumed>)"
        pczt.free()

    def test_dead_handle(self, pczt: Pczt) -> None:
        pczt.free()
        with pytest.raises(HandleConsumedError):
            _ = pczt.fee
        with pytest.raises(HandleConsumedError):
            _ = pczt.state

    def test_no_attribute_injection(self, pczt: Pczt) -> None:
        with pytest.raises(AttributeError):
            pczt.extra = 1  # type: ignore[attr-defined]


class TestState:
    def test_totals(self, pczt: Pczt) -> None:
        state = pczt.state
        assert state.total_input_value == 100_000_000
        assert state.total_output_value == 99_990_000
        assert state.value_balance == 0

    def test_to_transaction(self, pczt: Pczt) -> None:
        tx = pczt.state.to_transaction()
        assert len(tx.inputs) == 1
        assert tx.inputs[0].script_sig == b""
        assert [out.value for out in tx.outputs] == [50_000_000, 49_990_000]
        assert tx.expiry_height == pczt.expiry_height

    def test_orchard_bundle_requires_proofs(self) -> None:
        pczt = propose_transaction([make_input()], make_request(Payment(ORCHARD_ADDRESS, 1_000_000)))
        assert not pczt.is_proved
        with pytest.raises(IncompleteDocumentError, match="not been proved"):
            pczt.state.orchard_bundle()

    def test_transparent_only_has_no_bundle(self, pczt: Pczt) -> None:
        assert pczt.state.orchard_bundle() is None
