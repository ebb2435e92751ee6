"""Tests for ZIP-317 fee calculation."""

from __future__ import annotations

import pytest

from t2z.pczt.fees import calculate_fee, orchard_action_count


class TestCalculateFee:
    def test_one_in_two_out(self) -> None:
        """Payment plus change from a single input."""
        assert calculate_fee(1, 2, 0) == 10_000

    def test_grace_actions(self) -> None:
        assert calculate_fee(1, 1, 0) == 10_000
        assert calculate_fee(0, 0, 0) == 10_000

    def test_single_orchard_payment_is_padded(self) -> None:
        assert calculate_fee(1, 1, 1) == 15_000

    def test_orchard_payments(self) -> None:
        assert calculate_fee(1, 1, 3) == 20_000

    def test_inputs_dominate(self) -> None:
        assert calculate_fee(5, 2, 0) == 25_000

    def test_monotonic(self) -> None:
        for n in range(10):
            assert calculate_fee(n + 1, 2, 0) >= calculate_fee(n, 2, 0)
            assert calculate_fee(1, n + 1, 0) >= calculate_fee(1, n, 0)
            assert calculate_fee(1, 1, n + 1) >= calculate_fee(1, 1, n)

    def test_negative(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            calculate_fee(-1, 0, 0)


class TestOrchardActionCount:
    @pytest.mark.parametrize(("outputs", "actions"), [(0, 0), (1, 2), (2, 2), (5, 5)])
    def test_count(self, outputs: int, actions: int) -> None:
        assert orchard_action_count(outputs) == actions
