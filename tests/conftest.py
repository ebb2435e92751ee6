"""Shared test fixtures for the t2z test suite."""

from __future__ import annotations

import pytest

from tests.helpers import FailingProvingBackend, FakeProvingBackend


@pytest.fixture
def prover() -> FakeProvingBackend:
    return FakeProvingBackend()


@pytest.fixture
def failing_prover() -> FailingProvingBackend:
    return FailingProvingBackend()
