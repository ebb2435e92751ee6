"""Tests for crypto utility functions."""

from __future__ import annotations

import pytest

from t2z.utils.crypto import blake2b_256, hash160, ripemd160, sha256, sha256d


def test_sha256():
    """SHA-256 of empty string should produce the well-known hash."""
    result = sha256(b"")
    assert result.hex() == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_sha256d():
    result = sha256d(b"")
    assert result == sha256(sha256(b""))


def test_ripemd160():
    """RIPEMD-160 of empty string."""
    result = ripemd160(b"")
    assert result.hex() == "9c1185a5c5e9fc54612808977ee8f548b2258d31"


def test_hash160_of_test_pubkey():
    pubkey = bytes.fromhex("031b84c5567b126440995d3ed5aaba0565d71e1834604819ff9c17f5e9d5dd078f")
    assert hash160(pubkey).hex() == "79b000887626b294a914501a4cd226b58b235983"


class TestBlake2b256:
    def test_digest_size(self) -> None:
        assert len(blake2b_256(b"data", b"ZTxIdHeadersHash")) == 32

    def test_personalisation_changes_digest(self) -> None:
        assert blake2b_256(b"data", b"ZTxIdHeadersHash") != blake2b_256(b"data", b"ZTxIdOrchardHash")

    def test_rejects_short_personalisation(self) -> None:
        with pytest.raises(ValueError, match="16 bytes"):
            blake2b_256(b"", b"ZcashTxHash_")
