"""Hash functions used by transparent addresses and ZIP-244 digests."""

from __future__ import annotations

import hashlib


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha256d(data: bytes) -> bytes:
    """SHA-256 applied twice (Base58Check checksums)."""
    return sha256(sha256(data))


def ripemd160(data: bytes) -> bytes:
    return hashlib.new("ripemd160", data).digest()


def hash160(data: bytes) -> bytes:
    """RIPEMD-160 of SHA-256: the key hash inside P2PKH scripts and t-addresses."""
    return ripemd160(sha256(data))


def blake2b_256(data: bytes, personal: bytes) -> bytes:
    """BLAKE2b with a 32-byte digest and a 16-byte personalisation string.

    Every ZIP-244 digest node is one of these, keyed by its own
    personalisation tag.
    """
    if len(personal) != 16:
        msg = f"BLAKE2b personalisation must be 16 bytes, got {len(personal)}"
        raise ValueError(msg)
    return hashlib.blake2b(data, digest_size=32, person=personal).digest()
