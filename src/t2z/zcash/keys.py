"""secp256k1 key helpers: Base58Check, public keys, compact signatures.

Transparent Zcash inputs are signed with ECDSA over secp256k1:
- Base58Check encoding / decoding (addresses, WIF)
- Compressed / uncompressed public key encoding
- 64-byte compact ``r || s`` signatures (low-S, RFC 6979)
- DER re-encoding for the final scriptSig
"""

from __future__ import annotations

import hashlib

from ecdsa import SECP256k1, SigningKey, VerifyingKey
from ecdsa.keys import BadSignatureError, MalformedPointError
from ecdsa.util import MalformedSignature, sigdecode_string, sigencode_string_canonize

from t2z.utils.crypto import sha256d

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CURVE = SECP256k1
_CURVE_ORDER = _CURVE.order
_HALF_ORDER = _CURVE_ORDER // 2

COMPACT_SIGNATURE_SIZE = 64
COMPRESSED_PUBKEY_SIZE = 33

# ---------------------------------------------------------------------------
# Base58Check encoding / decoding
# ---------------------------------------------------------------------------

_B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def base58_encode(payload: bytes) -> str:
    """Encode raw bytes to Base58 (no checksum)."""
    n = int.from_bytes(payload, "big")
    result: list[int] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_B58_ALPHABET[remainder])
    # Preserve leading zero bytes
    for byte in payload:
        if byte == 0:
            result.append(_B58_ALPHABET[0])
        else:
            break
    return bytes(reversed(result)).decode("ascii")


def base58_decode(s: str) -> bytes:
    """Decode Base58 string to raw bytes (no checksum).

    Raises:
        ValueError: If *s* contains a character outside the alphabet.
    """
    n = 0
    for char in s:
        n = n * 58 + _B58_ALPHABET.index(char.encode("ascii"))
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    # Leading '1' chars are 0x00 bytes
    pad_count = 0
    for char in s:
        if char == "1":
            pad_count += 1
        else:
            break
    return b"\x00" * pad_count + result


def base58check_encode(payload: bytes) -> str:
    """Encode bytes with a 4-byte SHA256d checksum (Base58Check)."""
    checksum = sha256d(payload)[:4]
    return base58_encode(payload + checksum)


def base58check_decode(s: str) -> bytes:
    """Decode a Base58Check string, verifying the checksum.

    Raises:
        ValueError: If the string is malformed or the checksum is invalid.
    """
    raw = base58_decode(s)
    if len(raw) < 4:
        msg = "Base58Check string too short"
        raise ValueError(msg)
    payload, checksum = raw[:-4], raw[-4:]
    expected = sha256d(payload)[:4]
    if checksum != expected:
        msg = "Base58Check checksum mismatch"
        raise ValueError(msg)
    return payload


# ---------------------------------------------------------------------------
# Public keys
# ---------------------------------------------------------------------------


def private_key_to_public_key(privkey_bytes: bytes, *, compressed: bool = True) -> bytes:
    """Derive the public key from a 32-byte private key.

    Args:
        privkey_bytes: 32-byte big-endian scalar.
        compressed: If True, return the 33-byte SEC compressed encoding.

    Returns:
        The public key bytes (33 compressed or 65 uncompressed).

    Raises:
        ValueError: If *privkey_bytes* is not a valid secp256k1 scalar.
    """
    if len(privkey_bytes) != 32 or not 0 < int.from_bytes(privkey_bytes, "big") < _CURVE_ORDER:
        msg = "private key must be a 32-byte scalar in 1..n-1"
        raise ValueError(msg)
    sk = SigningKey.from_string(privkey_bytes, curve=_CURVE)
    vk = sk.get_verifying_key()
    if compressed:
        return compress_public_key(vk.to_string())
    return b"\x04" + vk.to_string()


def compress_public_key(raw_pubkey: bytes) -> bytes:
    """Compress a 64-byte (or 65-byte with 0x04 prefix) raw public key to 33 bytes."""
    if len(raw_pubkey) == 65 and raw_pubkey[0] == 0x04:
        raw_pubkey = raw_pubkey[1:]
    if len(raw_pubkey) != 64:
        if len(raw_pubkey) == 33 and raw_pubkey[0] in (0x02, 0x03):
            return raw_pubkey  # Already compressed
        msg = f"Invalid raw public key length: {len(raw_pubkey)}"
        raise ValueError(msg)
    x = int.from_bytes(raw_pubkey[:32], "big")
    y = int.from_bytes(raw_pubkey[32:], "big")
    prefix = b"\x02" if y % 2 == 0 else b"\x03"
    return prefix + x.to_bytes(32, "big")


def decompress_public_key(compressed: bytes) -> bytes:
    """Decompress a 33-byte compressed public key to 65-byte uncompressed."""
    if len(compressed) != COMPRESSED_PUBKEY_SIZE:
        msg = f"Invalid compressed key length: {len(compressed)}"
        raise ValueError(msg)
    prefix = compressed[0]
    if prefix not in (0x02, 0x03):
        msg = f"Invalid compressed key prefix: {prefix:#x}"
        raise ValueError(msg)
    x = int.from_bytes(compressed[1:], "big")
    p = _CURVE.curve.p()
    # y^2 = x^3 + 7  (mod p)  for secp256k1
    y_sq = (pow(x, 3, p) + 7) % p
    y = pow(y_sq, (p + 1) // 4, p)
    if (y % 2 == 0) != (prefix == 0x02):
        y = p - y
    return b"\x04" + x.to_bytes(32, "big") + y.to_bytes(32, "big")


# ---------------------------------------------------------------------------
# Compact signatures
# ---------------------------------------------------------------------------


def sign_sighash(privkey_bytes: bytes, sighash: bytes) -> bytes:
    """Sign a 32-byte sighash, returning a 64-byte low-S ``r || s`` signature.

    Nonces are derived per RFC 6979, so signing the same digest twice with
    the same key yields the same bytes.
    """
    if len(sighash) != 32:
        msg = f"sighash must be 32 bytes, got {len(sighash)}"
        raise ValueError(msg)
    sk = SigningKey.from_string(privkey_bytes, curve=_CURVE)
    return sk.sign_digest_deterministic(
        sighash, hashfunc=hashlib.sha256, sigencode=sigencode_string_canonize
    )


def is_low_s(signature: bytes) -> bool:
    """True if the ``s`` half of a compact signature is in the lower half of the order."""
    s = int.from_bytes(signature[32:64], "big")
    return 0 < s <= _HALF_ORDER


def verify_compact_signature(pubkey_bytes: bytes, sighash: bytes, signature: bytes) -> bool:
    """Verify a 64-byte compact signature against a compressed public key.

    High-S signatures are rejected, matching the node's standardness rules.
    """
    if len(signature) != COMPACT_SIGNATURE_SIZE or not is_low_s(signature):
        return False
    try:
        raw_key = decompress_public_key(pubkey_bytes)[1:]
        vk = VerifyingKey.from_string(raw_key, curve=_CURVE)
        return vk.verify_digest(signature, sighash, sigdecode=sigdecode_string)
    except (BadSignatureError, MalformedPointError, MalformedSignature, ValueError):
        return False


def compact_to_der(signature: bytes) -> bytes:
    """Re-encode a 64-byte ``r || s`` signature as DER."""
    if len(signature) != COMPACT_SIGNATURE_SIZE:
        msg = f"compact signature must be 64 bytes, got {len(signature)}"
        raise ValueError(msg)
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:], "big")
    rb = _int_to_der_bytes(r)
    sb = _int_to_der_bytes(s)
    return b"\x30" + bytes([len(rb) + len(sb)]) + rb + sb


def _int_to_der_bytes(n: int) -> bytes:
    """Encode an integer as a DER INTEGER TLV."""
    b = n.to_bytes(max(1, (n.bit_length() + 7) // 8), "big")
    if b[0] & 0x80:
        b = b"\x00" + b
    return b"\x02" + bytes([len(b)]) + b
