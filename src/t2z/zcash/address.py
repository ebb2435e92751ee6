"""Transparent address encoding: Base58Check with 2-byte prefixes, WIF.

Zcash transparent addresses:
- ``t1...`` mainnet P2PKH, ``t3...`` mainnet P2SH
- ``tm...`` testnet P2PKH, ``t2...`` testnet P2SH

:func:`parse_recipient` also accepts unified addresses and reports which
pool a payment to the address lands in.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from t2z.utils.crypto import hash160
from t2z.zcash.consensus import Network
from t2z.zcash.keys import base58check_decode, base58check_encode
from t2z.zcash.script import p2pkh_lock_script, p2sh_lock_script
from t2z.zcash.unified import ReceiverType, decode_unified_address, is_unified_address

# Two-byte version prefixes
_MAINNET_P2PKH = b"\x1c\xb8"  # t1...
_MAINNET_P2SH = b"\x1c\xbd"  # t3...
_TESTNET_P2PKH = b"\x1d\x25"  # tm...
_TESTNET_P2SH = b"\x1c\xba"  # t2...
_MAINNET_WIF = b"\x80"
_TESTNET_WIF = b"\xef"


class AddressKind(enum.StrEnum):
    """Transparent address kinds."""

    P2PKH = "p2pkh"
    P2SH = "p2sh"


_PREFIXES: dict[bytes, tuple[AddressKind, Network]] = {
    _MAINNET_P2PKH: (AddressKind.P2PKH, Network.MAINNET),
    _MAINNET_P2SH: (AddressKind.P2SH, Network.MAINNET),
    _TESTNET_P2PKH: (AddressKind.P2PKH, Network.TESTNET),
    _TESTNET_P2SH: (AddressKind.P2SH, Network.TESTNET),
}


@dataclass(frozen=True)
class TransparentAddress:
    """A decoded transparent address."""

    kind: AddressKind
    network: Network
    hash: bytes

    def script_pubkey(self) -> bytes:
        """Locking script paying to this address."""
        if self.kind is AddressKind.P2PKH:
            return p2pkh_lock_script(self.hash)
        return p2sh_lock_script(self.hash)

    def encode(self) -> str:
        for prefix, (kind, network) in _PREFIXES.items():
            if kind is self.kind and network is self.network:
                return base58check_encode(prefix + self.hash)
        msg = f"No prefix for {self.kind} on {self.network}"  # pragma: no cover
        raise ValueError(msg)  # pragma: no cover


def decode_transparent_address(address: str) -> TransparentAddress:
    """Decode a ``t1``/``t3``/``tm``/``t2`` address.

    Raises:
        ValueError: If the checksum, length, or prefix is invalid.
    """
    payload = base58check_decode(address)
    if len(payload) != 22:
        msg = f"Invalid transparent address payload length: {len(payload)}"
        raise ValueError(msg)
    entry = _PREFIXES.get(payload[:2])
    if entry is None:
        msg = f"Unknown transparent address prefix: {payload[:2].hex()}"
        raise ValueError(msg)
    kind, network = entry
    return TransparentAddress(kind=kind, network=network, hash=payload[2:])


def pubkey_to_address(pubkey: bytes, *, network: Network = Network.MAINNET) -> str:
    """Generate a P2PKH address from a public key.

    Args:
        pubkey: 33-byte compressed or 65-byte uncompressed public key.
        network: Network whose prefix to use.

    Returns:
        Base58Check-encoded P2PKH address.
    """
    return TransparentAddress(AddressKind.P2PKH, network, hash160(pubkey)).encode()


def validate_address(address: str) -> bool:
    """Check if *address* is a well-formed transparent address."""
    try:
        decode_transparent_address(address)
    except ValueError:
        return False
    return True


def privkey_to_wif(privkey: bytes, *, compressed: bool = True, network: Network = Network.MAINNET) -> str:
    """Encode a 32-byte private key as WIF (Wallet Import Format)."""
    version = _MAINNET_WIF if network is Network.MAINNET else _TESTNET_WIF
    payload = version + privkey
    if compressed:
        payload += b"\x01"
    return base58check_encode(payload)


def wif_to_privkey(wif: str) -> tuple[bytes, bool, Network]:
    """Decode a WIF string to a private key.

    Returns:
        Tuple of (privkey_bytes, compressed, network).
    """
    payload = base58check_decode(wif)
    if len(payload) not in (33, 34):
        msg = f"Invalid WIF payload length: {len(payload)}"
        raise ValueError(msg)
    version = payload[0:1]
    if version not in (_MAINNET_WIF, _TESTNET_WIF):
        msg = f"Unknown WIF version byte: {version.hex()}"
        raise ValueError(msg)
    network = Network.MAINNET if version == _MAINNET_WIF else Network.TESTNET
    if len(payload) == 34 and payload[-1] == 0x01:
        return payload[1:33], True, network
    return payload[1:33], False, network


# ---------------------------------------------------------------------------
# Recipients
# ---------------------------------------------------------------------------


class Pool(enum.StrEnum):
    """Value pool a payment lands in."""

    TRANSPARENT = "transparent"
    ORCHARD = "orchard"


@dataclass(frozen=True)
class Recipient:
    """Where a payment goes once the address is resolved.

    Exactly one of ``script_pubkey`` (transparent) or ``orchard_receiver``
    (43-byte raw Orchard address) is set.
    """

    address: str
    pool: Pool
    script_pubkey: bytes | None = None
    orchard_receiver: bytes | None = None

    @property
    def accepts_memo(self) -> bool:
        return self.pool is Pool.ORCHARD


def parse_recipient(address: str) -> Recipient:
    """Resolve a transparent or unified address to a payment destination.

    Unified addresses pay their Orchard receiver when present, otherwise
    their transparent receiver.

    Raises:
        ValueError: If the address cannot be parsed or has no usable receiver.
    """
    if is_unified_address(address):
        ua = decode_unified_address(address)
        orchard = ua.receiver(ReceiverType.ORCHARD)
        if orchard is not None:
            return Recipient(address, Pool.ORCHARD, orchard_receiver=orchard)
        p2pkh = ua.receiver(ReceiverType.P2PKH)
        if p2pkh is not None:
            return Recipient(address, Pool.TRANSPARENT, script_pubkey=p2pkh_lock_script(p2pkh))
        p2sh = ua.receiver(ReceiverType.P2SH)
        if p2sh is not None:
            return Recipient(address, Pool.TRANSPARENT, script_pubkey=p2sh_lock_script(p2sh))
        msg = f"Unified address has no Orchard or transparent receiver: {address}"
        raise ValueError(msg)
    decoded = decode_transparent_address(address)
    return Recipient(address, Pool.TRANSPARENT, script_pubkey=decoded.script_pubkey())
