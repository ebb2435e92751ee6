"""Network upgrades and consensus branch IDs.

Activation heights are tabulated for mainnet and testnet.  Regtest nodes
run with mainnet parameters, so callers on regtest pass ``use_mainnet=True``
and pick a target height past the last activation.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

# Blocks between the target height and the expiry height.
DEFAULT_EXPIRY_DELTA = 40


class Network(enum.StrEnum):
    """Zcash networks with distinct consensus parameters."""

    MAINNET = "mainnet"
    TESTNET = "testnet"

    @classmethod
    def from_flag(cls, use_mainnet: bool) -> Network:
        return cls.MAINNET if use_mainnet else cls.TESTNET


@dataclass(frozen=True)
class NetworkUpgrade:
    """A consensus upgrade and where it activates."""

    name: str
    branch_id: int
    mainnet_height: int
    testnet_height: int

    def activation_height(self, network: Network) -> int:
        if network is Network.MAINNET:
            return self.mainnet_height
        return self.testnet_height


OVERWINTER = NetworkUpgrade("Overwinter", 0x5BA81B19, 347_500, 207_500)
SAPLING = NetworkUpgrade("Sapling", 0x76B809BB, 419_200, 280_000)
BLOSSOM = NetworkUpgrade("Blossom", 0x2BB40E60, 653_600, 584_000)
HEARTWOOD = NetworkUpgrade("Heartwood", 0xF5B9230B, 903_000, 903_800)
CANOPY = NetworkUpgrade("Canopy", 0xE9FF75A6, 1_046_400, 1_028_500)
NU5 = NetworkUpgrade("NU5", 0xC2D6D0B4, 1_687_104, 1_842_420)
NU6 = NetworkUpgrade("NU6", 0xC8E71055, 2_726_400, 2_976_000)
NU6_1 = NetworkUpgrade("NU6.1", 0x4DEC4DF0, 3_146_400, 3_536_500)

# Ordered by activation.
UPGRADES: tuple[NetworkUpgrade, ...] = (
    OVERWINTER,
    SAPLING,
    BLOSSOM,
    HEARTWOOD,
    CANOPY,
    NU5,
    NU6,
    NU6_1,
)

LATEST_UPGRADE = UPGRADES[-1]


def upgrade_for_height(height: int | None, network: Network) -> NetworkUpgrade | None:
    """Return the upgrade active at *height*, or None before Overwinter.

    A height of None means "the latest known upgrade".
    """
    if height is None:
        return LATEST_UPGRADE
    if height < 0:
        msg = f"height must be non-negative, got {height}"
        raise ValueError(msg)
    active = None
    for upgrade in UPGRADES:
        if height >= upgrade.activation_height(network):
            active = upgrade
    return active


def branch_id_for_height(height: int | None, network: Network) -> int:
    """Consensus branch ID in force at *height* (0 before Overwinter)."""
    upgrade = upgrade_for_height(height, network)
    return upgrade.branch_id if upgrade is not None else 0


def supports_orchard(height: int | None, network: Network) -> bool:
    """True if v5 transactions (and the Orchard pool) are valid at *height*."""
    if height is None:
        return True
    return height >= NU5.activation_height(network)


def expiry_height_for(height: int | None, delta: int = DEFAULT_EXPIRY_DELTA) -> int:
    """Expiry height for a transaction targeting *height* (0 = never expires)."""
    if height is None:
        return 0
    return height + delta
