"""Node RPC data models: chain info, blocks, address UTXOs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from t2z.pczt.inputs import TransparentInput


@dataclass(frozen=True)
class BlockchainInfo:
    """Subset of the ``getblockchaininfo`` result."""

    chain: str = ""
    blocks: int = 0
    headers: int = 0
    best_block_hash: str = ""
    verification_progress: float = 0.0
    upgrades: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockchainInfo:
        return cls(
            chain=data.get("chain", ""),
            blocks=data.get("blocks", 0),
            headers=data.get("headers", 0),
            best_block_hash=data.get("bestblockhash", ""),
            verification_progress=float(data.get("verificationprogress", 0.0)),
            upgrades=data.get("upgrades", {}) or {},
        )


@dataclass(frozen=True)
class NodeUtxo:
    """An unspent transparent output reported by ``getaddressutxos``.

    Attributes:
        address: Address the output pays.
        txid: Funding transaction id (display hex).
        output_index: Output index in the funding transaction.
        script: Locking script (hex).
        satoshis: Value in zatoshis.
        height: Block height the output was mined at.
    """

    address: str
    txid: str
    output_index: int
    script: str
    satoshis: int
    height: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeUtxo:
        return cls(
            address=data.get("address", ""),
            txid=data["txid"],
            output_index=data["outputIndex"],
            script=data["script"],
            satoshis=data["satoshis"],
            height=data.get("height", 0),
        )

    def to_transparent_input(self, pubkey: bytes) -> TransparentInput:
        """Spendable input for this UTXO, controlled by *pubkey*."""
        return TransparentInput(
            pubkey=pubkey,
            txid=bytes.fromhex(self.txid)[::-1],
            vout=self.output_index,
            amount=self.satoshis,
            script_pubkey=bytes.fromhex(self.script),
        )
