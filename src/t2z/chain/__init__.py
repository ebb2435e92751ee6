"""Full node access over JSON-RPC."""

from t2z.chain.models import BlockchainInfo, NodeUtxo
from t2z.chain.rpc import NodeClient

__all__ = ["BlockchainInfo", "NodeClient", "NodeUtxo"]
