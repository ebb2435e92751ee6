"""Node JSON-RPC client: chain state, UTXOs, broadcast, polling waits.

Async client for a zebrad/zcashd JSON-RPC endpoint:
- getblockchaininfo, getblockcount, getblockhash, getblock
- getaddressutxos
- sendrawtransaction, getrawtransaction

The ``wait_for_*`` helpers poll at ``NodeConfig.poll_interval`` until their
condition holds or the caller's timeout runs out.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from t2z.chain.models import BlockchainInfo, NodeUtxo
from t2z.errors import ChainTimeoutError, NodeRPCError

if TYPE_CHECKING:
    from t2z.config.settings import NodeConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

# zcashd/zebrad: "No information available about transaction"
RPC_INVALID_ADDRESS_OR_KEY = -5


class NodeClient:
    """Async JSON-RPC client for a Zcash full node.

    Usage::

        node = NodeClient(config)
        await node.connect()
        try:
            height = await node.get_block_count()
            txid = await node.send_raw_transaction(raw_tx)
        finally:
            await node.close()
    """

    def __init__(self, config: NodeConfig) -> None:
        """Initialize the node client.

        Args:
            config: Node configuration (url, credentials, timeouts).
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        auth = None
        if self._config.user:
            auth = httpx.BasicAuth(self._config.user, self._config.password)
        self._client = httpx.AsyncClient(
            base_url=self._config.url.rstrip("/"),
            headers={"Content-Type": "application/json"},
            auth=auth,
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    # ------------------------------------------------------------------
    # Chain state
    # ------------------------------------------------------------------

    async def get_blockchain_info(self) -> BlockchainInfo:
        result = await self._call("getblockchaininfo")
        return BlockchainInfo.from_dict(result)

    async def get_block_count(self) -> int:
        return int(await self._call("getblockcount"))

    async def get_block_hash(self, height: int) -> str:
        return str(await self._call("getblockhash", height))

    async def get_block(self, hash_or_height: str | int, verbosity: int = 1) -> Any:
        """Fetch a block.

        Args:
            hash_or_height: Block hash (hex) or height.
            verbosity: 0 for raw hex, 1 for a JSON object with txids,
                2 for a JSON object with decoded transactions.
        """
        return await self._call("getblock", str(hash_or_height), verbosity)

    # ------------------------------------------------------------------
    # UTXOs and transactions
    # ------------------------------------------------------------------

    async def get_address_utxos(self, *addresses: str) -> list[NodeUtxo]:
        """List unspent transparent outputs paying any of *addresses*."""
        items = await self._call("getaddressutxos", {"addresses": list(addresses)})
        return [NodeUtxo.from_dict(item) for item in items]

    async def send_raw_transaction(self, raw_tx: bytes | str) -> str:
        """Broadcast a signed transaction.

        Args:
            raw_tx: Raw transaction bytes or their hex encoding.

        Returns:
            The txid reported by the node.
        """
        tx_hex = raw_tx.hex() if isinstance(raw_tx, bytes) else raw_tx
        txid = str(await self._call("sendrawtransaction", tx_hex))
        logger.info("Broadcast transaction %s", txid)
        return txid

    async def get_raw_transaction(self, txid: str, verbose: bool = False) -> Any:
        """Fetch a transaction as hex, or as a JSON object when *verbose*."""
        return await self._call("getrawtransaction", txid, 1 if verbose else 0)

    # ------------------------------------------------------------------
    # Polling waits
    # ------------------------------------------------------------------

    async def wait_for_ready(self, timeout: float = 30.0) -> BlockchainInfo:
        """Wait until the node answers ``getblockchaininfo``.

        Raises:
            ChainTimeoutError: If the node is not ready within *timeout* seconds.
        """

        async def check() -> BlockchainInfo | None:
            try:
                return await self.get_blockchain_info()
            except NodeRPCError as exc:
                logger.warning("Node not ready yet: %s", exc.message)
                return None

        return await self._poll(check, timeout, "node to become ready")

    async def wait_for_blocks(self, target_height: int, timeout: float = 60.0) -> int:
        """Wait until the chain reaches *target_height*.

        Returns:
            The block count once it is at least *target_height*.

        Raises:
            ChainTimeoutError: If the height is not reached within *timeout*.
        """

        async def check() -> int | None:
            count = await self.get_block_count()
            return count if count >= target_height else None

        return await self._poll(check, timeout, f"block height {target_height}")

    async def wait_for_confirmation(
        self, txid: str, confirmations: int = 1, timeout: float = 120.0
    ) -> dict[str, Any]:
        """Wait until *txid* has at least *confirmations* confirmations.

        Returns:
            The verbose ``getrawtransaction`` result.

        Raises:
            ChainTimeoutError: If not confirmed within *timeout* seconds.
        """

        async def check() -> dict[str, Any] | None:
            try:
                tx = await self.get_raw_transaction(txid, verbose=True)
            except NodeRPCError as exc:
                if exc.rpc_code == RPC_INVALID_ADDRESS_OR_KEY:
                    return None
                raise
            return tx if tx.get("confirmations", 0) >= confirmations else None

        return await self._poll(check, timeout, f"{confirmations} confirmations of {txid}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _poll(
        self, check: Callable[[], Awaitable[T | None]], timeout: float, what: str
    ) -> T:
        deadline = time.monotonic() + timeout
        while True:
            result = await check()
            if result is not None:
                return result
            if time.monotonic() >= deadline:
                msg = f"Timed out after {timeout}s waiting for {what}"
                raise ChainTimeoutError(msg)
            await asyncio.sleep(self._config.poll_interval)

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            msg = "Node client not connected. Call connect() first."
            raise NodeRPCError(msg)
        return self._client

    async def _call(self, method: str, *params: Any) -> Any:
        """Make one JSON-RPC call and return its ``result``.

        Raises:
            NodeRPCError: On transport errors, HTTP errors, or an RPC error object.
        """
        client = self._ensure_connected()
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": list(params),
            "id": self._request_id,
        }
        logger.debug("RPC %s %s", method, params)
        try:
            response = await client.post("/", json=payload)
        except httpx.HTTPError as exc:
            raise NodeRPCError(f"RPC {method} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            msg = f"RPC {method} returned non-JSON response ({response.status_code})"
            raise NodeRPCError(msg) from exc

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            if isinstance(error, dict):
                msg = f"RPC {method} error: {error.get('message', error)}"
                raise NodeRPCError(msg, rpc_code=error.get("code"))
            msg = f"RPC {method} error: {error}"
            raise NodeRPCError(msg)
        if response.status_code != 200:
            msg = f"RPC {method} failed ({response.status_code})"
            raise NodeRPCError(msg)
        return body.get("result")
