"""
slotpacer - JSON-RPC Transport

Uses aiohttp for all execution-layer JSON-RPC calls.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

import aiohttp

from .errors import PacerError
from .types import Block, Network, Receipt

logger = logging.getLogger("slotpacer.rpc")

KNOWN_NETWORKS = {
    1: "mainnet",
    17000: "holesky",
    560048: "hoodi",
    11155111: "sepolia",
}


class JsonRpcTransport:
    """Ethereum JSON-RPC transport using aiohttp."""

    def __init__(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout_ms: int = 10_000,
        polling_interval: float = 4.0,
    ) -> None:
        self._url = url
        self._headers = dict(headers or {})
        self._timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
        self._polling_interval = polling_interval
        self._session: Optional[aiohttp.ClientSession] = None
        self._request_id = 0

    @property
    def url(self) -> str:
        return self._url

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    **self._headers,
                },
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        session = await self._ensure_session()
        self._request_id += 1
        body = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            async with session.post(self._url, json=body) as resp:
                if resp.status == 429:
                    raise PacerError.rpc(f"{method}: rate limited", 429)
                if not (200 <= resp.status < 300):
                    error_text = await resp.text()
                    raise PacerError.connection(
                        f"{method}: HTTP {resp.status}: {error_text or resp.reason}"
                    )
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise PacerError.rpc(f"{method}: response is not JSON") from e
        except PacerError:
            raise
        except asyncio.TimeoutError as e:
            raise PacerError.connection(f"{method}: request to {self._url} timed out") from e
        except aiohttp.ClientError as e:
            raise PacerError.connection(f"{method}: request failed: {e}") from e

        if not isinstance(data, dict):
            raise PacerError.rpc(f"{method}: malformed response")
        error = data.get("error")
        if isinstance(error, dict):
            raise PacerError.rpc(
                f"{method}: {error.get('message', 'unknown error')}", error.get("code")
            )
        if error:
            raise PacerError.rpc(f"{method}: {error}")
        return data.get("result")

    # =========================================================================
    # Chain queries
    # =========================================================================

    async def get_network(self) -> Network:
        chain_id = _hex_int(await self._call("eth_chainId"))
        return Network(chain_id=chain_id, name=KNOWN_NETWORKS.get(chain_id, "unknown"))

    async def get_block_number(self) -> int:
        return _hex_int(await self._call("eth_blockNumber"))

    async def get_block(self, number: Union[int, str] = "latest") -> Block:
        tag = hex(number) if isinstance(number, int) else number
        data = await self._call("eth_getBlockByNumber", [tag, False])
        if data is None:
            raise PacerError.rpc(f"eth_getBlockByNumber: block {number} not found")
        return _parse_block(data)

    async def get_nonce(self, address: str) -> int:
        return _hex_int(await self._call("eth_getTransactionCount", [address, "pending"]))

    async def get_balance(self, address: str) -> int:
        return _hex_int(await self._call("eth_getBalance", [address, "latest"]))

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return _hex_int(await self._call("eth_estimateGas", [tx]))

    # =========================================================================
    # Transactions
    # =========================================================================

    async def broadcast_transaction(self, raw: bytes) -> str:
        """Send a signed transaction; returns the hash reported by the node."""
        return await self._call("eth_sendRawTransaction", ["0x" + raw.hex()])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        data = await self._call("eth_getTransactionReceipt", [tx_hash])
        if data is None:
            return None
        return _parse_receipt(data)

    async def wait_for_receipt(self, tx_hash: str) -> Receipt:
        """Poll until the transaction is included. Never gives up on its own."""
        while True:
            try:
                receipt = await self.get_transaction_receipt(tx_hash)
            except PacerError as e:
                logger.debug("Receipt poll for %s failed: %s", tx_hash, e)
                receipt = None
            if receipt is not None:
                return receipt
            await asyncio.sleep(self._polling_interval)


# =============================================================================
# Parsers
# =============================================================================


def _hex_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)


def _parse_block(data: Dict[str, Any]) -> Block:
    return Block(
        number=_hex_int(data.get("number")),
        base_fee_per_gas=_hex_int(data.get("baseFeePerGas")),
        gas_limit=_hex_int(data.get("gasLimit")),
        timestamp=_hex_int(data.get("timestamp")),
        hash=data.get("hash"),
    )


def _parse_receipt(data: Dict[str, Any]) -> Receipt:
    return Receipt(
        transaction_hash=data.get("transactionHash", ""),
        block_number=_hex_int(data.get("blockNumber")),
        status=_hex_int(data.get("status", "0x1")),
        gas_used=_hex_int(data.get("gasUsed")),
    )
