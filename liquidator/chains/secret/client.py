"""Secret Network REST client with fallback support."""
from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import ChainError

logger = logging.getLogger(__name__)


class SecretClient:
    """Secret Network LCD client with automatic endpoint fallback.

    Contract queries go through a query relay mounted at
    ``ChainConfig.query_path`` that accepts the plaintext query and handles
    encryption towards the enclave.
    """

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.query_path = config.query_path.rstrip("/")
        self.current_rpc_index = 0

    async def rest_call(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Make a REST call with fallback to alternative endpoints."""
        if not self.endpoints:
            raise ChainError("No RPC endpoints configured")

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            url = self.endpoints[rpc_index].rstrip("/") + path

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.request(
                        method,
                        url,
                        json=payload,
                        params=params,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if response.status != 200 or result.get("code"):
                            raise RuntimeError(
                                f"HTTP {response.status}: {result.get('message', result)}"
                            )

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", self.endpoints[rpc_index])
                            self.current_rpc_index = rpc_index

                        return result
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise ChainError(f"All RPC endpoints failed. Last error: {last_error}")

    async def latest_block_height(self) -> int:
        """Height of the latest committed block."""
        result = await self.rest_call("GET", "/cosmos/base/tendermint/v1beta1/blocks/latest")
        return int(result["block"]["header"]["height"])

    async def balance(self, address: str, denom: str) -> int:
        """Raw balance of ``denom`` held by ``address``."""
        result = await self.rest_call(
            "GET",
            f"/cosmos/bank/v1beta1/balances/{address}/by_denom",
            params={"denom": denom},
        )
        return int(result.get("balance", {}).get("amount", 0))

    async def query_contract_smart(
        self, address: str, code_hash: str, query: dict[str, Any]
    ) -> Any:
        """Run a smart query against a contract and return the decoded answer."""
        result = await self.rest_call(
            "POST",
            f"{self.query_path}/{address}",
            payload={"code_hash": code_hash, "query": query},
        )
        return result.get("data")


class WalletBalance:
    """Owned balance of the liquidator's wallet."""

    def __init__(self, client: SecretClient, address: str, denom: str) -> None:
        self._client = client
        self._address = address
        self._denom = denom

    async def owned_balance(self) -> int:
        return await self._client.balance(self._address, self._denom)
