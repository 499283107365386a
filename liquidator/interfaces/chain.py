"""Chain client protocols — blockchain query abstraction."""
from typing import Any, Protocol


class BlockSource(Protocol):
    """Anything that reports the latest block height."""

    async def latest_block_height(self) -> int: ...


class BalanceSource(Protocol):
    """Owned balance of the liquidating wallet, in raw units."""

    async def owned_balance(self) -> int: ...


class ChainClient(BlockSource, Protocol):
    """Abstract interface for blockchain queries."""

    async def balance(self, address: str, denom: str) -> int: ...

    async def query_contract_smart(
        self, address: str, code_hash: str, query: dict[str, Any]
    ) -> Any: ...
