"""Market state snapshot — prices, block height and gas pricing for a round."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Mapping

from . import decimal_math as dm
from .config import GasConfig
from .errors import MissingPriceError


@dataclass(frozen=True)
class MarketState:
    """Read-only snapshot used for every valuation within a round.

    Refreshing produces a new snapshot; an instance is never mutated.
    """

    prices: Mapping[str, Decimal] = field(default_factory=dict)
    block_height: int = 0
    gas: GasConfig = field(default_factory=GasConfig)

    def with_prices(self, prices: Mapping[str, Decimal]) -> MarketState:
        """Snapshot with ``prices`` merged over the current ones."""
        merged = dict(self.prices)
        merged.update(prices)
        return replace(self, prices=merged)

    def with_fresh_prices(self, prices: Mapping[str, Decimal]) -> MarketState:
        """Snapshot priced by ``prices`` alone; symbols absent from it go unpriced."""
        return replace(self, prices=dict(prices))

    def with_block_height(self, block_height: int) -> MarketState:
        return replace(self, block_height=block_height)

    def price_of(self, symbol: str) -> Decimal:
        """Return the USD price of ``symbol``; raises MissingPriceError."""
        try:
            return self.prices[symbol]
        except KeyError:
            raise MissingPriceError(symbol) from None

    def usd_value(self, amount: dm.DecimalLike, symbol: str, decimals: int) -> Decimal:
        """USD value of a raw ``amount`` of ``symbol`` with ``decimals`` places."""
        return dm.multiply(dm.from_raw(amount, decimals), self.price_of(symbol))

    def gas_cost_usd(self, native_cost: dm.DecimalLike) -> Decimal:
        """USD cost of ``native_cost`` gas units at the configured gas price."""
        fee = dm.multiply(native_cost, self.gas.price)
        return self.usd_value(fee, self.gas.native_symbol, self.gas.native_decimals)
