"""Protocol interfaces for the liquidator's collaborators."""
from .chain import BalanceSource, BlockSource, ChainClient
from .lend import BorrowerSource, ExchangeRateSource, LiquidationSimulator
from .price_oracle import PriceOracle

__all__ = [
    "BalanceSource",
    "BlockSource",
    "BorrowerSource",
    "ChainClient",
    "ExchangeRateSource",
    "LiquidationSimulator",
    "PriceOracle",
]
