"""Exception hierarchy for the liquidator."""
from __future__ import annotations


class LiquidatorError(Exception):
    """Base class for liquidator errors."""


class MissingPriceError(LiquidatorError):
    """A required symbol has no price in the current snapshot."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"No price available for '{symbol}'")
        self.symbol = symbol


class SimulationError(LiquidatorError):
    """A liquidation simulation failed or returned an inconsistent result."""


class ChainError(LiquidatorError):
    """Chain query failed on every configured endpoint."""
