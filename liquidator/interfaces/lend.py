"""Lending protocol collaborators used during candidate selection."""
from decimal import Decimal
from typing import Protocol

from ..models import BorrowerPosition, CollateralMarket, Market, SimulationResult


class BorrowerSource(Protocol):
    """Lists a debt market's borrowers that are in shortfall."""

    async def list_shortfall_borrowers(
        self, market: Market, block_height: int
    ) -> list[BorrowerPosition]: ...


class LiquidationSimulator(Protocol):
    """Simulates repaying ``repay_amount`` of a borrower's debt."""

    async def simulate(
        self,
        debt_market: Market,
        borrower: BorrowerPosition,
        block_height: int,
        repay_amount: Decimal,
        collateral: CollateralMarket | None = None,
    ) -> SimulationResult: ...


class ExchangeRateSource(Protocol):
    """Token → underlying exchange rate of a market."""

    async def exchange_rate(self, market: Market, block_height: int) -> Decimal: ...
