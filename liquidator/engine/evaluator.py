"""Per-borrower evaluation — best achievable seizure across collateral markets."""
from __future__ import annotations

import logging
from decimal import Decimal

from .. import decimal_math as dm
from ..errors import SimulationError
from ..interfaces.lend import LiquidationSimulator
from ..models import (
    BorrowerPosition,
    Candidate,
    CollateralMarket,
    Evaluation,
    LendConstants,
    Market,
    SimulationResult,
)
from ..state import MarketState

logger = logging.getLogger(__name__)


def max_payable(borrower: BorrowerPosition, constants: LendConstants) -> Decimal:
    """Largest repay allowed in one liquidation (raw debt units)."""
    return dm.multiply(borrower.actual_balance, constants.close_factor)


def check_simulation(result: SimulationResult) -> None:
    """Raise SimulationError on a result the protocol could never produce."""
    if result.seize_amount < 0 or result.shortfall < 0:
        raise SimulationError(
            f"Negative simulation amounts: seize={result.seize_amount} "
            f"shortfall={result.shortfall}"
        )
    if result.shortfall > result.seize_amount:
        raise SimulationError(
            f"Shortfall {result.shortfall} exceeds seize amount {result.seize_amount}"
        )


class CandidateEvaluator:
    """Simulates liquidations of one borrower against each collateral market.

    The first collateral market is assumed to be the most profitable one, so a
    full (zero-shortfall) liquidation against it ends the search immediately.
    Otherwise every market is simulated and the one seizing the most USD wins.
    """

    def __init__(
        self,
        simulator: LiquidationSimulator,
        constants: LendConstants,
        state: MarketState,
    ) -> None:
        self._simulator = simulator
        self._constants = constants
        self._state = state

    async def evaluate(
        self,
        debt_market: Market,
        borrower: BorrowerPosition,
        block_height: int,
        exchange_rate: Decimal,
    ) -> Evaluation:
        if not borrower.collateral_markets:
            raise ValueError(f"Borrower {borrower.id} has no collateral markets")

        payable = max_payable(borrower, self._constants)

        if payable < 1:
            # Dust: nothing worth simulating.
            return Evaluation(
                is_best_case=True,
                candidate=Candidate(
                    id=borrower.id,
                    payable=payable,
                    seizable_usd=dm.ZERO,
                    market_info=borrower.collateral_markets[0],
                ),
            )

        best_seizable_usd = dm.ZERO
        best_payable = dm.ZERO
        best_index = 0

        for i, m in enumerate(borrower.collateral_markets):
            info = await self._simulate(debt_market, borrower, block_height, payable, m)

            # Seize amounts are in interest-bearing tokens; convert to underlying.
            seizable = dm.multiply(info.seize_amount, exchange_rate)

            if info.shortfall == 0:
                seizable_usd = self._state.usd_value(seizable, m.symbol, m.decimals)
                if i == 0:
                    return Evaluation(
                        is_best_case=True,
                        candidate=Candidate(
                            id=borrower.id,
                            payable=payable,
                            seizable_usd=seizable_usd,
                            market_info=m,
                        ),
                    )
                actual_payable = payable
                actual_seizable_usd = seizable_usd
            else:
                actual_payable, actual_seizable_usd = self._partial(
                    debt_market, m, info, exchange_rate
                )

            logger.debug(
                "Borrower %s via %s: payable=%s seizable_usd=%s",
                borrower.id, m.symbol, actual_payable, actual_seizable_usd,
            )

            if actual_seizable_usd > best_seizable_usd:
                best_payable = actual_payable
                best_seizable_usd = actual_seizable_usd
                best_index = i

        return Evaluation(
            is_best_case=False,
            candidate=Candidate(
                id=borrower.id,
                payable=best_payable,
                seizable_usd=best_seizable_usd,
                market_info=borrower.collateral_markets[best_index],
            ),
        )

    async def _simulate(
        self,
        debt_market: Market,
        borrower: BorrowerPosition,
        block_height: int,
        payable: Decimal,
        collateral: CollateralMarket,
    ) -> SimulationResult:
        info = await self._simulator.simulate(
            debt_market, borrower, block_height, payable, collateral=collateral
        )
        check_simulation(info)
        return info

    def _partial(
        self,
        debt_market: Market,
        m: CollateralMarket,
        info: SimulationResult,
        exchange_rate: Decimal,
    ) -> tuple[Decimal, Decimal]:
        """Scale a shortfalling liquidation down to what the collateral covers.

        Returns ``(actual_payable, actual_seizable_usd)``.
        """
        actual_seizable = info.seize_amount - info.shortfall
        if actual_seizable == 0:
            return dm.ZERO, dm.ZERO

        seizable_price = dm.multiply(
            actual_seizable, self._state.price_of(m.symbol), exchange_rate
        )
        borrowed_premium = dm.multiply(
            self._constants.premium, self._state.price_of(debt_market.symbol)
        )
        actual_payable = dm.divide(seizable_price, borrowed_premium)
        actual_seizable_usd = self._state.usd_value(actual_seizable, m.symbol, m.decimals)
        return actual_payable, actual_seizable_usd
