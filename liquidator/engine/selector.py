"""Per-market candidate selection with a bounded simulation budget."""
from __future__ import annotations

import logging
from contextlib import aclosing
from dataclasses import replace
from decimal import Decimal
from typing import AsyncIterator, Iterable, Sequence

from .. import decimal_math as dm
from ..errors import SimulationError
from ..interfaces.lend import ExchangeRateSource
from ..models import BorrowerPosition, Candidate, Evaluation, LendConstants, Market
from ..state import MarketState
from .evaluator import CandidateEvaluator, max_payable

logger = logging.getLogger(__name__)


def strip_blacklisted(
    borrower: BorrowerPosition, blacklisted_symbols: Iterable[str]
) -> BorrowerPosition:
    """Copy of ``borrower`` without collateral in blacklisted markets."""
    blacklist = set(blacklisted_symbols)
    markets = tuple(m for m in borrower.collateral_markets if m.symbol not in blacklist)
    if len(markets) == len(borrower.collateral_markets):
        return borrower
    return replace(borrower, collateral_markets=markets)


def liquidatable(
    borrowers: Iterable[BorrowerPosition], blacklisted_symbols: Iterable[str]
) -> list[BorrowerPosition]:
    """Borrowers in shortfall that still have non-blacklisted collateral."""
    blacklist = tuple(blacklisted_symbols)
    result: list[BorrowerPosition] = []
    for borrower in borrowers:
        if not borrower.has_shortfall:
            continue
        borrower = strip_blacklisted(borrower, blacklist)
        if borrower.collateral_markets:
            result.append(borrower)
    return result


def net_estimate(
    borrower: BorrowerPosition,
    debt_market: Market,
    constants: LendConstants,
    state: MarketState,
) -> Decimal:
    """Call-free best-case value of liquidating ``borrower``.

    Assumes the full payable is repaid and seized from the first collateral
    market. Quantized to 15 places, ties rounded toward positive infinity.
    """
    payable = max_payable(borrower, constants)
    numerator = dm.multiply(
        payable,
        constants.premium,
        state.price_of(borrower.collateral_markets[0].symbol),
    )
    return dm.divide_half_ceiling(
        numerator, state.price_of(debt_market.symbol), dm.NET_ESTIMATE_SCALE
    )


class CandidateSelector:
    """Picks at most one liquidation candidate per debt market.

    Borrowers are ranked by their net estimate and evaluated in pairs, left
    to right. A pair's winner is adopted; the scan ends as soon as an adopted
    evaluation is a best case (or the list is exhausted).
    """

    def __init__(
        self,
        evaluator: CandidateEvaluator,
        rates: ExchangeRateSource,
        constants: LendConstants,
        state: MarketState,
        liquidation_cost_usd: Decimal,
        blacklisted_symbols: Iterable[str] = (),
        sort_collateral_by_price: bool = False,
    ) -> None:
        self._evaluator = evaluator
        self._rates = rates
        self._constants = constants
        self._state = state
        self._liquidation_cost_usd = liquidation_cost_usd
        self._blacklisted_symbols = tuple(blacklisted_symbols)
        self._sort_collateral_by_price = sort_collateral_by_price

    def _by_collateral_price(self, borrower: BorrowerPosition) -> BorrowerPosition:
        ordered = tuple(
            sorted(borrower.collateral_markets, key=lambda m: self._state.price_of(m.symbol))
        )
        return replace(borrower, collateral_markets=ordered)

    def rank(
        self, debt_market: Market, borrowers: Sequence[BorrowerPosition]
    ) -> list[BorrowerPosition]:
        """Order borrowers by ascending net estimate, then first collateral price."""
        if self._sort_collateral_by_price:
            borrowers = [self._by_collateral_price(b) for b in borrowers]

        def key(borrower: BorrowerPosition) -> tuple[Decimal, Decimal]:
            return (
                net_estimate(borrower, debt_market, self._constants, self._state),
                self._state.price_of(borrower.collateral_markets[0].symbol),
            )

        return sorted(borrowers, key=key)

    async def _evaluations(
        self,
        debt_market: Market,
        borrowers: Sequence[BorrowerPosition],
        exchange_rate: Decimal,
    ) -> AsyncIterator[Evaluation]:
        block_height = self._state.block_height
        for borrower in borrowers:
            try:
                yield await self._evaluator.evaluate(
                    debt_market, borrower, block_height, exchange_rate
                )
            except SimulationError as e:
                logger.warning(
                    "Skipping borrower %s in %s: %s", borrower.id, debt_market.symbol, e
                )

    async def select_best(
        self, debt_market: Market, borrowers: Sequence[BorrowerPosition]
    ) -> Candidate | None:
        candidates = liquidatable(borrowers, self._blacklisted_symbols)
        if not candidates:
            logger.info(
                "No liquidatable loans currently in %s. Skipping...",
                debt_market.contract.address,
            )
            return None

        ranked = self.rank(debt_market, candidates)
        exchange_rate = await self._rates.exchange_rate(
            debt_market, self._state.block_height
        )

        best: Evaluation | None = None
        async with aclosing(self._evaluations(debt_market, ranked, exchange_rate)) as evals:
            async for a in evals:
                if a.is_best_case:
                    best = a
                    break

                b = await anext(evals, None)
                if b is None:
                    best = a
                    break

                best = b if b.candidate.seizable_usd > a.candidate.seizable_usd else a
                if best.is_best_case:
                    break

        if best is None:
            return None

        if self._liquidation_cost_usd > best.candidate.seizable_usd:
            logger.info(
                "Best candidate %s in %s seizes $%s, below liquidation cost $%s",
                best.candidate.id,
                debt_market.symbol,
                best.candidate.seizable_usd,
                self._liquidation_cost_usd,
            )
            return None

        return best.candidate
