"""Unit tests for the candidate evaluator — simulator mocked."""
from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from liquidator import decimal_math as dm
from liquidator.engine.evaluator import CandidateEvaluator, check_simulation, max_payable
from liquidator.errors import MissingPriceError, SimulationError
from liquidator.models import LendConstants, Market, SimulationResult
from liquidator.state import MarketState

EXCHANGE_RATE = Decimal("1.02")


@pytest.fixture()
def simulator() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def evaluator(
    simulator: AsyncMock, constants: LendConstants, market_state: MarketState
) -> CandidateEvaluator:
    return CandidateEvaluator(simulator, constants, market_state)


class TestMaxPayable:
    def test_close_factor_applied(self, new_borrower, constants: LendConstants) -> None:
        assert max_payable(new_borrower("a", actual_balance=1000), constants) == 500


class TestCheckSimulation:
    def test_consistent(self) -> None:
        check_simulation(SimulationResult(seize_amount=10, shortfall=10))

    def test_shortfall_exceeds_seize(self) -> None:
        with pytest.raises(SimulationError, match="exceeds"):
            check_simulation(SimulationResult(seize_amount=10, shortfall=11))

    def test_negative(self) -> None:
        with pytest.raises(SimulationError, match="Negative"):
            check_simulation(SimulationResult(seize_amount=-1, shortfall=0))


class TestDust:
    @pytest.mark.asyncio
    async def test_payable_below_one_unit_short_circuits(
        self, evaluator: CandidateEvaluator, simulator: AsyncMock,
        debt_market: Market, new_borrower,
    ) -> None:
        borrower = new_borrower("dust", actual_balance=1, collateral=("slSCRT", "slATOM"))

        result = await evaluator.evaluate(debt_market, borrower, 100, EXCHANGE_RATE)

        assert result.is_best_case is True
        assert result.candidate.seizable_usd == 0
        assert result.candidate.payable == Decimal("0.5")
        assert result.candidate.market_info.symbol == "slSCRT"
        simulator.simulate.assert_not_called()


class TestScenarios:
    @pytest.mark.asyncio
    async def test_full_liquidation_on_single_collateral(
        self, evaluator: CandidateEvaluator, simulator: AsyncMock,
        debt_market: Market, market_state: MarketState, new_borrower,
    ) -> None:
        simulator.simulate.return_value = SimulationResult(seize_amount=550, shortfall=0)
        borrower = new_borrower("a", actual_balance=1000)

        result = await evaluator.evaluate(debt_market, borrower, 100, EXCHANGE_RATE)

        assert result.is_best_case is True
        assert result.candidate.payable == 500
        assert result.candidate.seizable_usd == market_state.usd_value(
            dm.multiply(550, EXCHANGE_RATE), "slSCRT", 6
        )
        assert result.candidate.market_info.symbol == "slSCRT"
        simulator.simulate.assert_awaited_once()
        args, kwargs = simulator.simulate.call_args
        assert args == (debt_market, borrower, 100, Decimal(500))
        assert kwargs["collateral"].symbol == "slSCRT"

    @pytest.mark.asyncio
    async def test_partial_liquidation(
        self, evaluator: CandidateEvaluator, simulator: AsyncMock,
        debt_market: Market, market_state: MarketState, new_borrower,
    ) -> None:
        simulator.simulate.return_value = SimulationResult(seize_amount=550, shortfall=50)
        borrower = new_borrower("a", actual_balance=1000)

        result = await evaluator.evaluate(debt_market, borrower, 100, EXCHANGE_RATE)

        expected_payable = dm.divide(
            dm.multiply(500, Decimal("2.0"), EXCHANGE_RATE),
            dm.multiply(Decimal("1.1"), Decimal("1.0")),
        )
        assert result.is_best_case is False
        assert result.candidate.payable == expected_payable
        assert result.candidate.seizable_usd == market_state.usd_value(500, "slSCRT", 6)
        assert result.candidate.seizable_usd == Decimal("0.001")


class TestCollateralSearch:
    @pytest.mark.asyncio
    async def test_fast_path_skips_remaining_markets(
        self, evaluator: CandidateEvaluator, simulator: AsyncMock,
        debt_market: Market, new_borrower,
    ) -> None:
        simulator.simulate.side_effect = [
            SimulationResult(seize_amount=550, shortfall=0),
            SimulationResult(seize_amount=10**12, shortfall=0),
        ]
        borrower = new_borrower("a", collateral=("slSCRT", "slATOM"))

        result = await evaluator.evaluate(debt_market, borrower, 100, EXCHANGE_RATE)

        assert result.is_best_case is True
        assert result.candidate.market_info.symbol == "slSCRT"
        assert simulator.simulate.await_count == 1

    @pytest.mark.asyncio
    async def test_later_full_liquidation_is_not_best_case(
        self, evaluator: CandidateEvaluator, simulator: AsyncMock,
        debt_market: Market, market_state: MarketState, new_borrower,
    ) -> None:
        simulator.simulate.side_effect = [
            SimulationResult(seize_amount=550, shortfall=500),
            SimulationResult(seize_amount=550, shortfall=0),
            SimulationResult(seize_amount=550, shortfall=540),
        ]
        borrower = new_borrower("a", collateral=("slSCRT", "slATOM", "slUSDC"))

        result = await evaluator.evaluate(debt_market, borrower, 100, EXCHANGE_RATE)

        assert result.is_best_case is False
        assert result.candidate.market_info.symbol == "slATOM"
        assert result.candidate.payable == 500
        assert result.candidate.seizable_usd == market_state.usd_value(
            dm.multiply(550, EXCHANGE_RATE), "slATOM", 6
        )
        # No early exit without the fast path.
        assert simulator.simulate.await_count == 3

    @pytest.mark.asyncio
    async def test_picks_strict_maximum(
        self, evaluator: CandidateEvaluator, simulator: AsyncMock,
        debt_market: Market, new_borrower,
    ) -> None:
        # slSCRT ($2) seizes 300 units, slATOM ($10) seizes 60 units: same USD.
        simulator.simulate.side_effect = [
            SimulationResult(seize_amount=550, shortfall=250),
            SimulationResult(seize_amount=550, shortfall=490),
        ]
        borrower = new_borrower("a", collateral=("slSCRT", "slATOM"))

        result = await evaluator.evaluate(debt_market, borrower, 100, EXCHANGE_RATE)

        assert result.candidate.market_info.symbol == "slSCRT"
        assert result.candidate.seizable_usd == Decimal("0.0006")

    @pytest.mark.asyncio
    async def test_nothing_seizable_falls_back_to_first_market(
        self, evaluator: CandidateEvaluator, simulator: AsyncMock,
        debt_market: Market, new_borrower,
    ) -> None:
        simulator.simulate.side_effect = [
            SimulationResult(seize_amount=100, shortfall=100),
            SimulationResult(seize_amount=5, shortfall=5),
        ]
        borrower = new_borrower("a", collateral=("slSCRT", "slATOM"))

        result = await evaluator.evaluate(debt_market, borrower, 100, EXCHANGE_RATE)

        assert result.is_best_case is False
        assert result.candidate.seizable_usd == 0
        assert result.candidate.payable == 0
        assert result.candidate.market_info.symbol == "slSCRT"


class TestErrors:
    @pytest.mark.asyncio
    async def test_inconsistent_result_raises(
        self, evaluator: CandidateEvaluator, simulator: AsyncMock,
        debt_market: Market, new_borrower,
    ) -> None:
        simulator.simulate.return_value = SimulationResult(seize_amount=10, shortfall=20)

        with pytest.raises(SimulationError):
            await evaluator.evaluate(debt_market, new_borrower("a"), 100, EXCHANGE_RATE)

    @pytest.mark.asyncio
    async def test_missing_collateral_price_raises(
        self, evaluator: CandidateEvaluator, simulator: AsyncMock,
        debt_market: Market, new_borrower,
    ) -> None:
        simulator.simulate.return_value = SimulationResult(seize_amount=10, shortfall=0)

        with pytest.raises(MissingPriceError):
            await evaluator.evaluate(
                debt_market, new_borrower("a", collateral=("slETH",)), 100, EXCHANGE_RATE
            )

    @pytest.mark.asyncio
    async def test_no_collateral_raises(
        self, evaluator: CandidateEvaluator, debt_market: Market, new_borrower,
    ) -> None:
        with pytest.raises(ValueError, match="no collateral"):
            await evaluator.evaluate(
                debt_market, new_borrower("a", collateral=()), 100, EXCHANGE_RATE
            )
