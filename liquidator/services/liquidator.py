"""Liquidation rounds — one candidate search across every debt market."""
from __future__ import annotations

import asyncio
import enum
import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

from ..chains.secret import SecretClient, WalletBalance
from ..config import AppConfig, LiquidatorConfig
from ..engine import CandidateEvaluator, CandidateSelector
from ..interfaces.chain import BalanceSource, BlockSource
from ..interfaces.lend import BorrowerSource, ExchangeRateSource, LiquidationSimulator
from ..interfaces.price_oracle import PriceOracle
from ..models import LendConstants, Loan, Market
from ..oracles import PythOracle
from ..protocols.lend import LendAdapter
from ..state import MarketState

logger = logging.getLogger(__name__)


class RoundState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class Liquidator:
    """Runs liquidation rounds over the configured debt markets.

    At most one round is in flight at a time; a round started while another
    runs returns no loans. Once the wallet runs dry the liquidator stops for
    good.
    """

    def __init__(
        self,
        markets: Sequence[Market],
        constants: LendConstants,
        borrowers: BorrowerSource,
        simulator: LiquidationSimulator,
        rates: ExchangeRateSource,
        balance: BalanceSource,
        blocks: BlockSource,
        config: LiquidatorConfig | None = None,
        state: MarketState | None = None,
        oracle: PriceOracle | None = None,
    ) -> None:
        self._markets = tuple(markets)
        self._constants = constants
        self._borrowers = borrowers
        self._simulator = simulator
        self._rates = rates
        self._balance = balance
        self._blocks = blocks
        self._config = config or LiquidatorConfig()
        self._state = state or MarketState(gas=self._config.gas)
        self._oracle = oracle
        self._round_state = RoundState.IDLE

    @classmethod
    async def create(
        cls,
        config: AppConfig,
        client: SecretClient | None = None,
        oracle: PriceOracle | None = None,
    ) -> Liquidator:
        """Build a liquidator from the overseer's on-chain configuration."""
        client = client or SecretClient(config.chain)
        oracle = oracle or PythOracle(config.price_oracle.pyth)
        settings = config.liquidator

        adapter = LendAdapter(client, config.overseer, settings.borrowers_page_size)
        constants = await adapter.fetch_constants()
        markets = await adapter.fetch_markets(
            settings.markets_page_size, settings.blacklisted_symbols
        )

        liquidator = cls(
            markets=markets,
            constants=constants,
            borrowers=adapter,
            simulator=adapter,
            rates=adapter,
            balance=WalletBalance(client, config.wallet.address, config.wallet.denom),
            blocks=client,
            config=settings,
            oracle=oracle,
        )
        await liquidator.update_prices()
        return liquidator

    @property
    def markets(self) -> tuple[Market, ...]:
        return self._markets

    @property
    def constants(self) -> LendConstants:
        return self._constants

    @property
    def market_state(self) -> MarketState:
        return self._state

    @property
    def round_state(self) -> RoundState:
        return self._round_state

    @property
    def is_stopped(self) -> bool:
        return self._round_state is RoundState.STOPPED

    def stop(self) -> None:
        self._round_state = RoundState.STOPPED

    async def update_prices(self) -> None:
        """Replace the price snapshot for every market and the gas token.

        Symbols the oracle did not price are dropped rather than kept stale, so
        a round that needs them fails with MissingPriceError.
        """
        if self._oracle is None:
            return
        symbols = sorted({m.symbol for m in self._markets} | {self._config.gas.native_symbol})
        prices = await self._oracle.fetch_prices(symbols)
        missing = [s for s in symbols if s not in prices]
        if missing:
            logger.warning("No fresh price for: %s; dropped from snapshot", ", ".join(missing))
        self._state = self._state.with_fresh_prices(prices)

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    @contextmanager
    def _running(self) -> Iterator[None]:
        self._round_state = RoundState.RUNNING
        try:
            yield
        finally:
            if self._round_state is RoundState.RUNNING:
                self._round_state = RoundState.IDLE

    async def run_once(self) -> list[Loan]:
        return await self.run_round()

    async def run_round(self) -> list[Loan]:
        """Find the best loan to liquidate in every market.

        Never raises: a failing round is logged and yields no loans.
        """
        if self._round_state is RoundState.RUNNING:
            logger.debug("Liquidations round already in progress")
            return []
        if self._round_state is RoundState.STOPPED:
            return []

        with self._running():
            try:
                return await self._run_round()
            except Exception as e:
                logger.exception("Caught an error during liquidations round: %s", e)
                return []

    async def _run_round(self) -> list[Loan]:
        if await self._balance.owned_balance() == 0:
            logger.info("Ran out of balance. Terminating...")
            self.stop()
            return []

        block_height = await self._blocks.latest_block_height()
        self._state = self._state.with_block_height(block_height)
        selector = self._selector(self._state)

        loans: list[Loan] = []
        for market in self._markets:
            borrowers = await self._borrowers.list_shortfall_borrowers(market, block_height)
            candidate = await selector.select_best(market, borrowers)
            if candidate is not None:
                loans.append(Loan(candidate=candidate, market=market))

        logger.info("Round at block %d found %d loan(s)", block_height, len(loans))
        for loan in loans:
            logger.info(
                "  %s: borrower %s, repay %s, seize $%s of %s",
                loan.market.symbol,
                loan.candidate.id,
                loan.candidate.payable,
                loan.candidate.seizable_usd,
                loan.candidate.market_info.symbol,
            )
        return loans

    def _selector(self, state: MarketState) -> CandidateSelector:
        evaluator = CandidateEvaluator(self._simulator, self._constants, state)
        return CandidateSelector(
            evaluator,
            self._rates,
            self._constants,
            state,
            liquidation_cost_usd=state.gas_cost_usd(self._config.gas.liquidate),
            blacklisted_symbols=self._config.blacklisted_symbols,
            sort_collateral_by_price=self._config.sort_collateral_by_price,
        )

    async def run_continuous(self, interval_seconds: int | None = None) -> None:
        """Run rounds until the liquidator stops, refreshing prices periodically."""
        interval = interval_seconds or self._config.interval_seconds
        prices_interval = self._config.prices_update_interval_seconds
        logger.info("Starting liquidations loop (round every %d seconds)", interval)

        loop = asyncio.get_running_loop()
        last_prices_update = loop.time()

        while not self.is_stopped:
            if loop.time() - last_prices_update >= prices_interval:
                try:
                    await self.update_prices()
                except Exception as e:
                    logger.error("Error updating prices: %s", e)
                last_prices_update = loop.time()

            await self.run_round()
            if self.is_stopped:
                break
            await asyncio.sleep(interval)

        logger.info("Liquidator stopped")
