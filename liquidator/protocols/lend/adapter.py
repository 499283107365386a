"""Lend protocol adapter — overseer, market and borrower queries."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from ...config import OverseerConfig
from ...errors import SimulationError
from ...interfaces.chain import ChainClient
from ...models import (
    BorrowerPosition,
    CollateralMarket,
    ContractLink,
    LendConstants,
    Market,
    SimulationResult,
)
from ...pagination import Page, Pagination, fetch_all_pages
from . import parser

logger = logging.getLogger(__name__)


class LendAdapter:
    """Query the lend overseer and its markets.

    Implements BorrowerSource, LiquidationSimulator and ExchangeRateSource.
    """

    def __init__(
        self,
        chain_client: ChainClient,
        overseer: OverseerConfig,
        borrowers_page_size: int = 10,
    ) -> None:
        self._client = chain_client
        self._overseer = ContractLink(address=overseer.address, code_hash=overseer.code_hash)
        self._borrowers_page_size = borrowers_page_size

    async def _query(self, contract: ContractLink, msg: dict[str, Any]) -> Any:
        return await self._client.query_contract_smart(
            contract.address, contract.code_hash, msg
        )

    # ------------------------------------------------------------------
    # Overseer
    # ------------------------------------------------------------------

    async def fetch_constants(self) -> LendConstants:
        raw = await self._query(self._overseer, {"config": {}})
        constants = parser.parse_constants(raw)
        logger.info(
            "Overseer close factor %s, premium %s",
            constants.close_factor, constants.premium,
        )
        return constants

    async def fetch_markets(
        self, page_size: int, blacklisted_symbols: tuple[str, ...] = ()
    ) -> list[Market]:
        """All overseer markets outside the blacklist, with underlying assets."""

        async def fetch_page(pagination: Pagination) -> Page[Market]:
            raw = await self._query(
                self._overseer, {"markets": {"pagination": pagination.to_query()}}
            )
            return parser.parse_page(raw, parser.parse_overseer_market)

        listed = await fetch_all_pages(
            fetch_page, page_size, lambda m: m.symbol not in blacklisted_symbols
        )

        markets: list[Market] = []
        for market in listed:
            underlying = await self.fetch_underlying(market)
            markets.append(
                Market(
                    contract=market.contract,
                    symbol=market.symbol,
                    decimals=market.decimals,
                    underlying=underlying,
                )
            )

        logger.info("Loaded %d markets: %s", len(markets), ", ".join(m.symbol for m in markets))
        return markets

    async def fetch_underlying(self, market: Market) -> ContractLink:
        raw = await self._query(market.contract, {"underlying_asset": {}})
        return parser.parse_contract(raw)

    # ------------------------------------------------------------------
    # Markets
    # ------------------------------------------------------------------

    async def list_shortfall_borrowers(
        self, market: Market, block_height: int
    ) -> list[BorrowerPosition]:
        async def fetch_page(pagination: Pagination) -> Page[BorrowerPosition]:
            raw = await self._query(
                market.contract,
                {"borrowers": {"block": block_height, "pagination": pagination.to_query()}},
            )
            return parser.parse_page(raw, parser.parse_borrower)

        borrowers = await fetch_all_pages(
            fetch_page, self._borrowers_page_size, lambda b: b.has_shortfall
        )
        logger.debug(
            "%d borrowers in shortfall in %s at block %d",
            len(borrowers), market.symbol, block_height,
        )
        return borrowers

    async def simulate(
        self,
        debt_market: Market,
        borrower: BorrowerPosition,
        block_height: int,
        repay_amount: Decimal,
        collateral: CollateralMarket | None = None,
    ) -> SimulationResult:
        msg: dict[str, Any] = {
            "block": block_height,
            "borrower": borrower.id,
            "amount": parser.repay_amount(repay_amount),
        }
        if collateral is not None:
            msg["collateral"] = collateral.contract.address

        try:
            raw = await self._query(debt_market.contract, {"simulate_liquidation": msg})
        except Exception as e:
            logger.error("Simulation failed for borrower %s: %s", borrower.id, e)
            raise SimulationError(str(e)) from e

        return parser.parse_simulation(raw)

    async def exchange_rate(self, market: Market, block_height: int) -> Decimal:
        raw = await self._query(market.contract, {"exchange_rate": {"block": block_height}})
        return parser.parse_exchange_rate(raw)
