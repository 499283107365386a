"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest

from liquidator.config import GasConfig, LiquidatorConfig
from liquidator.models import (
    BorrowerPosition,
    CollateralMarket,
    ContractLink,
    LendConstants,
    Market,
)
from liquidator.state import MarketState


# ---------------------------------------------------------------------------
# Market fixtures
# ---------------------------------------------------------------------------


def make_collateral(symbol: str, decimals: int = 6) -> CollateralMarket:
    return CollateralMarket(
        contract=ContractLink(address=f"secret1{symbol.lower()}", code_hash="hash"),
        symbol=symbol,
        decimals=decimals,
    )


def make_borrower(
    borrower_id: str,
    actual_balance: int = 1000,
    collateral: tuple[str, ...] = ("slSCRT",),
    shortfall: int = 1,
) -> BorrowerPosition:
    return BorrowerPosition(
        id=borrower_id,
        actual_balance=actual_balance,
        collateral_markets=tuple(make_collateral(s) for s in collateral),
        shortfall=shortfall,
    )


@pytest.fixture()
def new_borrower():
    return make_borrower


@pytest.fixture()
def new_collateral():
    return make_collateral


@pytest.fixture()
def debt_market() -> Market:
    return Market(
        contract=ContractLink(address="secret1slusdc", code_hash="hash"),
        symbol="slUSDC",
        decimals=6,
        underlying=ContractLink(address="secret1usdc", code_hash="uhash"),
    )


@pytest.fixture()
def second_market() -> Market:
    return Market(
        contract=ContractLink(address="secret1slatom", code_hash="hash"),
        symbol="slATOM",
        decimals=6,
        underlying=ContractLink(address="secret1atom", code_hash="uhash"),
    )


@pytest.fixture()
def constants() -> LendConstants:
    return LendConstants(close_factor=Decimal("0.5"), premium=Decimal("1.1"))


@pytest.fixture()
def sample_prices() -> dict[str, Decimal]:
    return {
        "slUSDC": Decimal("1.0"),
        "slSCRT": Decimal("2.0"),
        "slATOM": Decimal("10.0"),
        "SCRT": Decimal("0.5"),
    }


@pytest.fixture()
def gas_config() -> GasConfig:
    return GasConfig(
        liquidate=3_000_000,
        price=Decimal("0.25"),
        native_symbol="SCRT",
        native_decimals=6,
    )


@pytest.fixture()
def market_state(sample_prices: dict[str, Decimal], gas_config: GasConfig) -> MarketState:
    return MarketState(prices=sample_prices, block_height=100, gas=gas_config)


@pytest.fixture()
def liquidator_config() -> LiquidatorConfig:
    # Free gas keeps tiny test seizures above the liquidation cost.
    return LiquidatorConfig(gas=GasConfig(liquidate=0))


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    liquidator:
      interval_seconds: 15
      prices_update_interval_seconds: 120
      blacklisted_symbols: [LUNA, UST]
      sort_collateral_by_price: true
      markets_page_size: 20
      borrowers_page_size: 5
      gas:
        liquidate: 3000000
        price: 0.25
        native_symbol: SCRT
        native_decimals: 6
    wallet:
      address: "secret1wallet"
      denom: uscrt
    chain:
      rpc_endpoints: ["https://lcd.example.com"]
      rpc_timeout: 10
    overseer:
      address: "secret1overseer"
      code_hash: "abc123"
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {SCRT: "aaa", slUSDC: "bbb"}
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
