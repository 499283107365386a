"""Pure parsing functions for lend protocol query responses — no I/O."""
from __future__ import annotations

from decimal import ROUND_DOWN, Decimal
from typing import Any

from ... import decimal_math as dm
from ...errors import SimulationError
from ...models import (
    BorrowerPosition,
    CollateralMarket,
    ContractLink,
    LendConstants,
    Market,
    SimulationResult,
)
from ...pagination import Page


def parse_contract(raw: dict[str, Any]) -> ContractLink:
    """Parse ``{"address": ..., "code_hash": ...}``."""
    return ContractLink(address=raw["address"], code_hash=raw.get("code_hash", ""))


def parse_constants(raw: dict[str, Any]) -> LendConstants:
    """Parse the overseer config into LendConstants.

    Values arrive as decimal strings, e.g. ``{"close_factor": "0.5",
    "premium": "1.08"}``.
    """
    return LendConstants(
        close_factor=dm.to_decimal(str(raw["close_factor"])),
        premium=dm.to_decimal(str(raw["premium"])),
    )


def parse_overseer_market(raw: dict[str, Any]) -> Market:
    """Parse an overseer market entry (underlying asset resolved separately)."""
    return Market(
        contract=parse_contract(raw["contract"]),
        symbol=raw["symbol"],
        decimals=int(raw["decimals"]),
    )


def parse_collateral_market(raw: dict[str, Any]) -> CollateralMarket:
    return CollateralMarket(
        contract=parse_contract(raw["contract"]),
        symbol=raw["symbol"],
        decimals=int(raw["decimals"]),
    )


def parse_borrower(raw: dict[str, Any]) -> BorrowerPosition:
    """Parse a market's borrower entry.

    Balances and shortfall are Uint128 strings in raw token units.
    """
    liquidity = raw.get("liquidity", {})
    return BorrowerPosition(
        id=raw["id"],
        actual_balance=int(raw["actual_balance"]),
        collateral_markets=tuple(
            parse_collateral_market(m) for m in raw.get("markets", [])
        ),
        shortfall=int(liquidity.get("shortfall", 0)),
    )


def parse_page(raw: dict[str, Any], parse_entry: Any) -> Page[Any]:
    """Parse a paginated response ``{"entries": [...], "total": n}``."""
    entries = [parse_entry(e) for e in raw.get("entries", [])]
    return Page(entries=entries, total=int(raw.get("total", len(entries))))


def parse_simulation(raw: dict[str, Any]) -> SimulationResult:
    """Parse a ``simulate_liquidation`` answer."""
    try:
        return SimulationResult(
            seize_amount=int(raw["seize_amount"]),
            shortfall=int(raw["shortfall"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise SimulationError(f"Malformed simulation response: {raw!r}") from e


def parse_exchange_rate(raw: Any) -> Decimal:
    """Parse an exchange rate answer (a decimal string)."""
    return dm.to_decimal(str(raw))


def repay_amount(amount: Decimal) -> str:
    """Format a repay amount as a Uint128 string, truncating fractions."""
    return str(dm.quantize(amount, 0, ROUND_DOWN))
