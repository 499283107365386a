"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .decimal_math import ONE, ZERO


@dataclass(frozen=True)
class ContractLink:
    """On-chain contract identity."""

    address: str
    code_hash: str = ""


@dataclass(frozen=True)
class Market:
    """Lending market (debt side) known to the overseer."""

    contract: ContractLink
    symbol: str
    decimals: int
    underlying: ContractLink | None = None


@dataclass(frozen=True)
class LendConstants:
    """Protocol-wide liquidation parameters."""

    close_factor: Decimal
    premium: Decimal

    def __post_init__(self) -> None:
        if not ZERO < self.close_factor <= ONE:
            raise ValueError(f"close_factor must be in (0, 1], got {self.close_factor}")
        if self.premium < ONE:
            raise ValueError(f"premium must be >= 1, got {self.premium}")


@dataclass(frozen=True)
class CollateralMarket:
    """A market in which a borrower has pledged collateral."""

    contract: ContractLink
    symbol: str
    decimals: int


@dataclass(frozen=True)
class BorrowerPosition:
    """A borrower of a debt market, as reported at a given block."""

    id: str
    actual_balance: int
    collateral_markets: tuple[CollateralMarket, ...]
    shortfall: int = 0

    @property
    def has_shortfall(self) -> bool:
        return self.shortfall > 0


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of a simulated liquidation; amounts are raw integers."""

    seize_amount: int
    shortfall: int


@dataclass(frozen=True)
class Candidate:
    """Best achievable liquidation for one borrower."""

    id: str
    payable: Decimal
    seizable_usd: Decimal
    market_info: CollateralMarket


@dataclass(frozen=True)
class Evaluation:
    """Evaluator output: the candidate and whether it hit the fast path."""

    is_best_case: bool
    candidate: Candidate


@dataclass(frozen=True)
class Loan:
    """A liquidation opportunity chosen for a debt market."""

    candidate: Candidate
    market: Market
