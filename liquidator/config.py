"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_BLACKLISTED_SYMBOLS = ("LUNA", "UST")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GasConfig:
    liquidate: int = 0
    price: Decimal = Decimal("0.25")
    native_symbol: str = "SCRT"
    native_decimals: int = 6


@dataclass(frozen=True)
class LiquidatorConfig:
    interval_seconds: int = 30
    prices_update_interval_seconds: int = 180
    blacklisted_symbols: tuple[str, ...] = DEFAULT_BLACKLISTED_SYMBOLS
    sort_collateral_by_price: bool = False
    markets_page_size: int = 30
    borrowers_page_size: int = 10
    gas: GasConfig = field(default_factory=GasConfig)


@dataclass(frozen=True)
class WalletConfig:
    address: str = ""
    denom: str = "uscrt"


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30
    query_path: str = "/compute/v1beta1/query"


@dataclass(frozen=True)
class OverseerConfig:
    address: str = ""
    code_hash: str = ""


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class AppConfig:
    liquidator: LiquidatorConfig = field(default_factory=LiquidatorConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    overseer: OverseerConfig = field(default_factory=OverseerConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _to_decimal(raw: Any, default: Decimal) -> Decimal:
    # YAML hands back floats for bare numbers; go through str to keep digits.
    if raw is None or raw == "":
        return default
    return Decimal(str(raw))


_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off")


def _to_bool(raw: Any, default: bool) -> bool:
    # Interpolated ${VAR} values arrive as strings, where bool("false") is True.
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"Expected a boolean, got {raw!r}")


def _build_gas(raw: dict[str, Any]) -> GasConfig:
    return GasConfig(
        liquidate=int(raw.get("liquidate", 0)),
        price=_to_decimal(raw.get("price"), GasConfig.price),
        native_symbol=raw.get("native_symbol", GasConfig.native_symbol),
        native_decimals=int(raw.get("native_decimals", GasConfig.native_decimals)),
    )


def _build_liquidator(raw: dict[str, Any]) -> LiquidatorConfig:
    return LiquidatorConfig(
        interval_seconds=int(raw.get("interval_seconds", 30)),
        prices_update_interval_seconds=int(
            raw.get("prices_update_interval_seconds", 180)
        ),
        blacklisted_symbols=tuple(
            raw.get("blacklisted_symbols", DEFAULT_BLACKLISTED_SYMBOLS)
        ),
        sort_collateral_by_price=_to_bool(raw.get("sort_collateral_by_price"), False),
        markets_page_size=int(raw.get("markets_page_size", 30)),
        borrowers_page_size=int(raw.get("borrowers_page_size", 10)),
        gas=_build_gas(raw.get("gas", {})),
    )


def _build_wallet(raw: dict[str, Any]) -> WalletConfig:
    return WalletConfig(
        address=raw.get("address", ""),
        denom=raw.get("denom", "uscrt"),
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [])),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        query_path=raw.get("query_path", ChainConfig.query_path),
    )


def _build_overseer(raw: dict[str, Any]) -> OverseerConfig:
    return OverseerConfig(
        address=raw.get("address", ""),
        code_hash=raw.get("code_hash", ""),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        liquidator=_build_liquidator(raw.get("liquidator", {})),
        wallet=_build_wallet(raw.get("wallet", {})),
        chain=_build_chain(raw.get("chain", {})),
        overseer=_build_overseer(raw.get("overseer", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.overseer.address:
        raise ValueError("Overseer contract address must be configured")

    if not cfg.wallet.address:
        raise ValueError("Wallet has no address")

    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")

    if cfg.liquidator.interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive")

    if cfg.liquidator.markets_page_size <= 0 or cfg.liquidator.borrowers_page_size <= 0:
        raise ValueError("Page sizes must be positive")

    if cfg.price_oracle.provider != "pyth":
        raise ValueError(f"Unknown price oracle provider '{cfg.price_oracle.provider}'")
