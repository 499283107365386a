"""Command-line interface for the lend liquidator."""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Sequence

from .config import load_config
from .logging_setup import configure_logging
from .models import Loan
from .services import Liquidator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lend-liquidator",
        description="Find the most profitable liquidation in every lend market",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("once", help="Run one liquidations round and print the loans found")
    sub.add_parser("markets", help="List debt markets and overseer constants")

    run_parser = sub.add_parser("run", help="Run liquidation rounds until the wallet runs dry")
    run_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Seconds between rounds (overrides config)",
    )
    return parser


def format_loan(loan: Loan) -> str:
    c = loan.candidate
    return (
        f"{loan.market.symbol}: borrower {c.id} repays {c.payable}, "
        f"seizes ${c.seizable_usd} of {c.market_info.symbol}"
    )


def _print_loans(loans: Sequence[Loan]) -> None:
    if not loans:
        print("No profitable liquidations found.")
    for loan in loans:
        print(format_loan(loan))


def _print_markets(liquidator: Liquidator) -> None:
    constants = liquidator.constants
    print(f"close factor {constants.close_factor}, premium {constants.premium}")
    for market in liquidator.markets:
        print(f"{market.symbol:<10} {market.contract.address} (decimals {market.decimals})")


async def _run(args: argparse.Namespace) -> None:
    configure_logging(args.log_level)
    config = load_config(args.config)
    liquidator = await Liquidator.create(config)

    if args.command == "once":
        _print_loans(await liquidator.run_once())
    elif args.command == "markets":
        _print_markets(liquidator)
    elif args.command == "run":
        await liquidator.run_continuous(args.interval)


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
