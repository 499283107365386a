"""Pyth Hermes price oracle — exact USD prices per market symbol."""
from __future__ import annotations

import logging
import ssl
from decimal import Decimal
from typing import Any, Iterable, Mapping

import aiohttp
import certifi

from ..config import PythConfig

logger = logging.getLogger(__name__)


def normalize_feed_id(feed_id: str) -> str:
    """Hermes answers with lower-case ids and no ``0x`` prefix."""
    return feed_id.lower().removeprefix("0x")


def parse_price_updates(
    data: Mapping[str, Any], feeds: Mapping[str, str]
) -> dict[str, Decimal]:
    """Map a Hermes ``parsed`` payload onto the symbols sharing each feed.

    ``price * 10**expo`` is computed with ``Decimal.scaleb`` so the result is
    exact. Updates without a positive price and an exponent are skipped, so
    their symbols stay unpriced.
    """
    symbols_by_feed: dict[str, list[str]] = {}
    for symbol, feed_id in feeds.items():
        symbols_by_feed.setdefault(normalize_feed_id(feed_id), []).append(symbol)

    prices: dict[str, Decimal] = {}
    for update in data.get("parsed", []):
        symbols = symbols_by_feed.get(normalize_feed_id(str(update.get("id", ""))))
        if not symbols:
            continue
        quote = update.get("price") or {}
        try:
            price = Decimal(int(quote["price"])).scaleb(int(quote["expo"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Malformed Pyth update for %s: %r", ", ".join(symbols), quote)
            continue
        if price <= 0:
            logger.warning("Non-positive Pyth price for %s: %s", ", ".join(symbols), price)
            continue
        for symbol in symbols:
            prices[symbol] = price
    return prices


class PythOracle:
    """Latest prices from a Pyth Hermes endpoint."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)

    def _feeds_for(self, symbols: Iterable[str] | None) -> dict[str, str]:
        if symbols is None:
            return self.price_feeds
        wanted = set(symbols)
        unknown = sorted(wanted - set(self.price_feeds))
        if unknown:
            logger.warning("No Pyth feed configured for: %s", ", ".join(unknown))
        return {s: fid for s, fid in self.price_feeds.items() if s in wanted}

    async def fetch_prices(self, symbols: Iterable[str] | None = None) -> dict[str, Decimal]:
        """Fetch current prices, all configured feeds when ``symbols`` is None.

        Symbols that could not be priced are absent from the result; a failed
        request yields an empty mapping.
        """
        feeds = self._feeds_for(symbols)
        feed_ids = sorted(set(feeds.values()))
        if not feed_ids:
            return {}

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    self.hermes_url, params=[("ids[]", fid) for fid in feed_ids]
                ) as response:
                    if response.status != 200:
                        logger.error("Pyth Hermes returned HTTP %s", response.status)
                        return {}
                    data = await response.json()
        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            return {}

        prices = parse_price_updates(data, feeds)
        for symbol, price in sorted(prices.items()):
            logger.debug("Price %s: $%s", symbol, price)
        logger.info("Fetched %d price(s) from Pyth", len(prices))
        return prices
