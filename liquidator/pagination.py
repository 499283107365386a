"""Paged query helper — fetches every page of an offset/limit listing."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Pagination:
    start: int
    limit: int

    def to_query(self) -> dict[str, int]:
        return {"start": self.start, "limit": self.limit}


@dataclass(frozen=True)
class Page(Generic[T]):
    entries: list[T]
    total: int


async def fetch_all_pages(
    fetch_page: Callable[[Pagination], Awaitable[Page[T]]],
    page_size: int,
    keep: Callable[[T], bool] | None = None,
) -> list[T]:
    """Fetch pages from offset 0 until ``total`` entries have been seen.

    Each call restarts from the first page. ``keep`` filters entries as they
    arrive; a short or empty page ends the listing early.
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")

    results: list[T] = []
    start = 0
    while True:
        page = await fetch_page(Pagination(start=start, limit=page_size))
        for entry in page.entries:
            if keep is None or keep(entry):
                results.append(entry)

        start += len(page.entries)
        if start >= page.total or len(page.entries) < page_size:
            break

    logger.debug("Fetched %d entries (%d kept)", start, len(results))
    return results
