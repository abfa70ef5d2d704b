"""Type-ahead airport search over the index."""

from __future__ import annotations

import asyncio

from efb.contracts.airport import Airport
from efb.services.airports.airport_index import AirportIndex
from efb.services.debounce import Debouncer

DEFAULT_SEARCH_DELAY = 0.3
DEFAULT_SEARCH_LIMIT = 20


class AirportSearch:
    """Debounced ``AirportIndex.search``: only the last query of a burst runs."""

    def __init__(
        self,
        index: AirportIndex,
        delay: float = DEFAULT_SEARCH_DELAY,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        self._index = index
        self._debouncer = Debouncer(delay)
        self.limit = limit

    def query(self, text: str) -> asyncio.Task[list[Airport]]:
        """Schedule a search; a later query supersedes this one."""
        return self._debouncer.schedule(self._search(text))

    def _search(self, text: str):
        async def run() -> list[Airport]:
            return self._index.search(text, self.limit)

        return run

    def cancel(self) -> None:
        self._debouncer.cancel()
