"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from animatch.models import AnimeRecord, AnimeTitle, PartialDate, SearchOptions

# ============================================================
# Clock
# ============================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ============================================================
# Records
# ============================================================


def make_record(
    local_id: str | int = "1",
    source: str = "anilist",
    *,
    english: str | None = "Cowboy Bebop",
    romaji: str | None = None,
    native: str | None = None,
    year: int | None = 1998,
    **kwargs: Any,
) -> AnimeRecord:
    """Build a valid AnimeRecord with sensible defaults."""
    kwargs.setdefault("confidence", 0.8)
    return AnimeRecord(
        id=f"{source}-{local_id}",
        source_id=str(local_id),
        source_name=source,
        title=AnimeTitle(english=english, romaji=romaji, native=native),
        start_date=PartialDate(year=year) if year is not None else None,
        **kwargs,
    )


@pytest.fixture
def record_factory():
    return make_record


# ============================================================
# Adapters
# ============================================================


class FakeAdapter:
    """In-memory catalog adapter that records every call."""

    def __init__(
        self,
        name: str,
        search_results: list[AnimeRecord] | None = None,
        details: dict[str, AnimeRecord] | None = None,
        recommendations: list[AnimeRecord] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.name = name
        self.search_results = search_results or []
        self.details = details or {}
        self.recommendations = recommendations or []
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, Any]] = []
        self.cancelled = False

    async def _respond(self, value: Any) -> Any:
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return value

    async def search(self, query: str, options: SearchOptions) -> list[AnimeRecord]:
        self.calls.append(("search", (query, options)))
        return await self._respond(list(self.search_results))

    async def get_details(self, local_id: str) -> AnimeRecord | None:
        self.calls.append(("get_details", local_id))
        return await self._respond(self.details.get(local_id))

    async def get_recommendations(self, anime_id: str) -> list[AnimeRecord]:
        self.calls.append(("get_recommendations", anime_id))
        return await self._respond(list(self.recommendations))
