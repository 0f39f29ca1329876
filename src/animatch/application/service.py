"""
AniMatchService - Facade over Cache, Aggregator and Recommendation Engine

Control flow for every read:

    caller → AniMatchService → AnimeCache (hit returns immediately)
                             → DataAggregator (fan-out + merge) → cache populated
                             → RecommendationEngine (ranking)

All collaborators are injected; see ``animatch.container`` for the wiring.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import date
from typing import Any

from animatch.application.recommendation.engine import RecommendationEngine, UserPreferences
from animatch.application.search.aggregator import DataAggregator
from animatch.infrastructure.cache import AnimeCache
from animatch.models import AnimeRecord, RecommendationResult, SearchOptions, dedupe_case_insensitive
from animatch.shared.exceptions import InvalidParameterError, NotFoundError

logger = logging.getLogger(__name__)

HYBRID_CANDIDATE_GENRES = 3
HYBRID_CANDIDATE_POOL = 50
PREFERENCE_CANDIDATE_POOL = 100
TRENDING_CANDIDATE_POOL = 30
TRENDING_MIN_SCORE = 70
TRENDING_DEFAULT_CONFIDENCE = 0.5

AVAILABLE_GENRES: tuple[str, ...] = (
    "Action",
    "Adventure",
    "Comedy",
    "Drama",
    "Ecchi",
    "Fantasy",
    "Hentai",
    "Historical",
    "Horror",
    "Josei",
    "Kids",
    "Mahou Shoujo",
    "Mecha",
    "Military",
    "Music",
    "Mystery",
    "Parody",
    "Police",
    "Post-Apocalyptic",
    "Psychological",
    "Reverse Harem",
    "Romance",
    "Samurai",
    "School",
    "Sci-Fi",
    "Slice of Life",
    "Space",
    "Sports",
    "Super Power",
    "Supernatural",
    "Thriller",
    "Vampire",
    "Yaoi",
    "Yuri",
)


class AniMatchService:
    """
    Entry point for searching titles and asking for recommendations.

    Usage:
        service = container.service()
        results = await service.get_recommendations("anilist-1")
        for result in results:
            print(result.record.title.display, f"{result.score:.2f}")
    """

    def __init__(
        self,
        aggregator: DataAggregator,
        engine: RecommendationEngine,
        cache: AnimeCache,
        current_year: Callable[[], int] = lambda: date.today().year,
    ):
        self._aggregator = aggregator
        self._engine = engine
        self._cache = cache
        self._current_year = current_year

    @property
    def aggregator(self) -> DataAggregator:
        return self._aggregator

    # =========================================================================
    # Lookup
    # =========================================================================

    async def search_anime(self, query: str, options: SearchOptions | None = None) -> list[AnimeRecord]:
        """Search every catalog; results are cached per query and options."""
        options = options or SearchOptions()
        cached = self._cache.get_search_results(query, options)
        if cached is not None:
            logger.debug(f"Search cache hit: {query!r}")
            return cached

        results = await self._aggregator.search(query, options)
        self._cache.set_search_results(query, options, results)
        return results

    async def get_anime_details(self, anime_id: str) -> AnimeRecord | None:
        """
        Details for one composite id; found records are cached.

        Raises:
            UnknownSourceError: The id does not name an enabled catalog
        """
        cached = self._cache.get_anime_details(anime_id)
        if cached is not None:
            logger.debug(f"Details cache hit: {anime_id}")
            return cached

        record = await self._aggregator.get_anime_details(anime_id)
        if record is not None:
            self._cache.set_anime_details(anime_id, record)
        return record

    async def _raw_recommendations(self, anime_id: str) -> list[AnimeRecord]:
        cached = self._cache.get_recommendations(anime_id)
        if cached is not None:
            logger.debug(f"Recommendations cache hit: {anime_id}")
            return cached

        records = await self._aggregator.get_recommendations(anime_id)
        self._cache.set_recommendations(anime_id, records)
        return records

    # =========================================================================
    # Recommendations
    # =========================================================================

    async def get_recommendations(
        self,
        anime_id: str,
        preferences: UserPreferences | None = None,
        max_results: int = 20,
    ) -> list[RecommendationResult]:
        """
        Titles similar to ``anime_id``, ranked by content similarity.

        Raises:
            NotFoundError: The reference title could not be fetched
            UnknownSourceError: The id does not name an enabled catalog
        """
        reference = await self.get_anime_details(anime_id)
        if reference is None:
            raise NotFoundError("Anime", anime_id)

        candidates = await self._raw_recommendations(anime_id)
        return self._engine.get_content_based_recommendations(
            reference, candidates, preferences, max_results=max_results
        )

    async def get_hybrid_recommendations(
        self,
        anime_ids: Sequence[str],
        preferences: UserPreferences | None = None,
        max_results: int = 20,
    ) -> list[RecommendationResult]:
        """
        Titles similar to several references at once.

        Candidates come from a genre search over the references' first
        three distinct genres.

        Raises:
            InvalidParameterError: ``anime_ids`` is empty
            NotFoundError: None of the references could be fetched
        """
        if not anime_ids:
            raise InvalidParameterError("anime_ids", list(anime_ids), "at least one anime id")

        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(self.get_anime_details(anime_id)) for anime_id in anime_ids]
        except ExceptionGroup as group:
            # first failure cancelled the remaining fetches; surface it unwrapped
            raise group.exceptions[0] from None
        references = [record for record in (task.result() for task in tasks) if record is not None]
        if not references:
            raise NotFoundError("Anime", ", ".join(anime_ids))

        genres = dedupe_case_insensitive(g for ref in references for g in ref.genres)
        candidates = await self.search_anime(
            "",
            SearchOptions(genres=genres[:HYBRID_CANDIDATE_GENRES], per_page=HYBRID_CANDIDATE_POOL),
        )
        return self._engine.get_hybrid_recommendations(references, candidates, preferences, max_results=max_results)

    async def get_preference_based_recommendations(
        self,
        preferences: UserPreferences,
        max_results: int = 20,
    ) -> list[RecommendationResult]:
        """Titles matching a preference profile, from a search over its favorite genres."""
        candidates = await self.search_anime(
            "",
            SearchOptions(
                genres=preferences.favorite_genres[:HYBRID_CANDIDATE_GENRES],
                per_page=PREFERENCE_CANDIDATE_POOL,
            ),
        )
        return self._engine.get_preference_based_recommendations(candidates, preferences, max_results=max_results)

    async def get_trending_anime(self, limit: int = 20) -> list[AnimeRecord]:
        """Well-rated titles from the current year, best first. Empty on failure."""
        try:
            recent = await self.search_anime(
                "",
                SearchOptions(year=self._current_year(), per_page=TRENDING_CANDIDATE_POOL),
            )
        except Exception as e:
            logger.warning(f"Trending lookup failed: {e}")
            return []

        trending = [r for r in recent if r.average_score is not None and r.average_score > TRENDING_MIN_SCORE]
        trending.sort(
            key=lambda r: (r.average_score or 0) * (r.confidence or TRENDING_DEFAULT_CONFIDENCE),
            reverse=True,
        )
        return trending[:limit]

    # =========================================================================
    # Utilities
    # =========================================================================

    @staticmethod
    def get_available_genres() -> list[str]:
        """Genre names understood by every catalog, sorted."""
        return sorted(AVAILABLE_GENRES)

    def get_cache_stats(self) -> dict[str, Any]:
        return self._cache.get_stats()

    def clear_cache(self) -> None:
        self._cache.clear()

    async def close(self) -> None:
        await self._aggregator.close()
