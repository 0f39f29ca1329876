"""
AniMatch - Multi-Source Anime Search and Recommendations

Queries several anime catalogs in parallel, reconciles their records into
one normalized view and ranks titles by content similarity.

Usage:
    from animatch import create_container

    service = create_container().service()
    results = await service.get_recommendations("anilist-1")

    for result in results:
        print(f"{result.record.title.display}: {result.score:.2f}")

Features:
    - AniList, Jikan (MyAnimeList) and Kitsu adapters with per-catalog rate limits
    - Partial-failure tolerant fan-out with per-call deadlines
    - Fuzzy duplicate detection and confidence-weighted record merging
    - Content-based, hybrid and preference-based recommendations
    - In-memory TTL cache for searches, details and recommendations
"""

from .application import (
    AggregatorConfig,
    AniMatchService,
    DataAggregator,
    RecommendationEngine,
    SimilarityWeights,
    UserPreferences,
)
from .container import ApplicationContainer, create_container
from .infrastructure.cache import AnimeCache
from .models import AnimeRecord, AnimeStatus, AnimeTitle, RecommendationResult, SearchOptions
from .shared import AniMatchError, AniMatchSettings, UnknownSourceError

__version__ = "0.1.0"

__all__ = [
    # Facade and wiring
    "AniMatchService",
    "ApplicationContainer",
    "create_container",
    "AniMatchSettings",
    # Components
    "DataAggregator",
    "AggregatorConfig",
    "RecommendationEngine",
    "SimilarityWeights",
    "UserPreferences",
    "AnimeCache",
    # Models
    "AnimeRecord",
    "AnimeStatus",
    "AnimeTitle",
    "RecommendationResult",
    "SearchOptions",
    # Errors
    "AniMatchError",
    "UnknownSourceError",
]
