"""
Application Layer - Use Cases and Business Logic Orchestration

Contains:
- search: Multi-source fan-out and record consolidation
- recommendation: Similarity and preference ranking
- service: Facade combining both with the cache
"""

from .recommendation import RecommendationEngine, SimilarityWeights, UserPreferences
from .search import AggregationStats, AggregatorConfig, DataAggregator
from .service import AniMatchService

__all__ = [
    # Search
    "DataAggregator",
    "AggregatorConfig",
    "AggregationStats",
    # Recommendation
    "RecommendationEngine",
    "SimilarityWeights",
    "UserPreferences",
    # Facade
    "AniMatchService",
]
