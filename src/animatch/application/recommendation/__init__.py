"""Content-based and preference-based recommendation ranking."""

from __future__ import annotations

from .engine import (
    RecommendationEngine,
    SimilarityBreakdown,
    SimilarityWeights,
    UserPreferences,
)

__all__ = [
    "RecommendationEngine",
    "SimilarityBreakdown",
    "SimilarityWeights",
    "UserPreferences",
]
