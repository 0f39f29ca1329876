"""Data models shared by adapters, the aggregator and the recommendation engine."""

from .anime_record import (
    SET_FIELDS,
    AnimeRecord,
    AnimeStatus,
    AnimeTitle,
    CoverImage,
    PartialDate,
    ReasonKind,
    RecommendationReason,
    RecommendationResult,
    Relation,
    SearchOptions,
    clamp_score,
    clamp_unit,
    dedupe_case_insensitive,
)

__all__ = [
    "AnimeRecord",
    "AnimeStatus",
    "AnimeTitle",
    "CoverImage",
    "PartialDate",
    "Relation",
    "SearchOptions",
    "ReasonKind",
    "RecommendationReason",
    "RecommendationResult",
    "SET_FIELDS",
    "clamp_score",
    "clamp_unit",
    "dedupe_case_insensitive",
]
