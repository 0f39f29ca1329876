"""
RecommendationEngine - Content-Based Similarity Ranking

Scores candidate titles against:
1. One reference title (content-based)
2. Several reference titles (hybrid, averaged)
3. A user preference profile alone (preference-based)

Similarity is a weighted sum of seven factors, each in [0, 1]:

    genre        Jaccard overlap of genres (case-insensitive)
    studio       1 if any studio is shared
    score        1 - |Δscore| / 100
    year         1 - |Δyear| / 10
    episodes     min(episodes) / max(episodes)
    demographic  1 if any demographic is shared
    tags         Jaccard overlap of tags

Preference-based ranking uses its own fixed formula and never goes through
the similarity factors.

The engine only reads records: inputs are clamped into copies before
scoring and returned results carry those copies.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from animatch.models import (
    AnimeRecord,
    ReasonKind,
    RecommendationReason,
    RecommendationResult,
    clamp_score,
    clamp_unit,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 20
MAX_HYBRID_REASONS = 5
YEAR_REASON_WINDOW = 3

# Preference-based score components
PREFERENCE_GENRE_WEIGHT = 0.4
PREFERENCE_STUDIO_WEIGHT = 0.2
PREFERENCE_DEMOGRAPHIC_WEIGHT = 0.15
PREFERENCE_SCORE_WEIGHT = 0.25


@dataclass
class SimilarityWeights:
    """
    Weights of the similarity factors.

    Weights are used as given (they are not normalized to sum to 1).
    """

    genre: float = 0.30
    studio: float = 0.15
    score: float = 0.20
    year: float = 0.10
    episodes: float = 0.05
    demographic: float = 0.10
    tags: float = 0.10

    @classmethod
    def default(cls) -> SimilarityWeights:
        """Balanced defaults."""
        return cls()

    @classmethod
    def content_focused(cls) -> SimilarityWeights:
        """Leans on genres, studios and tags over ratings and airing dates."""
        return cls(
            genre=0.35,
            studio=0.20,
            score=0.15,
            year=0.08,
            episodes=0.02,
            demographic=0.05,
            tags=0.15,
        )

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass
class UserPreferences:
    """
    A viewer's taste profile.

    Attributes:
        favorite_genres: Genres that raise a candidate's preference score
        disliked_genres: Candidates with any of these genres are rejected
        preferred_demographics: Demographics that raise the preference score
        preferred_studios: Studios that raise the preference score
        min_score: Reject candidates whose known score is below this
        max_episodes: Reject candidates with more known episodes than this
        year_min: Reject candidates starting before this year
        year_max: Reject candidates starting after this year
    """

    favorite_genres: list[str] = field(default_factory=list)
    disliked_genres: list[str] = field(default_factory=list)
    preferred_demographics: list[str] = field(default_factory=list)
    preferred_studios: list[str] = field(default_factory=list)
    min_score: float = 0.0
    max_episodes: int | None = None
    year_min: int | None = None
    year_max: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserPreferences:
        year_range = data.get("preferred_year_range") or {}
        return cls(
            favorite_genres=list(data.get("favorite_genres") or []),
            disliked_genres=list(data.get("disliked_genres") or []),
            preferred_demographics=list(data.get("preferred_demographics") or []),
            preferred_studios=list(data.get("preferred_studios") or []),
            min_score=float(data.get("min_score") or 0.0),
            max_episodes=data.get("max_episodes"),
            year_min=data.get("year_min", year_range.get("min")),
            year_max=data.get("year_max", year_range.get("max")),
        )


@dataclass
class SimilarityBreakdown:
    """Weighted total plus the unweighted value of every factor."""

    total: float
    per_factor: dict[str, float]


# =============================================================================
# Factor functions
# =============================================================================


def _folded(values: Iterable[str]) -> set[str]:
    return {v.casefold() for v in values}


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Case-insensitive Jaccard similarity; 0 when either side is empty."""
    set_a, set_b = _folded(a), _folded(b)
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def any_overlap(a: Iterable[str], b: Iterable[str]) -> float:
    return 1.0 if _folded(a) & _folded(b) else 0.0


def score_similarity(a: float | None, b: float | None) -> float:
    if a is None or b is None:
        return 0.0
    return max(0.0, 1 - abs(a - b) / 100)


def year_similarity(a: int | None, b: int | None) -> float:
    if a is None or b is None:
        return 0.0
    return max(0.0, 1 - abs(a - b) / 10)


def episode_similarity(a: int | None, b: int | None) -> float:
    if not a or not b or a <= 0 or b <= 0:
        return 0.0
    return min(a, b) / max(a, b)


def _shared(reference: Iterable[str], candidate: Iterable[str]) -> list[str]:
    """Items of ``reference`` also in ``candidate``, in reference order and casing."""
    other = _folded(candidate)
    return [item for item in reference if item.casefold() in other]


# =============================================================================
# Engine
# =============================================================================


class RecommendationEngine:
    """
    Ranks candidate titles and explains each ranking with reasons.

    Usage:
        engine = RecommendationEngine()
        results = engine.get_content_based_recommendations(reference, candidates)
        for result in results:
            print(result.record.title.display, result.score, result.reasons)
    """

    def __init__(self, weights: SimilarityWeights | None = None):
        self._weights = weights or SimilarityWeights.default()

    @property
    def weights(self) -> SimilarityWeights:
        return self._weights

    # =========================================================================
    # Pairwise similarity
    # =========================================================================

    def similarity(self, a: AnimeRecord, b: AnimeRecord) -> SimilarityBreakdown:
        """Weighted similarity of two records."""
        a, b = a.clamped(), b.clamped()
        per_factor = {
            "genre": jaccard(a.genres, b.genres),
            "studio": any_overlap(a.studios, b.studios),
            "score": score_similarity(a.average_score, b.average_score),
            "year": year_similarity(a.start_year, b.start_year),
            "episodes": episode_similarity(a.episodes, b.episodes),
            "demographic": any_overlap(a.demographics, b.demographics),
            "tags": jaccard(a.tags, b.tags),
        }
        weights = self._weights.to_dict()
        total = sum(value * weights[name] for name, value in per_factor.items())
        return SimilarityBreakdown(total=total, per_factor=per_factor)

    def _similarity_reasons(self, reference: AnimeRecord, candidate: AnimeRecord) -> list[RecommendationReason]:
        reasons: list[RecommendationReason] = []

        shared_genres = _shared(reference.genres, candidate.genres)
        for genre in shared_genres:
            reasons.append(RecommendationReason(ReasonKind.GENRE, genre, self._weights.genre / len(shared_genres)))

        for studio in _shared(reference.studios, candidate.studios):
            reasons.append(RecommendationReason(ReasonKind.STUDIO, studio, self._weights.studio))

        if reference.start_year is not None and candidate.start_year is not None:
            delta = abs(reference.start_year - candidate.start_year)
            if delta <= YEAR_REASON_WINDOW:
                reasons.append(
                    RecommendationReason(
                        ReasonKind.YEAR,
                        f"Both from around {candidate.start_year}",
                        self._weights.year * (1 - delta / 10),
                    )
                )

        reasons.sort(key=lambda r: r.weight, reverse=True)
        return reasons

    # =========================================================================
    # Filters
    # =========================================================================

    @staticmethod
    def passes_filters(record: AnimeRecord, preferences: UserPreferences) -> bool:
        """Hard filters of a preference profile, applied to the clamped score."""
        score = clamp_score(record.average_score)
        if score is not None and score < preferences.min_score:
            return False
        if (
            preferences.max_episodes is not None
            and record.episodes is not None
            and record.episodes > preferences.max_episodes
        ):
            return False
        year = record.start_year
        if year is not None:
            if preferences.year_min is not None and year < preferences.year_min:
                return False
            if preferences.year_max is not None and year > preferences.year_max:
                return False
        return not (_folded(record.genres) & _folded(preferences.disliked_genres))

    # =========================================================================
    # Ranking
    # =========================================================================

    @staticmethod
    def _rank(scored: list[tuple[float, RecommendationResult]], max_results: int) -> list[RecommendationResult]:
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [result for _, result in scored[:max_results]]

    def get_content_based_recommendations(
        self,
        reference: AnimeRecord,
        candidates: Sequence[AnimeRecord],
        preferences: UserPreferences | None = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[RecommendationResult]:
        """Rank candidates by similarity to one reference title."""
        if not candidates:
            return []
        reference = reference.clamped()

        scored: list[tuple[float, RecommendationResult]] = []
        for candidate in candidates:
            if candidate.id == reference.id:
                continue
            candidate = candidate.clamped()
            if preferences is not None and not self.passes_filters(candidate, preferences):
                continue
            breakdown = self.similarity(reference, candidate)
            result = RecommendationResult(
                record=candidate,
                score=clamp_unit(breakdown.total),
                reasons=self._similarity_reasons(reference, candidate),
            )
            scored.append((breakdown.total, result))

        logger.debug(f"Content-based: {len(scored)} of {len(candidates)} candidates scored")
        return self._rank(scored, max_results)

    def get_hybrid_recommendations(
        self,
        references: Sequence[AnimeRecord],
        candidates: Sequence[AnimeRecord],
        preferences: UserPreferences | None = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[RecommendationResult]:
        """Rank candidates by their average similarity to several reference titles."""
        if not references or not candidates:
            return []
        references = [r.clamped() for r in references]
        reference_ids = {r.id for r in references}

        scored: list[tuple[float, RecommendationResult]] = []
        for candidate in candidates:
            if candidate.id in reference_ids:
                continue
            candidate = candidate.clamped()
            if preferences is not None and not self.passes_filters(candidate, preferences):
                continue
            total = sum(self.similarity(ref, candidate).total for ref in references) / len(references)
            reasons = self._consolidate_reasons(
                reason for ref in references for reason in self._similarity_reasons(ref, candidate)
            )
            scored.append((total, RecommendationResult(record=candidate, score=clamp_unit(total), reasons=reasons)))

        return self._rank(scored, max_results)

    @staticmethod
    def _consolidate_reasons(reasons: Iterable[RecommendationReason]) -> list[RecommendationReason]:
        """One reason per (kind, value), keeping the highest weight; top 5."""
        best: dict[tuple[ReasonKind, str], RecommendationReason] = {}
        for reason in reasons:
            key = (reason.kind, reason.value.casefold())
            existing = best.get(key)
            if existing is None or reason.weight > existing.weight:
                best[key] = RecommendationReason(reason.kind, reason.value, reason.weight)
        return sorted(best.values(), key=lambda r: r.weight, reverse=True)[:MAX_HYBRID_REASONS]

    def get_preference_based_recommendations(
        self,
        candidates: Sequence[AnimeRecord],
        preferences: UserPreferences,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[RecommendationResult]:
        """Rank candidates against a preference profile alone."""
        if not candidates:
            return []

        scored: list[tuple[float, RecommendationResult]] = []
        for candidate in candidates:
            candidate = candidate.clamped()
            if not self.passes_filters(candidate, preferences):
                continue
            total, reasons = self.preference_score(candidate, preferences)
            scored.append((total, RecommendationResult(record=candidate, score=clamp_unit(total), reasons=reasons)))

        return self._rank(scored, max_results)

    @staticmethod
    def preference_score(
        record: AnimeRecord, preferences: UserPreferences
    ) -> tuple[float, list[RecommendationReason]]:
        """
        Fixed preference formula:

            0.4 × matched/favorite_count + 0.2 × studio_overlap
            + 0.15 × demographic_overlap + 0.25 × score/100
        """
        favorites = _folded(preferences.favorite_genres)
        favorite_count = max(len(favorites), 1)
        reasons: list[RecommendationReason] = []

        matched = _shared(record.genres, favorites)
        total = PREFERENCE_GENRE_WEIGHT * len(matched) / favorite_count
        for genre in matched:
            reasons.append(RecommendationReason(ReasonKind.GENRE, genre, PREFERENCE_GENRE_WEIGHT / favorite_count))

        studios = _shared(record.studios, preferences.preferred_studios)
        if studios:
            total += PREFERENCE_STUDIO_WEIGHT
            reasons.append(RecommendationReason(ReasonKind.STUDIO, studios[0], PREFERENCE_STUDIO_WEIGHT))

        demographics = _shared(record.demographics, preferences.preferred_demographics)
        if demographics:
            total += PREFERENCE_DEMOGRAPHIC_WEIGHT
            reasons.append(RecommendationReason(ReasonKind.DEMOGRAPHIC, demographics[0], PREFERENCE_DEMOGRAPHIC_WEIGHT))

        if record.average_score:
            score_weight = PREFERENCE_SCORE_WEIGHT * record.average_score / 100
            total += score_weight
            reasons.append(RecommendationReason(ReasonKind.SCORE, f"{record.average_score:.0f}", score_weight))

        reasons.sort(key=lambda r: r.weight, reverse=True)
        return total, reasons
