"""
AnimeRecord - Normalized Anime Model for Multi-Source Search

This module defines the canonical data structure for one anime title,
normalizing data from different catalogs into a single format.

Architecture Decision:
    Plain dataclasses, as elsewhere in the package. Records are treated as
    values: the aggregator builds new records when merging and the
    recommendation engine never mutates what it is given.

Supported Sources:
    - AniList (GraphQL)
    - Jikan (MyAnimeList mirror)
    - Kitsu (JSON:API)

Example:
    >>> record = AnimeRecord(
    ...     id="anilist-1",
    ...     source_id="1",
    ...     source_name="anilist",
    ...     title=AnimeTitle(romaji="Cowboy Bebop"),
    ...     average_score=86,
    ...     confidence=0.9,
    ... )
    >>> record.title.display
    'Cowboy Bebop'
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from animatch.shared.exceptions import InvalidParameterError

SCORE_MIN = 0.0
SCORE_MAX = 100.0


class AnimeStatus(Enum):
    """Airing status shared by all catalogs."""

    FINISHED = "FINISHED"
    RELEASING = "RELEASING"
    NOT_YET_RELEASED = "NOT_YET_RELEASED"
    CANCELLED = "CANCELLED"
    HIATUS = "HIATUS"


class ReasonKind(Enum):
    """What a recommendation reason refers to."""

    GENRE = "genre"
    STUDIO = "studio"
    DEMOGRAPHIC = "demographic"
    YEAR = "year"
    TAG = "tag"
    SCORE = "score"


def clamp_score(score: float | None) -> float | None:
    """Clamp an average score into [0, 100]; None stays None."""
    if score is None:
        return None
    return min(SCORE_MAX, max(SCORE_MIN, float(score)))


def clamp_unit(value: float) -> float:
    """Clamp a value into [0, 1]."""
    return min(1.0, max(0.0, float(value)))


def dedupe_case_insensitive(values: Iterable[str | None]) -> list[str]:
    """
    Deduplicate strings case-insensitively.

    Order and the casing of the first occurrence are kept; blanks dropped.
    """
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if not value:
            continue
        text = value.strip()
        folded = text.casefold()
        if not text or folded in seen:
            continue
        seen.add(folded)
        result.append(text)
    return result


@dataclass(frozen=True)
class PartialDate:
    """A date where any component may be unknown."""

    year: int | None = None
    month: int | None = None
    day: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.year is None and self.month is None and self.day is None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PartialDate | None:
        """Create from a ``{year, month, day}`` mapping; None for empty input."""
        if not data:
            return None
        date = cls(year=data.get("year"), month=data.get("month"), day=data.get("day"))
        return None if date.is_empty else date

    @classmethod
    def from_iso(cls, value: str | None) -> PartialDate | None:
        """Parse ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD`` (time suffix ignored)."""
        if not value:
            return None
        parts = value.split("T", 1)[0].split("-")
        try:
            numbers = [int(p) for p in parts if p]
        except ValueError:
            return None
        if not numbers:
            return None
        numbers += [None] * (3 - len(numbers))  # type: ignore[list-item]
        return cls(year=numbers[0], month=numbers[1], day=numbers[2])

    def to_dict(self) -> dict[str, int | None]:
        return {"year": self.year, "month": self.month, "day": self.day}


@dataclass(frozen=True)
class AnimeTitle:
    """
    Title variants.

    At least one variant must be populated for a record to be valid.
    """

    english: str | None = None
    romaji: str | None = None
    native: str | None = None
    common: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.english or self.romaji or self.native or self.common)

    @property
    def key_title(self) -> str:
        """Title used for duplicate detection (english > romaji > common > native)."""
        return self.english or self.romaji or self.common or self.native or ""

    @property
    def display(self) -> str:
        """Best available title for display."""
        return self.common or self.english or self.romaji or self.native or "Unknown Title"


@dataclass(frozen=True)
class CoverImage:
    """Cover image URLs in up to three sizes."""

    large: str | None = None
    medium: str | None = None
    small: str | None = None


@dataclass(frozen=True)
class Relation:
    """Link to a related title (sequel, prequel, adaptation...)."""

    relation_type: str
    anime_id: str


@dataclass
class SearchOptions:
    """
    Search options understood by every adapter.

    Attributes:
        page: 1-based result page
        per_page: Page size requested from each catalog
        genres: Genre names to filter by
        year: Season/start year filter
        status: One of the AnimeStatus values
        include_adult: Include 18+ titles (excluded by default)
    """

    page: int = 1
    per_page: int = 20
    genres: list[str] = field(default_factory=list)
    year: int | None = None
    status: str | None = None
    include_adult: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "per_page": self.per_page,
            "genres": list(self.genres),
            "year": self.year,
            "status": self.status,
            "include_adult": self.include_adult,
        }


@dataclass
class AnimeRecord:
    """
    Unified anime representation across all catalogs.

    Design Principles:
    1. Nullable fields - not all catalogs provide all data
    2. Composite id - ``"<source_name>-<source_id>"``; a merged record keeps
       the id of its highest-confidence contributor
    3. Confidence - adapter-assigned reliability in [0, 1]
    """

    # === Core Identity ===
    id: str
    source_id: str
    source_name: str
    title: AnimeTitle

    # === Descriptive ===
    description: str | None = None
    cover_image: CoverImage = field(default_factory=CoverImage)
    banner_image: str | None = None

    # === Ratings ===
    average_score: float | None = None  # 0-100
    popularity: int | None = None
    user_count: int | None = None

    # === Technical ===
    episodes: int | None = None
    duration_minutes: int | None = None
    status: AnimeStatus = AnimeStatus.FINISHED
    start_date: PartialDate | None = None
    end_date: PartialDate | None = None

    # === Classification ===
    genres: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    demographics: list[str] = field(default_factory=list)
    themes: list[str] = field(default_factory=list)
    studios: list[str] = field(default_factory=list)
    producers: list[str] = field(default_factory=list)
    is_adult: bool = False
    relations: list[Relation] = field(default_factory=list)

    # === Data Quality ===
    confidence: float = 0.0
    last_updated: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if self.title.is_empty:
            raise InvalidParameterError("title", self.title, "at least one populated title variant")
        for name in SET_FIELDS:
            setattr(self, name, dedupe_case_insensitive(getattr(self, name)))

    # ===================================================================
    # Properties
    # ===================================================================

    @property
    def start_year(self) -> int | None:
        return self.start_date.year if self.start_date else None

    @property
    def weighted_score(self) -> float:
        """Ranking key: ``average_score × confidence`` (missing score counts as 0)."""
        return (self.average_score or 0.0) * self.confidence

    # ===================================================================
    # Conversions
    # ===================================================================

    def clamped(self) -> AnimeRecord:
        """
        Return a record whose score and confidence are inside their ranges.

        Returns ``self`` when nothing needs clamping, a copy otherwise.
        """
        score = clamp_score(self.average_score)
        confidence = clamp_unit(self.confidence)
        if score == self.average_score and confidence == self.confidence:
            return self
        return replace(self, average_score=score, confidence=confidence)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "source_id": self.source_id,
            "source_name": self.source_name,
            "title": {
                "english": self.title.english,
                "romaji": self.title.romaji,
                "native": self.title.native,
                "common": self.title.common,
            },
            "description": self.description,
            "cover_image": {
                "large": self.cover_image.large,
                "medium": self.cover_image.medium,
                "small": self.cover_image.small,
            },
            "banner_image": self.banner_image,
            "average_score": self.average_score,
            "popularity": self.popularity,
            "user_count": self.user_count,
            "episodes": self.episodes,
            "duration_minutes": self.duration_minutes,
            "status": self.status.value,
            "start_date": self.start_date.to_dict() if self.start_date else None,
            "end_date": self.end_date.to_dict() if self.end_date else None,
            "genres": self.genres,
            "tags": self.tags,
            "demographics": self.demographics,
            "themes": self.themes,
            "studios": self.studios,
            "producers": self.producers,
            "is_adult": self.is_adult,
            "relations": [{"type": r.relation_type, "anime_id": r.anime_id} for r in self.relations],
            "confidence": self.confidence,
            "last_updated": self.last_updated.isoformat(),
        }


SET_FIELDS: tuple[str, ...] = ("genres", "tags", "demographics", "themes", "studios", "producers")


@dataclass
class RecommendationReason:
    """An explainable contribution to a recommendation."""

    kind: ReasonKind
    value: str
    weight: float

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "value": self.value, "weight": round(self.weight, 4)}


@dataclass
class RecommendationResult:
    """A ranked candidate with its score in [0, 1] and the reasons behind it."""

    record: AnimeRecord
    score: float
    reasons: list[RecommendationReason] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "record": self.record.to_dict(),
            "score": round(self.score, 4),
            "reasons": [r.to_dict() for r in self.reasons],
        }
