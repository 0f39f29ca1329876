"""
DataAggregator - Multi-Source Fan-Out, Deduplication and Confidence Merge

This module reconciles the disagreeing records that several catalogs return
for the same title:
1. Fan-out to every enabled adapter in parallel, each call under a deadline
2. Partial failure tolerance (a failing catalog contributes nothing)
3. Grouping by MergeKey (normalized title + start year + episode count)
4. Confidence Merge of every group with more than one record
5. Ordering by ``average_score × confidence``

Architecture Decision:
    The grouping and merge steps are pure functions over AnimeRecord and
    make no network calls, so they are tested without adapters.
    DataAggregator only owns the concurrency: an asyncio.TaskGroup that is
    fully joined, with ``asyncio.timeout`` cancelling calls that overrun.

Example:
    >>> aggregator = DataAggregator([AniListAdapter(), JikanAdapter()])
    >>> records = await aggregator.search("cowboy bebop")
    >>> records[0].id
    'anilist-1'
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, TypeVar

from animatch.infrastructure.sources.base_client import AnimeSourceAdapter
from animatch.models import SET_FIELDS, AnimeRecord, CoverImage, PartialDate, SearchOptions, dedupe_case_insensitive
from animatch.shared.async_utils import call_with_deadline
from animatch.shared.exceptions import UnknownSourceError
from animatch.shared.settings import DEFAULT_SOURCE_WEIGHTS

logger = logging.getLogger(__name__)

T = TypeVar("T")

# =============================================================================
# Constants
# =============================================================================

STOP_WORDS = ("the", "a", "an", "wo", "ga", "no", "ni", "de", "to")
DEFAULT_TIMEOUT = 10.0
UNKNOWN_SOURCE_WEIGHT = 0.1
MAX_RECOMMENDATIONS = 20

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_STOP_WORDS_RE = re.compile(r"\b(?:" + "|".join(STOP_WORDS) + r")\b")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class AggregatorConfig:
    """
    Aggregator configuration.

    Attributes:
        timeout: Deadline for each individual adapter call (seconds)
        source_weights: How much each catalog's score counts when merging
        default_source_weight: Weight of catalogs missing from ``source_weights``
    """

    timeout: float = DEFAULT_TIMEOUT
    source_weights: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_SOURCE_WEIGHTS))
    default_source_weight: float = UNKNOWN_SOURCE_WEIGHT

    def weight_for(self, source_name: str) -> float:
        return self.source_weights.get(source_name.lower(), self.default_source_weight)


@dataclass
class AggregationStats:
    """Statistics from one fan-out."""

    total_input: int = 0
    unique_records: int = 0
    merged_groups: int = 0
    by_source: dict[str, int] = field(default_factory=dict)
    failed_sources: list[str] = field(default_factory=list)

    @property
    def duplicates_removed(self) -> int:
        return self.total_input - self.unique_records

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_input": self.total_input,
            "unique_records": self.unique_records,
            "duplicates_removed": self.duplicates_removed,
            "merged_groups": self.merged_groups,
            "by_source": self.by_source,
            "failed_sources": self.failed_sources,
        }


@dataclass
class _SourceOutcome:
    source: str
    records: list[AnimeRecord]
    error: str | None = None


# =============================================================================
# Pure Merge Functions
# =============================================================================


def normalize_title(title: str) -> str:
    """
    Normalize a title for duplicate detection.

    Lowercases, strips punctuation, removes stop words and collapses
    whitespace.

    >>> normalize_title("The Melancholy of Haruhi Suzumiya!")
    'melancholy of haruhi suzumiya'
    """
    text = _PUNCTUATION_RE.sub("", title.lower())
    text = _STOP_WORDS_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def merge_key(record: AnimeRecord) -> str:
    """``normalized title - start year - episodes``, with ``unknown`` for missing parts."""
    year = record.start_year or "unknown"
    episodes = record.episodes or "unknown"
    return f"{normalize_title(record.title.key_title)}-{year}-{episodes}"


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str | list | tuple | set | dict):
        return len(value) > 0
    if isinstance(value, PartialDate):
        return not value.is_empty
    return True


def select_first_present(records: Iterable[AnimeRecord], accessor: Callable[[AnimeRecord], T | None]) -> T | None:
    """
    Return the first present value in iteration order.

    None, empty strings and empty collections are absent; ``0`` and
    ``False`` are present.
    """
    for record in records:
        value = accessor(record)
        if _is_present(value):
            return value
    return None


def weighted_average_score(records: Sequence[AnimeRecord], config: AggregatorConfig) -> float | None:
    """
    Average score weighted by ``confidence × source_weight``.

    Only records with a score contribute. None when no record has one.
    """
    scored = [r for r in records if r.average_score is not None]
    if not scored:
        return None
    total_weight = 0.0
    total = 0.0
    for record in scored:
        factor = record.confidence * config.weight_for(record.source_name)
        total += record.average_score * factor  # type: ignore[operator]
        total_weight += factor
    if total_weight <= 0:
        return sum(r.average_score for r in scored) / len(scored)  # type: ignore[misc]
    return total / total_weight


def combined_confidence(records: Sequence[AnimeRecord]) -> float:
    """Highest confidence plus 0.1 per extra agreeing source (bonus capped at 0.2)."""
    base = max(r.confidence for r in records)
    bonus = min(0.2, 0.1 * (len(records) - 1))
    return min(1.0, base + bonus)


def merge_records(records: Sequence[AnimeRecord], config: AggregatorConfig | None = None) -> AnimeRecord:
    """
    Confidence Merge of records describing the same title.

    The highest-confidence record is the primary: it supplies the id and
    relations. Scalars come from the first present value in confidence
    order, set fields are unioned, the score is a weighted average.
    """
    if not records:
        raise ValueError("merge_records() needs at least one record")
    if len(records) == 1:
        return records[0].clamped()

    config = config or AggregatorConfig()
    ranked = sorted(records, key=lambda r: r.confidence, reverse=True)
    primary = ranked[0]

    def first(accessor: Callable[[AnimeRecord], Any]) -> Any:
        return select_first_present(ranked, accessor)

    merged = replace(
        primary,
        title=replace(
            primary.title,
            english=first(lambda r: r.title.english),
            romaji=first(lambda r: r.title.romaji),
            native=first(lambda r: r.title.native),
            common=first(lambda r: r.title.common),
        ),
        description=first(lambda r: r.description),
        cover_image=CoverImage(
            large=first(lambda r: r.cover_image.large),
            medium=first(lambda r: r.cover_image.medium),
            small=first(lambda r: r.cover_image.small),
        ),
        banner_image=first(lambda r: r.banner_image),
        average_score=weighted_average_score(ranked, config),
        popularity=first(lambda r: r.popularity),
        user_count=first(lambda r: r.user_count),
        episodes=first(lambda r: r.episodes),
        duration_minutes=first(lambda r: r.duration_minutes),
        start_date=first(lambda r: r.start_date),
        end_date=first(lambda r: r.end_date),
        is_adult=any(r.is_adult for r in ranked),
        confidence=combined_confidence(ranked),
        last_updated=max(r.last_updated for r in ranked),
        **{name: dedupe_case_insensitive(v for r in ranked for v in getattr(r, name)) for name in SET_FIELDS},
    )
    return merged.clamped()


def group_and_merge(
    records: Iterable[AnimeRecord],
    config: AggregatorConfig | None = None,
    stats: AggregationStats | None = None,
) -> list[AnimeRecord]:
    """Group by MergeKey, merge each group, order by ``average_score × confidence``."""
    groups: dict[str, list[AnimeRecord]] = {}
    for record in records:
        groups.setdefault(merge_key(record), []).append(record)

    merged: list[AnimeRecord] = []
    for group in groups.values():
        if len(group) > 1 and stats is not None:
            stats.merged_groups += 1
        merged.append(merge_records(group, config))

    merged.sort(key=lambda r: r.weighted_score, reverse=True)
    return merged


def dedupe_keep_most_confident(records: Iterable[AnimeRecord], limit: int = MAX_RECOMMENDATIONS) -> list[AnimeRecord]:
    """One record per MergeKey, the highest-confidence instance wins (first on ties)."""
    unique: dict[str, AnimeRecord] = {}
    for record in records:
        key = merge_key(record)
        existing = unique.get(key)
        if existing is None or record.confidence > existing.confidence:
            unique[key] = record
    return [r.clamped() for r in list(unique.values())[:limit]]


# =============================================================================
# Aggregator
# =============================================================================


class DataAggregator:
    """
    Fans calls out to catalog adapters and consolidates their answers.

    Responsibilities:
    1. Run one task per adapter inside an asyncio.TaskGroup, fully joined
    2. Apply the per-call deadline, cancelling overrunning calls
    3. Downgrade any adapter failure to an empty contribution plus a warning
    4. Merge and order the combined records

    Usage:
        aggregator = DataAggregator(adapters, AggregatorConfig(timeout=5))
        records, stats = await aggregator.search_with_stats("monster")
    """

    def __init__(self, adapters: Sequence[AnimeSourceAdapter], config: AggregatorConfig | None = None):
        self._config = config or AggregatorConfig()
        self._adapters: dict[str, AnimeSourceAdapter] = {}
        for adapter in adapters:
            self._adapters[adapter.name.lower()] = adapter

    @property
    def config(self) -> AggregatorConfig:
        return self._config

    @property
    def sources(self) -> list[str]:
        """Names of the enabled adapters, in fan-out order."""
        return list(self._adapters)

    # =========================================================================
    # Fan-out
    # =========================================================================

    async def _call_adapter(
        self,
        adapter: AnimeSourceAdapter,
        operation: str,
        make_call: Callable[[AnimeSourceAdapter], Awaitable[list[AnimeRecord]]],
    ) -> _SourceOutcome:
        try:
            records = await call_with_deadline(
                lambda: make_call(adapter),
                self._config.timeout,
                source=adapter.name,
            )
        except Exception as e:
            logger.warning(f"{operation} failed for {adapter.name}: {e}")
            return _SourceOutcome(adapter.name, [], error=str(e))
        return _SourceOutcome(adapter.name, list(records or []))

    async def _fan_out(
        self,
        operation: str,
        make_call: Callable[[AnimeSourceAdapter], Awaitable[list[AnimeRecord]]],
    ) -> list[_SourceOutcome]:
        tasks = []
        async with asyncio.TaskGroup() as tg:
            for adapter in self._adapters.values():
                tasks.append(tg.create_task(self._call_adapter(adapter, operation, make_call)))
        return [task.result() for task in tasks]

    # =========================================================================
    # Operations
    # =========================================================================

    async def search(self, query: str, options: SearchOptions | None = None) -> list[AnimeRecord]:
        """Search every catalog and return merged records, best first."""
        records, _ = await self.search_with_stats(query, options)
        return records

    async def search_with_stats(
        self, query: str, options: SearchOptions | None = None
    ) -> tuple[list[AnimeRecord], AggregationStats]:
        """Search every catalog and report how the results were consolidated."""
        options = options or SearchOptions()
        outcomes = await self._fan_out("Search", lambda adapter: adapter.search(query, options))

        stats = AggregationStats()
        all_records: list[AnimeRecord] = []
        for outcome in outcomes:
            if outcome.error is not None:
                stats.failed_sources.append(outcome.source)
            stats.by_source[outcome.source] = len(outcome.records)
            all_records.extend(outcome.records)
        stats.total_input = len(all_records)

        merged = group_and_merge(all_records, self._config, stats)
        stats.unique_records = len(merged)
        logger.info(
            f"Search '{query}': {stats.total_input} records from {len(outcomes)} sources, "
            f"{stats.unique_records} unique, {stats.merged_groups} merged"
        )
        return merged, stats

    def _split_id(self, anime_id: str) -> tuple[str, str]:
        source_name, sep, local_id = anime_id.partition("-")
        if not sep or not local_id:
            raise UnknownSourceError(anime_id, known_sources=tuple(self._adapters))
        return source_name.lower(), local_id

    async def get_anime_details(self, anime_id: str) -> AnimeRecord | None:
        """
        Fetch one record from the catalog named in its composite id.

        Raises:
            UnknownSourceError: The id is malformed or names a catalog that is not enabled
        """
        source_name, local_id = self._split_id(anime_id)
        adapter = self._adapters.get(source_name)
        if adapter is None:
            raise UnknownSourceError(source_name, known_sources=tuple(self._adapters))

        try:
            record = await call_with_deadline(
                lambda: adapter.get_details(local_id),
                self._config.timeout,
                source=adapter.name,
            )
        except Exception as e:
            logger.warning(f"Details failed for {anime_id}: {e}")
            return None
        return record.clamped() if record is not None else None

    async def get_recommendations(self, anime_id: str) -> list[AnimeRecord]:
        """
        Ask every catalog for titles related to ``anime_id``.

        The owning catalog receives its local id, the others the composite id.
        Duplicates keep their highest-confidence instance; at most 20 results.
        """
        owner, _, local_id = anime_id.partition("-")
        owner = owner.lower()

        def request(adapter: AnimeSourceAdapter) -> Awaitable[list[AnimeRecord]]:
            own = adapter.name.lower() == owner and local_id
            return adapter.get_recommendations(local_id if own else anime_id)

        outcomes = await self._fan_out("Recommendations", request)
        records = dedupe_keep_most_confident(r for outcome in outcomes for r in outcome.records)
        logger.info(f"Recommendations for {anime_id}: {len(records)} unique records")
        return records

    async def close(self) -> None:
        """Close adapters that hold network resources."""
        for adapter in self._adapters.values():
            close = getattr(adapter, "close", None)
            if close is not None:
                await close()
