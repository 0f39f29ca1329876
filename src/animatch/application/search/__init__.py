"""
Multi-Source Search

    query
      │
      ▼
    ┌──────────────────┐
    │  DataAggregator  │  ← parallel fan-out, per-call deadline
    └────────┬─────────┘
    ┌────────┼────────┐
    ▼        ▼        ▼
  AniList  Jikan    Kitsu
    └────────┼────────┘
             ▼
    group by MergeKey → Confidence Merge → order by score × confidence
"""

from __future__ import annotations

from .aggregator import (
    AggregationStats,
    AggregatorConfig,
    DataAggregator,
    group_and_merge,
    merge_key,
    merge_records,
    normalize_title,
    select_first_present,
)

__all__ = [
    "AggregationStats",
    "AggregatorConfig",
    "DataAggregator",
    "group_and_merge",
    "merge_key",
    "merge_records",
    "normalize_title",
    "select_first_present",
]
