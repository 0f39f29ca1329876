"""
Catalog Adapters

Closed set of catalog adapters, registered in a static table keyed by name.
Looking up an unregistered name raises UnknownSourceError immediately.

    ┌──────────────────────────────────────────────┐
    │               DataAggregator                 │
    │  ┌────────────┬────────────┬──────────────┐  │
    │  │  AniList   │   Jikan    │    Kitsu     │  │
    │  │ (GraphQL)  │ (MAL REST) │  (JSON:API)  │  │
    │  └────────────┴────────────┴──────────────┘  │
    └──────────────────────────────────────────────┘
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

from animatch.shared.exceptions import UnknownSourceError

from .anilist import AniListAdapter
from .base_client import AnimeSourceAdapter, BaseAnimeAdapter
from .jikan import JikanAdapter
from .kitsu import KitsuAdapter

logger = logging.getLogger(__name__)


class AnimeSource(Enum):
    """Registered catalogs."""

    ANILIST = "anilist"
    JIKAN = "jikan"
    KITSU = "kitsu"


ADAPTER_REGISTRY: dict[str, type[BaseAnimeAdapter]] = {
    AnimeSource.ANILIST.value: AniListAdapter,
    AnimeSource.JIKAN.value: JikanAdapter,
    AnimeSource.KITSU.value: KitsuAdapter,
}


def create_adapter(name: str, **kwargs: Any) -> BaseAnimeAdapter:
    """
    Instantiate the adapter registered under ``name``.

    Raises:
        UnknownSourceError: If no adapter is registered under that name
    """
    key = name.strip().lower()
    try:
        adapter_cls = ADAPTER_REGISTRY[key]
    except KeyError:
        raise UnknownSourceError(name, known_sources=tuple(ADAPTER_REGISTRY)) from None
    return adapter_cls(**kwargs)


def create_adapters(names: Iterable[str], **kwargs: Any) -> list[BaseAnimeAdapter]:
    """Instantiate every named adapter, failing on the first unknown name."""
    adapters = [create_adapter(name, **kwargs) for name in names]
    logger.debug(f"Enabled adapters: {[a.name for a in adapters]}")
    return adapters


__all__ = [
    "ADAPTER_REGISTRY",
    "AniListAdapter",
    "AnimeSource",
    "AnimeSourceAdapter",
    "BaseAnimeAdapter",
    "JikanAdapter",
    "KitsuAdapter",
    "create_adapter",
    "create_adapters",
]
