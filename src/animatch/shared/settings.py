"""
AniMatch settings.

Every recognized option is enumerated here with its default. Values can be
overridden from the environment via ``AniMatchSettings.from_env()``:

    ANIMATCH_TIMEOUT                 Per-adapter call deadline in seconds (10)
    ANIMATCH_SOURCES                 Comma list of enabled adapters (anilist,jikan,kitsu)
    ANIMATCH_SEARCH_TTL              Search cache TTL in seconds (900)
    ANIMATCH_DETAILS_TTL             Details cache TTL in seconds (3600)
    ANIMATCH_RECOMMENDATIONS_TTL     Recommendations cache TTL in seconds (1800)
    ANIMATCH_CACHE_MAX_SIZE          Entries per cache store (1000)
    ANIMATCH_LOG_LEVEL               Log level for the CLI (INFO)
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Any

from .exceptions import ConfigurationError, ErrorContext

DEFAULT_SOURCES: tuple[str, ...] = ("anilist", "jikan", "kitsu")

# How much each catalog's score counts in merged weighted averages.
DEFAULT_SOURCE_WEIGHTS: dict[str, float] = {
    "anilist": 0.35,
    "myanimelist": 0.25,
    "kitsu": 0.2,
    "animethemes": 0.1,
    "consumet": 0.1,
    "jikan": 0.05,
    "tmdb": 0.05,
    "trackt": 0.05,
}


@dataclass
class AniMatchSettings:
    """
    Process-wide configuration.

    Attributes:
        timeout: Deadline for every individual adapter call (seconds)
        sources: Names of enabled adapters, looked up in the adapter registry
        source_weights: Score weight per source used by confidence merge
        search_ttl: TTL of cached search results (seconds)
        details_ttl: TTL of cached item details (seconds)
        recommendations_ttl: TTL of cached raw recommendations (seconds)
        cache_max_size: Maximum entries per cache store
        log_level: Logging level name used by the CLI
    """

    timeout: float = 10.0
    sources: tuple[str, ...] = DEFAULT_SOURCES
    source_weights: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_SOURCE_WEIGHTS))
    search_ttl: float = 15 * 60
    details_ttl: float = 60 * 60
    recommendations_ttl: float = 30 * 60
    cache_max_size: int = 1000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> AniMatchSettings:
        """Load configuration from environment variables."""
        sources_raw = os.environ.get("ANIMATCH_SOURCES", "")
        sources = tuple(s.strip().lower() for s in sources_raw.split(",") if s.strip()) or DEFAULT_SOURCES
        cache_max_size = int(_env_float("ANIMATCH_CACHE_MAX_SIZE", 1000))
        if cache_max_size < 1:
            raise ConfigurationError(
                f"ANIMATCH_CACHE_MAX_SIZE must be at least 1, got {cache_max_size}",
                context=ErrorContext(operation="load_settings", input_value=cache_max_size),
            )
        return cls(
            timeout=_env_float("ANIMATCH_TIMEOUT", 10.0),
            sources=sources,
            search_ttl=_env_float("ANIMATCH_SEARCH_TTL", 15 * 60),
            details_ttl=_env_float("ANIMATCH_DETAILS_TTL", 60 * 60),
            recommendations_ttl=_env_float("ANIMATCH_RECOMMENDATIONS_TTL", 30 * 60),
            cache_max_size=cache_max_size,
            log_level=os.environ.get("ANIMATCH_LOG_LEVEL", "INFO").upper(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain dict suitable for ``ApplicationContainer.config.from_dict``."""
        data = asdict(self)
        data["sources"] = list(self.sources)
        return data


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be a number, got {raw!r}",
            context=ErrorContext(operation="load_settings", input_value=raw),
        ) from e
    if value < 0:
        raise ConfigurationError(
            f"{name} must not be negative, got {raw!r}",
            context=ErrorContext(operation="load_settings", input_value=raw),
        )
    return value
