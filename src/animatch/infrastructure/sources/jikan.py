"""
Jikan Adapter - Unofficial MyAnimeList REST API

API: https://api.jikan.moe/v4
Rate limit: 3 requests/second (conservative)

MAL scores are on a 0-10 scale and are multiplied by 10. Jikan filters
genres by numeric MAL id, so genre filters are applied to the returned
page instead of being sent upstream.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from animatch.models import AnimeRecord, AnimeStatus, AnimeTitle, CoverImage, PartialDate, SearchOptions

from .base_client import BaseAnimeAdapter

logger = logging.getLogger(__name__)

_STATUS_FROM_JIKAN = {
    "finished airing": AnimeStatus.FINISHED,
    "currently airing": AnimeStatus.RELEASING,
    "not yet aired": AnimeStatus.NOT_YET_RELEASED,
}

_STATUS_TO_JIKAN = {
    "FINISHED": "complete",
    "RELEASING": "airing",
    "NOT_YET_RELEASED": "upcoming",
}

_ADULT_GENRES = {"hentai", "erotica"}

_HOURS_RE = re.compile(r"(\d+)\s*(?:hr|hour)", re.IGNORECASE)
_MINUTES_RE = re.compile(r"(\d+)\s*min", re.IGNORECASE)


def parse_duration(duration: str | None) -> int | None:
    """
    Parse Jikan duration strings into minutes.

    >>> parse_duration("24 min per ep")
    24
    >>> parse_duration("1 hr 30 min")
    90
    """
    if not duration:
        return None
    hours = _HOURS_RE.search(duration)
    minutes = _MINUTES_RE.search(duration)
    if not hours and not minutes:
        return None
    return (int(hours.group(1)) * 60 if hours else 0) + (int(minutes.group(1)) if minutes else 0)


def _names(items: list[dict[str, Any]] | None) -> list[str]:
    return [item["name"] for item in items or [] if item.get("name")]


class JikanAdapter(BaseAnimeAdapter):
    """
    Jikan (MyAnimeList) catalog adapter.

    Usage:
        async with JikanAdapter() as jikan:
            records = await jikan.search("monster", SearchOptions(per_page=10))
    """

    name = "jikan"
    _BASE_URL = "https://api.jikan.moe/v4"
    _RATE_LIMIT = (3, 1.0)

    async def search(self, query: str, options: SearchOptions) -> list[AnimeRecord]:
        params: dict[str, Any] = {
            "page": options.page,
            "limit": min(options.per_page, 25),
        }
        if query:
            params["q"] = query
        if options.year:
            params["start_date"] = f"{options.year}-01-01"
            params["end_date"] = f"{options.year}-12-31"
        if options.status:
            params["status"] = _STATUS_TO_JIKAN.get(options.status.upper(), "complete")
        if not options.include_adult:
            params["rating"] = "g,pg,pg13,r"

        response = await self._make_request("/anime", params=params)
        records = self._normalize_all((response or {}).get("data") or [])

        if not options.include_adult:
            records = [r for r in records if not r.is_adult]
        if options.genres:
            wanted = {g.casefold() for g in options.genres}
            records = [r for r in records if wanted & {g.casefold() for g in r.genres}]
        return records

    async def get_details(self, local_id: str) -> AnimeRecord | None:
        if not local_id.isdigit():
            return None
        response = await self._make_request(f"/anime/{local_id}/full")
        data = (response or {}).get("data")
        return self._normalize(data) if data else None

    async def get_recommendations(self, anime_id: str) -> list[AnimeRecord]:
        local = self.local_id(anime_id)
        if local is None or not local.isdigit():
            return []
        response = await self._make_request(f"/anime/{local}/recommendations")
        entries = [rec["entry"] for rec in ((response or {}).get("data") or [])[:10] if rec.get("entry")]
        return self._normalize_all(entries)

    # ===================================================================
    # Normalization
    # ===================================================================

    def _normalize(self, anime: dict[str, Any]) -> AnimeRecord | None:
        title = AnimeTitle(
            english=anime.get("title_english"),
            romaji=anime.get("title"),
            native=anime.get("title_japanese"),
            common=anime.get("title_english") or anime.get("title"),
        )
        if title.is_empty or anime.get("mal_id") is None:
            logger.debug(f"Jikan entry {anime.get('mal_id')} has no title, skipped")
            return None

        images = (anime.get("images") or {}).get("jpg") or {}
        aired = (anime.get("aired") or {}).get("prop") or {}
        score = anime.get("score")
        themes = _names(anime.get("themes"))
        demographics = _names(anime.get("demographics"))

        return AnimeRecord(
            id=self.composite_id(anime["mal_id"]),
            source_id=str(anime["mal_id"]),
            source_name=self.name,
            title=title,
            description=anime.get("synopsis"),
            cover_image=CoverImage(
                large=images.get("large_image_url"),
                medium=images.get("image_url"),
                small=images.get("small_image_url"),
            ),
            average_score=score * 10 if score else None,
            popularity=anime.get("popularity"),
            user_count=anime.get("scored_by"),
            episodes=anime.get("episodes"),
            duration_minutes=parse_duration(anime.get("duration")),
            status=_STATUS_FROM_JIKAN.get((anime.get("status") or "").lower(), AnimeStatus.FINISHED),
            start_date=PartialDate.from_dict(aired.get("from")),
            end_date=PartialDate.from_dict(aired.get("to")),
            genres=_names(anime.get("genres")),
            tags=themes + demographics,
            demographics=demographics,
            themes=themes,
            studios=_names(anime.get("studios")),
            producers=_names(anime.get("producers")),
            is_adult=self._is_adult(anime),
            confidence=self._confidence(anime),
        )

    @staticmethod
    def _is_adult(anime: dict[str, Any]) -> bool:
        rating = anime.get("rating") or ""
        if "Rx" in rating or "R+" in rating:
            return True
        explicit = [g.lower() for g in _names(anime.get("explicit_genres"))]
        if any("hentai" in g for g in explicit):
            return True
        return any(g.lower() in _ADULT_GENRES for g in _names(anime.get("genres")))

    @staticmethod
    def _confidence(anime: dict[str, Any]) -> float:
        """0.95 base, lowered by missing data."""
        confidence = 0.95
        if not anime.get("title_english") and not anime.get("title_japanese"):
            confidence -= 0.05
        if not anime.get("synopsis"):
            confidence -= 0.05
        if not anime.get("score"):
            confidence -= 0.03
        if not anime.get("episodes"):
            confidence -= 0.02
        return min(1.0, max(0.0, confidence))
