"""
Kitsu Adapter - JSON:API

API: https://kitsu.io/api/edge
Rate limit: 40 requests/minute (conservative)

Kitsu has no recommendations endpoint; related media (sequels, side
stories...) are used instead. ``averageRating`` is already on a 0-100
scale. Genres and categories are only available as included resources on
the details endpoint.
"""

from __future__ import annotations

import logging
from typing import Any

from animatch.models import AnimeRecord, AnimeStatus, AnimeTitle, CoverImage, PartialDate, SearchOptions

from .base_client import BaseAnimeAdapter

logger = logging.getLogger(__name__)

JSON_API = "application/vnd.api+json"

_STATUS_FROM_KITSU = {
    "finished": AnimeStatus.FINISHED,
    "current": AnimeStatus.RELEASING,
    "upcoming": AnimeStatus.NOT_YET_RELEASED,
    "tba": AnimeStatus.NOT_YET_RELEASED,
}

_ADULT_RATINGS = {"R18+", "RX", "R+"}
_ADULT_GENRE_MARKERS = ("hentai", "ecchi", "adult", "mature")


def _float_or_none(value: Any) -> float | None:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


class KitsuAdapter(BaseAnimeAdapter):
    """
    Kitsu catalog adapter.

    Usage:
        async with KitsuAdapter() as kitsu:
            record = await kitsu.get_details("1")
    """

    name = "kitsu"
    _BASE_URL = "https://kitsu.io/api/edge"
    _RATE_LIMIT = (40, 60.0)

    def __init__(self, timeout: float = 30.0, **kwargs: Any) -> None:
        super().__init__(timeout=timeout, headers={"Accept": JSON_API, "Content-Type": JSON_API}, **kwargs)

    async def search(self, query: str, options: SearchOptions) -> list[AnimeRecord]:
        per_page = min(options.per_page, 20)
        params: dict[str, Any] = {
            "filter[subtype]": "TV,movie,OVA,ONA,special",
            "page[limit]": per_page,
            "page[offset]": (options.page - 1) * per_page,
        }
        if query:
            params["filter[text]"] = query
        if options.genres:
            params["filter[categories]"] = ",".join(g.lower().replace(" ", "-") for g in options.genres)
        if options.year:
            params["filter[seasonYear]"] = options.year

        response = await self._make_request("/anime", params=params)
        records = self._normalize_all((response or {}).get("data") or [])
        if not options.include_adult:
            records = [r for r in records if not r.is_adult]
        return records

    async def get_details(self, local_id: str) -> AnimeRecord | None:
        if not local_id.isdigit():
            return None
        response = await self._make_request(f"/anime/{local_id}", params={"include": "genres,categories"})
        if not response or not response.get("data"):
            return None
        return self._normalize(response["data"], response.get("included") or [])

    async def get_recommendations(self, anime_id: str) -> list[AnimeRecord]:
        local = self.local_id(anime_id)
        if local is None or not local.isdigit():
            return []
        response = await self._make_request(
            f"/anime/{local}/relationships/media-relationships",
            params={"include": "destination"},
        )
        related = [item for item in (response or {}).get("included") or [] if item.get("type") == "anime"]
        return self._normalize_all(related[:10])

    # ===================================================================
    # Normalization
    # ===================================================================

    def _normalize(self, anime: dict[str, Any], included: list[dict[str, Any]] | None = None) -> AnimeRecord | None:
        attributes = anime.get("attributes") or {}
        titles = attributes.get("titles") or {}
        title = AnimeTitle(
            english=titles.get("en") or titles.get("en_us"),
            romaji=titles.get("en_jp"),
            native=titles.get("ja_jp"),
            common=attributes.get("canonicalTitle"),
        )
        if title.is_empty or anime.get("id") is None:
            logger.debug(f"Kitsu entry {anime.get('id')} has no title, skipped")
            return None

        genres = self._included_names(anime, included or [], "genres", "name")
        categories = self._included_names(anime, included or [], "categories", "title")
        poster = attributes.get("posterImage") or {}
        cover = attributes.get("coverImage") or {}
        age_rating = attributes.get("ageRating")

        return AnimeRecord(
            id=self.composite_id(anime["id"]),
            source_id=str(anime["id"]),
            source_name=self.name,
            title=title,
            description=attributes.get("synopsis") or attributes.get("description"),
            cover_image=CoverImage(
                large=poster.get("large"),
                medium=poster.get("medium"),
                small=poster.get("small"),
            ),
            banner_image=cover.get("large") or poster.get("large"),
            average_score=_float_or_none(attributes.get("averageRating")),
            popularity=attributes.get("popularityRank"),
            user_count=attributes.get("userCount"),
            episodes=attributes.get("episodeCount"),
            duration_minutes=attributes.get("episodeLength"),
            status=_STATUS_FROM_KITSU.get((attributes.get("status") or "").lower(), AnimeStatus.FINISHED),
            start_date=PartialDate.from_iso(attributes.get("startDate")),
            end_date=PartialDate.from_iso(attributes.get("endDate")),
            genres=genres,
            tags=categories,
            demographics=[age_rating] if age_rating else [],
            is_adult=self._is_adult(age_rating, genres + categories),
            confidence=self._confidence(attributes),
        )

    @staticmethod
    def _included_names(
        anime: dict[str, Any], included: list[dict[str, Any]], kind: str, attribute: str
    ) -> list[str]:
        linked = ((anime.get("relationships") or {}).get(kind) or {}).get("data") or []
        ids = {item.get("id") for item in linked}
        return [
            item["attributes"][attribute]
            for item in included
            if item.get("type") == kind and item.get("id") in ids and (item.get("attributes") or {}).get(attribute)
        ]

    @staticmethod
    def _is_adult(age_rating: str | None, genres: list[str]) -> bool:
        if age_rating and age_rating.upper() in _ADULT_RATINGS:
            return True
        return any(marker in g.lower() for g in genres for marker in _ADULT_GENRE_MARKERS)

    @staticmethod
    def _confidence(attributes: dict[str, Any]) -> float:
        """0.7 base, raised by data completeness and rating sample size."""
        confidence = 0.7
        if attributes.get("canonicalTitle"):
            confidence += 0.05
        if attributes.get("synopsis"):
            confidence += 0.05
        if attributes.get("averageRating") and (attributes.get("userCount") or 0) > 100:
            confidence += 0.1
        if (attributes.get("episodeCount") or 0) > 0:
            confidence += 0.03
        if attributes.get("startDate"):
            confidence += 0.02
        return min(1.0, confidence)
