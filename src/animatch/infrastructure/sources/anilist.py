"""
AniList GraphQL Adapter

API: https://graphql.anilist.co
Rate limit: 90 requests/minute

Features:
- Search with genre, season year, status and adult filters
- Details including main studios, tags and relations
- Community recommendations sorted by rating
"""

from __future__ import annotations

import logging
from typing import Any

from animatch.models import AnimeRecord, AnimeStatus, AnimeTitle, CoverImage, PartialDate, Relation, SearchOptions
from animatch.shared.exceptions import AdapterError

from .base_client import BaseAnimeAdapter

logger = logging.getLogger(__name__)

_MEDIA_FIELDS = """
    id
    title { romaji english native }
    description
    coverImage { extraLarge large medium }
    bannerImage
    averageScore
    popularity
    episodes
    duration
    status
    startDate { year month day }
    endDate { year month day }
    genres
    tags { name rank }
    studios(isMain: true) { nodes { name } }
    isAdult
"""

SEARCH_QUERY = f"""
query SearchAnime($search: String, $page: Int, $perPage: Int, $genre_in: [String],
                  $seasonYear: Int, $status: MediaStatus, $isAdult: Boolean) {{
  Page(page: $page, perPage: $perPage) {{
    media(search: $search, type: ANIME, sort: SEARCH_MATCH, genre_in: $genre_in,
          seasonYear: $seasonYear, status: $status, isAdult: $isAdult) {{
      {_MEDIA_FIELDS}
    }}
  }}
}}
"""

DETAILS_QUERY = f"""
query GetAnimeDetails($id: Int) {{
  Media(id: $id, type: ANIME) {{
    {_MEDIA_FIELDS}
    relations {{ edges {{ relationType node {{ id type }} }} }}
  }}
}}
"""

RECOMMENDATIONS_QUERY = f"""
query GetRecommendations($mediaId: Int, $perPage: Int) {{
  Page(perPage: $perPage) {{
    recommendations(mediaId: $mediaId, sort: RATING_DESC) {{
      rating
      mediaRecommendation {{
        {_MEDIA_FIELDS}
      }}
    }}
  }}
}}
"""


class AniListAdapter(BaseAnimeAdapter):
    """
    AniList catalog adapter.

    AniList's own vocabulary already matches AnimeStatus, so status strings
    pass through unchanged (unknown values fall back to FINISHED).

    Usage:
        async with AniListAdapter() as anilist:
            records = await anilist.search("cowboy bebop", SearchOptions())
    """

    name = "anilist"
    _BASE_URL = "https://graphql.anilist.co"
    _RATE_LIMIT = (90, 60.0)

    def __init__(self, timeout: float = 30.0, **kwargs: Any) -> None:
        super().__init__(
            timeout=timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            **kwargs,
        )

    async def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any] | None:
        response = await self._make_request(
            self._BASE_URL,
            method="POST",
            data={"query": query, "variables": variables},
        )
        if response is None:
            return None
        if response.get("errors") and not response.get("data"):
            message = response["errors"][0].get("message", "unknown GraphQL error")
            raise AdapterError(f"GraphQL error: {message}", source=self.name, retryable=False)
        return response.get("data")

    async def search(self, query: str, options: SearchOptions) -> list[AnimeRecord]:
        variables: dict[str, Any] = {
            "search": query or None,
            "page": options.page,
            "perPage": options.per_page,
            "genre_in": options.genres or None,
            "seasonYear": options.year,
            "status": options.status.upper() if options.status else None,
            "isAdult": options.include_adult,
        }
        data = await self._graphql(SEARCH_QUERY, variables)
        media = ((data or {}).get("Page") or {}).get("media") or []
        return self._normalize_all(media)

    async def get_details(self, local_id: str) -> AnimeRecord | None:
        if not local_id.isdigit():
            return None
        data = await self._graphql(DETAILS_QUERY, {"id": int(local_id)})
        media = (data or {}).get("Media")
        return self._normalize(media) if media else None

    async def get_recommendations(self, anime_id: str) -> list[AnimeRecord]:
        local = self.local_id(anime_id)
        if local is None or not local.isdigit():
            return []
        data = await self._graphql(RECOMMENDATIONS_QUERY, {"mediaId": int(local), "perPage": 10})
        recommendations = ((data or {}).get("Page") or {}).get("recommendations") or []
        media = [r["mediaRecommendation"] for r in recommendations if r.get("mediaRecommendation")]
        return self._normalize_all(media)

    # ===================================================================
    # Normalization
    # ===================================================================

    def _normalize(self, media: dict[str, Any]) -> AnimeRecord | None:
        title_data = media.get("title") or {}
        title = AnimeTitle(
            english=title_data.get("english"),
            romaji=title_data.get("romaji"),
            native=title_data.get("native"),
            common=title_data.get("english") or title_data.get("romaji"),
        )
        if title.is_empty:
            logger.debug(f"AniList media {media.get('id')} has no title, skipped")
            return None

        cover = media.get("coverImage") or {}
        studios = ((media.get("studios") or {}).get("nodes")) or []
        edges = ((media.get("relations") or {}).get("edges")) or []

        return AnimeRecord(
            id=self.composite_id(media["id"]),
            source_id=str(media["id"]),
            source_name=self.name,
            title=title,
            description=media.get("description"),
            cover_image=CoverImage(
                large=cover.get("extraLarge") or cover.get("large"),
                medium=cover.get("medium"),
                small=cover.get("medium"),
            ),
            banner_image=media.get("bannerImage"),
            average_score=media.get("averageScore"),
            popularity=media.get("popularity"),
            episodes=media.get("episodes"),
            duration_minutes=media.get("duration"),
            status=_map_status(media.get("status")),
            start_date=PartialDate.from_dict(media.get("startDate")),
            end_date=PartialDate.from_dict(media.get("endDate")),
            genres=media.get("genres") or [],
            tags=[t["name"] for t in media.get("tags") or [] if t.get("name")],
            studios=[s["name"] for s in studios if s.get("name")],
            is_adult=bool(media.get("isAdult")),
            relations=[
                Relation(relation_type=e.get("relationType") or "RELATED", anime_id=self.composite_id(e["node"]["id"]))
                for e in edges
                if e.get("node") and e["node"].get("id") is not None
            ],
            confidence=self._confidence(media),
        )

    @staticmethod
    def _confidence(media: dict[str, Any]) -> float:
        """0.8 base, raised by data completeness."""
        title = media.get("title") or {}
        confidence = 0.8
        if title.get("english") and title.get("romaji"):
            confidence += 0.05
        if media.get("description"):
            confidence += 0.05
        if (media.get("averageScore") or 0) > 0:
            confidence += 0.05
        if (media.get("episodes") or 0) > 0:
            confidence += 0.03
        if media.get("genres"):
            confidence += 0.02
        return min(1.0, confidence)


def _map_status(value: str | None) -> AnimeStatus:
    try:
        return AnimeStatus(value)
    except ValueError:
        return AnimeStatus.FINISHED
