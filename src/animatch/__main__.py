"""
AniMatch command line.

Usage:
    python -m animatch search "cowboy bebop" --per-page 10
    python -m animatch details anilist-1
    python -m animatch recommend anilist-1 --max-results 10
    python -m animatch recommend anilist-1 jikan-19 --min-score 70
    python -m animatch trending --limit 5

Environment Variables:
    ANIMATCH_SOURCES: Enabled catalogs (default: anilist,jikan,kitsu)
    ANIMATCH_TIMEOUT: Per-catalog call deadline in seconds (default: 10)
    ANIMATCH_LOG_LEVEL: Logging level (default: INFO)

Results are printed as JSON on stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from animatch.application.recommendation import UserPreferences
from animatch.container import create_container
from animatch.models import SearchOptions
from animatch.shared.exceptions import AniMatchError
from animatch.shared.settings import AniMatchSettings

logger = logging.getLogger("animatch")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="animatch",
        description="Search anime across several catalogs and get recommendations",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search every enabled catalog")
    search.add_argument("query")
    search.add_argument("--page", type=int, default=1)
    search.add_argument("--per-page", type=int, default=20)
    search.add_argument("--genre", action="append", default=[], help="Genre filter (repeatable)")
    search.add_argument("--year", type=int)
    search.add_argument("--status", choices=["FINISHED", "RELEASING", "NOT_YET_RELEASED", "CANCELLED", "HIATUS"])
    search.add_argument("--include-adult", action="store_true")

    details = sub.add_parser("details", help="Details for one id such as anilist-1")
    details.add_argument("anime_id")

    recommend = sub.add_parser("recommend", help="Titles similar to one or more ids")
    recommend.add_argument("anime_ids", nargs="+")
    recommend.add_argument("--max-results", type=int, default=20)
    recommend.add_argument("--min-score", type=float, default=0.0)
    recommend.add_argument("--max-episodes", type=int)
    recommend.add_argument("--exclude-genre", action="append", default=[], help="Disliked genre (repeatable)")

    trending = sub.add_parser("trending", help="Well-rated titles from the current year")
    trending.add_argument("--limit", type=int, default=20)

    return parser


async def run(args: argparse.Namespace, settings: AniMatchSettings) -> Any:
    container = create_container(settings)
    service = container.service()
    try:
        if args.command == "search":
            options = SearchOptions(
                page=args.page,
                per_page=args.per_page,
                genres=args.genre,
                year=args.year,
                status=args.status,
                include_adult=args.include_adult,
            )
            return [r.to_dict() for r in await service.search_anime(args.query, options)]

        if args.command == "details":
            record = await service.get_anime_details(args.anime_id)
            return record.to_dict() if record else None

        if args.command == "recommend":
            preferences = UserPreferences(
                disliked_genres=args.exclude_genre,
                min_score=args.min_score,
                max_episodes=args.max_episodes,
            )
            if len(args.anime_ids) == 1:
                results = await service.get_recommendations(args.anime_ids[0], preferences, args.max_results)
            else:
                results = await service.get_hybrid_recommendations(args.anime_ids, preferences, args.max_results)
            return [r.to_dict() for r in results]

        if args.command == "trending":
            return [r.to_dict() for r in await service.get_trending_anime(args.limit)]

        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await service.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = AniMatchSettings.from_env()
    except AniMatchError as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        result = asyncio.run(run(args, settings))
    except AniMatchError as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
