"""Tests for the command line entry point."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import make_record

from animatch.__main__ import build_parser, main
from animatch.shared.exceptions import NotFoundError


class TestParser:
    def test_search(self):
        args = build_parser().parse_args(["search", "bebop", "--genre", "Action", "--genre", "Drama", "--year", "1998"])
        assert args.command == "search"
        assert args.genre == ["Action", "Drama"]
        assert args.year == 1998
        assert args.include_adult is False

    def test_recommend_many_ids(self):
        args = build_parser().parse_args(["recommend", "anilist-1", "jikan-19", "--min-score", "70"])
        assert args.anime_ids == ["anilist-1", "jikan-19"]
        assert args.min_score == 70.0

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_invalid_status(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["search", "x", "--status", "DONE"])


@pytest.fixture
def service():
    service = MagicMock()
    service.close = AsyncMock()
    with patch("animatch.__main__.create_container") as create_container:
        create_container.return_value.service.return_value = service
        yield service


class TestMain:
    def test_details_prints_json(self, service, capsys):
        service.get_anime_details = AsyncMock(return_value=make_record())

        assert main(["details", "anilist-1"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["id"] == "anilist-1"
        service.close.assert_awaited_once()

    def test_single_id_uses_content_based(self, service, capsys):
        service.get_recommendations = AsyncMock(return_value=[])
        service.get_hybrid_recommendations = AsyncMock(return_value=[])

        assert main(["recommend", "anilist-1", "--exclude-genre", "Horror"]) == 0

        service.get_recommendations.assert_awaited_once()
        preferences = service.get_recommendations.await_args.args[1]
        assert preferences.disliked_genres == ["Horror"]
        service.get_hybrid_recommendations.assert_not_awaited()

    def test_many_ids_use_hybrid(self, service, capsys):
        service.get_hybrid_recommendations = AsyncMock(return_value=[])
        assert main(["recommend", "anilist-1", "jikan-19"]) == 0
        service.get_hybrid_recommendations.assert_awaited_once()

    def test_error_exit_code(self, service, capsys):
        service.get_recommendations = AsyncMock(side_effect=NotFoundError("Anime", "anilist-404"))

        assert main(["recommend", "anilist-404"]) == 1

        err = capsys.readouterr().err
        error = json.loads(err[err.index("{\n") :])
        assert error["error"] == "Anime not found: anilist-404"
        service.close.assert_awaited_once()

    def test_bad_settings(self, monkeypatch, capsys):
        monkeypatch.setenv("ANIMATCH_TIMEOUT", "soon")
        assert main(["trending"]) == 2
