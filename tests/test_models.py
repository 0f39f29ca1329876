"""Tests for the normalized anime model."""

from __future__ import annotations

import pytest
from conftest import make_record

from animatch.models import (
    AnimeRecord,
    AnimeStatus,
    AnimeTitle,
    CoverImage,
    PartialDate,
    ReasonKind,
    RecommendationReason,
    RecommendationResult,
    Relation,
    SearchOptions,
    clamp_score,
    clamp_unit,
    dedupe_case_insensitive,
)
from animatch.shared.exceptions import InvalidParameterError


class TestHelpers:
    def test_clamp_score(self):
        assert clamp_score(None) is None
        assert clamp_score(-3) == 0.0
        assert clamp_score(120) == 100.0
        assert clamp_score(55.5) == 55.5

    def test_clamp_unit(self):
        assert clamp_unit(1.3) == 1.0
        assert clamp_unit(-0.1) == 0.0

    def test_dedupe_keeps_first_spelling(self):
        assert dedupe_case_insensitive(["Action", "action ", None, "", "Drama", "ACTION"]) == ["Action", "Drama"]


class TestPartialDate:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1998-04-03", PartialDate(1998, 4, 3)),
            ("1998-04", PartialDate(1998, 4)),
            ("1998", PartialDate(1998)),
            ("2006-04-02T15:00:00+00:00", PartialDate(2006, 4, 2)),
        ],
    )
    def test_from_iso(self, value, expected):
        assert PartialDate.from_iso(value) == expected

    @pytest.mark.parametrize("value", [None, "", "unknown"])
    def test_from_iso_invalid(self, value):
        assert PartialDate.from_iso(value) is None

    def test_from_dict(self):
        assert PartialDate.from_dict({"year": 2013, "month": 4, "day": None}) == PartialDate(2013, 4)
        assert PartialDate.from_dict({"year": None, "month": None, "day": None}) is None
        assert PartialDate.from_dict(None) is None


class TestAnimeTitle:
    def test_key_title_preference(self):
        assert AnimeTitle(english="Attack on Titan", romaji="Shingeki no Kyojin").key_title == "Attack on Titan"
        assert AnimeTitle(romaji="Shingeki no Kyojin", common="AoT").key_title == "Shingeki no Kyojin"
        assert AnimeTitle(common="AoT", native="進撃の巨人").key_title == "AoT"
        assert AnimeTitle(native="進撃の巨人").key_title == "進撃の巨人"

    def test_display(self):
        assert AnimeTitle(english="Monster", common="MONSTER").display == "MONSTER"
        assert AnimeTitle(native="進撃の巨人").display == "進撃の巨人"


class TestAnimeRecord:
    def test_requires_a_title(self):
        with pytest.raises(InvalidParameterError):
            AnimeRecord(id="anilist-1", source_id="1", source_name="anilist", title=AnimeTitle())

    def test_set_fields_deduplicated(self):
        record = make_record(genres=["Action", "action", "Sci-Fi"], studios=["Sunrise", "SUNRISE"])
        assert record.genres == ["Action", "Sci-Fi"]
        assert record.studios == ["Sunrise"]

    def test_weighted_score(self):
        assert make_record(average_score=80, confidence=0.5).weighted_score == 40
        assert make_record(average_score=None, confidence=0.9).weighted_score == 0

    def test_start_year(self):
        assert make_record(year=2004).start_year == 2004
        assert make_record(year=None).start_year is None

    def test_clamped_returns_self_when_in_range(self):
        record = make_record(average_score=86, confidence=0.9)
        assert record.clamped() is record

    def test_clamped_copy(self):
        record = make_record(average_score=104, confidence=1.2)
        clamped = record.clamped()
        assert clamped is not record
        assert clamped.average_score == 100
        assert clamped.confidence == 1.0
        assert record.average_score == 104

    def test_to_dict(self):
        record = make_record(
            "1",
            "anilist",
            cover_image=CoverImage(large="l.jpg"),
            status=AnimeStatus.RELEASING,
            relations=[Relation("SEQUEL", "anilist-5")],
        )
        d = record.to_dict()
        assert d["id"] == "anilist-1"
        assert d["title"]["english"] == "Cowboy Bebop"
        assert d["cover_image"]["large"] == "l.jpg"
        assert d["status"] == "RELEASING"
        assert d["start_date"] == {"year": 1998, "month": None, "day": None}
        assert d["relations"] == [{"type": "SEQUEL", "anime_id": "anilist-5"}]
        assert isinstance(d["last_updated"], str)


class TestSearchOptions:
    def test_defaults(self):
        options = SearchOptions()
        assert options.page == 1
        assert options.per_page == 20
        assert options.include_adult is False

    def test_to_dict_copies_genres(self):
        options = SearchOptions(genres=["Action"])
        d = options.to_dict()
        d["genres"].append("Drama")
        assert options.genres == ["Action"]


class TestRecommendationResult:
    def test_to_dict(self):
        result = RecommendationResult(
            record=make_record(),
            score=0.123456,
            reasons=[RecommendationReason(ReasonKind.GENRE, "Action", 0.15)],
        )
        d = result.to_dict()
        assert d["score"] == 0.1235
        assert d["reasons"] == [{"kind": "genre", "value": "Action", "weight": 0.15}]
