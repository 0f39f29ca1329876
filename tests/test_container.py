"""Tests for the DI container wiring."""

from __future__ import annotations

from conftest import FakeAdapter, make_record
from dependency_injector import providers

from animatch.application.recommendation import SimilarityWeights
from animatch.application.service import AniMatchService
from animatch.container import ApplicationContainer, create_container
from animatch.infrastructure.sources import AniListAdapter, KitsuAdapter
from animatch.shared.settings import AniMatchSettings


class TestCreateContainer:
    def test_returns_container(self):
        container = create_container(AniMatchSettings())
        assert isinstance(container, ApplicationContainer)

    def test_service_is_singleton(self):
        container = create_container(AniMatchSettings())
        assert container.service() is container.service()
        assert isinstance(container.service(), AniMatchService)

    def test_containers_are_independent(self):
        a = create_container(AniMatchSettings())
        b = create_container(AniMatchSettings())
        assert a.cache() is not b.cache()

    def test_settings_flow_into_components(self):
        settings = AniMatchSettings(timeout=2.5, sources=("kitsu", "anilist"), cache_max_size=10, search_ttl=60)
        container = create_container(settings)

        adapters = container.adapters()
        assert [type(a) for a in adapters] == [KitsuAdapter, AniListAdapter]
        assert container.aggregator().config.timeout == 2.5
        assert container.aggregator().sources == ["kitsu", "anilist"]
        assert container.cache().search.ttl == 60
        assert container.cache().search.max_size == 10

    def test_engine_uses_content_focused_weights(self):
        container = create_container(AniMatchSettings())
        assert container.engine().weights == SimilarityWeights.content_focused()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ANIMATCH_SOURCES", "jikan")
        container = create_container()
        assert container.aggregator().sources == ["jikan"]


class TestOverrides:
    async def test_override_adapters(self):
        container = create_container(AniMatchSettings())
        fake = FakeAdapter("anilist", search_results=[make_record()])
        container.adapters.override(providers.Object([fake]))

        records = await container.service().search_anime("bebop")

        assert [r.id for r in records] == ["anilist-1"]
        assert fake.calls[0][0] == "search"
