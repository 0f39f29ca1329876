"""
Application DI Container (dependency-injector).

One explicit cache, one aggregator and one engine per container; there are
no module-level instances.

Usage::

    from animatch.container import create_container

    container = create_container()          # settings from the environment
    service = container.service()
    records = await service.search_anime("monster")

    # In tests, override any provider:
    container.adapters.override(providers.Object([fake_adapter]))
"""

from __future__ import annotations

import logging

from dependency_injector import containers, providers

from animatch.application.recommendation import RecommendationEngine, SimilarityWeights
from animatch.application.search import AggregatorConfig, DataAggregator
from animatch.application.service import AniMatchService
from animatch.infrastructure.cache import AnimeCache
from animatch.infrastructure.sources import create_adapters
from animatch.shared.settings import AniMatchSettings

logger = logging.getLogger(__name__)


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for AniMatch.

    Manages creation and lifecycle of all core services:
    - ``cache``: search / details / recommendations TTL stores
    - ``adapters``: enabled catalog adapters, looked up in the registry
    - ``aggregator``: multi-source fan-out and merge
    - ``engine``: similarity ranking with catalog-tuned weights
    - ``service``: facade used by callers
    """

    config = providers.Configuration()

    cache = providers.Singleton(
        AnimeCache,
        search_ttl=config.search_ttl,
        details_ttl=config.details_ttl,
        recommendations_ttl=config.recommendations_ttl,
        max_size=config.cache_max_size,
    )

    adapters = providers.Singleton(
        create_adapters,
        names=config.sources,
        timeout=config.timeout,
    )

    aggregator_config = providers.Singleton(
        AggregatorConfig,
        timeout=config.timeout,
        source_weights=config.source_weights,
    )

    aggregator = providers.Singleton(
        DataAggregator,
        adapters=adapters,
        config=aggregator_config,
    )

    similarity_weights = providers.Singleton(SimilarityWeights.content_focused)

    engine = providers.Singleton(
        RecommendationEngine,
        weights=similarity_weights,
    )

    service = providers.Singleton(
        AniMatchService,
        aggregator=aggregator,
        engine=engine,
        cache=cache,
    )


def create_container(settings: AniMatchSettings | None = None) -> ApplicationContainer:
    """Build a container configured from ``settings`` (defaults to the environment)."""
    settings = settings or AniMatchSettings.from_env()
    container = ApplicationContainer()
    container.config.from_dict(settings.to_dict())
    logger.debug(f"Container configured with sources {list(settings.sources)}")
    return container


__all__ = ["ApplicationContainer", "create_container"]
