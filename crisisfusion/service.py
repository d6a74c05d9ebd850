"""Service wiring for CrisisFusion.

build_services() constructs every component from one ServiceConfig, in
dependency order: record store → cache → resolvers → aggregators →
notifier → coordinator.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from config.settings import ServiceConfig
from crisisfusion.aggregators.official import OfficialUpdateAggregator
from crisisfusion.aggregators.social import SocialSignalAggregator
from crisisfusion.clients.image_fetcher import ImageFetcher
from crisisfusion.clients.llm_client import LLMClient
from crisisfusion.coordinator import DisasterCoordinator
from crisisfusion.io.cache import TTLCache
from crisisfusion.io.record_store import RecordStore, build_record_store
from crisisfusion.notifier import ChangeNotifier, InProcessPublishSink, PublishSink
from crisisfusion.resolvers.geocoding import GeocodingResolver
from crisisfusion.resolvers.text_analysis import TextAnalysisResolver

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every wired CrisisFusion component."""

    config: ServiceConfig
    store: RecordStore
    cache: TTLCache
    geocoding: GeocodingResolver
    text_analysis: TextAnalysisResolver
    social: SocialSignalAggregator
    official: OfficialUpdateAggregator
    sink: PublishSink
    notifier: ChangeNotifier
    coordinator: DisasterCoordinator

    def close(self) -> None:
        """Stop background feeds and drain pending notifications."""
        self.social.close()
        self.official.close()
        self.notifier.close(wait=True)


def build_services(
    config: Optional[ServiceConfig] = None,
    store: Optional[RecordStore] = None,
    sink: Optional[PublishSink] = None,
    llm_client: Optional[LLMClient] = None,
    clock: Callable[[], float] = time.time,
) -> Services:
    """Wire every CrisisFusion component from one configuration.

    Args:
        config: Service configuration (defaults to ServiceConfig()).
        store: Record store; built from config.record_store_backend when omitted.
        sink: Publish sink; an InProcessPublishSink when omitted.
        llm_client: LLM client; built from config outside test mode when omitted.
        clock: Epoch-seconds clock for cache expiry.

    Returns:
        Services bundle. Call ``close()`` when done.
    """
    config = config or ServiceConfig()
    store = store if store is not None else build_record_store(
        config.record_store_backend, config.record_store_path
    )
    cache = TTLCache(store, default_ttl=config.cache_ttl_seconds, clock=clock)

    image_fetcher = None
    if not config.test_mode:
        if llm_client is None:
            llm_client = LLMClient.from_config(config)
        image_fetcher = ImageFetcher(config.image_fetch_timeout, config.image_max_bytes)

    geocoding = GeocodingResolver(config, cache)
    text_analysis = TextAnalysisResolver(config, cache, llm_client, image_fetcher)
    social = SocialSignalAggregator(config, cache)
    official = OfficialUpdateAggregator(config, cache)

    sink = sink if sink is not None else InProcessPublishSink()
    notifier = ChangeNotifier(sink, config.notifier_max_workers)
    coordinator = DisasterCoordinator(
        config, store, geocoding, text_analysis, social, official, notifier
    )

    logger.info(
        "CrisisFusion services ready (test_mode=%s, geocoders=%s, social=%s, official=%s, llm=%s)",
        config.test_mode,
        [g.name for g in geocoding.geocoders],
        [p.name for p in social.providers],
        [s.name for s in official.sources],
        config.llm_backend if llm_client is not None else "none",
    )
    return Services(
        config=config,
        store=store,
        cache=cache,
        geocoding=geocoding,
        text_analysis=text_analysis,
        social=social,
        official=official,
        sink=sink,
        notifier=notifier,
        coordinator=coordinator,
    )
