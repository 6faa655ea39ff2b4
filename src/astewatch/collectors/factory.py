"""Wire a ready-to-run AuctionCollector from settings."""

import logging
from typing import Optional

from ..config import Settings, config
from ..extraction.builder import ListingBuilder
from ..models.listing import FetchMethod, SourceConfig
from ..storage.adapters import MemoryAdapter, PersistenceAdapter, SQLiteAdapter
from ..storage.performance import SitePerformanceLog
from ..storage.store import ReconciliationStore
from .browser import BrowserFetcher
from .collector import AuctionCollector
from .http import HttpFetcher
from .sites import load_sites
from .strategy import SourceStrategySelector

logger = logging.getLogger(__name__)


def build_collector(
    settings: Optional[Settings] = None,
    sources: Optional[list[SourceConfig]] = None,
) -> AuctionCollector:
    """Create fetchers, store and selector according to settings.

    The store is loaded from its persistence backend before returning.

    Args:
        settings: Settings to use (module-level ``config`` if None)
        sources: Explicit site list (catalogue from settings if None)

    Returns:
        AuctionCollector ready for run_cycle()
    """
    settings = settings or config

    adapter: PersistenceAdapter
    recorder: Optional[SitePerformanceLog] = None
    if settings.persistence == "sqlite":
        adapter = SQLiteAdapter(settings.db_path)
        recorder = SitePerformanceLog(settings.db_path)
    else:
        adapter = MemoryAdapter()

    store = ReconciliationStore(capacity=settings.store_capacity, adapter=adapter)
    store.load()

    selector = SourceStrategySelector(
        fetchers={
            FetchMethod.FAST: HttpFetcher(
                timeout=settings.fast_timeout, user_agent=settings.user_agent
            ),
            FetchMethod.RENDERED: BrowserFetcher(
                timeout=settings.rendered_timeout,
                headless=settings.headless,
                user_agent=settings.user_agent,
            ),
        },
        builder=ListingBuilder(stable_ids=settings.stable_ids),
        timeouts={
            FetchMethod.FAST: settings.fast_timeout + settings.attempt_grace,
            FetchMethod.RENDERED: settings.rendered_timeout + settings.attempt_grace,
        },
        max_blocks=settings.max_blocks_per_source,
        recorder=recorder,
    )

    if sources is None:
        sources = load_sites(settings.sites_file)
    logger.info(f"Collector ready: {len(sources)} sites, persistence={settings.persistence}")

    return AuctionCollector(
        sources=sources,
        selector=selector,
        store=store,
        pacing=settings.pacing_seconds,
    )
