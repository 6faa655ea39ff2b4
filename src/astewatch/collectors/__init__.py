"""Auction listing collection framework.

This module fetches auction portals through interchangeable transports and
feeds every page through one extraction and reconciliation pipeline.

Main Components:
    - Fetcher: Abstract base class for page transports
    - HttpFetcher / BrowserFetcher: fast (httpx) and rendered (Playwright) fetchers
    - SourceStrategySelector: per-source method choice with escalation
    - AuctionCollector: cycle orchestrator over all configured sites

Example usage:
    from astewatch.collectors import AuctionCollector, build_collector

    collector = build_collector()
    result = await collector.run_cycle(localities=["Bergamo"])
"""

from .base import FetchedDocument, FetchError, Fetcher, InteractionError, SiteConfigError, SourceError
from .browser import BrowserFetcher
from .collector import AuctionCollector
from .factory import build_collector
from .http import HttpFetcher
from .sites import DEFAULT_SITES, load_sites
from .strategy import SourceStrategySelector, StrategyOutcome

__all__ = [
    "AuctionCollector",
    "BrowserFetcher",
    "DEFAULT_SITES",
    "FetchedDocument",
    "FetchError",
    "Fetcher",
    "HttpFetcher",
    "InteractionError",
    "SiteConfigError",
    "SourceError",
    "SourceStrategySelector",
    "StrategyOutcome",
    "build_collector",
    "load_sites",
]
