"""Pytest fixtures and test utilities."""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest

from astewatch.collectors.base import FetchedDocument, Fetcher
from astewatch.collectors.collector import AuctionCollector
from astewatch.collectors.strategy import SourceStrategySelector
from astewatch.extraction.builder import ListingBuilder
from astewatch.models.listing import FetchAttempt, FetchMethod, Listing, SourceConfig
from astewatch.storage.store import ReconciliationStore

LISTINGS_HTML = """
<html><body>
<article class="auction">
  <h2>Appartamento in vendita</h2>
  <p>Comune: Bergamo</p>
  <p>Via Roma 12, Bergamo (BG)</p>
  <p>Data asta: 15/03/2025</p>
  <p>Base d'asta € 125.000,00</p>
  <a href="/lotto/1">Dettagli</a>
</article>
<article class="auction">
  <p>Villa a Brescia</p>
  <p>Piazza Loggia 3</p>
  <p>Prezzo: 250.000</p>
  <a href="https://other.example/lotto/2">Dettagli</a>
</article>
<article class="auction">
  <p>Box auto</p>
  <p>Comune: Bergamo</p>
  <p>€ 8.000</p>
</article>
</body></html>
"""

EMPTY_HTML = "<html><body><p>Nessun risultato</p></body></html>"


class FakeFetcher(Fetcher):
    """Fetcher returning canned HTML or raising a configured error."""

    def __init__(
        self,
        method: FetchMethod,
        html: str = EMPTY_HTML,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.method = method
        self.html = html
        self.error = error
        self.delay = delay
        self.calls: list[str] = []
        self.closed = False

    async def fetch(self, source, localities=()):
        self.calls.append(source.name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return FetchedDocument(url=source.url, html=self.html, method=self.method)

    async def close(self):
        self.closed = True


class ListRecorder:
    """Collects FetchAttempt records in memory."""

    def __init__(self):
        self.attempts: list[FetchAttempt] = []

    def record(self, attempt: FetchAttempt) -> None:
        self.attempts.append(attempt)


def make_listing(listing_id: str = "test-1", price: int = 100000, **overrides) -> Listing:
    """Build a valid Listing with sensible defaults."""
    data = {
        "id": listing_id,
        "source": "Test Source",
        "locality": "Bergamo",
        "address": "Via Roma 12",
        "price": price,
        "link": "https://aste.example/lotto/1",
        "last_updated": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return Listing(**data)


@pytest.fixture
def auto_source() -> SourceConfig:
    """Source with automatic method selection."""
    return SourceConfig(name="Aste Test", url="https://aste.example/", method=FetchMethod.AUTO)


@pytest.fixture
def fast_source() -> SourceConfig:
    """Source pinned to the fast fetcher."""
    return SourceConfig(name="Fast Only", url="https://fast.example/", method=FetchMethod.FAST)


@pytest.fixture
def rendered_source() -> SourceConfig:
    """Source pinned to the rendered fetcher."""
    return SourceConfig(
        name="Rendered Only", url="https://rendered.example/", method=FetchMethod.RENDERED
    )


@pytest.fixture
def builder() -> ListingBuilder:
    """ListingBuilder with stable ids."""
    return ListingBuilder()


@pytest.fixture
def store() -> ReconciliationStore:
    """Empty in-memory store."""
    return ReconciliationStore(capacity=100)


@pytest.fixture
def fast_fetcher() -> FakeFetcher:
    """Fast fetcher returning listings."""
    return FakeFetcher(FetchMethod.FAST, html=LISTINGS_HTML)


@pytest.fixture
def rendered_fetcher() -> FakeFetcher:
    """Rendered fetcher returning listings."""
    return FakeFetcher(FetchMethod.RENDERED, html=LISTINGS_HTML)


@pytest.fixture
def recorder() -> ListRecorder:
    """In-memory attempt recorder."""
    return ListRecorder()


@pytest.fixture
def selector(
    fast_fetcher: FakeFetcher,
    rendered_fetcher: FakeFetcher,
    builder: ListingBuilder,
    recorder: ListRecorder,
) -> SourceStrategySelector:
    """Strategy selector wired to the fake fetchers."""
    return SourceStrategySelector(
        fetchers={FetchMethod.FAST: fast_fetcher, FetchMethod.RENDERED: rendered_fetcher},
        builder=builder,
        recorder=recorder,
    )


@pytest.fixture
def collector(
    auto_source: SourceConfig,
    selector: SourceStrategySelector,
    store: ReconciliationStore,
) -> AuctionCollector:
    """Collector over one auto source, without pacing."""
    return AuctionCollector(sources=[auto_source], selector=selector, store=store, pacing=0)

