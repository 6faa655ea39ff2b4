"""Tests for AuctionCollector cycles."""

import asyncio
import threading

from conftest import EMPTY_HTML, LISTINGS_HTML, FakeFetcher

import astewatch.collectors.collector as collector_module
from astewatch.collectors.base import FetchedDocument
from astewatch.collectors.collector import AuctionCollector
from astewatch.collectors.strategy import SourceStrategySelector
from astewatch.models.listing import FetchMethod, SourceConfig, StatusOutcome
from astewatch.storage.adapters import MemoryAdapter
from astewatch.storage.store import ReconciliationStore


class RoutingFetcher(FakeFetcher):
    """Serves a page, or raises an exception, per source name."""

    def __init__(self, method: FetchMethod, pages: dict):
        super().__init__(method)
        self.pages = pages

    async def fetch(self, source, localities=()):
        self.calls.append(source.name)
        page = self.pages.get(source.name, EMPTY_HTML)
        if isinstance(page, Exception):
            raise page
        return FetchedDocument(url=source.url, html=page, method=self.method)


def fast_source(name: str) -> SourceConfig:
    slug = name.lower().replace(" ", "-")
    return SourceConfig(name=name, url=f"https://{slug}.example/", method=FetchMethod.FAST)


def make_collector(pages: dict, sources: list[SourceConfig], store=None) -> AuctionCollector:
    selector = SourceStrategySelector(
        fetchers={
            FetchMethod.FAST: RoutingFetcher(FetchMethod.FAST, pages),
            FetchMethod.RENDERED: FakeFetcher(FetchMethod.RENDERED),
        }
    )
    return AuctionCollector(
        sources=sources,
        selector=selector,
        store=store or ReconciliationStore(capacity=100),
        pacing=0,
    )


class TestCycle:
    """Test a single collection cycle."""

    def test_basic_cycle(self, collector: AuctionCollector):
        result = asyncio.run(collector.run_cycle())

        assert result.total_results == 2
        assert len(result.results) == 2
        assert [s.outcome for s in result.site_statuses] == [StatusOutcome.OK]
        assert result.site_statuses[0].record_count == 2
        assert result.site_statuses[0].method == FetchMethod.FAST
        assert len(collector.store) == 2
        assert collector.last_update == result.last_update

    def test_locality_filter(self, collector: AuctionCollector):
        result = asyncio.run(collector.run_cycle(localities=["brescia"]))

        assert [listing.locality for listing in result.results] == ["Brescia"]

    def test_blank_localities_ignored(self, collector: AuctionCollector):
        result = asyncio.run(collector.run_cycle(localities=["", "  "]))
        assert result.total_results == 2

    def test_empty_source(self):
        collector = make_collector({}, [fast_source("Vuoto")])
        result = asyncio.run(collector.run_cycle())

        status = result.site_statuses[0]
        assert status.outcome == StatusOutcome.EMPTY
        assert status.record_count == 0
        assert result.total_results == 0

    def test_statuses_follow_source_order(self):
        sources = [fast_source("Primo"), fast_source("Secondo"), fast_source("Terzo")]
        collector = make_collector({"Secondo": LISTINGS_HTML}, sources)
        result = asyncio.run(collector.run_cycle())

        assert [s.source for s in result.site_statuses] == ["Primo", "Secondo", "Terzo"]
        assert [s.outcome for s in result.site_statuses] == [
            StatusOutcome.EMPTY,
            StatusOutcome.OK,
            StatusOutcome.EMPTY,
        ]


class TestFailureIsolation:
    """Test that one failing source never stops a cycle."""

    def test_unexpected_error_reported(self):
        sources = [fast_source("Rotto"), fast_source("Sano")]
        collector = make_collector(
            {"Rotto": RuntimeError("parser exploded"), "Sano": LISTINGS_HTML}, sources
        )
        result = asyncio.run(collector.run_cycle())

        broken, healthy = result.site_statuses
        assert broken.outcome == StatusOutcome.ERROR
        assert broken.message == "parser exploded"
        assert healthy.outcome == StatusOutcome.OK
        assert result.total_results == 2

    def test_persist_runs_off_event_loop(self, collector: AuctionCollector):
        """Blocking persistence is handed to a worker thread."""
        saved_in = []

        class ThreadAdapter(MemoryAdapter):
            def save(self, listings, history):
                saved_in.append(threading.get_ident())
                super().save(listings, history)

        collector.store.adapter = ThreadAdapter()
        asyncio.run(collector.run_cycle())

        assert len(saved_in) == 1
        assert saved_in[0] != threading.get_ident()

    def test_persist_failure_does_not_fail_cycle(self, collector: AuctionCollector):
        class BrokenAdapter(MemoryAdapter):
            def save(self, listings, history):
                raise OSError("disk full")

        collector.store.adapter = BrokenAdapter()
        result = asyncio.run(collector.run_cycle())
        assert result.total_results == 2


class TestPriceHistory:
    """Test history attached to cycle results."""

    def test_first_cycle_has_no_history(self, collector: AuctionCollector):
        result = asyncio.run(collector.run_cycle())
        assert all(listing.price_history is None for listing in result.results)

    def test_price_change_exposes_history(
        self, collector: AuctionCollector, fast_fetcher: FakeFetcher
    ):
        asyncio.run(collector.run_cycle())
        fast_fetcher.html = LISTINGS_HTML.replace("125.000,00", "110.000,00")
        result = asyncio.run(collector.run_cycle())

        by_locality = {listing.locality: listing for listing in result.results}
        bergamo = by_locality["Bergamo"]
        assert bergamo.price == 110000
        assert [e.price for e in bergamo.price_history] == [125000, 110000]
        assert by_locality["Brescia"].price_history is None
        assert len(collector.store) == 2

    def test_history_can_be_omitted(
        self, collector: AuctionCollector, fast_fetcher: FakeFetcher
    ):
        asyncio.run(collector.run_cycle())
        fast_fetcher.html = LISTINGS_HTML.replace("125.000,00", "110.000,00")
        result = asyncio.run(collector.run_cycle(include_history=False))

        assert all(listing.price_history is None for listing in result.results)

    def test_camel_case_serialization(self, collector: AuctionCollector):
        data = asyncio.run(collector.run_cycle()).model_dump(by_alias=True)

        assert "totalResults" in data
        assert "siteStatuses" in data
        assert "recordCount" in data["siteStatuses"][0]
        assert "auctionDate" in data["results"][0]


class TestLifecycle:
    """Test collector resource handling."""

    def test_close_closes_fetchers(
        self,
        collector: AuctionCollector,
        fast_fetcher: FakeFetcher,
        rendered_fetcher: FakeFetcher,
    ):
        async def run():
            async with collector:
                await collector.run_cycle()

        asyncio.run(run())
        assert fast_fetcher.closed
        assert rendered_fetcher.closed

    def test_cycles_serialized(self, auto_source: SourceConfig):
        """A second trigger waits for the running cycle."""
        slow = FakeFetcher(FetchMethod.FAST, html=LISTINGS_HTML, delay=0.05)
        selector = SourceStrategySelector(
            fetchers={FetchMethod.FAST: slow, FetchMethod.RENDERED: FakeFetcher(FetchMethod.RENDERED)}
        )
        collector = AuctionCollector([auto_source], selector, ReconciliationStore(), pacing=0)

        async def run():
            first = asyncio.create_task(collector.run_cycle())
            await asyncio.sleep(0.01)
            assert collector.is_running
            second = await collector.run_cycle()
            return await first, second

        first, second = asyncio.run(run())
        assert first.last_update <= second.last_update
        assert not collector.is_running


SIBLING_LOTS_HTML = """
<article><p>Lotto 1</p><p>Comune: Bergamo</p><p>Via Roma 12</p>
  <p>Data asta: 15/03/2025</p><p>€ 120.000</p></article>
<article><p>Lotto 2</p><p>Comune: Bergamo</p><p>Via Roma 12</p>
  <p>Data asta: 15/03/2025</p><p>€ 95.000</p></article>
"""


class TestSiblingLots:
    """Test lots that share every identifying field."""

    def test_sibling_lots_stored_separately(self):
        collector = make_collector({"Tribunale": SIBLING_LOTS_HTML}, [fast_source("Tribunale")])
        result = asyncio.run(collector.run_cycle())

        ids = [listing.id for listing in result.results]
        assert len(set(ids)) == 2
        assert len(collector.store) == 2
        assert [len(collector.store.history_for(i)) for i in ids] == [1, 1]
        assert [listing.price for listing in result.results] == [120000, 95000]

    def test_sibling_ids_stable_across_cycles(self):
        collector = make_collector({"Tribunale": SIBLING_LOTS_HTML}, [fast_source("Tribunale")])
        first = asyncio.run(collector.run_cycle())
        second = asyncio.run(collector.run_cycle())

        assert [listing.id for listing in first.results] == [listing.id for listing in second.results]
        assert len(collector.store) == 2


class TestPacing:
    """Test the delay between sources."""

    def test_pacing_between_sources_only(self, monkeypatch):
        delays = []

        async def fake_sleep(delay, *args, **kwargs):
            delays.append(delay)

        monkeypatch.setattr(collector_module.asyncio, "sleep", fake_sleep)
        sources = [fast_source("Primo"), fast_source("Secondo"), fast_source("Terzo")]
        collector = make_collector({}, sources)
        collector.pacing = 1.5

        result = asyncio.run(collector.run_cycle())

        assert len(result.site_statuses) == 3
        assert [d for d in delays if d] == [1.5, 1.5]

    def test_zero_pacing_never_sleeps(self, monkeypatch):
        delays = []

        async def fake_sleep(delay, *args, **kwargs):
            delays.append(delay)

        monkeypatch.setattr(collector_module.asyncio, "sleep", fake_sleep)
        collector = make_collector({}, [fast_source("Primo"), fast_source("Secondo")])
        asyncio.run(collector.run_cycle())

        assert [d for d in delays if d] == []
