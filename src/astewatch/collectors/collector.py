"""Collection cycle orchestrator.

This module provides the AuctionCollector class which drives one full pass over
the configured auction sites: strategy selection per source, admission through
the listing builder, reconciliation into the store, request pacing and a
per-source status report.
"""

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Optional

from ..models.listing import (
    CycleResult,
    Listing,
    ListingWithHistory,
    SiteStatus,
    SourceConfig,
    StatusOutcome,
)
from ..storage.store import ReconciliationStore, UpsertResult
from .strategy import SourceStrategySelector

logger = logging.getLogger(__name__)

# Default wait between two sources, in seconds
DEFAULT_PACING = 2.0


class AuctionCollector:
    """Runs collection cycles over a fixed list of sources.

    Sources are processed strictly one after another, in declared order, with a
    pacing delay between them. A failure in one source is reported in its
    SiteStatus and never stops the cycle. Cycles are serialized: a second
    trigger arriving while a cycle runs waits for it to finish.

    Example:
        collector = AuctionCollector(sources=load_sites(), selector=selector, store=store)
        result = await collector.run_cycle(localities=["Bergamo", "Brescia"])
        print(result.total_results, [s.outcome for s in result.site_statuses])
    """

    def __init__(
        self,
        sources: Sequence[SourceConfig],
        selector: SourceStrategySelector,
        store: ReconciliationStore,
        pacing: float = DEFAULT_PACING,
    ):
        """Initialize the collector.

        Args:
            sources: Site configurations, processed in this order
            selector: Strategy selector holding the fetchers
            store: Reconciliation store receiving admitted listings
            pacing: Seconds to wait between two sources
        """
        self.sources = list(sources)
        self.selector = selector
        self.store = store
        self.pacing = pacing
        self.last_update: Optional[datetime] = None
        self._cycle_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        """True while a cycle is in progress."""
        return self._cycle_lock.locked()

    async def _collect_source(
        self,
        source: SourceConfig,
        localities: Sequence[str],
    ) -> tuple[SiteStatus, list[Listing]]:
        """Run one source and merge its listings into the store."""
        outcome = await self.selector.collect(source, localities)

        counts = {result: 0 for result in UpsertResult}
        for listing in outcome.listings:
            counts[self.store.upsert(listing)] += 1
        self.store.enforce_capacity()

        if outcome.listings:
            logger.info(
                f"{source.name}: {len(outcome.listings)} listings "
                f"({counts[UpsertResult.INSERTED]} new, {counts[UpsertResult.UPDATED]} repriced)"
            )
            status = SiteStatus(
                source=source.name,
                record_count=len(outcome.listings),
                outcome=StatusOutcome.OK,
                method=outcome.method,
            )
        else:
            status = SiteStatus(
                source=source.name,
                record_count=0,
                outcome=StatusOutcome.EMPTY,
                method=outcome.method,
                message=outcome.last_error,
            )
        return status, outcome.listings

    async def run_cycle(
        self,
        localities: Sequence[str] = (),
        include_history: bool = True,
    ) -> CycleResult:
        """Run one collection cycle over every source.

        Args:
            localities: Locality filter; empty accepts every locality
            include_history: Attach price history to results whose history
                             has more than one entry

        Returns:
            CycleResult with the admitted listings and one SiteStatus per source
        """
        async with self._cycle_lock:
            localities = [loc for loc in localities if loc and loc.strip()]
            logger.info(
                f"Starting cycle over {len(self.sources)} sources "
                f"(localities: {', '.join(localities) or 'all'})"
            )

            statuses: list[SiteStatus] = []
            admitted: list[Listing] = []

            for position, source in enumerate(self.sources):
                if position > 0 and self.pacing > 0:
                    await asyncio.sleep(self.pacing)
                try:
                    status, listings = await self._collect_source(source, localities)
                    admitted.extend(listings)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.exception(f"Source {source.name} failed")
                    status = SiteStatus(
                        source=source.name,
                        outcome=StatusOutcome.ERROR,
                        message=str(e) or type(e).__name__,
                    )
                statuses.append(status)

            try:
                await asyncio.to_thread(self.store.persist)
            except Exception:
                logger.exception("Failed to persist store after cycle")

            self.last_update = datetime.now(timezone.utc)
            results = [self._with_history(listing, include_history) for listing in admitted]

            logger.info(
                f"Cycle complete: {len(admitted)} listings, "
                f"{sum(s.outcome == StatusOutcome.ERROR for s in statuses)} source errors"
            )
            return CycleResult(
                total_results=len(results),
                site_statuses=statuses,
                results=results,
                last_update=self.last_update,
            )

    def _with_history(self, listing: Listing, include_history: bool) -> ListingWithHistory:
        current = self.store.get(listing.id) or listing
        history = self.store.history_for(listing.id) if include_history else []
        return ListingWithHistory(
            **current.model_dump(),
            price_history=history if len(history) > 1 else None,
        )

    async def close(self) -> None:
        """Close all fetchers and release resources."""
        for fetcher in self.selector.fetchers.values():
            try:
                await fetcher.close()
            except Exception as e:
                logger.debug(f"Error closing {type(fetcher).__name__}: {e}")

    async def __aenter__(self) -> "AuctionCollector":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
