"""Per-source fetch strategy with fast-to-rendered escalation.

Sources declare a fetch method hint. ``fast`` and ``rendered`` are used as-is.
``auto`` tries the fast fetcher first and, only once that attempt has fully
finished with zero admitted listings (empty page, unparseable markup or a
transport failure), makes exactly one rendered attempt. Attempts never overlap.

Each attempt is bounded by its own timeout. A timeout or any FetchError is
logged with the source, method and duration, recorded, and treated as zero
results; it never propagates to the caller.
"""

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from ..extraction.builder import ListingBuilder
from ..models.listing import FetchAttempt, FetchMethod, Listing, SourceConfig
from .base import FetchedDocument, FetchError, Fetcher
from .parsing import extract_blocks

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUTS = {
    FetchMethod.FAST: 20.0,
    FetchMethod.RENDERED: 60.0,
}


class AttemptRecorder(Protocol):
    """Anything that can persist fetch attempts (see SitePerformanceLog)."""

    def record(self, attempt: FetchAttempt) -> None: ...


@dataclass
class StrategyOutcome:
    """Result of running the strategy for one source.

    Attributes:
        listings: Admitted listings from the last attempt made
        method: Method of the last attempt made
        attempts: Every attempt in the order made
    """

    listings: list[Listing]
    method: FetchMethod
    attempts: list[FetchAttempt] = field(default_factory=list)

    @property
    def escalated(self) -> bool:
        """True if a rendered attempt followed a fast one."""
        return len(self.attempts) > 1

    @property
    def last_error(self) -> Optional[str]:
        """Error of the last attempt, if it failed."""
        return self.attempts[-1].error if self.attempts else None


class SourceStrategySelector:
    """Chooses and runs the fetch method(s) for each source.

    Example:
        selector = SourceStrategySelector(
            fetchers={FetchMethod.FAST: HttpFetcher(), FetchMethod.RENDERED: BrowserFetcher()},
            builder=ListingBuilder(),
        )
        outcome = await selector.collect(source, localities=["Bergamo"])
    """

    def __init__(
        self,
        fetchers: Mapping[FetchMethod, Fetcher],
        builder: Optional[ListingBuilder] = None,
        timeouts: Optional[Mapping[FetchMethod, float]] = None,
        max_blocks: int = 100,
        recorder: Optional[AttemptRecorder] = None,
    ):
        """Initialize the selector.

        Args:
            fetchers: Fetcher per method; FAST and RENDERED are expected
            builder: ListingBuilder used to admit blocks (default builder if None)
            timeouts: Upper bound in seconds per attempt, by method
            max_blocks: Maximum containers read from one page
            recorder: Optional sink for FetchAttempt records
        """
        self.fetchers = dict(fetchers)
        self.builder = builder or ListingBuilder()
        self.timeouts = {**DEFAULT_TIMEOUTS, **(timeouts or {})}
        self.max_blocks = max_blocks
        self.recorder = recorder

    def plan(self, source: SourceConfig) -> list[FetchMethod]:
        """Methods to try for a source, in order."""
        if source.method == FetchMethod.AUTO:
            return [FetchMethod.FAST, FetchMethod.RENDERED]
        return [source.method]

    async def collect(
        self,
        source: SourceConfig,
        localities: Sequence[str] = (),
    ) -> StrategyOutcome:
        """Run the source's plan, stopping at the first attempt with listings.

        Raises:
            ValueError: If no fetcher is registered for a planned method
        """
        attempts: list[FetchAttempt] = []
        listings: list[Listing] = []
        method = source.method

        for method in self.plan(source):
            if attempts:
                logger.info(f"Escalating {source.name} to {method.value} fetch")
            listings, attempt = await self._attempt(source, method, localities)
            attempts.append(attempt)
            if listings:
                break

        return StrategyOutcome(listings=listings, method=method, attempts=attempts)

    def _parse(
        self,
        document: FetchedDocument,
        source: SourceConfig,
        localities: Sequence[str],
    ) -> list[Listing]:
        """Split and admit a fetched page; runs in a worker thread."""
        blocks = extract_blocks(document.html, source, limit=self.max_blocks)
        return self.builder.build_all(blocks, source, localities, fetched_at=document.fetched_at)

    async def _attempt(
        self,
        source: SourceConfig,
        method: FetchMethod,
        localities: Sequence[str],
    ) -> tuple[list[Listing], FetchAttempt]:
        fetcher = self.fetchers.get(method)
        if fetcher is None:
            raise ValueError(f"No fetcher registered for method {method.value!r}")

        started = time.perf_counter()
        attempted_at = datetime.now(timezone.utc)
        listings: list[Listing] = []
        error = None

        try:
            document = await asyncio.wait_for(
                fetcher.fetch(source, localities), timeout=self.timeouts[method]
            )
            listings = await asyncio.to_thread(self._parse, document, source, localities)
        except asyncio.TimeoutError:
            error = f"timeout after {self.timeouts[method]:.0f}s"
        except FetchError as e:
            error = e.message

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if error:
            logger.warning(f"✗ {source.name} [{method.value}] failed after {elapsed_ms}ms: {error}")
        else:
            logger.info(f"✓ {source.name} [{method.value}]: {len(listings)} listings ({elapsed_ms}ms)")

        attempt = FetchAttempt(
            source=source.name,
            method=method,
            success=error is None,
            response_ms=elapsed_ms,
            record_count=len(listings),
            error=error,
            attempted_at=attempted_at,
        )
        if self.recorder is not None:
            await asyncio.to_thread(self.recorder.record, attempt)
        return listings, attempt
