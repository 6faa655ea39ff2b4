"""Background worker that runs a full collection cycle every night."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from astewatch.collectors.collector import AuctionCollector
from astewatch.models.listing import StatusOutcome

logger = logging.getLogger(__name__)


def seconds_until(hour: int, minute: int, now: Optional[datetime] = None) -> float:
    """Seconds from ``now`` (local time) to the next hour:minute."""
    now = now or datetime.now()
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class ScraperWorker:
    """Background worker that triggers AuctionCollector.run_cycle once a day.

    Scheduled cycles run with no locality filter. Overlap with a manual cycle
    is handled by the collector, which serializes cycles.
    """

    def __init__(self, collector: AuctionCollector, hour: int = 3, minute: int = 0):
        self._collector = collector
        self._hour = hour
        self._minute = minute
        self._task: asyncio.Task | None = None
        self._status: dict = {
            "is_running": False,
            "last_run_started": None,
            "last_run_completed": None,
            "last_run_duration_sec": None,
            "last_total_results": 0,
            "errors": [],
            "next_run_at": None,
        }

    async def start(self):
        """Launch the background schedule loop."""
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Scraper worker started (daily at {self._hour:02d}:{self._minute:02d})")

    async def stop(self):
        """Cancel the background task."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Scraper worker stopped")

    def get_status(self) -> dict:
        """Return current worker status."""
        return {**self._status, "is_running": self._collector.is_running}

    async def _loop(self):
        """Main loop: sleep until the next run time, run, repeat."""
        while True:
            delay = seconds_until(self._hour, self._minute)
            next_run = datetime.now(timezone.utc) + timedelta(seconds=delay)
            self._status["next_run_at"] = next_run.isoformat()
            await asyncio.sleep(delay)
            try:
                await self.run_scheduled_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled cycle failed unexpectedly")

    async def run_scheduled_cycle(self):
        """Execute one unfiltered cycle and record its outcome."""
        logger.info("Scheduled collection cycle starting")
        start_time = datetime.now(timezone.utc)
        self._status["last_run_started"] = start_time.isoformat()

        result = None
        try:
            result = await self._collector.run_cycle(include_history=False)
        finally:
            end_time = datetime.now(timezone.utc)
            duration = (end_time - start_time).total_seconds()
            errors = []
            if result is not None:
                errors = [
                    f"{s.source}: {s.message}"
                    for s in result.site_statuses
                    if s.outcome == StatusOutcome.ERROR
                ]
            self._status.update({
                "last_run_completed": end_time.isoformat(),
                "last_run_duration_sec": round(duration, 1),
                "last_total_results": result.total_results if result else 0,
                "errors": errors,
            })
            logger.info(
                f"Scheduled cycle finished: "
                f"{self._status['last_total_results']} listings, "
                f"{len(errors)} errors, {duration:.0f}s elapsed"
            )
        return result
