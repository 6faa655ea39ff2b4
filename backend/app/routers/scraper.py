"""Collection cycle, health and site statistics endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from astewatch.models.listing import CycleResult, FetchMethod

router = APIRouter()
logger = logging.getLogger(__name__)


class ScrapeRequest(BaseModel):
    """Body of a manual collection request."""

    localities: list[str] = Field(default_factory=list, description="Locality filter")


@router.post("/scrape-all", response_model=CycleResult)
async def scrape_all(request: Request, payload: ScrapeRequest | None = None) -> CycleResult:
    """Run a full cycle over every site and return the admitted listings.

    A request arriving while another cycle runs waits for it to finish.
    """
    collector = request.app.state.collector
    localities = payload.localities if payload else []
    logger.info(f"Manual cycle requested (localities: {localities or 'all'})")
    return await collector.run_cycle(localities=localities)


@router.get("/health")
async def health(request: Request) -> dict:
    """Health check endpoint."""
    collector = request.app.state.collector
    browser = collector.selector.fetchers.get(FetchMethod.RENDERED)
    return {
        "status": "ok",
        "cycle_running": collector.is_running,
        "browser_active": bool(getattr(browser, "is_active", False)),
        "stored_listings": len(collector.store),
        "last_update": collector.last_update.isoformat() if collector.last_update else None,
    }


@router.get("/stats")
async def site_stats(request: Request) -> dict:
    """Per-site, per-method request statistics over the configured window."""
    recorder = request.app.state.collector.selector.recorder
    if recorder is None:
        return {"stats": []}
    window = request.app.state.settings.performance_window_hours
    try:
        return {"stats": recorder.stats(window_hours=window), "window_hours": window}
    except Exception as e:
        raise HTTPException(500, f"Failed to get stats: {e}")


@router.get("/scheduler")
async def scheduler_status(request: Request) -> dict:
    """Return the background worker's current status."""
    worker = request.app.state.scraper_worker
    if worker is None:
        return {"enabled": False}
    return {"enabled": True, **worker.get_status()}
