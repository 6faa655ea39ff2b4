"""FastAPI application for the astewatch API."""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from astewatch.collectors import AuctionCollector, build_collector
from astewatch.config import Settings

from .routers import listings, scraper
from .scraper_worker import ScraperWorker

logger = logging.getLogger(__name__)


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Log every API request with its status and duration."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Response-Time-Ms"] = str(elapsed_ms)
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms}ms)"
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


def create_app(
    settings: Optional[Settings] = None,
    collector: Optional[AuctionCollector] = None,
) -> FastAPI:
    """Build the API application.

    Args:
        settings: Settings to use (read from the environment if None)
        collector: Pre-built collector, mainly for tests; built from settings if None
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage startup/shutdown: collector + scheduler worker lifecycle."""
        app.state.settings = settings
        app.state.collector = collector or build_collector(settings)
        logger.info(f"Collector ready with {len(app.state.collector.store)} stored listings")

        if settings.scheduler_enabled:
            worker = ScraperWorker(
                app.state.collector,
                hour=settings.schedule_hour,
                minute=settings.schedule_minute,
            )
            app.state.scraper_worker = worker
            await worker.start()
        else:
            logger.info("Scheduler disabled via ASTEWATCH_SCHEDULER_ENABLED")
            app.state.scraper_worker = None

        yield

        if app.state.scraper_worker:
            await app.state.scraper_worker.stop()
        await app.state.collector.close()

    app = FastAPI(
        title="astewatch API",
        description="Real-estate auction aggregation across Italian portals",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    allowed_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    frontend_url = os.environ.get("FRONTEND_URL")
    if frontend_url:
        allowed_origins.append(frontend_url.rstrip("/"))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestTimingMiddleware)

    app.include_router(scraper.router, prefix="/api", tags=["Collection"])
    app.include_router(listings.router, prefix="/api/listings", tags=["Listings"])

    @app.get("/")
    async def root():
        """API root endpoint."""
        return {
            "name": "astewatch API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    return app


app = create_app()
