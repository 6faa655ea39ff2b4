"""API routers."""

from . import listings, scraper

__all__ = ["listings", "scraper"]
