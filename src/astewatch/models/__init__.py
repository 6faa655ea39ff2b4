"""Data models for astewatch."""

from astewatch.models.listing import (
    ADDRESS_FALLBACK,
    AUCTION_DATE_FALLBACK,
    MIN_LISTING_PRICE,
    PROPERTY_TYPE_FALLBACK,
    Coordinates,
    CycleResult,
    FetchAttempt,
    FetchMethod,
    Listing,
    ListingWithHistory,
    PriceHistoryEntry,
    SiteSelectors,
    SiteStatus,
    SourceConfig,
    StatusOutcome,
)

__all__ = [
    "MIN_LISTING_PRICE",
    "ADDRESS_FALLBACK",
    "AUCTION_DATE_FALLBACK",
    "PROPERTY_TYPE_FALLBACK",
    "Coordinates",
    "CycleResult",
    "FetchAttempt",
    "FetchMethod",
    "Listing",
    "ListingWithHistory",
    "PriceHistoryEntry",
    "SiteSelectors",
    "SiteStatus",
    "SourceConfig",
    "StatusOutcome",
]
