"""Auction listing, site configuration and cycle result models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Admission floor: no listing at or below this price is ever stored
MIN_LISTING_PRICE = 10000

ADDRESS_FALLBACK = "To be verified"
AUCTION_DATE_FALLBACK = "To be defined"
PROPERTY_TYPE_FALLBACK = "Property"


class _CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the result surface."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FetchMethod(str, Enum):
    """How a source page is retrieved."""

    FAST = "fast"  # plain HTTP GET, parsed as static HTML
    RENDERED = "rendered"  # headless browser, JS executed
    AUTO = "auto"  # fast first, rendered on zero results


class StatusOutcome(str, Enum):
    """Per-source outcome of one collection cycle."""

    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


class Coordinates(_CamelModel):
    """Geographic pair passed through from a source, never computed here."""

    lat: float
    lng: float


class Listing(_CamelModel):
    """One normalized auction property.

    Optional text fields hold a fallback literal when extraction could not
    resolve them; price and locality are mandatory for admission.
    """

    id: str = Field(..., description="Stable identity, unique within the store")
    source: str = Field(..., description="Name of the originating site")

    locality: str = Field(..., description="Municipality or locality name")
    address: str = Field(default=ADDRESS_FALLBACK, description="Street address")
    auction_date: str = Field(
        default=AUCTION_DATE_FALLBACK, description="Auction date as printed by the source"
    )
    property_type: str = Field(default=PROPERTY_TYPE_FALLBACK, description="Property category")
    description: str = Field(default="", description="Leading text of the listing block")

    price: int = Field(..., gt=MIN_LISTING_PRICE, description="Base price in EUR")
    link: str = Field(..., description="Absolute URL to the listing")

    coordinates: Coordinates | None = Field(default=None, description="Optional lat/lng")
    last_updated: datetime = Field(..., description="Time of the latest price observation")


class PriceHistoryEntry(_CamelModel):
    """A single price observation; entries are append-only."""

    listing_id: str
    price: int
    observed_at: datetime


class ListingWithHistory(Listing):
    """Listing as returned by a cycle, with its price history when it has changed."""

    price_history: list[PriceHistoryEntry] | None = None


class SiteSelectors(BaseModel):
    """CSS selectors used for structural extraction on a source page."""

    container: str | None = None
    locality: str | None = None
    price: str | None = None
    property_type: str | None = None


class SourceConfig(BaseModel):
    """Static configuration of one auction site."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    method: FetchMethod = FetchMethod.AUTO
    selectors: SiteSelectors = Field(default_factory=SiteSelectors)
    search_url: str | None = None
    requires_interaction: bool = False


class SiteStatus(_CamelModel):
    """Outcome of one source within one cycle."""

    source: str
    record_count: int = 0
    outcome: StatusOutcome
    method: FetchMethod | None = None
    message: str | None = None


class CycleResult(_CamelModel):
    """Aggregate output of one collection cycle."""

    total_results: int
    site_statuses: list[SiteStatus]
    results: list[ListingWithHistory] = Field(default_factory=list)
    last_update: datetime


class FetchAttempt(BaseModel):
    """One fetch attempt against a source, as recorded in the performance log."""

    source: str
    method: FetchMethod
    success: bool
    response_ms: int
    record_count: int = 0
    error: str | None = None
    attempted_at: datetime
