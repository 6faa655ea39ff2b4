"""Stored listing and price history endpoints."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from astewatch.extraction.locality import matches
from astewatch.models.listing import Listing, PriceHistoryEntry

router = APIRouter()


@router.get("", response_model=list[Listing])
async def list_listings(
    request: Request,
    locality: Optional[str] = Query(None, description="Locality filter"),
    source: Optional[str] = Query(None, description="Exact site name"),
    min_price: Optional[int] = Query(None, ge=0),
    max_price: Optional[int] = Query(None, ge=0),
    limit: int = Query(100, ge=1, le=1000),
) -> list[Listing]:
    """Return stored listings, newest-inserted first."""
    store = request.app.state.collector.store
    results = []
    for listing in reversed(store.listings()):
        if locality and not matches(listing.locality, [locality]):
            continue
        if source and listing.source != source:
            continue
        if min_price is not None and listing.price < min_price:
            continue
        if max_price is not None and listing.price > max_price:
            continue
        results.append(listing)
        if len(results) >= limit:
            break
    return results


@router.get("/{listing_id}", response_model=Listing)
async def get_listing(request: Request, listing_id: str) -> Listing:
    """Return one stored listing."""
    listing = request.app.state.collector.store.get(listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing


@router.get("/{listing_id}/history", response_model=list[PriceHistoryEntry])
async def get_history(request: Request, listing_id: str) -> list[PriceHistoryEntry]:
    """Return the price history of a listing, oldest first.

    History survives eviction, so ids no longer stored may still have entries.
    """
    history = request.app.state.collector.store.history_for(listing_id)
    if not history:
        raise HTTPException(status_code=404, detail="No history for this listing")
    return history
