"""Reconciliation store: deduplicated listings with append-only price history.

The store owns every known listing, keyed by id in insertion order, and the
price history of each id. It is bounded: once the listing count exceeds the
capacity, the oldest-inserted listings are evicted first. Price updates do not
refresh a listing's position.

History of an evicted listing is kept (orphaned) and stays readable through
``history_for``; if the same id is observed again it is inserted anew and a
fresh history entry is appended after the old ones.
"""

import logging
import threading
from collections import OrderedDict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..models.listing import Listing, PriceHistoryEntry
from .adapters import PersistenceAdapter

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 5000


class UpsertResult(str, Enum):
    """What an upsert did to the store."""

    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class ReconciliationStore:
    """Bounded, FIFO-evicting listing store with price history.

    All mutations take an internal lock, so concurrent triggers (a manual
    request racing the scheduler) cannot break id uniqueness or history order.

    Example:
        store = ReconciliationStore(capacity=1000, adapter=SQLiteAdapter(path))
        store.load()

        store.upsert(listing)          # INSERTED, one history entry
        store.upsert(listing)          # UNCHANGED, no new entry
        store.enforce_capacity()       # evicts oldest-inserted beyond 1000
        store.history_for(listing.id)  # [PriceHistoryEntry(...)]

        store.persist()
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        adapter: Optional[PersistenceAdapter] = None,
    ):
        """Initialize the store.

        Args:
            capacity: Maximum number of listings kept after enforce_capacity()
            adapter: Persistence backend used by load() and persist()
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.adapter = adapter
        self._listings: OrderedDict[str, Listing] = OrderedDict()
        self._history: dict[str, list[PriceHistoryEntry]] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._listings)

    def __contains__(self, listing_id: object) -> bool:
        return listing_id in self._listings

    def get(self, listing_id: str) -> Optional[Listing]:
        """Get a stored listing by id."""
        return self._listings.get(listing_id)

    def listings(self) -> list[Listing]:
        """All stored listings, oldest-inserted first."""
        with self._lock:
            return list(self._listings.values())

    def _append_history(self, listing_id: str, price: int, observed_at: datetime) -> None:
        entries = self._history.setdefault(listing_id, [])
        # Keep per-id history non-decreasing even if the clock steps back
        if entries and observed_at < entries[-1].observed_at:
            observed_at = entries[-1].observed_at
        entries.append(
            PriceHistoryEntry(listing_id=listing_id, price=price, observed_at=observed_at)
        )

    def upsert(self, listing: Listing, observed_at: Optional[datetime] = None) -> UpsertResult:
        """Insert a new listing or record a price change on a known one.

        Args:
            listing: Freshly built listing
            observed_at: Observation time (defaults to now, UTC)

        Returns:
            INSERTED for a new id, UPDATED when the price changed,
            UNCHANGED when the stored price is the same (no mutation at all)
        """
        observed_at = observed_at or datetime.now(timezone.utc)
        with self._lock:
            existing = self._listings.get(listing.id)
            if existing is None:
                self._listings[listing.id] = listing.model_copy(
                    update={"last_updated": observed_at}
                )
                self._append_history(listing.id, listing.price, observed_at)
                return UpsertResult.INSERTED

            if existing.price == listing.price:
                return UpsertResult.UNCHANGED

            logger.info(
                f"Price change for {listing.id}: {existing.price} -> {listing.price}"
            )
            # Assignment to an existing key keeps its insertion position
            self._listings[listing.id] = existing.model_copy(
                update={"price": listing.price, "last_updated": observed_at}
            )
            self._append_history(listing.id, listing.price, observed_at)
            return UpsertResult.UPDATED

    def enforce_capacity(self) -> list[str]:
        """Evict oldest-inserted listings until the store is within capacity.

        Returns:
            Ids of evicted listings, oldest first
        """
        evicted = []
        with self._lock:
            while len(self._listings) > self.capacity:
                listing_id, _ = self._listings.popitem(last=False)
                evicted.append(listing_id)
        if evicted:
            logger.info(f"Evicted {len(evicted)} listings (capacity {self.capacity})")
        return evicted

    def history_for(self, listing_id: str) -> list[PriceHistoryEntry]:
        """Price history for an id, oldest first; empty for unknown ids."""
        with self._lock:
            return list(self._history.get(listing_id, ()))

    def history(self) -> list[PriceHistoryEntry]:
        """Every history entry, grouped by id and ordered by observation."""
        with self._lock:
            return [entry for entries in self._history.values() for entry in entries]

    def load(self) -> int:
        """Replace the store contents with the adapter's saved state.

        Returns:
            Number of listings loaded (0 without an adapter)
        """
        if self.adapter is None:
            return 0
        listings, history = self.adapter.load()
        with self._lock:
            self._listings = OrderedDict((listing.id, listing) for listing in listings)
            self._history = {}
            for entry in sorted(history, key=lambda e: e.observed_at):
                self._history.setdefault(entry.listing_id, []).append(entry)
        logger.info(f"Loaded {len(self._listings)} listings, {len(history)} history entries")
        self.enforce_capacity()
        return len(self._listings)

    def persist(self) -> None:
        """Write the current state through the adapter, if any."""
        if self.adapter is None:
            return
        with self._lock:
            listings = list(self._listings.values())
            history = self.history()
        self.adapter.save(listings, history)
