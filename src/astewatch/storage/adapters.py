"""Persistence adapters for the reconciliation store.

The store itself is storage-agnostic: it calls ``load()`` once at startup and
``save()`` after each cycle. ``MemoryAdapter`` keeps a snapshot in the process;
``SQLiteAdapter`` writes to a local database file.
"""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

from ..models.listing import Listing, PriceHistoryEntry

logger = logging.getLogger(__name__)


class PersistenceAdapter(ABC):
    """Abstract persistence backend for listings and price history."""

    @abstractmethod
    def load(self) -> tuple[list[Listing], list[PriceHistoryEntry]]:
        """Return saved listings (insertion order) and history entries."""
        pass

    @abstractmethod
    def save(self, listings: list[Listing], history: list[PriceHistoryEntry]) -> None:
        """Persist the full current state.

        Listings not in ``listings`` (evicted) are dropped; history entries
        are only ever added.
        """
        pass


class MemoryAdapter(PersistenceAdapter):
    """Keeps the last saved snapshot in memory."""

    def __init__(self) -> None:
        self._listings: list[Listing] = []
        self._history: list[PriceHistoryEntry] = []

    def load(self) -> tuple[list[Listing], list[PriceHistoryEntry]]:
        return list(self._listings), list(self._history)

    def save(self, listings: list[Listing], history: list[PriceHistoryEntry]) -> None:
        self._listings = list(listings)
        self._history = list(history)


class SQLiteAdapter(PersistenceAdapter):
    """SQLite-backed persistence.

    Listings are stored as JSON in a ``listings`` table, with indexed columns
    for the fields worth querying. ``seq`` preserves insertion order across
    restarts so FIFO eviction stays correct. ``price_history`` rows are
    insert-only.

    Example:
        adapter = SQLiteAdapter(Path("data/astewatch.db"))
        listings, history = adapter.load()
    """

    def __init__(self, db_path: Path):
        """Initialize the adapter.

        Args:
            db_path: SQLite database file; parent directories are created
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS listings (
                    id TEXT PRIMARY KEY,
                    seq INTEGER NOT NULL,
                    source TEXT NOT NULL,
                    locality TEXT,
                    price INTEGER,
                    data JSON NOT NULL,
                    last_updated TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS price_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    listing_id TEXT NOT NULL,
                    price INTEGER NOT NULL,
                    observed_at TIMESTAMP NOT NULL,
                    UNIQUE (listing_id, price, observed_at)
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_listings_source ON listings(source)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_listings_locality ON listings(locality)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_history_listing ON price_history(listing_id)"
            )
            conn.commit()

    def load(self) -> tuple[list[Listing], list[PriceHistoryEntry]]:
        with sqlite3.connect(self.db_path) as conn:
            listing_rows = conn.execute(
                "SELECT data FROM listings ORDER BY seq"
            ).fetchall()
            history_rows = conn.execute(
                "SELECT listing_id, price, observed_at FROM price_history ORDER BY observed_at, id"
            ).fetchall()

        listings = [Listing.model_validate(json.loads(row[0])) for row in listing_rows]
        history = [
            PriceHistoryEntry(listing_id=row[0], price=row[1], observed_at=row[2])
            for row in history_rows
        ]
        return listings, history

    def save(self, listings: list[Listing], history: list[PriceHistoryEntry]) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM listings")
            conn.executemany(
                """
                INSERT INTO listings (id, seq, source, locality, price, data, last_updated)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        listing.id,
                        seq,
                        listing.source,
                        listing.locality,
                        listing.price,
                        listing.model_dump_json(),
                        listing.last_updated.isoformat(),
                    )
                    for seq, listing in enumerate(listings)
                ],
            )
            conn.executemany(
                """
                INSERT OR IGNORE INTO price_history (listing_id, price, observed_at)
                VALUES (?, ?, ?)
                """,
                [
                    (entry.listing_id, entry.price, entry.observed_at.isoformat())
                    for entry in history
                ],
            )
            conn.commit()

        logger.info(f"Saved {len(listings)} listings, {len(history)} history entries")
