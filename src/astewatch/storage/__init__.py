"""Storage for reconciled listings.

This package provides the bounded reconciliation store, its persistence
adapters and the per-site fetch performance log.
"""

from .adapters import MemoryAdapter, PersistenceAdapter, SQLiteAdapter
from .performance import SitePerformanceLog
from .store import ReconciliationStore, UpsertResult

__all__ = [
    "MemoryAdapter",
    "PersistenceAdapter",
    "ReconciliationStore",
    "SQLiteAdapter",
    "SitePerformanceLog",
    "UpsertResult",
]
