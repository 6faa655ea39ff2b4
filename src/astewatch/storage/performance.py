"""SQLite log of fetch attempts per site and method."""

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

from ..models.listing import FetchAttempt

logger = logging.getLogger(__name__)


class SitePerformanceLog:
    """Records every fetch attempt and summarizes recent site reliability.

    Example:
        log = SitePerformanceLog(Path("data/astewatch.db"))
        log.record(attempt)
        log.stats(window_hours=24)
        # [{"site_name": "Asta Legale", "method": "fast", "total_requests": 3, ...}]
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS site_performance (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    site_name TEXT NOT NULL,
                    method TEXT NOT NULL,
                    success INTEGER NOT NULL,
                    response_time INTEGER,
                    record_count INTEGER,
                    error_message TEXT,
                    timestamp TIMESTAMP NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_perf_timestamp ON site_performance(timestamp)"
            )
            conn.commit()

    def record(self, attempt: FetchAttempt) -> None:
        """Store one attempt. Write failures are logged, never raised."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO site_performance
                    (site_name, method, success, response_time, record_count, error_message, timestamp)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        attempt.source,
                        attempt.method.value,
                        1 if attempt.success else 0,
                        attempt.response_ms,
                        attempt.record_count,
                        attempt.error,
                        attempt.attempted_at.isoformat(),
                    ),
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.warning(f"Could not record attempt for {attempt.source}: {e}")

    def stats(self, window_hours: int = 24) -> list[dict]:
        """Aggregate attempts in the last ``window_hours`` by site and method.

        Returns:
            One dict per (site, method) with total/successful request counts and
            average response time in ms
        """
        since = (datetime.now(timezone.utc) - timedelta(hours=window_hours)).isoformat()
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT site_name, method,
                       COUNT(*) AS total_requests,
                       SUM(success) AS successful_requests,
                       AVG(response_time) AS avg_response_time
                FROM site_performance
                WHERE timestamp > ?
                GROUP BY site_name, method
                ORDER BY site_name, method
                """,
                (since,),
            ).fetchall()

        return [
            {
                "site_name": row[0],
                "method": row[1],
                "total_requests": row[2],
                "successful_requests": row[3],
                "avg_response_time": round(row[4]) if row[4] is not None else None,
            }
            for row in rows
        ]
