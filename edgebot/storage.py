"""
Storage module for persisting edge alerts.

This module provides a repository interface for SQLite database operations.
It handles table creation, append-only insertion, and the read queries the
alert reader needs (filtered by status, ordered by detection time, and
aggregated for metrics).
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from edgebot.config import Config
from edgebot.errors import StoreUnavailableError
from edgebot.models import AlertStatus, EdgeAlert
from edgebot.utils import parse_datetime

# Configure module logger
logger = logging.getLogger(__name__)


class AlertStore:
    """
    Repository for edge alert persistence.

    Writes never raise: a failed insert is logged and reported as False so a
    scan cycle can move on to the next candidate. Reads raise
    StoreUnavailableError and leave degradation to the caller.
    """

    def __init__(self, db_path: Optional[Path] = None, timeout: Optional[float] = None):
        """
        Initialize storage with database path.

        Args:
            db_path: Path to SQLite database file. If None, uses Config.DB_PATH
            timeout: Seconds to wait on a locked database. If None, uses Config.DB_TIMEOUT
        """
        self.db_path = Path(db_path or Config.DB_PATH)
        self.timeout = timeout if timeout is not None else Config.DB_TIMEOUT
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_database()

    @contextmanager
    def _get_connection(self):
        """
        Context manager for database connections.

        Ensures proper connection handling and transaction management.
        """
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row  # Enable column access by name
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _initialize_database(self) -> None:
        """Create the edges table and its indexes if they don't exist."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS edges (
                    id TEXT PRIMARY KEY,
                    market_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    outcome TEXT NOT NULL,
                    ev REAL NOT NULL,
                    market_price REAL NOT NULL,
                    true_prob REAL NOT NULL,
                    liquidity REAL NOT NULL,
                    slug TEXT,
                    status TEXT NOT NULL DEFAULT 'active',
                    timestamp TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_edges_timestamp
                ON edges(timestamp DESC)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_edges_status
                ON edges(status)
            """)

        logger.info(f"Database initialized at {self.db_path}")

    # Write operations

    def insert_alert(self, alert: EdgeAlert) -> bool:
        """
        Insert one alert. Append-only: existing rows are never touched.

        Args:
            alert: EdgeAlert to persist

        Returns:
            True if successful, False otherwise
        """
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO edges
                    (id, market_id, title, outcome, ev, market_price, true_prob,
                     liquidity, slug, status, timestamp)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    alert.id,
                    alert.market_id,
                    alert.title,
                    alert.outcome,
                    alert.expected_value,
                    alert.market_price,
                    alert.true_probability,
                    alert.liquidity,
                    alert.slug,
                    alert.status.value,
                    _format_timestamp(alert.timestamp),
                ))

            logger.debug(f"Saved alert: {alert.id}")
            return True

        except sqlite3.Error as e:
            logger.error(f"Error saving alert {alert.id}: {e}")
            return False

    # Read operations

    def fetch_alerts(
        self,
        status: Optional[AlertStatus] = None,
        limit: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[EdgeAlert]:
        """
        Retrieve alerts ordered by detection time, newest first.

        Args:
            status: Only return alerts with this status
            limit: Maximum number of alerts to return
            since: Only return alerts detected at or after this time

        Returns:
            List of EdgeAlert objects

        Raises:
            StoreUnavailableError: If the database cannot be queried
        """
        where, params = _build_filters(status, since)
        query = f"SELECT * FROM edges {where} ORDER BY timestamp DESC"
        if limit and isinstance(limit, int) and limit > 0:
            query += " LIMIT ?"
            params.append(limit)

        rows = self._query(query, params)

        alerts = []
        for row in rows:
            alert = _row_to_alert(row)
            if alert:
                alerts.append(alert)
        return alerts

    def count_alerts(
        self,
        status: Optional[AlertStatus] = None,
        since: Optional[datetime] = None,
    ) -> int:
        """Count alerts, optionally restricted to a status and time window."""
        where, params = _build_filters(status, since)
        rows = self._query(f"SELECT COUNT(*) AS n FROM edges {where}", params)
        return rows[0]["n"] if rows else 0

    def average_ev(
        self,
        status: Optional[AlertStatus] = None,
        since: Optional[datetime] = None,
    ) -> float:
        """Average EV of matching alerts, 0.0 when there are none."""
        where, params = _build_filters(status, since)
        rows = self._query(f"SELECT AVG(ev) AS avg_ev FROM edges {where}", params)
        if not rows or rows[0]["avg_ev"] is None:
            return 0.0
        return float(rows[0]["avg_ev"])

    def status_counts(self, since: Optional[datetime] = None) -> dict[AlertStatus, int]:
        """Count alerts per status. Every status is present in the result."""
        where, params = _build_filters(None, since)
        rows = self._query(
            f"SELECT status, COUNT(*) AS n FROM edges {where} GROUP BY status",
            params,
        )

        counts = {status: 0 for status in AlertStatus}
        for row in rows:
            try:
                counts[AlertStatus(row["status"])] = row["n"]
            except ValueError:
                logger.warning(f"Ignoring unknown alert status: {row['status']}")
        return counts

    def _query(self, query: str, params: list) -> list[sqlite3.Row]:
        try:
            with self._get_connection() as conn:
                return conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Alert store query failed: {e}")
            raise StoreUnavailableError(str(e)) from e


def _build_filters(
    status: Optional[AlertStatus],
    since: Optional[datetime],
) -> tuple[str, list]:
    clauses = []
    params: list = []

    if status is not None:
        clauses.append("status = ?")
        params.append(AlertStatus(status).value)

    if since is not None:
        clauses.append("timestamp >= ?")
        params.append(_format_timestamp(since))

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


def _format_timestamp(value: datetime) -> str:
    # Stored as UTC ISO 8601 so lexical order matches time order
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None).isoformat(timespec="microseconds")


def _row_to_alert(row: sqlite3.Row) -> Optional[EdgeAlert]:
    """Convert database row to EdgeAlert object."""
    timestamp = parse_datetime(row["timestamp"])
    if timestamp is None:
        logger.warning(f"Skipping alert {row['id']}: bad timestamp {row['timestamp']}")
        return None

    try:
        status = AlertStatus(row["status"])
    except ValueError:
        logger.warning(f"Skipping alert {row['id']}: unknown status {row['status']}")
        return None

    return EdgeAlert(
        id=row["id"],
        market_id=row["market_id"],
        title=row["title"],
        outcome=row["outcome"],
        expected_value=row["ev"],
        market_price=row["market_price"],
        true_probability=row["true_prob"],
        liquidity=row["liquidity"],
        timestamp=timestamp,
        status=status,
        slug=row["slug"] or "",
    )
