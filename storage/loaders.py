"""
Database loaders - idempotent upsert functions for SQLite.
Thin IO layer with focus on data integrity and idempotence.
"""

import sqlite3
import logging
from datetime import datetime
from typing import List, Sequence, Tuple

from analysis.metric_types import MetricPoint, RawPoint

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when a batch write to the metrics store fails."""
    pass


def init_database(conn: sqlite3.Connection) -> None:
    """
    Initialize database with required tables.
    Idempotent - safe to call multiple times.

    Args:
        conn: SQLite connection
    """
    conn.execute("PRAGMA foreign_keys = ON")

    # Raw series, written by ingestion and read-only for the engine
    conn.execute("""
        CREATE TABLE IF NOT EXISTS series_points (
            series_id TEXT NOT NULL,
            date DATE NOT NULL,
            value REAL NOT NULL,
            PRIMARY KEY (series_id, date)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS metrics_points (
            metric_id TEXT NOT NULL,
            date DATE NOT NULL,
            value REAL NOT NULL,
            metadata TEXT,
            created_at DATETIME NOT NULL,
            updated_at DATETIME NOT NULL,
            PRIMARY KEY (metric_id, date)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS runs (
            run_id INTEGER PRIMARY KEY AUTOINCREMENT,
            dag_name TEXT NOT NULL,
            started_at DATETIME NOT NULL,
            finished_at DATETIME,
            status TEXT NOT NULL CHECK(status IN ('running', 'completed', 'failed')),
            rows_in INTEGER,
            rows_out INTEGER,
            error_message TEXT
        )
    """)

    conn.execute("CREATE INDEX IF NOT EXISTS idx_series_date ON series_points(date)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_metrics_date ON metrics_points(date)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_runs_status ON runs(status)")

    conn.commit()


def get_connection(db_path: str = './data/metrics.db') -> sqlite3.Connection:
    """
    Get SQLite connection with proper configuration.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Configured SQLite connection
    """
    # Calculators may run on worker threads; all DB access stays on the caller's thread
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def upsert_series_points(conn: sqlite3.Connection, points: Sequence[RawPoint]) -> Tuple[int, int]:
    """
    Upsert raw series points.
    Idempotent - can be called multiple times with same data.

    Args:
        conn: SQLite connection
        points: RawPoints to store

    Returns:
        Tuple of (inserted_count, updated_count)
    """
    if not points:
        return (0, 0)

    inserted = 0
    updated = 0

    for point in points:
        day = point.date.isoformat()
        cursor = conn.execute(
            "SELECT COUNT(*) FROM series_points WHERE series_id = ? AND date = ?",
            (point.series_id, day)
        )
        exists = cursor.fetchone()[0] > 0

        if exists:
            conn.execute(
                "UPDATE series_points SET value = ? WHERE series_id = ? AND date = ?",
                (point.value, point.series_id, day)
            )
            updated += 1
        else:
            conn.execute(
                "INSERT INTO series_points (series_id, date, value) VALUES (?, ?, ?)",
                (point.series_id, day, point.value)
            )
            inserted += 1

    conn.commit()
    return (inserted, updated)


def upsert_metrics_points(
    conn: sqlite3.Connection,
    points: List[MetricPoint]
) -> Tuple[int, int]:
    """
    Upsert metric points in a single transaction.
    Last write wins on (metric_id, date); created_at is kept on update.

    Args:
        conn: SQLite connection
        points: MetricPoints to store

    Returns:
        Tuple of (inserted_count, updated_count)

    Raises:
        PersistenceError: If any statement fails; the whole batch is rolled back
    """
    if not points:
        return (0, 0)

    inserted = 0
    updated = 0
    now = datetime.now().isoformat(sep=' ')

    try:
        for point in points:
            row = point.to_row()
            cursor = conn.execute(
                "SELECT COUNT(*) FROM metrics_points WHERE metric_id = ? AND date = ?",
                (row['metric_id'], row['date'])
            )
            exists = cursor.fetchone()[0] > 0

            if exists:
                conn.execute("""
                    UPDATE metrics_points SET
                        value = ?, metadata = ?, updated_at = ?
                    WHERE metric_id = ? AND date = ?
                """, (
                    row['value'], row['metadata'], now,
                    row['metric_id'], row['date']
                ))
                updated += 1
            else:
                conn.execute("""
                    INSERT INTO metrics_points (
                        metric_id, date, value, metadata, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    row['metric_id'], row['date'], row['value'], row['metadata'],
                    now, now
                ))
                inserted += 1

        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        logger.error(f"Metrics upsert failed after {inserted + updated} rows, rolled back: {e}")
        raise PersistenceError(f"Failed to upsert {len(points)} metric points: {e}") from e

    return (inserted, updated)
