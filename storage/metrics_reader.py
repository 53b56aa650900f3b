"""
Metrics reader - query computed metric points.
"""

import json
import sqlite3
import pandas as pd
from datetime import date
from typing import Any, Dict, List, Optional, Sequence


def _row_to_dict(row) -> Dict[str, Any]:
    return {
        'metric_id': row.metric_id,
        'date': str(row.date)[:10],
        'value': float(row.value),
        'metadata': json.loads(row.metadata) if row.metadata else {},
    }


def get_metric_points(
    conn: sqlite3.Connection,
    metric_id: str,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    limit: int = 500
) -> List[Dict[str, Any]]:
    """
    Get points of one metric, ascending by date.

    Args:
        conn: SQLite connection
        metric_id: Metric to read
        from_date: Optional inclusive start
        to_date: Optional inclusive end
        limit: Maximum rows returned

    Returns:
        List of dicts with metric_id, date (ISO), value and decoded metadata
    """
    query = "SELECT metric_id, date, value, metadata FROM metrics_points WHERE metric_id = ?"
    params: List[Any] = [metric_id]

    if from_date:
        query += " AND date >= ?"
        params.append(from_date.isoformat())
    if to_date:
        query += " AND date <= ?"
        params.append(to_date.isoformat())

    query += " ORDER BY date ASC LIMIT ?"
    params.append(limit)

    df = pd.read_sql_query(query, conn, params=params)
    return [_row_to_dict(row) for row in df.itertuples(index=False)]


def get_latest_metrics(
    conn: sqlite3.Connection,
    metric_ids: Sequence[str]
) -> Dict[str, Any]:
    """
    Get the most recent point of each requested metric.

    Returns:
        {'items': [point dicts in request order], 'missing': [ids with no points]}
    """
    items = []
    missing = []

    for metric_id in metric_ids:
        cursor = conn.execute("""
            SELECT metric_id, date, value, metadata
            FROM metrics_points
            WHERE metric_id = ?
            ORDER BY date DESC
            LIMIT 1
        """, (metric_id,))
        row = cursor.fetchone()

        if row is None:
            missing.append(metric_id)
            continue

        items.append({
            'metric_id': row[0],
            'date': str(row[1])[:10],
            'value': float(row[2]),
            'metadata': json.loads(row[3]) if row[3] else {},
        })

    return {'items': items, 'missing': missing}


def get_last_metric_date(conn: sqlite3.Connection, metric_id: str) -> Optional[date]:
    """Latest stored date for a metric, or None."""
    cursor = conn.execute(
        "SELECT MAX(date) FROM metrics_points WHERE metric_id = ?", (metric_id,)
    )
    value = cursor.fetchone()[0]
    return date.fromisoformat(str(value)[:10]) if value else None


def list_metric_ids(conn: sqlite3.Connection) -> List[str]:
    """All metric ids present in the store, sorted."""
    cursor = conn.execute("SELECT DISTINCT metric_id FROM metrics_points ORDER BY metric_id")
    return [row[0] for row in cursor.fetchall()]
