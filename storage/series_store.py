"""
Series store - read access to raw series points.
"""

import sqlite3
import logging
import pandas as pd
from datetime import date
from typing import Dict, List, Sequence

from analysis.metric_types import RawPoint

logger = logging.getLogger(__name__)


def _frame_to_points(df: pd.DataFrame) -> List[RawPoint]:
    return [
        RawPoint(
            series_id=row.series_id,
            date=date.fromisoformat(str(row.date)[:10]),
            value=float(row.value),
        )
        for row in df.itertuples(index=False)
    ]


def get_series_points(
    conn: sqlite3.Connection,
    series_id: str,
    from_date: date,
    to_date: date
) -> List[RawPoint]:
    """
    Get points for one series in [from_date, to_date], ascending by date.

    Args:
        conn: SQLite connection
        series_id: Series to read
        from_date: Inclusive start date
        to_date: Inclusive end date

    Returns:
        List of RawPoints (empty if the series has no data in range)
    """
    query = """
        SELECT series_id, date, value
        FROM series_points
        WHERE series_id = ? AND date >= ? AND date <= ?
        ORDER BY date ASC
    """

    df = pd.read_sql_query(
        query, conn, params=[series_id, from_date.isoformat(), to_date.isoformat()]
    )
    return _frame_to_points(df)


def get_series_points_bulk(
    conn: sqlite3.Connection,
    series_ids: Sequence[str],
    from_date: date,
    to_date: date
) -> Dict[str, List[RawPoint]]:
    """
    Get points for several series in one query.

    Args:
        conn: SQLite connection
        series_ids: Series to read
        from_date: Inclusive start date
        to_date: Inclusive end date

    Returns:
        Dictionary series_id -> ascending RawPoints; ids with no data map to []
    """
    ids = list(dict.fromkeys(series_ids))
    result: Dict[str, List[RawPoint]] = {sid: [] for sid in ids}
    if not ids:
        return result

    placeholders = ','.join('?' * len(ids))
    query = f"""
        SELECT series_id, date, value
        FROM series_points
        WHERE series_id IN ({placeholders}) AND date >= ? AND date <= ?
        ORDER BY series_id, date ASC
    """

    df = pd.read_sql_query(
        query, conn, params=ids + [from_date.isoformat(), to_date.isoformat()]
    )

    for point in _frame_to_points(df):
        result[point.series_id].append(point)

    empty = [sid for sid, points in result.items() if not points]
    if empty:
        logger.info(f"No points in {from_date}..{to_date} for series: {empty}")

    logger.debug(f"Loaded {len(df)} points for {len(ids)} series")
    return result
