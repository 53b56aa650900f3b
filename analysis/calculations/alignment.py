"""
Series alignment utilities.
Reduce several series to the dates they share so index-wise arithmetic is valid.
"""

import logging
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

from analysis.metric_types import AlignedSeriesSet, RawPoint

logger = logging.getLogger(__name__)


def sort_points(points: Sequence[RawPoint]) -> List[RawPoint]:
    """Return points ordered ascending by date."""
    return sorted(points, key=lambda p: p.date)


def index_by_date(points: Sequence[RawPoint]) -> Dict[date, float]:
    """
    Map date -> value for O(1) reference lookups.

    Duplicate dates resolve last-value-wins; the number of dropped earlier
    duplicates is logged because it usually means an upstream data problem.

    Args:
        points: Points of a single series

    Returns:
        Dictionary keyed by date
    """
    index: Dict[date, float] = {}
    duplicates = 0

    for point in points:
        if point.date in index:
            duplicates += 1
        index[point.date] = point.value

    if duplicates:
        series_id = points[0].series_id if points else 'unknown'
        logger.warning(
            f"Series {series_id} has {duplicates} duplicate dates; keeping last value"
        )

    return index


def align_pair(a: Sequence[RawPoint], b: Sequence[RawPoint]) -> AlignedSeriesSet:
    """
    Align two series on the sorted intersection of their dates.

    Args:
        a: First series
        b: Second series

    Returns:
        AlignedSeriesSet with two equal-length value lists (empty if the
        date sets are disjoint or either input is empty)
    """
    return align_many([a, b], series_ids=[_series_id(a, 'a'), _series_id(b, 'b')])


def align_many(
    series_list: Sequence[Sequence[RawPoint]],
    series_ids: Optional[Sequence[str]] = None
) -> AlignedSeriesSet:
    """
    Align N series on the dates present in every one of them.

    The result is the full N-way intersection computed in one pass over all
    indexes, so it does not depend on input order.

    Args:
        series_list: Series to align
        series_ids: Labels for the output columns (defaults to each series'
            own series_id, or its position)

    Returns:
        AlignedSeriesSet; every column is empty if any input is empty
    """
    if series_ids is None:
        series_ids = [_series_id(s, str(i)) for i, s in enumerate(series_list)]

    if len(series_ids) != len(series_list):
        raise ValueError("series_ids must match series_list length")

    if not series_list:
        return AlignedSeriesSet(dates=[], series_ids=[], values=[])

    indexes = [index_by_date(series) for series in series_list]

    common = set(indexes[0])
    for index in indexes[1:]:
        common &= set(index)

    dates = sorted(common)
    values = [[index[d] for d in dates] for index in indexes]

    return AlignedSeriesSet(dates=dates, series_ids=list(series_ids), values=values)


def align_named(series: Mapping[str, Sequence[RawPoint]]) -> AlignedSeriesSet:
    """Align a {series_id: points} mapping, keeping the mapping's key order."""
    ids = list(series.keys())
    return align_many([series[sid] for sid in ids], series_ids=ids)


def _series_id(points: Sequence[RawPoint], fallback: str) -> str:
    return points[0].series_id if points else fallback
