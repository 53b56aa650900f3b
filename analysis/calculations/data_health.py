"""
Data-health metrics: freshness, coverage and gaps per raw series.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence

from analysis.calculations.alignment import index_by_date
from analysis.calculations.business_days import BusinessDayCalendar
from analysis.errors import MissingDataError
from analysis.metric_types import MetricPoint, RawPoint

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_THRESHOLD_HOURS = 24
DEFAULT_COVERAGE_WINDOW = 90


def freshness_hours(last_date: date, now: datetime) -> float:
    """Hours between ``now`` and midnight of ``last_date``."""
    midnight = datetime.combine(last_date, time())
    return abs((now - midnight).total_seconds()) / 3600


def freshness_reference(now: datetime, to_date: date) -> datetime:
    """
    Wall-clock reference for freshness in a run ending at ``to_date``.

    Capped at the end of ``to_date``: a run over a past range always yields
    the same freshness values.
    """
    return min(now, datetime.combine(to_date + timedelta(days=1), time()))


def trailing_business_days(
    as_of: date,
    count: int,
    calendar: BusinessDayCalendar
) -> List[date]:
    """
    The ``count`` business days ending at ``as_of``, oldest first.

    If ``as_of`` is not a business day the window ends at the previous one.
    """
    end = as_of if calendar.is_business_day(as_of) else calendar.previous_business_day(as_of)
    days = [end]
    while len(days) < count:
        days.append(calendar.previous_business_day(days[-1]))
    return list(reversed(days))


def compute_series_health(
    points: Sequence[RawPoint],
    *,
    series_id: str,
    calendar: BusinessDayCalendar,
    now: datetime,
    as_of: Optional[date] = None,
    threshold_hours: float = DEFAULT_FRESHNESS_THRESHOLD_HOURS,
    coverage_window: int = DEFAULT_COVERAGE_WINDOW
) -> List[MetricPoint]:
    """
    Freshness, coverage and gap metrics for one series.

    Args:
        points: Raw points of the series (any order)
        series_id: Series id used in metric ids and lineage
        calendar: Business day calendar for coverage
        now: Reference wall-clock time for freshness
        as_of: Coverage end date (defaults to now.date())
        threshold_hours: Freshness threshold recorded in metadata
        coverage_window: Trailing business days for coverage

    Returns:
        Up to three MetricPoints (gaps needs at least two points)

    Raises:
        MissingDataError: If the series has no points
    """
    if not points:
        raise MissingDataError(f"Series {series_id} has no points")

    index = index_by_date(points)
    dates = sorted(index)
    last_date = dates[-1]
    as_of = as_of or now.date()
    results = []

    hours = freshness_hours(last_date, now)
    results.append(MetricPoint(
        metric_id=f"data.freshness.{series_id}",
        date=last_date,
        value=hours,
        metadata={
            'depends_on': [series_id],
            'last_date': last_date.isoformat(),
            'threshold_hours': threshold_hours,
            'is_fresh': hours <= threshold_hours,
            'units': 'hours',
        },
    ))

    window_days = trailing_business_days(as_of, coverage_window, calendar)
    present = sum(1 for d in window_days if d in index)
    results.append(MetricPoint(
        metric_id=f"data.coverage.{series_id}",
        date=window_days[-1],
        value=present / coverage_window,
        metadata={
            'depends_on': [series_id],
            'window': f"{coverage_window}bd",
            'business_days_with_data': present,
            'business_days_expected': coverage_window,
            'window_start': window_days[0].isoformat(),
        },
    ))

    if len(dates) >= 2:
        spans = [(b - a).days for a, b in zip(dates, dates[1:])]
        gaps = [span for span in spans if span > 1]
        results.append(MetricPoint(
            metric_id=f"data.gaps.{series_id}",
            date=last_date,
            value=float(len(gaps)),
            metadata={
                'depends_on': [series_id],
                'total_gaps': len(gaps),
                'max_gap_days': max(gaps) - 1 if gaps else 0,
            },
        ))

    return results


def compute_data_health(
    series: dict,
    *,
    calendar: BusinessDayCalendar,
    now: datetime,
    as_of: Optional[date] = None,
    threshold_hours: float = DEFAULT_FRESHNESS_THRESHOLD_HOURS,
    coverage_window: int = DEFAULT_COVERAGE_WINDOW
) -> List[MetricPoint]:
    """
    Run compute_series_health over {series_id: points}.

    Empty series are skipped individually.
    """
    results = []
    for series_id, points in series.items():
        try:
            results.extend(compute_series_health(
                points,
                series_id=series_id,
                calendar=calendar,
                now=now,
                as_of=as_of,
                threshold_hours=threshold_hours,
                coverage_window=coverage_window,
            ))
        except MissingDataError as e:
            logger.debug(f"Skipping data health for {series_id}: {e}")
    return results
