"""
Windowed delta calculators.
Absolute and percentage change of a series over N business days.
"""

import logging
from datetime import date
from typing import Dict, List, Sequence

from analysis.calculations.alignment import index_by_date, sort_points
from analysis.calculations.business_days import BusinessDayCalendar
from analysis.calculations.scaling import DISPLAY_SCALE, normalize_to_millions
from analysis.calculations.statistics import require_finite
from analysis.errors import InvalidArithmeticError, MissingDataError
from analysis.metric_types import MetricPoint, RawPoint

logger = logging.getLogger(__name__)

DEFAULT_WINDOWS = (7, 30, 90)


def delta_metric_id(family: str, window: int, mode: str) -> str:
    """e.g. ('delta.base', 30, 'pct') -> 'delta.base_30d.pct'"""
    return f"{family}_{window}d.{mode}"


def find_reference(
    index: Dict[date, float],
    current_date: date,
    window: int,
    calendar: BusinessDayCalendar
) -> tuple:
    """
    Locate the point exactly ``window`` business days before ``current_date``.

    Args:
        index: date -> value for the series
        current_date: Date of the current observation
        window: Business days to look back
        calendar: Business day calendar

    Returns:
        Tuple of (reference_date, reference_value)

    Raises:
        MissingDataError: If the series has no point on the reference date
    """
    reference_date = calendar.subtract_business_days(current_date, window)
    if reference_date not in index:
        raise MissingDataError(f"No point on reference date {reference_date}")
    return reference_date, index[reference_date]


def compute_window_deltas(
    points: Sequence[RawPoint],
    *,
    family: str,
    series_id: str,
    units: str,
    calendar: BusinessDayCalendar,
    windows: Sequence[int] = DEFAULT_WINDOWS
) -> List[MetricPoint]:
    """
    Compute absolute and percentage deltas for every point and window.

    No forward-fill: if the reference date has no point, the (metric, date)
    pair is skipped. A raw reference of exactly 0 skips both deltas.

    Args:
        points: Raw points of one series (any order)
        family: Metric family prefix, e.g. 'delta.base'
        series_id: Source series id recorded as lineage
        units: Unit label for absolute deltas, e.g. 'million_ARS'
        calendar: Business day calendar
        windows: Lookback windows in business days

    Returns:
        MetricPoints ordered by window, then date, abs before pct
    """
    index = index_by_date(sort_points(points))
    results: List[MetricPoint] = []

    for window in windows:
        skipped = 0

        for current_date in sorted(index):
            try:
                results.extend(
                    _deltas_for_point(current_date, index, window, family, series_id, units, calendar)
                )
            except (MissingDataError, InvalidArithmeticError) as e:
                skipped += 1
                logger.debug(f"Skipping {family}_{window}d at {current_date}: {e}")

        if skipped:
            logger.debug(f"{family}_{window}d: {skipped} dates skipped")

    return results


def _deltas_for_point(
    current_date: date,
    index: Dict[date, float],
    window: int,
    family: str,
    series_id: str,
    units: str,
    calendar: BusinessDayCalendar
) -> List[MetricPoint]:
    """Compute the abs/pct pair for one observation."""
    reference_date, reference_raw = find_reference(index, current_date, window, calendar)
    current_raw = index[current_date]

    if reference_raw == 0:
        raise InvalidArithmeticError(f"Reference value on {reference_date} is zero")

    current_scaled = normalize_to_millions(current_raw)
    reference_scaled = normalize_to_millions(reference_raw)

    absolute = require_finite(current_scaled - reference_scaled)
    # Percentage from raw values so scaling rounding does not compound
    percentage = require_finite((current_raw / reference_raw - 1) * 100)

    base_metadata = {
        'depends_on': [series_id],
        'window': f"{window}d",
        'current': current_scaled,
        'reference': reference_scaled,
        'raw_current': current_raw,
        'raw_reference': reference_raw,
        'reference_date': reference_date.isoformat(),
    }

    return [
        MetricPoint(
            metric_id=delta_metric_id(family, window, 'abs'),
            date=current_date,
            value=absolute,
            metadata={**base_metadata, 'mode': 'abs', 'units': units, 'scale': DISPLAY_SCALE},
        ),
        MetricPoint(
            metric_id=delta_metric_id(family, window, 'pct'),
            date=current_date,
            value=percentage,
            metadata={**base_metadata, 'mode': 'pct', 'units': 'percent'},
        ),
    ]
