"""
Volatility calculation utilities.
Rolling realized volatility of FX log returns and moving-average trend.
"""

import math
import logging
from datetime import date
from typing import List, Sequence, Tuple

from analysis.calculations.alignment import index_by_date
from analysis.calculations.statistics import (
    moving_average_difference, simple_moving_average, stdev_population
)
from analysis.metric_types import MetricPoint, RawPoint

logger = logging.getLogger(__name__)

DEFAULT_VOL_WINDOWS = (7, 30)
DEFAULT_TREND_SHORT = 14
DEFAULT_TREND_LONG = 30


def dated_log_returns(points: Sequence[RawPoint]) -> List[Tuple[date, float]]:
    """
    Calculate log returns from a price series, keeping dates.

    Formula: r_t = ln(P_t / P_{t-1}), dated at the later price.
    Pairs where either price is <= 0 are skipped.

    Args:
        points: Price points in any order

    Returns:
        List of (date, log_return) in chronological order
    """
    index = index_by_date(points)
    dates = sorted(index)

    returns = []
    for previous_date, current_date in zip(dates, dates[1:]):
        previous, current = index[previous_date], index[current_date]
        if previous <= 0 or current <= 0:
            logger.debug(f"Skipping return at {current_date}: non-positive price")
            continue
        returns.append((current_date, math.log(current / previous)))

    return returns


def compute_rolling_volatility(
    points: Sequence[RawPoint],
    *,
    currency: str = 'usd',
    windows: Sequence[int] = DEFAULT_VOL_WINDOWS
) -> List[MetricPoint]:
    """
    Rolling population standard deviation of log returns.

    For each window W, one point per full window of W consecutive returns,
    dated at the last return in that window. Not annualized.

    Args:
        points: FX price points
        currency: Suffix for the metric id, e.g. 'usd' -> fx.vol_7d.usd
        windows: Window sizes in returns

    Returns:
        MetricPoints ordered by window, then date
    """
    returns = dated_log_returns(points)
    series_id = points[0].series_id if points else currency
    values = [r for _, r in returns]
    results = []

    for window in windows:
        if window <= 1:
            raise ValueError(f"Volatility window must be > 1, got {window}")

        metric_id = f"fx.vol_{window}d.{currency}"
        for end in range(window, len(values) + 1):
            sigma = stdev_population(values[end - window:end])
            if not math.isfinite(sigma):
                continue

            results.append(MetricPoint(
                metric_id=metric_id,
                date=returns[end - 1][0],
                value=sigma,
                metadata={
                    'depends_on': [series_id],
                    'window': f"{window}d",
                    'return': 'log',
                    'volatility_type': 'population_stdev',
                    'observations': window,
                },
            ))

    return results


def compute_trend(
    points: Sequence[RawPoint],
    *,
    currency: str = 'usd',
    short_window: int = DEFAULT_TREND_SHORT,
    long_window: int = DEFAULT_TREND_LONG
) -> List[MetricPoint]:
    """
    Short minus long simple moving average of price levels.

    Emitted from the first date with full long-window history.

    Args:
        points: FX price points
        currency: Suffix for the metric id
        short_window: Short SMA length (observations)
        long_window: Long SMA length (observations)

    Returns:
        MetricPoints in date order
    """
    index = index_by_date(points)
    dates = sorted(index)
    prices = [index[d] for d in dates]
    series_id = points[0].series_id if points else currency

    differences = moving_average_difference(prices, short_window, long_window)
    long_ma = simple_moving_average(prices, long_window)

    metric_id = f"fx.trend_{short_window}v{long_window}.{currency}"
    results = []

    for j, (trend, long_value) in enumerate(zip(differences, long_ma)):
        if not math.isfinite(trend):
            continue

        results.append(MetricPoint(
            metric_id=metric_id,
            date=dates[j + long_window - 1],
            value=trend,
            metadata={
                'depends_on': [series_id],
                'window': f"{short_window}v{long_window}",
                f"ma_{short_window}": long_value + trend,
                f"ma_{long_window}": long_value,
            },
        ))

    return results
