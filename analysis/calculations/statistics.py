"""
Statistical primitives used by the calculators.
Pure functions over plain sequences; degenerate inputs return 0.0 rather than NaN.
"""

import math
import numpy as np
from typing import List, Sequence

from analysis.errors import InvalidArithmeticError


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def stdev_population(values: Sequence[float]) -> float:
    """
    Population standard deviation (divide by N).

    Args:
        values: Observations

    Returns:
        Standard deviation, 0.0 when fewer than 2 observations
    """
    if len(values) <= 1:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=0))


def stdev_sample(values: Sequence[float]) -> float:
    """Sample standard deviation (divide by N-1); 0.0 when fewer than 2 observations."""
    if len(values) <= 1:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=1))


def simple_moving_average(values: Sequence[float], window: int) -> List[float]:
    """
    Trailing simple moving average.

    Args:
        values: Series in chronological order
        window: Number of observations per average

    Returns:
        List of length len(values) - window + 1; element i averages
        values[i : i + window]. Empty when there is not enough history.

    Raises:
        ValueError: If window is not positive
    """
    if window <= 0:
        raise ValueError(f"window must be positive, got {window}")

    if len(values) < window:
        return []

    array = np.asarray(values, dtype=float)
    averages = []
    for i in range(window - 1, len(array)):
        averages.append(float(np.mean(array[i - window + 1:i + 1])))
    return averages


def log_returns(prices: Sequence[float]) -> List[float]:
    """
    Log returns ln(p[i] / p[i-1]).

    A pair where either price is <= 0 is skipped, not zero-filled, so the
    output can be shorter than len(prices) - 1.
    """
    returns = []
    for i in range(1, len(prices)):
        current, previous = prices[i], prices[i - 1]
        if current > 0 and previous > 0:
            returns.append(math.log(current / previous))
    return returns


def simple_returns(prices: Sequence[float]) -> List[float]:
    """Simple returns (p[i] - p[i-1]) / p[i-1], skipping pairs with a zero base."""
    returns = []
    for i in range(1, len(prices)):
        previous = prices[i - 1]
        if previous != 0:
            returns.append((prices[i] - previous) / previous)
    return returns


def percentile(values: Sequence[float], p: float) -> float:
    """
    Percentile with linear interpolation between order statistics.

    Args:
        values: Observations (any order)
        p: Percentile in [0, 100]

    Returns:
        Interpolated value; 0.0 for an empty sequence

    Raises:
        ValueError: If p is outside [0, 100]
    """
    if not 0 <= p <= 100:
        raise ValueError(f"percentile must be in [0, 100], got {p}")

    if len(values) == 0:
        return 0.0
    return float(np.percentile(np.asarray(values, dtype=float), p))


def moving_average_difference(
    values: Sequence[float],
    short_window: int,
    long_window: int
) -> List[float]:
    """
    MA(short) - MA(long), aligned on the same end index.

    Element j corresponds to values index j + long_window - 1.
    """
    if short_window > long_window:
        raise ValueError("short_window must be <= long_window")

    long_ma = simple_moving_average(values, long_window)
    if not long_ma:
        return []

    short_ma = simple_moving_average(values, short_window)
    offset = long_window - short_window
    return [short_ma[j + offset] - long_ma[j] for j in range(len(long_ma))]


def safe_divide(numerator: float, denominator: float) -> float:
    """
    Divide, classifying failures.

    Raises:
        InvalidArithmeticError: On a zero denominator or a non-finite result
    """
    if denominator == 0:
        raise InvalidArithmeticError("Division by zero")
    return require_finite(numerator / denominator)


def require_finite(value: float) -> float:
    """Return value unchanged, or raise InvalidArithmeticError for NaN/inf."""
    if not math.isfinite(value):
        raise InvalidArithmeticError(f"Non-finite result: {value}")
    return value
