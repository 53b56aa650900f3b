"""
Tests for FX volatility and trend calculators.
Synthetic price paths built from known log returns.
"""

import math
import statistics
import pytest
from datetime import date, timedelta

from analysis.calculations.statistics import moving_average_difference
from analysis.calculations.volatility import (
    compute_rolling_volatility,
    compute_trend,
    dated_log_returns,
)
from analysis.metric_types import RawPoint

KNOWN_RETURNS = [0.01, -0.02, 0.03, 0.0, 0.01, -0.01, 0.02]


def _dates(n, start=date(2024, 3, 1)):
    return [start + timedelta(days=i) for i in range(n)]


def _prices_from_returns(returns, start_price=1_000.0):
    prices = [start_price]
    for r in returns:
        prices.append(prices[-1] * math.exp(r))
    return [RawPoint('usd', d, p) for d, p in zip(_dates(len(prices)), prices)]


class TestDatedLogReturns:
    """Tests for date-keyed log returns."""

    def test_returns_dated_at_later_price(self):
        points = [
            RawPoint('usd', date(2024, 3, 2), 110.0),
            RawPoint('usd', date(2024, 3, 1), 100.0),
        ]
        returns = dated_log_returns(points)
        assert returns == [(date(2024, 3, 2), pytest.approx(math.log(1.1)))]

    def test_invalid_pairs_skipped(self):
        points = [RawPoint('usd', d, p) for d, p in zip(_dates(4), [100.0, 0.0, 100.0, 110.0])]
        returns = dated_log_returns(points)
        assert [d for d, _ in returns] == [date(2024, 3, 4)]


class TestRollingVolatility:
    """Tests for population-stdev volatility."""

    def test_seven_return_window_matches_population_sigma(self):
        points = _prices_from_returns(KNOWN_RETURNS)

        results = compute_rolling_volatility(points, windows=(7,))

        assert len(results) == 1
        assert results[0].metric_id == 'fx.vol_7d.usd'
        assert results[0].value == pytest.approx(statistics.pstdev(KNOWN_RETURNS), abs=1e-12)
        assert results[0].date == points[-1].date
        assert results[0].metadata['volatility_type'] == 'population_stdev'
        assert results[0].metadata['return'] == 'log'

    def test_not_sample_stdev(self):
        points = _prices_from_returns(KNOWN_RETURNS)
        value = compute_rolling_volatility(points, windows=(7,))[0].value
        assert value != pytest.approx(statistics.stdev(KNOWN_RETURNS), abs=1e-9)

    def test_one_point_per_full_window(self):
        returns = KNOWN_RETURNS * 6  # 42 returns
        points = _prices_from_returns(returns)

        results = compute_rolling_volatility(points)

        seven = [p for p in results if p.metric_id == 'fx.vol_7d.usd']
        thirty = [p for p in results if p.metric_id == 'fx.vol_30d.usd']
        assert len(seven) == 42 - 7 + 1
        assert len(thirty) == 42 - 30 + 1
        assert thirty[0].date == points[30].date

    def test_insufficient_history(self):
        points = _prices_from_returns(KNOWN_RETURNS[:3])
        assert compute_rolling_volatility(points, windows=(7,)) == []

    def test_window_must_exceed_one(self):
        with pytest.raises(ValueError):
            compute_rolling_volatility(_prices_from_returns(KNOWN_RETURNS), windows=(1,))


class TestTrend:
    """Tests for SMA14 - SMA30 trend."""

    def test_linear_prices(self):
        points = [RawPoint('usd', d, 100.0 + i) for i, d in enumerate(_dates(31))]

        results = compute_trend(points)

        assert [p.metric_id for p in results] == ['fx.trend_14v30.usd'] * 2
        # MA14 of 116..129 = 122.5, MA30 of 100..129 = 114.5
        assert results[0].value == pytest.approx(8.0)
        assert results[0].date == points[29].date
        assert results[0].metadata['ma_14'] == pytest.approx(122.5)
        assert results[0].metadata['ma_30'] == pytest.approx(114.5)

    def test_needs_full_long_history(self):
        points = [RawPoint('usd', d, 100.0) for d in _dates(29)]
        assert compute_trend(points) == []

    def test_flat_prices_zero_trend(self):
        points = [RawPoint('usd', d, 900.0) for d in _dates(40)]
        assert all(p.value == pytest.approx(0.0) for p in compute_trend(points))

    def test_matches_moving_average_difference(self):
        prices = [850.0 + 3 * math.sin(i / 4) + 0.5 * i for i in range(45)]
        points = [RawPoint('usd', d, p) for d, p in zip(_dates(45), prices)]

        results = compute_trend(points)

        expected = moving_average_difference(prices, 14, 30)
        assert [p.value for p in results] == pytest.approx(expected)
        assert results[-1].date == points[-1].date

    def test_custom_windows(self):
        points = [RawPoint('usd', d, 10.0 * i) for i, d in enumerate(_dates(5))]

        results = compute_trend(points, short_window=2, long_window=4)

        assert [p.metric_id for p in results] == ['fx.trend_2v4.usd'] * 2
        assert results[0].value == pytest.approx(10.0)
        assert results[0].metadata['ma_2'] == pytest.approx(25.0)
