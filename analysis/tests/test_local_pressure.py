"""
Tests for the local FX pressure calculator.
"""

import pytest
from datetime import date, timedelta

from analysis.calculations.local_pressure import compute_local_pressure
from analysis.errors import AlignmentError
from analysis.metric_types import RawPoint


def _series(series_id, values, start=date(2024, 4, 1)):
    return [RawPoint(series_id, start + timedelta(days=i), v) for i, v in enumerate(values)]


class TestLocalPressure:
    """Tests for target minus basket normalization."""

    def test_basic_window(self):
        target = _series('usd', [100.0, 105.0, 121.0])
        basket = {
            'brl': _series('brl', [10.0, 10.5, 11.0]),
            'clp': _series('clp', [5.0, 5.0, 5.5]),
        }

        results = compute_local_pressure(target, basket, window=3)

        assert len(results) == 1
        point = results[0]
        assert point.metric_id == 'fx.local_pressure_3d.usd'
        assert point.date == date(2024, 4, 3)
        # 0.21 - mean(0.1, 0.1)
        assert point.value == pytest.approx(0.11)
        assert point.metadata['reference_date'] == '2024-04-01'
        assert point.metadata['basket_members'] == ['brl', 'clp']

    def test_default_window_id(self):
        target = _series('usd', [100.0 + i for i in range(31)])
        basket = {
            'brl': _series('brl', [10.0] * 31),
            'mxn': _series('mxn', [20.0] * 31),
        }

        results = compute_local_pressure(target, basket)

        assert [p.metric_id for p in results] == ['fx.local_pressure_30d.usd'] * 2
        assert results[0].value == pytest.approx(129.0 / 100.0 - 1)

    def test_window_counts_aligned_observations(self):
        """A basket gap removes the date for everyone."""
        target = _series('usd', [100.0, 101.0, 102.0, 110.0])
        brl = _series('brl', [10.0, 10.0, 10.0, 10.0])
        clp = [p for i, p in enumerate(_series('clp', [5.0, 5.0, 5.0, 5.0])) if i != 1]

        results = compute_local_pressure(target, {'brl': brl, 'clp': clp}, window=3)

        # aligned dates: 1, 3, 4 -> one window ending on the 4th, referencing the 1st
        assert [p.date.day for p in results] == [4]
        assert results[0].value == pytest.approx(0.10)

    def test_zero_reference_member_skipped(self):
        target = _series('usd', [100.0, 110.0])
        basket = {
            'brl': _series('brl', [0.0, 10.0]),
            'clp': _series('clp', [5.0, 5.5]),
        }

        results = compute_local_pressure(target, basket, window=2)

        assert results[0].value == pytest.approx(0.1 - 0.1)
        assert results[0].metadata['basket_members'] == ['clp']

    def test_no_usable_member_skips_date(self):
        target = _series('usd', [100.0, 110.0])
        basket = {'brl': _series('brl', [0.0, 1.0]), 'clp': _series('clp', [0.0, 1.0])}
        assert compute_local_pressure(target, basket, window=2) == []

    def test_zero_target_reference_skips_date(self):
        target = _series('usd', [0.0, 110.0])
        basket = {'brl': _series('brl', [1.0, 1.0]), 'clp': _series('clp', [1.0, 1.0])}
        assert compute_local_pressure(target, basket, window=2) == []

    def test_needs_two_basket_members(self):
        target = _series('usd', [100.0] * 5)
        basket = {'brl': _series('brl', [10.0] * 5), 'clp': [], 'mxn': []}

        with pytest.raises(AlignmentError, match="basket members"):
            compute_local_pressure(target, basket, window=3)

    def test_short_aligned_history(self):
        target = _series('usd', [100.0] * 5)
        basket = {'brl': _series('brl', [10.0] * 5), 'clp': _series('clp', [5.0] * 5)}

        with pytest.raises(AlignmentError, match="aligned observations"):
            compute_local_pressure(target, basket, window=30)
