"""
End-to-end properties of a metric computation run: determinism,
idempotence, input-order independence and worked examples.
"""

import json
import random
import sqlite3
import pytest
from datetime import date, datetime

from analysis.metric_types import RawPoint
from pipeline.compute_metrics_dag import ComputeMetricsConfig, run_compute_metrics
from pipeline.engine_config import EngineConfig
from storage.loaders import init_database, upsert_series_points

FROM_DATE = date(2024, 5, 20)
TO_DATE = date(2024, 6, 14)
NOW = datetime(2024, 6, 14, 20, 0)


def _fresh_db():
    conn = sqlite3.connect(':memory:')
    init_database(conn)
    return conn


def _dataset(config):
    """Deterministic pseudo-random dataset for every configured series."""
    calendar = config.build_calendar()
    days = list(calendar.business_days_in_range(date(2023, 12, 1), TO_DATE))
    rng = random.Random(42)
    s = config.series

    levels = {
        s.reserves: 27_000.0,
        s.base: 5_000_000.0,
        s.leliq: 2_000_000.0,
        s.repo_assets: 1_200_000.0,
        s.repo_liabilities: 3_500_000.0,
        s.usd_official: 850.0,
        s.mep: 1_150.0,
    }
    for n, sid in enumerate(s.basket.values()):
        levels[sid] = 4.0 + n

    points = []
    for sid, level in levels.items():
        value = level
        for d in days:
            value *= 1 + rng.uniform(-0.01, 0.012)
            points.append(RawPoint(sid, d, round(value, 4)))
    return points


def _stored_rows(conn):
    return conn.execute(
        "SELECT metric_id, date, value, metadata FROM metrics_points ORDER BY metric_id, date"
    ).fetchall()


@pytest.fixture
def engine_config():
    return EngineConfig(max_workers=3)


class TestDeterminism:
    """Identical inputs produce identical outputs."""

    def test_two_databases_same_rows(self, engine_config):
        dataset = _dataset(engine_config)
        config = ComputeMetricsConfig(from_date=FROM_DATE, to_date=TO_DATE)

        results = []
        for _ in range(2):
            conn = _fresh_db()
            upsert_series_points(conn, dataset)
            run_compute_metrics(config, conn, engine_config=engine_config, now=NOW)
            results.append(_stored_rows(conn))

        assert results[0]
        assert results[0] == results[1]

    def test_insertion_order_irrelevant(self, engine_config):
        dataset = _dataset(engine_config)
        shuffled = list(dataset)
        random.Random(7).shuffle(shuffled)
        config = ComputeMetricsConfig(from_date=FROM_DATE, to_date=TO_DATE)

        conn_a, conn_b = _fresh_db(), _fresh_db()
        upsert_series_points(conn_a, dataset)
        upsert_series_points(conn_b, shuffled)
        run_compute_metrics(config, conn_a, engine_config=engine_config, now=NOW)
        run_compute_metrics(config, conn_b, engine_config=engine_config, now=NOW)

        assert _stored_rows(conn_a) == _stored_rows(conn_b)

    def test_rerun_changes_nothing(self, engine_config):
        conn = _fresh_db()
        upsert_series_points(conn, _dataset(engine_config))
        config = ComputeMetricsConfig(from_date=FROM_DATE, to_date=TO_DATE)

        first = run_compute_metrics(config, conn, engine_config=engine_config, now=NOW)
        before = _stored_rows(conn)
        second = run_compute_metrics(config, conn, engine_config=engine_config, now=NOW)

        assert second['inserted'] == 0
        assert second['updated'] == first['metrics_computed']
        assert _stored_rows(conn) == before


class TestStoredInvariants:
    """Properties every stored row satisfies."""

    def test_no_pct_delta_with_zero_reference(self, engine_config):
        conn = _fresh_db()
        upsert_series_points(conn, _dataset(engine_config))
        run_compute_metrics(
            ComputeMetricsConfig(from_date=FROM_DATE, to_date=TO_DATE), conn,
            engine_config=engine_config, now=NOW
        )

        rows = conn.execute(
            "SELECT metadata FROM metrics_points WHERE metric_id LIKE 'delta.%.pct'"
        ).fetchall()
        assert rows
        assert all(json.loads(r[0])['reference'] != 0 for r in rows)

    def test_every_metric_has_lineage(self, engine_config):
        conn = _fresh_db()
        upsert_series_points(conn, _dataset(engine_config))
        run_compute_metrics(
            ComputeMetricsConfig(from_date=FROM_DATE, to_date=TO_DATE), conn,
            engine_config=engine_config, now=NOW
        )

        for metric_id, _, _, metadata in _stored_rows(conn):
            assert json.loads(metadata)['depends_on'], metric_id


class TestWorkedExamples:
    """Hand-checked examples through the full run."""

    def test_base_30d_pct_example(self, engine_config):
        calendar = engine_config.build_calendar()
        current = TO_DATE
        reference = calendar.subtract_business_days(current, 30)
        conn = _fresh_db()
        upsert_series_points(conn, [
            RawPoint(engine_config.series.base, reference, 5_500_000.0),
            RawPoint(engine_config.series.base, current, 5_300_000.0),
        ])

        run_compute_metrics(
            ComputeMetricsConfig(from_date=current, to_date=current), conn,
            engine_config=engine_config, now=NOW
        )

        value = conn.execute(
            "SELECT value FROM metrics_points WHERE metric_id = 'delta.base_30d.pct'"
        ).fetchone()[0]
        assert value == pytest.approx(-3.636, abs=1e-3)

    def test_coverage_example(self, engine_config):
        calendar = engine_config.build_calendar()
        window = [TO_DATE]
        while len(window) < 90:
            window.append(calendar.previous_business_day(window[-1]))
        missing = set(window[20:29])
        conn = _fresh_db()
        upsert_series_points(conn, [
            RawPoint(engine_config.series.base, d, 5_000_000.0) for d in window if d not in missing
        ])

        run_compute_metrics(
            ComputeMetricsConfig(from_date=FROM_DATE, to_date=TO_DATE), conn,
            engine_config=engine_config, now=NOW
        )

        value = conn.execute(
            "SELECT value FROM metrics_points WHERE metric_id = 'data.coverage.15'"
        ).fetchone()[0]
        assert value == pytest.approx(0.9)
