"""
Compute metrics DAG - orchestrates one metric computation run.
Composes: Load series → Run calculators → Clip & dedupe → Store → Track.
"""

import sqlite3
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from analysis.calculations.business_days import holiday_table_summary
from analysis.errors import AlignmentError
from analysis.metric_types import MetricPoint
from pipeline.calculator_registry import (
    CalculatorContext, CalculatorSpec, build_calculator_specs, max_lookback, required_series_union
)
from pipeline.engine_config import EngineConfig, load_engine_config
from storage.loaders import upsert_metrics_points
from storage.run_registry import start_run, finish_run, RunStatus
from storage.series_store import get_series_points_bulk

logger = logging.getLogger(__name__)

DAG_NAME = 'compute_metrics'


@dataclass
class ComputeMetricsConfig:
    """Date range for one metric computation run."""
    from_date: date
    to_date: date

    def __post_init__(self):
        """Validate date range."""
        if not isinstance(self.from_date, date) or not isinstance(self.to_date, date):
            raise ValueError("from_date and to_date must be dates")

        if self.from_date > self.to_date:
            raise ValueError("from_date must be <= to_date")

    @classmethod
    def recent_window(cls, days: int = 30, today: Optional[date] = None) -> 'ComputeMetricsConfig':
        """
        Range covering roughly the last ``days`` business days.

        Uses 1.5x calendar days so weekends and holidays are covered.
        """
        if days <= 0:
            raise ValueError("days must be positive")
        today = today or date.today()
        return cls(from_date=today - timedelta(days=int(days * 1.5)), to_date=today)

    @classmethod
    def today(cls, today: Optional[date] = None) -> 'ComputeMetricsConfig':
        """Single-day range for the current date."""
        today = today or date.today()
        return cls(from_date=today, to_date=today)

    @property
    def days_range(self) -> int:
        return (self.to_date - self.from_date).days


def _run_calculator(
    spec: CalculatorSpec,
    series: Dict[str, list],
    context: CalculatorContext
) -> Dict[str, Any]:
    """Run one calculator, classifying an alignment failure as a skip."""
    empty = [sid for sid in spec.required_series if not series.get(sid)]
    if empty:
        return {'name': spec.name, 'points': [], 'skipped': f"required series empty: {empty}"}

    try:
        points = spec.compute(series, context)
    except AlignmentError as e:
        return {'name': spec.name, 'points': [], 'skipped': str(e)}

    if spec.clip_to_range:
        points = [p for p in points if context.from_date <= p.date <= context.to_date]

    return {'name': spec.name, 'points': points, 'skipped': None}


def _dedupe(points: List[MetricPoint]) -> List[MetricPoint]:
    """Keep the last point per (metric_id, date), preserving first-seen order."""
    by_key: Dict[Any, MetricPoint] = {}
    for point in points:
        by_key[point.key] = point
    return list(by_key.values())


def run_compute_metrics(
    config: ComputeMetricsConfig,
    conn: sqlite3.Connection,
    engine_config: Optional[EngineConfig] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Run every calculator over [from_date, to_date] and persist the results.

    Pipeline stages:
    1. Start run tracking
    2. Bulk-load the union of declared series, with lookback history
    3. Run calculators concurrently, gathered in declaration order
    4. Clip to range and de-duplicate
    5. Upsert all metric points in one transaction
    6. Finish run tracking

    Args:
        config: Date range
        conn: SQLite database connection
        engine_config: Engine configuration (loaded from file if omitted)
        now: Wall-clock reference for freshness (defaults to now)

    Returns:
        Dictionary with run results and per-calculator counts

    Raises:
        PersistenceError: If the batch write fails; the run is marked failed
    """
    if engine_config is None:
        engine_config = load_engine_config()
    if now is None:
        now = datetime.now()

    run_id = start_run(conn, DAG_NAME)
    start_time = datetime.now()

    result = {
        'from_date': config.from_date,
        'to_date': config.to_date,
        'run_id': run_id,
        'status': 'running',
        'rows_loaded': 0,
        'metrics_computed': 0,
        'calculators': {},
        'skipped_calculators': [],
        'inserted': 0,
        'updated': 0,
        'error_message': None,
    }

    try:
        calendar = engine_config.build_calendar()
        logger.debug(f"Holidays per year: {holiday_table_summary(calendar)}")
        specs = build_calculator_specs(engine_config)
        series_ids = required_series_union(specs)
        load_from = calendar.subtract_business_days(config.from_date, max_lookback(specs))

        # Stage 1: Load every series once
        series = get_series_points_bulk(conn, series_ids, load_from, config.to_date)
        result['rows_loaded'] = sum(len(points) for points in series.values())
        logger.info(
            f"Run {run_id}: loaded {result['rows_loaded']} points for {len(series_ids)} series "
            f"({load_from} to {config.to_date})"
        )

        core = [engine_config.series.reserves, engine_config.series.base]
        if not any(series.get(sid) for sid in core):
            logger.info(f"Run {run_id}: core series {core} empty, nothing to compute")
            finish_run(conn, run_id, RunStatus.COMPLETED, rows_in=result['rows_loaded'], rows_out=0)
            result['status'] = 'completed'
            result['duration_seconds'] = (datetime.now() - start_time).total_seconds()
            return result

        # Stage 2: Run calculators
        context = CalculatorContext(
            calendar=calendar,
            config=engine_config,
            from_date=config.from_date,
            to_date=config.to_date,
            now=now,
        )
        with ThreadPoolExecutor(max_workers=engine_config.max_workers) as executor:
            futures = [executor.submit(_run_calculator, spec, series, context) for spec in specs]
            outcomes = [future.result() for future in futures]

        all_points: List[MetricPoint] = []
        for outcome in outcomes:
            if outcome['skipped']:
                logger.info(f"Calculator {outcome['name']} skipped: {outcome['skipped']}")
                result['skipped_calculators'].append(outcome['name'])
            result['calculators'][outcome['name']] = len(outcome['points'])
            all_points.extend(outcome['points'])

        # Stage 3: Dedupe and store
        metrics = _dedupe(all_points)
        result['metrics_computed'] = len(metrics)

        inserted, updated = upsert_metrics_points(conn, metrics)
        result['inserted'] = inserted
        result['updated'] = updated

        finish_run(
            conn=conn,
            run_id=run_id,
            status=RunStatus.COMPLETED,
            rows_in=result['rows_loaded'],
            rows_out=len(metrics)
        )

        result['status'] = 'completed'
        result['duration_seconds'] = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Run {run_id}: {len(metrics)} metrics ({inserted} inserted, {updated} updated) "
            f"in {result['duration_seconds']:.2f}s"
        )
        return result

    except Exception as e:
        logger.error(f"Run {run_id} failed: {e}")
        finish_run(
            conn=conn,
            run_id=run_id,
            status=RunStatus.FAILED,
            rows_in=result['rows_loaded'],
            rows_out=0,
            error_message=str(e)
        )
        raise
