"""
Monetary aggregate calculators.

Two missing-data strategies coexist and are chosen per metric definition:
- STRICT: every component must be present; the sum is taken over the
  N-way aligned dates and a wholly absent component skips the metric.
- PARTIAL_SUM: sum whichever components exist on each date, treating the
  rest as 0, and record which ones were missing.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Mapping, Sequence

from analysis.calculations.alignment import align_many, index_by_date
from analysis.calculations.scaling import DISPLAY_SCALE, normalize_to_millions
from analysis.calculations.statistics import require_finite
from analysis.errors import AlignmentError, InvalidArithmeticError
from analysis.metric_types import MetricPoint, RawPoint

logger = logging.getLogger(__name__)


class AggregationPolicy(str, Enum):
    """Missing-data strategy for an aggregate."""
    STRICT = 'strict'
    PARTIAL_SUM = 'partial_sum'


@dataclass(frozen=True)
class AggregateDefinition:
    """
    Declarative description of a sum-of-series metric.

    ``components`` maps a component name (used in metadata) to its series id,
    in the order the components are summed and reported.
    """
    metric_id: str
    components: Mapping[str, str]
    policy: AggregationPolicy
    units: str = 'million_ARS'

    @property
    def series_ids(self) -> List[str]:
        return list(self.components.values())


def compute_aggregate(
    definition: AggregateDefinition,
    series: Mapping[str, Sequence[RawPoint]]
) -> List[MetricPoint]:
    """
    Compute an aggregate using the definition's missing-data policy.

    Args:
        definition: Metric id, components and policy
        series: Raw points keyed by series id; absent or empty entries count
            as a missing component

    Returns:
        MetricPoints in date order

    Raises:
        AlignmentError: When the policy cannot produce any output for the run
    """
    if definition.policy == AggregationPolicy.STRICT:
        return _strict_sum(definition, series)
    if definition.policy == AggregationPolicy.PARTIAL_SUM:
        return _partial_sum(definition, series)
    raise ValueError(f"Unknown aggregation policy: {definition.policy}")


def _strict_sum(
    definition: AggregateDefinition,
    series: Mapping[str, Sequence[RawPoint]]
) -> List[MetricPoint]:
    missing = [name for name, sid in definition.components.items() if not series.get(sid)]
    if missing:
        raise AlignmentError(
            f"{definition.metric_id}: required components absent for the run: {missing}"
        )

    names = list(definition.components.keys())
    aligned = align_many(
        [series[sid] for sid in definition.series_ids],
        series_ids=definition.series_ids,
    )
    if aligned.is_empty:
        raise AlignmentError(f"{definition.metric_id}: no common dates across components")

    results = []
    for i, day in enumerate(aligned.dates):
        scaled = {
            name: normalize_to_millions(aligned.values[j][i])
            for j, name in enumerate(names)
        }
        try:
            total = require_finite(sum(scaled.values()))
        except InvalidArithmeticError as e:
            logger.debug(f"Skipping {definition.metric_id} at {day}: {e}")
            continue

        results.append(MetricPoint(
            metric_id=definition.metric_id,
            date=day,
            value=total,
            metadata={
                'depends_on': definition.series_ids,
                'policy': definition.policy.value,
                'units': definition.units,
                'scale': DISPLAY_SCALE,
                'components': scaled,
            },
        ))

    return results


def _partial_sum(
    definition: AggregateDefinition,
    series: Mapping[str, Sequence[RawPoint]]
) -> List[MetricPoint]:
    indexes: Dict[str, Dict[date, float]] = {
        name: index_by_date(series.get(sid) or [])
        for name, sid in definition.components.items()
    }

    all_dates = set()
    for index in indexes.values():
        all_dates.update(index)

    if not all_dates:
        raise AlignmentError(f"{definition.metric_id}: all components absent for the run")

    results = []
    for day in sorted(all_dates):
        scaled = {}
        missing_components = []
        for name, index in indexes.items():
            if day in index:
                scaled[name] = normalize_to_millions(index[day])
            else:
                scaled[name] = 0.0
                missing_components.append(name)

        try:
            total = require_finite(sum(scaled.values()))
        except InvalidArithmeticError as e:
            logger.debug(f"Skipping {definition.metric_id} at {day}: {e}")
            continue

        results.append(MetricPoint(
            metric_id=definition.metric_id,
            date=day,
            value=total,
            metadata={
                'depends_on': definition.series_ids,
                'policy': definition.policy.value,
                'units': definition.units,
                'scale': DISPLAY_SCALE,
                'components': scaled,
                'missing_components': missing_components,
            },
        ))

    return results


def compute_base_ratio(
    base: Sequence[RawPoint],
    aggregate_points: Sequence[MetricPoint],
    *,
    metric_id: str = 'ratio.base_vs_base_ampliada'
) -> List[MetricPoint]:
    """
    Ratio of base money to a (strict) aggregate that contains it.

    Both sides are in display scale. Dates where the aggregate is <= 0 or
    base is missing are skipped.

    Args:
        base: Raw base-money points
        aggregate_points: Output of compute_aggregate for the aggregate

    Returns:
        Ratio MetricPoints in date order
    """
    base_index = index_by_date(base)
    results = []

    for point in sorted(aggregate_points, key=lambda p: p.date):
        if point.value <= 0 or point.date not in base_index:
            logger.debug(f"Skipping {metric_id} at {point.date}: missing base or non-positive aggregate")
            continue

        base_scaled = normalize_to_millions(base_index[point.date])
        results.append(MetricPoint(
            metric_id=metric_id,
            date=point.date,
            value=base_scaled / point.value,
            metadata={
                'depends_on': list(point.metadata.get('depends_on', [])),
                'units': 'ratio',
                'scale': DISPLAY_SCALE,
                'base': base_scaled,
                'aggregate': point.value,
                'aggregate_metric': point.metric_id,
            },
        ))

    return results
