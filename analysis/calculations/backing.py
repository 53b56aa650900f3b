"""
Backing ratio calculators.
Reserves relative to base money and remunerated liabilities, with FX conversion.
"""

import logging
from typing import List, Mapping, Sequence

from analysis.calculations.alignment import align_many
from analysis.calculations.statistics import safe_divide
from analysis.errors import AlignmentError, InvalidArithmeticError
from analysis.metric_types import MetricPoint, RawPoint

logger = logging.getLogger(__name__)


def _require_fx(fx_rate: float) -> float:
    if fx_rate <= 0:
        raise InvalidArithmeticError(f"FX rate must be positive, got {fx_rate}")
    return fx_rate


def compute_reserves_to_base(
    reserves: Sequence[RawPoint],
    base: Sequence[RawPoint],
    fx: Sequence[RawPoint],
    *,
    metric_id: str = 'ratio.reserves_to_base'
) -> List[MetricPoint]:
    """
    Reserves (foreign currency) over base money converted at the official rate.

    Formula: reserves / (base / fx)

    Args:
        reserves: Reserves in foreign currency
        base: Base money in local currency
        fx: Official local-per-foreign rate

    Returns:
        MetricPoints on dates present in all three series

    Raises:
        AlignmentError: If the three series share no dates
    """
    series_ids = [_sid(reserves, 'reserves'), _sid(base, 'base'), _sid(fx, 'fx')]
    aligned = align_many([reserves, base, fx], series_ids=series_ids)
    if aligned.is_empty:
        raise AlignmentError(f"{metric_id}: reserves, base and fx share no dates")

    reserves_col, base_col, fx_col = aligned.values
    results = []

    for i, day in enumerate(aligned.dates):
        try:
            fx_rate = _require_fx(fx_col[i])
            base_foreign = safe_divide(base_col[i], fx_rate)
            ratio = safe_divide(reserves_col[i], base_foreign)
        except InvalidArithmeticError as e:
            logger.debug(f"Skipping {metric_id} at {day}: {e}")
            continue

        results.append(MetricPoint(
            metric_id=metric_id,
            date=day,
            value=ratio,
            metadata={
                'depends_on': series_ids,
                'reserves_usd': reserves_col[i],
                'base_ars': base_col[i],
                'fx_rate': fx_rate,
                'base_in_usd': base_foreign,
                'units': 'ratio',
            },
        ))

    return results


def compute_liabilities_vs_reserves(
    reserves: Sequence[RawPoint],
    fx: Sequence[RawPoint],
    liabilities: Mapping[str, Sequence[RawPoint]],
    *,
    metric_id: str = 'ratio.passives_vs_reserves'
) -> List[MetricPoint]:
    """
    Remunerated liabilities over reserves converted to local currency.

    Formula: sum(liabilities) / (reserves * fx)

    Args:
        reserves: Reserves in foreign currency
        fx: Official local-per-foreign rate
        liabilities: Component name -> raw points (local currency)

    Returns:
        MetricPoints on dates present in reserves, fx and every liability

    Raises:
        AlignmentError: If a liability component is absent or nothing aligns
    """
    missing = [name for name, points in liabilities.items() if not points]
    if not liabilities or missing:
        raise AlignmentError(f"{metric_id}: liability components absent: {missing}")

    names = list(liabilities.keys())
    series_ids = [_sid(reserves, 'reserves'), _sid(fx, 'fx')]
    series_ids += [_sid(liabilities[name], name) for name in names]

    aligned = align_many(
        [reserves, fx] + [liabilities[name] for name in names],
        series_ids=series_ids,
    )
    if aligned.is_empty:
        raise AlignmentError(f"{metric_id}: reserves, fx and liabilities share no dates")

    reserves_col, fx_col = aligned.values[0], aligned.values[1]
    liability_cols = aligned.values[2:]
    results = []

    for i, day in enumerate(aligned.dates):
        components = {name: col[i] for name, col in zip(names, liability_cols)}
        total_liabilities = sum(components.values())
        try:
            fx_rate = _require_fx(fx_col[i])
            reserves_local = reserves_col[i] * fx_rate
            ratio = safe_divide(total_liabilities, reserves_local)
        except InvalidArithmeticError as e:
            logger.debug(f"Skipping {metric_id} at {day}: {e}")
            continue

        results.append(MetricPoint(
            metric_id=metric_id,
            date=day,
            value=ratio,
            metadata={
                'depends_on': series_ids,
                'reserves_usd': reserves_col[i],
                'fx_rate': fx_rate,
                'reserves_ars': reserves_local,
                'total_liabilities': total_liabilities,
                'components': components,
                'units': 'ratio',
            },
        ))

    return results


def _sid(points: Sequence[RawPoint], fallback: str) -> str:
    return points[0].series_id if points else fallback
