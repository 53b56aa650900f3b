"""
Gap between the market (MEP) dollar and the official rate.
"""

import logging
from typing import List, Sequence

from analysis.calculations.alignment import align_pair
from analysis.errors import AlignmentError
from analysis.metric_types import MetricPoint, RawPoint

logger = logging.getLogger(__name__)


def compute_fx_gap(
    market: Sequence[RawPoint],
    official: Sequence[RawPoint],
    *,
    metric_id: str = 'fx.brecha_mep'
) -> List[MetricPoint]:
    """
    Relative premium of the market rate over the official one.

    Formula: (market - official) / official, on shared dates only.

    Raises:
        AlignmentError: If either series is absent or they share no dates
    """
    if not market or not official:
        raise AlignmentError(f"{metric_id}: market or official series absent")

    aligned = align_pair(market, official)
    if aligned.is_empty:
        raise AlignmentError(f"{metric_id}: market and official series share no dates")

    market_col, official_col = aligned.values
    results = []

    for i, day in enumerate(aligned.dates):
        if official_col[i] <= 0:
            logger.debug(f"Skipping {metric_id} at {day}: non-positive official rate")
            continue

        results.append(MetricPoint(
            metric_id=metric_id,
            date=day,
            value=(market_col[i] - official_col[i]) / official_col[i],
            metadata={
                'depends_on': list(aligned.series_ids),
                'market': market_col[i],
                'official': official_col[i],
                'units': 'ratio',
            },
        ))

    return results
