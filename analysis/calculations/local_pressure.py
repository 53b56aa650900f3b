"""
Local FX pressure.

Compares the move of a target exchange rate over a window against the average
move of a basket of regional currencies. A positive value means the target
depreciated more than the basket.
"""

import logging
from typing import List, Mapping, Sequence

from analysis.calculations.alignment import align_many
from analysis.calculations.statistics import mean
from analysis.errors import AlignmentError
from analysis.metric_types import MetricPoint, RawPoint

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 30
MIN_BASKET_MEMBERS = 2


def compute_local_pressure(
    target: Sequence[RawPoint],
    basket: Mapping[str, Sequence[RawPoint]],
    *,
    window: int = DEFAULT_WINDOW,
    currency: str = 'usd'
) -> List[MetricPoint]:
    """
    Target normalization minus mean basket normalization.

    All series are aligned N-way first, so the window counts aligned
    observations. For index i >= window-1 the reference index is
    i-(window-1) and normalization is value[i]/value[ref] - 1.

    Args:
        target: Target FX series (local per USD)
        basket: Basket member name -> FX series
        window: Aligned observations per window
        currency: Suffix for the metric id

    Returns:
        MetricPoints in date order

    Raises:
        AlignmentError: Fewer than two basket members have data, or the
            aligned history is shorter than the window
    """
    metric_id = f"fx.local_pressure_{window}d.{currency}"

    if window < 2:
        raise ValueError(f"window must be >= 2, got {window}")

    members = [name for name, points in basket.items() if points]
    if len(members) < MIN_BASKET_MEMBERS:
        raise AlignmentError(
            f"{metric_id}: need {MIN_BASKET_MEMBERS} basket members with data, have {len(members)}"
        )
    if not target:
        raise AlignmentError(f"{metric_id}: target series absent")

    target_id = target[0].series_id
    aligned = align_many(
        [target] + [basket[name] for name in members],
        series_ids=[target_id] + members,
    )
    if len(aligned) < window:
        raise AlignmentError(
            f"{metric_id}: {len(aligned)} aligned observations, need {window}"
        )

    target_col = aligned.values[0]
    member_cols = dict(zip(members, aligned.values[1:]))
    depends_on = [target_id] + [basket[name][0].series_id for name in members]
    results = []

    for i in range(window - 1, len(aligned)):
        ref = i - (window - 1)
        day = aligned.dates[i]

        if target_col[ref] == 0:
            logger.debug(f"Skipping {metric_id} at {day}: target reference is zero")
            continue

        target_norm = target_col[i] / target_col[ref] - 1

        member_norms = {}
        for name, col in member_cols.items():
            if col[ref] == 0:
                continue
            member_norms[name] = col[i] / col[ref] - 1

        if not member_norms:
            logger.debug(f"Skipping {metric_id} at {day}: no usable basket member")
            continue

        basket_norm = mean(list(member_norms.values()))

        results.append(MetricPoint(
            metric_id=metric_id,
            date=day,
            value=target_norm - basket_norm,
            metadata={
                'depends_on': depends_on,
                'window': f"{window}d",
                'reference_date': aligned.dates[ref].isoformat(),
                'target_normalization': target_norm,
                'basket_normalization': basket_norm,
                'basket_members': sorted(member_norms),
            },
        ))

    return results
