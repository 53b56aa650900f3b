"""
Core data model shared by calculators, storage and the orchestrator.
"""

import json
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class RawPoint:
    """A single externally sourced observation of one series."""
    series_id: str
    date: date
    value: float


@dataclass
class MetricPoint:
    """A computed metric value with lineage metadata."""
    metric_id: str
    date: date
    value: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, date]:
        """Upsert key: (metric_id, date)."""
        return (self.metric_id, self.date)

    def metadata_json(self) -> str:
        """Serialize metadata deterministically (sorted keys, dates as ISO strings)."""
        return json.dumps(self.metadata, sort_keys=True, default=_json_default)

    def to_row(self) -> Dict[str, Any]:
        """Convert to a storage row dictionary."""
        return {
            'metric_id': self.metric_id,
            'date': self.date.isoformat(),
            'value': float(self.value),
            'metadata': self.metadata_json(),
        }


@dataclass
class AlignedSeriesSet:
    """
    Series reduced to the dates present in all of them.

    Invariant: every entry of ``values`` has ``len(dates)`` elements and index i
    refers to ``dates[i]`` across all of them.
    """
    dates: List[date]
    series_ids: List[str]
    values: List[List[float]]

    def __post_init__(self):
        if len(self.series_ids) != len(self.values):
            raise ValueError("series_ids and values must have same length")

        for series_id, column in zip(self.series_ids, self.values):
            if len(column) != len(self.dates):
                raise ValueError(
                    f"Series {series_id} has {len(column)} values for {len(self.dates)} dates"
                )

    def __len__(self) -> int:
        return len(self.dates)

    @property
    def is_empty(self) -> bool:
        return len(self.dates) == 0

    def column(self, series_id: str) -> List[float]:
        """Return the value list for a series id."""
        try:
            return self.values[self.series_ids.index(series_id)]
        except ValueError:
            raise KeyError(f"Series {series_id} not in aligned set")

    def row(self, index: int) -> Dict[str, float]:
        """Return {series_id: value} for one aligned date."""
        return {sid: column[index] for sid, column in zip(self.series_ids, self.values)}


def _json_default(obj: Any) -> Optional[str]:
    if isinstance(obj, date):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
