"""
Display-scale normalization for monetary magnitudes.

Values above one million are assumed to be raw currency units and divided by
1,000,000; anything smaller is assumed to be in millions already. This sniffs
magnitude instead of reading a unit tag, so a legitimately small raw value
would be misclassified. Kept for compatibility with stored metrics.
"""

MILLION = 1_000_000
DISPLAY_SCALE = 'million'


def normalize_to_millions(value: float) -> float:
    """Express a monetary value in millions using the magnitude heuristic."""
    if value > MILLION:
        return value / MILLION
    return value
