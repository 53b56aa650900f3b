"""
Error taxonomy for metric computation.

Each class maps to one handling decision:
- MissingDataError / InvalidArithmeticError: skip one (metric, date) output
- AlignmentError: skip the whole calculator for the run
"""


class MetricComputationError(Exception):
    """Base class for classified calculator failures."""
    pass


class MissingDataError(MetricComputationError):
    """Raised when a required raw point is absent for a given date."""
    pass


class InvalidArithmeticError(MetricComputationError):
    """Raised on division by zero or a non-finite intermediate result."""
    pass


class AlignmentError(MetricComputationError):
    """Raised when inputs cannot be aligned or required series are absent."""
    pass
