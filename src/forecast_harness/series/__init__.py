"""
Series: immutable period-indexed TimeSeries and input preparation
"""

from .objects import TimeSeries, frequency_from_freqstr
from .prepare import normalize_periods, prepare_series
from .validate import (ValidationResult, assert_valid, format_validation_report,
                       validate_period_index)

__all__ = [
    "TimeSeries",
    "frequency_from_freqstr",
    "normalize_periods",
    "prepare_series",
    "ValidationResult",
    "assert_valid",
    "format_validation_report",
    "validate_period_index",
]
