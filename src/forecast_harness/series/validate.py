"""
Validate period-indexed tabular input before it becomes a TimeSeries.

Hard gates for data quality:
- Uniqueness: no duplicate periods
- Contiguity: expected period range vs observed (missing periods)
- Monotonic: increasing periods
- Values: nulls, min/max bounds
"""

from dataclasses import dataclass
from typing import List

import pandas as pd

from forecast_harness.errors import MisalignedSeriesError


@dataclass
class ValidationResult:
    """Results of period index validation"""
    is_valid: bool
    n_rows: int
    n_duplicates: int
    n_missing_periods: int
    missing_periods: List[pd.Period]
    n_nulls: int
    value_min: float
    value_max: float
    is_monotonic: bool


def validate_period_index(
    df: pd.DataFrame,
    period_col: str = "period",
    value_col: str = "y",
) -> ValidationResult:
    """
    Validate a [period, value] frame for forecasting.

    Checks:
    1. No duplicate periods
    2. Expected contiguous period range vs observed (missing periods)
    3. Monotonic increasing periods (in file order)
    4. Value sanity (nulls, bounds)

    Args:
        df: DataFrame whose ``period_col`` holds pandas Periods
        period_col: Period column name
        value_col: Value column name

    Returns:
        ValidationResult with detailed findings
    """
    periods = pd.PeriodIndex(df[period_col])

    # Check 1: Duplicates
    n_duplicates = int(periods.duplicated(keep=False).sum())

    # Check 2: Missing periods
    expected_range = pd.period_range(start=periods.min(), end=periods.max(), freq=periods.freq)
    missing_periods = sorted(set(expected_range) - set(periods))
    n_missing_periods = len(missing_periods)

    # Check 3: Monotonic
    is_monotonic = bool(periods.is_monotonic_increasing)

    # Check 4: Value checks
    n_nulls = int(df[value_col].isna().sum())
    value_min = float(df[value_col].min())
    value_max = float(df[value_col].max())

    is_valid = (n_duplicates == 0) and (n_missing_periods == 0) and is_monotonic

    return ValidationResult(
        is_valid=is_valid,
        n_rows=len(df),
        n_duplicates=n_duplicates,
        n_missing_periods=n_missing_periods,
        missing_periods=missing_periods[:10],  # First 10 only
        n_nulls=n_nulls,
        value_min=value_min,
        value_max=value_max,
        is_monotonic=is_monotonic,
    )


def assert_valid(result: ValidationResult) -> None:
    """Raise MisalignedSeriesError if the period contract is violated"""
    if not result.is_valid:
        raise MisalignedSeriesError(
            "Invalid period index",
            duplicates=result.n_duplicates,
            missing_periods=result.n_missing_periods,
            monotonic=result.is_monotonic,
        )


def format_validation_report(result: ValidationResult) -> str:
    """One-line summary used in log messages and CLI output"""
    parts = [
        "PASS" if result.is_valid else "FAIL",
        f"rows={result.n_rows}",
        f"dupes={result.n_duplicates}",
        f"gaps={result.n_missing_periods}",
        f"nulls={result.n_nulls}",
        f"range=[{result.value_min:.2f}, {result.value_max:.2f}]",
    ]
    if not result.is_monotonic:
        parts.append("unsorted")
    if result.missing_periods:
        parts.append(f"first_gaps={[str(p) for p in result.missing_periods[:5]]}")
    return " ".join(parts)
