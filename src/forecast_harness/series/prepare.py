"""
Prepare tabular input for forecasting.

Standardize a loaded frame into a TimeSeries:
- period: parsed with errors="raise" and converted to pandas Periods
- value: numeric with errors="raise" (no silent coercion to NaN)
- integrity: duplicates, gaps and ordering checked before construction
"""

import logging
from typing import Optional

import pandas as pd

from forecast_harness.errors import InvalidParameterError
from forecast_harness.series.objects import TimeSeries
from forecast_harness.series.validate import (assert_valid, format_validation_report,
                                             validate_period_index)

logger = logging.getLogger(__name__)


def normalize_periods(
    df: pd.DataFrame,
    period_col: str = "period",
    value_col: str = "y",
    freq: str = "M",
) -> pd.DataFrame:
    """
    Normalize a raw [period, value] frame.

    Steps:
    1. Parse period to pandas Period at ``freq``
    2. Convert value to numeric (raise on junk)
    3. Standardize column names to [period, y]

    The frame is NOT re-sorted: ordering problems are reported by validation.
    """
    missing = [col for col in (period_col, value_col) if col not in df.columns]
    if missing:
        raise InvalidParameterError("Missing required columns", missing=missing, columns=list(df.columns))

    raw = df[period_col]
    if isinstance(raw.dtype, pd.PeriodDtype):
        periods = raw.dt.asfreq(freq)
    else:
        periods = pd.to_datetime(raw, errors="raise").dt.to_period(freq)

    normalized = pd.DataFrame({
        "period": periods.array,
        "y": pd.to_numeric(df[value_col], errors="raise").to_numpy(dtype=float),
    })

    logger.info(
        f"Normalized: {len(normalized)} rows, {normalized['period'].min()} to {normalized['period'].max()}"
    )
    return normalized


def prepare_series(
    df: pd.DataFrame,
    period_col: str = "period",
    value_col: str = "y",
    freq: str = "M",
    frequency: Optional[int] = None,
    allow_nulls: bool = False,
) -> TimeSeries:
    """
    Turn a loaded frame into a validated TimeSeries.

    Args:
        df: Frame produced by any tabular loader
        period_col: Column holding dates or periods
        value_col: Column holding the observations
        freq: pandas period alias ("M", "Q", "D", ...)
        frequency: Periods per seasonal cycle (derived from freq if None)
        allow_nulls: Accept missing values instead of failing

    Returns:
        TimeSeries indexed by pandas Period ordinals
    """
    normalized = normalize_periods(df, period_col=period_col, value_col=value_col, freq=freq)

    result = validate_period_index(normalized, period_col="period", value_col="y")
    logger.info(f"[validate] {format_validation_report(result)}")
    assert_valid(result)

    if result.n_nulls and not allow_nulls:
        raise InvalidParameterError(
            "Missing values found; pass allow_nulls=True to keep them",
            n_nulls=result.n_nulls,
        )

    series = pd.Series(normalized["y"].to_numpy(), index=pd.PeriodIndex(normalized["period"]))
    ts = TimeSeries.from_pandas(series, frequency=frequency)
    logger.info(f"Prepared {ts!r}")
    return ts
