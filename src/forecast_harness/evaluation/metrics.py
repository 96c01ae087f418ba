"""
Accuracy metrics and the AccuracyEvaluator.

Errors are e_t = actual_t - forecast_t and:
- ME   = mean(e)
- MAE  = mean(|e|)
- MAPE = 100 * mean(|e / actual|)
- RMSE = sqrt(mean(e^2))
- MPE  = 100 * mean(e / actual)
- MASE = MAE / mean(|y_t - y_{t-m}|) over the training series

Every report is tagged with the mode that produced it: VALIDATION
(out-of-sample, against held-out actuals) or FITTED (in-sample goodness of
fit). The two are not interchangeable.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, Iterable, Optional, Tuple, Union

import numpy as np
import pandas as pd

from forecast_harness.errors import (DivisionByZeroError, InsufficientDataError,
                                     InvalidParameterError, MisalignedSeriesError)
from forecast_harness.models.base import Forecast
from forecast_harness.series.objects import TimeSeries

logger = logging.getLogger(__name__)

ZERO_POLICIES = ("raise", "nan")


class EvaluationMode(str, Enum):
    VALIDATION = "validation"
    FITTED = "fitted"


@dataclass(frozen=True)
class AccuracyReport:
    """Scalar accuracy metrics for one forecast / actual pair"""
    mode: EvaluationMode
    model_name: str
    n_obs: int
    me: float
    mae: float
    mape: float
    rmse: float
    mpe: float
    mase: Optional[float] = None

    METRIC_NAMES: ClassVar[Tuple[str, ...]] = ("ME", "MAE", "MAPE", "RMSE", "MPE", "MASE")

    @property
    def metrics(self) -> Dict[str, float]:
        values = {
            "ME": self.me,
            "MAE": self.mae,
            "MAPE": self.mape,
            "RMSE": self.rmse,
            "MPE": self.mpe,
        }
        if self.mase is not None:
            values["MASE"] = self.mase
        return values

    def __getitem__(self, name: str) -> float:
        metrics = self.metrics
        if name.upper() not in metrics:
            raise KeyError(name)
        return metrics[name.upper()]

    def as_dict(self) -> Dict:
        return {
            "model": self.model_name,
            "mode": self.mode.value,
            "n_obs": self.n_obs,
            **self.metrics,
        }


class ForecastMetrics:
    """Array-level metric formulas (inputs already masked and aligned)"""

    @staticmethod
    def me(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        return float(np.mean(y_true - y_pred))

    @staticmethod
    def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        return float(np.mean(np.abs(y_true - y_pred)))

    @staticmethod
    def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        return float(np.sqrt(np.mean((y_true - y_pred) ** 2)))

    @staticmethod
    def mape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        return float(100 * np.mean(np.abs((y_true - y_pred) / y_true)))

    @staticmethod
    def mpe(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        return float(100 * np.mean((y_true - y_pred) / y_true))

    @staticmethod
    def mase(
        y_true: np.ndarray,
        y_pred: np.ndarray,
        y_train: np.ndarray,
        season_length: int = 1,
    ) -> float:
        """
        Mean Absolute Scaled Error

        Scales error relative to in-sample seasonal naive forecasting.
        Returns NaN if the training series is too short or the scale is zero.
        """
        if len(y_train) <= season_length:
            return np.nan

        naive_errors = np.abs(y_train[season_length:] - y_train[:-season_length])
        naive_errors = naive_errors[np.isfinite(naive_errors)]
        if len(naive_errors) == 0:
            return np.nan
        scale = np.mean(naive_errors)
        if scale < 1e-10:
            return np.nan

        return float(np.mean(np.abs(y_true - y_pred)) / scale)

    @staticmethod
    def coverage(y_true: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> float:
        """
        Prediction Interval Coverage (%)

        Percentage of actual values within the interval; the denominator
        counts valid (finite) rows only.
        """
        valid_mask = np.isfinite(y_true) & np.isfinite(lower) & np.isfinite(upper)
        if valid_mask.sum() == 0:
            return np.nan

        covered = (y_true[valid_mask] >= lower[valid_mask]) & (y_true[valid_mask] <= upper[valid_mask])
        return float(100 * np.mean(covered))


def _point_series(forecast: Union[Forecast, TimeSeries]) -> Tuple[TimeSeries, str]:
    if isinstance(forecast, Forecast):
        return forecast.mean, forecast.model_name
    return forecast, "forecast"


def _require_aligned(predicted: TimeSeries, actual: TimeSeries, model_name: str) -> None:
    if not predicted.is_aligned_with(actual):
        raise MisalignedSeriesError(
            "Forecast and actual must have equal length and aligned periods",
            model=model_name,
            forecast_periods=(predicted.start, predicted.end),
            actual_periods=(actual.start, actual.end),
            forecast_frequency=predicted.frequency,
            actual_frequency=actual.frequency,
        )


class AccuracyEvaluator:
    """Compute AccuracyReports against held-out actuals or fitted values"""

    def __init__(self, zero_policy: str = "raise", season_length: Optional[int] = None):
        """
        Args:
            zero_policy: "raise" -> DivisionByZeroError when an actual is 0
                         and a percentage metric is requested; "nan" -> report
                         MAPE/MPE as NaN
            season_length: MASE seasonal lag (defaults to the series frequency)
        """
        if zero_policy not in ZERO_POLICIES:
            raise InvalidParameterError("Unknown zero_policy", zero_policy=zero_policy, choices=ZERO_POLICIES)
        self.zero_policy = zero_policy
        self.season_length = season_length

    def evaluate(
        self,
        forecast: Union[Forecast, TimeSeries],
        actual: TimeSeries,
        train: Optional[TimeSeries] = None,
    ) -> AccuracyReport:
        """
        Out-of-sample accuracy of ``forecast`` against ``actual``.

        ``train`` is only used to scale MASE.
        """
        predicted, model_name = _point_series(forecast)
        _require_aligned(predicted, actual, model_name)
        return self._report(
            actual.values, predicted.values, EvaluationMode.VALIDATION, model_name, train
        )

    def evaluate_fitted(self, forecast: Forecast, train: TimeSeries) -> AccuracyReport:
        """
        In-sample goodness of fit: fitted values against the training data.

        Burn-in periods where no fitted value exists (NaN) are skipped.
        """
        if forecast.fitted is None:
            raise InvalidParameterError(
                "Routine did not provide fitted values", model=forecast.model_name
            )
        _require_aligned(forecast.fitted, train, forecast.model_name)
        return self._report(
            train.values, forecast.fitted.values, EvaluationMode.FITTED, forecast.model_name, train
        )

    def interval_coverage(self, forecast: Forecast, actual: TimeSeries, level: int) -> float:
        """Percentage of actuals inside the ``level`` prediction interval"""
        _require_aligned(forecast.mean, actual, forecast.model_name)
        return ForecastMetrics.coverage(
            actual.values, forecast.lower(level).values, forecast.upper(level).values
        )

    def _report(
        self,
        y_true: np.ndarray,
        y_pred: np.ndarray,
        mode: EvaluationMode,
        model_name: str,
        train: Optional[TimeSeries],
    ) -> AccuracyReport:
        valid_mask = np.isfinite(y_true) & np.isfinite(y_pred)
        n_valid = int(valid_mask.sum())
        if n_valid == 0:
            raise InsufficientDataError(
                "No finite forecast/actual pairs to evaluate",
                model=model_name,
                mode=mode.value,
                n_obs=len(y_true),
            )
        if n_valid < len(y_true):
            logger.debug(f"{model_name}: {len(y_true) - n_valid} non-finite pairs excluded ({mode.value})")

        y_true = y_true[valid_mask]
        y_pred = y_pred[valid_mask]

        if np.any(y_true == 0):
            if self.zero_policy == "raise":
                raise DivisionByZeroError(
                    "Percentage error undefined for zero actuals",
                    model=model_name,
                    mode=mode.value,
                    n_zero=int((y_true == 0).sum()),
                )
            mape = mpe = np.nan
        else:
            mape = ForecastMetrics.mape(y_true, y_pred)
            mpe = ForecastMetrics.mpe(y_true, y_pred)

        mase = None
        if train is not None:
            season_length = self.season_length or train.frequency
            mase = ForecastMetrics.mase(y_true, y_pred, train.values, season_length=season_length)

        return AccuracyReport(
            mode=mode,
            model_name=model_name,
            n_obs=n_valid,
            me=ForecastMetrics.me(y_true, y_pred),
            mae=ForecastMetrics.mae(y_true, y_pred),
            mape=mape,
            rmse=ForecastMetrics.rmse(y_true, y_pred),
            mpe=mpe,
            mase=mase,
        )


def evaluate(
    forecast: Union[Forecast, TimeSeries],
    actual: TimeSeries,
    zero_policy: str = "raise",
) -> AccuracyReport:
    """Shorthand for AccuracyEvaluator(zero_policy).evaluate(forecast, actual)"""
    return AccuracyEvaluator(zero_policy=zero_policy).evaluate(forecast, actual)


def compare_reports(reports: Iterable[AccuracyReport]) -> pd.DataFrame:
    """One row per report, metrics as columns"""
    return pd.DataFrame([report.as_dict() for report in reports])
