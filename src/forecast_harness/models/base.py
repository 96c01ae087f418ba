"""
Forecast contract shared by every forecasting routine.

A routine is any ForecastModel whose ``forecast(train, horizon)`` returns a
Forecast: ``horizon`` point predictions starting one period after the end of
``train``, optional interval bounds per confidence level, and optional
in-sample fitted values.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from forecast_harness.errors import (InsufficientDataError, InvalidHorizonError,
                                     InvalidParameterError, MisalignedSeriesError)
from forecast_harness.series.objects import TimeSeries

logger = logging.getLogger(__name__)

DEFAULT_LEVELS: Tuple[int, ...] = (80, 95)


@dataclass(frozen=True)
class Forecast:
    """Point forecasts plus optional intervals and fitted values"""
    mean: TimeSeries
    model_name: str
    intervals: Dict[int, Tuple[TimeSeries, TimeSeries]] = field(default_factory=dict)
    fitted: Optional[TimeSeries] = None
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        for level, (lower, upper) in self.intervals.items():
            if not (lower.is_aligned_with(self.mean) and upper.is_aligned_with(self.mean)):
                raise MisalignedSeriesError(
                    "Interval bounds must be aligned with the point forecast",
                    model=self.model_name,
                    level=level,
                )

    @property
    def horizon(self) -> int:
        return len(self.mean)

    @property
    def levels(self) -> Tuple[int, ...]:
        return tuple(sorted(self.intervals))

    def lower(self, level: int) -> TimeSeries:
        return self._bounds(level)[0]

    def upper(self, level: int) -> TimeSeries:
        return self._bounds(level)[1]

    def _bounds(self, level: int) -> Tuple[TimeSeries, TimeSeries]:
        if level not in self.intervals:
            raise InvalidParameterError(
                "No interval at this level", model=self.model_name, level=level, available=self.levels
            )
        return self.intervals[level]

    def to_frame(self) -> pd.DataFrame:
        """Forecast table: period, mean, lo_<level>, hi_<level>"""
        frame = pd.DataFrame({"period": self.mean.index(), "mean": self.mean.values})
        for level in self.levels:
            lower, upper = self.intervals[level]
            frame[f"lo_{level}"] = lower.values
            frame[f"hi_{level}"] = upper.values
        return frame


def validate_levels(levels: Iterable[int]) -> Tuple[int, ...]:
    levels = tuple(int(level) for level in levels)
    for level in levels:
        if not 0 < level < 100:
            raise InvalidParameterError("Interval level must be in (0, 100)", level=level)
    return levels


def normal_intervals(
    mean: np.ndarray,
    se: np.ndarray,
    levels: Iterable[int],
) -> Dict[int, Tuple[np.ndarray, np.ndarray]]:
    """Gaussian intervals mean +/- z * se at each level"""
    bounds = {}
    for level in levels:
        z = stats.norm.ppf(0.5 + level / 200.0)
        bounds[level] = (mean - z * se, mean + z * se)
    return bounds


def build_forecast(
    train: TimeSeries,
    mean,
    model_name: str,
    intervals: Optional[Dict[int, Tuple[Any, Any]]] = None,
    fitted=None,
    params: Optional[Dict[str, Any]] = None,
) -> Forecast:
    """Attach period indices (train end + 1 onwards) to raw model output"""
    mean_ts = train.following(np.asarray(mean, dtype=float))
    interval_ts = {
        level: (train.following(np.asarray(lo, dtype=float)), train.following(np.asarray(hi, dtype=float)))
        for level, (lo, hi) in (intervals or {}).items()
    }
    fitted_ts = train.with_values(fitted) if fitted is not None else None
    return Forecast(
        mean=mean_ts,
        model_name=model_name,
        intervals=interval_ts,
        fitted=fitted_ts,
        params=dict(params or {}),
    )


def to_forecast(output, train: TimeSeries, horizon: int, model_name: str) -> Forecast:
    """
    Normalize whatever a routine returned into a Forecast.

    Accepts a Forecast, a TimeSeries, a pandas Series or any 1-D array-like
    of point forecasts. Raw arrays are placed right after ``train``.
    """
    if isinstance(output, Forecast):
        return output
    if isinstance(output, TimeSeries):
        return Forecast(mean=output, model_name=model_name)
    if isinstance(output, pd.Series) and isinstance(output.index, pd.PeriodIndex):
        return Forecast(mean=TimeSeries.from_pandas(output, frequency=train.frequency), model_name=model_name)

    values = np.asarray(output, dtype=float).ravel()
    if len(values) != horizon:
        raise MisalignedSeriesError(
            "Routine returned the wrong number of forecasts",
            model=model_name,
            horizon=horizon,
            got=len(values),
        )
    return build_forecast(train, values, model_name)


class ForecastModel(ABC):
    """Base class for forecasting routines"""

    name = "model"

    def __init__(self, levels: Iterable[int] = DEFAULT_LEVELS):
        self.levels = validate_levels(levels)

    @abstractmethod
    def forecast(self, train: TimeSeries, horizon: int) -> Forecast:
        """Forecast ``horizon`` periods past the end of ``train``"""

    def get_name(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.get_name()!r})"

    @staticmethod
    def check_horizon(horizon: int) -> None:
        if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)) or horizon < 1:
            raise InvalidHorizonError("Horizon must be a positive integer", horizon=horizon)

    def require_seasonal_history(self, train: TimeSeries, period: float) -> None:
        """Seasonal methods need at least two full cycles"""
        if len(train) < 2 * period:
            raise InsufficientDataError(
                f"{self.get_name()}: seasonal method needs at least two full cycles",
                n_train=len(train),
                period=period,
                required=int(np.ceil(2 * period)),
            )


class CallableModel(ForecastModel):
    """Wrap a plain function ``func(train, horizon)`` as a ForecastModel"""

    def __init__(self, func: Callable[[TimeSeries, int], Any], name: Optional[str] = None):
        super().__init__(levels=())
        self.func = func
        self.name = name or getattr(func, "__name__", "callable")

    def forecast(self, train: TimeSeries, horizon: int) -> Forecast:
        self.check_horizon(horizon)
        return to_forecast(self.func(train, horizon), train, horizon, self.get_name())
