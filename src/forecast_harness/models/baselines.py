"""
Baseline forecasters.

Reference floors every other method has to beat:
1. Naive (last observation carried forward)
2. Seasonal naive (repeat the most recent full cycle)
3. Moving average (mean of the last ``window`` observations)
"""

import logging
from typing import Iterable, Optional

import numpy as np

from forecast_harness.errors import InsufficientDataError, InvalidParameterError
from forecast_harness.models.base import (DEFAULT_LEVELS, Forecast, ForecastModel,
                                          build_forecast, normal_intervals)
from forecast_harness.series.objects import TimeSeries

logger = logging.getLogger(__name__)


def _residual_scale(residuals: np.ndarray) -> float:
    """Root mean square of finite residuals (NaN if none)"""
    finite = residuals[np.isfinite(residuals)]
    if len(finite) == 0:
        return np.nan
    return float(np.sqrt(np.mean(finite ** 2)))


class NaiveModel(ForecastModel):
    """Every forecast equals the last observed value"""

    name = "naive"

    def forecast(self, train: TimeSeries, horizon: int) -> Forecast:
        self.check_horizon(horizon)
        y = train.values

        mean = np.full(horizon, y[-1])
        fitted = np.concatenate([[np.nan], y[:-1]])

        intervals = {}
        sigma = _residual_scale(np.diff(y))
        if np.isfinite(sigma):
            se = sigma * np.sqrt(np.arange(1, horizon + 1))
            intervals = normal_intervals(mean, se, self.levels)

        return build_forecast(train, mean, self.get_name(), intervals=intervals, fitted=fitted)


class SeasonalNaiveModel(ForecastModel):
    """Repeat the most recent full seasonal cycle"""

    name = "snaive"

    def __init__(self, frequency: Optional[int] = None, levels: Iterable[int] = DEFAULT_LEVELS):
        super().__init__(levels=levels)
        if frequency is not None and frequency < 1:
            raise InvalidParameterError("frequency must be >= 1", frequency=frequency)
        self.frequency = frequency

    def forecast(self, train: TimeSeries, horizon: int) -> Forecast:
        self.check_horizon(horizon)
        m = self.frequency or train.frequency
        n = len(train)
        y = train.values

        if n < m:
            raise InsufficientDataError(
                "Seasonal naive needs at least one full cycle",
                n_train=n,
                frequency=m,
            )

        steps = np.arange(horizon)
        mean = y[n - m + (steps % m)]
        fitted = np.concatenate([np.full(m, np.nan), y[:-m]]) if n > m else np.full(n, np.nan)

        intervals = {}
        sigma = _residual_scale(y[m:] - y[:-m]) if n > m else np.nan
        if np.isfinite(sigma):
            se = sigma * np.sqrt(np.floor(steps / m) + 1)
            intervals = normal_intervals(mean, se, self.levels)

        return build_forecast(
            train, mean, self.get_name(), intervals=intervals, fitted=fitted, params={"frequency": m}
        )


class MovingAverageModel(ForecastModel):
    """Flat forecast at the mean of the trailing window"""

    name = "moving_average"

    def __init__(self, window: int = 3, levels: Iterable[int] = DEFAULT_LEVELS):
        super().__init__(levels=levels)
        if window < 1:
            raise InvalidParameterError("window must be >= 1", window=window)
        self.window = window

    def get_name(self) -> str:
        return f"moving_average({self.window})"

    def forecast(self, train: TimeSeries, horizon: int) -> Forecast:
        self.check_horizon(horizon)
        n = len(train)
        if n < self.window:
            raise InsufficientDataError(
                "Moving average needs at least `window` observations",
                n_train=n,
                window=self.window,
            )

        mean = np.full(horizon, float(np.mean(train.values[-self.window:])))

        # fitted[t] = mean of the `window` observations before t
        fitted = np.full(n, np.nan)
        if n > self.window:
            trailing = train.moving_average(self.window).values
            fitted[self.window:] = trailing[:-1]

        return build_forecast(
            train, mean, self.get_name(), fitted=fitted, params={"window": self.window}
        )
