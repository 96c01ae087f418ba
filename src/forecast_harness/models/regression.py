"""
Linear trend / seasonality regression (statsmodels OLS).

Predictor roles are declared in TrendSeasonalityOptions and assembled into
an explicit design matrix:
- intercept
- trend: t, t and t^2, or t on log(y) for an exponential trend
- seasonal dummies for every cycle position except the reference (0)
- exogenous regressors, looked up by period so they cannot drift out of
  alignment with the response
"""

import logging
from typing import Iterable, List, Optional, Tuple

import numpy as np
import statsmodels.api as sm

from forecast_harness.errors import InvalidParameterError, MisalignedSeriesError
from forecast_harness.models.base import (DEFAULT_LEVELS, Forecast, ForecastModel,
                                          build_forecast)
from forecast_harness.models.options import TrendSeasonalityOptions
from forecast_harness.series.objects import TimeSeries

logger = logging.getLogger(__name__)


class TrendSeasonalityModel(ForecastModel):
    """Regression of y on time, season and optional regressors"""

    name = "tslm"
    options_class = TrendSeasonalityOptions

    def __init__(
        self,
        options: Optional[TrendSeasonalityOptions] = None,
        levels: Iterable[int] = DEFAULT_LEVELS,
    ):
        super().__init__(levels=levels)
        self.options = options or TrendSeasonalityOptions()

    def get_name(self) -> str:
        parts = [self.options.trend]
        if self.options.seasonal_dummies:
            parts.append("season")
        parts.extend(sorted(self.options.exogenous))
        return f"tslm({'+'.join(parts)})"

    def design(self, periods: np.ndarray, origin: int, frequency: int) -> Tuple[np.ndarray, List[str]]:
        """Design matrix for the given periods; time counts from 1 at ``origin``"""
        opts = self.options
        columns = [np.ones(len(periods))]
        names = ["const"]

        t = np.asarray(periods, dtype=float) - origin + 1
        if opts.trend in ("linear", "exponential", "quadratic"):
            columns.append(t)
            names.append("trend")
        if opts.trend == "quadratic":
            columns.append(t ** 2)
            names.append("trend^2")

        if opts.seasonal_dummies:
            positions = np.mod(periods, frequency)
            for position in range(1, frequency):
                columns.append((positions == position).astype(float))
                names.append(f"season{position + 1}")

        for name in sorted(opts.exogenous):
            regressor = opts.exogenous[name]
            if regressor.frequency != frequency:
                raise MisalignedSeriesError(
                    "Exogenous regressor frequency differs from the response",
                    regressor=name,
                    expected=frequency,
                    got=regressor.frequency,
                )
            columns.append(regressor.between(int(periods[0]), int(periods[-1])).values)
            names.append(name)

        return np.column_stack(columns), names

    def forecast(self, train: TimeSeries, horizon: int) -> Forecast:
        self.check_horizon(horizon)
        opts = self.options
        m = train.frequency

        if opts.seasonal_dummies:
            if m < 2:
                raise InvalidParameterError("Seasonal dummies need frequency >= 2", frequency=m)
            self.require_seasonal_history(train, m)

        response = train.log() if opts.trend == "exponential" else train
        y = np.array(response.values, dtype=float)

        X, names = self.design(train.periods, train.start, m)
        if X.shape[1] >= len(y):
            raise InvalidParameterError(
                "More predictors than observations", n_train=len(y), n_predictors=X.shape[1]
            )
        future = np.arange(train.next_period, train.next_period + horizon)
        X_future, _ = self.design(future, train.start, m)

        results = sm.OLS(y, X).fit()
        logger.debug(f"{self.get_name()}: R^2={results.rsquared:.4f}")

        prediction = results.get_prediction(X_future)
        mean = np.asarray(prediction.predicted_mean, dtype=float)
        intervals = {}
        for level in self.levels:
            frame = prediction.summary_frame(alpha=1 - level / 100.0)
            intervals[level] = (frame["obs_ci_lower"].to_numpy(), frame["obs_ci_upper"].to_numpy())
        fitted = np.asarray(results.fittedvalues, dtype=float)

        if opts.trend == "exponential":
            mean = np.exp(mean)
            intervals = {level: (np.exp(lo), np.exp(hi)) for level, (lo, hi) in intervals.items()}
            fitted = np.exp(fitted)

        params = {
            "coefficients": dict(zip(names, np.asarray(results.params, dtype=float).tolist())),
            "aic": float(results.aic),
            "adj_r2": float(results.rsquared_adj),
        }
        return build_forecast(
            train, mean, self.get_name(), intervals=intervals, fitted=fitted, params=params
        )
