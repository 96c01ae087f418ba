"""
Exponential smoothing family (ETS) on top of statsmodels ETSModel.

Covers simple exponential smoothing, Holt's (damped) trend and Holt-Winters
seasonality. With ``auto_select`` every admissible (trend, seasonal) pair is
fitted and the one minimizing the information criterion wins.
"""

import logging
from functools import partial
from typing import Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import special, stats
from statsmodels.tsa.exponential_smoothing.ets import ETSModel

from forecast_harness.errors import InvalidParameterError
from forecast_harness.models.base import (DEFAULT_LEVELS, Forecast, ForecastModel,
                                          build_forecast)
from forecast_harness.models.fitting import (Candidate, criterion_value, fit_checked,
                                             select_best)
from forecast_harness.models.options import ExponentialSmoothingOptions
from forecast_harness.series.objects import TimeSeries

logger = logging.getLogger(__name__)

TREND_SPEC = {"none": (None, False), "additive": ("add", False), "damped": ("add", True)}
SEASONAL_SPEC = {"none": None, "additive": "add", "multiplicative": "mul"}


class ExponentialSmoothingModel(ForecastModel):
    """ETS wrapper with optional Box-Cox transform and grid selection"""

    name = "ets"
    options_class = ExponentialSmoothingOptions

    def __init__(
        self,
        options: Optional[ExponentialSmoothingOptions] = None,
        levels: Iterable[int] = DEFAULT_LEVELS,
        seed: int = 0,
    ):
        super().__init__(levels=levels)
        self.options = options or ExponentialSmoothingOptions()
        self.seed = seed

    def get_name(self) -> str:
        if self.options.auto_select:
            return "ets(auto)"
        return f"ets({self.options.trend},{self.options.seasonal})"

    def forecast(self, train: TimeSeries, horizon: int) -> Forecast:
        self.check_horizon(horizon)
        opts = self.options
        period = opts.seasonal_period or train.frequency

        y, lam = self._transform(train)
        candidates = [
            Candidate(label={"trend": trend, "seasonal": seasonal},
                      fit=partial(self._fit, y, trend, seasonal, period))
            for trend, seasonal in self._grid(train, y, period)
        ]

        if opts.auto_select:
            label, results, score = select_best(candidates, opts.information_criterion, self.get_name())
        else:
            label = candidates[0].label
            results = candidates[0].fit()
            score = criterion_value(results, opts.information_criterion)

        n = len(y)
        pred = results.get_prediction(start=n, end=n + horizon - 1, random_state=self.seed)
        mean = np.asarray(pred.predicted_mean, dtype=float)

        intervals = {}
        for level in self.levels:
            frame = pred.summary_frame(alpha=1 - level / 100.0)
            intervals[level] = (frame["pi_lower"].to_numpy(), frame["pi_upper"].to_numpy())
        fitted = np.asarray(results.fittedvalues, dtype=float)

        if lam is not None:
            mean = special.inv_boxcox(mean, lam)
            intervals = {
                level: (special.inv_boxcox(lo, lam), special.inv_boxcox(hi, lam))
                for level, (lo, hi) in intervals.items()
            }
            fitted = special.inv_boxcox(fitted, lam)

        params = dict(label)
        params[opts.information_criterion] = score
        params["smoothing_level"] = float(results.smoothing_level)
        if label["seasonal"] != "none":
            params["seasonal_period"] = period
        if lam is not None:
            params["boxcox_lambda"] = float(lam)

        return build_forecast(
            train, mean, self.get_name(), intervals=intervals, fitted=fitted, params=params
        )

    def _transform(self, train: TimeSeries) -> Tuple[np.ndarray, Optional[float]]:
        y = np.array(train.values, dtype=float)
        if not self.options.use_boxcox:
            return y, None
        if np.any(y <= 0):
            raise InvalidParameterError("Box-Cox transform requires strictly positive data", model=self.get_name())
        if self.options.boxcox_lambda is None:
            transformed, lam = stats.boxcox(y)
            logger.debug(f"{self.get_name()}: estimated Box-Cox lambda={lam:.4f}")
            return transformed, float(lam)
        return stats.boxcox(y, lmbda=self.options.boxcox_lambda), self.options.boxcox_lambda

    def _grid(self, train: TimeSeries, y: np.ndarray, period: int) -> List[Tuple[str, str]]:
        opts = self.options

        if not opts.auto_select:
            if opts.seasonal != "none":
                if period < 2:
                    raise InvalidParameterError(
                        "Seasonal ETS needs a seasonal period >= 2", seasonal_period=period
                    )
                self.require_seasonal_history(train, period)
            return [(opts.trend, opts.seasonal)]

        seasonals = ["none"]
        if period >= 2 and len(train) >= 2 * period:
            seasonals.append("additive")
            if np.all(y > 0):
                seasonals.append("multiplicative")
        else:
            logger.info(
                f"{self.get_name()}: seasonal candidates skipped (n={len(train)}, period={period})"
            )
        return [(trend, seasonal) for seasonal in seasonals for trend in TREND_SPEC]

    def _fit(self, y: np.ndarray, trend: str, seasonal: str, period: int):
        opts = self.options
        trend_kind, damped = TREND_SPEC[trend]
        seasonal_kind = SEASONAL_SPEC[seasonal]
        error = "mul" if seasonal_kind == "mul" else "add"

        try:
            # ETSResults.get_prediction needs an indexed endog; a bare array breaks it
            endog = pd.Series(y, index=pd.RangeIndex(len(y)))
            model = ETSModel(
                endog,
                error=error,
                trend=trend_kind,
                damped_trend=damped,
                seasonal=seasonal_kind,
                seasonal_periods=period if seasonal_kind else None,
            )
        except ValueError as e:
            raise InvalidParameterError(
                "ETS specification rejected for this data", trend=trend, seasonal=seasonal, error=str(e)
            ) from e

        def fit():
            if opts.smoothing_level == "auto":
                return model.fit(maxiter=opts.max_iterations, disp=False)
            with model.fix_params({"smoothing_level": opts.smoothing_level}):
                return model.fit(maxiter=opts.max_iterations, disp=False)

        return fit_checked(
            fit, self.get_name(), opts.max_iterations, trend=trend, seasonal=seasonal, n_train=len(y)
        )
