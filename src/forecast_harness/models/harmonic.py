"""
Dynamic harmonic regression: Fourier terms as regressors, ARIMA errors.

For a seasonal period s and K harmonics the predictors are
sin(2 pi k t / s) and cos(2 pi k t / s), k = 1..K, evaluated at the absolute
period ordinal t so that train and forecast periods share one phase.
"""

import logging
from functools import partial
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd

from forecast_harness.models.arima import arima_predictions, fit_arima, order_grid
from forecast_harness.models.base import (DEFAULT_LEVELS, Forecast, ForecastModel,
                                          build_forecast)
from forecast_harness.models.fitting import (Candidate, criterion_value, select_best)
from forecast_harness.models.options import HarmonicRegressionOptions
from forecast_harness.series.objects import TimeSeries

logger = logging.getLogger(__name__)


def fourier(periods: np.ndarray, fourier_terms: Dict[float, int]) -> pd.DataFrame:
    """
    Fourier predictors for the given period ordinals.

    Columns are named S<k>-<period> / C<k>-<period>. A sine column that is
    identically zero (k = period / 2) is dropped.
    """
    periods = np.asarray(periods, dtype=float)
    columns = {}
    for period, harmonics in sorted(fourier_terms.items()):
        label = f"{period:g}"
        for k in range(1, int(harmonics) + 1):
            angle = 2 * np.pi * k * periods / period
            if 2 * k != period:
                columns[f"S{k}-{label}"] = np.sin(angle)
            columns[f"C{k}-{label}"] = np.cos(angle)
    return pd.DataFrame(columns)


class HarmonicRegressionModel(ForecastModel):
    """Fourier-term regression with ARIMA errors"""

    name = "harmonic"
    options_class = HarmonicRegressionOptions

    def __init__(
        self,
        options: Optional[HarmonicRegressionOptions] = None,
        levels: Iterable[int] = DEFAULT_LEVELS,
    ):
        super().__init__(levels=levels)
        self.options = options or HarmonicRegressionOptions(fourier_terms={12: 2})

    def get_name(self) -> str:
        terms = ",".join(f"{p:g}:{k}" for p, k in sorted(self.options.fourier_terms.items()))
        return f"harmonic({terms})"

    def design(self, periods: np.ndarray, origin: int) -> np.ndarray:
        """Exogenous matrix: Fourier terms plus an optional linear trend"""
        frame = fourier(periods, self.options.fourier_terms)
        if self.options.include_trend:
            frame["trend"] = np.asarray(periods, dtype=float) - origin + 1
        return frame.to_numpy()

    def forecast(self, train: TimeSeries, horizon: int) -> Forecast:
        self.check_horizon(horizon)
        opts = self.options
        self.require_seasonal_history(train, opts.longest_period)

        y = np.array(train.values, dtype=float)
        exog = self.design(train.periods, train.start)
        future_periods = np.arange(train.next_period, train.next_period + horizon)
        exog_future = self.design(future_periods, train.start)

        if opts.auto_select:
            labels = order_grid(opts.arima_order, None, opts.max_p, opts.max_q)
        else:
            labels = [{"order": tuple(opts.arima_order), "seasonal_order": None}]

        candidates = [
            Candidate(label=label, fit=partial(
                fit_arima, y, label["order"], None, exog=exog,
                max_iterations=opts.max_iterations, model_name=self.get_name(),
            ))
            for label in labels
        ]

        if opts.auto_select:
            label, results, score = select_best(candidates, opts.information_criterion, self.get_name())
        else:
            label = candidates[0].label
            results = candidates[0].fit()
            score = criterion_value(results, opts.information_criterion)

        mean, intervals = arima_predictions(results, horizon, self.levels, exog=exog_future)
        params = {
            "fourier_terms": dict(opts.fourier_terms),
            "arima_order": label["order"],
            opts.information_criterion: score,
        }

        return build_forecast(
            train,
            mean,
            self.get_name(),
            intervals=intervals,
            fitted=np.asarray(results.fittedvalues, dtype=float),
            params=params,
        )
