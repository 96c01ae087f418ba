"""
ARIMA / seasonal ARIMA via statsmodels.

Parameters are estimated by maximum likelihood inside statsmodels. With
``auto_select`` the (p, q) and seasonal (P, Q) grid is searched with the
differencing orders held at the declared d and D.
"""

import logging
from functools import partial
from itertools import product
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
from statsmodels.tsa.arima.model import ARIMA

from forecast_harness.errors import InvalidParameterError
from forecast_harness.models.base import (DEFAULT_LEVELS, Forecast, ForecastModel,
                                          build_forecast)
from forecast_harness.models.fitting import (Candidate, criterion_value, fit_checked,
                                             select_best)
from forecast_harness.models.options import ArimaOptions
from forecast_harness.series.objects import TimeSeries

logger = logging.getLogger(__name__)


def fit_arima(
    y: np.ndarray,
    order: Tuple[int, int, int],
    seasonal_order: Optional[Tuple[int, int, int, int]] = None,
    exog: Optional[np.ndarray] = None,
    max_iterations: int = 500,
    model_name: str = "arima",
):
    """Fit one ARIMA specification, failing loud on non-convergence"""
    seasonal = tuple(seasonal_order) if seasonal_order else (0, 0, 0, 0)
    try:
        model = ARIMA(y, exog=exog, order=tuple(order), seasonal_order=seasonal)
    except ValueError as e:
        raise InvalidParameterError(
            "ARIMA specification rejected", order=order, seasonal_order=seasonal_order, error=str(e)
        ) from e

    def fit():
        try:
            return model.fit(method_kwargs={"maxiter": max_iterations})
        except ValueError as e:
            raise InvalidParameterError(
                "ARIMA estimation rejected the data", order=order, seasonal_order=seasonal_order, error=str(e)
            ) from e

    return fit_checked(
        fit, model_name, max_iterations, order=tuple(order), seasonal_order=seasonal_order, n_train=len(y)
    )


def arima_predictions(
    results,
    horizon: int,
    levels: Iterable[int],
    exog: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, Dict[int, Tuple[np.ndarray, np.ndarray]]]:
    """Point forecasts and interval bounds from fitted ARIMA results"""
    prediction = results.get_forecast(steps=horizon, exog=exog)
    mean = np.asarray(prediction.predicted_mean, dtype=float)

    intervals = {}
    for level in levels:
        bounds = np.asarray(prediction.conf_int(alpha=1 - level / 100.0), dtype=float)
        intervals[level] = (bounds[:, 0], bounds[:, 1])
    return mean, intervals


def order_grid(
    order: Tuple[int, int, int],
    seasonal_order: Optional[Tuple[int, int, int, int]],
    max_p: int,
    max_q: int,
    max_P: int = 0,
    max_Q: int = 0,
) -> List[Dict[str, tuple]]:
    """Enumerate (order, seasonal_order) candidates with d and D fixed"""
    d = order[1]
    labels = []
    for p, q in product(range(max_p + 1), range(max_q + 1)):
        if seasonal_order is None:
            labels.append({"order": (p, d, q), "seasonal_order": None})
            continue
        _, D, _, s = seasonal_order
        for P, Q in product(range(max_P + 1), range(max_Q + 1)):
            labels.append({"order": (p, d, q), "seasonal_order": (P, D, Q, s)})
    return labels


class ArimaModel(ForecastModel):
    """ARIMA(p,d,q)(P,D,Q)s forecaster"""

    name = "arima"
    options_class = ArimaOptions

    def __init__(self, options: Optional[ArimaOptions] = None, levels: Iterable[int] = DEFAULT_LEVELS):
        super().__init__(levels=levels)
        self.options = options or ArimaOptions()

    def get_name(self) -> str:
        if self.options.auto_select:
            return "arima(auto)"
        name = f"arima{tuple(self.options.order)}"
        if self.options.is_seasonal:
            name += f"{tuple(self.options.seasonal_order)}"
        return name

    def forecast(self, train: TimeSeries, horizon: int) -> Forecast:
        self.check_horizon(horizon)
        opts = self.options
        if opts.is_seasonal:
            self.require_seasonal_history(train, opts.seasonal_order[3])

        y = np.array(train.values, dtype=float)
        if opts.auto_select:
            labels = order_grid(opts.order, opts.seasonal_order, opts.max_p, opts.max_q, opts.max_P, opts.max_Q)
        else:
            labels = [{"order": tuple(opts.order), "seasonal_order": opts.seasonal_order}]

        candidates = [
            Candidate(label=label, fit=partial(
                fit_arima, y, label["order"], label["seasonal_order"],
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

        mean, intervals = arima_predictions(results, horizon, self.levels)
        params = dict(label)
        params[opts.information_criterion] = score

        return build_forecast(
            train,
            mean,
            self.get_name(),
            intervals=intervals,
            fitted=np.asarray(results.fittedvalues, dtype=float),
            params=params,
        )
