"""
Run a forecasting routine and enforce the horizon contract.

Whatever the routine returns is normalized into a Forecast and checked:
exactly ``horizon`` points, first period = last training period + 1,
same frequency as the training series, every point finite.
"""

import logging
import time
from typing import Callable, Union

import numpy as np

from forecast_harness.errors import MisalignedSeriesError, NonConvergenceError
from forecast_harness.evaluation.partition import Partition
from forecast_harness.models.base import CallableModel, Forecast, ForecastModel, to_forecast
from forecast_harness.series.objects import TimeSeries

logger = logging.getLogger(__name__)

Routine = Union[ForecastModel, Callable[[TimeSeries, int], object]]


def as_model(routine: Routine) -> ForecastModel:
    if isinstance(routine, ForecastModel):
        return routine
    if callable(routine):
        return CallableModel(routine)
    raise TypeError(f"Not a forecasting routine: {routine!r}")


def run_forecast(routine: Routine, train: TimeSeries, horizon: int) -> Forecast:
    """
    Forecast ``horizon`` periods after ``train`` and verify alignment.

    Errors raised by the routine propagate unchanged; no fallback forecast
    is ever substituted.
    """
    model = as_model(routine)
    model.check_horizon(horizon)
    name = model.get_name()

    start_time = time.time()
    output = model.forecast(train, horizon)
    elapsed = time.time() - start_time

    forecast = to_forecast(output, train, horizon, name)

    if forecast.horizon != horizon:
        raise MisalignedSeriesError(
            "Forecast length differs from the requested horizon",
            model=name,
            horizon=horizon,
            got=forecast.horizon,
        )
    if forecast.mean.frequency != train.frequency or forecast.mean.start != train.next_period:
        raise MisalignedSeriesError(
            "Forecast must start one period after the training series",
            model=name,
            expected_start=train.next_period,
            got_start=forecast.mean.start,
        )
    n_non_finite = int((~np.isfinite(forecast.mean.values)).sum())
    if n_non_finite:
        raise NonConvergenceError(
            "Forecast contains non-finite points",
            model=name,
            n_non_finite=n_non_finite,
            horizon=horizon,
        )
    if forecast.fitted is not None and not forecast.fitted.is_aligned_with(train):
        raise MisalignedSeriesError("Fitted values must cover the training periods", model=name)

    logger.info(f"{name}: forecast {horizon} periods from n={len(train)} in {elapsed:.2f}s")
    return forecast


class ForecastRunner:
    """Bind a routine once, run it against many training series"""

    def __init__(self, routine: Routine):
        self.model = as_model(routine)

    def run(self, train: TimeSeries, horizon: int) -> Forecast:
        return run_forecast(self.model, train, horizon)

    def run_partition(self, split: Partition) -> Forecast:
        """Forecast the validation window of a partition"""
        return run_forecast(self.model, split.train, split.horizon)
