"""
forecast-harness - hold-out and rolling-origin evaluation for classical forecasting

Modules:
- series: immutable period-indexed TimeSeries and input validation
- models: forecasting-routine contract, baselines, ETS, ARIMA, harmonic and
  trend/seasonality regression
- evaluation: partitioning, horizon contract, accuracy metrics, backtesting,
  model comparison
- pipeline: configuration, tasks and Typer CLI
- errors: failure taxonomy
"""

from .errors import (DivisionByZeroError, ForecastHarnessError, InsufficientDataError,
                     InvalidHorizonError, InvalidParameterError, MisalignedSeriesError,
                     NonConvergenceError)
from .evaluation import (AccuracyEvaluator, AccuracyReport, EvaluationMode, ForecastRunner,
                         Partition, SeriesPartitioner, partition, run_forecast)
from .models import Forecast, ForecastModel, ModelFactory, NaiveModel, SeasonalNaiveModel
from .series import TimeSeries

__version__ = "0.1.0"

__all__ = [
    "TimeSeries",
    "Partition",
    "SeriesPartitioner",
    "partition",
    "Forecast",
    "ForecastModel",
    "ForecastRunner",
    "run_forecast",
    "ModelFactory",
    "NaiveModel",
    "SeasonalNaiveModel",
    "AccuracyEvaluator",
    "AccuracyReport",
    "EvaluationMode",
    "ForecastHarnessError",
    "InvalidHorizonError",
    "InsufficientDataError",
    "InvalidParameterError",
    "MisalignedSeriesError",
    "NonConvergenceError",
    "DivisionByZeroError",
]
