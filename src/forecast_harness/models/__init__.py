"""
Models: the forecasting-routine contract and its implementations

- Baselines (naive, seasonal naive, moving average)
- Exponential smoothing family (ETS)
- ARIMA / seasonal ARIMA
- Harmonic (Fourier) regression with ARIMA errors
- Linear trend / seasonality regression
"""

from .arima import ArimaModel
from .base import (DEFAULT_LEVELS, CallableModel, Forecast, ForecastModel,
                   build_forecast, to_forecast)
from .baselines import MovingAverageModel, NaiveModel, SeasonalNaiveModel
from .factory import ModelFactory
from .harmonic import HarmonicRegressionModel, fourier
from .options import (ArimaOptions, ExponentialSmoothingOptions,
                      HarmonicRegressionOptions, TrendSeasonalityOptions)
from .regression import TrendSeasonalityModel
from .smoothing import ExponentialSmoothingModel

__all__ = [
    # Contract
    "Forecast",
    "ForecastModel",
    "CallableModel",
    "DEFAULT_LEVELS",
    "build_forecast",
    "to_forecast",
    # Options
    "ExponentialSmoothingOptions",
    "ArimaOptions",
    "HarmonicRegressionOptions",
    "TrendSeasonalityOptions",
    # Implementations
    "NaiveModel",
    "SeasonalNaiveModel",
    "MovingAverageModel",
    "ExponentialSmoothingModel",
    "ArimaModel",
    "HarmonicRegressionModel",
    "TrendSeasonalityModel",
    "fourier",
    "ModelFactory",
]
