"""
Model registry: create forecasting routines by name.

Option fields passed as keyword arguments are gathered into the model's
typed options struct, so ``create("ets", trend="damped")`` and
``ExponentialSmoothingModel(ExponentialSmoothingOptions(trend="damped"))``
are equivalent.
"""

from dataclasses import fields
from typing import Dict, List, Type

from forecast_harness.errors import InvalidParameterError
from forecast_harness.models.arima import ArimaModel
from forecast_harness.models.base import ForecastModel
from forecast_harness.models.baselines import MovingAverageModel, NaiveModel, SeasonalNaiveModel
from forecast_harness.models.harmonic import HarmonicRegressionModel
from forecast_harness.models.regression import TrendSeasonalityModel
from forecast_harness.models.smoothing import ExponentialSmoothingModel


class ModelFactory:
    """Factory for creating model instances"""

    _models: Dict[str, Type[ForecastModel]] = {
        "naive": NaiveModel,
        "snaive": SeasonalNaiveModel,
        "moving_average": MovingAverageModel,
        "ets": ExponentialSmoothingModel,
        "arima": ArimaModel,
        "harmonic": HarmonicRegressionModel,
        "tslm": TrendSeasonalityModel,
    }

    @classmethod
    def create(cls, model_name: str, **kwargs) -> ForecastModel:
        """Create model by name"""
        if model_name not in cls._models:
            raise InvalidParameterError(
                "Unknown model", model=model_name, available=cls.list_models()
            )

        model_cls = cls._models[model_name]
        options_class = getattr(model_cls, "options_class", None)
        if options_class is not None and "options" not in kwargs:
            option_names = {f.name for f in fields(options_class)}
            option_kwargs = {k: kwargs.pop(k) for k in list(kwargs) if k in option_names}
            if option_kwargs:
                kwargs["options"] = options_class(**option_kwargs)

        try:
            return model_cls(**kwargs)
        except TypeError as e:
            raise InvalidParameterError(
                "Unsupported argument for model", model=model_name, error=str(e)
            ) from e

    @classmethod
    def list_models(cls) -> List[str]:
        """List available models"""
        return list(cls._models.keys())
