"""
Typed option structs, one per method family.

Options are validated on construction so a bad configuration fails before
any data is touched.
"""

from dataclasses import dataclass, field
from math import floor
from typing import Dict, Optional, Tuple, Union

from forecast_harness.errors import InvalidParameterError
from forecast_harness.series.objects import TimeSeries

CRITERIA = ("aic", "aicc", "bic")


def _check_choice(name: str, value, choices) -> None:
    if value not in choices:
        raise InvalidParameterError(f"Unknown {name}", value=value, choices=choices)


def _check_order(name: str, order: Tuple[int, ...], size: int) -> None:
    if len(order) != size or any(int(v) != v or v < 0 for v in order):
        raise InvalidParameterError(
            f"{name} must be {size} non-negative integers", **{name: order}
        )


@dataclass(frozen=True)
class ExponentialSmoothingOptions:
    smoothing_level: Union[float, str] = "auto"
    trend: str = "none"
    seasonal: str = "none"
    seasonal_period: Optional[int] = None  # defaults to the series frequency
    auto_select: bool = False
    information_criterion: str = "aicc"
    use_boxcox: bool = False
    boxcox_lambda: Optional[float] = None  # estimated when None
    max_iterations: int = 1000

    def __post_init__(self):
        if self.smoothing_level != "auto":
            if isinstance(self.smoothing_level, str) or not 0 < self.smoothing_level < 1:
                raise InvalidParameterError(
                    "smoothing_level must be a float in (0, 1) or 'auto'",
                    smoothing_level=self.smoothing_level,
                )
        _check_choice("trend", self.trend, ("none", "additive", "damped"))
        _check_choice("seasonal", self.seasonal, ("none", "additive", "multiplicative"))
        _check_choice("information_criterion", self.information_criterion, CRITERIA)
        if self.seasonal_period is not None and self.seasonal_period < 2:
            raise InvalidParameterError("seasonal_period must be >= 2", seasonal_period=self.seasonal_period)
        if self.max_iterations < 1:
            raise InvalidParameterError("max_iterations must be >= 1", max_iterations=self.max_iterations)


@dataclass(frozen=True)
class ArimaOptions:
    order: Tuple[int, int, int] = (1, 0, 0)
    seasonal_order: Optional[Tuple[int, int, int, int]] = None
    auto_select: bool = False
    max_p: int = 2
    max_q: int = 2
    max_P: int = 1
    max_Q: int = 1
    information_criterion: str = "aicc"
    max_iterations: int = 500

    def __post_init__(self):
        _check_order("order", tuple(self.order), 3)
        if self.seasonal_order is not None:
            _check_order("seasonal_order", tuple(self.seasonal_order), 4)
            if self.seasonal_order[3] < 2:
                raise InvalidParameterError(
                    "seasonal period s must be >= 2", seasonal_order=self.seasonal_order
                )
        for name in ("max_p", "max_q", "max_P", "max_Q"):
            if getattr(self, name) < 0:
                raise InvalidParameterError(f"{name} must be >= 0", **{name: getattr(self, name)})
        _check_choice("information_criterion", self.information_criterion, CRITERIA)
        if self.max_iterations < 1:
            raise InvalidParameterError("max_iterations must be >= 1", max_iterations=self.max_iterations)

    @property
    def is_seasonal(self) -> bool:
        return self.seasonal_order is not None


@dataclass(frozen=True)
class HarmonicRegressionOptions:
    """Fourier terms per seasonal period plus ARIMA errors (dynamic regression)"""
    fourier_terms: Dict[float, int] = field(default_factory=dict)
    arima_order: Tuple[int, int, int] = (0, 0, 0)
    include_trend: bool = False
    auto_select: bool = False
    max_p: int = 2
    max_q: int = 2
    information_criterion: str = "aicc"
    max_iterations: int = 500

    def __post_init__(self):
        if not self.fourier_terms:
            raise InvalidParameterError("fourier_terms needs at least one seasonal period")
        for period, harmonics in self.fourier_terms.items():
            if period < 2:
                raise InvalidParameterError("Seasonal period must be >= 2", period=period)
            limit = floor(period / 2)
            if int(harmonics) != harmonics or not 1 <= harmonics <= limit:
                raise InvalidParameterError(
                    "Number of harmonics K must satisfy 1 <= K <= floor(period / 2)",
                    period=period,
                    harmonics=harmonics,
                    max_harmonics=limit,
                )
        _check_order("arima_order", tuple(self.arima_order), 3)
        _check_choice("information_criterion", self.information_criterion, CRITERIA)
        if self.max_iterations < 1:
            raise InvalidParameterError("max_iterations must be >= 1", max_iterations=self.max_iterations)

    @property
    def longest_period(self) -> float:
        return max(self.fourier_terms)


@dataclass(frozen=True)
class TrendSeasonalityOptions:
    """Predictor roles for a linear regression on time"""
    trend: str = "linear"
    seasonal_dummies: bool = True
    exogenous: Dict[str, TimeSeries] = field(default_factory=dict)

    def __post_init__(self):
        _check_choice("trend", self.trend, ("none", "linear", "quadratic", "exponential"))
        for name, regressor in self.exogenous.items():
            if not isinstance(regressor, TimeSeries):
                raise InvalidParameterError(
                    "Exogenous regressors must be TimeSeries covering train and forecast periods",
                    regressor=name,
                )
