"""
Error taxonomy for the forecasting harness.

Every failure is local (validation or numerical) and never retried.
Each error keeps the values needed to diagnose it in ``context``.
"""

from typing import Any, Dict


class ForecastHarnessError(Exception):
    """Base class for all harness errors"""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context: Dict[str, Any] = context

    def __str__(self) -> str:
        message = super().__str__()
        if not self.context:
            return message
        details = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{message} ({details})"


class InvalidHorizonError(ForecastHarnessError, ValueError):
    """Requested horizon / validation length cannot be honoured"""


class InsufficientDataError(ForecastHarnessError, ValueError):
    """Training series too short for the requested method"""


class InvalidParameterError(ForecastHarnessError, ValueError):
    """Option outside its declared domain"""


class MisalignedSeriesError(ForecastHarnessError, ValueError):
    """Two series do not share length, frequency or period index"""


class NonConvergenceError(ForecastHarnessError, RuntimeError):
    """Numerical optimization did not converge within its iteration budget"""


class DivisionByZeroError(ForecastHarnessError, ZeroDivisionError):
    """Percentage metric requested against a zero actual"""
