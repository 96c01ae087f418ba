"""
Rolling-origin evaluation (time series cross-validation).

Two windowing strategies, both without information leakage:
1. Expanding: every training window starts at the series origin
2. Rolling: training windows keep a fixed length and slide forward

Each origin yields a Partition whose validation part is ``horizon`` long.
"""

import logging
from typing import List, Optional

import pandas as pd

from forecast_harness.errors import InsufficientDataError, InvalidParameterError
from forecast_harness.evaluation.metrics import AccuracyEvaluator
from forecast_harness.evaluation.partition import Partition
from forecast_harness.evaluation.runner import Routine, as_model, run_forecast
from forecast_harness.series.objects import TimeSeries

logger = logging.getLogger(__name__)

WINDOWS = ("expanding", "rolling")


class RollingOrigin:
    """Generate rolling-origin partitions for a single series"""

    def __init__(
        self,
        horizon: int,
        min_train_size: int,
        step: int = 1,
        n_windows: Optional[int] = None,
        window: str = "expanding",
    ):
        """
        Args:
            horizon: Validation length of every partition
            min_train_size: Training observations at the first origin
                (the fixed training length for rolling windows)
            step: Periods the origin moves between partitions
            n_windows: Keep only the most recent n origins
            window: "expanding" or "rolling"
        """
        if horizon < 1 or min_train_size < 1 or step < 1:
            raise InvalidParameterError(
                "horizon, min_train_size and step must be >= 1",
                horizon=horizon,
                min_train_size=min_train_size,
                step=step,
            )
        if n_windows is not None and n_windows < 1:
            raise InvalidParameterError("n_windows must be >= 1", n_windows=n_windows)
        if window not in WINDOWS:
            raise InvalidParameterError("Unknown window strategy", window=window, choices=WINDOWS)

        self.horizon = horizon
        self.min_train_size = min_train_size
        self.step = step
        self.n_windows = n_windows
        self.window = window

    def generate(self, series: TimeSeries) -> List[Partition]:
        n = len(series)
        if n < self.min_train_size + self.horizon:
            raise InsufficientDataError(
                "Series too short for a single rolling-origin window",
                series_length=n,
                min_train_size=self.min_train_size,
                horizon=self.horizon,
            )

        cutoffs = list(range(self.min_train_size, n - self.horizon + 1, self.step))
        if self.n_windows is not None:
            cutoffs = cutoffs[-self.n_windows:]

        partitions = []
        for cutoff in cutoffs:
            train_start = 0 if self.window == "expanding" else cutoff - self.min_train_size
            partitions.append(Partition(
                train=series.slice(train_start, cutoff),
                valid=series.slice(cutoff, cutoff + self.horizon),
            ))

        logger.info(f"Generated {len(partitions)} {self.window} partitions (horizon={self.horizon})")
        return partitions


def validate_partitions(partitions: List[Partition], horizon: int, min_train_size: int = 1) -> bool:
    """
    Validate rolling-origin partitions for leakage and sizing.

    Checks:
    1. Training ends strictly before validation starts
    2. Validation length equals the horizon
    3. Training length meets the minimum
    """
    is_valid = True
    for i, split in enumerate(partitions):
        if split.train.end >= split.valid.start:
            logger.error(f"partition {i}: temporal leakage")
            is_valid = False
        if split.horizon != horizon:
            logger.error(f"partition {i}: validation size {split.horizon} != {horizon}")
            is_valid = False
        if len(split.train) < min_train_size:
            logger.error(f"partition {i}: train size too small")
            is_valid = False
    return is_valid


def backtest(
    routine: Routine,
    series: TimeSeries,
    origin: RollingOrigin,
    evaluator: Optional[AccuracyEvaluator] = None,
) -> pd.DataFrame:
    """
    Forecast and score every rolling-origin partition.

    Returns:
        DataFrame with one row per origin: partition info plus
        out-of-sample metrics. Any routine failure propagates.
    """
    model = as_model(routine)
    evaluator = evaluator or AccuracyEvaluator()
    rows = []

    for i, split in enumerate(origin.generate(series)):
        forecast = run_forecast(model, split.train, split.horizon)
        report = evaluator.evaluate(forecast, split.valid, train=split.train)
        rows.append({"origin": i, **split.info, **report.as_dict()})

    results = pd.DataFrame(rows)
    logger.info(f"{model.get_name()}: backtested {len(results)} origins")
    return results


def summarize_backtest(results: pd.DataFrame) -> pd.DataFrame:
    """Mean / std / min / max of every metric across origins, per model"""
    metric_cols = [c for c in ("ME", "MAE", "MAPE", "RMSE", "MPE", "MASE") if c in results.columns]
    return results.groupby("model")[metric_cols].agg(["mean", "std", "min", "max"])
