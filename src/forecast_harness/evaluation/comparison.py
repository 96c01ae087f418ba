"""
Compare several forecasting routines on one partition.

Every candidate sees the same immutable Partition, so runs are independent
and may execute on a thread pool. A failing routine is recorded in
``failures``; it is never replaced by another forecast.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from forecast_harness.errors import ForecastHarnessError, InvalidParameterError
from forecast_harness.evaluation.metrics import AccuracyEvaluator, AccuracyReport
from forecast_harness.evaluation.partition import Partition
from forecast_harness.evaluation.runner import Routine, as_model, run_forecast
from forecast_harness.models.base import Forecast, ForecastModel

logger = logging.getLogger(__name__)


@dataclass
class ComparisonResult:
    """Forecasts and reports for every candidate on one partition"""
    partition: Partition
    forecasts: Dict[str, Forecast] = field(default_factory=dict)
    validation: Dict[str, AccuracyReport] = field(default_factory=dict)
    fitted: Dict[str, AccuracyReport] = field(default_factory=dict)
    failures: Dict[str, ForecastHarnessError] = field(default_factory=dict)

    @property
    def model_names(self) -> List[str]:
        return list(self.validation)

    def reports_frame(self) -> pd.DataFrame:
        """Validation and fitted reports stacked, tagged by mode"""
        rows = [r.as_dict() for r in self.validation.values()]
        rows += [r.as_dict() for r in self.fitted.values()]
        return pd.DataFrame(rows)


def _named_models(models: Union[Mapping[str, Routine], Iterable[Routine]]) -> Dict[str, ForecastModel]:
    if isinstance(models, Mapping):
        named = {name: as_model(model) for name, model in models.items()}
    else:
        named = {}
        for model in models:
            model = as_model(model)
            if model.get_name() in named:
                raise InvalidParameterError("Duplicate model name; pass a mapping", model=model.get_name())
            named[model.get_name()] = model
    if not named:
        raise InvalidParameterError("No models to compare")
    return named


def compare_models(
    models: Union[Mapping[str, Routine], Iterable[Routine]],
    split: Partition,
    evaluator: Optional[AccuracyEvaluator] = None,
    max_workers: int = 1,
) -> ComparisonResult:
    """
    Forecast the validation window with each model and score it.

    Args:
        models: Routines, or a mapping of display name -> routine
        split: Partition shared by every model
        evaluator: AccuracyEvaluator (default: zero_policy="raise")
        max_workers: >1 runs models on a ThreadPoolExecutor

    Returns:
        ComparisonResult with validation (out-of-sample) and fitted
        (in-sample) reports kept apart
    """
    named = _named_models(models)
    evaluator = evaluator or AccuracyEvaluator()
    result = ComparisonResult(partition=split)

    def _run_one(name: str) -> Tuple[str, Forecast, AccuracyReport, Optional[AccuracyReport]]:
        forecast = run_forecast(named[name], split.train, split.horizon)
        validation = evaluator.evaluate(forecast, split.valid, train=split.train)
        fitted = evaluator.evaluate_fitted(forecast, split.train) if forecast.fitted is not None else None
        return name, forecast, validation, fitted

    def _record(name: str, outcome) -> None:
        _, forecast, validation, fitted = outcome
        result.forecasts[name] = forecast
        result.validation[name] = validation
        if fitted is not None:
            result.fitted[name] = fitted

    logger.info(f"Comparing {len(named)} models on horizon={split.horizon}")

    if max_workers <= 1:
        for name in named:
            try:
                _record(name, _run_one(name))
            except ForecastHarnessError as e:
                logger.warning(f"[FAIL] {name}: {e}")
                result.failures[name] = e
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(_run_one, name): name for name in named}
            for future in as_completed(futures):
                name = futures[future]
                try:
                    _record(name, future.result())
                except ForecastHarnessError as e:
                    logger.warning(f"[FAIL] {name}: {e}")
                    result.failures[name] = e

    # keep the caller's ordering regardless of completion order
    order = [name for name in named if name in result.validation]
    result.forecasts = {name: result.forecasts[name] for name in order}
    result.validation = {name: result.validation[name] for name in order}
    result.fitted = {name: result.fitted[name] for name in order if name in result.fitted}

    logger.info(f"Compared models: {len(order)} succeeded, {len(result.failures)} failed")
    return result


class ModelSelector:
    """Rank models by out-of-sample accuracy"""

    def __init__(self, primary_metric: str = "RMSE"):
        """
        Args:
            primary_metric: Metric for ranking ("RMSE", "MAE", "MAPE", "MASE");
                ME and MPE are ranked by absolute value
        """
        if primary_metric.upper() not in AccuracyReport.METRIC_NAMES:
            raise InvalidParameterError(
                "Unknown metric", metric=primary_metric, choices=AccuracyReport.METRIC_NAMES
            )
        self.primary_metric = primary_metric.upper()

    def leaderboard(self, result: ComparisonResult) -> pd.DataFrame:
        """
        Generate model leaderboard

        Validation metrics rank the models; fitted metrics are shown with a
        ``fit_`` prefix for reference only.
        """
        if not result.validation:
            raise InvalidParameterError("No successful models to rank", failures=list(result.failures))

        rows = []
        for name, report in result.validation.items():
            row = {"model": name, **report.metrics}
            if name in result.fitted:
                row.update({f"fit_{k}": v for k, v in result.fitted[name].metrics.items()})
            rows.append(row)
        board = pd.DataFrame(rows).set_index("model")

        rank_cols = []
        for metric in AccuracyReport.METRIC_NAMES:
            if metric not in board.columns or board[metric].isna().all():
                continue
            score = board[metric].abs() if metric in ("ME", "MPE") else board[metric]
            board[f"{metric}_rank"] = score.rank()
            rank_cols.append(f"{metric}_rank")
        board["avg_rank"] = board[rank_cols].mean(axis=1)

        if self.primary_metric not in board.columns:
            raise InvalidParameterError("Primary metric not available", metric=self.primary_metric)
        sort_key = board[self.primary_metric].abs() if self.primary_metric in ("ME", "MPE") else board[self.primary_metric]
        return board.loc[sort_key.sort_values(kind="mergesort").index]

    def select_best_model(self, result: ComparisonResult) -> str:
        """Name of the model with the best primary metric"""
        return str(self.leaderboard(result).index[0])
