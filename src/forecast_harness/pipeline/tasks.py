"""
Pipeline tasks: load -> partition -> compare -> write.

These tasks are designed to be:
- deterministic for a given config
- atomic on write
- safe to rerun (overwrite flag controls)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from forecast_harness.errors import InvalidParameterError
from forecast_harness.evaluation import (AccuracyEvaluator, ComparisonResult, ModelSelector,
                                         RollingOrigin, backtest, compare_models, partition)
from forecast_harness.models import ForecastModel, ModelFactory
from forecast_harness.pipeline.config import HarnessConfig
from forecast_harness.pipeline.io_utils import atomic_write_csv, atomic_write_json, outputs_exist
from forecast_harness.series import TimeSeries, prepare_series

logger = logging.getLogger(__name__)


def load_series(config: HarnessConfig) -> TimeSeries:
    """
    Task 1: Read the CSV named in the config and build a validated TimeSeries.
    """
    df = pd.read_csv(config.data_path)
    series = prepare_series(
        df,
        period_col=config.period_col,
        value_col=config.value_col,
        freq=config.freq,
        frequency=config.frequency,
    )
    logger.info(f"[load] {config.data_path}: {series!r}")
    return series


def default_model_kwargs(name: str, frequency: int, levels: Tuple[int, ...]) -> Dict[str, Any]:
    """Sensible CLI defaults per model family for a series of this frequency"""
    kwargs: Dict[str, Any] = {"levels": levels}
    if name == "ets":
        kwargs["auto_select"] = True
    elif name == "arima":
        kwargs["auto_select"] = True
        kwargs["order"] = (0, 1, 0)
        if frequency > 1:
            kwargs["seasonal_order"] = (0, 1, 0, frequency)
    elif name == "harmonic":
        if frequency < 2:
            raise InvalidParameterError("Harmonic regression needs a seasonal frequency >= 2", frequency=frequency)
        kwargs["fourier_terms"] = {frequency: max(1, min(2, frequency // 2))}
        kwargs["auto_select"] = True
    elif name == "moving_average":
        kwargs["window"] = frequency if frequency > 1 else 3
    return kwargs


def build_models(config: HarnessConfig, frequency: int) -> Dict[str, ForecastModel]:
    return {
        name: ModelFactory.create(name, **default_model_kwargs(name, frequency, config.levels))
        for name in config.models
    }


def run_holdout(
    config: HarnessConfig,
    series: TimeSeries,
) -> Tuple[ComparisonResult, pd.DataFrame]:
    """
    Task 2: Hold out the last ``validation_length`` periods and compare models.
    Returns the comparison and its leaderboard.
    """
    split = partition(series, config.validation_length)
    logger.info(f"[holdout] {split.info}")

    result = compare_models(
        build_models(config, series.frequency),
        split,
        evaluator=AccuracyEvaluator(zero_policy=config.zero_policy),
        max_workers=config.max_workers,
    )
    board = ModelSelector(primary_metric=config.primary_metric).leaderboard(result)
    return result, board


def run_backtest(config: HarnessConfig, series: TimeSeries) -> pd.DataFrame:
    """
    Task 3: Rolling-origin evaluation of every configured model.
    """
    origin = RollingOrigin(
        horizon=config.validation_length,
        min_train_size=config.min_train_size,
        step=config.step,
        n_windows=config.n_windows,
        window=config.window,
    )
    evaluator = AccuracyEvaluator(zero_policy=config.zero_policy)

    frames = []
    for name, model in build_models(config, series.frequency).items():
        results = backtest(model, series, origin, evaluator=evaluator)
        results["model"] = name
        frames.append(results)
    return pd.concat(frames, ignore_index=True)


def write_holdout_outputs(
    config: HarnessConfig,
    result: ComparisonResult,
    board: pd.DataFrame,
    run_id: str = "",
) -> Optional[str]:
    """
    Task 4: Write leaderboard, reports, forecasts and metadata.
    Skips when outputs exist and overwrite is off.
    """
    leaderboard_path = config.leaderboard_path()
    if outputs_exist([leaderboard_path, config.metadata_path()]) and not config.overwrite:
        logger.info(f"[write] leaderboard exists, skipping: {leaderboard_path}")
        return None

    forecasts = []
    for name, forecast in result.forecasts.items():
        frame = forecast.to_frame()
        frame.insert(0, "model", name)
        forecasts.append(frame)

    atomic_write_csv(board, leaderboard_path, index=True)
    atomic_write_csv(result.reports_frame(), config.reports_path())
    if forecasts:
        atomic_write_csv(pd.concat(forecasts, ignore_index=True), config.forecasts_path())

    metadata = {
        "run_id": run_id or config.run_id(),
        "written_utc": datetime.now(timezone.utc).isoformat(),
        "data_path": config.data_path,
        "partition": result.partition.info,
        "models": list(result.forecasts),
        "params": {name: f.params for name, f in result.forecasts.items()},
        "failures": {name: str(e) for name, e in result.failures.items()},
    }
    atomic_write_json(metadata, config.metadata_path())

    logger.info(f"[write] wrote outputs to {config.output_path()}")
    return str(leaderboard_path)


def run_full_pipeline(config: HarnessConfig) -> Dict[str, Any]:
    """Load, hold out, compare, write. Returns a summary for display."""
    run_id = config.run_id()
    series = load_series(config)
    result, board = run_holdout(config, series)
    written = write_holdout_outputs(config, result, board, run_id=run_id)

    return {
        "run_id": run_id,
        "n_obs": len(series),
        "validation_length": config.validation_length,
        "best_model": str(board.index[0]),
        f"best_{config.primary_metric}": float(board[config.primary_metric].iloc[0]),
        "failed_models": ", ".join(result.failures) or "-",
        "outputs": written or "skipped (exists)",
    }
