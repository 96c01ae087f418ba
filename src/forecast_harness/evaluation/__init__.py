"""
Evaluation: the hold-out and rolling-origin accuracy harness

- Partitioning (train prefix / validation suffix, no leakage)
- Running routines under the horizon contract
- Accuracy metrics (ME, MAE, MAPE, RMSE, MPE, MASE), mode-tagged
- Rolling-origin backtesting
- Model comparison and selection
"""

from .backtesting import RollingOrigin, backtest, summarize_backtest, validate_partitions
from .comparison import ComparisonResult, ModelSelector, compare_models
from .metrics import (AccuracyEvaluator, AccuracyReport, EvaluationMode,
                      ForecastMetrics, compare_reports, evaluate)
from .partition import Partition, SeriesPartitioner, partition, partition_at
from .runner import ForecastRunner, run_forecast

__all__ = [
    # Partitioning
    "Partition",
    "SeriesPartitioner",
    "partition",
    "partition_at",
    # Running
    "ForecastRunner",
    "run_forecast",
    # Metrics
    "AccuracyEvaluator",
    "AccuracyReport",
    "EvaluationMode",
    "ForecastMetrics",
    "compare_reports",
    "evaluate",
    # Backtesting
    "RollingOrigin",
    "backtest",
    "summarize_backtest",
    "validate_partitions",
    # Comparison
    "ComparisonResult",
    "ModelSelector",
    "compare_models",
]
