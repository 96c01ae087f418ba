"""
Pipeline: configuration, tasks and the Typer CLI
"""

from .config import HarnessConfig, env_overrides, load_config
from .tasks import (build_models, load_series, run_backtest, run_full_pipeline,
                    run_holdout, write_holdout_outputs)

__all__ = [
    "HarnessConfig",
    "env_overrides",
    "load_config",
    "build_models",
    "load_series",
    "run_backtest",
    "run_full_pipeline",
    "run_holdout",
    "write_holdout_outputs",
]
