"""
Pipeline configuration.

A frozen HarnessConfig captures every knob of one evaluation run so the same
run can be repeated. ``load_config`` layers (lowest to highest priority):
dataclass defaults, FORECAST_HARNESS_* variables from the environment or a
local .env file, explicit keyword overrides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

from forecast_harness.errors import InvalidParameterError

ENV_PREFIX = "FORECAST_HARNESS_"


@dataclass(frozen=True)
class HarnessConfig:
    # Input
    data_path: str = "data/series.csv"
    period_col: str = "period"
    value_col: str = "y"
    freq: str = "M"
    frequency: Optional[int] = None  # derived from freq when None

    # Hold-out evaluation
    validation_length: int = 12
    models: Tuple[str, ...] = ("naive", "snaive", "ets", "arima")
    levels: Tuple[int, ...] = (80, 95)
    zero_policy: str = "raise"
    primary_metric: str = "RMSE"
    max_workers: int = 1

    # Rolling origin
    min_train_size: int = 36
    step: int = 1
    n_windows: Optional[int] = 5
    window: str = "expanding"

    # IO
    output_dir: str = "artifacts"
    overwrite: bool = False
    log_level: str = "INFO"

    def run_id(self) -> str:
        return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

    def output_path(self) -> Path:
        return Path(self.output_dir)

    def leaderboard_path(self) -> Path:
        return self.output_path() / "leaderboard.csv"

    def reports_path(self) -> Path:
        return self.output_path() / "reports.csv"

    def forecasts_path(self) -> Path:
        return self.output_path() / "forecasts.csv"

    def backtest_path(self) -> Path:
        return self.output_path() / "backtest.csv"

    def metadata_path(self) -> Path:
        return self.output_path() / "metadata.json"


def _coerce(name: str, raw: str, default: Any) -> Any:
    """Parse an environment string into the type of the field default"""
    try:
        if name in ("models",):
            return tuple(part.strip() for part in raw.split(",") if part.strip())
        if name in ("levels",):
            return tuple(int(part) for part in raw.split(",") if part.strip())
        if name in ("frequency", "n_windows"):
            return None if raw.strip().lower() in ("", "none") else int(raw)
        if isinstance(default, bool):
            return raw.strip().lower() in ("1", "true", "yes", "on")
        if isinstance(default, int):
            return int(raw)
        return raw
    except ValueError as e:
        raise InvalidParameterError(
            "Invalid configuration value in environment", variable=ENV_PREFIX + name.upper(), value=raw
        ) from e


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Collect FORECAST_HARNESS_<FIELD> values present in the environment"""
    environ = os.environ if environ is None else environ
    overrides = {}
    for f in fields(HarnessConfig):
        key = ENV_PREFIX + f.name.upper()
        if key in environ:
            overrides[f.name] = _coerce(f.name, environ[key], f.default)
    return overrides


def load_config(dotenv: bool = True, **overrides: Any) -> HarnessConfig:
    """
    Load configuration from environment, then apply explicit overrides.

    Keyword overrides set to None are ignored so CLI options can be passed
    through unchanged.
    """
    if dotenv:
        load_dotenv()

    values = env_overrides()
    values.update({k: v for k, v in overrides.items() if v is not None})

    unknown = set(values) - {f.name for f in fields(HarnessConfig)}
    if unknown:
        raise InvalidParameterError("Unknown configuration keys", keys=sorted(unknown))

    return replace(HarnessConfig(), **values)
