from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from forecast_harness.evaluation import summarize_backtest
from forecast_harness.models import ModelFactory
from forecast_harness.pipeline.config import HarnessConfig, load_config
from forecast_harness.pipeline.io_utils import atomic_write_csv
from forecast_harness.pipeline.tasks import load_series, run_backtest, run_full_pipeline, run_holdout

app = typer.Typer(add_completion=False)
console = Console()


def _setup_logging(config: HarnessConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


def _strip_ipykernel_args(argv: list[str]) -> list[str]:
    """Jupyter/ipykernel injects `-f <connection_file>` into sys.argv."""
    out = [argv[0]]
    i = 1
    while i < len(argv):
        a = argv[i]
        if a in ("-f", "--f"):
            i += 2  # skip flag + value
            continue
        if a.startswith("--f="):
            i += 1
            continue
        out.append(a)
        i += 1
    return out


def _frame_table(df: pd.DataFrame, title: str) -> Table:
    table = Table(title=title)
    table.add_column(df.index.name or "", style="cyan")
    for col in df.columns:
        table.add_column(str(col), justify="right")
    for idx, row in df.iterrows():
        cells = [f"{v:.3f}" if isinstance(v, float) else str(v) for v in row.tolist()]
        table.add_row(str(idx), *cells)
    return table


def _config(data_path, period_col, value_col, freq, validation_length, models, **extra) -> HarnessConfig:
    return load_config(
        data_path=data_path,
        period_col=period_col,
        value_col=value_col,
        freq=freq,
        validation_length=validation_length,
        models=tuple(models) if models else None,
        **extra,
    )


@app.command()
def evaluate(
    data_path: Optional[str] = typer.Argument(None, help="CSV file with a period and a value column"),
    period_col: Optional[str] = None,
    value_col: Optional[str] = None,
    freq: Optional[str] = None,
    validation_length: Optional[int] = None,
    model: Optional[List[str]] = typer.Option(None, "--model", "-m", help="Repeat to compare several models"),
    zero_policy: Optional[str] = None,
    max_workers: Optional[int] = None,
):
    """Hold out the last periods and compare models on them."""
    cfg = _config(
        data_path, period_col, value_col, freq, validation_length, model,
        zero_policy=zero_policy, max_workers=max_workers,
    )
    _setup_logging(cfg)

    series = load_series(cfg)
    result, board = run_holdout(cfg, series)

    rank_cols = [c for c in board.columns if c.endswith("_rank") or c == "avg_rank"]
    validation_cols = [c for c in board.columns if not c.startswith("fit_") and c not in rank_cols]
    console.print(_frame_table(board[validation_cols], "Validation accuracy (out-of-sample)"))

    fitted = result.reports_frame()
    fitted = fitted[fitted["mode"] == "fitted"].set_index("model").drop(columns=["mode"])
    if not fitted.empty:
        console.print(_frame_table(fitted, "Goodness of fit (in-sample, not predictive accuracy)"))

    for name, error in result.failures.items():
        console.print(f"[red][FAIL][/red] {name}: {error}")


@app.command()
def backtest(
    data_path: Optional[str] = typer.Argument(None),
    period_col: Optional[str] = None,
    value_col: Optional[str] = None,
    freq: Optional[str] = None,
    horizon: Optional[int] = None,
    model: Optional[List[str]] = typer.Option(None, "--model", "-m"),
    min_train_size: Optional[int] = None,
    step: Optional[int] = None,
    n_windows: Optional[int] = None,
    window: Optional[str] = None,
    output: Optional[str] = typer.Option(None, help="Write per-origin results to this CSV"),
):
    """Rolling-origin evaluation of each model."""
    cfg = _config(
        data_path, period_col, value_col, freq, horizon, model,
        min_train_size=min_train_size, step=step, n_windows=n_windows, window=window,
    )
    _setup_logging(cfg)

    series = load_series(cfg)
    results = run_backtest(cfg, series)

    summary = summarize_backtest(results)
    summary.columns = [f"{metric}_{stat}" for metric, stat in summary.columns]
    mean_cols = [c for c in summary.columns if c.endswith("_mean")]
    console.print(_frame_table(summary[mean_cols], f"Rolling origin ({cfg.window}, horizon={cfg.validation_length})"))

    if output:
        atomic_write_csv(results, Path(output))
        console.print(f"Wrote {len(results)} rows to {output}")


@app.command()
def run(
    data_path: Optional[str] = typer.Argument(None),
    period_col: Optional[str] = None,
    value_col: Optional[str] = None,
    freq: Optional[str] = None,
    validation_length: Optional[int] = None,
    model: Optional[List[str]] = typer.Option(None, "--model", "-m"),
    zero_policy: Optional[str] = None,
    max_workers: Optional[int] = None,
    output_dir: Optional[str] = None,
    overwrite: bool = False,
):
    """Full pipeline: load, hold out, compare, write artifacts."""
    cfg = _config(
        data_path, period_col, value_col, freq, validation_length, model,
        zero_policy=zero_policy, max_workers=max_workers,
        output_dir=output_dir, overwrite=overwrite or None,
    )
    _setup_logging(cfg)

    results = run_full_pipeline(cfg)

    table = Table(title="Pipeline Results")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    for k, v in results.items():
        table.add_row(str(k), str(v))

    console.print(table)


@app.command()
def models():
    """List registered forecasting models."""
    for name in ModelFactory.list_models():
        console.print(name)


if __name__ == "__main__":
    sys.argv = _strip_ipykernel_args(sys.argv)
    app(standalone_mode=False)  # <-- prevents SystemExit in Jupyter
