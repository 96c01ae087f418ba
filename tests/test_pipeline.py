"""
Smoke Tests: configuration, pipeline tasks and CLI with synthetic data

These tests verify the pipeline end to end without any external data.
All series are generated synthetically and written to tmp_path.
"""

import json

import numpy as np
import pandas as pd
import pytest
from typer.testing import CliRunner

from forecast_harness.errors import InvalidParameterError
from forecast_harness.pipeline import (HarnessConfig, env_overrides, load_config,
                                       run_backtest, run_full_pipeline, run_holdout)
from forecast_harness.pipeline.cli import _strip_ipykernel_args, app
from forecast_harness.pipeline.io_utils import atomic_write_csv, atomic_write_json, outputs_exist
from forecast_harness.pipeline.tasks import build_models, default_model_kwargs, load_series


def write_monthly_csv(path, n=48, seed=21):
    """Synthetic monthly series matching the expected [period, y] format"""
    rng = np.random.default_rng(seed)
    t = np.arange(n)
    df = pd.DataFrame({
        "period": pd.period_range("2018-01", periods=n, freq="M").strftime("%Y-%m"),
        "y": 300 + t + 40 * np.sin(2 * np.pi * t / 12) + rng.normal(0, 2, n),
    })
    df.to_csv(path, index=False)
    return path


class TestConfig:
    """HarnessConfig layering: defaults < environment < explicit overrides"""

    def test_defaults(self):
        cfg = HarnessConfig()
        assert cfg.validation_length == 12
        assert cfg.levels == (80, 95)
        assert cfg.zero_policy == "raise"

    def test_config_is_frozen(self):
        with pytest.raises(AttributeError):
            HarnessConfig().validation_length = 3

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("FORECAST_HARNESS_VALIDATION_LENGTH", "6")
        monkeypatch.setenv("FORECAST_HARNESS_MODELS", "naive, snaive")
        monkeypatch.setenv("FORECAST_HARNESS_LEVELS", "90")
        monkeypatch.setenv("FORECAST_HARNESS_OVERWRITE", "true")
        monkeypatch.setenv("FORECAST_HARNESS_N_WINDOWS", "none")

        cfg = load_config(dotenv=False)
        assert cfg.validation_length == 6
        assert cfg.models == ("naive", "snaive")
        assert cfg.levels == (90,)
        assert cfg.overwrite is True
        assert cfg.n_windows is None

    def test_explicit_overrides_win(self, monkeypatch):
        monkeypatch.setenv("FORECAST_HARNESS_VALIDATION_LENGTH", "6")
        cfg = load_config(dotenv=False, validation_length=3, freq=None)
        assert cfg.validation_length == 3
        assert cfg.freq == "M"

    def test_env_overrides_reads_mapping(self):
        overrides = env_overrides({"FORECAST_HARNESS_MAX_WORKERS": "4", "OTHER": "x"})
        assert overrides == {"max_workers": 4}

    @pytest.mark.fail_loud
    def test_bad_environment_value_raises(self):
        with pytest.raises(InvalidParameterError):
            env_overrides({"FORECAST_HARNESS_STEP": "weekly"})

    @pytest.mark.fail_loud
    def test_unknown_override_raises(self):
        with pytest.raises(InvalidParameterError):
            load_config(dotenv=False, horizon=12)

    def test_output_paths(self, tmp_path):
        cfg = HarnessConfig(output_dir=str(tmp_path))
        assert cfg.leaderboard_path() == tmp_path / "leaderboard.csv"
        assert cfg.metadata_path() == tmp_path / "metadata.json"


class TestIoUtils:
    """Atomic artifact writes"""

    def test_csv_round_trip_leaves_no_temp(self, tmp_path):
        path = tmp_path / "nested" / "board.csv"
        atomic_write_csv(pd.DataFrame({"model": ["naive"], "RMSE": [1.5]}), path)
        assert pd.read_csv(path)["RMSE"].tolist() == [1.5]
        assert [p.name for p in path.parent.iterdir()] == ["board.csv"]

    def test_json_handles_numpy_values(self, tmp_path):
        path = tmp_path / "metadata.json"
        atomic_write_json({"n": np.int64(3), "x": np.array([1.0, 2.0]), "p": pd.Period("2020-01", "M")}, path)
        assert json.loads(path.read_text()) == {"n": 3, "x": [1.0, 2.0], "p": "2020-01"}

    def test_outputs_exist_needs_every_path(self, tmp_path):
        first = tmp_path / "a.csv"
        first.write_text("x\n")
        assert outputs_exist([first])
        assert not outputs_exist([first, tmp_path / "b.json"])


class TestTasks:
    """load -> partition -> compare -> write"""

    @staticmethod
    def create_config(tmp_path, **kwargs):
        csv = write_monthly_csv(tmp_path / "series.csv")
        values = {
            "data_path": str(csv),
            "models": ("naive", "snaive", "moving_average"),
            "output_dir": str(tmp_path / "out"),
        }
        values.update(kwargs)
        return HarnessConfig(**values)

    def test_load_series(self, tmp_path):
        series = load_series(self.create_config(tmp_path))
        assert len(series) == 48
        assert series.frequency == 12

    def test_default_model_kwargs(self):
        assert default_model_kwargs("arima", 12, (95,))["seasonal_order"] == (0, 1, 0, 12)
        assert default_model_kwargs("harmonic", 12, (95,))["fourier_terms"] == {12: 2}
        assert default_model_kwargs("moving_average", 1, (95,))["window"] == 3
        with pytest.raises(InvalidParameterError):
            default_model_kwargs("harmonic", 1, (95,))

    def test_build_models(self, tmp_path):
        models = build_models(self.create_config(tmp_path), frequency=12)
        assert list(models) == ["naive", "snaive", "moving_average"]
        assert models["moving_average"].window == 12

    def test_holdout(self, tmp_path):
        cfg = self.create_config(tmp_path)
        result, board = run_holdout(cfg, load_series(cfg))
        assert board.index[0] == "snaive"
        assert result.partition.horizon == 12

    def test_holdout_with_default_models(self, tmp_path):
        """ETS and ARIMA run end to end alongside the baselines"""
        cfg = self.create_config(tmp_path, models=HarnessConfig().models)
        result, board = run_holdout(cfg, load_series(cfg))

        assert result.failures == {}
        assert result.model_names == ["naive", "snaive", "ets", "arima"]
        assert set(board.index) == set(cfg.models)
        assert result.forecasts["ets"].model_name == "ets(auto)"

    def test_backtest(self, tmp_path):
        cfg = self.create_config(tmp_path, validation_length=6, min_train_size=24, n_windows=2)
        results = run_backtest(cfg, load_series(cfg))
        assert len(results) == 6
        assert sorted(results["model"].unique()) == ["moving_average", "naive", "snaive"]

    @pytest.mark.smoke
    def test_full_pipeline_writes_outputs(self, tmp_path):
        cfg = self.create_config(tmp_path)
        summary = run_full_pipeline(cfg)

        assert summary["best_model"] == "snaive"
        assert summary["failed_models"] == "-"
        assert cfg.leaderboard_path().exists()
        assert cfg.forecasts_path().exists()

        forecasts = pd.read_csv(cfg.forecasts_path())
        assert len(forecasts) == 3 * 12
        metadata = json.loads(cfg.metadata_path().read_text())
        assert metadata["partition"]["valid_size"] == 12

    @pytest.mark.smoke
    def test_rerun_skips_without_overwrite(self, tmp_path):
        cfg = self.create_config(tmp_path)
        run_full_pipeline(cfg)
        assert run_full_pipeline(cfg)["outputs"] == "skipped (exists)"


@pytest.mark.smoke
class TestCli:
    """Typer commands on a synthetic CSV"""

    def test_evaluate(self, tmp_path):
        csv = write_monthly_csv(tmp_path / "series.csv")
        result = CliRunner().invoke(app, ["evaluate", str(csv), "-m", "naive", "-m", "snaive"])
        assert result.exit_code == 0, result.output
        assert "snaive" in result.output

    def test_backtest_writes_csv(self, tmp_path):
        csv = write_monthly_csv(tmp_path / "series.csv")
        out = tmp_path / "backtest.csv"
        result = CliRunner().invoke(app, [
            "backtest", str(csv), "-m", "naive", "--horizon", "6",
            "--min-train-size", "24", "--n-windows", "3", "--output", str(out),
        ])
        assert result.exit_code == 0, result.output
        assert len(pd.read_csv(out)) == 3

    def test_run_with_custom_columns(self, tmp_path):
        csv = write_monthly_csv(tmp_path / "series.csv")
        pd.read_csv(csv).rename(columns={"period": "month", "y": "sales"}).to_csv(csv, index=False)
        out = tmp_path / "out"
        result = CliRunner().invoke(app, [
            "run", str(csv), "--period-col", "month", "--value-col", "sales", "--freq", "M",
            "-m", "naive", "-m", "snaive", "--output-dir", str(out),
        ])
        assert result.exit_code == 0, result.output
        leaderboard = pd.read_csv(out / "leaderboard.csv", index_col=0)
        assert sorted(leaderboard.index) == ["naive", "snaive"]

    def test_models(self):
        result = CliRunner().invoke(app, ["models"])
        assert result.exit_code == 0
        assert "arima" in result.output

    def test_strip_ipykernel_args(self):
        argv = ["cli", "-f", "/tmp/kernel.json", "evaluate", "--f=x"]
        assert _strip_ipykernel_args(argv) == ["cli", "evaluate"]
