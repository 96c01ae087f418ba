"""
Accuracy metrics

Validates:
- Metric formulas on a hand-checked example
- Zero actuals: raise by default, NaN on request (never silently skipped)
- Non-finite pairs are masked explicitly and counted out of n_obs
- Validation and fitted reports are tagged and never interchangeable
"""

import numpy as np
import pandas as pd
import pytest

from forecast_harness.errors import (DivisionByZeroError, InsufficientDataError,
                                     InvalidParameterError, MisalignedSeriesError)
from forecast_harness.evaluation import (AccuracyEvaluator, AccuracyReport, EvaluationMode,
                                         ForecastMetrics, compare_reports, evaluate, partition)
from forecast_harness.models import NaiveModel, SeasonalNaiveModel, build_forecast
from forecast_harness.series import TimeSeries


def aligned(values, start=600):
    return TimeSeries(values, frequency=12, start=start)


class TestMetricFormulas:
    """actual = [10, 20, 30], forecast = [12, 18, 33] -> errors [-2, 2, -3]"""

    def test_literal_example(self):
        report = evaluate(aligned([12.0, 18.0, 33.0]), aligned([10.0, 20.0, 30.0]))

        assert report.me == pytest.approx(-1.0)
        assert report.mae == pytest.approx(7 / 3)
        assert report.rmse == pytest.approx(np.sqrt(17 / 3))
        assert report.mape == pytest.approx(40 / 3)
        assert report.mpe == pytest.approx(100 * np.mean([-0.2, 0.1, -0.1]))
        assert report.n_obs == 3

    def test_error_is_actual_minus_forecast(self):
        """Under-forecasting gives a positive mean error"""
        report = evaluate(aligned([8.0, 8.0]), aligned([10.0, 10.0]))
        assert report.me == pytest.approx(2.0)

    def test_perfect_forecast(self):
        series = aligned([1.0, 2.0, 3.0])
        report = evaluate(series, series)
        assert report.metrics == {"ME": 0.0, "MAE": 0.0, "MAPE": 0.0, "RMSE": 0.0, "MPE": 0.0}

    def test_mase_scaled_by_seasonal_naive(self):
        y_train = np.array([1.0, 2.0, 3.0, 5.0, 6.0, 7.0])
        # in-sample lag-3 errors: |5-1|, |6-2|, |7-3| -> scale 4
        value = ForecastMetrics.mase(np.array([10.0]), np.array([8.0]), y_train, season_length=3)
        assert value == pytest.approx(0.5)

    def test_mase_degenerate_scale_is_nan(self):
        assert np.isnan(ForecastMetrics.mase(np.array([1.0]), np.array([2.0]), np.ones(5), 1))
        assert np.isnan(ForecastMetrics.mase(np.array([1.0]), np.array([2.0]), np.ones(2), 12))

    def test_mase_reported_with_train(self):
        train = aligned(np.arange(1.0, 25.0), start=576)
        report = AccuracyEvaluator(season_length=1).evaluate(
            aligned([26.0, 27.0]), aligned([25.0, 26.0]), train=train
        )
        assert report.mase == pytest.approx(1.0)
        assert "MASE" in report.metrics

    def test_no_mase_without_train(self):
        report = evaluate(aligned([1.0]), aligned([2.0]))
        assert report.mase is None
        assert "MASE" not in report.metrics


@pytest.mark.fail_loud
class TestZeroPolicy:
    """Percentage metrics against zero actuals"""

    def test_zero_actual_raises_by_default(self):
        with pytest.raises(DivisionByZeroError) as exc_info:
            evaluate(aligned([1.0, 2.0]), aligned([0.0, 2.0]))
        assert exc_info.value.context["n_zero"] == 1

    def test_division_error_is_zero_division(self):
        assert issubclass(DivisionByZeroError, ZeroDivisionError)

    def test_nan_policy(self):
        report = evaluate(aligned([1.0, 2.0]), aligned([0.0, 2.0]), zero_policy="nan")
        assert np.isnan(report.mape)
        assert np.isnan(report.mpe)
        # scale-dependent metrics are still defined
        assert report.mae == pytest.approx(0.5)

    def test_unknown_policy_raises(self):
        with pytest.raises(InvalidParameterError):
            AccuracyEvaluator(zero_policy="skip")


@pytest.mark.fail_loud
class TestAlignment:
    """Forecast and actual must share length, frequency and periods"""

    def test_length_mismatch(self):
        with pytest.raises(MisalignedSeriesError):
            evaluate(aligned([1.0, 2.0]), aligned([1.0, 2.0, 3.0]))

    def test_start_mismatch(self):
        with pytest.raises(MisalignedSeriesError):
            evaluate(aligned([1.0, 2.0], start=600), aligned([1.0, 2.0], start=601))

    def test_frequency_mismatch(self):
        with pytest.raises(MisalignedSeriesError):
            evaluate(TimeSeries([1.0], frequency=4, start=0), TimeSeries([1.0], frequency=12, start=0))


class TestMasking:
    """Non-finite pairs are excluded explicitly"""

    def test_nan_pair_excluded(self):
        report = evaluate(aligned([99.0, 101.0, 104.0, 107.0]), aligned([100.0, 102.0, np.nan, 106.0]))
        assert report.n_obs == 3
        assert report.rmse == pytest.approx(1.0)

    @pytest.mark.fail_loud
    def test_all_nan_raises(self):
        with pytest.raises(InsufficientDataError):
            evaluate(aligned([np.nan, np.nan]), aligned([1.0, 2.0]))

    def test_coverage_ignores_non_finite_rows(self):
        y = np.array([1.0, 5.0, np.nan, 3.0])
        lower = np.array([0.0, 0.0, 0.0, 4.0])
        upper = np.array([2.0, 4.0, 2.0, 6.0])
        assert ForecastMetrics.coverage(y, lower, upper) == pytest.approx(100 / 3)


class TestEvaluationModes:
    """Validation (out-of-sample) vs fitted (in-sample) reports"""

    @staticmethod
    def create_partition(n=36):
        rng = np.random.default_rng(7)
        values = 50 + np.cumsum(rng.normal(0, 1, n))
        return partition(TimeSeries.from_cycle(values, start=(2018, 1), frequency=12), 6)

    def test_modes_are_tagged(self):
        split = self.create_partition()
        forecast = NaiveModel().forecast(split.train, split.horizon)
        evaluator = AccuracyEvaluator()

        validation = evaluator.evaluate(forecast, split.valid, train=split.train)
        fitted = evaluator.evaluate_fitted(forecast, split.train)

        assert validation.mode is EvaluationMode.VALIDATION
        assert fitted.mode is EvaluationMode.FITTED
        assert validation.as_dict()["mode"] == "validation"
        assert fitted.as_dict()["mode"] == "fitted"

    def test_fitted_skips_burn_in(self):
        """Seasonal naive has no fitted value for the first cycle"""
        split = self.create_partition(36)
        forecast = SeasonalNaiveModel().forecast(split.train, split.horizon)
        fitted = AccuracyEvaluator().evaluate_fitted(forecast, split.train)
        assert fitted.n_obs == len(split.train) - 12

    @pytest.mark.fail_loud
    def test_fitted_requires_fitted_values(self):
        split = self.create_partition()
        forecast = build_forecast(split.train, np.zeros(split.horizon), "bare")
        with pytest.raises(InvalidParameterError):
            AccuracyEvaluator().evaluate_fitted(forecast, split.train)

    def test_interval_coverage(self):
        split = self.create_partition()
        forecast = NaiveModel().forecast(split.train, split.horizon)
        coverage = AccuracyEvaluator().interval_coverage(forecast, split.valid, 95)
        assert 0.0 <= coverage <= 100.0

    def test_report_lookup(self):
        report = evaluate(aligned([12.0, 18.0, 33.0]), aligned([10.0, 20.0, 30.0]))
        assert report["rmse"] == report.rmse
        with pytest.raises(KeyError):
            report["R2"]

    def test_compare_reports(self):
        reports = [
            evaluate(aligned([12.0, 18.0, 33.0]), aligned([10.0, 20.0, 30.0])),
            evaluate(aligned([10.0, 20.0, 30.0]), aligned([10.0, 20.0, 30.0])),
        ]
        frame = compare_reports(reports)
        assert isinstance(frame, pd.DataFrame)
        assert len(frame) == 2
        assert set(AccuracyReport.METRIC_NAMES[:5]) <= set(frame.columns)
