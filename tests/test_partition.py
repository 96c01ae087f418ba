"""
Train / validation partitioning

Validates:
- No leakage: train + valid reconstruct the series exactly
- Boundaries: validation_length of 0 or len(series) fails loud
- Calendar-aware splits keep real period indices
"""

import numpy as np
import pandas as pd
import pytest
from hypothesis import given, settings, strategies as st

from forecast_harness.errors import InvalidHorizonError, MisalignedSeriesError
from forecast_harness.evaluation import Partition, SeriesPartitioner, partition, partition_at
from forecast_harness.series import TimeSeries


@st.composite
def series_and_validation_length(draw):
    n = draw(st.integers(min_value=2, max_value=200))
    frequency = draw(st.sampled_from([1, 4, 7, 12]))
    start = draw(st.integers(min_value=-500, max_value=500))
    values = draw(st.lists(
        st.floats(min_value=-1e6, max_value=1e6, allow_nan=False), min_size=n, max_size=n
    ))
    validation_length = draw(st.integers(min_value=1, max_value=n - 1))
    return TimeSeries(values, frequency=frequency, start=start), validation_length


class TestNoLeakageProperty:
    """Property: partition never drops, duplicates or reorders periods"""

    @given(series_and_validation_length())
    @settings(max_examples=100)
    def test_concatenation_reconstructs_series(self, data):
        series, validation_length = data
        split = partition(series, validation_length)

        assert split.series().equals(series)
        assert split.valid.start == split.train.end + 1
        assert split.train.start == series.start
        assert split.valid.end == series.end

    @given(series_and_validation_length())
    @settings(max_examples=100)
    def test_sizes_and_frequency(self, data):
        series, validation_length = data
        split = partition(series, validation_length)

        assert len(split.valid) == validation_length == split.horizon
        assert len(split.train) == len(series) - validation_length
        assert split.train.frequency == split.valid.frequency == series.frequency


@pytest.mark.fail_loud
class TestPartitionBoundaries:
    """validation_length must leave at least one period on each side"""

    @staticmethod
    def create_series(n=36):
        return TimeSeries.from_cycle(np.arange(n, dtype=float), start=(2000, 1), frequency=12)

    def test_zero_raises(self):
        with pytest.raises(InvalidHorizonError):
            partition(self.create_series(), 0)

    def test_full_length_raises(self):
        """No training data would remain"""
        with pytest.raises(InvalidHorizonError) as exc_info:
            partition(self.create_series(36), 36)
        assert exc_info.value.context["series_length"] == 36
        assert exc_info.value.context["validation_length"] == 36

    def test_longer_than_series_raises(self):
        with pytest.raises(InvalidHorizonError):
            partition(self.create_series(36), 40)

    def test_negative_raises(self):
        with pytest.raises(InvalidHorizonError):
            partition(self.create_series(), -1)

    def test_non_integer_raises(self):
        with pytest.raises(InvalidHorizonError):
            partition(self.create_series(), 2.5)
        with pytest.raises(InvalidHorizonError):
            partition(self.create_series(), True)

    def test_error_is_value_error(self):
        """Callers catching ValueError still see horizon failures"""
        with pytest.raises(ValueError):
            partition(self.create_series(), 0)

    def test_smallest_valid_splits(self):
        series = self.create_series(36)
        assert len(partition(series, 1).valid) == 1
        assert len(partition(series, 35).train) == 1


class TestPartitionObject:
    """Partition construction and helpers"""

    @staticmethod
    def create_series(n=48, start=(1987, 1)):
        return TimeSeries.from_cycle(np.arange(n, dtype=float), start=start, frequency=12)

    def test_partition_at_calendar_period(self):
        """Split 1987-01..1990-12 so that validation starts 1990-01"""
        split = partition_at(self.create_series(), "1990-01")
        assert split.train.label(split.train.end) == pd.Period("1989-12", freq="M")
        assert split.valid.label(split.valid.start) == pd.Period("1990-01", freq="M")
        assert split.horizon == 12

    def test_partition_at_ordinal(self):
        series = self.create_series()
        split = partition_at(series, series.start + 40)
        assert len(split.train) == 40

    def test_info(self):
        info = partition(self.create_series(), 12).info
        assert info["train_start"] == "1987-01"
        assert info["valid_end"] == "1990-12"
        assert info["train_size"] == 36
        assert info["valid_size"] == 12

    def test_series_partitioner(self):
        splitter = SeriesPartitioner(validation_length=6)
        split = splitter.split(self.create_series())
        assert split.horizon == 6

    @pytest.mark.fail_loud
    def test_gap_between_parts_raises(self):
        series = self.create_series()
        with pytest.raises(MisalignedSeriesError):
            Partition(train=series.slice(0, 10), valid=series.slice(11, 20))

    @pytest.mark.fail_loud
    def test_overlap_raises(self):
        series = self.create_series()
        with pytest.raises(MisalignedSeriesError):
            Partition(train=series.slice(0, 10), valid=series.slice(9, 20))

    @pytest.mark.fail_loud
    def test_frequency_mismatch_raises(self):
        train = TimeSeries([1.0, 2.0], frequency=12, start=0)
        valid = TimeSeries([3.0], frequency=4, start=2)
        with pytest.raises(MisalignedSeriesError):
            Partition(train=train, valid=valid)
