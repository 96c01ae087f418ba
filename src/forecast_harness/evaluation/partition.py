"""
Train / validation partitioning.

The partition is a prefix / suffix split of one series: the validation part
holds the last ``validation_length`` observations, the training part holds
everything before it. Both halves keep the parent's real period indices.
"""

import logging
from dataclasses import dataclass
from typing import Dict

import numpy as np

from forecast_harness.errors import InvalidHorizonError, MisalignedSeriesError
from forecast_harness.series.objects import TimeSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Partition:
    """Train prefix plus validation suffix of one series"""
    train: TimeSeries
    valid: TimeSeries

    def __post_init__(self):
        """Validate no leakage: same frequency, no overlap, no gap"""
        if self.train.frequency != self.valid.frequency:
            raise MisalignedSeriesError(
                "Train and validation frequency differ",
                train_frequency=self.train.frequency,
                valid_frequency=self.valid.frequency,
            )
        if self.valid.start != self.train.next_period:
            raise MisalignedSeriesError(
                "Validation must start right after training ends",
                train_end=self.train.end,
                valid_start=self.valid.start,
            )

    @property
    def horizon(self) -> int:
        return len(self.valid)

    def series(self) -> TimeSeries:
        """Reconstruct the partitioned prefix of the source series"""
        return self.train.concat(self.valid)

    @property
    def info(self) -> Dict:
        """Serialize partition info"""
        return {
            "train_start": str(self.train.label(self.train.start)),
            "train_end": str(self.train.label(self.train.end)),
            "valid_start": str(self.valid.label(self.valid.start)),
            "valid_end": str(self.valid.label(self.valid.end)),
            "train_size": len(self.train),
            "valid_size": len(self.valid),
        }


def partition(series: TimeSeries, validation_length: int) -> Partition:
    """
    Split ``series`` into train and the last ``validation_length`` periods.

    Raises:
        InvalidHorizonError: unless 0 < validation_length < len(series)
    """
    n = len(series)
    if (
        isinstance(validation_length, bool)
        or not isinstance(validation_length, (int, np.integer))
        or not 0 < validation_length < n
    ):
        raise InvalidHorizonError(
            "validation_length must satisfy 0 < validation_length < len(series)",
            series_length=n,
            validation_length=validation_length,
        )

    cut = n - int(validation_length)
    split = Partition(train=series.slice(0, cut), valid=series.slice(cut, n))
    logger.debug(f"Partitioned {n} observations: train={cut}, valid={validation_length}")
    return split


def partition_at(series: TimeSeries, first_validation_period) -> Partition:
    """
    Split so that ``first_validation_period`` is the first validation period.

    Accepts an integer ordinal, or a pandas Period / period string when the
    series carries a pandas freq (e.g. "1991-01").
    """
    ordinal = series.ordinal_of(first_validation_period)
    return partition(series, series.next_period - ordinal)


class SeriesPartitioner:
    """Reusable hold-out splitter with a fixed validation length"""

    def __init__(self, validation_length: int):
        self.validation_length = validation_length

    def split(self, series: TimeSeries) -> Partition:
        return partition(series, self.validation_length)
