"""
Series objects: an immutable, period-indexed TimeSeries.

Periods are integer ordinals with step 1. ``frequency`` is the number of
periods in one natural cycle (12 for monthly data with an annual season),
so ``time = period / frequency``. When a pandas ``freq`` is attached the
ordinals are pandas Period ordinals and the series converts losslessly to
and from a ``PeriodIndex``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

import numpy as np
import pandas as pd

from forecast_harness.errors import InvalidParameterError, MisalignedSeriesError

logger = logging.getLogger(__name__)

# pandas frequency alias -> periods per natural cycle
PANDAS_FREQUENCY = {
    "M": 12, "ME": 12, "MS": 12,
    "Q": 4, "QE": 4, "QS": 4,
    "Y": 1, "YE": 1, "YS": 1, "A": 1, "AS": 1,
    "W": 52,
    "D": 7,
    "B": 5,
    "H": 24,
}

# frequency -> pandas Period alias whose ordinals count from 1970
CYCLE_FREQ = {12: "M", 4: "Q", 1: "Y"}


def frequency_from_freqstr(freqstr: str) -> int:
    """Map a pandas frequency string (e.g. "M", "Q-DEC", "ME") to periods per cycle."""
    base = freqstr.split("-")[0].upper().lstrip("0123456789")
    if base not in PANDAS_FREQUENCY:
        raise InvalidParameterError(
            "Cannot derive a seasonal frequency from pandas freq; pass frequency explicitly",
            freq=freqstr,
        )
    return PANDAS_FREQUENCY[base]


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """Ordered, equally spaced observations with a contiguous period index"""
    values: np.ndarray
    frequency: int = 1
    start: int = 0
    freq: Optional[str] = None

    def __post_init__(self):
        try:
            values = np.array(self.values, dtype=float)
        except (TypeError, ValueError) as e:
            raise InvalidParameterError("Series values must be numeric") from e

        if values.ndim != 1:
            raise InvalidParameterError("Series values must be one-dimensional", ndim=values.ndim)
        if len(values) == 0:
            raise InvalidParameterError("Series must contain at least one observation")
        if int(self.frequency) < 1:
            raise InvalidParameterError("frequency must be >= 1", frequency=self.frequency)

        values.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "frequency", int(self.frequency))
        object.__setattr__(self, "start", int(self.start))

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_cycle(
        cls,
        values,
        start: Tuple[int, int] = (1970, 1),
        frequency: int = 12,
    ) -> "TimeSeries":
        """
        Build a series from a (cycle, position) start, e.g. (1991, 1) for
        January 1991 with frequency 12.
        """
        cycle, position = start
        if not 1 <= position <= frequency:
            raise InvalidParameterError(
                "Start position must lie within the cycle",
                position=position,
                frequency=frequency,
            )
        ordinal = (cycle - 1970) * frequency + (position - 1)
        return cls(values, frequency=frequency, start=ordinal, freq=CYCLE_FREQ.get(frequency))

    @classmethod
    def from_pandas(cls, series: pd.Series, frequency: Optional[int] = None) -> "TimeSeries":
        """
        Build a series from a pandas Series.

        Accepts a PeriodIndex, a DatetimeIndex with a known or inferable
        frequency, or an integer index of period ordinals (frequency required).
        Gaps, duplicates and unsorted periods fail loud.
        """
        index = series.index

        if isinstance(index, pd.DatetimeIndex):
            if index.freq is None:
                inferred = pd.infer_freq(index) if len(index) >= 3 else None
                if inferred is None:
                    raise MisalignedSeriesError(
                        "Cannot infer a regular frequency from DatetimeIndex (gaps or too few rows?)",
                        n_rows=len(index),
                    )
                index = pd.DatetimeIndex(index, freq=inferred)
            index = index.to_period()

        if isinstance(index, pd.PeriodIndex):
            ordinals = index.asi8
            freq = index.freqstr
            if frequency is None:
                frequency = frequency_from_freqstr(freq)
        elif pd.api.types.is_integer_dtype(index):
            if frequency is None:
                raise InvalidParameterError("frequency is required for an integer-indexed series")
            ordinals = np.asarray(index, dtype=np.int64)
            freq = None
        else:
            raise MisalignedSeriesError(
                "Series index must be a PeriodIndex, DatetimeIndex or integer ordinals",
                index_type=type(index).__name__,
            )

        steps = np.diff(ordinals)
        if len(steps) and not np.all(steps == 1):
            n_gaps = int((steps > 1).sum())
            n_unordered = int((steps < 1).sum())
            raise MisalignedSeriesError(
                "Series periods must be contiguous and strictly increasing",
                n_gaps=n_gaps,
                n_duplicate_or_unordered=n_unordered,
            )

        return cls(series.to_numpy(dtype=float), frequency=frequency, start=int(ordinals[0]), freq=freq)

    # ------------------------------------------------------------------
    # Period index
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(self.values.tolist())

    def __getitem__(self, key: Union[int, slice]):
        if isinstance(key, slice):
            if key.step not in (None, 1):
                raise InvalidParameterError("Strided slices break period contiguity", step=key.step)
            begin, stop, _ = key.indices(len(self))
            return self.slice(begin, stop)
        return float(self.values[key])

    def __repr__(self) -> str:
        return (
            f"TimeSeries(n={len(self)}, frequency={self.frequency}, "
            f"start={self.label(self.start)}, end={self.label(self.end)})"
        )

    @property
    def end(self) -> int:
        """Last period ordinal"""
        return self.start + len(self) - 1

    @property
    def next_period(self) -> int:
        """Period immediately following the last observation"""
        return self.end + 1

    @property
    def periods(self) -> np.ndarray:
        return np.arange(self.start, self.start + len(self), dtype=np.int64)

    @property
    def time(self) -> np.ndarray:
        """Fractional time, one unit per natural cycle"""
        return self.periods / self.frequency

    @property
    def season_positions(self) -> np.ndarray:
        """Position of each observation within its cycle (0 .. frequency-1)"""
        return np.mod(self.periods, self.frequency)

    def label(self, period: int) -> Any:
        """Human-readable label for a period ordinal"""
        if self.freq is None:
            return int(period)
        return pd.Period(ordinal=int(period), freq=self.freq)

    def index(self) -> pd.Index:
        if self.freq is None:
            return pd.Index(self.periods, name="period")
        first = pd.Period(ordinal=self.start, freq=self.freq)
        return pd.period_range(start=first, periods=len(self), freq=self.freq, name="period")

    def to_pandas(self, name: Optional[str] = None) -> pd.Series:
        return pd.Series(np.array(self.values), index=self.index(), name=name)

    def ordinal_of(self, period) -> int:
        """Resolve an int ordinal, pandas Period or period string to an ordinal"""
        if isinstance(period, (int, np.integer)):
            return int(period)
        if self.freq is None:
            raise InvalidParameterError(
                "Calendar periods need a series with a pandas freq", period=period
            )
        return int(pd.Period(period, freq=self.freq).ordinal)

    # ------------------------------------------------------------------
    # Derivation (always returns new series)
    # ------------------------------------------------------------------

    def _derive(self, values, start: int) -> "TimeSeries":
        return TimeSeries(values, frequency=self.frequency, start=start, freq=self.freq)

    def slice(self, begin: int, stop: int) -> "TimeSeries":
        """Positional slice that keeps the true period indices"""
        begin, stop, _ = slice(begin, stop).indices(len(self))
        if stop <= begin:
            raise InvalidParameterError("Slice would produce an empty series", begin=begin, stop=stop)
        return self._derive(self.values[begin:stop], self.start + begin)

    def between(self, first_period: int, last_period: int) -> "TimeSeries":
        """Sub-series covering the inclusive period range"""
        if first_period < self.start or last_period > self.end:
            raise MisalignedSeriesError(
                "Requested periods fall outside the series",
                requested=(first_period, last_period),
                available=(self.start, self.end),
            )
        return self.slice(first_period - self.start, last_period - self.start + 1)

    def with_values(self, values) -> "TimeSeries":
        """Same periods, new values"""
        values = np.asarray(values, dtype=float)
        if len(values) != len(self):
            raise MisalignedSeriesError(
                "Replacement values must match series length",
                expected=len(self),
                got=len(values),
            )
        return self._derive(values, self.start)

    def following(self, values) -> "TimeSeries":
        """A series that starts at the period right after this one ends"""
        return self._derive(values, self.next_period)

    def concat(self, other: "TimeSeries") -> "TimeSeries":
        if other.frequency != self.frequency:
            raise MisalignedSeriesError(
                "Cannot concatenate series of different frequency",
                left=self.frequency,
                right=other.frequency,
            )
        if other.start != self.next_period:
            raise MisalignedSeriesError(
                "Concatenated series must start right after this one",
                expected_start=self.next_period,
                got_start=other.start,
            )
        return self._derive(np.concatenate([self.values, other.values]), self.start)

    def diff(self, lag: int = 1) -> "TimeSeries":
        """Lagged difference y[t] - y[t - lag]"""
        if lag < 1 or lag >= len(self):
            raise InvalidParameterError("diff lag must satisfy 1 <= lag < len(series)", lag=lag, n=len(self))
        return self._derive(self.values[lag:] - self.values[:-lag], self.start + lag)

    def lag(self, k: int = 1) -> "TimeSeries":
        """Shift the index: the value observed at period t appears at period t + k"""
        return self._derive(self.values, self.start + k)

    def moving_average(self, window: int, centered: bool = False) -> "TimeSeries":
        """
        Trailing or centered moving average.

        Trailing: value at t is the mean of y[t-window+1 .. t].
        Centered with an even window uses the 2 x window convention.
        """
        if window < 1 or window > len(self):
            raise InvalidParameterError(
                "moving average window must satisfy 1 <= window <= len(series)",
                window=window,
                n=len(self),
            )
        rolled = pd.Series(self.values).rolling(window).mean().to_numpy()

        if not centered:
            return self._derive(rolled[window - 1:], self.start + window - 1)

        if window % 2 == 1:
            half = (window - 1) // 2
            return self._derive(rolled[window - 1:], self.start + half)

        if window == len(self):
            raise InvalidParameterError("Centered even window needs len(series) > window", window=window)
        doubled = pd.Series(rolled).rolling(2).mean().to_numpy()
        return self._derive(doubled[window:], self.start + window // 2)

    def log(self) -> "TimeSeries":
        if np.any(self.values[np.isfinite(self.values)] <= 0):
            raise InvalidParameterError("log transform requires strictly positive values")
        return self._derive(np.log(self.values), self.start)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def is_aligned_with(self, other: "TimeSeries") -> bool:
        return (
            self.frequency == other.frequency
            and self.start == other.start
            and len(self) == len(other)
        )

    def align(self, other: "TimeSeries") -> Tuple["TimeSeries", "TimeSeries"]:
        """Restrict both series to their common period range"""
        if other.frequency != self.frequency:
            raise MisalignedSeriesError(
                "Cannot align series of different frequency",
                left=self.frequency,
                right=other.frequency,
            )
        first = max(self.start, other.start)
        last = min(self.end, other.end)
        if first > last:
            raise MisalignedSeriesError(
                "Series share no periods",
                left=(self.start, self.end),
                right=(other.start, other.end),
            )
        return self.between(first, last), other.between(first, last)

    def equals(self, other: "TimeSeries") -> bool:
        return self.is_aligned_with(other) and np.array_equal(
            self.values, other.values, equal_nan=True
        )
