"""
Transform Stage Library.

Every table-level transform takes a TidyTable, works group by group and
returns a Result. Data-dependent failures collapse to an Error with a fixed
message; configuration mistakes raise ConfigurationError before any data is
touched.

Vector helpers (detrend, bandpass, derivative, integral, autocorrelation)
are plain numpy functions and raise on bad input.
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np
import polars as pl
from scipy import signal

from mhealthtools.core.result import Error, Result, Valid
from mhealthtools.core.tidy import TidyTable
from mhealthtools.core.windowing import scipy_window
from mhealthtools.validation import (
    ConfigurationError,
    MhealthtoolsError,
    validate_frequency_range,
)

logger = logging.getLogger(__name__)

NOT_ENOUGH_TIME_SAMPLES = "Not enough time samples"
DETREND_ERROR = "Detrend error"
BANDPASS_ERROR = "Bandpass filter error"
ACF_ERROR = "Error calculating ACF"

# LOWESS needs a handful of points to fit anything local
_MIN_DETREND_POINTS = 4


# =============================================================================
# Time filter
# =============================================================================

def filter_time(table: TidyTable, t1: float, t2: float) -> Result:
    """
    Keep samples with t1 <= t <= t2 (inclusive).

    Returns:
        Valid table, or Error("Not enough time samples") when nothing is left
        or the table has no `t` column
    """
    if 't' not in table.columns:
        return Error(NOT_ENOUGH_TIME_SAMPLES)

    try:
        frame = table.frame.filter((pl.col('t') >= t1) & (pl.col('t') <= t2))
    except Exception as e:
        logger.debug("filter_time failed: %s", e)
        return Error(NOT_ENOUGH_TIME_SAMPLES)

    if frame.height == 0:
        return Error(NOT_ENOUGH_TIME_SAMPLES)
    return Valid(table.with_frame(frame))


# =============================================================================
# Detrend
# =============================================================================

def detrend(time: np.ndarray, values: np.ndarray, span: float = 0.75) -> np.ndarray:
    """
    Remove slow drift with a LOWESS fit of values against time.

    Args:
        time: Timestamps
        values: Samples, same length as time
        span: Fraction of points used for each local fit

    Returns:
        Residuals (observed - fitted)
    """
    from statsmodels.nonparametric.smoothers_lowess import lowess

    time = np.asarray(time, dtype=np.float64)
    values = np.asarray(values, dtype=np.float64)

    if len(values) != len(time):
        raise ValueError("time and values must have the same length")
    if len(values) < _MIN_DETREND_POINTS:
        raise ValueError(f"detrend needs at least {_MIN_DETREND_POINTS} points, got {len(values)}")

    fitted = lowess(values, time, frac=span, it=0, return_sorted=False)
    if not np.all(np.isfinite(fitted)):
        raise ValueError("LOWESS fit produced non-finite values")

    return values - fitted


def mutate_detrend(table: TidyTable, span: float = 0.75) -> Result:
    """Replace `value` by its LOWESS residual, per group."""

    def _detrend_group(key, sub: pl.DataFrame) -> pl.DataFrame:
        residual = detrend(sub['t'].to_numpy(), sub['value'].to_numpy(), span=span)
        return sub.with_columns(pl.Series('value', residual, dtype=pl.Float64))

    try:
        return Valid(table.map_partitions(_detrend_group))
    except Exception as e:
        logger.debug("detrend failed: %s", e)
        return Error(DETREND_ERROR)


# =============================================================================
# Band-pass filter
# =============================================================================

def _check_filter_length(window_length: int) -> int:
    if window_length is None or int(window_length) != window_length or window_length < 2:
        raise ConfigurationError('window_length', f"filter needs at least 2 taps, got {window_length}")
    return int(window_length)


def bandpass(
    values: np.ndarray,
    window_length: int,
    sampling_rate: float,
    frequency_range: Sequence[float],
    window: str = 'hamming',
) -> np.ndarray:
    """
    Zero-phase FIR band-pass filter.

    Args:
        values: Samples (no NaN)
        window_length: Number of filter taps
        sampling_rate: Sampling rate in Hz
        frequency_range: (f_low, f_high) in Hz, both below Nyquist
        window: Taper used to design the filter

    Returns:
        Filtered samples, same length as input

    Raises:
        ConfigurationError: frequency bounds outside (0, Nyquist), bad length
        ValueError: NaN in values
    """
    f_low, f_high = validate_frequency_range(frequency_range, sampling_rate)
    numtaps = _check_filter_length(window_length)

    values = np.asarray(values, dtype=np.float64)
    if np.isnan(values).any():
        raise ValueError("NA values present in input.")

    taps = signal.firwin(
        numtaps,
        [f_low, f_high],
        pass_zero=False,
        window=scipy_window(window),
        fs=sampling_rate,
    )
    padlen = min(3 * len(taps), len(values) - 1)
    return signal.filtfilt(taps, [1.0], values, padlen=max(padlen, 0))


def mutate_bandpass(
    table: TidyTable,
    window_length: int,
    sampling_rate: float,
    frequency_range: Sequence[float],
    window: str = 'hamming',
) -> Result:
    """Band-pass `value` per group. Config errors raise, data errors -> Error."""
    validate_frequency_range(frequency_range, sampling_rate)
    _check_filter_length(window_length)
    scipy_window(window)

    def _filter_group(key, sub: pl.DataFrame) -> pl.DataFrame:
        filtered = bandpass(sub['value'].to_numpy(), window_length,
                            sampling_rate, frequency_range, window)
        return sub.with_columns(pl.Series('value', filtered, dtype=pl.Float64))

    try:
        return Valid(table.map_partitions(_filter_group))
    except MhealthtoolsError:
        raise
    except Exception as e:
        logger.debug("bandpass failed: %s", e)
        return Error(BANDPASS_ERROR)


# =============================================================================
# Derivative / integral
# =============================================================================

def derivative(v: np.ndarray) -> np.ndarray:
    """v[i] - v[i-1], with the first element defined as 0."""
    v = np.asarray(v, dtype=np.float64)
    d = np.zeros_like(v)
    if len(v) > 1:
        d[1:] = np.diff(v)
    return d


def integral(v: np.ndarray) -> np.ndarray:
    """Inverse of the lagged difference, without the leading zero offset."""
    return np.cumsum(np.asarray(v, dtype=np.float64))


def _mutate_scaled(table, sampling_rate, col, derived_col, fn) -> Result:
    def _add_column(key, sub: pl.DataFrame) -> pl.DataFrame:
        derived = fn(sub[col].to_numpy()) * sampling_rate
        return sub.with_columns(pl.Series(derived_col, derived, dtype=pl.Float64))

    try:
        return Valid(table.map_partitions(_add_column))
    except Exception as e:
        logger.debug("%s failed for %s: %s", fn.__name__, derived_col, e)
        return Error(f"Error calculating {derived_col}")


def mutate_derivative(table: TidyTable, sampling_rate: float, col: str, derived_col: str) -> Result:
    """Add `derived_col` = derivative(col) * sampling_rate, per group."""
    return _mutate_scaled(table, sampling_rate, col, derived_col, derivative)


def mutate_integral(table: TidyTable, sampling_rate: float, col: str, derived_col: str) -> Result:
    """Add `derived_col` = integral(col) * sampling_rate, per group."""
    return _mutate_scaled(table, sampling_rate, col, derived_col, integral)


# =============================================================================
# Autocorrelation
# =============================================================================

def default_lag_max(n: int) -> int:
    """floor(10 * log10(n)), capped at n - 1."""
    if n < 2:
        return 0
    return int(min(n - 1, math.floor(10 * math.log10(n))))


def autocorrelation(values: np.ndarray, lag_max: Optional[int] = None) -> np.ndarray:
    """
    Sample autocorrelation at lags 1..lag_max (lag 0 dropped).

    Raises:
        ValueError: fewer than 2 samples, NaN input, constant signal
    """
    from statsmodels.tsa.stattools import acf

    values = np.asarray(values, dtype=np.float64)
    n = len(values)
    if n < 2:
        raise ValueError("autocorrelation needs at least 2 samples")
    if np.isnan(values).any():
        raise ValueError("NA values present in input.")
    if np.std(values) < 1e-15:
        raise ValueError("autocorrelation of a constant signal is undefined")

    if lag_max is None:
        lag_max = default_lag_max(n)
    lag_max = int(min(lag_max, n - 1))

    return acf(values, nlags=lag_max, fft=False)[1:]


def mutate_acf(table: TidyTable, col: str = 'value', lag_max: Optional[int] = None) -> Result:
    """
    Replace each group by its autocorrelation function.

    Returns:
        Table with group key columns plus `lag` and `acf`, same grouping
    """
    keys = list(table.group_keys)

    def _acf_group(key, sub: pl.DataFrame) -> pl.DataFrame:
        r = autocorrelation(sub[col].to_numpy(), lag_max)
        out = pl.DataFrame({
            'lag': np.arange(1, len(r) + 1, dtype=np.int64),
            'acf': r.astype(np.float64),
        })
        if keys:
            out = out.with_columns([pl.lit(key[k]).alias(k) for k in keys])
        return out.select(keys + ['lag', 'acf'])

    try:
        return Valid(table.map_partitions(_acf_group))
    except Exception as e:
        logger.debug("acf failed: %s", e)
        return Error(ACF_ERROR)
