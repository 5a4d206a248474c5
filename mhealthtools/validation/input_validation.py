"""
Input Validation

Structural checks run before data enters the transform pipeline.

PRINCIPLE: "Check before compute, not after failure"

Usage:
    from mhealthtools.validation import validate_sensor_data

    frame, axes = validate_sensor_data(raw)   # raises MalformedInputError
"""

import math
from typing import Any, Optional, Sequence, Tuple

import pandas as pd
import polars as pl

from .errors import ConfigurationError, MalformedInputError


def as_polars(sensor_data: Any) -> pl.DataFrame:
    """Coerce a polars frame, pandas frame or dict of columns to polars."""
    if isinstance(sensor_data, pl.DataFrame):
        return sensor_data
    if isinstance(sensor_data, dict):
        return pl.DataFrame(sensor_data)
    if isinstance(sensor_data, pd.DataFrame):
        return pl.from_pandas(sensor_data)
    raise MalformedInputError(
        f"Unsupported sensor data type: {type(sensor_data).__name__}"
    )


def validate_sensor_data(
    sensor_data: Any,
    axes: Optional[Sequence[str]] = None,
) -> Tuple[pl.DataFrame, Tuple[str, ...]]:
    """
    Validate a wide sensor table (t plus axis columns).

    Args:
        sensor_data: polars/pandas frame or dict with a `t` column
        axes: Axis columns to keep. Defaults to every numeric non-t column.

    Returns:
        (frame, axes) with `t` and axis columns cast to Float64

    Raises:
        MalformedInputError: t absent or missing values, no usable axis columns
    """
    df = as_polars(sensor_data)

    if 't' not in df.columns:
        raise MalformedInputError("Input has no time column", column='t')

    t = df['t'].cast(pl.Float64, strict=False)
    if t.null_count() > 0 or t.is_nan().any():
        raise MalformedInputError("NA values present in time column", column='t')

    if axes is None:
        axes = tuple(
            c for c in df.columns
            if c not in ('t', 'error') and df[c].dtype.is_numeric()
        )
    else:
        axes = tuple(axes)
        for axis in axes:
            if axis not in df.columns:
                raise MalformedInputError("Axis column not found", column=axis)
            if not df[axis].dtype.is_numeric():
                raise MalformedInputError("Axis column is not numeric", column=axis)

    if not axes:
        raise MalformedInputError("Input has no numeric axis columns")

    df = df.select(
        [pl.col('t').cast(pl.Float64, strict=False)]
        + [pl.col(a).cast(pl.Float64) for a in axes]
    )
    return df, axes


def validate_window_params(window_length: int, window_overlap: float) -> None:
    """Raise ConfigurationError for impossible window parameters."""
    if window_length is None or int(window_length) != window_length or window_length < 1:
        raise ConfigurationError('window_length', f"must be a positive integer, got {window_length}")
    if window_overlap is None or not (0.0 <= window_overlap <= 1.0):
        raise ConfigurationError('window_overlap', f"must lie in [0, 1], got {window_overlap}")


def validate_frequency_range(
    frequency_range: Sequence[float],
    sampling_rate: float,
) -> Tuple[float, float]:
    """
    Check a band-pass frequency range against the Nyquist limit.

    Returns:
        (f_low, f_high)

    Raises:
        ConfigurationError: unless 0 < f_low < f_high < sampling_rate / 2
    """
    if sampling_rate is None or not math.isfinite(sampling_rate) or sampling_rate <= 0:
        raise ConfigurationError('sampling_rate', f"must be finite and positive, got {sampling_rate}")
    if len(frequency_range) != 2:
        raise ConfigurationError('frequency_range', "must contain exactly two bounds")

    f_low, f_high = float(frequency_range[0]), float(frequency_range[1])
    nyquist = sampling_rate / 2.0
    if f_low >= nyquist or f_high >= nyquist:
        raise ConfigurationError(
            'frequency_range',
            f"Frequency parameters must be below half the sampling rate ({nyquist:.3f} Hz)",
        )
    if f_low <= 0 or f_low >= f_high:
        raise ConfigurationError(
            'frequency_range', f"expected 0 < low < high, got [{f_low}, {f_high}]"
        )
    return f_low, f_high
