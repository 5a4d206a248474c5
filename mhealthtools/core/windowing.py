"""
Windowing Engine.

Splits each group of a Tidy Table into overlapping, tapered frames.

    step  = round(window_length * (1 - window_overlap))
    count = floor((n - window_length) / step) + 1      (n >= window_length)

A signal shorter than one window becomes a single window covering all of it,
tapered with a taper of the signal's own length.
"""

import logging
from typing import Sequence

import numpy as np
import polars as pl
from scipy.signal import get_window

from mhealthtools.core.result import Error, Result, Valid
from mhealthtools.core.tidy import TidyTable
from mhealthtools.validation import (
    ConfigurationError,
    MhealthtoolsError,
    as_polars,
    validate_window_params,
)

logger = logging.getLogger(__name__)

WINDOWING_ERROR = "Windowing error"
OUTLIER_WINDOW_ERROR = "Error tagging outlier windows"
PHONE_ROTATED = "Phone rotated within window"
NO_ERROR = "None"

WINDOW_COLUMNS = ('window', 'window_start_time', 'window_end_time')

# taper name -> scipy.signal.get_window name
TAPERS = {
    'rectangle': 'boxcar',
    'hamming': 'hamming',
    'hanning': 'hann',
    'bartlett': 'bartlett',
    'blackman': 'blackman',
    'flattop': 'flattop',
}


def scipy_window(name: str) -> str:
    """Map a taper name to the scipy window name, or raise ConfigurationError."""
    if name not in TAPERS:
        raise ConfigurationError(
            'window_name', f"unknown taper '{name}', expected one of {sorted(TAPERS)}"
        )
    return TAPERS[name]


def taper(name: str, length: int) -> np.ndarray:
    """Symmetric taper of the given length."""
    return get_window(scipy_window(name), int(length), fftbins=False)


def window_step(window_length: int, window_overlap: float) -> int:
    """Hop size between window starts; rejects overlaps that stall the hop."""
    step = int(round(window_length * (1 - window_overlap)))
    if step < 1:
        raise ConfigurationError(
            'window_overlap',
            f"overlap {window_overlap} leaves no step for window_length {window_length}",
        )
    return step


def _window_bounds(n: int, window_length: int, window_overlap: float):
    """0-based start indices and the effective frame length."""
    if n < window_length:
        return np.array([0], dtype=np.int64), n
    step = window_step(window_length, window_overlap)
    count = (n - window_length) // step + 1
    return np.arange(count, dtype=np.int64) * step, window_length


def window_start_end_times(
    t: Sequence[float],
    window_length: int,
    window_overlap: float,
) -> pl.DataFrame:
    """
    Describe each window by number, start/end time and 1-based indices.

    Args:
        t: Timestamps of one group, in order
        window_length: Samples per window
        window_overlap: Fraction of overlap between consecutive windows

    Returns:
        polars frame with window, window_start_time, window_end_time,
        window_start_index, window_end_index
    """
    validate_window_params(window_length, window_overlap)
    t = np.asarray(t, dtype=np.float64)
    if len(t) == 0:
        raise ValueError("cannot window an empty signal")

    starts, length = _window_bounds(len(t), window_length, window_overlap)
    ends = starts + length - 1

    return pl.DataFrame({
        'window': np.arange(1, len(starts) + 1, dtype=np.int64),
        'window_start_time': t[starts],
        'window_end_time': t[ends],
        'window_start_index': starts + 1,
        'window_end_index': ends + 1,
    })


def window_signal(
    values: Sequence[float],
    window_length: int = 256,
    window_overlap: float = 0.5,
    window_name: str = 'hamming',
) -> np.ndarray:
    """
    Tapered frames of a signal.

    Returns:
        Array of shape (frame_length, n_windows); frame_length is
        window_length, or len(values) when the signal is shorter
    """
    validate_window_params(window_length, window_overlap)
    values = np.asarray(values, dtype=np.float64)
    if len(values) == 0:
        raise ValueError("cannot window an empty signal")

    starts, length = _window_bounds(len(values), window_length, window_overlap)
    w = taper(window_name, length)
    idx = starts[np.newaxis, :] + np.arange(length)[:, np.newaxis]
    return values[idx] * w[:, np.newaxis]


def window(
    table: TidyTable,
    window_length: int,
    window_overlap: float,
    window_name: str = 'hamming',
) -> Result:
    """
    Window every group and number the frames 1..K.

    Every numeric column other than `t` and the group keys (value and any
    derived metric such as jerk or velocity) is framed and tapered alike.

    Returns:
        Valid table with *group_keys, window, window_start_time,
        window_end_time, *measured columns grouped by group_keys + ('window',),
        or Error("Windowing error")
    """
    validate_window_params(window_length, window_overlap)
    scipy_window(window_name)

    keys = list(table.group_keys)
    skip = set(keys) | {'t', *WINDOW_COLUMNS}
    measured = [c for c in table.columns if c not in skip and table.frame[c].dtype.is_numeric()]

    def _window_group(key, sub: pl.DataFrame) -> pl.DataFrame:
        if not measured:
            raise ValueError("no measured column to window")
        bounds = window_start_end_times(sub['t'].to_numpy(), window_length, window_overlap)
        frame_length = min(len(sub), window_length)

        out = pl.DataFrame({
            col: np.repeat(bounds[col].to_numpy(), frame_length) for col in WINDOW_COLUMNS
        })
        for col in measured:
            frames = window_signal(sub[col].cast(pl.Float64).to_numpy(), window_length,
                                   window_overlap, window_name)
            # column-major: frame 1 samples first, then frame 2 ...
            out = out.with_columns(pl.Series(col, frames.T.ravel()))
        if keys:
            out = out.with_columns([pl.lit(key[k]).alias(k) for k in keys])
        return out.select(keys + list(WINDOW_COLUMNS) + measured)

    try:
        windowed = table.map_partitions(_window_group, group_keys=keys + ['window'])
    except MhealthtoolsError:
        raise
    except Exception as e:
        logger.debug("windowing failed: %s", e)
        return Error(WINDOWING_ERROR)
    return Valid(windowed)


def _rotated(frame: np.ndarray) -> bool:
    """Extremes of opposite sign: the axis crossed zero inside the frame."""
    return bool(np.sign(frame.max()) != np.sign(frame.min()))


def tag_outlier_windows(gravity, window_length: int, window_overlap: float) -> Result:
    """
    Flag windows in which the device orientation flipped.

    Each gravity axis is cut into rectangle windows; a window is tagged
    "Phone rotated within window" if, on any axis, its maximum and minimum
    have different signs.

    Args:
        gravity: Wide frame of gravity axis columns (an optional `t` orders rows)
        window_length: Samples per window
        window_overlap: Fraction of overlap between consecutive windows

    Returns:
        Valid table with columns window, error (one row per window),
        or Error("Error tagging outlier windows")
    """
    try:
        df = as_polars(gravity)
        if 't' in df.columns:
            df = df.sort('t', maintain_order=True)
        axes = [c for c in df.columns if c not in ('t', 'error') and df[c].dtype.is_numeric()]
        if not axes:
            raise ValueError("no gravity axis columns")

        flags = {}
        for axis in axes:
            frames = window_signal(df[axis].cast(pl.Float64).to_numpy(),
                                   window_length, window_overlap, 'rectangle')
            for k in range(frames.shape[1]):
                flags[k + 1] = flags.get(k + 1, False) or _rotated(frames[:, k])
    except Exception as e:
        logger.debug("outlier window tagging failed: %s", e)
        return Error(OUTLIER_WINDOW_ERROR)

    windows = sorted(flags)
    frame = pl.DataFrame({
        'window': pl.Series('window', windows, dtype=pl.Int64),
        'error': [PHONE_ROTATED if flags[w] else NO_ERROR for w in windows],
    })
    return Valid(TidyTable(frame=frame))
