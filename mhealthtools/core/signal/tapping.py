"""
Tapping Features.

Touchscreen tapping: tap events are split into left/right depress events
by jumps in the centred x coordinate; summaries are computed on the tap
table, the inter-tap intervals and the tap drift.

Each summary returns one row with an `error` field: "None" on success,
otherwise a fixed message and no features.
"""

import logging
from typing import Any, Dict, NamedTuple, Optional

import numpy as np
import polars as pl
from scipy import stats

from mhealthtools.core.signal.statistics import coef_var, fatigue, mean_tkeo
from mhealthtools.validation import as_polars

logger = logging.getLogger(__name__)

MIN_TAP_EVENTS = 5

TAP_DATA_ERROR = "Error calculating tap data(frame) summary features"
INTERTAP_ERROR = "Error Calculating intertap summary features"
TAPDRIFT_ERROR = "Error Calculating tapdrift summary features"


class TapEvents(NamedTuple):
    tap_data: Optional[pl.DataFrame]
    tap_intervals: Optional[np.ndarray]
    error: bool


def get_left_right_events_and_tap_intervals(tap_data, depress_threshold: float = 20) -> TapEvents:
    """
    Keep the first tap and every tap whose centred x jumps by more than
    `depress_threshold` from the previous one.

    Args:
        tap_data: Frame with t, x, y, buttonid
        depress_threshold: Minimum |dx| marking a new depress event

    Returns:
        TapEvents; error is True (and the rest None) with fewer than 5 events
    """
    df = as_polars(tap_data)
    t = df['t'].cast(pl.Float64).to_numpy()
    x = df['x'].cast(pl.Float64).to_numpy()

    tap_time = t - t[0]
    dx = np.diff(x - x.mean())
    keep = np.concatenate([[0], np.where(np.abs(dx) > depress_threshold)[0] + 1])

    events = df.select(pl.all().gather(keep))
    if events.height < MIN_TAP_EVENTS:
        return TapEvents(tap_data=None, tap_intervals=None, error=True)
    return TapEvents(tap_data=events, tap_intervals=np.diff(tap_time[keep]), error=False)


def _spread(v: np.ndarray) -> Dict[str, float]:
    """Location/spread statistics shared by the interval and drift summaries."""
    q25, q75 = np.percentile(v, [25, 75])
    return {
        'mean': float(np.mean(v)),
        'median': float(np.median(v)),
        'iqr': float(q75 - q25),
        'min': float(np.min(v)),
        'max': float(np.max(v)),
        'skew': float(stats.skew(v)),
        'kur': float(stats.kurtosis(v, fisher=True)),
        'sd': float(np.std(v, ddof=1)),
        'mad': float(stats.median_abs_deviation(v, scale='normal')),
        'cv': coef_var(v),
        'range': float(np.max(v) - np.min(v)),
    }


def _drop_nan(v) -> np.ndarray:
    v = np.asarray(v, dtype=np.float64)
    return v[~np.isnan(v)]


def tap_data_summary_features(tap_data) -> Dict[str, Any]:
    """Tap count, share of taps hitting neither button, x/y correlation."""
    try:
        df = as_polars(tap_data)
        n = df.height
        pair = df.select(pl.col('x', 'y').cast(pl.Float64)).drop_nulls().drop_nans()
        return {
            'number_taps': n,
            'button_none_freq': float((df['buttonid'] == 'TappedButtonNone').sum() / n),
            'cor_xy': float(np.corrcoef(pair['x'].to_numpy(), pair['y'].to_numpy())[0, 1]),
            'error': 'None',
        }
    except Exception as e:
        logger.debug("tap data summary failed: %s", e)
        return {'error': TAP_DATA_ERROR}


def intertap_summary_features(tap_intervals) -> Dict[str, Any]:
    """Distribution, lag-1/2 autocorrelation and fatigue of inter-tap intervals."""
    from statsmodels.tsa.stattools import acf

    v = _drop_nan(tap_intervals)
    try:
        r = acf(v, nlags=2, fft=False)
        ar1, ar2 = float(r[1]), float(r[2])
    except Exception:
        ar1, ar2 = np.nan, np.nan

    try:
        if len(v) < 2:
            raise ValueError("need at least 2 intervals")
        features = _spread(v)
        features.update({'tkeo': mean_tkeo(v), 'ar1': ar1, 'ar2': ar2})
        features.update(fatigue(v))
        features['error'] = 'None'
        return features
    except Exception as e:
        logger.debug("intertap summary failed: %s", e)
        return {'error': INTERTAP_ERROR}


def tapdrift_summary_features(tap_drift) -> Dict[str, Any]:
    """Distribution summary of tap drift (distance between consecutive taps)."""
    v = _drop_nan(tap_drift)
    try:
        if len(v) < 2:
            raise ValueError("need at least 2 drift values")
        features = _spread(v)
        features['error'] = 'None'
        return features
    except Exception as e:
        logger.debug("tapdrift summary failed: %s", e)
        return {'error': TAPDRIFT_ERROR}
