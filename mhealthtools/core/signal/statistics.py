"""
Time-Domain Statistics.

Scalar summaries of a 1-D signal. `time_domain_summary` is an extractor
(vector -> one row); the rest are small helpers shared with the tapping
features.
"""

from typing import Dict

import numpy as np
from scipy import stats


def _clean(y: np.ndarray) -> np.ndarray:
    y = np.asarray(y, dtype=np.float64).flatten()
    return y[~np.isnan(y)]


def _mean(y: np.ndarray) -> float:
    return float(np.mean(y)) if len(y) else np.nan


def coef_var(x: np.ndarray) -> float:
    """Coefficient of variation in percent: 100 * sd / mean."""
    x = _clean(x)
    if len(x) < 2:
        return np.nan
    m = np.mean(x)
    if m == 0:
        return np.nan
    return float(np.std(x, ddof=1) / m * 100)


def mean_tkeo(x: np.ndarray) -> float:
    """Mean Teager-Kaiser energy: mean of x[i]^2 - x[i+1] * x[i-1]."""
    x = _clean(x)
    if len(x) < 3:
        return np.nan
    return float(np.mean(x[1:-1] ** 2 - x[2:] * x[:-2]))


def fatigue(x: np.ndarray) -> Dict[str, float]:
    """
    Difference between the mean of the first and last X percent of x.

    Returns:
        dict with fatigue10, fatigue25, fatigue50
    """
    x = _clean(x)
    n = len(x)
    result = {}
    for name, top in (('fatigue10', int(round(0.1 * n))),
                      ('fatigue25', int(round(0.25 * n))),
                      ('fatigue50', int(np.floor(0.5 * n)))):
        if top < 1:
            result[name] = np.nan
            continue
        # tail slice holds top + 1 samples
        result[name] = _mean(x[:top]) - _mean(x[n - top - 1:])
    return result


def calculate_drift(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Step length between consecutive (x, y) points."""
    dx = np.diff(np.asarray(x, dtype=np.float64))
    dy = np.diff(np.asarray(y, dtype=np.float64))
    return np.sqrt(dx ** 2 + dy ** 2)


def mode(x: np.ndarray) -> float:
    """Most frequent value (smallest one on ties)."""
    x = _clean(x)
    if len(x) == 0:
        return np.nan
    return float(stats.mode(x, keepdims=False).mode)


def time_domain_summary(values: np.ndarray) -> Dict[str, float]:
    """
    Compute the time-domain summary of a signal.

    Args:
        values: Signal values (NaN dropped)

    Returns:
        dict with mean, median, mode, max, min, sd, skewness, kurtosis,
        q25, q75, iqr, range, cv, mad, tkeo, energy, rms
    """
    keys = ['mean', 'median', 'mode', 'max', 'min', 'sd', 'skewness', 'kurtosis',
            'q25', 'q75', 'iqr', 'range', 'cv', 'mad', 'tkeo', 'energy', 'rms']
    result = {k: np.nan for k in keys}

    y = _clean(values)
    if len(y) == 0:
        return result

    q25, q50, q75 = np.percentile(y, [25, 50, 75])
    result.update({
        'mean': float(np.mean(y)),
        'median': float(q50),
        'mode': mode(y),
        'max': float(np.max(y)),
        'min': float(np.min(y)),
        'q25': float(q25),
        'q75': float(q75),
        'iqr': float(q75 - q25),
        'range': float(np.max(y) - np.min(y)),
        'mad': float(stats.median_abs_deviation(y, scale='normal')),
        'energy': float(np.sum(y ** 2)),
        'rms': float(np.sqrt(np.mean(y ** 2))),
        'tkeo': mean_tkeo(y),
        'cv': coef_var(y),
    })

    if len(y) >= 2:
        result['sd'] = float(np.std(y, ddof=1))
    if len(y) >= 3 and np.std(y) > 0:
        result['skewness'] = float(stats.skew(y))
        result['kurtosis'] = float(stats.kurtosis(y, fisher=True))

    return result
