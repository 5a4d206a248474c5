"""
Empirical Mode Decomposition.

Hilbert-Huang sifting: a signal is peeled into intrinsic mode functions
(IMFs), fastest oscillation first, plus a slowly varying residual.

    values = imf_1 + imf_2 + ... + imf_k + residual
"""

import logging
from typing import Callable, Tuple

import numpy as np
import polars as pl
from scipy.interpolate import CubicSpline
from scipy.signal import argrelextrema

from mhealthtools.core.result import Error, Result, Valid
from mhealthtools.core.tidy import TidyTable

logger = logging.getLogger(__name__)

IMF_ERROR = "IMF error"

Decomposer = Callable[..., Tuple[np.ndarray, np.ndarray]]


def _extrema(x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    maxima = argrelextrema(x, np.greater)[0]
    minima = argrelextrema(x, np.less)[0]
    return maxima, minima


def _envelope(x: np.ndarray, idx: np.ndarray) -> np.ndarray:
    """Cubic spline through the extrema, pinned at both end points."""
    n = len(x)
    knots = np.unique(np.concatenate([[0], idx, [n - 1]]))
    spline = CubicSpline(knots, x[knots])
    return spline(np.arange(n))


def _sift(x: np.ndarray, max_sift: int, sd_threshold: float) -> np.ndarray:
    h = x.copy()
    for _ in range(max_sift):
        maxima, minima = _extrema(h)
        if len(maxima) < 2 or len(minima) < 2:
            break

        mean = (_envelope(h, maxima) + _envelope(h, minima)) / 2.0
        h_next = h - mean

        denom = np.sum(h ** 2)
        sd = np.sum(mean ** 2) / denom if denom > 0 else 0.0
        h = h_next
        if sd < sd_threshold:
            break
    return h


def emd(
    values: np.ndarray,
    max_imf: int = 4,
    max_sift: int = 50,
    sd_threshold: float = 0.2,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Decompose a signal into IMFs.

    Args:
        values: Samples (no NaN)
        max_imf: Maximum number of IMFs to extract
        max_sift: Maximum sifting passes per IMF
        sd_threshold: Sifting stops once sum(mean^2) / sum(h^2) drops below this

    Returns:
        (imfs, residual) with imfs of shape (n_imfs, n)

    Raises:
        ValueError: NaN in values or fewer than 3 samples
    """
    x = np.asarray(values, dtype=np.float64)
    if len(x) < 3:
        raise ValueError(f"EMD needs at least 3 samples, got {len(x)}")
    if np.isnan(x).any():
        raise ValueError("NA values present in input.")

    residual = x.copy()
    imfs = []
    while len(imfs) < max_imf:
        maxima, minima = _extrema(residual)
        if len(maxima) < 2 or len(minima) < 2:
            break
        imf = _sift(residual, max_sift, sd_threshold)
        imfs.append(imf)
        residual = residual - imf

    if imfs:
        return np.vstack(imfs), residual
    return np.empty((0, len(x))), residual


def mutate_imf(
    table: TidyTable,
    max_imf: int = 4,
    decompose: Decomposer = emd,
) -> Result:
    """
    Replace each group's values by their IMFs, stacked under a new `imf` key.

    Args:
        table: Grouped Tidy Table with a `value` column
        max_imf: Maximum IMFs per group
        decompose: values, max_imf -> (imfs, residual)

    Returns:
        Valid table grouped by group_keys + ('imf',), or Error("IMF error")
    """
    keys = list(table.group_keys)

    def _imf_group(key, sub: pl.DataFrame) -> pl.DataFrame:
        imfs, _ = decompose(sub['value'].to_numpy(), max_imf=max_imf)
        n_imfs, n = imfs.shape

        data = {}
        if 't' in sub.columns:
            data['t'] = np.tile(sub['t'].to_numpy(), n_imfs)
        data['imf'] = np.repeat(np.arange(1, n_imfs + 1, dtype=np.int64), n)
        data['value'] = imfs.ravel()

        out = pl.DataFrame(data, schema_overrides={'imf': pl.Int64, 'value': pl.Float64})
        if keys:
            out = out.with_columns([pl.lit(key[k]).alias(k) for k in keys])
        cols = keys + (['t'] if 't' in sub.columns else []) + ['imf', 'value']
        return out.select(cols)

    try:
        decomposed = table.map_partitions(_imf_group, group_keys=keys + ['imf'])
    except Exception as e:
        logger.debug("IMF decomposition failed: %s", e)
        return Error(IMF_ERROR)

    if decomposed.height == 0:
        return Error(IMF_ERROR)
    return Valid(decomposed)
