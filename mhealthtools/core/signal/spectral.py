"""
Frequency-Domain Feature Set.

AR power spectrum, Empirical Wavelet Transform (EWT) band split and the
summary statistics built on both.

The AR order is chosen by AIC over Yule-Walker fits; the spectrum is
evaluated on a regular grid from 0 to 0.5 cycles/sample and reported in Hz.
"""

import math
from typing import Dict, Mapping, Tuple

import numpy as np
import polars as pl
from scipy.signal import find_peaks


# =============================================================================
# AR spectrum
# =============================================================================

def _ar_order_max(n: int) -> int:
    return int(min(n - 1, math.floor(10 * math.log10(n))))


def fit_ar(values: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Yule-Walker AR fit with the order chosen by AIC.

    The Levinson-Durbin recursion over the biased autocovariances yields the
    fit of every order up to the maximum in one pass.

    Returns:
        (coefficients, prediction variance) with the variance corrected by
        n / (n - (order + 1))
    """
    from statsmodels.tsa.stattools import levinson_durbin

    x = np.asarray(values, dtype=np.float64)
    n = len(x)
    if n < 3:
        raise ValueError(f"AR spectrum needs at least 3 samples, got {n}")
    if np.isnan(x).any():
        raise ValueError("NA values present in input.")

    var0 = float(np.mean((x - x.mean()) ** 2))
    if var0 <= 0:
        raise ValueError("AR spectrum of a constant signal is undefined")

    order_max = _ar_order_max(n)
    _, _, _, sig, phi = levinson_durbin(x, nlags=order_max, isacov=False)

    best_order, best_coef, best_var = 0, np.zeros(0), var0
    best_aic = n * np.log(var0)

    for order in range(1, order_max + 1):
        var = float(sig[order])
        if not np.isfinite(var) or var <= 0:
            break
        aic = n * np.log(var) + 2 * order
        if aic < best_aic:
            best_order, best_coef, best_var, best_aic = order, phi[1:order + 1, order].copy(), var, aic

    var_pred = best_var * n / (n - (best_order + 1))
    return best_coef, var_pred


def get_spectrum(values: np.ndarray, sampling_rate: float = 100, n_freq: int = 500) -> pl.DataFrame:
    """
    All-pole AR power spectrum.

    Args:
        values: Signal values
        sampling_rate: Sampling rate in Hz
        n_freq: Number of frequency bins

    Returns:
        polars frame with freq (Hz) and pdf
    """
    coef, var_pred = fit_ar(values)

    f = np.linspace(0.0, 0.5, n_freq)
    k = np.arange(1, len(coef) + 1)
    transfer = 1 - np.exp(-2j * np.pi * np.outer(f, k)) @ coef if len(coef) else np.ones(n_freq)
    spec = var_pred / np.abs(transfer) ** 2

    return pl.DataFrame({'freq': f * sampling_rate, 'pdf': spec})


# =============================================================================
# Empirical wavelet transform
# =============================================================================

def _beta(x: np.ndarray) -> np.ndarray:
    return x ** 4 * (35 - 84 * x + 70 * x ** 2 - 20 * x ** 3)


def _ewt_filter(wn1: float, wn2: float, gamma: float, n_freq: int) -> np.ndarray:
    """Empirical scaling/wavelet filter supported on [wn1, wn2] (radians)."""
    w = np.linspace(0.0, np.pi, n_freq)
    phi = np.zeros(n_freq)

    if wn1 == 0:
        wn1 = 1e-5

    beta1 = _beta((np.abs(w) - (1 - gamma) * wn1) / (2 * gamma * wn1))
    beta2 = _beta((np.abs(w) - (1 - gamma) * wn2) / (2 * gamma * wn2))

    if wn2 != np.pi:
        ind = ((1 + gamma) * wn1 <= w) & (w <= (1 - gamma) * wn2)
        phi[ind] = 1
        ind = ((1 - gamma) * wn2 <= w) & (w <= (1 + gamma) * wn2)
        phi[ind] = np.cos(np.pi * beta2[ind] / 2)
        ind = ((1 - gamma) * wn1 <= w) & (w <= (1 + gamma) * wn1)
        phi[ind] = np.sin(np.pi * beta1[ind] / 2)
    else:
        ind = w <= (1 - gamma) * wn1
        phi[ind] = 1
        ind = ((1 - gamma) * wn1 <= w) & (w <= (1 + gamma) * wn1)
        phi[ind] = np.cos(np.pi * beta1[ind] / 2)
        phi = 1 - phi

    return phi


def ewt_boundaries(peak_freqs: np.ndarray) -> np.ndarray:
    """
    Band boundaries (radians) for sorted peak frequencies (radians).

    0, midpoints between consecutive peaks and between the last peak and
    pi, then pi.
    """
    peaks = np.unique(np.asarray(peak_freqs, dtype=np.float64))
    peaks = peaks[(peaks > 0) & (peaks < np.pi)]
    if len(peaks) == 0:
        return np.array([0.0, np.pi])
    grid = np.concatenate([peaks, [np.pi]])
    mids = grid[:-1] + np.diff(grid) / 2
    return np.concatenate([[0.0], mids, [np.pi]])


def get_ewt_spectrum(
    spectrum: pl.DataFrame,
    n_peaks: int = 3,
    fraction_min_peak_height: float = 0.1,
    min_peak_distance: int = 1,
    sampling_rate: float = 100,
) -> np.ndarray:
    """
    Split an AR spectrum into EWT bands around its dominant peaks.

    Args:
        spectrum: Frame with freq and pdf (from get_spectrum)
        n_peaks: Maximum number of peaks used to place band boundaries
        fraction_min_peak_height: Peak height floor relative to max(pdf)
        min_peak_distance: Minimum peak separation in bins
        sampling_rate: Sampling rate in Hz

    Returns:
        Array (n_freq, n_detected_peaks + 1), each column pdf * band filter
    """
    pdf = spectrum['pdf'].to_numpy()
    freq = spectrum['freq'].to_numpy()

    peaks, props = find_peaks(
        pdf,
        height=fraction_min_peak_height * np.nanmax(pdf),
        distance=max(int(min_peak_distance), 1),
    )
    top = peaks[np.argsort(props['peak_heights'])[::-1][:n_peaks]]
    peak_freqs = np.sort(freq[top]) * 2 * np.pi / sampling_rate

    bounds = ewt_boundaries(peak_freqs)
    gamma = float(np.min(np.diff(bounds) / (bounds[1:] + bounds[:-1])))

    filters = [
        _ewt_filter(wn1, wn2, gamma, len(pdf))
        for wn1, wn2 in zip(bounds[:-1], bounds[1:])
    ]
    return np.column_stack([pdf * phi for phi in filters])


# =============================================================================
# Summary features
# =============================================================================

def _weighted_quantile(freq: np.ndarray, p: np.ndarray, q: float) -> float:
    cdf = np.cumsum(p)
    return float(freq[min(np.searchsorted(cdf, q), len(freq) - 1)])


def _band_entropy(band: np.ndarray) -> float:
    power = band ** 2
    total = power.sum()
    if total <= 0:
        return np.nan
    p = power[power > 0] / total
    return float(-np.sum(p * np.log(p)))


def frequency_domain_summary(
    values: np.ndarray,
    sampling_rate: float = 100,
    n_peaks: int = 3,
    n_freq: int = 500,
    fraction_min_peak_height: float = 0.1,
    min_peak_distance: int = 1,
) -> Dict[str, float]:
    """
    Spectral-distribution statistics plus per-band EWT energy and entropy.

    Args:
        values: Signal values
        sampling_rate: Sampling rate in Hz
        n_peaks: Number of EWT peaks (n_peaks + 1 bands)
        n_freq: Number of spectrum bins
        fraction_min_peak_height: EWT peak height floor relative to max(pdf)
        min_peak_distance: Minimum EWT peak separation in bins

    Returns:
        dict with mean_frequency, sd_frequency, skewness_frequency,
        kurtosis_frequency, q25_frequency, median_frequency, q75_frequency,
        iqr_frequency, peak_frequency, peak_density, spectral_flatness,
        spectral_entropy, ewt_energy_band_k, ewt_entropy_band_k (k = 1..n_peaks+1)
    """
    spectrum = get_spectrum(values, sampling_rate=sampling_rate, n_freq=n_freq)
    freq = spectrum['freq'].to_numpy()
    pdf = spectrum['pdf'].to_numpy()

    p = pdf / pdf.sum()
    mean_f = float(np.sum(freq * p))
    sd_f = float(np.sqrt(np.sum((freq - mean_f) ** 2 * p)))

    q25 = _weighted_quantile(freq, p, 0.25)
    q50 = _weighted_quantile(freq, p, 0.5)
    q75 = _weighted_quantile(freq, p, 0.75)

    positive = pdf[pdf > 0]
    result = {
        'mean_frequency': mean_f,
        'sd_frequency': sd_f,
        'skewness_frequency': float(np.sum((freq - mean_f) ** 3 * p) / sd_f ** 3) if sd_f > 0 else np.nan,
        'kurtosis_frequency': float(np.sum((freq - mean_f) ** 4 * p) / sd_f ** 4) if sd_f > 0 else np.nan,
        'q25_frequency': q25,
        'median_frequency': q50,
        'q75_frequency': q75,
        'iqr_frequency': q75 - q25,
        'peak_frequency': float(freq[np.argmax(pdf)]),
        'peak_density': float(np.max(pdf)),
        'spectral_flatness': float(np.exp(np.mean(np.log(positive))) / np.mean(pdf)),
        'spectral_entropy': float(-np.sum(p[p > 0] * np.log(p[p > 0])) / np.log(len(p))),
    }

    ewt = get_ewt_spectrum(
        spectrum,
        n_peaks=n_peaks,
        fraction_min_peak_height=fraction_min_peak_height,
        min_peak_distance=min_peak_distance,
        sampling_rate=sampling_rate,
    )
    for k in range(1, n_peaks + 2):
        if k <= ewt.shape[1]:
            band = ewt[:, k - 1]
            result[f'ewt_energy_band_{k}'] = float(np.sum(band ** 2))
            result[f'ewt_entropy_band_{k}'] = _band_entropy(band)
        else:
            result[f'ewt_energy_band_{k}'] = np.nan
            result[f'ewt_entropy_band_{k}'] = np.nan

    return result


def frequency_domain_energy(
    values: np.ndarray,
    sampling_rate: float,
    bands: Mapping[str, Tuple[float, float]],
    n_freq: int = 500,
) -> Dict[str, float]:
    """
    AR spectral energy in named frequency bands.

    Args:
        values: Signal values
        sampling_rate: Sampling rate in Hz
        bands: name -> (low_hz, high_hz), half-open [low, high)

    Returns:
        dict with energy_<name> per band (integral of pdf over the band)
    """
    spectrum = get_spectrum(values, sampling_rate=sampling_rate, n_freq=n_freq)
    freq = spectrum['freq'].to_numpy()
    pdf = spectrum['pdf'].to_numpy()
    df = freq[1] - freq[0] if len(freq) > 1 else 0.0

    result = {}
    for name, (low, high) in bands.items():
        mask = (freq >= low) & (freq < high)
        result[f'energy_{name}'] = float(np.sum(pdf[mask]) * df)
    return result
