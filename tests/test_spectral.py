"""
Tests for the frequency-domain feature set.
"""

import numpy as np
import pytest

from mhealthtools.core.signal.spectral import (
    ewt_boundaries,
    fit_ar,
    frequency_domain_energy,
    frequency_domain_summary,
    get_ewt_spectrum,
    get_spectrum,
)


def _tone(freq=10.0, n=1000, rate=100.0, noise=0.1, seed=42):
    rng = np.random.RandomState(seed)
    t = np.arange(n) / rate
    return np.sin(2 * np.pi * freq * t) + noise * rng.randn(n)


class TestARSpectrum:
    """AR fit and spectrum grid."""

    def test_grid(self):
        spectrum = get_spectrum(_tone(), sampling_rate=100, n_freq=500)
        assert spectrum.columns == ['freq', 'pdf']
        assert spectrum.height == 500
        assert spectrum['freq'][0] == 0.0
        assert spectrum['freq'][-1] == pytest.approx(50.0)
        assert (spectrum['pdf'] > 0).all()

    def test_peak_at_tone(self):
        spectrum = get_spectrum(_tone(freq=10.0))
        peak = spectrum['freq'][int(spectrum['pdf'].arg_max())]
        assert abs(peak - 10.0) < 1.0

    def test_white_noise_order_is_low(self):
        coef, var = fit_ar(np.random.RandomState(0).randn(2000))
        assert len(coef) < 10
        assert var == pytest.approx(1.0, rel=0.15)

    def test_constant_signal_rejected(self):
        with pytest.raises(ValueError):
            fit_ar(np.ones(100))


class TestEWT:
    """Empirical wavelet band split."""

    def test_boundaries(self):
        b = ewt_boundaries(np.array([0.5, 1.5]))
        np.testing.assert_allclose(b, [0.0, 1.0, (1.5 + np.pi) / 2, np.pi])

    def test_boundaries_without_peaks(self):
        np.testing.assert_allclose(ewt_boundaries(np.array([])), [0.0, np.pi])

    def test_band_count(self):
        x = _tone(5.0) + _tone(20.0, seed=1)
        spectrum = get_spectrum(x)
        ewt = get_ewt_spectrum(spectrum, n_peaks=2)
        assert ewt.shape == (500, 3)
        assert np.all(ewt >= -1e-12)

    def test_bands_bounded_by_spectrum(self):
        spectrum = get_spectrum(_tone())
        ewt = get_ewt_spectrum(spectrum, n_peaks=3)
        pdf = spectrum['pdf'].to_numpy()
        assert np.all(ewt <= pdf[:, None] + 1e-9)


class TestFrequencyDomainSummary:
    """One-row spectral features."""

    def test_columns(self):
        features = frequency_domain_summary(_tone(), sampling_rate=100, n_peaks=3)
        expected = [
            'mean_frequency', 'sd_frequency', 'skewness_frequency', 'kurtosis_frequency',
            'q25_frequency', 'median_frequency', 'q75_frequency', 'iqr_frequency',
            'peak_frequency', 'peak_density', 'spectral_flatness', 'spectral_entropy',
        ]
        for k in range(1, 5):
            expected += [f'ewt_energy_band_{k}', f'ewt_entropy_band_{k}']
        assert list(features) == expected

    def test_peak_frequency(self):
        features = frequency_domain_summary(_tone(freq=8.0))
        assert abs(features['peak_frequency'] - 8.0) < 1.0
        assert features['q25_frequency'] <= features['median_frequency'] <= features['q75_frequency']
        assert 0 < features['spectral_flatness'] <= 1
        assert 0 <= features['spectral_entropy'] <= 1

    def test_missing_bands_are_nan(self):
        # single tone: fewer peaks than requested
        features = frequency_domain_summary(_tone(noise=0.05), n_peaks=6)
        energies = [features[f'ewt_energy_band_{k}'] for k in range(1, 8)]
        assert np.isnan(energies[-1])
        assert np.isfinite(energies[0])

    def test_band_energy(self):
        x = _tone(freq=10.0)
        energy = frequency_domain_energy(x, 100, {'low': (0, 5), 'mid': (5, 15)})
        assert set(energy) == {'energy_low', 'energy_mid'}
        assert energy['energy_mid'] > energy['energy_low']


class TestPeakConfig:
    """EWT peak detection knobs."""

    def test_height_floor_limits_bands(self):
        x = _tone(5.0) + 0.5 * _tone(20.0, seed=1)
        loose = frequency_domain_summary(x, n_peaks=3, fraction_min_peak_height=0.0)
        strict = frequency_domain_summary(x, n_peaks=3, fraction_min_peak_height=0.99,
                                          min_peak_distance=400)

        assert np.isfinite(loose['ewt_energy_band_3'])
        assert np.isnan(strict['ewt_energy_band_3'])
        # AR statistics do not depend on the EWT settings
        assert loose['peak_frequency'] == strict['peak_frequency']


class TestARFit:
    """Yule-Walker order selection."""

    def test_recovers_ar2(self):
        rng = np.random.RandomState(7)
        e = rng.randn(5000)
        x = np.zeros(5000)
        for i in range(2, 5000):
            x[i] = 0.6 * x[i - 1] - 0.3 * x[i - 2] + e[i]

        coef, var = fit_ar(x)
        assert len(coef) >= 2
        np.testing.assert_allclose(coef[:2], [0.6, -0.3], atol=0.05)
        assert var == pytest.approx(1.0, rel=0.1)

    def test_no_warnings(self):
        import warnings

        with warnings.catch_warnings():
            warnings.simplefilter('error')
            fit_ar(_tone())
