"""
Tests for time-domain statistics and tapping features.
"""

import numpy as np
import polars as pl
import pytest

from mhealthtools.core.signal.statistics import (
    calculate_drift,
    coef_var,
    fatigue,
    mean_tkeo,
    time_domain_summary,
)
from mhealthtools.core.signal.tapping import (
    INTERTAP_ERROR,
    TAPDRIFT_ERROR,
    get_left_right_events_and_tap_intervals,
    intertap_summary_features,
    tap_data_summary_features,
    tapdrift_summary_features,
)


class TestTimeDomainSummary:
    """Scalar summaries."""

    def test_keys(self):
        features = time_domain_summary(np.arange(10, dtype=float))
        assert list(features) == [
            'mean', 'median', 'mode', 'max', 'min', 'sd', 'skewness', 'kurtosis',
            'q25', 'q75', 'iqr', 'range', 'cv', 'mad', 'tkeo', 'energy', 'rms',
        ]

    def test_values(self):
        y = np.array([1.0, 2.0, 2.0, 3.0, 4.0])
        features = time_domain_summary(y)
        assert features['mean'] == pytest.approx(2.4)
        assert features['median'] == 2.0
        assert features['mode'] == 2.0
        assert features['range'] == 3.0
        assert features['energy'] == pytest.approx(34.0)
        assert features['rms'] == pytest.approx(np.sqrt(34.0 / 5))
        assert features['iqr'] == pytest.approx(1.0)

    def test_symmetric_signal_has_no_skew(self):
        np.random.seed(42)
        y = np.random.randn(10000)
        features = time_domain_summary(np.r_[y, -y])
        assert abs(features['skewness']) < 1e-10

    def test_nan_dropped(self):
        features = time_domain_summary(np.array([1.0, np.nan, 3.0]))
        assert features['mean'] == 2.0

    def test_empty_is_all_nan(self):
        features = time_domain_summary(np.array([]))
        assert all(np.isnan(v) for v in features.values())


class TestHelpers:
    """Small vector statistics."""

    def test_coef_var(self):
        assert coef_var([1.0, 2.0, 3.0]) == pytest.approx(50.0)

    def test_mean_tkeo_of_line(self):
        # x^2 - (x - 1)(x + 1) == 1
        assert mean_tkeo(np.arange(10, dtype=float)) == pytest.approx(1.0)

    def test_fatigue(self):
        x = np.arange(1, 21, dtype=float)
        result = fatigue(x)
        # first 2 vs last 3 samples
        assert result['fatigue10'] == pytest.approx(1.5 - 19.0)
        assert set(result) == {'fatigue10', 'fatigue25', 'fatigue50'}

    def test_drift(self):
        np.testing.assert_allclose(calculate_drift([0, 3, 3], [0, 4, 5]), [5.0, 1.0])


def _taps(n=20, jump=100.0):
    x = np.where(np.arange(n) % 2 == 0, 50.0, 50.0 + jump)
    return pl.DataFrame({
        't': 10.0 + np.arange(n) * 0.2,
        'x': x,
        'y': np.linspace(100, 120, n),
        'buttonid': ['TappedButtonLeft', 'TappedButtonRight'] * (n // 2 - 1) + ['TappedButtonNone'] * 2,
    })


class TestTapping:
    """Tap events and summaries."""

    def test_events_alternating(self):
        events = get_left_right_events_and_tap_intervals(_taps(20))
        assert not events.error
        assert events.tap_data.height == 20
        np.testing.assert_allclose(events.tap_intervals, np.full(19, 0.2))

    def test_too_few_events(self):
        events = get_left_right_events_and_tap_intervals(_taps(20, jump=1.0))
        assert events.error
        assert events.tap_data is None

    def test_tap_data_summary(self):
        features = tap_data_summary_features(_taps(20))
        assert features['number_taps'] == 20
        assert features['button_none_freq'] == pytest.approx(0.1)
        assert features['error'] == 'None'

    def test_tap_data_summary_failure(self):
        features = tap_data_summary_features(pl.DataFrame({'t': [0.0]}))
        assert features == {'error': "Error calculating tap data(frame) summary features"}

    def test_intertap_summary(self):
        np.random.seed(42)
        features = intertap_summary_features(0.2 + 0.01 * np.random.randn(50))
        assert features['error'] == 'None'
        for key in ('mean', 'median', 'iqr', 'skew', 'kur', 'cv', 'tkeo', 'ar1', 'ar2', 'fatigue50'):
            assert key in features
        assert features['mean'] == pytest.approx(0.2, abs=0.01)

    def test_intertap_summary_failure(self):
        assert intertap_summary_features([0.2]) == {'error': INTERTAP_ERROR}

    def test_tapdrift_summary(self):
        features = tapdrift_summary_features([1.0, 2.0, np.nan, 3.0])
        assert features['error'] == 'None'
        assert features['mean'] == 2.0
        assert features['range'] == 2.0

    def test_tapdrift_summary_failure(self):
        assert tapdrift_summary_features([]) == {'error': TAPDRIFT_ERROR}
