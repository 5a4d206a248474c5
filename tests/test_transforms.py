"""
Tests for the transform stage library.
"""

import numpy as np
import polars as pl
import pytest

from mhealthtools.core.result import Error
from mhealthtools.core.tidy import TidyTable, tidy_sensor_data
from mhealthtools.core.transforms import (
    autocorrelation,
    bandpass,
    default_lag_max,
    derivative,
    detrend,
    filter_time,
    integral,
    mutate_acf,
    mutate_bandpass,
    mutate_derivative,
    mutate_detrend,
    mutate_integral,
)
from mhealthtools.validation import ConfigurationError


def _signal_table(n=1000, rate=100.0, freqs=(2.0, 30.0)):
    t = np.arange(n) / rate
    x = sum(np.sin(2 * np.pi * f * t) for f in freqs)
    return tidy_sensor_data(pl.DataFrame({'t': t, 'x': x, 'y': 0.5 * x}))


class TestFilterTime:
    """Inclusive time window."""

    def test_bounds_inclusive(self):
        table = _signal_table(n=1000)
        result = filter_time(table, 1, 9)
        t = result.unwrap().frame['t']
        assert t.min() == pytest.approx(1.0)
        assert t.max() == pytest.approx(9.0)

    def test_idempotent(self):
        table = _signal_table()
        once = filter_time(table, 1, 5).unwrap()
        twice = filter_time(once, 1, 5).unwrap()
        assert once.frame.equals(twice.frame)

    def test_empty_result_is_error(self):
        assert filter_time(_signal_table(), 50, 60) == Error("Not enough time samples")

    def test_missing_time_column_is_error(self):
        table = TidyTable(pl.DataFrame({'value': [1.0, 2.0]}))
        assert filter_time(table, 0, 1) == Error("Not enough time samples")

    def test_grouping_kept(self):
        assert filter_time(_signal_table(), 0, 1).unwrap().group_keys == ('axis',)


class TestDetrend:
    """LOWESS residuals."""

    def test_linear_trend_removed(self):
        np.random.seed(42)
        t = np.linspace(0, 10, 500)
        values = 3.0 * t + np.random.randn(500) * 0.1
        residual = detrend(t, values)
        assert abs(np.mean(residual)) < 0.1
        assert np.std(residual) < 0.5

    def test_too_few_points(self):
        with pytest.raises(ValueError):
            detrend([0, 1, 2], [1.0, 2.0, 3.0])

    def test_mutate_keeps_shape(self):
        table = _signal_table(n=300)
        out = mutate_detrend(table).unwrap()
        assert out.height == table.height
        assert out.columns == table.columns

    def test_mutate_error(self):
        table = tidy_sensor_data(pl.DataFrame({'t': [0.0, 0.1], 'x': [1.0, 2.0]}))
        assert mutate_detrend(table) == Error("Detrend error")


class TestBandpass:
    """Zero-phase FIR band-pass."""

    def test_attenuates_out_of_band(self):
        rate = 100.0
        t = np.arange(2000) / rate
        low = np.sin(2 * np.pi * 5 * t)
        high = np.sin(2 * np.pi * 40 * t)

        filtered = bandpass(low + high, 120, rate, (1, 25))

        core = slice(300, -300)
        assert np.std(filtered[core] - low[core]) < 0.1

    def test_same_length(self):
        values = np.random.RandomState(0).randn(500)
        assert len(bandpass(values, 64, 100, (1, 25))) == 500

    def test_above_nyquist_rejected(self):
        with pytest.raises(ConfigurationError, match="half the sampling rate"):
            bandpass(np.zeros(100), 64, 100, (1, 60))

    def test_inverted_range_rejected(self):
        with pytest.raises(ConfigurationError):
            bandpass(np.zeros(100), 64, 100, (20, 10))

    def test_nan_sampling_rate_rejected(self):
        with pytest.raises(ConfigurationError):
            bandpass(np.zeros(100), 64, float('nan'), (1, 25))

    def test_nan_input(self):
        values = np.ones(100)
        values[10] = np.nan
        with pytest.raises(ValueError, match="NA values"):
            bandpass(values, 64, 100, (1, 25))

    def test_mutate_config_error_raises(self):
        with pytest.raises(ConfigurationError):
            mutate_bandpass(_signal_table(), 64, 100, (1, 55))

    def test_mutate_data_error(self):
        df = pl.DataFrame({'t': np.arange(50) / 100.0, 'x': np.r_[np.ones(49), np.nan]})
        table = tidy_sensor_data(df)
        assert mutate_bandpass(table, 16, 100, (1, 25)) == Error("Bandpass filter error")

    def test_mutate_filters_every_group(self):
        table = _signal_table()
        out = mutate_bandpass(table, 120, 100, (1, 25)).unwrap()
        assert out.height == table.height
        x = out.frame.filter(pl.col('axis') == 'x')['value'].to_numpy()
        y = out.frame.filter(pl.col('axis') == 'y')['value'].to_numpy()
        np.testing.assert_allclose(y, 0.5 * x, atol=1e-9)


class TestDerivativeIntegral:
    """Lagged difference and its inverse."""

    def test_derivative(self):
        np.testing.assert_array_equal(derivative([1.0, 3.0, 6.0, 10.0]), [0, 2, 3, 4])

    def test_integral(self):
        np.testing.assert_array_equal(integral([1.0, 2.0, 3.0]), [1, 3, 6])

    def test_round_trip_up_to_offset(self):
        v = np.random.RandomState(1).randn(50)
        np.testing.assert_allclose(integral(derivative(v)), v - v[0])

    def test_mutate_scales_by_sampling_rate(self):
        table = TidyTable(pl.DataFrame({'t': [0.0, 0.1, 0.2], 'value': [0.0, 1.0, 3.0]}))
        out = mutate_derivative(table, 10, 'value', 'velocity').unwrap()
        assert out.frame['velocity'].to_list() == [0.0, 10.0, 20.0]

        out = mutate_integral(table, 10, 'value', 'position').unwrap()
        assert out.frame['position'].to_list() == [0.0, 10.0, 40.0]

    def test_mutate_missing_column(self):
        table = _signal_table(n=10)
        assert mutate_derivative(table, 100, 'nope', 'jerk') == Error("Error calculating jerk")
        assert mutate_integral(table, 100, 'nope', 'velocity') == Error("Error calculating velocity")


class TestAutocorrelation:
    """Sample ACF without lag 0."""

    def test_default_lag_max(self):
        assert default_lag_max(1000) == 30
        assert default_lag_max(5) == 4
        assert default_lag_max(1) == 0

    def test_periodic_signal(self):
        t = np.arange(400)
        r = autocorrelation(np.sin(2 * np.pi * t / 20), lag_max=20)
        assert len(r) == 20
        assert r[19] > 0.8
        assert r[9] < -0.8

    def test_constant_signal(self):
        with pytest.raises(ValueError):
            autocorrelation(np.ones(10))

    def test_mutate_acf_columns(self):
        table = _signal_table(n=200)
        out = mutate_acf(table, lag_max=5).unwrap()
        assert out.columns == ['axis', 'lag', 'acf']
        assert out.group_keys == ('axis',)
        assert out.height == 10
        assert out.frame.filter(pl.col('axis') == 'x')['lag'].to_list() == [1, 2, 3, 4, 5]

    def test_mutate_acf_error(self):
        table = tidy_sensor_data(pl.DataFrame({'t': [0.0, 0.1, 0.2], 'x': [1.0, 1.0, 1.0]}))
        assert mutate_acf(table) == Error("Error calculating ACF")
