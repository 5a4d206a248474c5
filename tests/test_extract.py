"""
Tests for grouped feature extraction.
"""

import logging

import numpy as np
import polars as pl
import pytest

from mhealthtools.core.extract import extract_features, map_groups
from mhealthtools.core.tidy import TidyTable, tidy_sensor_data
from mhealthtools.core.windowing import window
from mhealthtools.validation import MalformedInputError


def _tidy(n=100):
    t = np.arange(n) / 100.0
    return tidy_sensor_data(pl.DataFrame({
        't': t,
        'x': np.arange(n, dtype=float),
        'y': np.ones(n),
    }))


def mean_feature(values):
    return {'mean': float(np.mean(values))}


def range_feature(values):
    return pl.DataFrame({'lo': [float(np.min(values))], 'hi': [float(np.max(values))]})


def fails_on_constant(values):
    if np.std(values) == 0:
        raise ValueError("constant input")
    return {'sd': float(np.std(values))}


class TestMapGroups:
    """One function, one row per group."""

    def test_rows_per_group(self):
        out = map_groups(_tidy(), 'value', mean_feature)
        assert out.columns == ['axis', 'mean']
        assert out.height == 2
        assert out.filter(pl.col('axis') == 'y')['mean'][0] == 1.0


class TestExtractFeatures:
    """Several functions merged on the group keys."""

    def test_merge_and_measurement_type(self):
        out = extract_features(_tidy(), 'value', [mean_feature, range_feature])

        assert out.columns == ['measurement_type', 'axis', 'mean', 'lo', 'hi', 'error']
        assert out['measurement_type'].to_list() == ['value', 'value']
        assert out.height == 2
        assert out['error'].null_count() == 2

        x = out.filter(pl.col('axis') == 'x')
        assert x['mean'][0] == pytest.approx(49.5)
        assert x['hi'][0] == 99.0

    def test_one_row_per_window_group(self):
        windowed = window(_tidy(n=400), 100, 0.5).unwrap()
        out = extract_features(windowed, 'value', [mean_feature])
        assert out.height == windowed.n_groups() == 2 * 7
        assert out.columns[:3] == ['measurement_type', 'axis', 'window']

    def test_failure_isolated(self, caplog):
        with caplog.at_level(logging.WARNING, logger='mhealthtools.core.extract'):
            out = extract_features(_tidy(), 'value', [mean_feature, fails_on_constant])

        y = out.filter(pl.col('axis') == 'y')
        x = out.filter(pl.col('axis') == 'x')

        assert y['mean'][0] == 1.0
        assert y['sd'][0] is None
        assert y['error'][0] == "fails_on_constant: constant input"
        assert x['error'][0] is None
        assert x['sd'][0] > 0
        assert "fails_on_constant" in caplog.text

    def test_extractor_own_error_recorded(self):
        def soft(values):
            return {'n': len(values), 'error': 'Too short'}

        out = extract_features(_tidy(), 'value', [soft])
        assert out['error'].to_list() == ['soft: Too short'] * 2
        assert 'n' in out.columns

    def test_ungrouped_table(self):
        table = TidyTable(pl.DataFrame({'value': [1.0, 2.0, 3.0]}))
        out = extract_features(table, 'value', [mean_feature])
        assert out.columns == ['mean', 'error']
        assert out['mean'][0] == 2.0

    def test_missing_column(self):
        with pytest.raises(MalformedInputError, match="column: acf"):
            extract_features(_tidy(), 'acf', [mean_feature])
