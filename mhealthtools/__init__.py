"""
mhealthtools: feature extraction for mobile-health sensor data.

Accelerometer, gyroscope, touchscreen tapping and camera PPG recordings are
turned into tidy tables, run through composable transform stages and
summarized per group into feature tables.

Usage:
    from mhealthtools import tidy_sensor_data, run_pipeline, stage, extract_features
    from mhealthtools.core.transforms import mutate_bandpass
    from mhealthtools.core.windowing import window
    from mhealthtools.core.signal import time_domain_summary

    tidy = tidy_sensor_data(accel)
    result = run_pipeline(tidy, [
        stage(mutate_bandpass, 120, 100, (1, 25)),
        stage(window, 256, 0.5),
    ])
    if not result.is_error:
        features = extract_features(result.table, 'value', [time_domain_summary])
"""

__version__ = "0.1.0"

from mhealthtools.core import (
    TidyTable,
    tidy_sensor_data,
    get_sampling_rate,
    Valid,
    Error,
    Result,
    as_result,
    Stage,
    stage,
    run_pipeline,
    map_groups,
    extract_features,
    apply_models,
)
from mhealthtools.config import load_config
from mhealthtools.io import load_sensor_data
from mhealthtools.run import sensor_features, build_transform, default_extractors
from mhealthtools.validation import (
    MhealthtoolsError,
    MalformedInputError,
    ConfigurationError,
)

__all__ = [
    'TidyTable',
    'tidy_sensor_data',
    'get_sampling_rate',
    'Valid',
    'Error',
    'Result',
    'as_result',
    'Stage',
    'stage',
    'run_pipeline',
    'map_groups',
    'extract_features',
    'apply_models',
    'load_config',
    'load_sensor_data',
    'sensor_features',
    'build_transform',
    'default_extractors',
    'MhealthtoolsError',
    'MalformedInputError',
    'ConfigurationError',
]
