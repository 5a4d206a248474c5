"""
Core: tidy tables, the Result protocol, transforms and feature extraction.

Data flows:
    wide sensor frame -> tidy_sensor_data -> run_pipeline(stages) -> extract_features
"""

from mhealthtools.core.tidy import TidyTable, tidy_sensor_data, get_sampling_rate
from mhealthtools.core.result import Valid, Error, Result, as_result
from mhealthtools.core.pipeline import Stage, stage, run_pipeline
from mhealthtools.core.extract import Extractor, map_groups, extract_features
from mhealthtools.core.models import Model, apply_models

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
    'Extractor',
    'map_groups',
    'extract_features',
    'Model',
    'apply_models',
]
