"""
Sensor Features
===============

Envelope around the core: tidy -> transform -> extract / models.

    {'extracted_features': frame | None,
     'model_features':     frame | None,
     'error':              str | None}

Structural problems (malformed input, impossible parameters) raise.
Data-dependent failures come back as the envelope's `error`.

Usage:
    from mhealthtools import sensor_features, build_transform, default_extractors, load_config

    config = load_config()
    features = sensor_features(
        accel,
        transform=lambda sr: build_transform(config.transform, sr),
        extract=lambda sr: default_extractors(config.spectrum, sr),
    )
"""

import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import numpy as np
import polars as pl

from mhealthtools.config import Config, SpectrumConfig, TransformConfig
from mhealthtools.core.emd import mutate_imf
from mhealthtools.core.extract import Extractor, extract_features
from mhealthtools.core.models import Model, apply_models
from mhealthtools.core.pipeline import Stage, run_pipeline, stage
from mhealthtools.core.signal.spectral import frequency_domain_summary
from mhealthtools.core.signal.statistics import time_domain_summary
from mhealthtools.core.tidy import get_sampling_rate, tidy_sensor_data
from mhealthtools.core.transforms import filter_time, mutate_bandpass, mutate_detrend
from mhealthtools.core.windowing import window
from mhealthtools.validation import ConfigurationError

logger = logging.getLogger(__name__)

SAMPLING_RATE_ERROR = "Could not determine sampling rate."
MODEL_ERROR = "Model error"

TransformSpec = Union[Sequence[Stage], Callable[[float], Sequence[Stage]]]
ExtractSpec = Union[Sequence[Extractor], Callable[[float], Sequence[Extractor]]]


def _envelope(extracted=None, model_features=None, error: Optional[str] = None) -> Dict[str, Any]:
    return {
        'extracted_features': extracted,
        'model_features': model_features,
        'error': error,
    }


def build_transform(config: Union[TransformConfig, Config], sampling_rate: float) -> List[Stage]:
    """
    Standard kinematic chain from a TransformConfig.

    time filter -> detrend -> band-pass -> IMF -> windowing, each step
    included only when enabled in the config.
    """
    if isinstance(config, Config):
        config = config.transform

    stages = []
    if config.time_range is not None:
        t1, t2 = config.time_range
        stages.append(stage(filter_time, t1, t2))
    if config.detrend:
        stages.append(stage(mutate_detrend, span=config.detrend_span))
    if config.filter.enabled:
        stages.append(stage(
            mutate_bandpass,
            window_length=config.filter.window_length,
            sampling_rate=sampling_rate,
            frequency_range=config.filter.frequency_range,
            window=config.filter.window,
        ))
    if config.imf:
        stages.append(stage(mutate_imf, max_imf=config.max_imf))
    if config.window.enabled:
        stages.append(stage(
            window,
            window_length=config.window.window_length,
            window_overlap=config.window.window_overlap,
            window_name=config.window.window_name,
        ))
    return stages


def default_extractors(
    config: Union[SpectrumConfig, Config, None],
    sampling_rate: float,
) -> List[Extractor]:
    """[time_domain_summary, frequency_domain_summary bound to sampling_rate and the spectrum config]."""
    if isinstance(config, Config):
        config = config.spectrum
    if config is None:
        config = SpectrumConfig()

    return [
        time_domain_summary,
        functools.partial(
            frequency_domain_summary,
            sampling_rate=sampling_rate,
            n_peaks=config.n_peaks,
            n_freq=config.n_freq,
            fraction_min_peak_height=config.fraction_min_peak_height,
            min_peak_distance=config.min_peak_distance,
        ),
    ]


def sensor_features(
    sensor_data,
    transform: Optional[TransformSpec] = None,
    extract: Optional[ExtractSpec] = None,
    extract_on: Union[str, Sequence[str]] = 'value',
    models: Optional[Sequence[Model]] = None,
    axes: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Tidy, transform and featurize one sensor recording.

    Args:
        sensor_data: Wide frame / dict with `t` and axis columns
        transform: Stages, or a callable sampling_rate -> stages
        extract: Extractors applied per group to each `extract_on` column,
                 or a callable sampling_rate -> extractors
        extract_on: Column, or columns, handed to the extractors; each one
                    is reported under its own measurement_type
        models: Callables applied to the transformed table
        axes: Axis columns to use (default: all numeric non-t columns)

    Returns:
        dict with extracted_features, model_features, error

    Raises:
        MalformedInputError: structurally invalid sensor data / extract column
        ConfigurationError: no extract or models, invalid stage parameters
    """
    if extract is None and not models:
        raise ConfigurationError('extract', "either extractors or models must be provided")

    tidy = tidy_sensor_data(sensor_data, axes)

    # measured from the raw recording, before any stage reshapes `t`
    if callable(transform) or callable(extract):
        sampling_rate = get_sampling_rate(tidy)
        if not np.isfinite(sampling_rate):
            return _envelope(error=SAMPLING_RATE_ERROR)
        if callable(transform):
            transform = transform(sampling_rate)
        if callable(extract):
            extract = extract(sampling_rate)

    result = run_pipeline(tidy, list(transform or []))
    if result.is_error:
        return _envelope(error=result.message)
    transformed = result.table

    extracted = None
    if extract is not None:
        columns = [extract_on] if isinstance(extract_on, str) else list(extract_on)
        extracted = pl.concat(
            [extract_features(transformed, col, list(extract)) for col in columns],
            how='diagonal_relaxed',
        )

    model_features = None
    if models:
        try:
            model_features = apply_models(transformed, models)
        except Exception as e:
            logger.warning("Model failed: %s", e)
            return _envelope(extracted=extracted, error=MODEL_ERROR)

    return _envelope(extracted=extracted, model_features=model_features)
