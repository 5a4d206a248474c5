"""
Configuration Loader
====================

Packaged defaults live in defaults.yaml. A user YAML file is merged over
them, then keyword overrides over that, and the result is parsed into
dataclasses.

Usage:
    from mhealthtools.config import load_config

    config = load_config()                                   # defaults
    config = load_config('study.yaml')                       # user file
    config = load_config(transform={'detrend': True})        # overrides
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from mhealthtools.validation import ConfigurationError, validate_window_params


DEFAULTS_PATH = Path(__file__).parent / 'defaults.yaml'


@dataclass
class FilterConfig:
    """Band-pass filter parameters."""
    enabled: bool = True
    window_length: int = 120
    frequency_range: Tuple[float, float] = (1.0, 25.0)
    window: str = 'hamming'


@dataclass
class WindowConfig:
    """Windowing parameters."""
    enabled: bool = True
    window_length: int = 256
    window_overlap: float = 0.5
    window_name: str = 'hamming'


@dataclass
class SpectrumConfig:
    """AR spectrum / EWT parameters for the frequency-domain features."""
    n_peaks: int = 3
    n_freq: int = 500
    fraction_min_peak_height: float = 0.1
    min_peak_distance: int = 1


@dataclass
class TransformConfig:
    """The standard kinematic transform chain."""
    time_range: Optional[Tuple[float, float]] = None
    detrend: bool = False
    detrend_span: float = 0.75
    imf: bool = False
    max_imf: int = 4
    filter: FilterConfig = field(default_factory=FilterConfig)
    window: WindowConfig = field(default_factory=WindowConfig)


@dataclass
class Config:
    """Full configuration."""
    transform: TransformConfig = field(default_factory=TransformConfig)
    spectrum: SpectrumConfig = field(default_factory=SpectrumConfig)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return raw


def _build(cls, raw: Dict[str, Any], section: str):
    """Instantiate a dataclass, rejecting unknown keys."""
    if not isinstance(raw, dict):
        raise ConfigurationError(section, "must be a mapping")
    known = set(cls.__dataclass_fields__)
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigurationError(section, f"unknown keys {unknown}")
    return cls(**raw)


def _pair(value, name: str) -> Tuple[float, float]:
    if value is None or len(value) != 2:
        raise ConfigurationError(name, f"expected two values, got {value}")
    low, high = float(value[0]), float(value[1])
    if low > high:
        raise ConfigurationError(name, f"lower bound {low} exceeds upper bound {high}")
    return low, high


def _validate(config: Config) -> Config:
    tc = config.transform

    if tc.time_range is not None:
        tc.time_range = _pair(tc.time_range, 'transform.time_range')
    if not (0 < tc.detrend_span <= 1):
        raise ConfigurationError('transform.detrend_span', f"must lie in (0, 1], got {tc.detrend_span}")
    if tc.max_imf < 1:
        raise ConfigurationError('transform.max_imf', f"must be >= 1, got {tc.max_imf}")

    tc.filter.frequency_range = _pair(tc.filter.frequency_range, 'transform.filter.frequency_range')
    if tc.filter.frequency_range[0] <= 0 or tc.filter.frequency_range[0] == tc.filter.frequency_range[1]:
        raise ConfigurationError(
            'transform.filter.frequency_range',
            f"expected 0 < low < high, got {list(tc.filter.frequency_range)}",
        )
    if tc.filter.window_length < 2:
        raise ConfigurationError('transform.filter.window_length', "filter needs at least 2 taps")

    validate_window_params(tc.window.window_length, tc.window.window_overlap)

    sc = config.spectrum
    if sc.n_peaks < 0:
        raise ConfigurationError('spectrum.n_peaks', f"must be >= 0, got {sc.n_peaks}")
    if sc.n_freq < 2:
        raise ConfigurationError('spectrum.n_freq', f"must be >= 2, got {sc.n_freq}")
    if not (0 <= sc.fraction_min_peak_height <= 1):
        raise ConfigurationError(
            'spectrum.fraction_min_peak_height',
            f"must lie in [0, 1], got {sc.fraction_min_peak_height}",
        )
    return config


def config_from_dict(raw: Dict[str, Any]) -> Config:
    """Parse a (merged) configuration mapping into a validated Config."""
    unknown = sorted(set(raw) - {'transform', 'spectrum'})
    if unknown:
        raise ConfigurationError('config', f"unknown sections {unknown}")

    transform_raw = dict(raw.get('transform') or {})
    filter_cfg = _build(FilterConfig, transform_raw.pop('filter', None) or {}, 'transform.filter')
    window_cfg = _build(WindowConfig, transform_raw.pop('window', None) or {}, 'transform.window')
    transform = _build(TransformConfig, transform_raw, 'transform')
    transform.filter = filter_cfg
    transform.window = window_cfg

    spectrum = _build(SpectrumConfig, raw.get('spectrum') or {}, 'spectrum')
    return _validate(Config(transform=transform, spectrum=spectrum))


def load_config(path: Optional[Union[str, Path]] = None, **overrides) -> Config:
    """
    Load configuration.

    Args:
        path: Optional user YAML merged over the packaged defaults
        **overrides: Section mappings (transform=..., spectrum=...) merged last

    Returns:
        Validated Config

    Raises:
        FileNotFoundError: path given but missing
        ConfigurationError: unknown keys or invalid values
    """
    raw = _read_yaml(DEFAULTS_PATH)
    if path is not None:
        raw = _deep_merge(raw, _read_yaml(path))
    if overrides:
        raw = _deep_merge(raw, overrides)
    return config_from_dict(raw)
