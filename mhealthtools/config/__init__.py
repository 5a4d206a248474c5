"""
Configuration.

Exports:
    - load_config: Packaged defaults + user YAML + keyword overrides
    - Config, TransformConfig, FilterConfig, WindowConfig, SpectrumConfig
"""

from .loader import (
    Config,
    TransformConfig,
    FilterConfig,
    WindowConfig,
    SpectrumConfig,
    config_from_dict,
    load_config,
)

__all__ = [
    'Config',
    'TransformConfig',
    'FilterConfig',
    'WindowConfig',
    'SpectrumConfig',
    'config_from_dict',
    'load_config',
]
