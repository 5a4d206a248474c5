"""
Validation Module

Hard-failure checks run before data enters the pipeline.

Exports:
    - validate_sensor_data: Validate a wide sensor table (t + axis columns)
    - validate_window_params: Check window length/overlap
    - validate_frequency_range: Check band-pass bounds against Nyquist
    - MalformedInputError: Raised for structural input defects
    - ConfigurationError: Raised for invalid parameters
"""

from .errors import (
    MhealthtoolsError,
    MalformedInputError,
    ConfigurationError,
)

from .input_validation import (
    as_polars,
    validate_sensor_data,
    validate_window_params,
    validate_frequency_range,
)

__all__ = [
    # Errors
    'MhealthtoolsError',
    'MalformedInputError',
    'ConfigurationError',
    # Input validation
    'as_polars',
    'validate_sensor_data',
    'validate_window_params',
    'validate_frequency_range',
]
