"""
Hard-failure exceptions.

Raised immediately for caller errors the pipeline cannot interpret:
missing timestamps, absent columns, parameters outside their valid range.
Data-dependent problems found mid-pipeline are NOT exceptions, they travel
as Error results (see mhealthtools.core.result).
"""

from typing import Optional


class MhealthtoolsError(Exception):
    """Base class for mhealthtools hard failures."""


class MalformedInputError(MhealthtoolsError):
    """Raised when input data violates a structural precondition."""

    def __init__(self, message: str, column: Optional[str] = None):
        self.column = column
        if column is not None:
            message = f"{message} (column: {column})"
        super().__init__(message)


class ConfigurationError(MhealthtoolsError):
    """Raised when a parameter is outside its valid range."""

    def __init__(self, parameter: str, reason: str):
        self.parameter = parameter
        self.reason = reason
        super().__init__(f"Invalid configuration for '{parameter}': {reason}")
