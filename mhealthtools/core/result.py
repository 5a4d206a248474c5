"""
Error-Carrying Result.

Tagged union over Valid(TidyTable) and Error(message). Once a value is an
Error it is passed through untouched by every later stage; nothing heals it.
Only the terminal consumer looks at the message.
"""

from dataclasses import dataclass
from typing import Callable, Union

from mhealthtools.core.tidy import TidyTable


@dataclass(frozen=True)
class Valid:
    """A successfully transformed table."""

    table: TidyTable

    @property
    def is_error(self) -> bool:
        return False

    def unwrap(self) -> TidyTable:
        return self.table

    def bind(self, fn: Callable[[TidyTable], 'Result']) -> 'Result':
        return fn(self.table)


@dataclass(frozen=True)
class Error:
    """A sticky soft failure with a short human-readable diagnostic."""

    message: str

    @property
    def is_error(self) -> bool:
        return True

    def unwrap(self) -> TidyTable:
        raise ValueError(self.message)

    def bind(self, fn: Callable[[TidyTable], 'Result']) -> 'Result':
        return self


Result = Union[Valid, Error]


def as_result(data: Union[TidyTable, Valid, Error]) -> Result:
    """Lift a bare TidyTable into Valid; pass Results through."""
    if isinstance(data, (Valid, Error)):
        return data
    if isinstance(data, TidyTable):
        return Valid(data)
    raise TypeError(f"expected TidyTable or Result, got {type(data).__name__}")
