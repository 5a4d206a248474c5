"""
Transform Pipeline Runner.

Leaf transforms are plain functions `fn(table, *params) -> Result`.
`stage()` lifts one into a `Result -> Result` stage; `run_pipeline()` folds
an ordered list of stages and short-circuits at the first Error, so leaf
transforms never need their own error guard.

Usage:
    from mhealthtools.core.pipeline import stage, run_pipeline
    from mhealthtools.core.transforms import filter_time, mutate_detrend

    result = run_pipeline(tidy, [
        stage(filter_time, 1, 9),
        stage(mutate_detrend),
    ])
"""

import functools
import logging
from typing import Callable, Sequence, Union

from mhealthtools.core.result import Error, Result, Valid, as_result
from mhealthtools.core.tidy import TidyTable

logger = logging.getLogger(__name__)

Stage = Callable[[Result], Result]


def _stage_name(fn: Callable) -> str:
    if isinstance(fn, functools.partial):
        return _stage_name(fn.func)
    return getattr(fn, '__name__', repr(fn))


def stage(fn: Callable[..., Result], *args, **kwargs) -> Stage:
    """
    Lift a leaf transform into a Result -> Result stage.

    An incoming Error is returned unchanged; a Valid (or bare TidyTable)
    has its table handed to `fn` with the bound parameters.
    """
    name = _stage_name(fn)

    def _run(data: Union[Result, TidyTable]) -> Result:
        result = as_result(data)
        if result.is_error:
            return result
        return fn(result.table, *args, **kwargs)

    _run.__name__ = name
    _run.__qualname__ = name
    return _run


def run_pipeline(
    data: Union[TidyTable, Result],
    stages: Sequence[Stage],
) -> Result:
    """
    Apply stages in order, stopping at the first Error.

    Args:
        data: Initial table or Result
        stages: Ordered Result -> Result callables

    Returns:
        Final Valid, or the first Error produced (message verbatim)
    """
    result = as_result(data)
    if result.is_error:
        return result

    for i, st in enumerate(stages):
        result = st(result)
        if not isinstance(result, (Valid, Error)):
            raise TypeError(
                f"stage {_stage_name(st)} returned {type(result).__name__}, expected Result"
            )
        if result.is_error:
            logger.debug(
                "pipeline stopped at stage %d (%s): %s",
                i, _stage_name(st), result.message,
            )
            return result

    return result
