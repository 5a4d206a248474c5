"""
Model Capability.

A model is any callable taking the transformed Tidy Table and returning
something tabular (polars/pandas frame, dict of columns or scalars). The
core never looks inside a model.
"""

from typing import Any, Callable, Sequence

import numpy as np
import polars as pl

from mhealthtools.core.tidy import TidyTable
from mhealthtools.validation.input_validation import as_polars

Model = Callable[[TidyTable], Any]


def _as_frame(output: Any) -> pl.DataFrame:
    if isinstance(output, dict) and all(
        v is None or np.isscalar(v) for v in output.values()
    ):
        # dict of scalars -> one row
        return pl.DataFrame([output])
    return as_polars(output)


def apply_models(table: TidyTable, models: Sequence[Model]) -> pl.DataFrame:
    """
    Run each model on the table and concatenate the outputs column-wise.

    Colliding column names are prefixed with model_<i>_ (0-based model index).
    Outputs must agree on row count. Model exceptions propagate.
    """
    frames = []
    seen = set()
    for i, model in enumerate(models):
        frame = _as_frame(model(table))
        renamed = {c: f"model_{i}_{c}" for c in frame.columns if c in seen}
        if renamed:
            frame = frame.rename(renamed)
        seen.update(frame.columns)
        frames.append(frame)

    if not frames:
        return pl.DataFrame()
    return pl.concat(frames, how='horizontal')
