"""
Grouped Feature Extraction.

Applies feature functions to one column of every group of a Tidy Table and
returns one row per group. A failing (group, function) pair never takes the
rest of the table down: its message is recorded in the row's `error` column.
"""

import functools
import logging
from typing import Any, Callable, Dict, List, Mapping, Sequence, Union

import numpy as np
import polars as pl

from mhealthtools.core.tidy import TidyTable
from mhealthtools.validation import MalformedInputError

logger = logging.getLogger(__name__)

Extractor = Callable[[np.ndarray], Union[Mapping[str, Any], pl.DataFrame]]


def extractor_name(fn: Callable) -> str:
    if isinstance(fn, functools.partial):
        return extractor_name(fn.func)
    return getattr(fn, '__name__', type(fn).__name__)


def _feature_row(features: Union[Mapping[str, Any], pl.DataFrame]) -> Dict[str, Any]:
    """Normalize an extractor output to a flat dict."""
    if isinstance(features, pl.DataFrame):
        if features.height != 1:
            raise ValueError(f"extractor returned {features.height} rows, expected 1")
        return features.row(0, named=True)
    return dict(features)


def _require_column(table: TidyTable, col: str) -> None:
    if col not in table.columns:
        raise MalformedInputError("Feature column not found", column=col)


def _frame_from_rows(rows: List[Dict[str, Any]]) -> pl.DataFrame:
    columns: List[str] = []
    for row in rows:
        for name in row:
            if name not in columns and name != 'error':
                columns.append(name)
    columns.append('error')

    if not rows:
        return pl.DataFrame(schema={'error': pl.Utf8})

    df = pl.from_dicts(rows, infer_schema_length=None)
    return df.select(columns).with_columns(pl.col('error').cast(pl.Utf8))


def map_groups(table: TidyTable, col: str, fn: Extractor) -> pl.DataFrame:
    """
    One row per group: the group key values plus the features of fn(group[col]).

    Exceptions from fn propagate.
    """
    _require_column(table, col)
    rows = []
    for key, sub in table.partitions():
        row = dict(key)
        row.update(_feature_row(fn(sub[col].to_numpy())))
        rows.append(row)
    return pl.from_dicts(rows, infer_schema_length=None) if rows else pl.DataFrame()


def extract_features(
    table: TidyTable,
    col: str,
    funs: Sequence[Extractor],
) -> pl.DataFrame:
    """
    Apply every extractor to every group and merge the rows on the group keys.

    Args:
        table: Tidy Table (grouped or not)
        col: Column handed to the extractors
        funs: Extractors returning one row of named scalars

    Returns:
        polars frame, one row per group: measurement_type (grouped tables only),
        group keys, features, error

    Raises:
        MalformedInputError: col not in table
    """
    _require_column(table, col)
    grouped = bool(table.group_keys)

    rows = []
    for key, sub in table.partitions():
        values = sub[col].to_numpy()

        row: Dict[str, Any] = {}
        if grouped:
            row['measurement_type'] = col
        row.update(key)

        errors = []
        for fn in funs:
            name = extractor_name(fn)
            try:
                features = _feature_row(fn(values))
            except Exception as e:
                logger.warning("Feature extractor %s failed for group %s: %s", name, key, e)
                errors.append(f"{name}: {e}")
                continue

            # extractors may report their own soft error
            own_error = features.pop('error', None)
            if own_error not in (None, 'None'):
                errors.append(f"{name}: {own_error}")

            for feature, value in features.items():
                if feature not in key and feature != 'measurement_type':
                    row[feature] = value

        row['error'] = '; '.join(errors) if errors else None
        rows.append(row)

    return _frame_from_rows(rows)
