"""
Tidy Table.

Canonical (t, axis, value) representation of a multi-axis time series.
Grouping is an explicit field carried alongside the frame, never implicit:
every stage receives it and returns it (kept or deliberately re-established).
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple, Union

import numpy as np
import polars as pl

from mhealthtools.validation import validate_sensor_data


@dataclass(frozen=True)
class TidyTable:
    """A polars frame plus its ordered grouping keys."""

    frame: pl.DataFrame
    group_keys: Tuple[str, ...] = ()

    def __post_init__(self):
        missing = [k for k in self.group_keys if k not in self.frame.columns]
        if missing:
            raise ValueError(f"group keys not in frame: {missing}")

    @property
    def columns(self) -> list:
        return self.frame.columns

    @property
    def height(self) -> int:
        return self.frame.height

    def __len__(self) -> int:
        return self.frame.height

    def with_frame(
        self,
        frame: pl.DataFrame,
        group_keys: Optional[Sequence[str]] = None,
    ) -> 'TidyTable':
        """New table with a replaced frame (grouping kept unless given)."""
        keys = self.group_keys if group_keys is None else tuple(group_keys)
        return TidyTable(frame=frame, group_keys=keys)

    def regroup(self, *keys: str) -> 'TidyTable':
        """New table with a different explicit grouping."""
        return replace(self, group_keys=tuple(keys))

    def partitions(self) -> Iterator[Tuple[Dict[str, Any], pl.DataFrame]]:
        """
        Yield (key_dict, sub_frame) per group, in first-appearance order.

        An ungrouped table is a single group with an empty key dict.
        """
        if not self.group_keys:
            yield {}, self.frame
            return

        keys = list(self.group_keys)
        for sub in self.frame.partition_by(keys, maintain_order=True):
            key_values = {k: sub[k][0] for k in keys}
            yield key_values, sub

    def map_partitions(
        self,
        fn,
        group_keys: Optional[Sequence[str]] = None,
    ) -> 'TidyTable':
        """
        Apply fn(key_dict, sub_frame) -> frame to every group and stack results.

        Args:
            fn: Per-group function returning a new polars frame
            group_keys: Grouping of the result (defaults to the current one)
        """
        parts = [fn(key, sub) for key, sub in self.partitions()]
        if parts:
            frame = pl.concat(parts, how='vertical_relaxed')
        else:
            frame = self.frame.clear()
        return self.with_frame(frame, group_keys)

    def n_groups(self) -> int:
        if not self.group_keys:
            return 1
        return self.frame.select(list(self.group_keys)).unique().height


def tidy_sensor_data(
    sensor_data: Any,
    axes: Optional[Sequence[str]] = None,
) -> TidyTable:
    """
    Gather axis columns into a single `axis` column and rebase `t` to 0.

    Args:
        sensor_data: Frame (polars, pandas) or dict with a time column `t`
                     and at least one axis column (x, y, z / red, green, blue ...)
        axes: Axis columns to gather. Defaults to every numeric non-t column.

    Returns:
        TidyTable with columns t, axis, value grouped by axis

    Raises:
        MalformedInputError: t absent or containing missing values,
                             no usable axis column
    """
    df, axes = validate_sensor_data(sensor_data, axes)

    df = df.sort('t', maintain_order=True)
    if df.height > 0:
        df = df.with_columns(pl.col('t') - df['t'][0])

    tidy = df.unpivot(
        on=list(axes),
        index='t',
        variable_name='axis',
        value_name='value',
    ).select(['t', 'axis', 'value'])

    return TidyTable(frame=tidy, group_keys=('axis',))


def get_sampling_rate(sensor_data: Union[TidyTable, pl.DataFrame]) -> float:
    """
    Average sampling rate: (n_samples - 1) / (t_last - t_first).

    Recomputed from the data on every call. Tidy tables are measured on
    their first group, since axes share one clock.

    Returns:
        Sampling rate in Hz, NaN if fewer than 2 samples or zero duration
    """
    if isinstance(sensor_data, TidyTable):
        if 't' not in sensor_data.columns or sensor_data.height == 0:
            return np.nan
        _, frame = next(sensor_data.partitions())
    else:
        frame = sensor_data

    if 't' not in frame.columns or frame.height < 2:
        return np.nan

    t = frame['t'].cast(pl.Float64).to_numpy()
    duration = t[-1] - t[0]
    if not np.isfinite(duration) or duration <= 0:
        return np.nan
    return float((len(t) - 1) / duration)
