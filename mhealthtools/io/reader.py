"""
Reader: sensor recordings from disk.

All file reads go through here. Supported formats: csv, parquet, json
(array of records, or newline-delimited with .jsonl / .ndjson).
"""

from pathlib import Path
from typing import Union

import polars as pl

from mhealthtools.validation import MalformedInputError


READERS = {
    '.csv': pl.read_csv,
    '.parquet': pl.read_parquet,
    '.json': pl.read_json,
    '.jsonl': pl.read_ndjson,
    '.ndjson': pl.read_ndjson,
}

# Alternative names for the time column, tried in order
TIME_ALIASES = ('timestamp',)


def load_sensor_data(path: Union[str, Path], time_column: str = 't') -> pl.DataFrame:
    """
    Load a wide sensor table and name its time column `t`.

    Args:
        path: csv / parquet / json file
        time_column: Name of the time column in the file

    Returns:
        polars frame with a `t` column

    Raises:
        FileNotFoundError: path does not exist
        MalformedInputError: unknown format or no time column
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"No sensor file at {path}")

    reader = READERS.get(p.suffix.lower())
    if reader is None:
        raise MalformedInputError(
            f"Unsupported sensor file format '{p.suffix}' (expected one of {sorted(READERS)})"
        )
    df = reader(str(p))

    if 't' in df.columns:
        return df
    for candidate in (time_column,) + TIME_ALIASES:
        if candidate in df.columns:
            return df.rename({candidate: 't'})

    raise MalformedInputError("Sensor file has no time column", column=time_column)
