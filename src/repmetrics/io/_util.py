from collections import Counter
from collections.abc import Hashable, Iterable, Mapping
from pathlib import Path
from typing import Any

import pandas as pd
from scanpy import logging

from repmetrics.util import _is_na2

#: Strings that are read as missing values from AIRR TSV files, in addition to pandas' defaults
NA_VALUES = ["", "NA", "na", "N/A", "n/a"]

#: File extensions that are removed when a donor id is derived from a file name
_DONOR_EXTENSIONS = (".tsv.gz", ".tsv", ".csv.gz", ".csv", ".txt")


class _IOLogger:
    """Logger wrapper that prints identical messages only once"""

    def __init__(self):
        self._warnings = Counter()

    def warning(self, message):
        if not self._warnings[message]:
            logging.warning(message)  # type: ignore

        self._warnings[message] += 1


def _as_dataframe(table: pd.DataFrame | Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Accept a data frame or any iterable of row mappings"""
    if isinstance(table, pd.DataFrame):
        return table
    return pd.DataFrame.from_records(list(table))


def _iter_rows(df: pd.DataFrame) -> Iterable[dict[str, Any]]:
    """Iterate over rows as dictionaries. NA cells are replaced by `None`."""
    for row in df.to_dict(orient="records"):
        yield {k: None if _is_na2(v) else v for k, v in row.items()}


def _has_missing(key: Hashable | None) -> bool:
    """Check if a lineage key, or any component of a tuple key, is missing."""
    if isinstance(key, tuple):
        return any(_has_missing(k) for k in key)
    return _is_na2(key)


def _key_to_string(key: Hashable) -> str:
    """String representation of a lineage key. Components of tuple keys are joined by `|`."""
    if isinstance(key, tuple):
        return "|".join(str(k) for k in key)
    return str(key)


def _donor_from_filename(path: str | Path) -> str:
    """Derive a donor id from a file name by stripping common table extensions."""
    name = Path(path).name
    for ext in _DONOR_EXTENSIONS:
        if name.lower().endswith(ext):
            return name[: -len(ext)]
    return name
