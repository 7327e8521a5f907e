import re
from collections.abc import Hashable, Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from scanpy import logging

from repmetrics.pp import LineageDefinition
from repmetrics.util import _as_count, _doc_params, _is_na

from ._datastructures import Repertoire, RepertoireCollection
from ._util import NA_VALUES, _as_dataframe, _donor_from_filename, _has_missing, _iter_rows, _IOLogger, _key_to_string

doc_repertoire_params = """\
strategy
    Lineage definition strategy, e.g. :class:`~repmetrics.pp.VJCdr3Definition` or
    :class:`~repmetrics.pp.LineageIDDefinition`. Rows with a missing key component are excluded.
count_column
    Column with sequence or cell counts per row. If `None` or if the column doesn't exist,
    each row counts once. Missing or unparseable values count once, too.
donor_id
    Donor or sample identifier. If empty and `donor_column` is specified, the first
    non-missing value of that column is used.
donor_column
    Column with donor identifiers (e.g. `library_id`).
length_column
    Column to compute sequence length statistics from (e.g. `cdr3` or `junction`).
    If specified, :class:`~repmetrics.io.LengthStats` are attached to the repertoire
    (weighted by `count_column`, if available), enabling the length metrics.
    If the column doesn't exist, no statistics are attached and a warning is logged.
length_aa
    If `True`, `length_column` contains amino acid sequences. Otherwise, nucleotide
    sequences are assumed and the length is divided by 3.\
"""


@_doc_params(repertoire_params=doc_repertoire_params)
def repertoire_from_dataframe(
    table: pd.DataFrame | Iterable[Mapping[str, Any]],
    strategy: LineageDefinition,
    *,
    count_column: str | None = "count",
    donor_id: str = "",
    donor_column: str | None = None,
    length_column: str | None = None,
    length_aa: bool = False,
    metadata: Mapping[str, Any] | None = None,
) -> Repertoire:
    """\
    Aggregate a table of sequences, e.g. in AIRR rearrangement format, into a :class:`Repertoire`.

    Rows are grouped by the lineage key returned by `strategy` and their counts are summed.

    Parameters
    ----------
    table
        A data frame, or any iterable of row mappings.
    {repertoire_params}
    metadata
        Additional metadata to store in the repertoire.

    Returns
    -------
    A repertoire with integer counts. The lineage ids are the string representation of the
    lineage keys (components of tuple keys joined by `|`).
    """
    df = _as_dataframe(table)
    has_count = count_column is not None and count_column in df.columns
    if count_column is not None and not has_count:
        logging.debug(f"Count column `{count_column}` not found. Each row counts once.")  # type: ignore

    if not donor_id and donor_column is not None and donor_column in df.columns:
        donors = df[donor_column]
        donors = donors[~_is_na(donors.values)] if len(donors) else donors
        if len(donors):
            donor_id = str(donors.iloc[0])

    io_logger = _IOLogger()
    lineage_counts: dict[Hashable, int] = {}
    n_skipped = 0
    for row in _iter_rows(df):
        key = strategy.lineage_key(row)
        if _has_missing(key):
            n_skipped += 1
            continue
        count = 1
        if has_count and row[count_column] is not None:
            count = _as_count(row[count_column], default=None)
            if count is None:
                io_logger.warning(f"Could not interpret `{row[count_column]}` as a count. Counting the row once.")
                count = 1
        lineage_counts[key] = lineage_counts.get(key, 0) + count

    if n_skipped:
        logging.debug(f"Skipped {n_skipped} rows with a missing lineage key.")  # type: ignore

    rep_metadata = {"strategy": type(strategy).__name__, "original_rows": len(df)}
    if metadata is not None:
        rep_metadata.update(metadata)

    length_stats = None
    if length_column is not None and length_column not in df.columns:
        logging.warning(f"Column `{length_column}` not found. Length statistics are not computed.")  # type: ignore
    elif length_column is not None:
        # import here to avoid circular import
        from repmetrics.tl import length_stats as _length_stats

        length_stats = _length_stats(
            df,
            length_column=length_column,
            weight_column=count_column if has_count else None,
            use_aa=length_aa,
        )

    return Repertoire(
        np.fromiter(lineage_counts.values(), dtype=np.int64, count=len(lineage_counts)),
        [_key_to_string(k) for k in lineage_counts],
        donor_id=donor_id,
        metadata=rep_metadata,
        length_stats=length_stats,
    )


@_doc_params(repertoire_params=doc_repertoire_params)
def read_repertoire(
    path: str | Path,
    strategy: LineageDefinition,
    *,
    count_column: str | None = "count",
    donor_id: str = "",
    donor_column: str | None = None,
    length_column: str | None = None,
    length_aa: bool = False,
    **kwargs,
) -> Repertoire:
    """\
    Read a repertoire from a tab-separated file, e.g. in AIRR rearrangement format.

    Compressed files (e.g. `.tsv.gz`) are supported, the compression is inferred from the
    file extension.

    Parameters
    ----------
    path
        Path to the file
    {repertoire_params}
        If neither `donor_id` nor `donor_column` are specified, the donor id is derived
        from the file name.
    **kwargs
        Additional arguments passed to :func:`pandas.read_csv`.

    Returns
    -------
    A repertoire. The file path is stored under `metadata["filepath"]`.
    """
    read_kwargs = {"sep": "\t", "na_values": NA_VALUES, "low_memory": False} | kwargs
    df = pd.read_csv(path, **read_kwargs)

    if not donor_id and donor_column is None:
        donor_id = _donor_from_filename(path)

    return repertoire_from_dataframe(
        df,
        strategy,
        count_column=count_column,
        donor_id=donor_id,
        donor_column=donor_column,
        length_column=length_column,
        length_aa=length_aa,
        metadata={"filepath": str(path)},
    )


def read_repertoires(
    paths: Sequence[str | Path],
    strategy: LineageDefinition,
    **kwargs,
) -> RepertoireCollection:
    """\
    Read multiple files into a :class:`RepertoireCollection`.

    Parameters
    ----------
    paths
        Paths to tab-separated files. One repertoire is created per file.
    strategy
        Lineage definition strategy
    **kwargs
        Additional arguments passed to :func:`read_repertoire`.
    """
    start = logging.info(f"Reading {len(paths)} repertoires.")  # type: ignore
    repertoires = [read_repertoire(path, strategy, **kwargs) for path in paths]
    logging.hint("Done reading repertoires.", time=start)  # type: ignore
    return RepertoireCollection(repertoires)


def read_repertoires_from_directory(
    dirpath: str | Path,
    strategy: LineageDefinition,
    *,
    pattern: str = r"\.tsv$",
    **kwargs,
) -> RepertoireCollection:
    """\
    Read all files from a directory whose name matches `pattern`.

    Parameters
    ----------
    dirpath
        Directory with tab-separated files
    strategy
        Lineage definition strategy
    pattern
        Regular expression matched (case-insensitive) against the file names.
        Matching files are read in alphabetical order.
    **kwargs
        Additional arguments passed to :func:`read_repertoire`.
    """
    dirpath = Path(dirpath)
    if not dirpath.is_dir():
        raise ValueError(f"Not a directory: {dirpath}")

    regex = re.compile(pattern, flags=re.IGNORECASE)
    paths = sorted(p for p in dirpath.iterdir() if p.is_file() and regex.search(p.name))
    if not paths:
        logging.warning(f"No files matching `{pattern}` found in {dirpath}")  # type: ignore

    return read_repertoires(paths, strategy, **kwargs)


def split_by_donor(
    table: pd.DataFrame | Iterable[Mapping[str, Any]],
    donor_column: str,
    strategy: LineageDefinition,
    **kwargs,
) -> RepertoireCollection:
    """\
    Split a table with sequences of multiple donors into one repertoire per donor.

    Parameters
    ----------
    table
        A data frame, or any iterable of row mappings.
    donor_column
        Column with donor identifiers. Rows with a missing donor are excluded.
    strategy
        Lineage definition strategy
    **kwargs
        Additional arguments passed to :func:`repertoire_from_dataframe`.

    Returns
    -------
    A collection with one repertoire per donor, in order of first appearance.
    """
    df = _as_dataframe(table)
    if donor_column not in df.columns:
        raise KeyError(f"Column `{donor_column}` not found in table.")

    df = df.loc[~_is_na(df[donor_column].values), :] if len(df) else df
    repertoires = [
        repertoire_from_dataframe(group, strategy, donor_id=str(donor), **kwargs)
        for donor, group in df.groupby(donor_column, sort=False, observed=True)
    ]
    return RepertoireCollection(repertoires)


def write_metrics(path: str | Path, df: pd.DataFrame, **kwargs) -> None:
    """\
    Write a metrics table (see :func:`~repmetrics.get.metrics_to_dataframe`) to a tab-separated file.

    Parameters
    ----------
    path
        Output file
    df
        Data frame to write
    **kwargs
        Additional arguments passed to :meth:`pandas.DataFrame.to_csv`.
    """
    df.to_csv(path, **({"sep": "\t", "index": False} | kwargs))
