from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import numpy as np
import pandas as pd
from scanpy import logging

from repmetrics.io._datastructures import LengthStats, Repertoire
from repmetrics.io._util import _as_dataframe, _iter_rows
from repmetrics.util import _as_count, _doc_params, _get_field

doc_length_params = """\
table
    A data frame, or any iterable of row mappings, e.g. in AIRR rearrangement format.
length_column
    Column with the sequences to compute lengths from.
weight_column
    Column with the abundance of each sequence (e.g. `count` or `duplicate_count`).
    Numbers are rounded to the nearest integer, numeric strings are parsed. Rows without
    a usable weight count once. If `None`, all rows have a weight of 1.
use_aa
    If `True`, `length_column` contains amino acid sequences. Otherwise, nucleotide
    sequences are assumed and the length is integer-divided by 3.\
"""


class LengthStatsNotComputedError(ValueError):
    """Raised when length metrics are requested for a repertoire without :class:`~repmetrics.io.LengthStats`."""


@_doc_params(length_params=doc_length_params)
def extract_lengths(
    table: pd.DataFrame | Iterable[Mapping[str, Any]],
    length_column: str = "cdr3",
    weight_column: str | None = None,
    *,
    use_aa: bool = False,
) -> tuple[np.ndarray, np.ndarray]:
    """\
    Extract sequence lengths and weights from a table.

    Rows with a missing or empty sequence are skipped.

    Parameters
    ----------
    {length_params}

    Returns
    -------
    Two integer arrays of the same length: the sequence lengths and their weights.
    """
    if isinstance(table, pd.DataFrame) and length_column not in table.columns:
        raise KeyError(f"Column `{length_column}` not found in table.")

    lengths = []
    weights = []
    for row in _iter_rows(_as_dataframe(table)):
        seq = _get_field(row, length_column)
        if seq is None:
            continue
        length = len(str(seq))
        lengths.append(length if use_aa else length // 3)
        weights.append(_as_count(_get_field(row, weight_column)) if weight_column is not None else 1)

    return np.array(lengths, dtype=np.int64), np.array(weights, dtype=np.int64)


def compute_length_stats(
    lengths: Sequence[int] | np.ndarray,
    weights: Sequence[int] | np.ndarray | None = None,
    *,
    column: str = "cdr3",
    use_aa: bool = False,
) -> LengthStats:
    """\
    Summarize sequence lengths.

    If all weights are 1, the plain statistics are computed and the standard deviation is
    the sample standard deviation. Otherwise, mean and standard deviation are weighted
    (population standard deviation) and the median is the median of the lengths repeated
    by their weights. Minimum and maximum are never weighted.

    Parameters
    ----------
    lengths
        Sequence lengths
    weights
        Abundance of each sequence. Needs to have the same length as `lengths`.
    column
        Name of the column the lengths were computed from. Stored in the result.
    use_aa
        Whether the lengths were computed from amino acid sequences. Stored in the result.

    Returns
    -------
    Length statistics. :meth:`LengthStats.empty <repmetrics.io.LengthStats.empty>` if `lengths` is empty.
    """
    lengths = np.asarray(lengths, dtype=np.int64)
    weights = np.ones_like(lengths) if weights is None else np.asarray(weights, dtype=np.int64)
    if len(weights) != len(lengths):
        raise ValueError(
            f"`lengths` and `weights` must have the same length. Got {len(lengths)} lengths and {len(weights)} weights."
        )
    if np.any(weights < 0):
        raise ValueError("`weights` must be non-negative.")
    if not len(lengths):
        return LengthStats.empty(column, use_aa)

    min_length, max_length = int(np.min(lengths)), int(np.max(lengths))
    total_weight = int(np.sum(weights))

    if np.all(weights == 1) or total_weight <= 0:
        if total_weight <= 0:
            logging.warning("Total weight of sequence lengths is zero. Computing unweighted statistics.")  # type: ignore
        return LengthStats(
            mean_length=float(np.mean(lengths)),
            median_length=float(np.median(lengths)),
            std_length=float(np.std(lengths, ddof=1)) if len(lengths) > 1 else 0.0,
            min_length=min_length,
            max_length=max_length,
            n_sequences=len(lengths),
            weighted=False,
            column=column,
            use_aa=use_aa,
        )

    mean = np.sum(lengths * weights) / total_weight
    variance = np.sum(weights * (lengths - mean) ** 2) / total_weight
    return LengthStats(
        mean_length=float(mean),
        median_length=float(np.median(np.repeat(lengths, weights))),
        std_length=float(np.sqrt(variance)),
        min_length=min_length,
        max_length=max_length,
        n_sequences=total_weight,
        weighted=True,
        column=column,
        use_aa=use_aa,
    )


@_doc_params(length_params=doc_length_params)
def length_stats(
    table: pd.DataFrame | Iterable[Mapping[str, Any]],
    length_column: str = "cdr3",
    weight_column: str | None = None,
    *,
    use_aa: bool = False,
) -> LengthStats:
    """\
    Compute sequence length statistics of a table.

    Combines :func:`extract_lengths` and :func:`compute_length_stats`.

    Parameters
    ----------
    {length_params}

    Returns
    -------
    Length statistics. If `length_column` doesn't exist, empty statistics are returned
    and a warning is logged.
    """
    df = _as_dataframe(table)
    if length_column not in df.columns:
        logging.warning(f"Column `{length_column}` not found. Returning empty length statistics.")  # type: ignore
        return LengthStats.empty(length_column, use_aa)
    if weight_column is not None and weight_column not in df.columns:
        logging.debug(f"Weight column `{weight_column}` not found. Each row counts once.")  # type: ignore
        weight_column = None

    lengths, weights = extract_lengths(df, length_column, weight_column, use_aa=use_aa)
    return compute_length_stats(lengths, weights, column=length_column, use_aa=use_aa)


def cdr3_length_stats(
    table: pd.DataFrame | Iterable[Mapping[str, Any]],
    *,
    cdr3_column: str = "cdr3",
    count_column: str | None = None,
    use_aa: bool = False,
) -> LengthStats:
    """\
    Compute :term:`CDR3` length statistics of a table.

    Shortcut for :func:`length_stats` with defaults for AIRR rearrangement tables.
    Use `cdr3_column="cdr3_aa", use_aa=True` for amino acid sequences.
    """
    return length_stats(table, length_column=cdr3_column, weight_column=count_column, use_aa=use_aa)


@_doc_params(length_params=doc_length_params)
def length_distribution(
    table: pd.DataFrame | Iterable[Mapping[str, Any]],
    length_column: str = "cdr3",
    weight_column: str | None = None,
    *,
    use_aa: bool = False,
) -> dict[int, int]:
    """\
    Distribution of sequence lengths (spectratype).

    Parameters
    ----------
    {length_params}

    Returns
    -------
    Dictionary mapping each length to the total weight of sequences with that length,
    sorted by length.
    """
    lengths, weights = extract_lengths(table, length_column, weight_column, use_aa=use_aa)
    if not len(lengths):
        return {}
    distribution = pd.Series(weights).groupby(lengths).sum().sort_index()
    return {int(length): int(weight) for length, weight in distribution.items()}


def has_length_stats(repertoire: Repertoire) -> bool:
    """Check if length statistics are attached to a repertoire."""
    return repertoire.length_stats is not None


def get_length_stats(repertoire: Repertoire) -> LengthStats:
    """\
    Retrieve the length statistics attached to a repertoire.

    Raises
    ------
    LengthStatsNotComputedError
        If the repertoire doesn't have length statistics.
    """
    if repertoire.length_stats is None:
        donor = f" of donor `{repertoire.donor_id}`" if repertoire.donor_id else ""
        raise LengthStatsNotComputedError(
            f"The repertoire{donor} doesn't have length statistics. "
            "Specify `length_column` when building the repertoire, e.g. "
            "`repertoire_from_dataframe(df, strategy, length_column='cdr3')`."
        )
    return repertoire.length_stats


def mean_length(repertoire: Repertoire) -> float:
    return get_length_stats(repertoire).mean_length


def median_length(repertoire: Repertoire) -> float:
    return get_length_stats(repertoire).median_length


def std_length(repertoire: Repertoire) -> float:
    return get_length_stats(repertoire).std_length


def min_length(repertoire: Repertoire) -> float:
    return float(get_length_stats(repertoire).min_length)


def max_length(repertoire: Repertoire) -> float:
    return float(get_length_stats(repertoire).max_length)
