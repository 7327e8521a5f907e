from numbers import Integral

import numpy as np
import pandas as pd
from scanpy import logging

from repmetrics.io._datastructures import Repertoire

from ._metrics import Metric, MetricSet, _as_metric_set, compute_metrics, metric_names


def rarefaction(
    repertoire: Repertoire,
    depth: int,
    *,
    random_state: int | np.random.Generator | None = None,
) -> Repertoire:
    """\
    Subsample a repertoire to a fixed total count (rarefaction).

    `depth` units are drawn uniformly at random without replacement from the
    `total_count` units of the repertoire, i.e. each sequence (or cell) is an individual
    unit. Lineages that are not drawn are removed. Rarefying repertoires to the same
    depth makes depth-sensitive metrics, such as richness, comparable.

    Parameters
    ----------
    repertoire
        Repertoire with integer-valued counts
    depth
        Number of units to draw. Must be between 1 and the total count.
    random_state
        Seed or random number generator. Use the same seed to obtain identical results.
        If `None`, a fresh, unseeded generator is used. A generator passed here is
        advanced and must not be shared between threads.

    Returns
    -------
    A new repertoire with a total count of `depth`. Donor id and metadata are kept;
    the depth is stored under `metadata["rarefaction_depth"]`. The counts have the
    same dtype as the input. Length statistics are not carried over.
    """
    if isinstance(depth, bool) or not isinstance(depth, Integral):
        raise TypeError(f"`depth` must be an integer, got `{type(depth).__name__}`.")
    depth = int(depth)
    total = repertoire.total_count
    if depth <= 0:
        raise ValueError(f"`depth` must be positive, got {depth}.")
    if depth > total:
        raise ValueError(f"`depth` ({depth}) must not exceed the total count of the repertoire ({total}).")

    counts = repertoire.counts
    if not np.all(np.mod(counts, 1) == 0):
        raise ValueError("Rarefaction requires integer-valued counts.")
    int_counts = counts.astype(np.int64)
    total = int(np.sum(int_counts))

    rng = np.random.default_rng(random_state)
    draws = rng.choice(total, size=depth, replace=False)
    # map each drawn unit to the lineage it belongs to
    lineage_idx = np.searchsorted(np.cumsum(int_counts), draws, side="right")
    new_counts = np.bincount(lineage_idx, minlength=len(int_counts)).astype(counts.dtype)

    keep = new_counts > 0
    lineage_ids = [lid for lid, k in zip(repertoire.lineage_ids, keep, strict=True) if k]

    if repertoire.length_stats is not None:
        logging.hint("Length statistics are not carried over to the rarefied repertoire.")  # type: ignore

    metadata = dict(repertoire.metadata)
    metadata["rarefaction_depth"] = depth
    return Repertoire(new_counts[keep], lineage_ids, donor_id=repertoire.donor_id, metadata=metadata)


def rarefied_metrics(
    repertoire: Repertoire,
    depth: int,
    metrics: Metric | str | MetricSet | None = None,
    *,
    n_iterations: int = 10,
    random_state: int | np.random.Generator | None = 0,
) -> pd.DataFrame:
    """\
    Compute metrics on repeatedly rarefied repertoires.

    Averaging over multiple rarefaction replicates reduces the variance introduced by
    subsampling.

    Parameters
    ----------
    repertoire
        Repertoire with integer-valued counts
    depth
        Rarefaction depth, see :func:`rarefaction`.
    metrics
        Metrics to compute, see :func:`compute_metrics`.
    n_iterations
        Number of rarefaction replicates
    random_state
        Seed or random number generator. All replicates draw from the same generator.

    Returns
    -------
    Data frame with one row per replicate (index `iteration`) and one column per metric.
    """
    if n_iterations < 1:
        raise ValueError(f"`n_iterations` must be at least 1, got {n_iterations}.")
    metric_set = _as_metric_set(metrics)
    rng = np.random.default_rng(random_state)

    start = logging.info(f"Computing metrics on {n_iterations} rarefied repertoires of depth {depth}.")  # type: ignore
    rows = [
        compute_metrics(rarefaction(repertoire, depth, random_state=rng), metric_set).to_dict()
        for _ in range(n_iterations)
    ]
    logging.hint("Done computing rarefied metrics.", time=start)  # type: ignore

    df = pd.DataFrame(rows, columns=metric_names(metric_set))
    df.index.name = "iteration"
    return df
