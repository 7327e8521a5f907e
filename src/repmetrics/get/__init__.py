from collections.abc import Sequence

import numpy as np
import pandas as pd

from repmetrics.io import RepertoireCollection
from repmetrics.tl import Metrics


def metrics_to_dataframe(
    metrics: Metrics | Sequence[Metrics],
    donor_ids: str | Sequence[str] | RepertoireCollection | None = None,
) -> pd.DataFrame:
    """\
    Convert results of :func:`~repmetrics.tl.compute_metrics` into a data frame.

    Parameters
    ----------
    metrics
        A single :class:`~repmetrics.tl.Metrics` object or a list of them.
    donor_ids
        Donor identifiers, one per :class:`~repmetrics.tl.Metrics` object. A
        :class:`~repmetrics.io.RepertoireCollection` may be passed to use its donor ids.
        If `None`, the donor ids are empty strings.

    Returns
    -------
    A data frame with one row per :class:`~repmetrics.tl.Metrics` object. The first column,
    `donor_id`, holds the donor identifiers, followed by one column per metric in the order
    in which they first appear. Metrics that were not computed for a row are `NaN`.
    """
    if isinstance(metrics, Metrics):
        metrics = [metrics]
    if isinstance(donor_ids, RepertoireCollection):
        donor_ids = donor_ids.donor_ids
    elif isinstance(donor_ids, str):
        donor_ids = [donor_ids]
    elif donor_ids is None:
        donor_ids = [""] * len(metrics)

    if len(donor_ids) != len(metrics):
        raise ValueError(
            f"`donor_ids` must have the same length as `metrics`. Got {len(donor_ids)} donor ids "
            f"and {len(metrics)} results."
        )

    columns = list(dict.fromkeys(name for res in metrics for name in res.names))
    df = pd.DataFrame(
        [[res.get(col, np.nan) for col in columns] for res in metrics],
        columns=columns,
        dtype=float,
    )
    df.insert(0, "donor_id", [str(x) for x in donor_ids])
    return df
