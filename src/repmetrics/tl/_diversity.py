"""Diversity and clonality metrics of a clonal count distribution.

All metrics accept a :class:`~repmetrics.io.Repertoire`. Alternatively, frequency-based
metrics accept an array of frequencies and count-based metrics (:func:`d50`, :func:`dxx`,
:func:`chao1`) an array of counts. Metrics that depend on the order of lineages assume
arrays to be sorted in descending order, as is the case for repertoires.
"""

from collections.abc import Sequence

import numpy as np

from repmetrics.io._datastructures import Repertoire

ArrayLike = Sequence[float] | np.ndarray


def _frequencies(x: Repertoire | ArrayLike) -> np.ndarray:
    if isinstance(x, Repertoire):
        return x.frequencies
    return np.asarray(x, dtype=float)


def _counts(x: Repertoire | ArrayLike) -> np.ndarray:
    if isinstance(x, Repertoire):
        return x.counts
    return np.asarray(x)


def richness(x: Repertoire | ArrayLike) -> int:
    """Number of lineages (S), including lineages with a count of zero."""
    if isinstance(x, Repertoire):
        return x.richness
    return len(np.asarray(x))


def shannon_entropy(x: Repertoire | ArrayLike) -> float:
    """\
    Shannon entropy :math:`H = -\\sum_i p_i \\ln p_i`, using the natural logarithm.

    Lineages with a frequency of zero do not contribute (:math:`0 \\ln 0 = 0`).
    Returns `0` for an empty repertoire.
    """
    freqs = _frequencies(x)
    freqs = freqs[freqs > 0]
    if not len(freqs):
        return 0.0
    return float(-np.sum(freqs * np.log(freqs)))


def shannon_diversity(x: Repertoire | ArrayLike) -> float:
    """Exponential of the Shannon entropy, the effective number of lineages."""
    return float(np.exp(shannon_entropy(x)))


def simpson_index(x: Repertoire | ArrayLike) -> float:
    """\
    Simpson's index :math:`D = \\sum_i p_i^2`.

    The probability that two randomly drawn sequences belong to the same lineage.
    """
    freqs = _frequencies(x)
    return float(np.sum(freqs**2))


def simpson_diversity(x: Repertoire | ArrayLike) -> float:
    """Gini-Simpson index :math:`1 - D`."""
    return 1.0 - simpson_index(x)


def inverse_simpson(x: Repertoire | ArrayLike) -> float:
    """Inverse Simpson index :math:`1 / D`. Infinite if :math:`D = 0`."""
    simpson = simpson_index(x)
    return 1.0 / simpson if simpson > 0 else np.inf


def berger_parker_index(x: Repertoire | ArrayLike) -> float:
    """\
    Berger-Parker index, the frequency of the most abundant lineage.

    Reads the first frequency, arrays must be sorted in descending order.
    """
    freqs = _frequencies(x)
    if not len(freqs):
        return 0.0
    return float(freqs[0])


def evenness(x: Repertoire | ArrayLike) -> float:
    """\
    Pielou's evenness :math:`J = H / \\ln S`.

    Ranges from 0 to 1, where 1 indicates a perfectly even distribution.
    Returns `0` for repertoires with less than two lineages.
    """
    n_lineages = richness(x)
    if n_lineages <= 1:
        return 0.0
    return shannon_entropy(x) / np.log(n_lineages)


def clonality(x: Repertoire | ArrayLike) -> float:
    """\
    Clonality :math:`1 - J`, i.e. one minus the normalized Shannon entropy.

    Ranges from 0 to 1, where 1 indicates a repertoire dominated by a single lineage.
    Returns `1` for repertoires with less than two lineages.
    """
    n_lineages = richness(x)
    if n_lineages <= 1:
        return 1.0
    return 1.0 - shannon_entropy(x) / np.log(n_lineages)


def gini_coefficient(x: Repertoire | ArrayLike) -> float:
    """\
    Gini coefficient of the lineage frequencies.

    0 for perfect equality, approaching 1 for maximal inequality.

    .. math::

        G = \\frac{2 \\sum_i i \\, p_{(i)}}{n \\sum_i p_{(i)}} - \\frac{n + 1}{n}

    where :math:`p_{(i)}` are the frequencies sorted in ascending order.
    """
    freqs = _frequencies(x)
    n = len(freqs)
    if n <= 1:
        return 0.0

    freqs = np.sort(freqs)
    total = np.sum(freqs)
    if total == 0:
        return 0.0

    ranks = np.arange(1, n + 1)
    return float(2 * np.sum(ranks * freqs) / (n * total) - (n + 1) / n)


def dxx(x: Repertoire | ArrayLike, *, percentage: float) -> int:
    """\
    Minimum number of lineages that together account for `percentage` percent of the total count.

    Counts need to be sorted in descending order.

    Parameters
    ----------
    x
        Repertoire or array of counts
    percentage
        Percentage of the total count, between 0 (exclusive) and 100.
    """
    if not 0 < percentage <= 100:
        raise ValueError(f"`percentage` must be within (0, 100], got {percentage}.")
    counts = _counts(x)
    if not len(counts):
        return 0
    total = np.sum(counts)
    if total == 0:
        return 0

    cumulative = np.cumsum(counts)
    i = np.searchsorted(cumulative, total * percentage / 100, side="left")
    return int(min(i + 1, len(counts)))


def d50(x: Repertoire | ArrayLike) -> int:
    """\
    D50: minimum number of lineages that together account for at least half of the total count.

    Counts need to be sorted in descending order.
    """
    return dxx(x, percentage=50)


def chao1(x: Repertoire | ArrayLike) -> float:
    """\
    Chao1 estimator of the total richness, including unobserved lineages.

    .. math::

        S_chao1 = S_obs + \\frac{f_1^2}{2 f_2}

    where :math:`f_1` and :math:`f_2` are the number of singletons and doubletons.
    Without doubletons, the bias-corrected form :math:`S_obs + f_1 (f_1 - 1) / 2` is used.

    Floating point counts are rounded to the nearest integer (half to even) before
    singletons and doubletons are counted.
    """
    counts = _counts(x)
    if not len(counts):
        return 0.0
    if counts.dtype.kind == "f":
        counts = np.rint(counts).astype(np.int64)

    s_obs = len(counts)
    f1 = int(np.sum(counts == 1))
    f2 = int(np.sum(counts == 2))
    if f2 > 0:
        return s_obs + f1**2 / (2 * f2)
    elif f1 > 0:
        return s_obs + f1 * (f1 - 1) / 2
    else:
        return float(s_obs)
