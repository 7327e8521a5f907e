import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd

from repmetrics.io._datastructures import Repertoire

from ._diversity import ArrayLike, _frequencies, shannon_entropy


@dataclass(frozen=True)
class HillNumber:
    """\
    Hill number of a repertoire, the effective number of lineages of order `q`.

    Attributes
    ----------
    order
        Order `q` of the Hill number
    value
        Effective number of lineages
    richness
        Number of lineages of the repertoire
    total_count
        Total count of the repertoire
    """

    order: float
    value: float
    richness: int
    total_count: int | float

    def __float__(self) -> float:
        return float(self.value)


def hill_diversity(x: Repertoire | ArrayLike, q: float) -> float:
    """\
    Hill number of order `q`.

    .. math::

        {}^qD = \\left(\\sum_i p_i^q\\right)^{1/(1-q)}

    Only lineages with a frequency greater than zero contribute. The limit cases are
    handled explicitly:

     * `q = 0`: the number of lineages with a frequency greater than zero.
     * `q = 1`: the exponential of the Shannon entropy.
     * `q = inf`: the inverse of the largest frequency (Berger-Parker diversity).

    Higher orders put more weight on abundant lineages. `q = 2` equals the inverse Simpson index.

    Parameters
    ----------
    x
        Repertoire or array of frequencies
    q
        Order of the Hill number. Must be non-negative.

    Returns
    -------
    The effective number of lineages. `0` for an empty repertoire.
    """
    if q < 0:
        raise ValueError(f"The order `q` must be non-negative, got {q}.")
    freqs = _frequencies(x)
    if not len(freqs):
        return 0.0

    if math.isclose(q, 0, abs_tol=1e-8):
        return float(np.sum(freqs > 0))
    elif math.isclose(q, 1, rel_tol=1e-8):
        return float(np.exp(shannon_entropy(freqs)))
    elif np.isposinf(q):
        max_freq = np.max(freqs)
        return 1.0 / max_freq if max_freq > 0 else 0.0
    else:
        freqs = freqs[freqs > 0]
        if not len(freqs):
            return 0.0
        return float(np.sum(freqs**q) ** (1 / (1 - q)))


def hill_number(repertoire: Repertoire, q: float) -> HillNumber:
    """\
    Hill number of order `q` of a repertoire, with the repertoire's richness and total count.

    See :func:`hill_diversity` for details.
    """
    if not isinstance(repertoire, Repertoire):
        raise TypeError(f"Expected a `Repertoire`, got `{type(repertoire).__name__}`.")
    return HillNumber(
        order=q,
        value=hill_diversity(repertoire, q),
        richness=repertoire.richness,
        total_count=repertoire.total_count,
    )


def hill_profile(repertoire: Repertoire, orders: Sequence[float] = (0, 1, 2, np.inf)) -> pd.DataFrame:
    """\
    Diversity profile of a repertoire, i.e. Hill numbers for a range of orders.

    Diversity profiles allow to compare repertoires across orders. A repertoire is more
    diverse than another if its profile lies above the other one for all orders.

    Parameters
    ----------
    repertoire
        Repertoire
    orders
        Orders `q` to compute the Hill numbers for

    Returns
    -------
    Data frame with the columns `order` and `value`, one row per order.
    """
    values = [float(hill_number(repertoire, q)) for q in orders]
    return pd.DataFrame({"order": np.asarray(orders, dtype=float), "value": values})
