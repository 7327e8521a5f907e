"""Composable selection and computation of repertoire metrics.

Metrics are identified by :class:`Metric` tags. Tags are combined with `+` into a
:class:`MetricSet`, which is passed to :func:`compute_metrics`. The result is a
:class:`Metrics` object that only holds the requested values.

.. code-block:: python

    metrics = rm.tl.Metric.SHANNON_ENTROPY + rm.tl.Metric.CLONALITY
    res = rm.tl.compute_metrics(repertoire, metrics)
    res.shannon_entropy  # float
    res.d50  # pd.NA, not requested
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, overload

import joblib
import pandas as pd
from scanpy import logging

from repmetrics.io._datastructures import Repertoire, RepertoireCollection
from repmetrics.util import _parallelize_with_joblib

from . import _diversity, _length_stats

#: Sentinel for metrics that were not computed
MISSING = pd.NA


class Metric(Enum):
    """\
    Identifiers of the available metrics. The value of each tag is the key under
    which the metric is reported.

    Tags can be combined with `+` to form a :class:`MetricSet`.
    """

    RICHNESS = "richness"
    TOTAL_COUNT = "total_count"
    DEPTH = "depth"
    SHANNON_ENTROPY = "shannon_entropy"
    SHANNON_DIVERSITY = "shannon_diversity"
    NORMALIZED_SHANNON = "normalized_shannon"
    SIMPSON_INDEX = "simpson_index"
    SIMPSON_DIVERSITY = "simpson_diversity"
    INVERSE_SIMPSON = "inverse_simpson"
    BERGER_PARKER = "berger_parker"
    EVENNESS = "evenness"
    CLONALITY = "clonality"
    GINI_COEFFICIENT = "gini_coefficient"
    D50 = "d50"
    CHAO1 = "chao1"
    MEAN_LENGTH = "mean_length"
    MEDIAN_LENGTH = "median_length"
    STD_LENGTH = "std_length"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"

    @property
    def key(self) -> str:
        """Output key of the metric"""
        return self.value

    def __add__(self, other):
        if isinstance(other, Metric | MetricSet | str):
            return MetricSet(self, other)
        return NotImplemented

    def __radd__(self, other):
        if isinstance(other, Metric | MetricSet | str):
            return MetricSet(other, self)
        return NotImplemented

    def __repr__(self):
        return f"Metric.{self.name}"


def _as_metric(metric: Metric | str) -> Metric:
    """Resolve a metric tag from a tag, an output key or a tag name"""
    if isinstance(metric, Metric):
        return metric
    if isinstance(metric, str):
        try:
            return Metric(metric)
        except ValueError:
            pass
        try:
            return Metric[metric.upper()]
        except KeyError:
            valid = ", ".join(m.value for m in Metric)
            raise ValueError(f"Unknown metric `{metric}`. Valid metrics are: {valid}") from None
    raise TypeError(f"Expected a `Metric` or a metric name, got `{type(metric).__name__}`.")


class MetricSet:
    """\
    Ordered selection of metrics.

    Duplicates are allowed; a duplicated metric is computed once per occurrence and
    reported under a single key.

    Parameters
    ----------
    *metrics
        :class:`Metric` tags, output keys (e.g. `"shannon_entropy"`), other metric sets,
        or lists of any of these. Metric sets are flattened.

    Example
    -------

    .. code-block:: python

        MetricSet(Metric.RICHNESS, "d50") + Metric.CHAO1
    """

    __slots__ = ("_metrics",)

    def __init__(self, *metrics: "Metric | str | MetricSet | Iterable[Metric | str]"):
        flat = []
        for m in metrics:
            if isinstance(m, MetricSet):
                flat.extend(m._metrics)
            elif isinstance(m, list | tuple):
                flat.extend(MetricSet(*m)._metrics)
            else:
                flat.append(_as_metric(m))
        self._metrics: tuple[Metric, ...] = tuple(flat)

    @property
    def metrics(self) -> tuple[Metric, ...]:
        return self._metrics

    @property
    def names(self) -> tuple[str, ...]:
        """Output keys in request order, including duplicates"""
        return tuple(m.value for m in self._metrics)

    def __add__(self, other):
        if isinstance(other, Metric | MetricSet | str):
            return MetricSet(self, other)
        return NotImplemented

    def __radd__(self, other):
        if isinstance(other, Metric | MetricSet | str):
            return MetricSet(other, self)
        return NotImplemented

    def __iter__(self) -> Iterator[Metric]:
        return iter(self._metrics)

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, item) -> bool:
        try:
            return _as_metric(item) in self._metrics
        except (ValueError, TypeError):
            return False

    def __eq__(self, other):
        if not isinstance(other, MetricSet):
            return NotImplemented
        return self._metrics == other._metrics

    def __hash__(self):
        return hash(self._metrics)

    def __repr__(self):
        return f"MetricSet({', '.join(self.names)})"


class Metrics:
    """\
    Result of :func:`compute_metrics`.

    Values are accessible as attributes (`res.shannon_entropy`), items (`res["d50"]`, also
    with :class:`Metric` tags) or with :meth:`get`. Metrics that were not requested
    evaluate to :data:`MISSING` (`pd.NA`) instead of raising an error.

    Parameters
    ----------
    values
        Mapping from output keys to values, in request order.
    """

    __slots__ = ("_values", "_names")

    def __init__(self, values: Mapping[str, float]):
        self._values = dict(values)
        self._names = tuple(self._values)

    def __getattr__(self, name: str):
        # only reached if regular attribute lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        return self._values.get(name, MISSING)

    def __getitem__(self, key: Metric | str):
        return self.get(key)

    def get(self, key: Metric | str, default: Any = MISSING):
        """Get the value of a metric, or `default` if it was not computed."""
        if isinstance(key, Metric):
            key = key.value
        return self._values.get(key, default)

    @property
    def names(self) -> tuple[str, ...]:
        """Keys of the computed metrics, in request order"""
        return self._names

    def items(self):
        return self._values.items()

    def to_dict(self) -> dict[str, float]:
        return dict(self._values)

    def to_series(self) -> pd.Series:
        return pd.Series(self._values, index=list(self._names), dtype=float)

    def __contains__(self, key) -> bool:
        if isinstance(key, Metric):
            key = key.value
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __eq__(self, other):
        if not isinstance(other, Metrics):
            return NotImplemented
        return self._names == other._names and self._values == other._values

    __hash__ = None  # type: ignore

    def __repr__(self):
        lines = [f"Metrics with {len(self)} values"]
        for name, value in self._values.items():
            lines.append(f"    {name}: {value:g}")
        return "\n".join(lines)


def _total_count(repertoire: Repertoire) -> float:
    return repertoire.total_count


#: Function computing each metric from a repertoire
METRIC_FUNCTIONS: Mapping[Metric, Callable[[Repertoire], float]] = MappingProxyType(
    {
        Metric.RICHNESS: _diversity.richness,
        Metric.TOTAL_COUNT: _total_count,
        Metric.DEPTH: _total_count,
        Metric.SHANNON_ENTROPY: _diversity.shannon_entropy,
        Metric.SHANNON_DIVERSITY: _diversity.shannon_diversity,
        Metric.NORMALIZED_SHANNON: _diversity.evenness,
        Metric.SIMPSON_INDEX: _diversity.simpson_index,
        Metric.SIMPSON_DIVERSITY: _diversity.simpson_diversity,
        Metric.INVERSE_SIMPSON: _diversity.inverse_simpson,
        Metric.BERGER_PARKER: _diversity.berger_parker_index,
        Metric.EVENNESS: _diversity.evenness,
        Metric.CLONALITY: _diversity.clonality,
        Metric.GINI_COEFFICIENT: _diversity.gini_coefficient,
        Metric.D50: _diversity.d50,
        Metric.CHAO1: _diversity.chao1,
        Metric.MEAN_LENGTH: _length_stats.mean_length,
        Metric.MEDIAN_LENGTH: _length_stats.median_length,
        Metric.STD_LENGTH: _length_stats.std_length,
        Metric.MIN_LENGTH: _length_stats.min_length,
        Metric.MAX_LENGTH: _length_stats.max_length,
    }
)

ALL_METRICS = MetricSet(
    Metric.RICHNESS,
    Metric.TOTAL_COUNT,
    Metric.SHANNON_ENTROPY,
    Metric.SHANNON_DIVERSITY,
    Metric.NORMALIZED_SHANNON,
    Metric.SIMPSON_INDEX,
    Metric.SIMPSON_DIVERSITY,
    Metric.INVERSE_SIMPSON,
    Metric.BERGER_PARKER,
    Metric.EVENNESS,
    Metric.CLONALITY,
    Metric.GINI_COEFFICIENT,
    Metric.D50,
    Metric.CHAO1,
)
DIVERSITY_METRICS = MetricSet(
    Metric.RICHNESS,
    Metric.TOTAL_COUNT,
    Metric.SHANNON_ENTROPY,
    Metric.SHANNON_DIVERSITY,
    Metric.SIMPSON_DIVERSITY,
    Metric.INVERSE_SIMPSON,
    Metric.EVENNESS,
)
CLONALITY_METRICS = MetricSet(
    Metric.RICHNESS,
    Metric.TOTAL_COUNT,
    Metric.CLONALITY,
    Metric.GINI_COEFFICIENT,
    Metric.BERGER_PARKER,
    Metric.D50,
)
RICHNESS_METRICS = MetricSet(Metric.RICHNESS, Metric.TOTAL_COUNT, Metric.CHAO1)
#: Metrics that are comparatively insensitive to sequencing depth
ROBUST_METRICS = MetricSet(
    Metric.DEPTH,
    Metric.SIMPSON_DIVERSITY,
    Metric.INVERSE_SIMPSON,
    Metric.BERGER_PARKER,
    Metric.CLONALITY,
    Metric.GINI_COEFFICIENT,
)
LENGTH_METRICS = MetricSet(
    Metric.MEAN_LENGTH,
    Metric.MEDIAN_LENGTH,
    Metric.STD_LENGTH,
    Metric.MIN_LENGTH,
    Metric.MAX_LENGTH,
)


def _as_metric_set(metrics: Metric | str | MetricSet | Iterable[Metric | str] | None) -> MetricSet:
    if metrics is None:
        return ALL_METRICS
    if isinstance(metrics, MetricSet):
        return metrics
    if isinstance(metrics, Metric | str):
        return MetricSet(metrics)
    return MetricSet(*metrics)


def compute_metric(repertoire: Repertoire, metric: Metric | str) -> float:
    """\
    Compute a single metric.

    Parameters
    ----------
    repertoire
        Repertoire
    metric
        Metric tag or output key

    Returns
    -------
    The value of the metric as float.
    """
    metric = _as_metric(metric)
    return float(METRIC_FUNCTIONS[metric](repertoire))


def _compute_metrics(repertoire: Repertoire, metric_set: MetricSet) -> Metrics:
    values = {}
    for metric in metric_set:
        values[metric.value] = float(METRIC_FUNCTIONS[metric](repertoire))
    return Metrics(values)


@overload
def compute_metrics(
    data: Repertoire, metrics: Metric | str | MetricSet | None = None, *, n_jobs: int = 1
) -> Metrics: ...


@overload
def compute_metrics(
    data: RepertoireCollection, metrics: Metric | str | MetricSet | None = None, *, n_jobs: int = 1
) -> list[Metrics]: ...


def compute_metrics(
    data: Repertoire | RepertoireCollection,
    metrics: Metric | str | MetricSet | None = None,
    *,
    n_jobs: int = 1,
) -> Metrics | list[Metrics]:
    """\
    Compute a selection of metrics for one or multiple repertoires.

    Each requested metric is computed exactly once per repertoire.

    Parameters
    ----------
    data
        A single repertoire or a collection of repertoires
    metrics
        Metrics to compute. A :class:`Metric`, an output key, or a :class:`MetricSet`.
        Defaults to :data:`ALL_METRICS`.
    n_jobs
        Number of jobs to use for computing the metrics of a collection in parallel.
        Use `-1` to use all cores. The joblib backend can be chosen with
        :func:`joblib.parallel_config`.

    Returns
    -------
    A :class:`Metrics` object for a single repertoire, or a list of :class:`Metrics`,
    aligned with :attr:`RepertoireCollection.donor_ids <repmetrics.io.RepertoireCollection.donor_ids>`,
    for a collection.

    Raises
    ------
    LengthStatsNotComputedError
        If length metrics are requested for a repertoire without length statistics.
    """
    metric_set = _as_metric_set(metrics)
    if isinstance(data, Repertoire):
        return _compute_metrics(data, metric_set)
    elif isinstance(data, RepertoireCollection):
        start = logging.info(f"Computing {len(metric_set)} metrics for {len(data)} repertoires.")  # type: ignore
        if n_jobs == 1 or len(data) <= 1:
            results = [_compute_metrics(rep, metric_set) for rep in data]
        else:
            results = list(
                _parallelize_with_joblib(
                    (joblib.delayed(_compute_metrics)(rep, metric_set) for rep in data),
                    total=len(data),
                    n_jobs=n_jobs,
                )
            )
        logging.hint("Done computing metrics.", time=start)  # type: ignore
        return results
    else:
        raise TypeError(f"Expected a `Repertoire` or a `RepertoireCollection`, got `{type(data).__name__}`.")


def metric_names(metrics: MetricSet | None = None) -> list[str]:
    """Unique output keys of a metric set, in request order."""
    return list(dict.fromkeys(_as_metric_set(metrics).names))

