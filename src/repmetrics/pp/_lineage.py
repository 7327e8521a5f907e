import abc
from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass
from typing import Any

from repmetrics.util import _get_field


class LineageDefinition(abc.ABC):
    """\
    Abstract base class for a strategy that assigns table rows to clonal lineages.

    Rows with identical keys are aggregated into the same lineage by
    :func:`~repmetrics.io.repertoire_from_dataframe`. A key that is `None`, or a tuple
    that contains `None`, marks a row that cannot be assigned to a lineage. Such rows
    are excluded.

    To implement a new strategy, subclass `LineageDefinition` and override
    :meth:`lineage_key`.
    """

    @abc.abstractmethod
    def lineage_key(self, row: Mapping[str, Any]) -> Hashable | None:
        """\
        Extract the lineage key from a single row.

        Parameters
        ----------
        row
            Mapping from column names to values. NA cells are `None`.

        Returns
        -------
        A hashable key identifying the lineage.
        """


@dataclass(frozen=True)
class LineageIDDefinition(LineageDefinition):
    """\
    Use a column with precomputed lineage (clone) identifiers.

    This is the simplest strategy and applicable when lineages have been
    assigned by an upstream tool.

    Parameters
    ----------
    column
        Column with lineage identifiers.
    """

    column: str = "lineage_id"

    def lineage_key(self, row: Mapping[str, Any]) -> Hashable | None:
        return _get_field(row, self.column)


@dataclass(frozen=True)
class VJCdr3Definition(LineageDefinition):
    """\
    Define lineages by the combination of V gene, J gene and :term:`CDR3` sequence.

    Parameters
    ----------
    v_column
        Column with the V gene call
    j_column
        Column with the J gene call
    cdr3_column
        Column with the CDR3 sequence
    use_first_allele
        If `True`, only use the first of multiple comma-separated gene calls
        (see :func:`first_allele`).
    """

    v_column: str = "v_call"
    j_column: str = "j_call"
    cdr3_column: str = "cdr3"
    use_first_allele: bool = True

    def lineage_key(self, row: Mapping[str, Any]) -> tuple[Any, Any, Any]:
        v_call = _get_field(row, self.v_column)
        j_call = _get_field(row, self.j_column)
        cdr3 = _get_field(row, self.cdr3_column)
        if self.use_first_allele:
            v_call = first_allele(v_call)
            j_call = first_allele(j_call)
        return (v_call, j_call, cdr3)


@dataclass(frozen=True)
class CustomDefinition(LineageDefinition):
    """\
    Define lineages with an arbitrary function.

    Parameters
    ----------
    key_func
        Function that receives a row (a mapping of column names to values, NA cells are `None`)
        and returns a hashable lineage key.

    Example
    -------

    .. code-block:: python

        # group by V gene family only
        strategy = CustomDefinition(lambda row: row["v_call"].split("-")[0])
    """

    key_func: Callable[[Mapping[str, Any]], Hashable | None]

    def lineage_key(self, row: Mapping[str, Any]) -> Hashable | None:
        return self.key_func(row)


def lineage_key(strategy: LineageDefinition, row: Mapping[str, Any]) -> Hashable | None:
    """Extract a lineage key from `row` using the given `strategy`."""
    return strategy.lineage_key(row)


def first_allele(call: Any) -> Any:
    """\
    Extract the first call from a gene call string with multiple comma-separated calls.

    Surrounding whitespace is removed. `None`, NA and other non-string values are
    returned unchanged.

    Example
    -------

    .. code-block:: python

        first_allele("IGHV1-2*01,IGHV1-2*02")  # "IGHV1-2*01"
        first_allele("IGHV1-2*01")  # "IGHV1-2*01"
    """
    if not isinstance(call, str):
        return call
    return call.split(",")[0].strip()
