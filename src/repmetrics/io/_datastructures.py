"""Datastructures for clonal count distributions of adaptive immune receptor (IR) repertoires."""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, overload

import numpy as np


@dataclass(frozen=True)
class LengthStats:
    """Sequence length statistics of the rows a :class:`Repertoire` was built from.

    Lengths are in amino acids. If the source column contains nucleotide sequences
    (`use_aa=False`), the nucleotide length was integer-divided by 3.

    Attributes
    ----------
    mean_length
        Mean sequence length
    median_length
        Median sequence length
    std_length
        Standard deviation of the sequence length. Population standard deviation
        if `weighted`, sample standard deviation otherwise.
    min_length
        Minimum sequence length (not weighted)
    max_length
        Maximum sequence length (not weighted)
    n_sequences
        Number of sequences. This is the total weight if `weighted`.
    weighted
        Whether the statistics were weighted by sequence abundance
    column
        Name of the column the lengths were computed from
    use_aa
        Whether the column holds amino acid sequences
    """

    mean_length: float
    median_length: float
    std_length: float
    min_length: int
    max_length: int
    n_sequences: int
    weighted: bool = False
    column: str = "cdr3"
    use_aa: bool = False

    @classmethod
    def empty(cls, column: str = "cdr3", use_aa: bool = False) -> "LengthStats":
        """Statistics of a table without any usable sequence."""
        return cls(0.0, 0.0, 0.0, 0, 0, 0, weighted=False, column=column, use_aa=use_aa)

    def __repr__(self):
        unit = "aa" if self.use_aa else "nt->aa"
        return (
            f"LengthStats ({self.column}, {unit}): mean={self.mean_length:.2f}, median={self.median_length:.2f}, "
            f"std={self.std_length:.2f}, range={self.min_length}-{self.max_length}, n={self.n_sequences}"
        )


class Repertoire:
    """\
    Clonal count distribution of a single sample or donor.

    A repertoire is immutable. Counts are sorted in descending order upon construction,
    lineage identifiers are permuted along with them, such that `lineage_ids[i]` always
    names the lineage with `counts[i]` members. Ties keep their input order.

    Parameters
    ----------
    counts
        Number of sequences or cells per lineage. Integer or floating point values, all
        need to be non-negative.
    lineage_ids
        Identifier for each lineage. Needs to have the same length as `counts`.
        Defaults to `lineage_1`, `lineage_2`, ... in input order.
    donor_id
        Identifier of the donor or sample.
    metadata
        Arbitrary additional information, e.g. the file the repertoire was read from.
        A read-only copy is stored.
    length_stats
        Sequence length statistics (see :func:`~repmetrics.tl.length_stats`). Required
        by the length metrics (e.g. :attr:`~repmetrics.tl.Metric.MEAN_LENGTH`).
    """

    __slots__ = ("_counts", "_lineage_ids", "_donor_id", "_total_count", "_metadata", "_length_stats")

    def __init__(
        self,
        counts: Sequence[float] | np.ndarray,
        lineage_ids: Sequence[str] | None = None,
        *,
        donor_id: str = "",
        metadata: Mapping[str, Any] | None = None,
        length_stats: LengthStats | None = None,
    ):
        counts = np.array(counts)
        if counts.ndim != 1:
            raise ValueError(f"`counts` must be one-dimensional. Got an array with shape {counts.shape}.")
        if counts.size == 0:
            counts = counts.astype(np.int64)
        if counts.dtype.kind == "u":
            counts = counts.astype(np.int64)
        if counts.dtype.kind not in ("i", "f"):
            raise TypeError(f"`counts` must be integers or floating point numbers. Got dtype `{counts.dtype}`.")

        if lineage_ids is None:
            lineage_ids = [f"lineage_{i}" for i in range(1, len(counts) + 1)]
        lineage_ids = [str(x) for x in lineage_ids]
        if len(lineage_ids) != len(counts):
            raise ValueError(
                "`counts` and `lineage_ids` must have the same length. "
                f"Got {len(counts)} counts and {len(lineage_ids)} lineage ids."
            )
        # NaN fails this check, too
        if not np.all(counts >= 0):
            invalid = counts[~(counts >= 0)]
            raise ValueError(
                f"`counts` must be non-negative. Found {len(invalid)} invalid value(s), e.g. `{invalid[0]}`."
            )

        # stable sort, descending
        order = np.argsort(-counts, kind="stable")
        self._counts = counts[order]
        self._counts.flags.writeable = False
        self._lineage_ids = tuple(lineage_ids[i] for i in order)
        self._donor_id = str(donor_id)
        self._total_count = self._counts.sum().item()
        self._metadata = dict(metadata) if metadata is not None else {}
        self._length_stats = length_stats

    @property
    def counts(self) -> np.ndarray:
        """Read-only array of lineage counts, sorted in descending order."""
        return self._counts

    @property
    def lineage_ids(self) -> tuple[str, ...]:
        """Lineage identifiers, aligned with :attr:`counts`."""
        return self._lineage_ids

    @property
    def donor_id(self) -> str:
        return self._donor_id

    @property
    def total_count(self) -> int | float:
        """Sum of all counts."""
        return self._total_count

    @property
    def metadata(self) -> Mapping[str, Any]:
        return MappingProxyType(self._metadata)

    @property
    def length_stats(self) -> LengthStats | None:
        """Sequence length statistics, or `None` if they were not computed."""
        return self._length_stats

    @property
    def richness(self) -> int:
        """Number of lineages, including lineages with a count of zero."""
        return len(self._counts)

    @property
    def frequencies(self) -> np.ndarray:
        """Lineage counts divided by the total count, in the same order as :attr:`counts`.

        Empty if the total count is zero.
        """
        if self._total_count == 0:
            return np.array([], dtype=float)
        return self._counts / self._total_count

    def __len__(self) -> int:
        return self.richness

    def __reduce__(self):
        # rebuild through __init__ so that unpickled counts are read-only, too
        return (
            _rebuild_repertoire,
            (self._counts, self._lineage_ids, self._donor_id, self._metadata, self._length_stats),
        )

    def __repr__(self):
        donor =self._donor_id if self._donor_id else "<unknown>"
        lines = [f"Repertoire of donor {donor} with {self.richness} lineages and a total count of {self._total_count}"]
        if self.richness and self._total_count:
            lines.append("    top lineages:")
            for lineage_id, count in zip(self._lineage_ids[:5], self._counts[:5], strict=False):
                lines.append(f"        {lineage_id}: {count} ({count / self._total_count:.2%})")
            if self.richness > 5:
                lines.append(f"        ... and {self.richness - 5} more")
        return "\n".join(lines)


def _rebuild_repertoire(counts, lineage_ids, donor_id, metadata, length_stats) -> Repertoire:
    return Repertoire(counts, lineage_ids, donor_id=donor_id, metadata=metadata, length_stats=length_stats)


class RepertoireCollection(Sequence):
    """\
    Read-only collection of repertoires of multiple donors.

    Parameters
    ----------
    repertoires
        Repertoires in the order in which results are reported.
    """

    def __init__(self, repertoires: Iterable[Repertoire]):
        self._repertoires = tuple(repertoires)
        for rep in self._repertoires:
            if not isinstance(rep, Repertoire):
                raise TypeError(f"Expected `Repertoire` objects, got `{type(rep).__name__}`.")
        self._donor_ids = tuple(rep.donor_id for rep in self._repertoires)

    @property
    def repertoires(self) -> tuple[Repertoire, ...]:
        return self._repertoires

    @property
    def donor_ids(self) -> tuple[str, ...]:
        """Donor identifiers, aligned with the repertoires."""
        return self._donor_ids

    def by_donor(self, donor_id: str) -> Repertoire:
        """Return the first repertoire with the given donor identifier."""
        try:
            return self._repertoires[self._donor_ids.index(donor_id)]
        except ValueError:
            raise KeyError(f"No repertoire with donor id `{donor_id}` in the collection.") from None

    @overload
    def __getitem__(self, i: int) -> Repertoire: ...

    @overload
    def __getitem__(self, i: slice) -> "RepertoireCollection": ...

    def __getitem__(self, i):
        if isinstance(i, slice):
            return RepertoireCollection(self._repertoires[i])
        return self._repertoires[i]

    def __iter__(self) -> Iterator[Repertoire]:
        return iter(self._repertoires)

    def __len__(self) -> int:
        return len(self._repertoires)

    def __repr__(self):
        return f"RepertoireCollection with {len(self)} repertoires"
