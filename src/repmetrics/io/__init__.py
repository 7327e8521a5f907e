from ._datastructures import LengthStats, Repertoire, RepertoireCollection
from ._io import (
    read_repertoire,
    read_repertoires,
    read_repertoires_from_directory,
    repertoire_from_dataframe,
    split_by_donor,
    write_metrics,
)
from ._util import NA_VALUES

__all__ = [
    "LengthStats",
    "NA_VALUES",
    "Repertoire",
    "RepertoireCollection",
    "read_repertoire",
    "read_repertoires",
    "read_repertoires_from_directory",
    "repertoire_from_dataframe",
    "split_by_donor",
    "write_metrics",
]
