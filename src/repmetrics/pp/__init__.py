from ._lineage import (
    CustomDefinition,
    LineageDefinition,
    LineageIDDefinition,
    VJCdr3Definition,
    first_allele,
    lineage_key,
)

__all__ = [
    "CustomDefinition",
    "LineageDefinition",
    "LineageIDDefinition",
    "VJCdr3Definition",
    "first_allele",
    "lineage_key",
]
