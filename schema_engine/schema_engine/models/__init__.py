"""Domain models for the schema integrity checker."""

from schema_engine.models.policy import EquivalencePolicy
from schema_engine.models.report import (
    Difference,
    DifferenceKind,
    SchemaReport,
    TableDefinition,
    TableDiff,
)

__all__ = [
    "Difference",
    "DifferenceKind",
    "EquivalencePolicy",
    "SchemaReport",
    "TableDefinition",
    "TableDiff",
]
