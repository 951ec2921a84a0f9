"""Report models for schema integrity checks.

These models represent the input side of a check (the declared or live
``CREATE TABLE`` statement of a table) and its output (per-table
differences aggregated into a :class:`SchemaReport`).
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DifferenceKind(str, Enum):
    """Classification of a difference between reference and live schema."""

    ALTERED_TABLE = "altered_table"
    MISSING_TABLE = "missing_table"
    UNKNOWN_TABLE = "unknown_table"


class TableDefinition(BaseModel):
    """A single ``CREATE TABLE`` statement, as declared or as reported by the database."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unquoted table name.")
    raw_sql: str = Field(..., description="Statement text, without the terminating ';'.")


class TableDiff(BaseModel):
    """Outcome of comparing the canonical forms of two statements."""

    model_config = ConfigDict(frozen=True)

    has_differences: bool = Field(..., description="True if the canonical forms differ.")
    diff_text: str = Field(
        default="",
        description="Unified diff (expected = Original, actual = New); empty when identical.",
    )


class Difference(BaseModel):
    """A reportable difference for one table."""

    model_config = ConfigDict(frozen=True)

    table_name: str = Field(..., description="Table the difference applies to.")
    kind: DifferenceKind = Field(..., description="Classification of the difference.")
    diff_text: str = Field(..., min_length=1, description="Unified diff of the canonical forms.")


class SchemaReport(BaseModel):
    """Ordered mapping of table name to :class:`Difference`.

    Insertion order is evaluation order: declared tables in file order,
    then unknown live tables in database listing order.  Tables without
    differences never appear.
    """

    differences: dict[str, Difference] = Field(
        default_factory=dict,
        description="Differences keyed by table name, in evaluation order.",
    )

    @property
    def is_clean(self) -> bool:
        return not self.differences

    def add(self, difference: Difference) -> None:
        self.differences[difference.table_name] = difference

    def tables_by_kind(self, kind: DifferenceKind) -> list[str]:
        """Return the names of tables with the given difference *kind*, in report order."""
        return [name for name, diff in self.differences.items() if diff.kind == kind]

    def __len__(self) -> int:
        return len(self.differences)

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.differences)

    def __getitem__(self, table_name: str) -> Difference:
        return self.differences[table_name]

    def __contains__(self, table_name: object) -> bool:
        return table_name in self.differences
