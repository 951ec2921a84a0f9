"""Equivalence policy controlling DDL normalisation.

A policy is built once per audit and shared read-only by the normaliser
and the diff engine.  Every tolerated drift is an explicit, named field;
there is no free-form option lookup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from schema_engine.introspection.connector import DatabaseConnector


class EquivalencePolicy(BaseModel):
    """Which syntactic and migration-related differences are considered equivalent."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    strict: bool = Field(
        default=True,
        description="Preserve column and index order; when False they are sorted.",
    )
    target_uses_utf8mb4: bool = Field(
        default=False,
        description="The live database's implicit default charset is utf8mb4 (utf8 otherwise).",
    )
    ignore_utf8mb4_migration: bool = Field(
        default=False,
        description="Hide utf8 <-> utf8mb4 charset and collation differences.",
    )
    ignore_timestamps_migration: bool = Field(
        default=False,
        description="Treat timestamp and datetime column types as the same type.",
    )
    ignore_dynamic_row_format_migration: bool = Field(
        default=False,
        description="Do not compare the ROW_FORMAT table option.",
    )
    ignore_innodb_migration: bool = Field(
        default=False,
        description="Do not compare the ENGINE table option.",
    )
    ignore_unsigned_keys_migration: bool = Field(
        default=False,
        description="Ignore 'unsigned' on primary-key and foreign-key integer columns.",
    )
    drop_implicit_timestamp_defaults: bool = Field(
        default=True,
        description=(
            "Drop 'DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP' from NOT NULL "
            "timestamp columns, which MySQL may add implicitly."
        ),
    )

    @classmethod
    def for_connector(cls, connector: DatabaseConnector, **flags: bool) -> EquivalencePolicy:
        """Build a policy whose ``target_uses_utf8mb4`` comes from *connector*."""
        flags.setdefault("target_uses_utf8mb4", connector.use_utf8mb4)
        return cls(**flags)

    @classmethod
    def tolerant(cls, *, target_uses_utf8mb4: bool = False) -> EquivalencePolicy:
        """Non-strict policy ignoring every known migration."""
        return cls(
            strict=False,
            target_uses_utf8mb4=target_uses_utf8mb4,
            ignore_utf8mb4_migration=True,
            ignore_timestamps_migration=True,
            ignore_dynamic_row_format_migration=True,
            ignore_innodb_migration=True,
            ignore_unsigned_keys_migration=True,
        )
