"""Deterministic diff of canonical table definitions."""

from schema_engine.diff.line_diff import diff_tables, has_differences, unified_line_diff

__all__ = [
    "diff_tables",
    "has_differences",
    "unified_line_diff",
]
