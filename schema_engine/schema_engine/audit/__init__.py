"""Schema integrity audit."""

from __future__ import annotations

from schema_engine.audit.auditor import SchemaAuditor

__all__ = ["SchemaAuditor"]
