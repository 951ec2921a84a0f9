"""Access to the live database schema."""

from __future__ import annotations

from schema_engine.introspection.connector import (
    DatabaseConnector,
    SqlAlchemyConnector,
    create_connector,
)
from schema_engine.introspection.live_schema import LiveSchemaConnectionError, LiveSchemaReader

__all__ = [
    "DatabaseConnector",
    "LiveSchemaConnectionError",
    "LiveSchemaReader",
    "SqlAlchemyConnector",
    "create_connector",
]
