"""Live schema reader.

Thin façade over a :class:`~schema_engine.introspection.connector.DatabaseConnector`
that turns driver and network failures into a single
:class:`LiveSchemaConnectionError`.  Failures are not retried: a schema audit
against a half-reachable database is meaningless.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError

from schema_engine.introspection.connector import DatabaseConnector

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiveSchemaConnectionError(ConnectionError):
    """The live database could not be queried."""


class LiveSchemaReader:
    """Fetch ``CREATE TABLE`` statements and table listings from the live database."""

    def __init__(self, connector: DatabaseConnector) -> None:
        self._connector = connector

    @property
    def connector(self) -> DatabaseConnector:
        return self._connector

    def _call(self, action: str, func: Callable[[], T]) -> T:
        try:
            return func()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Live schema query failed while %s: %s", action, exc)
            raise LiveSchemaConnectionError(f"Unable to query the database while {action}: {exc}") from exc

    @property
    def use_utf8mb4(self) -> bool:
        return self._call("reading the default charset", lambda: self._connector.use_utf8mb4)

    def fetch(self, table_name: str) -> str | None:
        """Return the live ``CREATE TABLE`` statement, or ``None`` if the table is gone."""
        raw_sql = self._call(f"fetching table {table_name}", lambda: self._connector.show_create_table(table_name))
        logger.debug("Fetched live definition of %s", table_name, extra={"table": table_name})
        return raw_sql

    def exists(self, table_name: str) -> bool:
        return self._call(f"checking table {table_name}", lambda: self._connector.table_exists(table_name))

    def list_tables(self, prefix: str = "") -> list[str]:
        return self._call("listing tables", lambda: self._connector.list_tables(prefix))
