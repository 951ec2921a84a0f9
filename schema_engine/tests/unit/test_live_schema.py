"""Tests for schema_engine.introspection.live_schema.

Covers:
- LiveSchemaReader delegation to the connector
- Wrapping of driver and network failures into LiveSchemaConnectionError
- Non-connection errors propagate unchanged
"""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, PropertyMock

import pytest
from sqlalchemy.exc import OperationalError

from schema_engine.introspection.live_schema import LiveSchemaConnectionError, LiveSchemaReader


class TestDelegation:
    """Tests for the happy path."""

    def test_fetch_and_listing(self, fake_connector_cls) -> None:
        """Reads are served by the connector."""
        connector = fake_connector_cls({"glpi_a": "CREATE TABLE `glpi_a` (`id` int)", "other": "x"})
        reader = LiveSchemaReader(connector)

        assert reader.fetch("glpi_a") == "CREATE TABLE `glpi_a` (`id` int)"
        assert reader.fetch("glpi_missing") is None
        assert reader.exists("glpi_a")
        assert reader.list_tables("glpi_") == ["glpi_a"]
        assert reader.use_utf8mb4 is True
        assert reader.connector is connector


class TestErrorWrapping:
    """Tests for connection failure handling."""

    def test_driver_error_wrapped(self, caplog: pytest.LogCaptureFixture) -> None:
        """SQLAlchemy errors become LiveSchemaConnectionError, chained to the cause."""
        connector = MagicMock()
        cause = OperationalError("SHOW CREATE TABLE `t`", None, Exception(2013, "Lost connection"))
        connector.show_create_table.side_effect = cause

        with caplog.at_level(logging.ERROR, logger="schema_engine.introspection.live_schema"):
            with pytest.raises(LiveSchemaConnectionError) as exc_info:
                LiveSchemaReader(connector).fetch("t")

        assert exc_info.value.__cause__ is cause
        assert "fetching table t" in str(exc_info.value)
        assert "Live schema query failed" in caplog.text

    def test_os_error_wrapped(self) -> None:
        """Socket-level failures are wrapped too."""
        connector = MagicMock()
        type(connector).use_utf8mb4 = PropertyMock(side_effect=OSError("Connection refused"))

        with pytest.raises(LiveSchemaConnectionError, match="default charset"):
            LiveSchemaReader(connector).use_utf8mb4

    def test_is_a_connection_error(self) -> None:
        """Callers may catch the builtin ConnectionError."""
        connector = MagicMock()
        connector.list_tables.side_effect = OSError("timed out")

        with pytest.raises(ConnectionError):
            LiveSchemaReader(connector).list_tables("glpi_")

    def test_other_errors_propagate(self) -> None:
        """Programming errors are not disguised as connection failures."""
        connector = MagicMock()
        connector.table_exists.side_effect = ValueError("bad name")

        with pytest.raises(ValueError, match="bad name"):
            LiveSchemaReader(connector).exists("t")
