"""Shared fixtures for CLI tests.

Commands obtain their connector from ``cli.app.create_connector``; tests
patch it to return an in-memory connector so no MySQL server is needed.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from schema_engine.telemetry.profiling import ProfileCollector


class InMemoryConnector:
    """Serves ``SHOW CREATE TABLE`` text from a dict."""

    def __init__(self, tables: dict[str, str], *, use_utf8mb4: bool = True) -> None:
        self.tables = tables
        self._use_utf8mb4 = use_utf8mb4

    @property
    def use_utf8mb4(self) -> bool:
        return self._use_utf8mb4

    def show_create_table(self, table_name: str) -> str | None:
        return self.tables.get(table_name)

    def table_exists(self, table_name: str) -> bool:
        return table_name in self.tables

    def list_tables(self, prefix: str = "") -> list[str]:
        return sorted(name for name in self.tables if name.startswith(prefix))


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    for name in ("SCHEMA_DATABASE_URL", "SCHEMA_TABLE_PREFIX", "SCHEMA_DEBUG", "SCHEMA_STRUCTURED_LOGGING"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    ProfileCollector.reset()
    yield
    ProfileCollector.reset()


@pytest.fixture()
def connector_cls() -> type[InMemoryConnector]:
    return InMemoryConnector
