"""Shared fixtures for schema_engine tests.

``FakeConnector`` is an in-memory :class:`DatabaseConnector` serving
``SHOW CREATE TABLE`` text from a dict, so auditor and reader tests never
need a MySQL server.
"""

from __future__ import annotations

import pytest

from schema_engine.telemetry.profiling import ProfileCollector


class FakeConnector:
    """In-memory stand-in for a live database."""

    def __init__(
        self,
        tables: dict[str, str] | None = None,
        *,
        use_utf8mb4: bool = True,
        existing: set[str] | None = None,
    ) -> None:
        self.tables = dict(tables or {})
        self._use_utf8mb4 = use_utf8mb4
        # Names reported by table_exists; defaults to the served tables.
        self.existing = set(self.tables) if existing is None else existing
        self.fetched: list[str] = []

    @property
    def use_utf8mb4(self) -> bool:
        return self._use_utf8mb4

    def show_create_table(self, table_name: str) -> str | None:
        self.fetched.append(table_name)
        return self.tables.get(table_name)

    def table_exists(self, table_name: str) -> bool:
        return table_name in self.existing

    def list_tables(self, prefix: str = "") -> list[str]:
        return sorted(name for name in self.tables if name.startswith(prefix))


@pytest.fixture(autouse=True)
def _reset_profile_collector():
    ProfileCollector.reset()
    yield
    ProfileCollector.reset()


@pytest.fixture()
def fake_connector_cls() -> type[FakeConnector]:
    return FakeConnector
