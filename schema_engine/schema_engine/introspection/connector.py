"""Database connector protocol and its SQLAlchemy implementation.

Consumer code (the live schema reader, the auditor) depends on the
:class:`DatabaseConnector` protocol only.  :class:`SqlAlchemyConnector`
satisfies it for MySQL and MariaDB; tests substitute plain fakes.

Every query is read-only and runs on a short-lived connection checked out
of the engine's pool.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, DBAPIError

from schema_engine.parser.ddl_parser import quote_identifier

if TYPE_CHECKING:
    from schema_engine.config import Settings

logger = logging.getLogger(__name__)

# MySQL error code for "Table '...' doesn't exist".
_ER_NO_SUCH_TABLE = 1146


@runtime_checkable
class DatabaseConnector(Protocol):
    """Read-only access to the live schema of one database."""

    @property
    def use_utf8mb4(self) -> bool:
        """True if the database's default charset is utf8mb4."""
        ...

    def show_create_table(self, table_name: str) -> str | None:
        """Return ``SHOW CREATE TABLE`` output, or ``None`` if the table does not exist."""
        ...

    def table_exists(self, table_name: str) -> bool: ...

    def list_tables(self, prefix: str = "") -> list[str]:
        """Return the names of the base tables starting with *prefix*, sorted."""
        ...


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so *value* matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlAlchemyConnector:
    """:class:`DatabaseConnector` backed by a SQLAlchemy engine.

    Parameters
    ----------
    engine:
        Engine connected to the audited MySQL/MariaDB database.
    use_utf8mb4:
        Override for charset detection.  When ``None`` the server is asked
        for ``@@character_set_database`` on first access.
    """

    def __init__(self, engine: Engine, *, use_utf8mb4: bool | None = None) -> None:
        self._engine = engine
        self._use_utf8mb4 = use_utf8mb4

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def use_utf8mb4(self) -> bool:
        if self._use_utf8mb4 is None:
            with self._engine.connect() as conn:
                charset = conn.execute(text("SELECT @@character_set_database")).scalar()
            self._use_utf8mb4 = str(charset or "").lower().startswith("utf8mb4")
            logger.debug("Database default charset is %s", charset)
        return self._use_utf8mb4

    def show_create_table(self, table_name: str) -> str | None:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(text(f"SHOW CREATE TABLE {quote_identifier(table_name)}")).first()
        except DBAPIError as exc:
            code = getattr(exc.orig, "args", (None,))[0] if exc.orig is not None else None
            if code == _ER_NO_SUCH_TABLE:
                return None
            raise
        if row is None:
            return None
        return str(row[1])

    def table_exists(self, table_name: str) -> bool:
        query = text(
            "SELECT COUNT(*) FROM information_schema.TABLES "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_TYPE = 'BASE TABLE' AND TABLE_NAME = :name"
        )
        with self._engine.connect() as conn:
            count = conn.execute(query, {"name": table_name}).scalar()
        return bool(count)

    def list_tables(self, prefix: str = "") -> list[str]:
        query = text(
            "SELECT TABLE_NAME FROM information_schema.TABLES "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_TYPE = 'BASE TABLE' AND TABLE_NAME LIKE :pattern "
            "ORDER BY TABLE_NAME"
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query, {"pattern": escape_like(prefix) + "%"}).all()
        return [str(row[0]) for row in rows]

    def dispose(self) -> None:
        """Close every pooled connection."""
        self._engine.dispose()


def create_connector(settings: Settings) -> SqlAlchemyConnector:
    """Build a :class:`SqlAlchemyConnector` from *settings*.

    Raises
    ------
    ValueError
        If no database URL is configured, the URL is malformed, or its
        driver is not installed.
    """
    if settings.database_url is None:
        raise ValueError("No database URL configured (set SCHEMA_DATABASE_URL or pass --database-url)")

    url = settings.database_url.get_secret_value()
    connect_args: dict[str, int] = {}
    if url.startswith(("mysql", "mariadb")):
        connect_args = {
            "connect_timeout": settings.connect_timeout,
            "read_timeout": settings.read_timeout,
        }

    try:
        engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
    except (ArgumentError, ImportError) as exc:
        raise ValueError(f"Unusable database URL: {exc}") from exc
    logger.debug("Created engine for %s", engine.url.render_as_string(hide_password=True))
    return SqlAlchemyConnector(engine, use_utf8mb4=settings.use_utf8mb4)
