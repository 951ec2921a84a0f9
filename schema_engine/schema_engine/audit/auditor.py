"""Whole-schema audit: reference schema file versus live database.

The auditor walks the declared tables in file order, classifies each one as
missing, altered or identical, then (optionally) lists the live tables of
the audited context that nothing declares.  Only tables with a difference
appear in the resulting :class:`~schema_engine.models.report.SchemaReport`.

Contexts
--------
``""`` or ``"core"``
    Tables named ``<table_prefix>...``, excluding the plugin namespace
    ``<table_prefix><plugin_namespace>...``.
``"plugin:<key>"``
    Tables named ``<table_prefix><plugin_namespace><key>_...``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from schema_engine.diff.line_diff import diff_tables
from schema_engine.introspection.connector import DatabaseConnector
from schema_engine.introspection.live_schema import LiveSchemaReader
from schema_engine.models.policy import EquivalencePolicy
from schema_engine.models.report import Difference, DifferenceKind, SchemaReport
from schema_engine.parser.extractor import extract_schema_from_file
from schema_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

CORE_CONTEXT = "core"
_PLUGIN_CONTEXT_RE = re.compile(r"^plugin:(?P<key>[A-Za-z0-9_]+)$")


class SchemaAuditor:
    """Compare a reference schema against the live database.

    Parameters
    ----------
    reader:
        A :class:`LiveSchemaReader`, or a bare connector which is wrapped in one.
    policy:
        Equivalence policy.  Defaults to a strict policy whose
        ``target_uses_utf8mb4`` is read from the database on first use.
    table_prefix:
        Prefix shared by every table of the application (``glpi_``, ...).
    plugin_namespace:
        Namespace, below ``table_prefix``, holding plugin tables.
    """

    def __init__(
        self,
        reader: LiveSchemaReader | DatabaseConnector,
        policy: EquivalencePolicy | None = None,
        *,
        table_prefix: str = "",
        plugin_namespace: str = "plugin_",
    ) -> None:
        self._reader = reader if isinstance(reader, LiveSchemaReader) else LiveSchemaReader(reader)
        self._policy = policy
        self.table_prefix = table_prefix
        self.plugin_namespace = plugin_namespace

    @property
    def reader(self) -> LiveSchemaReader:
        return self._reader

    @property
    def policy(self) -> EquivalencePolicy:
        if self._policy is None:
            self._policy = EquivalencePolicy(target_uses_utf8mb4=self._reader.use_utf8mb4)
        return self._policy

    # -- single table --------------------------------------------------------

    def get_diff(self, table_name: str, raw_sql: str) -> str:
        """Unified diff between the declared *raw_sql* and the live table (``""`` if equivalent)."""
        return diff_tables(raw_sql, self._reader.fetch(table_name), self.policy).diff_text

    def has_differences(self, table_name: str, raw_sql: str) -> bool:
        return diff_tables(raw_sql, self._reader.fetch(table_name), self.policy).has_differences

    # -- contexts ------------------------------------------------------------

    def resolve_table_prefix(self, context_prefix: str = "") -> str:
        """Return the table-name prefix of *context_prefix*.

        Raises
        ------
        ValueError
            If *context_prefix* is neither ``""``, ``"core"`` nor ``"plugin:<key>"``.
        """
        if context_prefix in ("", CORE_CONTEXT):
            return self.table_prefix
        match = _PLUGIN_CONTEXT_RE.match(context_prefix)
        if match is None:
            raise ValueError(f"Invalid context {context_prefix!r}: expected 'core' or 'plugin:<key>'")
        return f"{self.table_prefix}{self.plugin_namespace}{match.group('key').lower()}_"

    def _is_in_context(self, table_name: str, context_prefix: str) -> bool:
        if not table_name.startswith(self.resolve_table_prefix(context_prefix)):
            return False
        if context_prefix in ("", CORE_CONTEXT):
            return not table_name.startswith(self.table_prefix + self.plugin_namespace)
        return True

    # -- whole schema --------------------------------------------------------

    @profile_operation("schema.audit")
    def audit(
        self,
        schema_file_path: str | Path,
        detect_unknown_tables: bool = True,
        context_prefix: str = "",
    ) -> SchemaReport:
        """Audit every table declared in *schema_file_path*.

        Parameters
        ----------
        schema_file_path:
            Reference schema file (``CREATE TABLE`` statements).
        detect_unknown_tables:
            Also report live tables of the context that the file does not declare.
        context_prefix:
            ``""``/``"core"`` or ``"plugin:<key>"``.

        Raises
        ------
        ValueError
            On an invalid *context_prefix*.
        ParseError
            If the schema file or a live definition cannot be parsed.
        LiveSchemaConnectionError
            If the database cannot be queried.
        """
        prefix = self.resolve_table_prefix(context_prefix)
        declared = extract_schema_from_file(schema_file_path)
        policy = self.policy
        report = SchemaReport()

        for table_name, raw_sql in declared.items():
            actual_raw: str | None = None
            if self._reader.exists(table_name):
                actual_raw = self._reader.fetch(table_name)
                if actual_raw is None:
                    logger.warning(
                        "Table %s disappeared while auditing; reporting it as missing",
                        table_name,
                        extra={"table": table_name},
                    )
            if actual_raw is None:
                logger.debug("Table %s is missing", table_name, extra={"table": table_name})
                kind = DifferenceKind.MISSING_TABLE
            else:
                kind = DifferenceKind.ALTERED_TABLE

            result = diff_tables(raw_sql, actual_raw, policy)
            if result.has_differences:
                report.add(Difference(table_name=table_name, kind=kind, diff_text=result.diff_text))

        if detect_unknown_tables:
            for table_name in self._reader.list_tables(prefix):
                if table_name in declared or not self._is_in_context(table_name, context_prefix):
                    continue
                actual_raw = self._reader.fetch(table_name)
                if actual_raw is None:
                    logger.warning("Table %s disappeared while auditing", table_name, extra={"table": table_name})
                    continue
                result = diff_tables(None, actual_raw, policy)
                report.add(
                    Difference(
                        table_name=table_name,
                        kind=DifferenceKind.UNKNOWN_TABLE,
                        diff_text=result.diff_text,
                    )
                )

        logger.info(
            "Audit of %s finished: %d declared table(s), %d difference(s)",
            schema_file_path,
            len(declared),
            len(report),
        )
        return report

    check_complete_schema = audit
