"""Tests for cli/cli/display.py -- Rich output formatting.

Rendered output is captured with a Console writing to a StringIO buffer
rather than stderr.
"""

from __future__ import annotations

import io

from rich.console import Console

from cli.display import display_normalized_tables, display_schema_report, display_timings
from schema_engine.models.report import Difference, DifferenceKind, SchemaReport

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _capture_console() -> tuple[Console, io.StringIO]:
    """Create a Console that writes plain text to a StringIO buffer."""
    buf = io.StringIO()
    console = Console(file=buf, no_color=True, highlight=False, width=120)
    return console, buf


def _report() -> SchemaReport:
    report = SchemaReport()
    report.add(
        Difference(
            table_name="glpi_items",
            kind=DifferenceKind.ALTERED_TABLE,
            diff_text="--- Original\n+++ New\n@@ @@\n-  `a` int\n+  `a` bigint\n",
        )
    )
    report.add(
        Difference(
            table_name="glpi_gone",
            kind=DifferenceKind.MISSING_TABLE,
            diff_text="--- Original\n+++ New\n@@ @@\n-CREATE TABLE `glpi_gone` (\n-)\n",
        )
    )
    return report


# ---------------------------------------------------------------------------
# display_schema_report
# ---------------------------------------------------------------------------


class TestDisplaySchemaReport:
    def test_clean_report(self):
        console, buf = _capture_console()
        display_schema_report(console, SchemaReport())
        assert "consistent" in buf.getvalue()

    def test_differences_rendered(self):
        console, buf = _capture_console()
        display_schema_report(console, _report())
        output = buf.getvalue()

        assert "glpi_items (altered)" in output
        assert "glpi_gone (missing)" in output
        assert "+  `a` bigint" in output
        assert "Schema differences (2)" in output

    def test_table_name_is_not_markup(self):
        report = SchemaReport()
        report.add(
            Difference(
                table_name="glpi_[bold]items",
                kind=DifferenceKind.UNKNOWN_TABLE,
                diff_text="--- Original\n+++ New\n@@ @@\n+CREATE TABLE `glpi_[bold]items` (\n+  `id` int\n+)\n",
            )
        )
        console, buf = _capture_console()
        display_schema_report(console, report)
        output = buf.getvalue()

        # Panel title, diff body and summary row.
        assert output.count("glpi_[bold]items") == 3

    def test_summary_counts(self):
        console, buf = _capture_console()
        display_schema_report(console, _report())
        assert "1 altered, 1 missing" in buf.getvalue()


# ---------------------------------------------------------------------------
# display_normalized_tables / display_timings
# ---------------------------------------------------------------------------


class TestOtherDisplays:
    def test_normalized_tables(self):
        console, buf = _capture_console()
        display_normalized_tables(console, {"glpi_a": "CREATE TABLE `glpi_a` (\n  `id` int\n)"})
        output = buf.getvalue()

        assert "-- glpi_a" in output
        assert "CREATE TABLE `glpi_a` (" in output

    def test_no_tables(self):
        console, buf = _capture_console()
        display_normalized_tables(console, {})
        assert "No CREATE TABLE statements found." in buf.getvalue()

    def test_timings(self):
        console, buf = _capture_console()
        display_timings(
            console,
            [
                {
                    "operation": "schema.audit",
                    "count": 1,
                    "total_ms": 12.5,
                    "mean_ms": 12.5,
                    "p50_ms": 12.5,
                    "p95_ms": 12.5,
                    "max_ms": 12.5,
                }
            ],
        )
        output = buf.getvalue()

        assert "schema.audit" in output
        assert "12.500" in output

    def test_no_timings(self):
        console, buf = _capture_console()
        display_timings(console, [])
        assert buf.getvalue() == ""
