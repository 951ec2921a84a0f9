"""Rich output formatting for the schema-check CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from schema_engine.models.report import DifferenceKind, SchemaReport

_KIND_COLOURS: dict[DifferenceKind, str] = {
    DifferenceKind.ALTERED_TABLE: "yellow",
    DifferenceKind.MISSING_TABLE: "red",
    DifferenceKind.UNKNOWN_TABLE: "cyan",
}

_KIND_LABELS: dict[DifferenceKind, str] = {
    DifferenceKind.ALTERED_TABLE: "altered",
    DifferenceKind.MISSING_TABLE: "missing",
    DifferenceKind.UNKNOWN_TABLE: "unknown",
}


def display_schema_report(console: Console, report: SchemaReport) -> None:
    """Render every table difference as a highlighted diff, then a summary table.

    Parameters
    ----------
    console:
        Rich console to write to.
    report:
        The audit result.
    """
    if report.is_clean:
        console.print("[green]✓ Database schema is consistent with the reference schema.[/green]")
        return

    for table_name in report:
        difference = report[table_name]
        colour = _KIND_COLOURS[difference.kind]
        console.print(
            Panel(
                Syntax(difference.diff_text.rstrip("\n"), "diff", theme="ansi_dark", word_wrap=True),
                title=f"[{colour}]{escape(table_name)}[/{colour}] ({_KIND_LABELS[difference.kind]})",
                title_align="left",
                expand=False,
            )
        )

    table = Table(title=f"Schema differences ({len(report)})", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Table", style="bold")
    table.add_column("Status")
    for table_name in report:
        kind = report[table_name].kind
        colour = _KIND_COLOURS[kind]
        table.add_row(escape(table_name), f"[{colour}]{_KIND_LABELS[kind]}[/{colour}]")
    console.print(table)

    counts = ", ".join(
        f"{len(report.tables_by_kind(kind))} {_KIND_LABELS[kind]}"
        for kind in DifferenceKind
        if report.tables_by_kind(kind)
    )
    console.print(f"[red]Database schema differs from the reference schema: {counts}.[/red]")


def display_normalized_tables(console: Console, tables: dict[str, str]) -> None:
    """Print the canonical form of each table as highlighted SQL."""
    if not tables:
        console.print("[dim]No CREATE TABLE statements found.[/dim]")
        return
    for table_name, canonical in tables.items():
        console.print(f"[bold]-- {escape(table_name)}[/bold]")
        console.print(Syntax(canonical + ";", "sql", theme="ansi_dark", word_wrap=True))


def display_timings(console: Console, stats: list[dict[str, Any]]) -> None:
    """Render per-operation timing statistics collected during the run."""
    if not stats:
        return
    table = Table(title="Timings", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Operation", style="bold")
    table.add_column("Count", justify="right")
    table.add_column("Total (ms)", justify="right")
    table.add_column("Mean (ms)", justify="right")
    table.add_column("p95 (ms)", justify="right")
    table.add_column("Max (ms)", justify="right")
    for row in stats:
        table.add_row(
            row["operation"],
            str(row["count"]),
            f"{row['total_ms']:.3f}",
            f"{row['mean_ms']:.3f}",
            f"{row['p95_ms']:.3f}",
            f"{row['max_ms']:.3f}",
        )
    console.print(table)
