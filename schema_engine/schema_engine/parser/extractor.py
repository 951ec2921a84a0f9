"""Extraction of ``CREATE TABLE`` statements from a schema definition file.

A schema file is a sequence of SQL statements terminated by ``;``.  Only
``CREATE TABLE`` statements are kept; everything else (``DROP TABLE``,
``SET`` directives, ...) is skipped.  Comments are stripped, except
executable ``/*!...*/`` comments; the remaining statement text is kept
byte-for-byte so that it can be normalised later.

Splitting is done on the lexeme stream rather than on raw text so that a
``;`` inside a quoted ``COMMENT`` or default value never terminates a
statement.
"""

from __future__ import annotations

import logging
from pathlib import Path

from schema_engine.models.report import TableDefinition
from schema_engine.parser.errors import ParseError
from schema_engine.parser.tokenizer import Lexeme, LexemeKind, iter_lexemes, significant_lexemes

logger = logging.getLogger(__name__)


def _statement_header(lexemes: list[Lexeme]) -> str | None:
    """Return the table name if *lexemes* start a ``CREATE TABLE`` statement."""
    significant = significant_lexemes(lexemes)
    if len(significant) < 3 or not significant[0].is_word("CREATE"):
        return None

    pos = 1
    if significant[pos].is_word("TEMPORARY"):
        pos += 1
    if pos >= len(significant) or not significant[pos].is_word("TABLE"):
        return None
    pos += 1

    if (
        pos + 2 < len(significant)
        and significant[pos].is_word("IF")
        and significant[pos + 1].is_word("NOT")
        and significant[pos + 2].is_word("EXISTS")
    ):
        pos += 3

    name: str | None = None
    while pos < len(significant) and significant[pos].kind in (LexemeKind.IDENTIFIER, LexemeKind.WORD):
        name = significant[pos].value
        # Qualified name: keep the last part.
        if pos + 1 < len(significant) and significant[pos + 1].is_punct("."):
            pos += 2
            continue
        break
    return name


def _statement_text(lexemes: list[Lexeme]) -> str:
    parts: list[str] = []
    for lexeme in lexemes:
        if lexeme.kind == LexemeKind.COMMENT:
            # Keep the line break a single-line comment swallowed.
            if lexeme.text.endswith("\n"):
                parts.append("\n")
            continue
        parts.append(lexeme.text)
    return "".join(parts).strip()


def extract_table_definitions(contents: str, *, source: str | None = None) -> list[TableDefinition]:
    """Split *contents* into one :class:`TableDefinition` per ``CREATE TABLE``.

    Parameters
    ----------
    contents:
        Full text of a schema file.
    source:
        Optional label (usually the file path) attached to parse errors.

    Returns
    -------
    list[TableDefinition]
        Definitions in file order.  A table declared twice keeps its last
        declaration, at the position of the first one.

    Raises
    ------
    ParseError
        If a ``CREATE TABLE`` statement is not terminated by ``;`` before the
        end of input, or if a quoted string is left open.
    """
    definitions: dict[str, TableDefinition] = {}
    pending: list[Lexeme] = []

    def _flush() -> None:
        name = _statement_header(pending)
        if name is not None:
            if name in definitions:
                logger.warning("Table %s is declared more than once; keeping the last declaration", name)
            definitions[name] = TableDefinition(name=name, raw_sql=_statement_text(pending))
        pending.clear()

    try:
        for lexeme in iter_lexemes(contents):
            if lexeme.is_punct(";"):
                _flush()
                continue
            pending.append(lexeme)

        start = next(
            (lx for lx in pending if lx.kind not in (LexemeKind.WHITESPACE, LexemeKind.COMMENT)),
            None,
        )
        if start is not None and _statement_header(pending) is not None:
            raise ParseError(
                "CREATE TABLE statement is not terminated by ';'",
                line=start.line,
                column=start.column,
            )
    except ParseError as exc:
        raise exc.with_source(source) if source else exc

    logger.debug("Extracted %d table definition(s) from %s", len(definitions), source or "schema text")
    return list(definitions.values())


def extract_schema_from_text(contents: str, *, source: str | None = None) -> dict[str, str]:
    """Return a ``{table_name: raw_sql}`` mapping in declaration order."""
    return {
        definition.name: definition.raw_sql
        for definition in extract_table_definitions(contents, source=source)
    }


def extract_schema_from_file(path: str | Path) -> dict[str, str]:
    """Read *path* (UTF-8) and return its ``{table_name: raw_sql}`` mapping."""
    schema_path = Path(path)
    contents = schema_path.read_text(encoding="utf-8")
    return extract_schema_from_text(contents, source=str(schema_path))
