"""Reading, parsing and canonicalising MySQL ``CREATE TABLE`` statements."""

from __future__ import annotations

from schema_engine.parser.ddl_parser import CreateTableStatement, parse_create_table
from schema_engine.parser.errors import ParseError
from schema_engine.parser.extractor import (
    extract_schema_from_file,
    extract_schema_from_text,
    extract_table_definitions,
)
from schema_engine.parser.normalizer import normalize_create_table, normalize_lines

__all__ = [
    "CreateTableStatement",
    "ParseError",
    "extract_schema_from_file",
    "extract_schema_from_text",
    "extract_table_definitions",
    "normalize_create_table",
    "normalize_lines",
    "parse_create_table",
]
