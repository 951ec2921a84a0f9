"""Canonicalisation of ``CREATE TABLE`` statements under an equivalence policy.

Two statements are considered equivalent by the checker iff their
canonical forms, as produced by :func:`normalize_lines`, are equal.

Normalisation happens in two layers:

1. **Lexical** (always applied, by the parser): keyword casing, quoting
   style, whitespace, ``INDEX`` -> ``KEY``, ``ASC`` removal, dangling
   commas.
2. **Semantic** (this module): rewrites of forms MySQL treats as
   identical, plus the optional tolerances configured on the
   :class:`~schema_engine.models.policy.EquivalencePolicy`.

The unconditional semantic rules are:

* integer display widths are dropped, ``integer`` is ``int``, ``signed`` is
  implied;
* ``NULL`` and ``DEFAULT NULL`` are implied;
* numeric defaults given as quoted strings are unquoted;
* ``current_timestamp()`` / ``now()`` are ``CURRENT_TIMESTAMP``;
* ``utf8mb3`` is ``utf8``;
* a column charset/collation equal to the server default is implied;
* column and index ``COMMENT`` clauses, the table ``COMMENT`` and the
  ``AUTO_INCREMENT`` counter are not compared;
* ``DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP`` on a
  ``NOT NULL`` timestamp column is implied (MySQL may add it on its own);
* unnamed indexes are named after their first column, as MySQL does.

Normalisation is idempotent: normalising a canonical form yields it again.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace

from schema_engine.models.policy import EquivalencePolicy
from schema_engine.parser.ddl_parser import (
    ColumnClause,
    ColumnDefinition,
    CreateTableStatement,
    DataType,
    IndexDefinition,
    IndexKind,
    TableOption,
    parse_create_table,
)
from schema_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

_INTEGER_TYPES = frozenset({"tinyint", "smallint", "mediumint", "int", "bigint"})
_TYPE_ALIASES = {"integer": "int", "bool": "tinyint", "boolean": "tinyint"}
_TEXT_PROMOTIONS = {"mediumtext": "text", "longtext": "text"}
_TIMESTAMP_TYPES = frozenset({"timestamp", "datetime"})
_UTF8_FAMILY = frozenset({"utf8", "utf8mb4"})

_ENGINE_NAMES = {
    "innodb": "InnoDB",
    "myisam": "MyISAM",
    "memory": "MEMORY",
    "heap": "MEMORY",
    "csv": "CSV",
    "archive": "ARCHIVE",
    "aria": "Aria",
}

_IGNORED_TABLE_OPTIONS = frozenset({"AUTO_INCREMENT", "COMMENT"})

# Foreign key naming convention: ``users_id``, ``users_id_tech``, ...
_FOREIGN_KEY_COLUMN_RE = re.compile(r"^.+_id(_.+)?$")
_QUOTED_NUMBER_RE = re.compile(r"^'(-?\d+(?:\.\d+)?)'$")
_NOW_RE = re.compile(r"^(?:CURRENT_TIMESTAMP|NOW|LOCALTIMESTAMP|LOCALTIME)(?:\(\s*\))?$")
_NOW_PRECISION_RE = re.compile(r"^(?:CURRENT_TIMESTAMP|NOW|LOCALTIMESTAMP|LOCALTIME)\((\d+)\)$")


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def canonical_charset(name: str) -> str:
    """Lower-case a charset or collation name and spell ``utf8mb3`` as ``utf8``."""
    lowered = name.lower()
    if lowered.startswith("utf8mb3"):
        return "utf8" + lowered[len("utf8mb3") :]
    return lowered


def _charset_family(collation: str) -> str:
    return collation.split("_", 1)[0]


def _canonical_default(value: str) -> str:
    if (match := _QUOTED_NUMBER_RE.match(value)) is not None:
        return match.group(1)
    if _NOW_RE.match(value):
        return "CURRENT_TIMESTAMP"
    if (match := _NOW_PRECISION_RE.match(value)) is not None:
        return f"CURRENT_TIMESTAMP({match.group(1)})"
    return value


def _is_current_timestamp(clause: ColumnClause | None) -> bool:
    return clause is not None and (clause.value or "").startswith("CURRENT_TIMESTAMP")


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def _normalize_type(data_type: DataType, is_key_column: bool, policy: EquivalencePolicy) -> DataType:
    name = _TYPE_ALIASES.get(data_type.name, data_type.name)
    arguments = data_type.arguments
    attributes = tuple(attr for attr in data_type.attributes if attr != "signed")

    if name in _INTEGER_TYPES:
        arguments = ()
        if policy.ignore_unsigned_keys_migration and is_key_column:
            attributes = tuple(attr for attr in attributes if attr != "unsigned")
    if policy.ignore_timestamps_migration and name == "timestamp":
        name = "datetime"
    if policy.target_uses_utf8mb4 and name in _TEXT_PROMOTIONS:
        # utf8mb4 conversion widens text columns whose index would overflow.
        name = _TEXT_PROMOTIONS[name]
    return DataType(name=name, arguments=arguments, attributes=attributes)


def _drops_charset(charset: str | None, collation: str | None, policy: EquivalencePolicy) -> bool:
    if charset is None and collation is None:
        return False
    if policy.ignore_utf8mb4_migration:
        return (charset is None or charset in _UTF8_FAMILY) and (
            collation is None or _charset_family(collation) in _UTF8_FAMILY
        )
    default_charset = "utf8mb4" if policy.target_uses_utf8mb4 else "utf8"
    default_collation = f"{default_charset}_unicode_ci"
    return (charset is None or charset == default_charset) and (collation is None or collation == default_collation)


def _normalize_column(column: ColumnDefinition, is_key_column: bool, policy: EquivalencePolicy) -> ColumnDefinition:
    data_type = _normalize_type(column.data_type, is_key_column, policy)

    clauses: list[ColumnClause] = []
    for clause in column.clauses:
        if clause.keyword in ("COMMENT", "NULL"):
            continue
        if clause.keyword in ("DEFAULT", "ON UPDATE") and clause.value is not None:
            value = _canonical_default(clause.value)
            if clause.keyword == "DEFAULT" and value == "NULL":
                continue
            clause = ColumnClause(clause.keyword, value)
        elif clause.keyword in ("CHARACTER SET", "CHARSET", "COLLATE") and clause.value is not None:
            clause = ColumnClause(clause.keyword, canonical_charset(clause.value))
        clauses.append(clause)

    charset_clause = next((c for c in clauses if c.keyword in ("CHARACTER SET", "CHARSET")), None)
    collate_clause = next((c for c in clauses if c.keyword == "COLLATE"), None)
    if _drops_charset(
        charset_clause.value if charset_clause else None,
        collate_clause.value if collate_clause else None,
        policy,
    ):
        clauses = [c for c in clauses if c.keyword not in ("CHARACTER SET", "CHARSET", "COLLATE")]

    if policy.drop_implicit_timestamp_defaults and data_type.name in _TIMESTAMP_TYPES:
        has_not_null = any(c.keyword == "NOT NULL" for c in clauses)
        default = next((c for c in clauses if c.keyword == "DEFAULT"), None)
        on_update = next((c for c in clauses if c.keyword == "ON UPDATE"), None)
        if has_not_null and _is_current_timestamp(default) and _is_current_timestamp(on_update):
            clauses = [c for c in clauses if c.keyword not in ("DEFAULT", "ON UPDATE")]

    return ColumnDefinition(name=column.name, data_type=data_type, clauses=tuple(clauses))


# ---------------------------------------------------------------------------
# Indexes and table options
# ---------------------------------------------------------------------------


def _normalize_index(index: IndexDefinition) -> IndexDefinition:
    options = tuple(option for option in index.options if not option.startswith("COMMENT "))
    if index.kind == IndexKind.PRIMARY:
        return replace(index, name=None, constraint=None, options=options)
    if index.kind in (IndexKind.FOREIGN, IndexKind.CHECK):
        return replace(index, options=options)

    # MySQL names an index after its constraint symbol, else its first column.
    name = index.name or index.constraint
    if name is None:
        name = next((part.column for part in index.parts if part.column is not None), None)
    return replace(index, name=name, constraint=None, options=options)


def _normalize_options(options: tuple[TableOption, ...], policy: EquivalencePolicy) -> tuple[TableOption, ...]:
    kept: list[TableOption] = []
    for option in options:
        name, value = option.name, option.value
        if name in _IGNORED_TABLE_OPTIONS:
            continue
        if name in ("DEFAULT CHARSET", "COLLATE", "DEFAULT COLLATE"):
            name = "COLLATE" if name == "DEFAULT COLLATE" else name
            value = canonical_charset(value)
            family = value if name == "DEFAULT CHARSET" else _charset_family(value)
            if policy.ignore_utf8mb4_migration and family in _UTF8_FAMILY:
                continue
        elif name == "ENGINE":
            if policy.ignore_innodb_migration:
                continue
            value = _ENGINE_NAMES.get(value.lower(), value)
        elif name == "ROW_FORMAT":
            if policy.ignore_dynamic_row_format_migration:
                continue
            value = value.upper()
        kept.append(TableOption(name, value))
    return tuple(sorted(kept, key=lambda option: option.render()))


# ---------------------------------------------------------------------------
# Statement
# ---------------------------------------------------------------------------


def normalize_statement(statement: CreateTableStatement, policy: EquivalencePolicy) -> CreateTableStatement:
    """Apply every semantic rule of *policy* to a parsed statement."""
    primary_key = statement.primary_key_columns

    def _is_key_column(name: str) -> bool:
        return name in primary_key or _FOREIGN_KEY_COLUMN_RE.match(name) is not None

    columns = [_normalize_column(column, _is_key_column(column.name), policy) for column in statement.columns]
    indexes = [_normalize_index(index) for index in statement.indexes]

    if not policy.strict:
        by_name = {column.name: column for column in columns}
        leading = [by_name[name] for name in primary_key if name in by_name]
        rest = sorted((c for c in columns if c.name not in primary_key), key=lambda c: c.render())
        columns = leading + rest
        indexes = sorted(indexes, key=lambda index: (index.kind.precedence, index.render()))

    return CreateTableStatement(
        name=statement.name,
        columns=tuple(columns),
        indexes=tuple(indexes),
        options=_normalize_options(statement.options, policy),
    )


@profile_operation("schema.normalize")
def normalize_lines(raw_sql: str, policy: EquivalencePolicy, *, is_from_live_db: bool = False) -> list[str]:
    """Return the canonical form of *raw_sql* as a list of lines.

    Parameters
    ----------
    raw_sql:
        A single ``CREATE TABLE`` statement, optionally ``;``-terminated.
    policy:
        Which differences to treat as equivalent.
    is_from_live_db:
        True when *raw_sql* was produced by ``SHOW CREATE TABLE``.  Only used
        to label parse errors and log records.

    Raises
    ------
    ParseError
        If *raw_sql* is not a well-formed ``CREATE TABLE`` statement.
    """
    source = "live schema" if is_from_live_db else "reference schema"
    statement = parse_create_table(raw_sql, source=source)
    normalized = normalize_statement(statement, policy)
    logger.debug("Normalised %s table %s", source, statement.name)
    return normalized.render_lines()


def normalize_create_table(raw_sql: str, policy: EquivalencePolicy, *, is_from_live_db: bool = False) -> str:
    """Return the canonical form of *raw_sql* as a single ``\\n``-joined string."""
    return "\n".join(normalize_lines(raw_sql, policy, is_from_live_db=is_from_live_db))
