"""Recursive-descent parser for MySQL ``CREATE TABLE`` statements.

Produces a small, immutable statement tree::

    CreateTableStatement
      columns:  ColumnDefinition(name, DataType, clauses)
      indexes:  IndexDefinition(kind, name, parts, options, ...)
      options:  TableOption(name, value)

The parser only performs *lexical* canonicalisation (keyword casing,
quoting, spacing).  Every semantic rewrite lives in
:mod:`schema_engine.parser.normalizer`.  Anything the parser does not
recognise is kept verbatim as an opaque clause or option so that it still
takes part in the comparison.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from schema_engine.parser.errors import ParseError
from schema_engine.parser.tokenizer import Lexeme, LexemeKind, tokenize

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Quoting helpers
# ---------------------------------------------------------------------------

_STRING_ESCAPES = {
    "\\": "\\\\",
    "'": "''",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\x00": "\\0",
    "\x1a": "\\Z",
}


def quote_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def quote_string(value: str) -> str:
    return "'" + "".join(_STRING_ESCAPES.get(char, char) for char in value) + "'"


# ---------------------------------------------------------------------------
# Statement tree
# ---------------------------------------------------------------------------


class IndexKind(str, Enum):
    """Index and constraint kinds, in canonical precedence order."""

    PRIMARY = "PRIMARY"
    UNIQUE = "UNIQUE"
    FULLTEXT = "FULLTEXT"
    SPATIAL = "SPATIAL"
    KEY = "KEY"
    FOREIGN = "FOREIGN"
    CHECK = "CHECK"

    @property
    def precedence(self) -> int:
        return list(IndexKind).index(self)


@dataclass(frozen=True)
class DataType:
    name: str
    arguments: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()

    def render(self) -> str:
        rendered = self.name
        if self.arguments:
            rendered += "(" + ",".join(self.arguments) + ")"
        if self.attributes:
            rendered += " " + " ".join(self.attributes)
        return rendered


@dataclass(frozen=True)
class ColumnClause:
    """A column attribute.  An empty ``keyword`` marks an opaque clause kept verbatim."""

    keyword: str
    value: str | None = None

    def render(self) -> str:
        if not self.keyword:
            return self.value or ""
        if self.value is None:
            return self.keyword
        return f"{self.keyword} {self.value}"


@dataclass(frozen=True)
class ColumnDefinition:
    name: str
    data_type: DataType
    clauses: tuple[ColumnClause, ...] = ()

    def find(self, *keywords: str) -> ColumnClause | None:
        return next((clause for clause in self.clauses if clause.keyword in keywords), None)

    def render(self) -> str:
        parts = [quote_identifier(self.name), self.data_type.render()]
        parts.extend(clause.render() for clause in self.clauses)
        return " ".join(parts)


@dataclass(frozen=True)
class IndexPart:
    """One key part: a column (optionally prefix-limited) or a functional expression."""

    column: str | None = None
    length: str | None = None
    descending: bool = False
    expression: str | None = None

    def render(self) -> str:
        rendered = self.expression if self.expression is not None else quote_identifier(self.column or "")
        if self.length is not None:
            rendered += f"({self.length})"
        if self.descending:
            rendered += " DESC"
        return rendered


@dataclass(frozen=True)
class IndexDefinition:
    kind: IndexKind
    name: str | None = None
    parts: tuple[IndexPart, ...] = ()
    options: tuple[str, ...] = ()
    constraint: str | None = None
    body: str | None = None

    def render(self) -> str:
        pieces: list[str] = []
        if self.constraint is not None:
            pieces.append(f"CONSTRAINT {quote_identifier(self.constraint)}")

        if self.kind == IndexKind.CHECK:
            pieces.append(f"CHECK {self.body or ''}")
            return " ".join(pieces)

        if self.kind == IndexKind.PRIMARY:
            pieces.append("PRIMARY KEY")
        elif self.kind in (IndexKind.UNIQUE, IndexKind.FULLTEXT, IndexKind.SPATIAL):
            pieces.append(f"{self.kind.value} KEY")
        elif self.kind == IndexKind.FOREIGN:
            pieces.append("FOREIGN KEY")
        else:
            pieces.append("KEY")

        if self.name is not None and self.kind != IndexKind.PRIMARY:
            pieces.append(quote_identifier(self.name))
        pieces.append("(" + ",".join(part.render() for part in self.parts) + ")")
        if self.body:
            pieces.append(self.body)
        pieces.extend(self.options)
        return " ".join(pieces)


@dataclass(frozen=True)
class TableOption:
    """A table option.  An empty ``name`` marks a trailing clause kept verbatim."""

    name: str
    value: str

    def render(self) -> str:
        if not self.name:
            return self.value
        return f"{self.name}={self.value}"


@dataclass(frozen=True)
class CreateTableStatement:
    name: str
    columns: tuple[ColumnDefinition, ...] = ()
    indexes: tuple[IndexDefinition, ...] = ()
    options: tuple[TableOption, ...] = field(default_factory=tuple)

    @property
    def primary_key_columns(self) -> tuple[str, ...]:
        """Primary-key column names, from the PRIMARY KEY index or inline column clauses."""
        for index in self.indexes:
            if index.kind == IndexKind.PRIMARY:
                return tuple(part.column for part in index.parts if part.column is not None)
        return tuple(column.name for column in self.columns if column.find("PRIMARY KEY") is not None)

    def render_lines(self) -> list[str]:
        """Render the canonical one-clause-per-line layout."""
        items = [column.render() for column in self.columns]
        items.extend(index.render() for index in self.indexes)

        lines = [f"CREATE TABLE {quote_identifier(self.name)} ("]
        for position, item in enumerate(items):
            suffix = "," if position < len(items) - 1 else ""
            lines.append(f"  {item}{suffix}")
        closing = ")"
        if self.options:
            closing += " " + " ".join(option.render() for option in self.options)
        lines.append(closing)
        return lines


# ---------------------------------------------------------------------------
# Generic rendering of lexeme runs
# ---------------------------------------------------------------------------


def _render_atom(lexeme: Lexeme) -> str:
    if lexeme.kind == LexemeKind.IDENTIFIER:
        return quote_identifier(lexeme.value)
    if lexeme.kind == LexemeKind.STRING:
        return quote_string(lexeme.value)
    if lexeme.kind == LexemeKind.WORD:
        return lexeme.value.upper()
    return lexeme.value


def render_lexemes(lexemes: Sequence[Lexeme]) -> str:
    """Render a lexeme run with canonical spacing.

    No space is emitted after ``(`` or ``,``, before ``)`` or ``,``, around
    ``.``, or between a word and the ``(`` of its argument list.
    """
    rendered = ""
    previous: Lexeme | None = None
    for lexeme in lexemes:
        atom = _render_atom(lexeme)
        if previous is None:
            rendered = atom
        elif (
            lexeme.is_punct(")", ",", ".")
            or previous.is_punct("(", ",", ".")
            or (lexeme.is_punct("(") and previous.kind == LexemeKind.WORD)
        ):
            rendered += atom
        else:
            rendered += " " + atom
        previous = lexeme
    return rendered


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

_INDEX_LEADERS = frozenset({"PRIMARY", "UNIQUE", "FULLTEXT", "SPATIAL", "KEY", "INDEX", "CONSTRAINT", "FOREIGN", "CHECK"})
_TYPE_ATTRIBUTES = frozenset({"UNSIGNED", "SIGNED", "ZEROFILL"})
_STRING_INTRODUCERS = frozenset({"b", "x", "n"})


def _matching_paren(lexemes: Sequence[Lexeme], open_pos: int) -> int:
    """Return the index of the ``)`` closing the ``(`` at *open_pos*."""
    depth = 0
    for pos in range(open_pos, len(lexemes)):
        if lexemes[pos].is_punct("("):
            depth += 1
        elif lexemes[pos].is_punct(")"):
            depth -= 1
            if depth == 0:
                return pos
    opening = lexemes[open_pos]
    raise ParseError("unbalanced parenthesis", line=opening.line, column=opening.column)


def _split_top_level(lexemes: Sequence[Lexeme]) -> list[list[Lexeme]]:
    """Split *lexemes* on commas that are not nested inside parentheses."""
    groups: list[list[Lexeme]] = [[]]
    depth = 0
    for lexeme in lexemes:
        if lexeme.is_punct("("):
            depth += 1
        elif lexeme.is_punct(")"):
            depth -= 1
        elif lexeme.is_punct(",") and depth == 0:
            groups.append([])
            continue
        groups[-1].append(lexeme)
    return groups


class _DefinitionParser:
    """Cursor over the lexemes of a single column or index definition."""

    def __init__(self, lexemes: Sequence[Lexeme]) -> None:
        self.lexemes = lexemes
        self.pos = 0

    # -- cursor helpers ----------------------------------------------------

    def peek(self, offset: int = 0) -> Lexeme | None:
        index = self.pos + offset
        return self.lexemes[index] if index < len(self.lexemes) else None

    def at_end(self) -> bool:
        return self.pos >= len(self.lexemes)

    def current(self) -> Lexeme:
        """Return the lexeme under the cursor without consuming it."""
        lexeme = self.peek()
        if lexeme is None:
            last = self.lexemes[-1]
            raise ParseError("unexpected end of definition", line=last.line, column=last.column)
        return lexeme

    def next(self) -> Lexeme:
        lexeme = self.current()
        self.pos += 1
        return lexeme

    def accept_word(self, *words: str) -> bool:
        lexeme = self.peek()
        if lexeme is not None and lexeme.is_word(*words):
            self.pos += 1
            return True
        return False

    def expect_word(self, word: str) -> None:
        lexeme = self.next()
        if not lexeme.is_word(word):
            raise ParseError(f"expected {word}, found {lexeme.text!r}", line=lexeme.line, column=lexeme.column)

    def group(self) -> list[Lexeme]:
        """Consume a parenthesised group and return it, parentheses included."""
        start = self.pos
        end = _matching_paren(self.lexemes, start)
        self.pos = end + 1
        return list(self.lexemes[start : end + 1])

    def name(self) -> str:
        lexeme = self.next()
        if lexeme.kind not in (LexemeKind.IDENTIFIER, LexemeKind.WORD, LexemeKind.STRING):
            raise ParseError(f"expected a name, found {lexeme.text!r}", line=lexeme.line, column=lexeme.column)
        return lexeme.value

    # -- values --------------------------------------------------------------

    def value(self) -> str:
        """Parse a literal, keyword, function call or parenthesised expression."""
        lexeme = self.next()
        following = self.peek()
        if lexeme.kind == LexemeKind.STRING:
            return quote_string(lexeme.value)
        if lexeme.kind == LexemeKind.NUMBER:
            return lexeme.value
        if lexeme.is_punct("("):
            self.pos -= 1
            return render_lexemes(self.group())
        if lexeme.kind == LexemeKind.WORD:
            if lexeme.value in ("-", "+") and following is not None and following.kind == LexemeKind.NUMBER:
                self.pos += 1
                return f"{lexeme.value}{following.value}".lstrip("+")
            if following is not None and following.kind == LexemeKind.STRING and (
                lexeme.value.lower() in _STRING_INTRODUCERS or lexeme.value.startswith("_")
            ):
                self.pos += 1
                return lexeme.value.lower() + quote_string(following.value)
            if following is not None and following.is_punct("("):
                return lexeme.value.upper() + render_lexemes(self.group())
            return lexeme.value.upper()
        raise ParseError(f"unexpected {lexeme.text!r} in value", line=lexeme.line, column=lexeme.column)

    def opaque(self) -> str:
        """Consume one opaque token (with its argument list, if any) and render it."""
        start = self.pos
        lexeme = self.next()
        if lexeme.is_punct("("):
            self.pos -= 1
            self.group()
        elif lexeme.kind == LexemeKind.WORD and self.peek() is not None and self.peek().is_punct("("):
            self.group()
        return render_lexemes(self.lexemes[start : self.pos])

    # -- columns -------------------------------------------------------------

    def column(self) -> ColumnDefinition:
        name = self.name()
        data_type = self.data_type()
        clauses: list[ColumnClause] = []
        while not self.at_end():
            clauses.append(self.column_clause())
        return ColumnDefinition(name=name, data_type=data_type, clauses=tuple(clauses))

    def data_type(self) -> DataType:
        lexeme = self.next()
        if lexeme.kind != LexemeKind.WORD:
            raise ParseError(f"expected a column type, found {lexeme.text!r}", line=lexeme.line, column=lexeme.column)
        type_name = lexeme.value.lower()
        if type_name == "double" and self.accept_word("PRECISION"):
            pass

        arguments: list[str] = []
        following = self.peek()
        if following is not None and following.is_punct("("):
            inner = self.group()[1:-1]
            arguments = [render_lexemes(argument) for argument in _split_top_level(inner) if argument]

        attributes: list[str] = []
        while (following := self.peek()) is not None and following.is_word(*_TYPE_ATTRIBUTES):
            attributes.append(self.next().value.lower())
        return DataType(name=type_name, arguments=tuple(arguments), attributes=tuple(attributes))

    def column_clause(self) -> ColumnClause:
        lexeme = self.current()
        following = self.peek(1)

        if lexeme.is_word("NOT") and following is not None and following.is_word("NULL"):
            self.pos += 2
            return ColumnClause("NOT NULL")
        if self.accept_word("NULL"):
            return ColumnClause("NULL")
        if self.accept_word("DEFAULT"):
            return ColumnClause("DEFAULT", self.value())
        if lexeme.is_word("ON") and following is not None and following.is_word("UPDATE"):
            self.pos += 2
            return ColumnClause("ON UPDATE", self.value())
        if self.accept_word("AUTO_INCREMENT"):
            return ColumnClause("AUTO_INCREMENT")
        if self.accept_word("COMMENT"):
            return ColumnClause("COMMENT", self.value())
        if lexeme.is_word("CHARACTER") and following is not None and following.is_word("SET"):
            self.pos += 2
            return ColumnClause("CHARACTER SET", self.name())
        if self.accept_word("CHARSET"):
            return ColumnClause("CHARSET", self.name())
        if self.accept_word("COLLATE"):
            return ColumnClause("COLLATE", self.name())
        if lexeme.is_word("PRIMARY") and following is not None and following.is_word("KEY"):
            self.pos += 2
            return ColumnClause("PRIMARY KEY")
        if self.accept_word("UNIQUE"):
            self.accept_word("KEY")
            return ColumnClause("UNIQUE KEY")
        return ColumnClause("", self.opaque())

    # -- indexes -------------------------------------------------------------

    def index(self) -> IndexDefinition:
        constraint: str | None = None
        if self.accept_word("CONSTRAINT"):
            following = self.peek()
            if following is not None and not following.is_word("PRIMARY", "UNIQUE", "FOREIGN", "CHECK"):
                constraint = self.name()

        leader = self.next()
        keyword = leader.value.upper() if leader.kind == LexemeKind.WORD else ""
        if keyword == "PRIMARY":
            self.expect_word("KEY")
            kind = IndexKind.PRIMARY
        elif keyword == "UNIQUE":
            self.accept_word("KEY", "INDEX")
            kind = IndexKind.UNIQUE
        elif keyword in ("FULLTEXT", "SPATIAL"):
            self.accept_word("KEY", "INDEX")
            kind = IndexKind(keyword)
        elif keyword in ("KEY", "INDEX"):
            kind = IndexKind.KEY
        elif keyword == "FOREIGN":
            self.expect_word("KEY")
            kind = IndexKind.FOREIGN
        elif keyword == "CHECK":
            body = render_lexemes(self.lexemes[self.pos :])
            self.pos = len(self.lexemes)
            return IndexDefinition(kind=IndexKind.CHECK, constraint=constraint, body=body)
        else:
            raise ParseError(f"unexpected {leader.text!r} in index definition", line=leader.line, column=leader.column)

        name: str | None = None
        following = self.peek()
        if following is not None and not following.is_punct("(") and not following.is_word("USING"):
            name = self.name()

        options: list[str] = []
        if self.accept_word("USING"):
            options.append(f"USING {self.next().value.upper()}")

        following = self.peek()
        if following is None or not following.is_punct("("):
            anchor = following or leader
            raise ParseError("expected index column list", line=anchor.line, column=anchor.column)
        parts = tuple(self.index_part(part) for part in _split_top_level(self.group()[1:-1]) if part)

        body: str | None = None
        if kind == IndexKind.FOREIGN:
            body = self.references()

        while not self.at_end():
            options.append(self.index_option())
        return IndexDefinition(
            kind=kind,
            name=name,
            parts=parts,
            options=tuple(options),
            constraint=constraint,
            body=body,
        )

    @staticmethod
    def index_part(lexemes: list[Lexeme]) -> IndexPart:
        descending = False
        if lexemes and lexemes[-1].is_word("ASC", "DESC"):
            descending = lexemes[-1].is_word("DESC")
            lexemes = lexemes[:-1]

        first = lexemes[0]
        if first.kind in (LexemeKind.IDENTIFIER, LexemeKind.WORD) and not first.is_punct("("):
            if len(lexemes) == 1:
                return IndexPart(column=first.value, descending=descending)
            if (
                len(lexemes) == 4
                and lexemes[1].is_punct("(")
                and lexemes[2].kind == LexemeKind.NUMBER
                and lexemes[3].is_punct(")")
            ):
                return IndexPart(column=first.value, length=lexemes[2].value, descending=descending)
        return IndexPart(expression=render_lexemes(lexemes), descending=descending)

    def references(self) -> str:
        self.expect_word("REFERENCES")
        table = self.name()
        while (following := self.peek()) is not None and following.is_punct("."):
            self.pos += 1
            table = self.name()
        rendered = f"REFERENCES {quote_identifier(table)}"
        following = self.peek()
        if following is not None and following.is_punct("("):
            columns = _split_top_level(self.group()[1:-1])
            rendered += " (" + ",".join(render_lexemes(column) for column in columns if column) + ")"
        # ON DELETE / ON UPDATE / MATCH actions.
        trailing = render_lexemes(self.lexemes[self.pos :])
        self.pos = len(self.lexemes)
        if trailing:
            rendered += " " + trailing
        return rendered

    def index_option(self) -> str:
        if self.accept_word("COMMENT"):
            return f"COMMENT {self.value()}"
        if self.accept_word("USING"):
            return f"USING {self.next().value.upper()}"
        option = self.opaque()
        following = self.peek()
        if following is not None and following.is_punct("="):
            self.pos += 1
            option += "=" + self.value()
        return option


def _parse_table_options(lexemes: Sequence[Lexeme]) -> list[TableOption]:
    options: list[TableOption] = []
    parser = _DefinitionParser(lexemes)
    while not parser.at_end():
        lexeme = parser.current()
        if lexeme.is_punct(",", ";"):
            parser.pos += 1
            continue
        if lexeme.is_word("PARTITION"):
            options.append(TableOption("", render_lexemes(lexemes[parser.pos :])))
            break

        has_default = parser.accept_word("DEFAULT")
        following = parser.peek(1)
        if parser.peek() is not None and parser.peek().is_word("CHARACTER") and following is not None and following.is_word("SET"):
            parser.pos += 2
            name = "DEFAULT CHARSET"
        elif parser.accept_word("CHARSET"):
            name = "DEFAULT CHARSET"
        elif parser.accept_word("COLLATE"):
            name = "COLLATE"
        else:
            word = parser.next()
            if word.kind != LexemeKind.WORD:
                raise ParseError(f"unexpected {word.text!r} in table options", line=word.line, column=word.column)
            name = ("DEFAULT " if has_default else "") + word.value.upper()

        following = parser.peek()
        if following is not None and following.is_punct("="):
            parser.pos += 1
        if parser.at_end():
            raise ParseError(f"missing value for table option {name}", line=lexeme.line, column=lexeme.column)
        value_lexeme = parser.peek()
        if value_lexeme is not None and value_lexeme.kind in (LexemeKind.WORD, LexemeKind.IDENTIFIER) and not (
            parser.peek(1) is not None and parser.peek(1).is_punct("(")
        ):
            parser.pos += 1
            value = value_lexeme.value
        else:
            value = parser.value()
        options.append(TableOption(name, value))
    return options


def parse_create_table(sql: str, *, source: str | None = None) -> CreateTableStatement:
    """Parse a single ``CREATE TABLE`` statement into a :class:`CreateTableStatement`.

    Raises
    ------
    ParseError
        If the text is not a well-formed ``CREATE TABLE`` statement.
    """
    try:
        return _parse(tokenize(sql))
    except ParseError as exc:
        raise exc.with_source(source) if source and exc.source is None else exc


def _parse(lexemes: list[Lexeme]) -> CreateTableStatement:
    if not lexemes:
        raise ParseError("empty statement")
    header = _DefinitionParser(lexemes)
    header.expect_word("CREATE")
    header.accept_word("TEMPORARY")
    header.expect_word("TABLE")
    if header.accept_word("IF"):
        header.expect_word("NOT")
        header.expect_word("EXISTS")

    table_name = header.name()
    while (following := header.peek()) is not None and following.is_punct("."):
        header.pos += 1
        table_name = header.name()

    following = header.peek()
    if following is None or not following.is_punct("("):
        anchor = following or lexemes[-1]
        raise ParseError("expected '(' after table name", line=anchor.line, column=anchor.column)
    close = _matching_paren(lexemes, header.pos)
    body = lexemes[header.pos + 1 : close]

    columns: list[ColumnDefinition] = []
    indexes: list[IndexDefinition] = []
    for definition in _split_top_level(body):
        if not definition:
            # Dangling comma before the closing parenthesis.
            continue
        parser = _DefinitionParser(definition)
        if definition[0].kind == LexemeKind.WORD and definition[0].upper in _INDEX_LEADERS:
            indexes.append(parser.index())
        else:
            columns.append(parser.column())

    options = _parse_table_options(lexemes[close + 1 :])
    logger.debug(
        "Parsed table %s: %d column(s), %d index(es), %d option(s)",
        table_name,
        len(columns),
        len(indexes),
        len(options),
    )
    return CreateTableStatement(
        name=table_name,
        columns=tuple(columns),
        indexes=tuple(indexes),
        options=tuple(options),
    )
