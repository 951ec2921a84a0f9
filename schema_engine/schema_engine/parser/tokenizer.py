"""Lexical analysis of MySQL DDL.

This is the ONLY module in the code base that imports ``sqlparse``
directly.  The extractor and the DDL parser consume the positioned
:class:`Lexeme` stream produced here and never see ``sqlparse`` token
types, so the lexer backend can be swapped without touching them.

``sqlparse`` already understands MySQL quoting (backtick identifiers,
single/double quoted strings with backslash escapes) and comment syntax.
On top of it this module:

* classifies tokens into a small, closed set of :class:`LexemeKind` values;
* decodes quoted identifiers and strings into their logical value;
* splits multi-word keyword tokens (``NOT NULL``, ``CHARACTER SET``, ...)
  into one lexeme per word, so the parser never depends on which keyword
  combinations the lexer happens to merge;
* expands executable comments (``/*!50100 PARTITION BY ... */``) into the
  lexemes of their body, since MySQL runs that text as regular SQL;
* attaches 1-based line/column positions for error reporting.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from enum import Enum

from sqlparse import lexer as sql_lexer
from sqlparse import tokens as sql_tokens

from schema_engine.parser.errors import ParseError

logger = logging.getLogger(__name__)


class LexemeKind(str, Enum):
    """Closed set of lexeme categories understood by the DDL parser."""

    WORD = "WORD"
    IDENTIFIER = "IDENTIFIER"
    STRING = "STRING"
    NUMBER = "NUMBER"
    PUNCT = "PUNCT"
    WHITESPACE = "WHITESPACE"
    COMMENT = "COMMENT"
    EXECUTABLE_COMMENT = "EXECUTABLE_COMMENT"


@dataclass(frozen=True)
class Lexeme:
    """A single positioned lexeme.

    ``value`` is the logical content (unquoted identifier name, decoded
    string, keyword text); ``text`` is the exact source slice.
    """

    kind: LexemeKind
    value: str
    text: str
    line: int
    column: int

    @property
    def upper(self) -> str:
        return self.value.upper()

    def is_word(self, *words: str) -> bool:
        """Return True if this is a bare word matching any of *words* (case-insensitive)."""
        return self.kind == LexemeKind.WORD and self.value.upper() in words

    def is_punct(self, *chars: str) -> bool:
        return self.kind == LexemeKind.PUNCT and self.value in chars


# Backslash escapes recognised by MySQL inside quoted strings.  ``\%`` and
# ``\_`` keep their backslash (they only matter inside LIKE patterns).
_STRING_ESCAPES: dict[str, str] = {
    "0": "\x00",
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "Z": "\x1a",
    "%": "\\%",
    "_": "\\_",
}

_ESCAPE_RE = re.compile(r"\\(.)|('')|(\"\")", re.DOTALL)
_WORD_SPLIT_RE = re.compile(r"\S+")
_PUNCTUATION = frozenset("(),;.=")
# MySQL executable comment opener, with optional MariaDB marker and server version.
_EXECUTABLE_COMMENT_RE = re.compile(r"/\*M?!(\d{5,6})?")


def _decode_string(text: str) -> str:
    quote = text[0]
    inner = text[1:-1]

    def _replace(match: re.Match[str]) -> str:
        if match.group(1) is not None:
            char = match.group(1)
            return _STRING_ESCAPES.get(char, char)
        doubled = match.group(2) or match.group(3)
        # A doubled quote only escapes the delimiter it matches.
        return doubled[0] if doubled[0] == quote else doubled

    return _ESCAPE_RE.sub(_replace, inner)


def _decode_identifier(text: str) -> str:
    return text[1:-1].replace("``", "`")


def _classify(ttype: object, value: str) -> LexemeKind:
    if ttype in sql_tokens.Whitespace:
        return LexemeKind.WHITESPACE
    if ttype in sql_tokens.Comment:
        if _EXECUTABLE_COMMENT_RE.match(value):
            return LexemeKind.EXECUTABLE_COMMENT
        return LexemeKind.COMMENT
    if ttype in sql_tokens.String:
        return LexemeKind.STRING
    if ttype in sql_tokens.Number:
        return LexemeKind.NUMBER
    if ttype in sql_tokens.Name and value.startswith("`"):
        return LexemeKind.IDENTIFIER
    if value in _PUNCTUATION:
        return LexemeKind.PUNCT
    return LexemeKind.WORD


class _Cursor:
    """Tracks the 1-based line/column of a running offset into the source."""

    def __init__(self) -> None:
        self.line = 1
        self.column = 1

    def advance(self, text: str) -> None:
        newlines = text.count("\n")
        if newlines:
            self.line += newlines
            self.column = len(text) - text.rfind("\n")
        else:
            self.column += len(text)


def iter_lexemes(sql: str) -> Iterator[Lexeme]:
    """Yield every lexeme of *sql*, including whitespace and comments.

    Concatenating ``text`` of all yielded lexemes reproduces *sql* exactly.
    Executable comments (``/*!50100 ... */``) are yielded whole, as a single
    :attr:`LexemeKind.EXECUTABLE_COMMENT` lexeme.

    Raises
    ------
    ParseError
        On an unterminated quoted string or identifier, or a character the
        lexer cannot classify.
    """
    cursor = _Cursor()
    for ttype, value in sql_lexer.tokenize(sql):
        if ttype in sql_tokens.Error:
            if value in ("'", '"', "`"):
                message = f"unterminated quoted text starting with {value}"
            else:
                message = f"unexpected character {value!r}"
            raise ParseError(message, line=cursor.line, column=cursor.column)

        kind = _classify(ttype, value)
        if kind == LexemeKind.STRING and value[0] not in "'\"":
            # Introducer or literal prefix lexed together with the string (b'0', _utf8mb4'x').
            quote_at = min(i for i in (value.find("'"), value.find('"')) if i >= 0)
            yield Lexeme(LexemeKind.WORD, value[:quote_at], value[:quote_at], cursor.line, cursor.column)
            body = value[quote_at:]
            yield Lexeme(kind, _decode_string(body), body, cursor.line, cursor.column + quote_at)
        elif kind == LexemeKind.STRING:
            yield Lexeme(kind, _decode_string(value), value, cursor.line, cursor.column)
        elif kind == LexemeKind.IDENTIFIER:
            yield Lexeme(kind, _decode_identifier(value), value, cursor.line, cursor.column)
        elif kind == LexemeKind.WORD and len(value.split()) > 1:
            # Multi-word keyword token: one lexeme per word, gaps kept as whitespace.
            position = _Cursor()
            position.line, position.column = cursor.line, cursor.column
            consumed = 0
            for match in _WORD_SPLIT_RE.finditer(value):
                gap = value[consumed : match.start()]
                if gap:
                    yield Lexeme(LexemeKind.WHITESPACE, gap, gap, position.line, position.column)
                    position.advance(gap)
                word = match.group()
                yield Lexeme(kind, word, word, position.line, position.column)
                position.advance(word)
                consumed = match.end()
        else:
            yield Lexeme(kind, value, value, cursor.line, cursor.column)
        cursor.advance(value)


def _expand_executable_comment(lexeme: Lexeme) -> Iterator[Lexeme]:
    """Yield the lexemes of an executable comment's body, positioned in the enclosing text."""
    prefix = _EXECUTABLE_COMMENT_RE.match(lexeme.text)
    if prefix is None:
        raise ParseError("malformed executable comment", line=lexeme.line, column=lexeme.column)
    origin = _Cursor()
    origin.line, origin.column = lexeme.line, lexeme.column
    origin.advance(prefix.group())

    def _relocate(line: int, column: int) -> tuple[int, int]:
        if line == 1:
            return origin.line, origin.column + column - 1
        return origin.line + line - 1, column

    body = lexeme.text[prefix.end() : -2]
    try:
        for inner in iter_lexemes(body):
            line, column = _relocate(inner.line, inner.column)
            yield replace(inner, line=line, column=column)
    except ParseError as exc:
        line, column = _relocate(exc.line or 1, exc.column or 1)
        raise ParseError(exc.message, line=line, column=column) from exc


def significant_lexemes(lexemes: Iterable[Lexeme]) -> list[Lexeme]:
    """Drop whitespace and comments from *lexemes*; executable comments are replaced by their body."""
    result: list[Lexeme] = []
    for lexeme in lexemes:
        if lexeme.kind == LexemeKind.EXECUTABLE_COMMENT:
            result.extend(significant_lexemes(_expand_executable_comment(lexeme)))
        elif lexeme.kind not in (LexemeKind.WHITESPACE, LexemeKind.COMMENT):
            result.append(lexeme)
    return result


def tokenize(sql: str) -> list[Lexeme]:
    """Return the significant lexemes of *sql* (whitespace and comments dropped)."""
    return significant_lexemes(iter_lexemes(sql))
