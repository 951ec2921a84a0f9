"""Tests for schema_engine.parser.tokenizer.

Covers:
- Lexeme classification: words, quoted identifiers, strings, numbers, punctuation
- Decoding of escaped strings and identifiers
- Multi-word keyword splitting with positions and preserved spacing
- Executable comments kept whole, then expanded by tokenize
- Error reporting on unterminated quotes
"""

from __future__ import annotations

import pytest

from schema_engine.parser.errors import ParseError
from schema_engine.parser.tokenizer import LexemeKind, iter_lexemes, tokenize

# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassification:
    """Tests for mapping lexer tokens onto LexemeKind."""

    def test_column_definition(self) -> None:
        """A simple column definition yields identifier, word and number lexemes."""
        lexemes = tokenize("`id` int(11) NOT NULL")
        kinds = [lx.kind for lx in lexemes]
        values = [lx.value for lx in lexemes]

        assert kinds == [
            LexemeKind.IDENTIFIER,
            LexemeKind.WORD,
            LexemeKind.PUNCT,
            LexemeKind.NUMBER,
            LexemeKind.PUNCT,
            LexemeKind.WORD,
            LexemeKind.WORD,
        ]
        assert values == ["id", "int", "(", "11", ")", "NOT", "NULL"]

    def test_whitespace_and_comments_dropped(self) -> None:
        """tokenize() only returns significant lexemes."""
        lexemes = tokenize("-- heading\nCREATE /* inline */ TABLE `t`")
        assert [lx.value for lx in lexemes] == ["CREATE", "TABLE", "t"]

    def test_iter_lexemes_round_trips_text(self) -> None:
        """Concatenating every lexeme's text reproduces the input."""
        sql = "CREATE TABLE `t` (\n  `a` int DEFAULT '0' -- note\n);"
        assert "".join(lx.text for lx in iter_lexemes(sql)) == sql

    def test_punctuation(self) -> None:
        """Parentheses, commas, semicolons, dots and '=' are punctuation."""
        lexemes = tokenize("a.b = (1, 2);")
        puncts = [lx.value for lx in lexemes if lx.kind == LexemeKind.PUNCT]
        assert puncts == [".", "=", "(", ",", ")", ";"]

    def test_negative_number(self) -> None:
        """A signed literal is a single number lexeme."""
        lexemes = tokenize("DEFAULT -0.7")
        assert lexemes[1].kind == LexemeKind.NUMBER
        assert lexemes[1].value == "-0.7"


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class TestDecoding:
    """Tests for quoted string and identifier decoding."""

    def test_backslash_escaped_quote(self) -> None:
        """A backslash-escaped quote is decoded."""
        lexeme = tokenize(r"COMMENT='an escaped \' quote'")[2]
        assert lexeme.kind == LexemeKind.STRING
        assert lexeme.value == "an escaped ' quote"

    def test_doubled_quote(self) -> None:
        """A doubled quote is decoded to a single one."""
        lexeme = tokenize("'it''s'")[0]
        assert lexeme.value == "it's"

    def test_newline_escape(self) -> None:
        """MySQL escape sequences are decoded."""
        lexeme = tokenize(r"'a\nb'")[0]
        assert lexeme.value == "a\nb"

    def test_doubled_backtick(self) -> None:
        """A doubled backtick inside an identifier is decoded."""
        lexeme = tokenize("`we``ird`")[0]
        assert lexeme.kind == LexemeKind.IDENTIFIER
        assert lexeme.value == "we`ird"

    def test_text_keeps_source_slice(self) -> None:
        """The raw text of a lexeme is left untouched."""
        lexeme = tokenize("'it''s'")[0]
        assert lexeme.text == "'it''s'"


# ---------------------------------------------------------------------------
# Keywords and positions
# ---------------------------------------------------------------------------


class TestKeywordsAndPositions:
    """Tests for multi-word keywords and line/column tracking."""

    def test_multi_word_keyword_split(self) -> None:
        """Keywords separated by arbitrary whitespace become separate words."""
        lexemes = tokenize("NOT  NULL PRIMARY   KEY")
        assert [lx.value for lx in lexemes] == ["NOT", "NULL", "PRIMARY", "KEY"]
        assert all(lx.kind == LexemeKind.WORD for lx in lexemes)

    def test_is_word_case_insensitive(self) -> None:
        """is_word() matches regardless of source case."""
        lexeme = tokenize("auto_increment")[0]
        assert lexeme.is_word("AUTO_INCREMENT")
        assert not lexeme.is_word("DEFAULT")

    def test_identifier_is_not_a_word(self) -> None:
        """A quoted identifier never matches a keyword."""
        lexeme = tokenize("`KEY`")[0]
        assert not lexeme.is_word("KEY")

    def test_line_and_column(self) -> None:
        """Positions are 1-based and follow newlines."""
        lexemes = tokenize("CREATE TABLE\n  `t` (")
        assert (lexemes[0].line, lexemes[0].column) == (1, 1)
        assert (lexemes[1].line, lexemes[1].column) == (1, 8)
        assert (lexemes[2].line, lexemes[2].column) == (2, 3)

    def test_multi_word_keyword_keeps_spacing(self) -> None:
        """The whitespace inside a multi-word keyword survives as its own lexeme."""
        sql = "`id` int NOT  NULL,\n  PRIMARY\n  KEY (`id`)"
        lexemes = list(iter_lexemes(sql))

        assert "".join(lx.text for lx in lexemes) == sql
        not_at = next(i for i, lx in enumerate(lexemes) if lx.is_word("NOT"))
        assert lexemes[not_at + 1].kind == LexemeKind.WHITESPACE
        assert lexemes[not_at + 1].text == "  "

        key = next(lx for lx in lexemes if lx.is_word("KEY"))
        assert (key.line, key.column) == (3, 3)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    """Tests for lexical errors."""

    def test_unterminated_string(self) -> None:
        """An unterminated string raises ParseError with its position."""
        with pytest.raises(ParseError) as exc_info:
            tokenize("CREATE TABLE `t` (\n  `a` int DEFAULT 'oops\n")

        assert "unterminated" in exc_info.value.message
        assert exc_info.value.line == 2


# ---------------------------------------------------------------------------
# Executable comments
# ---------------------------------------------------------------------------


class TestExecutableComments:
    """Tests for /*!NNNNN ... */ comments, which MySQL runs as SQL."""

    def test_kept_whole_by_iter_lexemes(self) -> None:
        """iter_lexemes() yields the comment as one lexeme."""
        sql = ") ENGINE=InnoDB /*!50100 PARTITION BY HASH (`id`) */"
        lexemes = list(iter_lexemes(sql))

        assert lexemes[-1].kind == LexemeKind.EXECUTABLE_COMMENT
        assert lexemes[-1].text == "/*!50100 PARTITION BY HASH (`id`) */"
        assert "".join(lx.text for lx in lexemes) == sql

    def test_tokenize_expands_body(self) -> None:
        """tokenize() replaces the comment by the lexemes of its body."""
        values = [lx.value for lx in tokenize(") ENGINE=InnoDB /*!50100 PARTITION BY HASH (`id`) */")]
        assert values == [")", "ENGINE", "=", "InnoDB", "PARTITION", "BY", "HASH", "(", "id", ")"]

    def test_body_positions(self) -> None:
        """Body lexemes are positioned in the enclosing text."""
        lexemes = tokenize("x /*!50100 PARTITION\n  BY HASH (`id`) */")
        assert (lexemes[1].line, lexemes[1].column) == (1, 12)
        assert (lexemes[2].line, lexemes[2].column) == (2, 3)

    def test_mariadb_and_unversioned_forms(self) -> None:
        """The MariaDB marker and a missing version are both accepted."""
        assert [lx.value for lx in tokenize("/*M!100100 KEY_BLOCK_SIZE=8 */")] == ["KEY_BLOCK_SIZE", "=", "8"]
        assert [lx.value for lx in tokenize("/*! INVISIBLE */")] == ["INVISIBLE"]

    def test_plain_comment_still_dropped(self) -> None:
        """Ordinary and optimizer-hint comments are not executable."""
        assert [lx.value for lx in tokenize("/* note */ a")] == ["a"]
        assert [lx.value for lx in tokenize("/*+ hint */ a")] == ["a"]

    def test_error_inside_body(self) -> None:
        """A lexical error in the body is reported at its position in the enclosing text."""
        with pytest.raises(ParseError) as exc_info:
            tokenize("a\n  /*!50100 DEFAULT 'open */")
        assert exc_info.value.line == 2
