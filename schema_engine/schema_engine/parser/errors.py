"""Exceptions raised while reading schema DDL."""

from __future__ import annotations


class ParseError(Exception):
    """Raised when DDL text cannot be tokenized, split, or parsed.

    Carries the 1-based ``line`` and ``column`` of the offending input and
    an optional ``source`` label (a file path, ``"live schema"``, ...) so
    callers can point the user at the exact location.
    """

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
        source: str | None = None,
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.source = source
        super().__init__(self._format())

    def _format(self) -> str:
        location = ""
        if self.line is not None:
            location = f"line {self.line}"
            if self.column is not None:
                location += f", column {self.column}"
        prefix = self.source or ""
        if prefix and location:
            return f"{prefix} ({location}): {self.message}"
        if prefix or location:
            return f"{prefix or location}: {self.message}"
        return self.message

    def with_source(self, source: str) -> ParseError:
        """Return a copy of this error labelled with *source*."""
        return ParseError(self.message, line=self.line, column=self.column, source=source)
