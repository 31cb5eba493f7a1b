"""
MagicQ Errors - Positioned parse errors and typed access errors.

Every parse error knows the offset it failed at and the stack of grammar
rules that were active (outermost first), so a failure deep inside a field
can be reported against the section and row that contain it.
"""

from __future__ import annotations


class ShowfileError(ValueError):
    """Base class for all showfile errors."""


class ParseError(ShowfileError):
    """A grammar rule failed at a position in the input."""

    rule = "Showfile"

    def __init__(
        self,
        message: str,
        offset: int,
        text: str = "",
        trace: tuple[tuple[str, int], ...] = (),
    ) -> None:
        self.message = message
        self.offset = offset
        self.text = text
        self.trace = trace
        super().__init__(str(self))

    @property
    def line(self) -> int:
        """1-based line number of the offset."""
        return self.text.count("\n", 0, self.offset) + 1

    @property
    def column(self) -> int:
        """1-based column of the offset."""
        return self.offset - (self.text.rfind("\n", 0, self.offset) + 1) + 1

    def source_line(self) -> str:
        start = self.text.rfind("\n", 0, self.offset) + 1
        end = self.text.find("\n", self.offset)
        if end == -1:
            end = len(self.text)
        return self.text[start:end].rstrip("\r")

    def format_trace(self) -> str:
        lines = [f"{self.rule}: {self.message} at line {self.line}, column {self.column} (offset {self.offset})"]
        for rule, offset in self.trace:
            lines.append(f"  in {rule} at offset {offset}")
        if self.text:
            lines.append(f"    {self.source_line()}")
            lines.append(f"    {' ' * (self.column - 1)}^")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format_trace()


class FieldParseError(ParseError):
    """No field variant matched."""

    rule = "Field"


class RowParseError(ParseError):
    """A row could not produce a single field."""

    rule = "Row"


class SectionParseError(ParseError):
    """Missing identifier, comma, rows or terminator."""

    rule = "Section"


class ShowfileParseError(ParseError):
    """Top-level failure. Wraps the innermost error."""

    rule = "Showfile"

    def __init__(
        self,
        message: str,
        offset: int,
        text: str = "",
        trace: tuple[tuple[str, int], ...] = (),
        innermost: ParseError | None = None,
    ) -> None:
        self.innermost = innermost
        super().__init__(message, offset, text, trace)

    @classmethod
    def wrap(cls, error: ParseError) -> ShowfileParseError:
        if isinstance(error, ShowfileParseError):
            return error
        return cls(
            f"{error.rule}: {error.message}",
            error.offset,
            error.text,
            error.trace,
            innermost=error,
        )


class FieldTypeError(ShowfileError, TypeError):
    """A typed accessor was used on a field of another variant or width."""
