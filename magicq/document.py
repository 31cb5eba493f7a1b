"""
MagicQ Document - In-memory representation of a showfile.

The model is a frozen tree: Showfile -> Section -> Row -> field. Besides the
values it carries everything the writer needs to reproduce the source bytes
(hex widths, NaN signs, trailing commas, blank-line counts, line ending).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, Union

from magicq.errors import FieldTypeError
from magicq.spec import (
    DEFAULT_SECTION_CODES,
    ESCAPE,
    LINE_ENDINGS,
    MAX_HEX_VALUE,
    QUOTE,
    SectionCodeTable,
    SectionKind,
)


# =============================================================================
# Fields
# =============================================================================

class FieldValue:
    """Common accessors for the three field variants."""

    __slots__ = ()

    def as_string(self) -> str:
        raise FieldTypeError(f"String value expected, got {self!r} instead")

    def as_hex(self, width: int | None = None) -> int:
        raise FieldTypeError(f"Hex value expected, got {self!r} instead")

    def as_float(self) -> float:
        raise FieldTypeError(f"Float value expected, got {self!r} instead")


@dataclass(frozen=True)
class StringValue(FieldValue):
    """Quoted text. Escape sequences are kept exactly as they appear."""
    value: str

    def __post_init__(self) -> None:
        if "\n" in self.value or "\r" in self.value:
            raise ValueError("String value cannot contain line breaks")
        chars = iter(self.value)
        for c in chars:
            if c == ESCAPE:
                next(chars, None)
            elif c == QUOTE:
                raise ValueError(f"Unescaped quote in string value: {self.value!r}")

    def as_string(self) -> str:
        return self.value

    def unescaped(self) -> str:
        """Text with backslash escapes resolved (\\" -> ")."""
        out = []
        chars = iter(self.value)
        for c in chars:
            if c == ESCAPE:
                out.append(next(chars, ESCAPE))
            else:
                out.append(c)
        return "".join(out)


@dataclass(frozen=True)
class HexValue(FieldValue):
    """Unsigned integer written as ``width`` hex digits."""
    value: int
    width: int

    def __post_init__(self) -> None:
        if self.width < 1:
            raise ValueError(f"Hex width must be at least 1, got {self.width}")
        if not 0 <= self.value <= MAX_HEX_VALUE:
            raise ValueError(f"Hex value out of range: {self.value}")
        if self.value >= 16 ** self.width:
            raise ValueError(f"Hex value {self.value:#x} does not fit in {self.width} digits")

    def as_hex(self, width: int | None = None) -> int:
        if width is not None and width != self.width:
            raise FieldTypeError(
                f"Hex value is {self.width} characters long instead of {width}"
            )
        return self.value


@dataclass(frozen=True, eq=False)
class FloatValue(FieldValue):
    """IEEE-754 double. NaN keeps its sign bit (the console writes both)."""
    value: float

    @property
    def is_nan(self) -> bool:
        return math.isnan(self.value)

    @property
    def is_negative(self) -> bool:
        return math.copysign(1.0, self.value) < 0

    def as_float(self) -> float:
        return self.value

    def _key(self) -> tuple:
        if self.is_nan:
            return ("nan", self.is_negative)
        return (self.value, self.is_negative)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FloatValue):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())


Field = Union[StringValue, HexValue, FloatValue]


# =============================================================================
# Section identifiers
# =============================================================================

@dataclass(frozen=True)
class SectionIdentifier:
    """Section kind plus the exact code it was written with."""
    kind: SectionKind
    code: str

    def __post_init__(self) -> None:
        if not self.code or not (self.code.isascii() and self.code.isalnum()):
            raise ValueError(f"Invalid section code: {self.code!r}")

    @classmethod
    def from_code(cls, code: str, codes: SectionCodeTable | None = None) -> SectionIdentifier:
        table = codes if codes is not None else DEFAULT_SECTION_CODES
        return cls(table.kind_for(code), code)

    @classmethod
    def for_kind(cls, kind: SectionKind, codes: SectionCodeTable | None = None) -> SectionIdentifier:
        table = codes if codes is not None else DEFAULT_SECTION_CODES
        return cls(kind, table.code_for(kind))

    @property
    def is_known(self) -> bool:
        return self.kind is not SectionKind.UNKNOWN

    def __str__(self) -> str:
        if self.is_known:
            return self.kind.value
        return f"Unknown({self.code})"


# =============================================================================
# Rows, sections, headers
# =============================================================================

@dataclass(frozen=True)
class Row:
    """One line of fields inside a section."""
    fields: tuple[Field, ...]
    trailing_comma: bool = False
    trailing_newlines: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        if not self.fields:
            raise ValueError("A row needs at least one field")
        if self.trailing_newlines < 0:
            raise ValueError(f"Negative newline count: {self.trailing_newlines}")

    def __getitem__(self, index: int) -> Field:
        return self.fields[index]

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def get_string(self, index: int) -> str:
        return self.fields[index].as_string()

    def get_hex(self, index: int, width: int | None = None) -> int:
        return self.fields[index].as_hex(width)

    def get_float(self, index: int) -> float:
        return self.fields[index].as_float()


@dataclass(frozen=True)
class Section:
    """A block of rows introduced by a code and terminated by ``;``."""
    identifier: SectionIdentifier
    rows: tuple[Row, ...]
    trailing_newlines: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "rows", tuple(self.rows))
        if not self.rows:
            raise ValueError(f"Section {self.identifier.code!r} needs at least one row")
        if self.trailing_newlines < 0:
            raise ValueError(f"Negative newline count: {self.trailing_newlines}")
        # A row followed directly by another row would merge into one line
        for i, row in enumerate(self.rows[:-1]):
            if row.trailing_newlines == 0:
                raise ValueError(
                    f"Row {i} of section {self.identifier.code!r} is not the last row "
                    f"but has no trailing line break"
                )

    @property
    def kind(self) -> SectionKind:
        return self.identifier.kind

    @property
    def code(self) -> str:
        return self.identifier.code

    def __getitem__(self, index: int) -> Row:
        return self.rows[index]

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class Header:
    """A ``\\ text`` line at the top of the file."""
    text: str

    def __post_init__(self) -> None:
        if "\n" in self.text or "\r" in self.text:
            raise ValueError("Header text cannot contain line breaks")


# =============================================================================
# Showfile
# =============================================================================

SectionKey = Union[SectionKind, SectionIdentifier, str]


@dataclass(frozen=True)
class Showfile:
    """
    In-memory representation of a MagicQ showfile.

    Usage:
        show = ShowfileReader.read("venue.shw")
        version = show.get_section(SectionKind.VERSION)
        name = version[0].get_string(1)
        show.write("copy.shw")
    """

    headers: tuple[Header, ...]
    sections: tuple[Section, ...] = field(default_factory=tuple)
    line_ending: str = "\n"
    # Line breaks between the last header line and the first section
    header_newlines: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", tuple(self.headers))
        object.__setattr__(self, "sections", tuple(self.sections))
        if not self.headers:
            raise ValueError("A showfile needs at least one header")
        if self.line_ending not in LINE_ENDINGS.values():
            raise ValueError(f"Unsupported line ending: {self.line_ending!r}")
        if self.header_newlines < 0:
            raise ValueError(f"Negative newline count: {self.header_newlines}")

    def _matches(self, section: Section, key: SectionKey) -> bool:
        if isinstance(key, SectionKind):
            return section.kind is key
        if isinstance(key, SectionIdentifier):
            return section.identifier == key
        return section.code == key

    def get_section(self, key: SectionKey) -> Section | None:
        """First section matching a kind, identifier or code."""
        for s in self.sections:
            if self._matches(s, key):
                return s
        return None

    def get_sections(self, key: SectionKey) -> list[Section]:
        """All sections matching a kind, identifier or code."""
        return [s for s in self.sections if self._matches(s, key)]

    @property
    def header_texts(self) -> list[str]:
        return [h.text for h in self.headers]

    @property
    def section_codes(self) -> list[str]:
        return [s.code for s in self.sections]

    def __getitem__(self, index: int) -> Section:
        return self.sections[index]

    def __iter__(self) -> Iterator[Section]:
        return iter(self.sections)

    def __len__(self) -> int:
        return len(self.sections)

    def to_text(self) -> str:
        """Serialize this showfile to text."""
        from magicq.writer import ShowfileWriter
        return ShowfileWriter.serialize(self)

    def to_bytes(self, encoding: str | None = None) -> bytes:
        """Serialize this showfile to bytes."""
        from magicq.writer import ShowfileWriter
        return ShowfileWriter.to_bytes(self, encoding=encoding)

    def write(self, path: str, encoding: str | None = None) -> int:
        """Write this showfile to disk. Returns bytes written.

        Raises ValueError if path contains '..' (path traversal prevention).
        """
        from pathlib import Path as _Path
        if ".." in _Path(path).parts:
            raise ValueError("Output path must not contain '..' (path traversal)")
        from magicq.writer import ShowfileWriter
        return ShowfileWriter.write(self, path, encoding=encoding)

    def __repr__(self) -> str:
        return f"Showfile(headers={len(self.headers)}, sections={self.section_codes})"
