"""
MagicQ Reader - Recursive descent parser for showfiles.

Grammar (tried top-down, first alternative that matches wins):
    showfile  = header+ EOL* section*
    header    = "\\ " text EOL
    section   = code "," row+ ";" EOL*
    row       = field+ (EOL+ | &";")
    field     = (string | hex | float) ("," | &";" | &EOL)
    string    = '"' chars '"'            backslash escapes allowed
    hex       = [0-9a-fA-F]+             width is recorded
    float     = decimal | "nan" | "-nan" | "inf" | "-inf"

EOL is whichever of LF or CRLF occurs first in the document and is the only
line break accepted afterwards.

Errors carry the offset and the stack of rules that were being parsed, and
the top-level parse() always raises ShowfileParseError wrapping the
innermost failure.
"""

from __future__ import annotations

import logging
import math
import re
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Iterator

from magicq.document import (
    Field,
    FloatValue,
    Header,
    HexValue,
    Row,
    Section,
    SectionIdentifier,
    Showfile,
    StringValue,
)
from magicq.errors import (
    FieldParseError,
    ParseError,
    RowParseError,
    SectionParseError,
    ShowfileParseError,
)
from magicq.spec import (
    CRLF,
    DEFAULT_ENCODING,
    DEFAULT_SECTION_CODES,
    FIELD_SEPARATOR,
    HEADER_MARKER,
    LF,
    MAX_FILE_SIZE,
    MAX_HEX_VALUE,
    MAX_MAGIC_SCAN_BYTES,
    QUOTE,
    SECTION_TERMINATOR,
    SectionCodeTable,
    line_ending_name,
)

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"[0-9A-Fa-f]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_CODE_RE = re.compile(r"[A-Za-z0-9]+")
_HEADER_TEXT_RE = re.compile(r"[^\r\n]*")

_FLOAT_TOKENS = (
    ("-nan", math.copysign(math.nan, -1.0)),
    ("nan", math.nan),
    ("-inf", -math.inf),
    ("inf", math.inf),
)


@lru_cache(maxsize=None)
def _string_re(line_ending: str) -> re.Pattern:
    # Shortest quoted run that is followed by a delimiter. An escape always
    # takes two characters, so the body has one way to match; a single lone
    # backslash may sit right before the closing quote.
    return re.compile(
        r'"((?:[^"\\\r\n]|\\[^\r\n])*?\\?)"(?=,|;|' + re.escape(line_ending) + ")"
    )


def detect_line_ending(text: str) -> str:
    """Return the line ending used by the first line break in ``text``."""
    i = text.find("\n")
    if i > 0 and text[i - 1] == "\r":
        return CRLF
    return LF


class _Cursor:
    """Position in the input plus the stack of rules being parsed."""

    def __init__(self, text: str, line_ending: str, codes: SectionCodeTable) -> None:
        self.text = text
        self.pos = 0
        self.eol = line_ending
        self.codes = codes
        self._stack: list[tuple[str, int]] = []

    @contextmanager
    def context(self, rule: str) -> Iterator[None]:
        self._stack.append((rule, self.pos))
        try:
            yield
        finally:
            self._stack.pop()

    def error(self, cls: type[ParseError], message: str, offset: int | None = None) -> ParseError:
        return cls(
            message,
            self.pos if offset is None else offset,
            self.text,
            tuple(self._stack),
        )

    def startswith(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.pos)

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def at_row_end(self) -> bool:
        return self.startswith(SECTION_TERMINATOR) or self.startswith(self.eol)

    def count_line_endings(self) -> int:
        n = 0
        while self.startswith(self.eol):
            self.pos += len(self.eol)
            n += 1
        return n

    def describe(self) -> str:
        """Short description of the input at the cursor, for messages."""
        if self.at_end():
            return "end of input"
        snippet = self.text[self.pos:self.pos + 12].split("\n", 1)[0]
        return repr(snippet)


# =============================================================================
# Field grammar
# =============================================================================

def _delimiter(cur: _Cursor, end: int) -> bool | None:
    """Delimiter after a field ending at ``end``.

    True for a consumed comma, False for a lookahead ``;`` or line break,
    None when the field is not properly terminated.
    """
    if cur.text.startswith(FIELD_SEPARATOR, end):
        return True
    if cur.text.startswith(SECTION_TERMINATOR, end) or cur.text.startswith(cur.eol, end):
        return False
    return None


def _commit(cur: _Cursor, end: int, comma: bool) -> None:
    cur.pos = end + (1 if comma else 0)


def _string(cur: _Cursor) -> tuple[Field, bool] | None:
    if not cur.startswith(QUOTE):
        return None
    m = _string_re(cur.eol).match(cur.text, cur.pos)
    if m is None:
        return None
    comma = _delimiter(cur, m.end())
    _commit(cur, m.end(), comma)
    return StringValue(m.group(1)), comma


def _hex(cur: _Cursor) -> tuple[Field, bool] | None:
    m = _HEX_RE.match(cur.text, cur.pos)
    if m is None:
        return None
    comma = _delimiter(cur, m.end())
    if comma is None:
        return None
    digits = m.group(0)
    value = int(digits, 16)
    if value > MAX_HEX_VALUE:
        return None
    _commit(cur, m.end(), comma)
    return HexValue(value, len(digits)), comma


def _float(cur: _Cursor) -> tuple[Field, bool] | None:
    m = _FLOAT_RE.match(cur.text, cur.pos)
    if m is not None:
        end, value = m.end(), float(m.group(0))
    else:
        for token, token_value in _FLOAT_TOKENS:
            if cur.startswith(token):
                end, value = cur.pos + len(token), token_value
                break
        else:
            return None
    comma = _delimiter(cur, end)
    if comma is None:
        return None
    _commit(cur, end, comma)
    return FloatValue(value), comma


_FIELD_ALTERNATIVES = (_string, _hex, _float)


def _field(cur: _Cursor) -> tuple[Field, bool]:
    with cur.context("Field"):
        for alternative in _FIELD_ALTERNATIVES:
            result = alternative(cur)
            if result is not None:
                return result
        raise cur.error(FieldParseError, f"expected string, hex or float field, found {cur.describe()}")


# =============================================================================
# Row / section grammar
# =============================================================================

def _row(cur: _Cursor) -> Row:
    start = cur.pos
    with cur.context("Row"):
        try:
            first, comma = _field(cur)
        except FieldParseError as e:
            raise cur.error(RowParseError, f"expected at least one field, found {cur.describe()}", start) from e
        fields = [first]
        # A lookahead delimiter leaves the cursor on ";" or a line break
        while comma and not cur.at_row_end():
            value, comma = _field(cur)
            fields.append(value)
        trailing_newlines = cur.count_line_endings()
        return Row(tuple(fields), comma, trailing_newlines)


def _section(cur: _Cursor) -> Section:
    with cur.context("Section"):
        m = _CODE_RE.match(cur.text, cur.pos)
        if m is None:
            raise cur.error(SectionParseError, f"expected section identifier, found {cur.describe()}")
        identifier = SectionIdentifier.from_code(m.group(0), cur.codes)
        if not identifier.is_known:
            logger.debug("Unknown section code %r at offset %d", identifier.code, cur.pos)
        cur.pos = m.end()

        if not cur.startswith(FIELD_SEPARATOR):
            raise cur.error(SectionParseError, f"expected ',' after section identifier, found {cur.describe()}")
        cur.pos += 1

        if cur.startswith(SECTION_TERMINATOR):
            raise cur.error(SectionParseError, "expected at least one row")

        rows = []
        while not cur.startswith(SECTION_TERMINATOR):
            if cur.at_end():
                raise cur.error(SectionParseError, "expected section terminator ';', found end of input")
            rows.append(_row(cur))
        cur.pos += 1

        trailing_newlines = cur.count_line_endings()
        return Section(identifier, tuple(rows), trailing_newlines)


# =============================================================================
# Showfile grammar
# =============================================================================

def _header(cur: _Cursor) -> Header:
    with cur.context("Header"):
        cur.pos += len(HEADER_MARKER)
        m = _HEADER_TEXT_RE.match(cur.text, cur.pos)
        cur.pos = m.end()
        if not cur.startswith(cur.eol):
            raise cur.error(ShowfileParseError, f"expected line break after header, found {cur.describe()}")
        cur.pos += len(cur.eol)
        return Header(m.group(0))


def _showfile(cur: _Cursor) -> Showfile:
    with cur.context("Showfile"):
        headers = []
        while cur.startswith(HEADER_MARKER):
            headers.append(_header(cur))
        if not headers:
            raise cur.error(ShowfileParseError, f"expected header line starting with {HEADER_MARKER!r}")
        header_newlines = cur.count_line_endings()

        sections = []
        while not cur.at_end():
            sections.append(_section(cur))

        return Showfile(tuple(headers), tuple(sections), cur.eol, header_newlines)


def parse(text: str, codes: SectionCodeTable | None = None) -> Showfile:
    """Parse showfile text. Raises ShowfileParseError on malformed input."""
    line_ending = detect_line_ending(text)
    cur = _Cursor(text, line_ending, codes if codes is not None else DEFAULT_SECTION_CODES)
    try:
        showfile = _showfile(cur)
    except ShowfileParseError:
        raise
    except ParseError as e:
        raise ShowfileParseError.wrap(e) from e
    logger.debug(
        "Parsed showfile: %d headers, %d sections, %s line endings",
        len(showfile.headers), len(showfile.sections), line_ending_name(line_ending),
    )
    return showfile


def parse_field(text: str, pos: int = 0, line_ending: str = LF) -> tuple[Field, bool, int]:
    """Parse one field at ``pos``. Returns (field, followed_by_comma, end)."""
    cur = _Cursor(text, line_ending, DEFAULT_SECTION_CODES)
    cur.pos = pos
    value, comma = _field(cur)
    return value, comma, cur.pos


def parse_row(text: str, pos: int = 0, line_ending: str = LF) -> tuple[Row, int]:
    """Parse one row at ``pos``. Returns (row, end)."""
    cur = _Cursor(text, line_ending, DEFAULT_SECTION_CODES)
    cur.pos = pos
    row = _row(cur)
    return row, cur.pos


def parse_section(
    text: str,
    pos: int = 0,
    line_ending: str = LF,
    codes: SectionCodeTable | None = None,
) -> tuple[Section, int]:
    """Parse one section at ``pos``. Returns (section, end)."""
    cur = _Cursor(text, line_ending, codes if codes is not None else DEFAULT_SECTION_CODES)
    cur.pos = pos
    section = _section(cur)
    return section, cur.pos


class ShowfileReader:
    """
    Showfile reader.

    Usage:
        show = ShowfileReader.read("venue.shw")
        show = ShowfileReader.parse(text)
    """

    @staticmethod
    def is_showfile(path: str | Path) -> bool:
        """Fast check if a file looks like a showfile. Reads only the first bytes."""
        with open(path, "rb") as f:
            head = f.read(MAX_MAGIC_SCAN_BYTES)
        return ShowfileReader.is_showfile_bytes(head)

    @staticmethod
    def is_showfile_bytes(data: bytes) -> bool:
        """Fast check if bytes start with a header line."""
        return data.startswith(HEADER_MARKER.encode("ascii"))

    @staticmethod
    def parse(text: str, codes: SectionCodeTable | None = None) -> Showfile:
        """Parse text into a Showfile."""
        return parse(text, codes)

    @classmethod
    def parse_bytes(
        cls,
        data: bytes,
        encoding: str | None = None,
        max_size: int = MAX_FILE_SIZE,
        codes: SectionCodeTable | None = None,
    ) -> Showfile:
        """Decode and parse bytes into a Showfile."""
        if len(data) > max_size:
            raise ValueError(
                f"Input size {len(data)} exceeds maximum {max_size} bytes. "
                f"Pass max_size= to override."
            )
        return cls.parse(data.decode(encoding or DEFAULT_ENCODING), codes)

    @classmethod
    def read(
        cls,
        path: str | Path,
        encoding: str | None = None,
        max_size: int = MAX_FILE_SIZE,
        codes: SectionCodeTable | None = None,
    ) -> Showfile:
        """Read and parse a showfile from disk."""
        path = Path(path)
        file_size = path.stat().st_size
        if file_size > max_size:
            raise ValueError(
                f"File size {file_size} exceeds maximum {max_size} bytes. "
                f"Pass max_size= to override."
            )
        logger.debug("Reading %s (%d bytes)", path, file_size)
        # Binary read: text mode would translate CRLF
        with open(path, "rb") as f:
            data = f.read()
        return cls.parse_bytes(data, encoding=encoding, max_size=max_size, codes=codes)
