"""
MagicQ Writer - Serializes a Showfile back to text.

The writer is the exact inverse of the reader: every piece of formatting the
reader recorded (hex width, NaN sign, trailing commas, line break counts, the
file's line ending) is consumed here, and nothing else is needed to
reproduce the original bytes.
"""

from __future__ import annotations

import io
import logging
import os
import tempfile

from magicq.document import Field, FloatValue, HexValue, Row, Section, Showfile, StringValue
from magicq.spec import (
    DEFAULT_ENCODING,
    FIELD_SEPARATOR,
    FLOAT_PRECISION,
    HEADER_MARKER,
    QUOTE,
    SECTION_TERMINATOR,
    UPPERCASE_HEX_WIDTH,
)

logger = logging.getLogger(__name__)


def format_field(value: Field) -> str:
    """Render one field without its delimiter."""
    if isinstance(value, StringValue):
        return f"{QUOTE}{value.value}{QUOTE}"
    if isinstance(value, HexValue):
        # The console writes 16-digit values in uppercase and everything
        # else in lowercase.
        case = "X" if value.width == UPPERCASE_HEX_WIDTH else "x"
        return f"{value.value:0{value.width}{case}}"
    if isinstance(value, FloatValue):
        if value.is_nan:
            return "-nan" if value.is_negative else "nan"
        return f"{value.value:.{FLOAT_PRECISION}f}"
    raise TypeError(f"Not a field value: {value!r}")


def format_row(row: Row, line_ending: str) -> str:
    text = FIELD_SEPARATOR.join(format_field(f) for f in row.fields)
    if row.trailing_comma:
        text += FIELD_SEPARATOR
    return text + line_ending * row.trailing_newlines


def format_section(section: Section, line_ending: str) -> str:
    out = io.StringIO()
    out.write(section.code)
    out.write(FIELD_SEPARATOR)
    for row in section.rows:
        out.write(format_row(row, line_ending))
    out.write(SECTION_TERMINATOR)
    out.write(line_ending * section.trailing_newlines)
    return out.getvalue()


class ShowfileWriter:

    @staticmethod
    def serialize(showfile: Showfile) -> str:
        """Serialize a Showfile to text. Pure: never mutates the model."""
        eol = showfile.line_ending
        out = io.StringIO()
        for header in showfile.headers:
            out.write(f"{HEADER_MARKER}{header.text}{eol}")
        out.write(eol * showfile.header_newlines)
        for section in showfile.sections:
            out.write(format_section(section, eol))
        return out.getvalue()

    @staticmethod
    def to_bytes(showfile: Showfile, encoding: str | None = None) -> bytes:
        return ShowfileWriter.serialize(showfile).encode(encoding or DEFAULT_ENCODING)

    @staticmethod
    def write(showfile: Showfile, path: str, mode: int = 0o644, encoding: str | None = None) -> int:
        """Write a Showfile to a file atomically. Returns bytes written.

        Uses write-to-temp-then-rename so the target is never left
        half-written.
        """
        data = ShowfileWriter.to_bytes(showfile, encoding=encoding)
        dir_name = os.path.dirname(os.path.abspath(path)) or "."
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix=".shw.tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Wrote %s (%d bytes)", path, len(data))
        return len(data)


def serialize(showfile: Showfile) -> str:
    """Serialize a Showfile to text."""
    return ShowfileWriter.serialize(showfile)
