"""
MagicQ Showfile Format
======================

Layout:
    \\ MagicQ Show File                <- Header lines (marker + free text)
    \\ File version 1.9.3.7
                                      <- One or more blank lines
    V,007d,"MagicQ 1",01090307,0000,0002,;
    T,"Name","value",0001,            <- Section: CODE, rows..., ;
    0002,1.000000,-nan;
                                      <- Blank lines after a section (counted)
    L,...;

Fields (untagged, told apart by grammar order):
    "text"        String, backslash escapes kept verbatim, "" is empty
    0005          Hex, digit count is kept (width 4)
    1.000000      Float, always written with 6 decimals
    nan / -nan    Float NaN, sign kept

Quirks reproduced on write:
    - Hex digits are uppercase only when the width is exactly 16
    - Rows may or may not end with a comma before the line break or ;
    - Runs of blank lines are counts on the preceding row or section
    - The line ending (LF or CRLF) is taken from the first line break

Section codes:
    Single or multi-character alphanumeric codes. Known codes map to a
    SectionKind; anything else is kept as an unknown code and written back
    unchanged.
"""

from __future__ import annotations

from enum import Enum
from collections.abc import Iterator, Mapping

# Markers
HEADER_MARKER = "\\ "
FIELD_SEPARATOR = ","
SECTION_TERMINATOR = ";"
QUOTE = '"'
ESCAPE = "\\"

# Line endings
LF = "\n"
CRLF = "\r\n"
LINE_ENDINGS = {"LF": LF, "CRLF": CRLF}

# latin-1 maps every byte to one code point, so decode/encode is lossless
DEFAULT_ENCODING = "latin-1"

# Safety limits
MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB max file size for reader
MAX_HEX_VALUE = 2 ** 64 - 1        # console stores hex fields as u64

# Quick identification reads at most this many bytes
MAX_MAGIC_SCAN_BYTES = 64

# File extension
EXTENSION = ".shw"

# Width at which the console switches hex digits to uppercase
UPPERCASE_HEX_WIDTH = 16

# Decimal places for non-NaN floats
FLOAT_PRECISION = 6


class SectionKind(Enum):
    """Semantic kind of a section, as far as the console's codes are known."""

    VERSION = "Version"
    SETTINGS = "Settings"
    HEAD = "Head"
    FIXTURE = "Fixture"
    PALETTE = "Palette"
    GROUP = "Group"
    FX = "FX"
    PLAYBACK = "Playback"
    CUE_STACK = "CueStack"
    EXECUTE_PAGE = "ExecutePage"
    EXECUTE_ITEM = "ExecuteItem"
    UNKNOWN = "Unknown"


class SectionCodeTable(Mapping[str, SectionKind]):
    """Bijective mapping between section codes and known section kinds.

    Codes missing from the table resolve to SectionKind.UNKNOWN. The table is
    immutable; extend() returns a new table.
    """

    def __init__(self, codes: Mapping[str, SectionKind]) -> None:
        by_kind: dict[SectionKind, str] = {}
        for code, kind in codes.items():
            if not code or not (code.isascii() and code.isalnum()):
                raise ValueError(f"Invalid section code: {code!r}. Codes must be ASCII alphanumeric.")
            if not isinstance(kind, SectionKind) or kind is SectionKind.UNKNOWN:
                raise ValueError(f"Invalid section kind for code {code!r}: {kind!r}")
            if kind in by_kind:
                raise ValueError(
                    f"Section kind {kind.value} mapped by both {by_kind[kind]!r} and {code!r}"
                )
            by_kind[kind] = code
        self._by_code: dict[str, SectionKind] = dict(codes)
        self._by_kind = by_kind

    def __getitem__(self, code: str) -> SectionKind:
        return self._by_code[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_code)

    def __len__(self) -> int:
        return len(self._by_code)

    def kind_for(self, code: str) -> SectionKind:
        return self._by_code.get(code, SectionKind.UNKNOWN)

    def code_for(self, kind: SectionKind) -> str:
        try:
            return self._by_kind[kind]
        except KeyError:
            raise KeyError(f"No section code registered for {kind.value}") from None

    def extend(self, codes: Mapping[str, SectionKind]) -> SectionCodeTable:
        """Return a new table with ``codes`` added or remapped.

        Remapping a kind to a new code drops its old code, so the result
        stays bijective.
        """
        remapped = set(codes.values())
        merged = {c: k for c, k in self._by_code.items() if k not in remapped}
        merged.update(codes)
        return SectionCodeTable(merged)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{c}={k.value}" for c, k in self._by_code.items())
        return f"SectionCodeTable({pairs})"


DEFAULT_SECTION_CODES = SectionCodeTable({
    "V": SectionKind.VERSION,
    "T": SectionKind.SETTINGS,
    "P": SectionKind.HEAD,
    "L": SectionKind.FIXTURE,
    "F": SectionKind.PALETTE,
    "G": SectionKind.GROUP,
    "W": SectionKind.FX,
    "S": SectionKind.PLAYBACK,
    "C": SectionKind.CUE_STACK,
    "M": SectionKind.EXECUTE_PAGE,
    "N": SectionKind.EXECUTE_ITEM,
})


def line_ending_name(line_ending: str) -> str:
    """Return "LF" or "CRLF" for a line ending sequence."""
    for name, value in LINE_ENDINGS.items():
        if value == line_ending:
            return name
    raise ValueError(f"Unsupported line ending: {line_ending!r}")
