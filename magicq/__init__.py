"""
MagicQ - Lossless codec for MagicQ lighting console showfiles.

Parse a showfile into an inspectable model and write it back byte for byte.
"""

__version__ = "0.1.0"

from magicq.spec import DEFAULT_SECTION_CODES, SectionCodeTable, SectionKind
from magicq.document import (
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
    FieldTypeError,
    ParseError,
    RowParseError,
    SectionParseError,
    ShowfileError,
    ShowfileParseError,
)
from magicq.reader import ShowfileReader, parse
from magicq.writer import ShowfileWriter, serialize
