"""
Unit Tests - Test individual components in isolation.
"""

import math

import pytest

from magicq.spec import (
    DEFAULT_SECTION_CODES,
    HEADER_MARKER,
    LINE_ENDINGS,
    SectionCodeTable,
    SectionKind,
    line_ending_name,
)
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
from magicq.errors import FieldTypeError, ShowfileError
from magicq.data import SectionData, Version


def _row(*fields, **kwargs):
    return Row(tuple(fields), **kwargs)


def _section(code, *rows, trailing_newlines=1):
    return Section(SectionIdentifier.from_code(code), tuple(rows), trailing_newlines)


# =============================================================================
# Spec constants
# =============================================================================

class TestSpec:

    def test_header_marker(self):
        assert HEADER_MARKER == "\\ "

    def test_line_endings(self):
        assert LINE_ENDINGS == {"LF": "\n", "CRLF": "\r\n"}
        assert line_ending_name("\n") == "LF"
        assert line_ending_name("\r\n") == "CRLF"

    def test_unsupported_line_ending_name(self):
        with pytest.raises(ValueError):
            line_ending_name("\r")

    def test_default_codes(self):
        expected = {
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
        }
        assert dict(DEFAULT_SECTION_CODES) == expected


# =============================================================================
# SectionCodeTable
# =============================================================================

class TestSectionCodeTable:

    def test_lookup_both_ways(self):
        assert DEFAULT_SECTION_CODES.kind_for("C") is SectionKind.CUE_STACK
        assert DEFAULT_SECTION_CODES.code_for(SectionKind.CUE_STACK) == "C"

    def test_unknown_code_resolves_to_unknown(self):
        assert DEFAULT_SECTION_CODES.kind_for("Z") is SectionKind.UNKNOWN
        assert "Z" not in DEFAULT_SECTION_CODES

    def test_code_for_unknown_kind_raises(self):
        with pytest.raises(KeyError):
            DEFAULT_SECTION_CODES.code_for(SectionKind.UNKNOWN)

    def test_rejects_duplicate_kind(self):
        with pytest.raises(ValueError, match="mapped by both"):
            SectionCodeTable({"A": SectionKind.GROUP, "B": SectionKind.GROUP})

    def test_rejects_bad_code(self):
        with pytest.raises(ValueError):
            SectionCodeTable({"A,": SectionKind.GROUP})
        with pytest.raises(ValueError):
            SectionCodeTable({"": SectionKind.GROUP})

    def test_rejects_unknown_kind(self):
        with pytest.raises(ValueError):
            SectionCodeTable({"X": SectionKind.UNKNOWN})

    def test_extend_adds_codes(self):
        table = SectionCodeTable({"V": SectionKind.VERSION})
        extended = table.extend({"GR": SectionKind.GROUP})
        assert extended.kind_for("GR") is SectionKind.GROUP
        assert extended.kind_for("V") is SectionKind.VERSION
        # Original is untouched
        assert "GR" not in table

    def test_extend_remaps_kind(self):
        extended = DEFAULT_SECTION_CODES.extend({"GRP": SectionKind.GROUP})
        assert extended.code_for(SectionKind.GROUP) == "GRP"
        assert extended.kind_for("G") is SectionKind.UNKNOWN
        assert len(extended) == len(DEFAULT_SECTION_CODES)


# =============================================================================
# Field values
# =============================================================================

class TestFieldValues:

    def test_string_accessor(self):
        assert StringValue("Dimmer").as_string() == "Dimmer"

    def test_string_unescaped(self):
        assert StringValue('say \\"hi\\"').unescaped() == 'say "hi"'
        assert StringValue("C:\\").unescaped() == "C:\\"

    def test_string_rejects_line_breaks(self):
        with pytest.raises(ValueError, match="line breaks"):
            StringValue("a\nb")
        with pytest.raises(ValueError, match="line breaks"):
            StringValue("a\rb")

    def test_string_rejects_unescaped_quote(self):
        with pytest.raises(ValueError, match="Unescaped quote"):
            StringValue('bad"value')
        with pytest.raises(ValueError, match="Unescaped quote"):
            StringValue('\\\\"')

    def test_string_accepts_escapes(self):
        assert StringValue('say \\"hi\\"').value == 'say \\"hi\\"'
        assert StringValue("C:\\").value == "C:\\"
        assert StringValue("").value == ""

    def test_hex_accessor(self):
        assert HexValue(0x7D, 4).as_hex() == 0x7D
        assert HexValue(0x7D, 4).as_hex(4) == 0x7D

    def test_hex_wrong_width(self):
        with pytest.raises(FieldTypeError, match="4 characters long instead of 8"):
            HexValue(0x7D, 4).as_hex(8)

    def test_hex_validation(self):
        with pytest.raises(ValueError):
            HexValue(1, 0)
        with pytest.raises(ValueError):
            HexValue(-1, 4)
        with pytest.raises(ValueError):
            HexValue(0x10000, 4)
        with pytest.raises(ValueError):
            HexValue(2 ** 64, 17)

    def test_hex_max_value(self):
        assert HexValue(2 ** 64 - 1, 16).value == 2 ** 64 - 1

    def test_float_accessor(self):
        assert FloatValue(0.5).as_float() == 0.5

    def test_wrong_variant_raises(self):
        with pytest.raises(FieldTypeError):
            StringValue("x").as_hex()
        with pytest.raises(FieldTypeError):
            HexValue(1, 1).as_float()
        with pytest.raises(FieldTypeError):
            FloatValue(1.0).as_string()

    def test_field_type_error_hierarchy(self):
        with pytest.raises(TypeError):
            StringValue("x").as_float()
        with pytest.raises(ShowfileError):
            StringValue("x").as_float()

    def test_nan_equality_keeps_sign(self):
        pos = FloatValue(math.nan)
        neg = FloatValue(math.copysign(math.nan, -1.0))
        assert pos == FloatValue(math.nan)
        assert neg == FloatValue(math.copysign(math.nan, -1.0))
        assert pos != neg
        assert neg.is_nan and neg.is_negative
        assert pos.is_nan and not pos.is_negative

    def test_signed_zero_differs(self):
        assert FloatValue(0.0) != FloatValue(-0.0)
        assert FloatValue(1.5) == FloatValue(1.5)

    def test_float_hashable(self):
        assert len({FloatValue(math.nan), FloatValue(math.nan), FloatValue(1.0)}) == 2

    def test_hex_equality_includes_width(self):
        assert HexValue(5, 4) != HexValue(5, 2)


# =============================================================================
# SectionIdentifier
# =============================================================================

class TestSectionIdentifier:

    def test_known_code(self):
        ident = SectionIdentifier.from_code("V")
        assert ident.kind is SectionKind.VERSION
        assert ident.is_known
        assert str(ident) == "Version"

    def test_unknown_code(self):
        ident = SectionIdentifier.from_code("Z")
        assert ident.kind is SectionKind.UNKNOWN
        assert ident.code == "Z"
        assert not ident.is_known
        assert str(ident) == "Unknown(Z)"

    def test_for_kind(self):
        assert SectionIdentifier.for_kind(SectionKind.PLAYBACK).code == "S"

    def test_custom_table(self):
        table = DEFAULT_SECTION_CODES.extend({"Z": SectionKind.HEAD})
        assert SectionIdentifier.from_code("Z", table).kind is SectionKind.HEAD

    def test_invalid_code(self):
        with pytest.raises(ValueError):
            SectionIdentifier(SectionKind.UNKNOWN, "a b")


# =============================================================================
# Row / Section / Header
# =============================================================================

class TestRow:

    def test_accessors(self):
        row = _row(HexValue(1, 4), StringValue("Spot"), FloatValue(0.5))
        assert len(row) == 3
        assert row.get_hex(0, 4) == 1
        assert row.get_string(1) == "Spot"
        assert row.get_float(2) == 0.5
        assert list(row) == list(row.fields)

    def test_accessor_wrong_type(self):
        row = _row(StringValue("Spot"))
        with pytest.raises(FieldTypeError):
            row.get_hex(0)

    def test_accessor_out_of_range(self):
        with pytest.raises(IndexError):
            _row(StringValue("Spot")).get_string(3)

    def test_needs_a_field(self):
        with pytest.raises(ValueError):
            Row(())

    def test_fields_become_tuple(self):
        row = Row([HexValue(1, 1)])
        assert isinstance(row.fields, tuple)

    def test_negative_newlines(self):
        with pytest.raises(ValueError):
            _row(HexValue(1, 1), trailing_newlines=-1)


class TestSection:

    def test_properties(self):
        section = _section("L", _row(HexValue(1, 4)))
        assert section.kind is SectionKind.FIXTURE
        assert section.code == "L"
        assert len(section) == 1
        assert section[0].get_hex(0) == 1

    def test_needs_a_row(self):
        with pytest.raises(ValueError):
            _section("L")

    def test_inner_row_needs_line_break(self):
        with pytest.raises(ValueError, match="no trailing line break"):
            _section("L", _row(HexValue(1, 1), trailing_newlines=0), _row(HexValue(2, 1)))

    def test_last_row_may_end_on_terminator(self):
        section = _section("L", _row(HexValue(1, 1)), _row(HexValue(2, 1), trailing_newlines=0))
        assert len(section) == 2


class TestHeader:

    def test_no_line_breaks(self):
        with pytest.raises(ValueError):
            Header("a\nb")
        with pytest.raises(ValueError):
            Header("a\rb")

    def test_empty_text_allowed(self):
        assert Header("").text == ""


# =============================================================================
# Showfile
# =============================================================================

class TestShowfile:

    def _show(self):
        return Showfile(
            (Header("MyShow"),),
            (
                _section("V", _row(StringValue("MagicQ 1"))),
                _section("L", _row(HexValue(1, 4))),
                _section("Z", _row(HexValue(2, 4))),
                _section("L", _row(HexValue(3, 4))),
            ),
        )

    def test_get_section_by_kind(self):
        show = self._show()
        assert show.get_section(SectionKind.FIXTURE)[0].get_hex(0) == 1

    def test_get_section_by_code(self):
        show = self._show()
        assert show.get_section("Z")[0].get_hex(0) == 2
        assert show.get_section(SectionKind.UNKNOWN).code == "Z"

    def test_get_section_by_identifier(self):
        show = self._show()
        assert show.get_section(SectionIdentifier.from_code("V")).kind is SectionKind.VERSION

    def test_get_section_missing(self):
        assert self._show().get_section(SectionKind.PALETTE) is None
        assert self._show().get_section("Q") is None

    def test_get_sections_in_order(self):
        found = self._show().get_sections("L")
        assert [s[0].get_hex(0) for s in found] == [1, 3]

    def test_sequence_protocol(self):
        show = self._show()
        assert len(show) == 4
        assert show[2].code == "Z"
        assert show.section_codes == ["V", "L", "Z", "L"]
        assert [s.code for s in show] == show.section_codes

    def test_header_texts(self):
        assert self._show().header_texts == ["MyShow"]

    def test_needs_a_header(self):
        with pytest.raises(ValueError):
            Showfile(())

    def test_no_sections_allowed(self):
        show = Showfile((Header("Empty"),))
        assert len(show) == 0
        assert show.to_text() == "\\ Empty\n\n"

    def test_bad_line_ending(self):
        with pytest.raises(ValueError):
            Showfile((Header("x"),), line_ending="\r")

    def test_write_rejects_traversal(self, tmp_path):
        with pytest.raises(ValueError, match="path traversal"):
            self._show().write(str(tmp_path / ".." / "x.shw"))

    def test_repr(self):
        assert "sections=['V', 'L', 'Z', 'L']" in repr(self._show())


# =============================================================================
# Version data
# =============================================================================

class TestVersion:

    def _section(self):
        row = _row(
            HexValue(0x7D, 4),
            StringValue("MagicQ 1"),
            HexValue(0x01090307, 8),
            HexValue(0, 4),
            HexValue(2, 4),
            trailing_comma=True,
            trailing_newlines=0,
        )
        return _section("V", row)

    def test_from_section(self):
        version = Version.from_section(self._section())
        assert version.revision == 0x7D
        assert version.product == "MagicQ 1"
        assert version.software == 0x01090307
        assert version.value2 == 0
        assert version.value3 == 2
        assert version.software_version == "1.9.3.7"

    def test_describe(self):
        described = dict(Version.from_section(self._section()).describe())
        assert described["revision"] == "007d"
        assert described["software"] == "1.9.3.7"

    def test_to_section_inverse(self):
        section = self._section()
        assert Version.from_section(section).to_section() == section

    def test_wrong_kind(self):
        with pytest.raises(FieldTypeError):
            Version.from_section(_section("L", _row(HexValue(1, 4))))

    def test_wrong_width(self):
        row = _row(HexValue(0x7D, 2), StringValue("MagicQ 1"), HexValue(1, 8), HexValue(0, 4), HexValue(0, 4))
        with pytest.raises(FieldTypeError, match="2 characters long instead of 4"):
            Version.from_section(_section("V", row))

    def test_short_row(self):
        with pytest.raises(FieldTypeError):
            Version.from_section(_section("V", _row(HexValue(0x7D, 4))))

    def test_section_data_is_abstract(self):
        with pytest.raises(TypeError):
            SectionData()

        class Partial(SectionData):
            KIND = SectionKind.GROUP

            @classmethod
            def from_section(cls, section):
                return cls()

            def to_section(self):
                return _section("G", _row(HexValue(1, 4)))

        with pytest.raises(TypeError):
            Partial()

    def test_from_showfile_missing(self):
        show = Showfile((Header("x"),), (_section("L", _row(HexValue(1, 4))),))
        with pytest.raises(KeyError):
            Version.from_showfile(show)
