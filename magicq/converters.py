"""
MagicQ Converters - Convert showfiles to/from JSON and to CSV.

  - to_json / from_json   lossless: every width, sign, comma and count is kept
  - to_csv                one CSV row per showfile row, for spreadsheets
"""

from __future__ import annotations

import csv
import io
import json
import math
from typing import Any

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
from magicq.spec import LINE_ENDINGS, SectionCodeTable, line_ending_name
from magicq.writer import format_field


# =============================================================================
# JSON
# =============================================================================

def _float_to_json(value: float) -> float | str:
    if math.isnan(value):
        return "-nan" if math.copysign(1.0, value) < 0 else "nan"
    if math.isinf(value):
        return "-inf" if value < 0 else "inf"
    return value


_FLOAT_NAMES = {
    "nan": math.nan,
    "-nan": math.copysign(math.nan, -1.0),
    "inf": math.inf,
    "-inf": -math.inf,
}


def _field_to_json(value: Field) -> dict[str, Any]:
    if isinstance(value, StringValue):
        return {"type": "string", "value": value.value}
    if isinstance(value, HexValue):
        return {"type": "hex", "value": value.value, "width": value.width}
    return {"type": "float", "value": _float_to_json(value.value)}


def to_json(showfile: Showfile, indent: int = 2) -> str:
    """Convert a showfile to a JSON string."""
    data: dict[str, Any] = {
        "line_ending": line_ending_name(showfile.line_ending),
        "headers": showfile.header_texts,
        "header_newlines": showfile.header_newlines,
        "sections": [],
    }
    for section in showfile.sections:
        data["sections"].append({
            "code": section.code,
            "kind": section.kind.value,
            "trailing_newlines": section.trailing_newlines,
            "rows": [
                {
                    "fields": [_field_to_json(f) for f in row.fields],
                    "trailing_comma": row.trailing_comma,
                    "trailing_newlines": row.trailing_newlines,
                }
                for row in section.rows
            ],
        })
    return json.dumps(data, indent=indent, ensure_ascii=False)


def _expect(obj: Any, key: str, kind: type | tuple[type, ...], where: str) -> Any:
    if not isinstance(obj, dict) or key not in obj:
        raise ValueError(f"Invalid showfile JSON: {where} is missing '{key}'")
    value = obj[key]
    # bool is an int subclass; counts and widths must be real integers
    if isinstance(value, bool) and bool not in (kind if isinstance(kind, tuple) else (kind,)):
        raise ValueError(f"Invalid showfile JSON: {where}.{key} has the wrong type")
    if not isinstance(value, kind):
        raise ValueError(f"Invalid showfile JSON: {where}.{key} has the wrong type")
    return value


def _field_from_json(obj: Any, where: str) -> Field:
    kind = _expect(obj, "type", str, where)
    if kind == "string":
        return StringValue(_expect(obj, "value", str, where))
    if kind == "hex":
        return HexValue(_expect(obj, "value", int, where), _expect(obj, "width", int, where))
    if kind == "float":
        value = _expect(obj, "value", (int, float, str), where)
        if isinstance(value, str):
            if value not in _FLOAT_NAMES:
                raise ValueError(f"Invalid showfile JSON: {where}.value {value!r} is not a float")
            return FloatValue(_FLOAT_NAMES[value])
        return FloatValue(float(value))
    raise ValueError(f"Invalid showfile JSON: {where} has unknown field type {kind!r}")


def from_json(json_str: str, codes: SectionCodeTable | None = None) -> Showfile:
    """Create a showfile from a JSON string produced by to_json().

    The section kind is re-derived from the code, so the JSON "kind" entry is
    informational only.
    """
    data = json.loads(json_str)
    if not isinstance(data, dict):
        raise ValueError("Invalid showfile JSON: expected a JSON object at top level")

    eol_name = _expect(data, "line_ending", str, "showfile")
    if eol_name not in LINE_ENDINGS:
        raise ValueError(f"Invalid showfile JSON: unknown line ending {eol_name!r}")

    headers = _expect(data, "headers", list, "showfile")
    if not all(isinstance(h, str) for h in headers):
        raise ValueError("Invalid showfile JSON: headers must be strings")

    sections = []
    for i, sec in enumerate(_expect(data, "sections", list, "showfile")):
        where = f"sections[{i}]"
        rows = []
        for j, row in enumerate(_expect(sec, "rows", list, where)):
            row_where = f"{where}.rows[{j}]"
            fields = tuple(
                _field_from_json(f, f"{row_where}.fields[{k}]")
                for k, f in enumerate(_expect(row, "fields", list, row_where))
            )
            rows.append(Row(
                fields,
                _expect(row, "trailing_comma", bool, row_where),
                _expect(row, "trailing_newlines", int, row_where),
            ))
        sections.append(Section(
            SectionIdentifier.from_code(_expect(sec, "code", str, where), codes),
            tuple(rows),
            _expect(sec, "trailing_newlines", int, where),
        ))

    return Showfile(
        tuple(Header(h) for h in headers),
        tuple(sections),
        LINE_ENDINGS[eol_name],
        _expect(data, "header_newlines", int, "showfile"),
    )


# =============================================================================
# CSV
# =============================================================================

def _escape_csv_formula(value: str) -> str:
    """Escape CSV formula injection characters (=, +, -, @, tab, CR, ;).

    Checks the first non-whitespace character so spreadsheet applications do
    not interpret cell content as formulas.
    """
    stripped = value.lstrip()
    if stripped and stripped[0] in ("=", "+", "-", "@", "\t", "\r", ";"):
        return "'" + value
    return value


def to_csv(showfile: Showfile) -> str:
    """
    Convert a showfile to CSV.
    Row format: code, kind, row index, then the fields as the console writes them.
    """
    buf = io.StringIO()
    writer = csv.writer(buf)
    width = max((len(row) for section in showfile for row in section), default=0)
    writer.writerow(["code", "kind", "row"] + [f"field{i}" for i in range(width)])

    for section in showfile.sections:
        for index, row in enumerate(section.rows):
            cells = [_escape_csv_formula(format_field(f)) for f in row.fields]
            writer.writerow([section.code, section.kind.value, index] + cells)

    return buf.getvalue()


# =============================================================================
# Dispatch
# =============================================================================

CONVERTERS_TO = {
    "json": to_json,
    "csv": to_csv,
}

CONVERTERS_FROM = {
    "json": from_json,
}


def convert_to(showfile: Showfile, fmt: str) -> str:
    """Convert a showfile to the specified format."""
    converter = CONVERTERS_TO.get(fmt.lower())
    if converter is None:
        raise ValueError(f"Unknown format: {fmt}. Supported: {list(CONVERTERS_TO.keys())}")
    return converter(showfile)


def convert_from(data: str, fmt: str) -> Showfile:
    """Create a showfile from data in the specified format."""
    converter = CONVERTERS_FROM.get(fmt.lower())
    if converter is None:
        raise ValueError(f"Unknown format: {fmt}. Supported: {list(CONVERTERS_FROM.keys())}")
    return converter(data)
