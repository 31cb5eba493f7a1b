"""
MagicQ CLI - Command-line interface for MagicQ showfiles.

Commands:
  magicq inspect  - Show headers and the section listing of a showfile
  magicq read     - Print the sections with a given code
  magicq validate - Parse a showfile and check it writes back byte for byte
  magicq convert  - Convert to JSON/CSV, or from JSON back to a showfile
  magicq identify - Quick check if a file is a showfile
  magicq view     - Browse a showfile in the terminal (TUI)
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from magicq.errors import ParseError


def _encoding(args: argparse.Namespace) -> str | None:
    return args.encoding or os.environ.get("MAGICQ_ENCODING") or None


def _read(args: argparse.Namespace):
    """Read the showfile named by args.path, exiting with a message on failure."""
    from magicq.reader import ShowfileReader

    try:
        return ShowfileReader.read(args.path, encoding=_encoding(args))
    except FileNotFoundError:
        print(f"Error: File not found: {args.path}", file=sys.stderr)
        sys.exit(1)
    except ParseError as e:
        print(f"Error: {args.path} is not a valid showfile", file=sys.stderr)
        print(e.format_trace(), file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _check_output(output: str) -> None:
    if ".." in Path(output).parts:
        print("Error: Output path must not contain '..' (path traversal)", file=sys.stderr)
        sys.exit(1)


def cmd_inspect(args: argparse.Namespace) -> None:
    """Inspect a showfile - show headers and section listing."""
    from magicq.data import SECTION_DATA
    from magicq.errors import FieldTypeError
    from magicq.spec import line_ending_name

    show = _read(args)

    print("HEADERS:")
    for text in show.header_texts:
        display = text if len(text) <= 72 else text[:69] + "..."
        print(f"  {display}")
    print()

    print(f"LINE ENDING: {line_ending_name(show.line_ending)}")
    print()

    print("SECTIONS:")
    for index, section in enumerate(show.sections):
        print(f"  {index:>4d}  {section.code:4s}  {section.kind.value:12s}  rows={len(section):>6d}")
    print()
    print(f"TOTAL: {len(show)} sections, {sum(len(s) for s in show)} rows")

    for kind, data_cls in SECTION_DATA.items():
        section = show.get_section(kind)
        if section is None:
            continue
        print()
        print(f"{kind.value.upper()}:")
        try:
            typed = data_cls.from_section(section)
        except FieldTypeError as e:
            print(f"  unreadable: {e}")
            continue
        for name, value in typed.describe():
            print(f"  {name:18s} {value}")


def cmd_read(args: argparse.Namespace) -> None:
    """Print the sections with a given code, as they appear in the file."""
    from magicq.writer import format_section

    show = _read(args)
    sections = show.get_sections(args.code)
    if not sections:
        print(f"Section '{args.code}' not found.", file=sys.stderr)
        print(f"Available: {', '.join(dict.fromkeys(show.section_codes))}", file=sys.stderr)
        sys.exit(1)
    for section in sections:
        print(format_section(section, show.line_ending), end="")


def cmd_validate(args: argparse.Namespace) -> None:
    """Validate a showfile: it must parse and write back unchanged."""
    from magicq.reader import ShowfileReader
    from magicq.writer import ShowfileWriter

    path = args.path
    if not Path(path).is_file():
        print(f"FAIL: {path} not found")
        sys.exit(1)
    if not ShowfileReader.is_showfile(path):
        print(f"FAIL: {path} is not a showfile (no header line)")
        sys.exit(1)

    encoding = _encoding(args)
    data = Path(path).read_bytes()
    try:
        show = ShowfileReader.parse_bytes(data, encoding=encoding)
    except ParseError as e:
        print(f"FAIL: parse error in {path}")
        print(e.format_trace())
        sys.exit(1)
    except ValueError as e:
        print(f"FAIL: {e}")
        sys.exit(1)

    if ShowfileWriter.to_bytes(show, encoding=encoding) != data:
        print(f"FAIL: {path} does not round-trip byte for byte")
        sys.exit(1)
    print(f"OK: {path} is a valid showfile")
    print(f"    Sections: {len(show)}, codes: {', '.join(dict.fromkeys(show.section_codes))}")


def _infer_format(filename: str) -> str | None:
    """Infer format from file extension."""
    from magicq.spec import EXTENSION

    ext_map = {".json": "json", ".csv": "csv", EXTENSION: "shw"}
    return ext_map.get(Path(filename).suffix.lower())


def cmd_convert(args: argparse.Namespace) -> None:
    """Convert to/from a showfile."""
    from magicq.converters import convert_from, convert_to
    from magicq.spec import MAX_FILE_SIZE

    known_formats = {"json", "csv"}

    # Either explicit (magicq convert to json show.shw) or inferred from -o / the input name
    if args.format_or_input in known_formats and args.input:
        fmt = args.format_or_input
        input_file = args.input
    else:
        input_file = args.format_or_input
        inferred = _infer_format(input_file)
        inferred_from_output = _infer_format(args.output) if args.output else None
        resolved = (inferred_from_output if args.direction == "to" and inferred_from_output
                    and inferred_from_output != "shw" else inferred)
        if not resolved or resolved == "shw":
            print("Error: Cannot infer format. Specify explicitly:", file=sys.stderr)
            print(f"  magicq convert {args.direction} <json|csv> {input_file}", file=sys.stderr)
            sys.exit(1)
        fmt = resolved

    if args.direction == "from":
        input_path = Path(input_file)
        if not input_path.is_file():
            print(f"Error: File not found: {input_file}", file=sys.stderr)
            sys.exit(1)
        file_size = input_path.stat().st_size
        if file_size > MAX_FILE_SIZE:
            print(f"Error: File size {file_size} exceeds maximum {MAX_FILE_SIZE} bytes", file=sys.stderr)
            sys.exit(1)
        try:
            show = convert_from(input_path.read_text(encoding="utf-8"), fmt)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        output = args.output or input_path.stem + ".shw"
        _check_output(output)
        nbytes = show.write(output, encoding=_encoding(args))
        print(f"Converted {input_file} -> {output} ({nbytes} bytes)")

    elif args.direction == "to":
        args.path = input_file
        show = _read(args)
        try:
            result = convert_to(show, fmt)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        if args.output:
            _check_output(args.output)
            Path(args.output).write_text(result, encoding="utf-8")
            print(f"Converted {input_file} -> {args.output}")
        else:
            print(result, end="")


def cmd_identify(args: argparse.Namespace) -> None:
    """Quick check if a file is a showfile."""
    from magicq.reader import ShowfileReader

    is_show = ShowfileReader.is_showfile(args.path)
    if is_show:
        print(f"{args.path}: MagicQ showfile")
    else:
        print(f"{args.path}: not a showfile")
    sys.exit(0 if is_show else 1)


def cmd_view(args: argparse.Namespace) -> None:
    """Browse a showfile in the terminal."""
    try:
        from magicq.tui.viewer import run_viewer
    except ImportError:
        print(
            "TUI viewer requires the 'textual' package.\n"
            "Install it with: pip install \"magicq[tui]\"",
            file=sys.stderr,
        )
        sys.exit(1)
    run_viewer(args.path, encoding=_encoding(args))


def _configure_logging(verbose: int) -> None:
    level_name = os.environ.get("MAGICQ_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    if verbose:
        level = logging.DEBUG if verbose > 1 else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    from magicq import __version__

    parser = argparse.ArgumentParser(
        prog="magicq",
        description="MagicQ - lossless reader and writer for MagicQ lighting console showfiles.",
    )
    parser.add_argument("--version", action="version", version=f"magicq {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    parser.add_argument("--encoding", help="Text encoding of showfiles (default: latin-1, or MAGICQ_ENCODING)")
    sub = parser.add_subparsers(dest="command")

    # inspect
    p_inspect = sub.add_parser("inspect", help="Inspect a showfile")
    p_inspect.add_argument("path", help="Path to showfile")

    # read
    p_read = sub.add_parser("read", help="Print the sections with a given code")
    p_read.add_argument("path", help="Path to showfile")
    p_read.add_argument("code", help="Section code, e.g. V or L")

    # validate
    p_validate = sub.add_parser("validate", help="Validate a showfile (parse + byte round-trip)")
    p_validate.add_argument("path", help="Path to showfile")

    # convert
    p_convert = sub.add_parser("convert", help="Convert to/from a showfile")
    p_convert.add_argument("direction", choices=["to", "from"], help="Conversion direction")
    p_convert.add_argument("format_or_input", help="Format (json, csv) or input file")
    p_convert.add_argument("input", nargs="?", default=None, help="Input file path")
    p_convert.add_argument("-o", "--output", help="Output file path")

    # identify
    p_identify = sub.add_parser("identify", help="Quick check if a file is a showfile")
    p_identify.add_argument("path", help="Path to file")

    # view
    p_view = sub.add_parser("view", help="Browse a showfile in the terminal")
    p_view.add_argument("path", help="Path to showfile")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.command:
        print("MagicQ - lossless showfile codec\n")
        print("Usage:")
        print("  magicq inspect show.shw")
        print("  magicq read show.shw V")
        print("  magicq validate show.shw")
        print("  magicq convert to json show.shw -o show.json")
        print("  magicq convert from json show.json -o show.shw")
        print("  magicq identify show.shw")
        print("  magicq view show.shw")
        print()
        print("Run 'magicq <command> --help' for details on any command.")
        sys.exit(0)

    commands = {
        "inspect": cmd_inspect,
        "read": cmd_read,
        "validate": cmd_validate,
        "convert": cmd_convert,
        "identify": cmd_identify,
        "view": cmd_view,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
