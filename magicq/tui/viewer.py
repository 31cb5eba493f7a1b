"""MagicQ TUI Viewer - Main Textual app with 3-panel layout."""

from __future__ import annotations

import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header, Input

from magicq.document import Section, Showfile
from magicq.errors import ParseError
from magicq.reader import ShowfileReader
from magicq.tui.widgets import MetadataPanel, RowTable, SectionList
from magicq.writer import format_field


def _label(index: int, section: Section) -> str:
    return f"{index:>3d} {section.code} {section.identifier}"


class ShowfileViewerApp(App):
    """TUI viewer for showfiles. 3-panel layout with keyboard navigation."""

    TITLE = "MagicQ Viewer"
    CSS = """
    Screen {
        layout: vertical;
    }
    #main-area {
        height: 1fr;
    }
    #search-bar {
        dock: bottom;
        display: none;
        height: 3;
        padding: 0 1;
    }
    #search-bar.visible {
        display: block;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("slash", "toggle_search", "Search", show=True),
        Binding("escape", "close_search", "Close search", show=False),
        Binding("j", "next_section", "Next", show=True),
        Binding("k", "prev_section", "Prev", show=True),
    ]

    def __init__(self, path: str | Path, encoding: str | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._path = Path(path)
        self._encoding = encoding
        self._showfile: Showfile | None = None
        self._all_entries: list[tuple[int, str]] = []

    @property
    def showfile(self) -> Showfile | None:
        return self._showfile

    def compose(self) -> ComposeResult:
        data = self._path.read_bytes()
        show = ShowfileReader.parse_bytes(data, encoding=self._encoding)
        self._showfile = show
        self._all_entries = [(i, _label(i, s)) for i, s in enumerate(show.sections)]

        self.title = f"MagicQ Viewer - {self._path.name}"

        yield Header()

        with Horizontal(id="main-area"):
            yield MetadataPanel(
                showfile=show,
                roundtrip_exact=show.to_bytes(self._encoding) == data,
                id="metadata",
            )
            yield SectionList(entries=self._all_entries, id="sections")
            yield RowTable(id="rows")

        yield Input(placeholder="Search sections... (Escape to close)", id="search-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Auto-select first section on mount."""
        if self._all_entries:
            self._show(self._all_entries[0][0])
            self.query_one("#sections", SectionList).focus()

    def _show(self, index: int) -> None:
        if self._showfile is None:
            return
        section = self._showfile.sections[index]
        self.query_one("#rows", RowTable).show_section(_label(index, section), section)

    def on_section_list_section_selected(self, event: SectionList.SectionSelected) -> None:
        """Handle section selection from the list."""
        self._show(event.section_index)

    def action_next_section(self) -> None:
        self.query_one("#sections", SectionList).action_cursor_down()

    def action_prev_section(self) -> None:
        self.query_one("#sections", SectionList).action_cursor_up()

    async def action_toggle_search(self) -> None:
        """Show/hide the search bar."""
        search = self.query_one("#search-bar", Input)
        search.toggle_class("visible")
        if search.has_class("visible"):
            search.focus()
        else:
            search.value = ""
            await self._restore_sections()
            self.query_one("#sections", SectionList).focus()

    async def action_close_search(self) -> None:
        search = self.query_one("#search-bar", Input)
        search.remove_class("visible")
        search.value = ""
        await self._restore_sections()
        self.query_one("#sections", SectionList).focus()

    def filter_sections(self, query: str, search_fields: bool = False) -> list[tuple[int, str]]:
        """Entries whose code or kind (and optionally any field) contains ``query``."""
        query = query.lower().strip()
        if not query or self._showfile is None:
            return list(self._all_entries)
        matches = []
        for index, label in self._all_entries:
            if query in label.lower():
                matches.append((index, label))
                continue
            if search_fields:
                section = self._showfile.sections[index]
                if any(query in format_field(f).lower() for row in section for f in row):
                    matches.append((index, label))
        return matches

    async def on_input_changed(self, event: Input.Changed) -> None:
        """Filter sections by code/kind as the user types."""
        if event.input.id != "search-bar":
            return
        await self._update_section_list(self.filter_sections(event.value))

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Search submission also looks inside field values."""
        if event.input.id != "search-bar":
            return
        await self._update_section_list(self.filter_sections(event.value, search_fields=True))

    async def _update_section_list(self, entries: list[tuple[int, str]]) -> None:
        old = self.query_one("#sections", SectionList)
        new_list = SectionList(entries=entries, id="sections")
        await old.remove()
        await self.query_one("#main-area", Horizontal).mount(new_list, before="#rows")
        if entries:
            self._show(entries[0][0])

    async def _restore_sections(self) -> None:
        await self._update_section_list(self._all_entries)


def run_viewer(path: str | Path, encoding: str | None = None) -> None:
    """Launch the showfile TUI viewer."""
    path = Path(path)
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    if not ShowfileReader.is_showfile(path):
        print(f"Error: Not a showfile: {path}", file=sys.stderr)
        sys.exit(1)
    try:
        ShowfileReader.read(path, encoding=encoding)
    except ParseError as e:
        print(e.format_trace(), file=sys.stderr)
        sys.exit(1)

    app = ShowfileViewerApp(path, encoding=encoding)
    app.run()
