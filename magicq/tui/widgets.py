"""MagicQ TUI Widgets - Custom panels for the showfile viewer."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.message import Message
from textual.widgets import DataTable, Label, ListItem, ListView, Static

from magicq.document import Field, FloatValue, HexValue, Section, Showfile
from magicq.spec import line_ending_name
from magicq.writer import format_field


class MetadataPanel(Static):
    """Sidebar panel showing headers, line ending and round-trip status."""

    DEFAULT_CSS = """
    MetadataPanel {
        width: 32;
        border: solid $accent;
        padding: 1;
        overflow-y: auto;
    }
    MetadataPanel .meta-title {
        text-style: bold;
        color: $text;
        margin-bottom: 1;
    }
    MetadataPanel .meta-key {
        color: $text-muted;
    }
    MetadataPanel .meta-val {
        color: $text;
    }
    MetadataPanel .roundtrip-exact {
        color: $success;
        text-style: bold;
    }
    MetadataPanel .roundtrip-differs {
        color: $error;
        text-style: bold;
    }
    """

    def __init__(self, showfile: Showfile, roundtrip_exact: bool, **kwargs) -> None:
        super().__init__(**kwargs)
        self._showfile = showfile
        self._roundtrip_exact = roundtrip_exact

    def compose(self) -> ComposeResult:
        show = self._showfile
        yield Label("MagicQ showfile", classes="meta-title")

        if self._roundtrip_exact:
            yield Label("Round-trip: EXACT", classes="roundtrip-exact")
        else:
            yield Label("Round-trip: DIFFERS", classes="roundtrip-differs")

        yield Label("")  # spacer

        yield Label("headers:", classes="meta-key")
        for text in show.header_texts:
            display = text if len(text) <= 26 else text[:23] + "..."
            yield Label(f"  {display}", classes="meta-val")
        yield Label("line ending:", classes="meta-key")
        yield Label(f"  {line_ending_name(show.line_ending)}", classes="meta-val")
        yield Label("sections:", classes="meta-key")
        yield Label(f"  {len(show)}", classes="meta-val")
        yield Label("rows:", classes="meta-key")
        yield Label(f"  {sum(len(s) for s in show)}", classes="meta-val")


class SectionList(ListView):
    """List of sections in the showfile. Supports keyboard navigation."""

    DEFAULT_CSS = """
    SectionList {
        width: 24;
        border: solid $accent;
    }
    SectionList > ListItem {
        padding: 0 1;
    }
    SectionList > ListItem.--highlight {
        background: $accent;
    }
    """

    class SectionSelected(Message):
        """Fired when a section is selected."""

        def __init__(self, section_index: int) -> None:
            self.section_index = section_index
            super().__init__()

    def __init__(self, entries: list[tuple[int, str]], **kwargs) -> None:
        # (index into Showfile.sections, label)
        self._entries = entries
        super().__init__(**kwargs)

    @property
    def section_indices(self) -> list[int]:
        return [index for index, _ in self._entries]

    def compose(self) -> ComposeResult:
        for _, label in self._entries:
            yield ListItem(Label(label))

    def _post_selected(self) -> None:
        idx = self.index or 0
        if 0 <= idx < len(self._entries):
            self.post_message(self.SectionSelected(self._entries[idx][0]))

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        self._post_selected()

    def on_list_view_highlighted(self, event: ListView.Highlighted) -> None:
        self._post_selected()


def _cell(value: Field) -> Text:
    """Field text coloured by variant."""
    if isinstance(value, HexValue):
        style = "cyan"
    elif isinstance(value, FloatValue):
        style = "bold red" if value.is_nan else "magenta"
    else:
        style = "green"
    return Text(format_field(value), style=style)


class RowTable(DataTable):
    """Rows of the selected section, one column per field."""

    DEFAULT_CSS = """
    RowTable {
        border: solid $accent;
        height: 1fr;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(zebra_stripes=True, cursor_type="row", **kwargs)
        self.current_title = ""

    def show_section(self, title: str, section: Section) -> None:
        """Replace the table contents with the rows of ``section``."""
        self.current_title = title
        self.border_title = title
        self.clear(columns=True)
        width = max(len(row) for row in section)
        self.add_columns("#", *(str(i) for i in range(width)))
        for index, row in enumerate(section):
            cells = [_cell(f) for f in row]
            cells += [Text("")] * (width - len(cells))
            self.add_row(str(index), *cells)
        self.scroll_home(animate=False)
