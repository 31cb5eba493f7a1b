"""MagicQ TUI - Terminal viewer for showfiles (requires textual)."""
