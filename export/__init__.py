"""Export-Modul: Zeilen-Renderer für die Terminal-Anzeige."""

from export.tui_renderer import (
    progress_bar,
    render_scheme_rows,
    render_session_line,
    render_slot_rows,
)

__all__ = [
    "progress_bar",
    "render_scheme_rows",
    "render_session_line",
    "render_slot_rows",
]
