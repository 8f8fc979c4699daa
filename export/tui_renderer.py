"""Gemeinsamer Renderer für die Terminal-Anzeige des Planungsbaums.

Liefert reine Tabellenzeilen (Listen von Strings mit Rich-Markup); das
Zusammensetzen zu Tabellen übernimmt main.py.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from analysis.chapter_gate import SchemeGateReport
    from analysis.progress import ProgressBand, SchemeProgress
    from models.chapter import Chapter
    from models.slot import AnnotatedSlot


BAND_STYLES = {
    "good": "green",
    "caution": "yellow",
    "risk": "red",
}

STATE_SYMBOLS = {
    "not-planned": "○",
    "planned": "◐",
    "ready": "●",
    "cascaded": "↻",
    "reported": "✓",
    "cancelled": "✗",
}


def progress_bar(planned_percent: int, overlay_percent: int | None,
                 band: "ProgressBand", width: int = 20) -> str:
    """Balken: '█' = berichtet (Overlay), '▓' = nur geplant, '░' = offen."""
    planned = round(width * planned_percent / 100)
    reported = round(width * (overlay_percent or 0) / 100)
    reported = min(reported, planned)
    style = BAND_STYLES[band.value]
    bar = "█" * reported + "▓" * (planned - reported) + "░" * (width - planned)
    return f"[{style}]{bar}[/{style}] {planned_percent:3d}%"


def render_scheme_rows(
    progress: "SchemeProgress",
    class_name: str,
    subject: str,
    gates: "SchemeGateReport",
) -> list[list[str]]:
    """Eine Kopfzeile für den Plan, danach eine Zeile pro Kapitel.

    Jede Zeile: [Bezeichnung, Sitzungen, Fortschritt, Status]
    """
    reported = "?" if progress.reported is None else str(progress.reported)
    rows: list[list[str]] = [[
        f"[bold]{progress.scheme_id}[/bold] {class_name} · {subject}",
        f"{progress.lp_planned}/{progress.total} (✓ {reported})",
        progress_bar(progress.planned_percent, progress.overlay_percent, progress.band),
        "" if progress.detail_available else "[dim]ohne Details[/dim]",
    ]]

    for chapter in progress.chapters:
        gate = gates.get(chapter.chapter_number)
        status = ""
        if gate is not None:
            if not gate.can_prepare:
                status = f"[red]🔒 {gate.lock_reason or 'gesperrt'}[/red]"
            elif gate.badge_label:
                status = f"[green]{gate.badge_label}[/green]"
            if gate.prepare_all_count:
                status += f" [cyan]Prepare All ({gate.prepare_all_count})[/cyan]"
            if gate.extended_session_number:
                status += (
                    f" [cyan]Add Extended Session "
                    f"#{gate.extended_session_number}[/cyan]"
                )
        chapter_reported = "?" if chapter.reported is None else str(chapter.reported)
        rows.append([
            f"  Kap. {chapter.chapter_number}",
            f"{chapter.planned}/{chapter.total} (✓ {chapter_reported})",
            progress_bar(chapter.planned_percent, chapter.overlay_percent, chapter.band),
            status.strip(),
        ])

    return rows


def render_session_line(chapter: "Chapter") -> str:
    """Kompakte Sitzungszeile, z.B. '1✓ 2✓ 3↻✓ 4○'.

    Verschobene Sitzungen tragen '↻' zusätzlich zum Zustandssymbol.
    """
    parts = []
    for session in chapter.sessions:
        state = session.state.value
        symbol = STATE_SYMBOLS.get(state, "?")
        cascaded = session.lifecycle is not None and session.lifecycle.cascaded
        if cascaded and state != "cascaded":
            symbol = "↻" + symbol
        extended = "+" if chapter.is_extended(session) else ""
        parts.append(f"{extended}{session.session_number}{symbol}")
    return " ".join(parts)


def render_slot_rows(slots: list["AnnotatedSlot"]) -> list[list[str]]:
    """Zeilen für die Kandidaten-Stunden: [Datum, Stunde, Zeit, Status, Konflikt]."""
    rows: list[list[str]] = []
    for a in slots:
        slot = a.slot
        if not slot.is_available:
            status = "[dim]belegt[/dim]"
        else:
            status = "[green]frei[/green]"
        if a.conflict.value == "hard":
            conflict = "[red]Prüfung in dieser Stunde[/red]"
        elif a.conflict.value == "soft":
            conflict = "[yellow]Prüfung am selben Tag[/yellow]"
        else:
            conflict = ""
        if a.exams:
            conflict += " (" + ", ".join(e.description for e in a.exams) + ")"
        times = f"{slot.start_time}–{slot.end_time}" if slot.start_time else ""
        rows.append([slot.date or "", str(slot.period or ""), times, status, conflict])
    return rows
