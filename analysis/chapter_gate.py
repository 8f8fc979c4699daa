"""Kapitel-Gate: Darf ein Kapitel vorbereitet werden, und welches Abschluss-Badge gilt?

Regel: Kapitel N (N > 1) ist nur vorbereitbar, wenn Kapitel N−1 vollständig
berichtet ist. Liefert die Quelle canPrepare/lockReason selbst, sind diese
Werte maßgeblich; die lokale Regel dient dann nur als Gegenprobe
(Abweichungen werden protokolliert, aber nie lokal überschrieben).
"""

import logging
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel

from models.chapter import Chapter
from models.scheme import Scheme

logger = logging.getLogger(__name__)


class ChapterBadge(str, Enum):
    """Drei sich ausschließende Abschluss-Badges (plus 'keins')."""

    NONE = "none"
    CHAPTER_COMPLETE = "chapter-complete"            # explizit abgeschlossen
    CHAPTER_COMPLETED = "chapter-completed"          # abgeleitet: Folgekapitel bereits frei
    ALL_SESSIONS_REPORTED = "all-sessions-reported"  # Aufforderung zum Abschließen


BADGE_LABELS: dict[ChapterBadge, str] = {
    ChapterBadge.NONE: "",
    ChapterBadge.CHAPTER_COMPLETE: "Chapter Complete",
    ChapterBadge.CHAPTER_COMPLETED: "Chapter Completed",
    ChapterBadge.ALL_SESSIONS_REPORTED: "All sessions reported",
}


class GateDisagreement(BaseModel):
    """Quelle und lokale Regel widersprechen sich (nur Diagnose)."""

    scheme_id: str
    chapter_number: int
    upstream: bool
    local: bool
    description: str


class ChapterGate(BaseModel):
    """Gate-Ergebnis für ein Kapitel."""

    chapter_number: int
    can_prepare: bool                    # wirksamer Wert (Quelle vor lokal)
    lock_reason: Optional[str] = None
    source: Literal["upstream", "local"]
    local_can_prepare: bool
    fully_reported: bool
    badge: ChapterBadge = ChapterBadge.NONE
    # "Prepare All" (Sammelplanung), nur solange noch nichts geplant ist
    prepare_all_count: Optional[int] = None
    # "Add Extended Session": Zielnummer der nächsten erweiterten Sitzung
    extended_session_number: Optional[int] = None

    @property
    def badge_label(self) -> str:
        return BADGE_LABELS[self.badge]


class SchemeGateReport(BaseModel):
    """Gate-Ergebnisse aller Kapitel eines Plans."""

    scheme_id: str
    gates: list[ChapterGate]
    disagreements: list[GateDisagreement] = []

    @property
    def is_consistent(self) -> bool:
        return not self.disagreements

    def get(self, chapter_number: int) -> Optional[ChapterGate]:
        return next((g for g in self.gates if g.chapter_number == chapter_number), None)

    def print_rich(self) -> None:
        """Gibt die Gates formatiert über Rich aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title=f"Kapitel-Gates {self.scheme_id}", box=box.ROUNDED)
        table.add_column("Kap.", justify="right")
        table.add_column("Vorbereitbar")
        table.add_column("Quelle")
        table.add_column("Badge")
        table.add_column("Sperrgrund")
        for g in self.gates:
            ok = "[green]ja[/green]" if g.can_prepare else "[red]nein[/red]"
            table.add_row(
                str(g.chapter_number), ok, g.source, g.badge_label, g.lock_reason or "",
            )
        console.print(table)
        for d in self.disagreements:
            console.print(f"[yellow]• {d.description}[/yellow]")


def local_lock_reason(previous: Chapter) -> str:
    name = f" ({previous.chapter_name})" if previous.chapter_name else ""
    return (
        f"Kapitel {previous.chapter_number}{name} ist noch nicht vollständig berichtet."
    )


class ChapterGateEvaluator:
    """Wertet Gate-Regel und Badges für einen klassifizierten Plan aus."""

    def local_can_prepare(self, chapters: list[Chapter]) -> dict[int, bool]:
        """Lokale Regel: erstes Kapitel immer, danach nur nach vollständigem Bericht."""
        ordered = sorted(chapters, key=lambda c: c.chapter_number)
        result: dict[int, bool] = {}
        previous: Optional[Chapter] = None
        for ch in ordered:
            result[ch.chapter_number] = previous is None or previous.is_fully_reported
            previous = ch
        return result

    def badge(self, chapter: Chapter, next_can_prepare: Optional[bool]) -> ChapterBadge:
        """Badge in Prioritätsreihenfolge: explizit > abgeleitet > Aufforderung."""
        if chapter.chapter_completed:
            return ChapterBadge.CHAPTER_COMPLETE
        if not chapter.is_fully_reported:
            return ChapterBadge.NONE
        if next_can_prepare:
            return ChapterBadge.CHAPTER_COMPLETED
        return ChapterBadge.ALL_SESSIONS_REPORTED

    def evaluate(self, scheme: Scheme) -> SchemeGateReport:
        """Berechnet alle Gates; Abweichungen Quelle ↔ lokal landen im Report."""
        ordered = sorted(scheme.chapters, key=lambda c: c.chapter_number)
        local = self.local_can_prepare(ordered)

        effective: dict[int, bool] = {}
        reasons: dict[int, Optional[str]] = {}
        sources: dict[int, Literal["upstream", "local"]] = {}
        disagreements: list[GateDisagreement] = []

        for idx, ch in enumerate(ordered):
            local_value = local[ch.chapter_number]
            if ch.can_prepare is not None:
                effective[ch.chapter_number] = ch.can_prepare
                reasons[ch.chapter_number] = ch.lock_reason
                sources[ch.chapter_number] = "upstream"
                if ch.can_prepare != local_value:
                    description = (
                        f"Plan {scheme.scheme_id}, Kapitel {ch.chapter_number}: "
                        f"Quelle canPrepare={ch.can_prepare}, lokale Regel={local_value}"
                    )
                    logger.warning(description)
                    disagreements.append(GateDisagreement(
                        scheme_id=scheme.scheme_id,
                        chapter_number=ch.chapter_number,
                        upstream=ch.can_prepare,
                        local=local_value,
                        description=description,
                    ))
            else:
                effective[ch.chapter_number] = local_value
                reasons[ch.chapter_number] = (
                    None if local_value else local_lock_reason(ordered[idx - 1])
                )
                sources[ch.chapter_number] = "local"

        gates: list[ChapterGate] = []
        for idx, ch in enumerate(ordered):
            nxt = ordered[idx + 1] if idx + 1 < len(ordered) else None
            badge = self.badge(ch, effective[nxt.chapter_number] if nxt else None)
            fully = ch.is_fully_reported

            prepare_all = None
            if ch.planned_sessions == 0 and ch.total_sessions > 0:
                prepare_all = ch.total_sessions

            extended_number = None
            if fully and not ch.chapter_completed:
                extended_number = ch.planned_sessions + 1

            gates.append(ChapterGate(
                chapter_number=ch.chapter_number,
                can_prepare=effective[ch.chapter_number],
                lock_reason=None if effective[ch.chapter_number] else reasons[ch.chapter_number],
                source=sources[ch.chapter_number],
                local_can_prepare=local[ch.chapter_number],
                fully_reported=fully,
                badge=badge,
                prepare_all_count=prepare_all,
                extended_session_number=extended_number,
            ))

        return SchemeGateReport(
            scheme_id=scheme.scheme_id, gates=gates, disagreements=disagreements,
        )

