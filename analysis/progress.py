"""Fortschritts-Aggregation pro Kapitel und pro Plan.

Reported-Sitzungen sind per Definition eine Teilmenge der geplanten; der
Overlay-Balken darf daher nie breiter sein als der Planungsbalken.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from config.schema import ProgressConfig
from models.chapter import Chapter
from models.coercion import round_half_up
from models.scheme import Scheme
from models.session import LifecycleState, Session


class ProgressBand(str, Enum):
    """Reiner Darstellungshinweis, wird nicht gespeichert."""

    GOOD = "good"
    CAUTION = "caution"
    RISK = "risk"


# ─── Metriken-Modelle ─────────────────────────────────────────────────────────

class ChapterProgress(BaseModel):
    """Zahlen für ein einzelnes Kapitel.

    Ohne Sitzungsdetails ist reported unbekannt (None), nicht 0.
    """

    chapter_number: int
    total: int
    planned: int
    reported: Optional[int]
    planned_percent: int
    reported_percent: Optional[int]
    overlay_percent: Optional[int]     # min(reported_percent, planned_percent)
    band: ProgressBand


class SchemeProgress(BaseModel):
    """Zahlen für einen ganzen Plan.

    reported ist None, solange für irgendein Kapitel keine Details geladen
    sind: "noch unbekannt" ist etwas anderes als "bekannt 0".
    """

    scheme_id: str
    detail_available: bool
    total: int
    lp_planned: int
    reported: Optional[int]
    planned_percent: int
    reported_percent: Optional[int]
    overlay_percent: Optional[int]
    band: ProgressBand
    chapters: list[ChapterProgress] = []


class ProgressSummary(BaseModel):
    """Kopfzeile über eine (gefilterte) Planliste."""

    scheme_count: int
    total_sessions: int
    planned_sessions: int


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def percent(part: int, total: int) -> int:
    """round(part / total * 100), begrenzt auf [0, 100]; total=0 → 0."""
    if total <= 0:
        return 0
    return min(max(round_half_up(part / total * 100), 0), 100)


def counts_as_planned(session: Session) -> bool:
    """Geplant = Zustand weder not-planned noch cancelled.

    Abgelehnte Pläne ("rejected") sind kein eigener Zustand und werden
    bereits vom Classifier als not-planned eingestuft.
    """
    return session.state not in (LifecycleState.NOT_PLANNED, LifecycleState.CANCELLED)


def chapter_planned_count(chapter: Chapter) -> int:
    return sum(1 for s in chapter.sessions if counts_as_planned(s))


def chapter_reported_count(chapter: Chapter) -> int:
    return sum(1 for s in chapter.sessions if s.state == LifecycleState.REPORTED)


# ─── Aggregator ───────────────────────────────────────────────────────────────

class ProgressAggregator:
    """Berechnet Kapitel- und Plan-Fortschritt aus dem rekonstruierten Baum."""

    def __init__(self, config: Optional[ProgressConfig] = None) -> None:
        self.config = config or ProgressConfig()

    def band(self, value: int) -> ProgressBand:
        """≥ good → GOOD, ≥ caution → CAUTION, sonst RISK."""
        if value >= self.config.good_threshold:
            return ProgressBand.GOOD
        if value >= self.config.caution_threshold:
            return ProgressBand.CAUTION
        return ProgressBand.RISK

    def chapter_progress(self, chapter: Chapter) -> ChapterProgress:
        """Ohne Sitzungsdetails zählt das Soll (total_sessions) als Basis."""
        if chapter.sessions:
            total = len(chapter.sessions)
            planned = chapter_planned_count(chapter)
            reported = chapter_reported_count(chapter)
        else:
            total = chapter.total_sessions
            planned = chapter.planned_sessions
            reported = None
        planned_pct = percent(planned, total)
        reported_pct = None if reported is None else percent(reported, total)
        return ChapterProgress(
            chapter_number=chapter.chapter_number,
            total=total,
            planned=planned,
            reported=reported,
            planned_percent=planned_pct,
            reported_percent=reported_pct,
            overlay_percent=None if reported_pct is None else min(reported_pct, planned_pct),
            band=self.band(planned_pct),
        )

    def scheme_progress(self, scheme: Scheme) -> SchemeProgress:
        """Plan-Summen; ohne Kapiteldetails Fallback auf die groben Quell-Felder."""
        if not scheme.has_session_detail:
            planned_pct = percent(scheme.planned_sessions, scheme.total_sessions)
            return SchemeProgress(
                scheme_id=scheme.scheme_id,
                detail_available=False,
                total=scheme.total_sessions,
                lp_planned=scheme.planned_sessions,
                reported=None,
                planned_percent=planned_pct,
                reported_percent=None,
                overlay_percent=None,
                band=self.band(planned_pct),
            )

        # Summen über die Kapitelzeilen; der Fallback greift kapitelweise
        chapters = [self.chapter_progress(ch) for ch in scheme.chapters]
        total = sum(ch.total for ch in chapters)
        lp_planned = sum(ch.planned for ch in chapters)
        if any(ch.reported is None for ch in chapters):
            reported = None
        else:
            reported = sum(ch.reported for ch in chapters)
        planned_pct = percent(lp_planned, total)
        reported_pct = None if reported is None else percent(reported, total)
        return SchemeProgress(
            scheme_id=scheme.scheme_id,
            detail_available=True,
            total=total,
            lp_planned=lp_planned,
            reported=reported,
            planned_percent=planned_pct,
            reported_percent=reported_pct,
            overlay_percent=None if reported_pct is None else min(reported_pct, planned_pct),
            band=self.band(planned_pct),
            chapters=chapters,
        )

    def with_planned_counts(self, scheme: Scheme) -> Scheme:
        """Ersetzt plannedSessions jedes Kapitels mit Sitzungsdetails durch den Zählwert."""
        chapters = [
            ch.model_copy(update={"planned_sessions": chapter_planned_count(ch)})
            if ch.sessions else ch
            for ch in scheme.chapters
        ]
        return scheme.model_copy(update={"chapters": chapters})

    def summary(self, schemes: list[Scheme]) -> ProgressSummary:
        """Schemes | Total Sessions | Planned über die übergebene Liste."""
        total = 0
        planned = 0
        for scheme in schemes:
            progress = self.scheme_progress(scheme)
            total += progress.total
            planned += progress.lp_planned
        return ProgressSummary(
            scheme_count=len(schemes), total_sessions=total, planned_sessions=planned,
        )
