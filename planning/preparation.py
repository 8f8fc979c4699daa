"""Entwürfe für Einzel- und Sammelplanung.

Ein Entwurf hält alles, was zwischen Öffnen und Einreichen gesammelt wird:
annotierte Kandidaten-Stunden, Auswahl und Freitext-Felder. Entwürfe
ändern nie den Scheme-Baum; erst ein erfolgreiches Einreichen führt zu
einem Neuladen.
"""

from dataclasses import dataclass, field
from typing import Optional

from models.chapter import Chapter
from models.plan import (
    BulkPlanPayload, BulkSessionPayload, LessonPlanFields, SinglePlanPayload,
)
from models.scheme import PlanningDateRange, Scheme
from models.session import Session
from models.slot import AnnotatedSlot, CandidateSlot, ConflictKind
from planning.date_window import submission_blocked_reason
from planning.errors import PlanValidationError


@dataclass
class AvailabilityCounts:
    total: int
    available: int
    occupied: int


def count_availability(slots: list[AnnotatedSlot]) -> AvailabilityCounts:
    return AvailabilityCounts(
        total=len(slots),
        available=sum(1 for a in slots if a.slot.is_available),
        occupied=sum(1 for a in slots if a.slot.is_occupied),
    )


def chronological(slots: list[AnnotatedSlot]) -> list[AnnotatedSlot]:
    return sorted(slots, key=lambda a: (a.slot.date or "", a.slot.period or 0))


def _check_submission_day(planning_range: PlanningDateRange) -> None:
    reason = submission_blocked_reason(planning_range)
    if reason:
        raise PlanValidationError(reason)


# ─── Einzelplanung ────────────────────────────────────────────────────────────

@dataclass
class SinglePreparation:
    """Entwurf für genau eine nicht geplante Sitzung."""

    scheme: Scheme
    chapter: Chapter
    session: Session
    slots: list[AnnotatedSlot]
    fields: LessonPlanFields = field(default_factory=LessonPlanFields)
    selected: Optional[AnnotatedSlot] = None
    advisory: Optional[str] = None
    submitting: bool = False
    request_token: int = 0

    @property
    def is_extended(self) -> bool:
        return self.chapter.is_extended(self.session)

    @property
    def counts(self) -> AvailabilityCounts:
        return count_availability(self.slots)

    @property
    def selectable_slots(self) -> list[AnnotatedSlot]:
        return [a for a in self.slots if a.is_selectable]

    def select(self, date: str, period: int) -> AnnotatedSlot:
        """Wählt eine freie Stunde; Konflikte sind erlaubt, aber markiert."""
        match = next(
            (a for a in self.slots if a.slot.date == date and a.slot.period == period),
            None,
        )
        if match is None:
            raise PlanValidationError(f"Stunde {date} P{period} ist keine Kandidaten-Stunde.")
        if not match.is_selectable:
            raise PlanValidationError(f"Stunde {date} P{period} ist bereits belegt.")
        self.selected = match
        return match

    def validate(self, planning_range: PlanningDateRange) -> None:
        """Einreichen erfordert Datum + Stunde und einen erlaubten Tag."""
        if self.selected is None or self.selected.slot.date is None \
                or self.selected.slot.period is None:
            raise PlanValidationError(
                "Bitte eine Stunde auswählen.", missing=["selectedDate", "selectedPeriod"],
            )
        _check_submission_day(planning_range)

    def to_payload(self, teacher_email: str, teacher_name: str) -> SinglePlanPayload:
        if self.selected is None:
            raise PlanValidationError(
                "Bitte eine Stunde auswählen.", missing=["selectedDate", "selectedPeriod"],
            )
        return SinglePlanPayload(
            scheme_id=self.scheme.scheme_id,
            chapter=self.chapter.chapter_name or str(self.chapter.chapter_number),
            session=self.session.session_number,
            teacher_email=teacher_email,
            teacher_name=teacher_name,
            selected_date=self.selected.slot.date,
            selected_period=self.selected.slot.period,
            **self.fields.model_dump(),
        )


# ─── Sammelplanung ────────────────────────────────────────────────────────────

@dataclass
class BulkEntry:
    session_number: int
    session_name: str
    assigned: AnnotatedSlot
    fields: LessonPlanFields = field(default_factory=LessonPlanFields)
    is_extended: bool = False


@dataclass
class BulkPreparation:
    """Schrittweiser Entwurf für N Sitzungen eines Kapitels (alles oder nichts)."""

    scheme: Scheme
    chapter: Chapter
    entries: list[BulkEntry]
    extended: bool = False
    current: int = 0
    advisory: Optional[str] = None
    submitting: bool = False
    request_token: int = 0

    @property
    def size(self) -> int:
        return len(self.entries)

    @property
    def current_entry(self) -> BulkEntry:
        return self.entries[self.current]

    @property
    def is_last(self) -> bool:
        return self.current >= self.size - 1

    @property
    def conflicts(self) -> list[BulkEntry]:
        """Zugewiesene Stunden mit Prüfung am selben Tag (nur Hinweis)."""
        return [e for e in self.entries if e.assigned.conflict != ConflictKind.NONE]

    def set_fields(self, **values: str) -> None:
        entry = self.current_entry
        entry.fields = entry.fields.model_copy(update=values)

    def apply_to_all(self, fields: LessonPlanFields) -> None:
        for entry in self.entries:
            entry.fields = fields.model_copy()

    def next(self) -> BulkEntry:
        """Weiter zur nächsten Sitzung; Lernziele und Methoden sind Pflicht."""
        missing = self.current_entry.fields.missing_required()
        if missing:
            raise PlanValidationError(
                f"Sitzung {self.current_entry.session_number}: Pflichtfelder fehlen.",
                missing=missing,
            )
        if not self.is_last:
            self.current += 1
        return self.current_entry

    def previous(self) -> BulkEntry:
        if self.current > 0:
            self.current -= 1
        return self.current_entry

    def validate(self, planning_range: PlanningDateRange) -> None:
        for entry in self.entries:
            missing = entry.fields.missing_required()
            if missing:
                raise PlanValidationError(
                    f"Sitzung {entry.session_number}: Pflichtfelder fehlen.",
                    missing=missing,
                )
        _check_submission_day(planning_range)

    def to_payload(self, teacher_email: str, teacher_name: str) -> BulkPlanPayload:
        return BulkPlanPayload(
            scheme_id=self.scheme.scheme_id,
            chapter=self.chapter.chapter_name or str(self.chapter.chapter_number),
            chapter_number=self.chapter.chapter_number,
            teacher_email=teacher_email,
            teacher_name=teacher_name,
            sessions=[
                BulkSessionPayload(
                    session_number=e.session_number,
                    session_name=e.session_name,
                    selected_date=e.assigned.slot.date,
                    selected_period=e.assigned.slot.period,
                    is_extended=e.is_extended,
                    **e.fields.model_dump(),
                )
                for e in self.entries
            ],
        )


def assign_slots(slots: list[AnnotatedSlot], count: int) -> list[AnnotatedSlot]:
    """Die ersten `count` freien Stunden ohne harten Konflikt, chronologisch."""
    usable = [
        a for a in chronological(slots)
        if a.is_selectable and a.conflict != ConflictKind.HARD
    ]
    if len(usable) < count:
        raise PlanValidationError(
            f"Nur {len(usable)} freie Stunde(n) im Planungsfenster, "
            f"benötigt werden {count}."
        )
    return usable[:count]
