"""Stoffverteilungsplan (Scheme) und der vollständig rekonstruierte Baum."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.chapter import Chapter
from models.coercion import Count, Flag, IsoDate, OptionalText, Percent, Text


class PlanningDateRange(BaseModel):
    """Aktives Planungsfenster laut Quelle (oder lokaler Fallback)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore",
    )

    start_date: IsoDate = None
    end_date: IsoDate = None
    # False = Einreichen nur am preparation_day erlaubt (Auswahl bleibt möglich)
    can_submit: Flag = True
    preparation_day: OptionalText = None
    deferred_days: Count = 0
    days_ahead: Count = 0
    is_fallback: bool = False


class Scheme(BaseModel):
    """Ein Plan für Klasse + Fach + Halbjahr + Schuljahr."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True,
        extra="ignore", frozen=True,
    )

    scheme_id: Text = ""
    class_name: Text = Field("", alias="class")
    subject: Text = ""
    academic_year: Text = ""
    term: Text = ""
    chapters: list[Chapter] = []
    # Grobe Summen der Quelle, Fallback solange Kapiteldetails fehlen
    total_sessions: Count = 0
    planned_sessions: Count = 0
    overall_progress: Percent = 0

    @property
    def has_session_detail(self) -> bool:
        """True, sobald mindestens ein Kapitel Sitzungsdetails enthält."""
        return any(ch.sessions for ch in self.chapters)

    def get_chapter(self, chapter_number: int) -> Optional[Chapter]:
        return next(
            (c for c in self.chapters if c.chapter_number == chapter_number), None
        )

    def next_chapter(self, chapter: Chapter) -> Optional[Chapter]:
        """Nachfolger in der Kapitelreihenfolge (None beim letzten Kapitel)."""
        ordered = sorted(self.chapters, key=lambda c: c.chapter_number)
        for idx, ch in enumerate(ordered):
            if ch.chapter_number == chapter.chapter_number:
                return ordered[idx + 1] if idx + 1 < len(ordered) else None
        return None


class SchemeTree(BaseModel):
    """Ergebnis eines Ladezyklus: wird komplett ersetzt, nie in-place geändert."""

    model_config = ConfigDict(frozen=True)

    schemes: list[Scheme]
    planning_range: PlanningDateRange
    bulk_only: bool = False
    generation: int = 0    # fortlaufende Nummer des Ladevorgangs

    def get_scheme(self, scheme_id: str) -> Optional[Scheme]:
        return next((s for s in self.schemes if s.scheme_id == scheme_id), None)

    def class_names(self) -> list[str]:
        """Sortierte Liste der vorkommenden Klassen (für den Klassenfilter)."""
        return sorted({s.class_name for s in self.schemes})

    def filter_by_class(self, class_name: Optional[str]) -> list[Scheme]:
        """Klassenfilter; None oder "all" liefert alle Pläne."""
        if not class_name or class_name == "all":
            return list(self.schemes)
        return [s for s in self.schemes if s.class_name == class_name]
