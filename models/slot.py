"""Kandidaten-Perioden und Prüfungstermine (Pydantic v2)."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.coercion import Flag, IsoDate, OptionalPeriod, OptionalText, Text


class ConflictKind(str, Enum):
    """Konfliktstufe eines Kandidaten-Slots mit dem Prüfungskalender."""

    NONE = "none"
    SOFT = "soft"    # Prüfung am selben Tag, andere Stunde (nur Hinweis)
    HARD = "hard"    # Prüfung in genau dieser Stunde


class CandidateSlot(BaseModel):
    """Eine mögliche Unterrichtsstunde aus der Perioden-Quelle."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True,
        extra="ignore", frozen=True,
    )

    date: IsoDate = None
    period: OptionalPeriod = None
    start_time: Text = ""
    end_time: Text = ""
    is_available: Flag = True
    is_occupied: Flag = False
    class_name: Text = Field("", alias="class")
    subject: Text = ""

    @property
    def key(self) -> tuple[Optional[str], Optional[int]]:
        return (self.date, self.period)

    def label(self) -> str:
        times = f" ({self.start_time}–{self.end_time})" if self.start_time else ""
        return f"{self.date} P{self.period}{times}"


class ExamRecord(BaseModel):
    """Ein Prüfungstermin; period=None bedeutet ganztägig/ohne Stunde."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True,
        extra="ignore", frozen=True,
    )

    date: IsoDate = None
    period: OptionalPeriod = None
    exam_type: OptionalText = None
    name: OptionalText = None
    class_name: Text = Field("", alias="class")
    subject: Text = ""

    @property
    def description(self) -> str:
        return self.name or self.exam_type or "Prüfung"


class AnnotatedSlot(BaseModel):
    """Kandidaten-Slot inklusive Konfliktbewertung."""

    model_config = ConfigDict(frozen=True)

    slot: CandidateSlot
    conflict: ConflictKind = ConflictKind.NONE
    exams: list[ExamRecord] = []

    @property
    def is_selectable(self) -> bool:
        """Auswählbar ist jeder freie Slot – auch mit Konflikt (Warnung in UI)."""
        return self.slot.is_available
