"""Prüfungskonflikte für Kandidaten-Perioden.

Der Index gilt immer nur für genau eine Klasse + Fach. Zwei Nachschlage-
Strukturen:
  - nach Datum (irgendeine Prüfung an diesem Tag)     → weicher Konflikt
  - nach (Datum, Stunde) (Prüfung genau in der Stunde) → harter Konflikt
Hart hat Vorrang; ein Slot ist nie gleichzeitig hart und weich.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from models.slot import AnnotatedSlot, CandidateSlot, ConflictKind, ExamRecord

logger = logging.getLogger(__name__)


def _norm(value: str) -> str:
    return " ".join(value.split()).lower()


class ExamConflictIndex:
    """Nachschlage-Index über die Prüfungen einer Klasse in einem Fach."""

    def __init__(self, class_name: str, subject: str,
                 exams: Iterable[ExamRecord]) -> None:
        self.class_name = class_name
        self.subject = subject
        self.by_date: dict[str, list[ExamRecord]] = defaultdict(list)
        self.by_date_period: dict[tuple[str, int], list[ExamRecord]] = defaultdict(list)

        for exam in exams:
            if not self.matches_scope(exam) or exam.date is None:
                continue
            self.by_date[exam.date].append(exam)
            if exam.period is not None:
                self.by_date_period[(exam.date, exam.period)].append(exam)

    @property
    def scope(self) -> tuple[str, str]:
        return (_norm(self.class_name), _norm(self.subject))

    def matches_scope(self, exam: ExamRecord) -> bool:
        """Klasse und Fach ohne Beachtung von Groß-/Kleinschreibung vergleichen."""
        return (_norm(exam.class_name), _norm(exam.subject)) == self.scope

    def __len__(self) -> int:
        return sum(len(v) for v in self.by_date.values())

    def check(self, date: Optional[str], period: Optional[int]) -> ConflictKind:
        if date is None:
            return ConflictKind.NONE
        if period is not None and (date, period) in self.by_date_period:
            return ConflictKind.HARD
        if date in self.by_date:
            return ConflictKind.SOFT
        return ConflictKind.NONE

    def exams_for(self, date: Optional[str], period: Optional[int]) -> list[ExamRecord]:
        """Prüfungen, die den Konflikt auslösen (hart: nur die der Stunde)."""
        kind = self.check(date, period)
        if kind == ConflictKind.HARD:
            return list(self.by_date_period[(date, period)])
        if kind == ConflictKind.SOFT:
            return list(self.by_date[date])
        return []

    def annotate(self, slots: Iterable[CandidateSlot]) -> list[AnnotatedSlot]:
        return [
            AnnotatedSlot(
                slot=slot,
                conflict=self.check(slot.date, slot.period),
                exams=self.exams_for(slot.date, slot.period),
            )
            for slot in slots
        ]


class ExamConflictCache:
    """Hält den Index der aktuellen Auswahl und baut ihn bei Wechsel neu auf."""

    def __init__(self) -> None:
        self._index: Optional[ExamConflictIndex] = None

    @property
    def index(self) -> Optional[ExamConflictIndex]:
        return self._index

    def is_current(self, class_name: str, subject: str) -> bool:
        return (
            self._index is not None
            and self._index.scope == (_norm(class_name), _norm(subject))
        )

    def rebuild(self, class_name: str, subject: str,
                exams: Iterable[ExamRecord]) -> ExamConflictIndex:
        self._index = ExamConflictIndex(class_name, subject, exams)
        logger.debug(
            f"Prüfungsindex neu aufgebaut für {class_name}/{subject}: "
            f"{len(self._index)} Prüfung(en), "
            f"{len(self._index.by_date_period)} belegte Stunde(n)"
        )
        return self._index

    def clear(self) -> None:
        self._index = None
