"""Tests für den Prüfungskonflikt-Index."""

import logging

from analysis.exam_conflicts import ExamConflictCache, ExamConflictIndex
from models.slot import CandidateSlot, ConflictKind, ExamRecord


def _exam(date: str, period=None, cls: str = "STD 8", subject: str = "Math",
          **extra) -> ExamRecord:
    return ExamRecord.model_validate({
        "date": date, "period": period, "class": cls, "subject": subject, **extra,
    })


def _slot(date: str, period: int, available: bool = True) -> CandidateSlot:
    return CandidateSlot.model_validate({
        "date": date, "period": period, "isAvailable": available,
        "class": "STD 8", "subject": "Math",
    })


class TestConflictIndex:
    def test_hard_and_soft_scenario(self):
        """Prüfung 2025-11-10 P3: P3 hart, P4 am selben Tag nur weich."""
        index = ExamConflictIndex("STD 8", "Math", [_exam("2025-11-10", 3)])
        assert index.check("2025-11-10", 3) == ConflictKind.HARD
        assert index.check("2025-11-10", 4) == ConflictKind.SOFT
        assert index.check("2025-11-11", 3) == ConflictKind.NONE

    def test_hard_takes_precedence(self):
        index = ExamConflictIndex("STD 8", "Math", [
            _exam("2025-11-10", 3), _exam("2025-11-10"),
        ])
        assert index.check("2025-11-10", 3) == ConflictKind.HARD
        assert index.check("2025-11-10", 5) == ConflictKind.SOFT

    def test_all_day_exam_is_soft_only(self):
        index = ExamConflictIndex("STD 8", "Math", [_exam("2025-11-12")])
        assert index.check("2025-11-12", 1) == ConflictKind.SOFT
        assert not index.by_date_period

    def test_scoped_to_class_and_subject(self):
        index = ExamConflictIndex("STD 8", "Math", [
            _exam("2025-11-10", 3, cls="STD 7"),
            _exam("2025-11-10", 3, subject="Science"),
            _exam("2025-11-11", 2, cls="std 8 ", subject="MATH"),
        ])
        assert index.check("2025-11-10", 3) == ConflictKind.NONE
        assert index.check("2025-11-11", 2) == ConflictKind.HARD
        assert len(index) == 1

    def test_period_strings_normalized(self):
        index = ExamConflictIndex("STD 8", "Math", [_exam("2025-11-10T00:00:00Z", "P3")])
        assert index.check("2025-11-10", 3) == ConflictKind.HARD

    def test_annotate(self):
        index = ExamConflictIndex("STD 8", "Math", [
            _exam("2025-11-10", 3, examType="Unit Test"),
        ])
        annotated = index.annotate([
            _slot("2025-11-10", 3), _slot("2025-11-10", 4),
            _slot("2025-11-11", 1, available=False),
        ])
        assert [a.conflict for a in annotated] == [
            ConflictKind.HARD, ConflictKind.SOFT, ConflictKind.NONE,
        ]
        assert annotated[0].exams[0].description == "Unit Test"
        assert annotated[0].is_selectable
        assert not annotated[2].is_selectable


class TestConflictCache:
    def test_rebuild_on_scope_change(self, caplog):
        cache = ExamConflictCache()
        assert not cache.is_current("STD 8", "Math")
        with caplog.at_level(logging.DEBUG, logger="analysis.exam_conflicts"):
            cache.rebuild("STD 8", "Math", [_exam("2025-11-10", 3)])
        assert "neu aufgebaut" in caplog.text
        assert cache.is_current("std 8", "math")
        assert not cache.is_current("STD 8", "Science")

        cache.rebuild("STD 8", "Science", [])
        assert cache.index.check("2025-11-10", 3) == ConflictKind.NONE

    def test_clear(self):
        cache = ExamConflictCache()
        cache.rebuild("STD 8", "Math", [])
        cache.clear()
        assert cache.index is None
