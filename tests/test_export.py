"""Tests für den Terminal-Renderer des Planungsbaums."""

from analysis.chapter_gate import ChapterGateEvaluator
from analysis.exam_conflicts import ExamConflictIndex
from analysis.progress import ProgressAggregator, ProgressBand
from export.tui_renderer import (
    progress_bar, render_scheme_rows, render_session_line, render_slot_rows,
)
from models.slot import CandidateSlot, ExamRecord
from planning.tree_builder import SchemeTreeBuilder


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _make_scheme():
    return SchemeTreeBuilder().build_scheme({
        "schemeId": "S1", "class": "STD 8", "subject": "Math",
        "chapters": [
            {
                "chapterNumber": 1, "chapterName": "Zahlen", "totalSessions": 2,
                "sessions": [
                    {"sessionNumber": 1, "status": "reported", "originalDate": "2025-10-01"},
                    {"sessionNumber": 2, "status": "reported"},
                    {"sessionNumber": 3, "status": "planned"},
                ],
            },
            {"chapterNumber": 2, "totalSessions": 2, "sessionsSparse": True, "sessions": []},
        ],
    })


class TestProgressBar:
    def test_segments(self):
        bar = progress_bar(50, 25, ProgressBand.CAUTION, width=8)
        assert "██▓▓░░░░" in bar
        assert bar.startswith("[yellow]")
        assert bar.endswith(" 50%")

    def test_unknown_overlay(self):
        bar = progress_bar(100, None, ProgressBand.GOOD, width=4)
        assert "▓▓▓▓" in bar


class TestSchemeRows:
    def test_header_and_chapter_rows(self):
        scheme = _make_scheme()
        rows = render_scheme_rows(
            ProgressAggregator().scheme_progress(scheme),
            scheme.class_name, scheme.subject,
            ChapterGateEvaluator().evaluate(scheme),
        )
        assert len(rows) == 3
        assert "S1" in rows[0][0]
        assert "Prepare All (2)" in rows[2][3]

    def test_locked_chapter_shows_reason(self):
        scheme = _make_scheme()
        rows = render_scheme_rows(
            ProgressAggregator().scheme_progress(scheme),
            scheme.class_name, scheme.subject,
            ChapterGateEvaluator().evaluate(scheme),
        )
        assert "Kapitel 1" in rows[2][3]

    def test_unknown_reported_shows_question_mark(self):
        scheme = SchemeTreeBuilder().build_scheme({
            "schemeId": "S2", "class": "STD 8", "subject": "Math",
            "chapters": [
                {"chapterNumber": 1, "totalSessions": 1,
                 "sessions": [{"sessionNumber": 1, "status": "reported"}]},
                {"chapterNumber": 2, "totalSessions": 8, "plannedSessions": 4,
                 "sessions": []},
            ],
        })
        rows = render_scheme_rows(
            ProgressAggregator().scheme_progress(scheme),
            scheme.class_name, scheme.subject,
            ChapterGateEvaluator().evaluate(scheme),
        )
        assert "5/9 (✓ ?)" in rows[0][1]
        assert rows[1][1] == "1/1 (✓ 1)"
        assert rows[2][1] == "4/8 (✓ ?)"


class TestSessionLine:
    def test_symbols(self):
        line = render_session_line(_make_scheme().get_chapter(1))
        assert line == "1↻✓ 2✓ +3◐"


class TestSlotRows:
    def test_conflict_labels(self):
        index = ExamConflictIndex("STD 8", "Math", [ExamRecord.model_validate({
            "date": "2025-11-10", "period": 3, "examType": "Unit Test",
            "class": "STD 8", "subject": "Math",
        })])
        slots = [
            CandidateSlot.model_validate({"date": "2025-11-10", "period": p,
                                          "startTime": "10:00", "endTime": "10:45"})
            for p in (3, 4)
        ]
        rows = render_slot_rows(index.annotate(slots))
        assert "Prüfung in dieser Stunde" in rows[0][4]
        assert "Unit Test" in rows[0][4]
        assert "Prüfung am selben Tag" in rows[1][4]
        assert rows[0][2] == "10:00–10:45"
