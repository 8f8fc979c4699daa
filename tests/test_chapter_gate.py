"""Tests für Kapitel-Gate, Badges und Affordanzen."""

import logging
import random

from analysis.chapter_gate import ChapterBadge, ChapterGateEvaluator
from models.scheme import Scheme
from planning.tree_builder import SchemeTreeBuilder


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _chapter(number: int, statuses: list[str], **extra) -> dict:
    return {
        "chapterNumber": number,
        "chapterName": f"Kapitel {number}",
        "totalSessions": len(statuses),
        "sessions": [
            {"sessionNumber": i, "status": s} for i, s in enumerate(statuses, start=1)
        ],
        **extra,
    }


def _make_scheme(*chapters: dict) -> Scheme:
    return SchemeTreeBuilder().build_scheme({
        "schemeId": "S1", "class": "STD 8", "subject": "Math",
        "chapters": list(chapters),
    })


REPORTED_5 = ["reported"] * 5


class TestLocalRule:
    def test_first_chapter_always_open(self):
        report = ChapterGateEvaluator().evaluate(_make_scheme(_chapter(1, ["not-planned"])))
        gate = report.get(1)
        assert gate.can_prepare is True
        assert gate.source == "local"

    def test_next_chapter_locked_until_fully_reported(self):
        scheme = _make_scheme(
            _chapter(1, ["reported", "ready"]),
            _chapter(2, ["not-planned"]),
        )
        gate = ChapterGateEvaluator().evaluate(scheme).get(2)
        assert gate.can_prepare is False
        assert "Kapitel 1" in gate.lock_reason

    def test_next_chapter_open_when_reported(self):
        scheme = _make_scheme(_chapter(1, REPORTED_5), _chapter(2, ["not-planned"]))
        assert ChapterGateEvaluator().evaluate(scheme).get(2).can_prepare is True

    def test_extended_sessions_must_be_reported_too(self):
        raw = _chapter(1, REPORTED_5)
        raw["sessions"].append({"sessionNumber": 6, "status": "planned"})
        scheme = _make_scheme(raw, _chapter(2, ["not-planned"]))
        assert ChapterGateEvaluator().evaluate(scheme).get(2).can_prepare is False

    def test_empty_chapter_is_not_fully_reported(self):
        scheme = _make_scheme(_chapter(1, []), _chapter(2, ["not-planned"]))
        assert ChapterGateEvaluator().evaluate(scheme).get(2).can_prepare is False

    def test_gate_property_for_random_schemes(self):
        """Kapitel N (N>1) ist nur offen, wenn Kapitel N−1 vollständig berichtet ist."""
        rng = random.Random(11)
        states = ["reported", "reported", "ready", "not-planned", "cascaded"]
        evaluator = ChapterGateEvaluator()
        for _ in range(200):
            chapters = [
                _chapter(n, [rng.choice(states) for _ in range(rng.randint(1, 5))])
                for n in range(1, rng.randint(2, 5) + 1)
            ]
            scheme = _make_scheme(*chapters)
            report = evaluator.evaluate(scheme)
            ordered = scheme.chapters
            for prev, cur in zip(ordered, ordered[1:]):
                if report.get(cur.chapter_number).can_prepare:
                    assert prev.is_fully_reported


class TestUpstreamAuthority:
    def test_upstream_true_not_overridden(self, caplog):
        """Quelle sagt offen, lokale Regel sagt gesperrt → Quelle gilt, Abweichung geloggt."""
        scheme = _make_scheme(
            _chapter(1, ["planned"]),
            _chapter(2, ["not-planned"], canPrepare=True),
        )
        with caplog.at_level(logging.WARNING):
            report = ChapterGateEvaluator().evaluate(scheme)
        gate = report.get(2)
        assert gate.can_prepare is True
        assert gate.source == "upstream"
        assert gate.local_can_prepare is False
        assert not report.is_consistent
        assert report.disagreements[0].chapter_number == 2
        assert "canPrepare" in caplog.text

    def test_upstream_lock_kept_with_reason(self):
        scheme = _make_scheme(
            _chapter(1, REPORTED_5),
            _chapter(2, ["not-planned"], canPrepare="false", lockReason="Vom Schulleiter gesperrt"),
        )
        gate = ChapterGateEvaluator().evaluate(scheme).get(2)
        assert gate.can_prepare is False
        assert gate.lock_reason == "Vom Schulleiter gesperrt"

    def test_consistent_upstream(self):
        scheme = _make_scheme(
            _chapter(1, REPORTED_5, canPrepare=True),
            _chapter(2, ["not-planned"], canPrepare=True),
        )
        assert ChapterGateEvaluator().evaluate(scheme).is_consistent


class TestBadges:
    def test_chapter_complete_explicit(self):
        scheme = _make_scheme(_chapter(1, ["reported", "planned"], chapterCompleted=True))
        assert ChapterGateEvaluator().evaluate(scheme).get(1).badge == ChapterBadge.CHAPTER_COMPLETE

    def test_chapter_completed_derived(self):
        """Alle 5 berichtet, nicht abgeschlossen, Folgekapitel offen → 'Chapter Completed'."""
        scheme = _make_scheme(
            _chapter(1, REPORTED_5, chapterCompleted=False),
            _chapter(2, ["not-planned"], canPrepare=True),
        )
        gate = ChapterGateEvaluator().evaluate(scheme).get(1)
        assert gate.badge == ChapterBadge.CHAPTER_COMPLETED
        assert gate.badge_label == "Chapter Completed"

    def test_all_sessions_reported_when_next_locked(self):
        scheme = _make_scheme(
            _chapter(1, REPORTED_5),
            _chapter(2, ["not-planned"], canPrepare=False),
        )
        gate = ChapterGateEvaluator().evaluate(scheme).get(1)
        assert gate.badge == ChapterBadge.ALL_SESSIONS_REPORTED
        assert gate.badge_label == "All sessions reported"

    def test_last_chapter_fully_reported(self):
        scheme = _make_scheme(_chapter(1, REPORTED_5))
        gate = ChapterGateEvaluator().evaluate(scheme).get(1)
        assert gate.badge == ChapterBadge.ALL_SESSIONS_REPORTED

    def test_no_badge_when_not_fully_reported(self):
        scheme = _make_scheme(_chapter(1, ["reported", "ready"]))
        assert ChapterGateEvaluator().evaluate(scheme).get(1).badge == ChapterBadge.NONE


class TestAffordances:
    def test_prepare_all_for_unplanned_chapter(self):
        scheme = _make_scheme(_chapter(1, ["not-planned"] * 4))
        gate = ChapterGateEvaluator().evaluate(scheme).get(1)
        assert gate.prepare_all_count == 4

    def test_no_prepare_all_once_planned(self):
        scheme = _make_scheme(_chapter(1, ["planned", "not-planned"]))
        assert ChapterGateEvaluator().evaluate(scheme).get(1).prepare_all_count is None

    def test_extended_session_number(self):
        scheme = _make_scheme(_chapter(1, REPORTED_5))
        gate = ChapterGateEvaluator().evaluate(scheme).get(1)
        assert gate.extended_session_number == 6

    def test_no_extended_session_after_explicit_completion(self):
        scheme = _make_scheme(_chapter(1, REPORTED_5, chapterCompleted=True))
        assert ChapterGateEvaluator().evaluate(scheme).get(1).extended_session_number is None
