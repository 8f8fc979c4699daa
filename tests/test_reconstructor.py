"""Tests für tolerante Zahlen-Konvertierung und Session-Rekonstruktion."""

import math
import random

import pytest

from models.chapter import Chapter
from models.coercion import (
    clamp_percent, coerce_flag, coerce_int, coerce_number, normalize_date,
    optional_int, round_half_up,
)
from models.scheme import Scheme
from models.session import LifecycleState, Session
from planning.classifier import LifecycleClassifier
from planning.reconstructor import SessionReconstructor
from analysis.progress import ProgressAggregator


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _make_chapter(total: int, sessions: list[dict], sparse: bool = True,
                  number: int = 1) -> dict:
    return {
        "chapterNumber": number,
        "chapterName": f"Kapitel {number}",
        "totalSessions": total,
        "sessionsSparse": sparse,
        "sessions": sessions,
    }


def _numbers(sessions: list[Session]) -> list[int]:
    return [s.session_number for s in sessions]


# ─── KONVERTIERUNG ────────────────────────────────────────────────────────────

class TestCoercion:
    @pytest.mark.parametrize("raw", [None, "", "abc", float("nan"), float("inf"),
                                     "-inf", "NaN", [], {}, True])
    def test_invalid_numbers_become_zero(self, raw):
        """Alles Unparsebare wird 0 – nie NaN, nie None."""
        value = coerce_number(raw)
        assert value == 0.0
        assert math.isfinite(value)

    def test_numeric_strings(self):
        assert coerce_int("5") == 5
        assert coerce_int(" 7 ") == 7
        assert coerce_int("3.9") == 3
        assert coerce_int(4.0) == 4

    @pytest.mark.parametrize("raw,expected", [
        (-20, 0), (150, 100), ("abc", 0), (None, 0), ("42.5", 43), (99.4, 99),
    ])
    def test_clamp_percent(self, raw, expected):
        assert clamp_percent(raw) == expected

    def test_round_half_up(self):
        """Kaufmännisch: 2.5 → 3 (Python-round() ergäbe 2)."""
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1
        assert round_half_up(2.49) == 2

    def test_optional_period(self):
        assert optional_int("P3") == 3
        assert optional_int("3") == 3
        assert optional_int("") is None
        assert optional_int(None) is None

    def test_flags(self):
        assert coerce_flag("TRUE") is True
        assert coerce_flag("false") is False
        assert coerce_flag(1) is True
        assert coerce_flag("") is False

    def test_normalize_date(self):
        assert normalize_date("2025-11-10T00:00:00.000Z") == "2025-11-10"
        assert normalize_date("") is None


class TestModelCoercion:
    def test_overall_progress_clamped(self):
        scheme = Scheme.model_validate({"schemeId": "S1", "overallProgress": "250"})
        assert scheme.overall_progress == 100
        scheme = Scheme.model_validate({"schemeId": "S1", "overallProgress": "kaputt"})
        assert scheme.overall_progress == 0

    def test_chapter_counts_coerced(self):
        ch = Chapter.model_validate({
            "chapterNumber": "2", "totalSessions": "abc",
            "plannedSessions": None, "numberOfSessions": "NaN",
        })
        assert ch.chapter_number == 2
        assert ch.total_sessions == 0
        assert ch.planned_sessions == 0
        assert ch.number_of_sessions == 0

    def test_number_of_sessions_defaults_to_total(self):
        ch = Chapter.model_validate({"chapterNumber": 1, "totalSessions": 5})
        assert ch.number_of_sessions == 5

    def test_number_of_sessions_override_kept(self):
        ch = Chapter.model_validate({
            "chapterNumber": 1, "totalSessions": 5, "numberOfSessions": 4,
        })
        assert ch.number_of_sessions == 4

    def test_camel_case_aliases(self):
        s = Session.model_validate({
            "sessionNumber": "3", "plannedDate": "2025-11-10T00:00:00Z",
            "plannedPeriod": "P2", "cascadeMarked": "true",
        })
        assert s.session_number == 3
        assert s.planned_date == "2025-11-10"
        assert s.planned_period == 2
        assert s.cascade_marked is True


# ─── REKONSTRUKTION ───────────────────────────────────────────────────────────

class TestReconstructor:
    def test_sparse_single_reported_session(self):
        """totalSessions=5, nur Sitzung 3 (reported) geliefert."""
        raw = _make_chapter(5, [{"sessionNumber": 3, "status": "reported"}])
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        chapter = LifecycleClassifier().classify_chapter(chapter)

        assert _numbers(chapter.sessions) == [1, 2, 3, 4, 5]
        states = {s.session_number: s.state for s in chapter.sessions}
        assert states[3] == LifecycleState.REPORTED
        for n in (1, 2, 4, 5):
            assert states[n] == LifecycleState.NOT_PLANNED

        scheme = Scheme(scheme_id="S1", chapters=[chapter])
        counted = ProgressAggregator().with_planned_counts(scheme)
        assert counted.chapters[0].planned_sessions == 1

    def test_placeholders_are_blank(self):
        raw = _make_chapter(3, [{"sessionNumber": 2, "status": "planned"}])
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        placeholder = chapter.sessions[0]
        assert placeholder.session_name == "Session 1"
        assert placeholder.status == "not-planned"
        assert placeholder.planned_date is None
        assert placeholder.planned_period is None
        assert placeholder.original_date is None
        assert placeholder.cascade_marked is False

    def test_blank_name_defaults(self):
        raw = _make_chapter(2, [{"sessionNumber": 2, "sessionName": "  "}])
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        assert chapter.sessions[1].session_name == "Session 2"

    def test_existing_name_kept(self):
        raw = _make_chapter(2, [{"sessionNumber": 1, "sessionName": "Einführung"}])
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        assert chapter.sessions[0].session_name == "Einführung"

    def test_extended_sessions_sorted_after_dense_block(self):
        raw = _make_chapter(3, [
            {"sessionNumber": 6, "status": "planned"},
            {"sessionNumber": 2, "status": "reported"},
            {"sessionNumber": 4, "status": "planned"},
        ])
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        assert _numbers(chapter.sessions) == [1, 2, 3, 4, 6]

    def test_out_of_order_input(self):
        raw = _make_chapter(4, [
            {"sessionNumber": 4, "status": "reported"},
            {"sessionNumber": 1, "status": "reported"},
        ])
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        assert _numbers(chapter.sessions) == [1, 2, 3, 4]
        assert chapter.sessions[0].status == "reported"
        assert chapter.sessions[3].status == "reported"

    def test_duplicate_numbers_first_wins(self):
        raw = _make_chapter(2, [
            {"sessionNumber": 1, "status": "reported"},
            {"sessionNumber": 1, "status": "planned"},
        ])
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        assert _numbers(chapter.sessions) == [1, 2]
        assert chapter.sessions[0].status == "reported"

    def test_invalid_numbers_dropped(self):
        raw = _make_chapter(2, [{"sessionNumber": "abc"}, {"sessionNumber": -1}])
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        assert _numbers(chapter.sessions) == [1, 2]

    def test_not_sparse_passthrough(self):
        """sessionsSparse=false: Liste bleibt unverändert (nur Typ-Konvertierung)."""
        raw = _make_chapter(5, [
            {"sessionNumber": "2"}, {"sessionNumber": 1},
        ], sparse=False)
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        assert _numbers(chapter.sessions) == [2, 1]

    def test_zero_total_passthrough(self):
        raw = _make_chapter(0, [{"sessionNumber": 3}])
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        assert _numbers(chapter.sessions) == [3]

    def test_sparse_flag_as_string(self):
        raw = _make_chapter(2, [], sparse="true")
        chapter = SessionReconstructor().reconstruct_chapter(raw)
        assert _numbers(chapter.sessions) == [1, 2]

    def test_scheme_chapters_sorted(self):
        scheme = SessionReconstructor().reconstruct_scheme({
            "schemeId": "S1",
            "chapters": [_make_chapter(1, [], number=2), _make_chapter(1, [], number=1)],
        })
        assert [c.chapter_number for c in scheme.chapters] == [1, 2]

    def test_dense_property_for_random_sparse_chapters(self):
        """Für beliebige Sparse-Kapitel: 1..total lückenlos, danach erweiterte aufsteigend."""
        rng = random.Random(7)
        reconstructor = SessionReconstructor()
        for _ in range(200):
            total = rng.randint(1, 12)
            candidates = list(range(1, total + 4))
            chosen = rng.sample(candidates, k=rng.randint(0, len(candidates)))
            raw = _make_chapter(total, [{"sessionNumber": n} for n in chosen])

            sessions = reconstructor.reconstruct_chapter(raw).sessions
            numbers = _numbers(sessions)
            assert numbers[:total] == list(range(1, total + 1))
            extended = numbers[total:]
            assert extended == sorted(extended)
            assert all(n > total for n in extended)
            assert len(set(numbers)) == len(numbers)
