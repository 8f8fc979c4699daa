"""Tests für die Lebenszyklus-Klassifizierung inkl. Kaskaden-Overlay."""

import pytest

from models.session import LifecycleState, Session, SessionAction
from planning.classifier import (
    LifecycleClassifier, classify_session, click_action, has_cascade_history,
    parse_state,
)


def _make_session(**fields) -> Session:
    return Session.model_validate({"sessionNumber": 1, **fields})


class TestParseState:
    @pytest.mark.parametrize("raw,expected", [
        ("Reported", LifecycleState.REPORTED),
        ("READY", LifecycleState.READY),
        ("planned", LifecycleState.PLANNED),
        ("Pending Review", LifecycleState.PLANNED),
        ("pending  review", LifecycleState.PLANNED),
        ("Not Planned", LifecycleState.NOT_PLANNED),
        ("not_planned", LifecycleState.NOT_PLANNED),
        ("Cascaded", LifecycleState.CASCADED),
        ("cancelled", LifecycleState.CANCELLED),
    ])
    def test_known_values_case_insensitive(self, raw, expected):
        assert parse_state(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "rejected", "irgendwas", "42"])
    def test_unknown_values_default_to_not_planned(self, raw):
        assert parse_state(raw) == LifecycleState.NOT_PLANNED


class TestCascadeCondition:
    def test_explicit_status(self):
        assert has_cascade_history(_make_session(status="cascaded"))

    def test_original_date(self):
        assert has_cascade_history(_make_session(originalDate="2025-11-03"))

    def test_original_period(self):
        assert has_cascade_history(_make_session(originalPeriod=2))

    def test_plan_status_text(self):
        assert has_cascade_history(_make_session(planStatus="Cascaded from P3"))

    def test_no_history(self):
        assert not has_cascade_history(_make_session(status="ready"))


class TestClassifySession:
    def test_planned_with_original_date_becomes_cascaded(self):
        status = classify_session(_make_session(status="planned", originalDate="2025-11-03"))
        assert status.primary_state == LifecycleState.CASCADED
        assert status.cascaded is True
        assert status.cascade_detail.original_date == "2025-11-03"

    def test_reported_keeps_cascade_indicator(self):
        """Berichtete Sitzung mit Originaltermin behält das Kaskaden-Overlay."""
        status = classify_session(_make_session(
            status="reported", originalDate="2025-11-03", originalPeriod=4,
        ))
        assert status.primary_state == LifecycleState.REPORTED
        assert status.cascaded is True
        assert status.cascade_detail.original_period == 4

    def test_cancelled_keeps_primary_state(self):
        status = classify_session(_make_session(status="cancelled", originalPeriod=1))
        assert status.primary_state == LifecycleState.CANCELLED
        assert status.cascaded is True

    def test_plain_ready(self):
        status = classify_session(_make_session(status="ready"))
        assert status.primary_state == LifecycleState.READY
        assert status.cascaded is False
        assert status.cascade_detail is None

    def test_explicit_cascaded_without_detail(self):
        status = classify_session(_make_session(status="Cascaded"))
        assert status.primary_state == LifecycleState.CASCADED
        assert status.cascade_detail is None


class TestClickAction:
    @pytest.mark.parametrize("raw,action", [
        ("not-planned", SessionAction.PREPARE),
        ("planned", SessionAction.VIEW_DETAILS),
        ("ready", SessionAction.VIEW_DETAILS),
        ("cascaded", SessionAction.VIEW_DETAILS),
        ("reported", SessionAction.VIEW_DETAILS),
        ("cancelled", SessionAction.NONE),
    ])
    def test_action_per_state(self, raw, action):
        assert click_action(classify_session(_make_session(status=raw))) == action


class TestLifecycleClassifier:
    def test_classify_scheme_sets_lifecycle_everywhere(self):
        from models.scheme import Scheme
        scheme = Scheme.model_validate({
            "schemeId": "S1",
            "chapters": [{
                "chapterNumber": 1, "totalSessions": 2,
                "sessions": [
                    {"sessionNumber": 1, "status": "reported"},
                    {"sessionNumber": 2, "status": "weird"},
                ],
            }],
        })
        classified = LifecycleClassifier().classify_scheme(scheme)
        sessions = classified.chapters[0].sessions
        assert all(s.lifecycle is not None for s in sessions)
        assert sessions[0].state == LifecycleState.REPORTED
        assert sessions[1].state == LifecycleState.NOT_PLANNED
        # Original bleibt unverändert (Baum wird ersetzt, nicht mutiert)
        assert scheme.chapters[0].sessions[0].lifecycle is None
