"""Lebenszyklus-Klassifizierung von Sitzungen.

Primärzustand und Kaskaden-Flag sind zwei getrennte Felder: Eine Sitzung,
die verschoben und später berichtet wurde, ist primär REPORTED und trägt
trotzdem weiterhin cascaded=True.
"""

from config.defaults import STATUS_ALIASES
from models.chapter import Chapter
from models.scheme import Scheme
from models.session import (
    CascadeDetail, LifecycleState, Session, SessionAction, SessionStatus,
)

# Primärzustände, die bei erkannter Verschiebung zu CASCADED werden.
# Terminale Zustände (reported/cancelled) behalten ihren Primärzustand.
_PROMOTABLE_TO_CASCADED = frozenset({LifecycleState.PLANNED, LifecycleState.READY})


def parse_state(raw_status: str | None) -> LifecycleState:
    """Rohstatus → Zustand, ohne Beachtung von Groß-/Kleinschreibung."""
    key = " ".join(str(raw_status or "").strip().lower().replace("_", "-").split())
    return STATUS_ALIASES.get(key, LifecycleState.NOT_PLANNED)


def has_cascade_history(session: Session) -> bool:
    """Verschiebungs-Bedingung: expliziter Status, Originaltermin oder planStatus."""
    if parse_state(session.status) == LifecycleState.CASCADED:
        return True
    if session.cascade_marked:
        return True
    if session.original_date is not None or session.original_period is not None:
        return True
    return bool(session.plan_status and "cascad" in session.plan_status.lower())


def classify_session(session: Session) -> SessionStatus:
    """Leitet den SessionStatus einer einzelnen Sitzung ab."""
    state = parse_state(session.status)
    cascaded = has_cascade_history(session)

    if cascaded and state in _PROMOTABLE_TO_CASCADED:
        state = LifecycleState.CASCADED

    detail = None
    if cascaded and (
        session.original_date is not None
        or session.original_period is not None
        or session.plan_status
    ):
        detail = CascadeDetail(
            original_date=session.original_date,
            original_period=session.original_period,
            plan_status=session.plan_status,
        )

    return SessionStatus(primary_state=state, cascaded=cascaded, cascade_detail=detail)


def click_action(status: SessionStatus) -> SessionAction:
    """not-planned → Vorbereitung, cancelled → nichts, sonst Detailansicht."""
    if status.primary_state == LifecycleState.NOT_PLANNED:
        return SessionAction.PREPARE
    if status.primary_state == LifecycleState.CANCELLED:
        return SessionAction.NONE
    return SessionAction.VIEW_DETAILS


class LifecycleClassifier:
    """Setzt das lifecycle-Feld jeder Sitzung genau einmal pro Ladezyklus."""

    def classify_chapter(self, chapter: Chapter) -> Chapter:
        sessions = [
            s.model_copy(update={"lifecycle": classify_session(s)})
            for s in chapter.sessions
        ]
        return chapter.model_copy(update={"sessions": sessions})

    def classify_scheme(self, scheme: Scheme) -> Scheme:
        chapters = [self.classify_chapter(ch) for ch in scheme.chapters]
        return scheme.model_copy(update={"chapters": chapters})
