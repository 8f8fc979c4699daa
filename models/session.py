"""Datenmodell für eine einzelne Unterrichtssitzung (Pydantic v2)."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models.coercion import Count, Flag, IsoDate, OptionalPeriod, OptionalText, Text


class LifecycleState(str, Enum):
    """Geschlossene Menge der Lebenszyklus-Zustände einer Sitzung."""

    NOT_PLANNED = "not-planned"
    PLANNED = "planned"          # eingereicht, wartet auf Freigabe ("pending review")
    READY = "ready"              # freigegeben
    CASCADED = "cascaded"        # Termin durch Verschiebung verlegt
    REPORTED = "reported"        # unterrichtet + Tagesbericht erfasst
    CANCELLED = "cancelled"      # wird nicht mehr benötigt


# Zustände, die NICHT als "geplant" zählen
UNPLANNED_STATES = frozenset({LifecycleState.NOT_PLANNED, LifecycleState.CANCELLED})


class SessionAction(str, Enum):
    """Was ein Klick auf die Sitzung auslöst."""

    PREPARE = "prepare"
    VIEW_DETAILS = "view-details"
    NONE = "none"


class CascadeDetail(BaseModel):
    """Herkunft einer Verschiebung (nur gesetzt, wenn bekannt)."""

    model_config = ConfigDict(frozen=True)

    original_date: Optional[str] = None
    original_period: Optional[int] = None
    plan_status: Optional[str] = None


class SessionStatus(BaseModel):
    """Klassifizierter Status: Primärzustand + orthogonales Kaskaden-Overlay.

    Das Overlay bleibt auch nach späteren Übergängen erhalten – eine
    berichtete Sitzung, die früher verschoben wurde, zeigt weiterhin den
    Kaskaden-Hinweis.
    """

    model_config = ConfigDict(frozen=True)

    primary_state: LifecycleState
    cascaded: bool = False
    cascade_detail: Optional[CascadeDetail] = None

    @property
    def counts_as_planned(self) -> bool:
        return self.primary_state not in UNPLANNED_STATES

    @property
    def is_reported(self) -> bool:
        return self.primary_state == LifecycleState.REPORTED


class Session(BaseModel):
    """Eine Sitzung (atomare Planungs-/Berichtseinheit) eines Kapitels.

    Feldnamen im Python-Code sind snake_case, die Remote-API liefert
    camelCase (sessionNumber, plannedDate, ...).
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True,
        extra="ignore", frozen=True,
    )

    session_number: Count = 0
    session_name: Text = ""
    status: Text = LifecycleState.NOT_PLANNED.value   # Rohstatus aus der Quelle
    plan_status: OptionalText = None
    planned_date: IsoDate = None
    planned_period: OptionalPeriod = None
    original_date: IsoDate = None
    original_period: OptionalPeriod = None
    lesson_plan_id: OptionalText = None
    estimated_duration: OptionalText = None
    is_extended: Flag = False
    cascade_marked: Flag = False

    # Freitext-Planung: wird von der Engine nicht interpretiert
    learning_objectives: OptionalText = None
    teaching_methods: OptionalText = None
    resources_required: OptionalText = None
    assessment_methods: OptionalText = None

    # Wird einmalig vom LifecycleClassifier gesetzt
    lifecycle: Optional[SessionStatus] = None

    @property
    def state(self) -> LifecycleState:
        """Primärzustand; vor der Klassifizierung immer NOT_PLANNED."""
        if self.lifecycle is None:
            return LifecycleState.NOT_PLANNED
        return self.lifecycle.primary_state

    @property
    def has_schedule(self) -> bool:
        return self.planned_date is not None and self.planned_period is not None

    def schedule_label(self) -> str:
        """Kurzlabel wie '2025-11-10 P3' (leer wenn nicht terminiert)."""
        if not self.has_schedule:
            return ""
        return f"{self.planned_date} P{self.planned_period}"


def placeholder_session(session_number: int) -> Session:
    """Platzhalter für eine in der Sparse-Payload ausgelassene Sitzung."""
    return Session(
        session_number=session_number,
        session_name=f"Session {session_number}",
        status=LifecycleState.NOT_PLANNED.value,
        cascade_marked=False,
    )
