"""Datenmodell für ein Kapitel eines Stoffverteilungsplans (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from models.coercion import Count, Flag, OptionalFlag, OptionalText, Text
from models.session import LifecycleState, Session


class Chapter(BaseModel):
    """Ein Kapitel mit fester Soll-Anzahl an Sitzungen."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True,
        extra="ignore", frozen=True,
    )

    chapter_number: Count = 0
    chapter_name: Text = ""
    total_sessions: Count = 0          # Soll laut Curriculum (maßgeblich)
    planned_sessions: Count = 0        # Anzahl mit Status != not-planned/cancelled
    number_of_sessions: Count = 0      # Anzeige-Anzahl; 0 → total_sessions
    sessions: list[Session] = []
    sessions_sparse: Flag = False
    can_prepare: OptionalFlag = None   # None = von der Quelle nicht geliefert
    lock_reason: OptionalText = None
    chapter_completed: Flag = False    # explizit vom Lehrer abgeschlossen

    @model_validator(mode="after")
    def _default_number_of_sessions(self):
        if self.number_of_sessions <= 0:
            object.__setattr__(self, "number_of_sessions", self.total_sessions)
        return self

    @property
    def is_fully_reported(self) -> bool:
        """True, wenn jede Sitzung (regulär + erweitert) berichtet ist.

        Ein Kapitel ohne Sitzungen gilt nicht als vollständig berichtet.
        """
        return bool(self.sessions) and all(
            s.state == LifecycleState.REPORTED for s in self.sessions
        )

    def is_extended(self, session: Session) -> bool:
        """Erweiterte Sitzung: Nummer jenseits der Soll-Anzahl oder explizit markiert."""
        return session.is_extended or session.session_number > self.number_of_sessions

    def get_session(self, session_number: int) -> Optional[Session]:
        return next(
            (s for s in self.sessions if s.session_number == session_number), None
        )
