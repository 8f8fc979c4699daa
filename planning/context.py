"""Sitzungs-Kontext der Planung: der veränderliche Zustand zwischen zwei Aktionen.

Lade-Flag und Nur-Sammelplanung sind hier explizite Felder und werden dem
Orchestrator übergeben, statt als globale Variablen zu existieren.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from models.scheme import SchemeTree

if TYPE_CHECKING:
    from analysis.diff import TreeDiff


@dataclass
class PlanningContext:
    teacher_email: str
    teacher_name: str = ""
    bulk_only: bool = False           # kommt mit jedem Ladevorgang (settings.bulkOnly)
    loading: bool = False
    tree: Optional[SchemeTree] = None
    error: Optional[str] = None       # wegklickbare Fehlermeldung
    advisory: Optional[str] = None    # Hinweis (z.B. weiches Timeout), kein Fehler
    generation: int = 0               # Nummer des zuletzt gestarteten Ladevorgangs
    last_diff: Optional["TreeDiff"] = None

    def dismiss_error(self) -> None:
        self.error = None

    def dismiss_advisory(self) -> None:
        self.advisory = None
