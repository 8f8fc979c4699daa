"""Baut aus einer Scheme-Quellantwort den vollständigen, klassifizierten Baum.

Reihenfolge pro Plan: Rekonstruktion → Klassifizierung → Zählwerte.
Gates werden nicht in den Baum geschrieben, damit erkennbar bleibt, ob
canPrepare von der Quelle stammt (siehe analysis.chapter_gate).
"""

import logging
from datetime import date
from typing import Any, Optional

from pydantic import ValidationError

from analysis.progress import ProgressAggregator
from models.scheme import PlanningDateRange, Scheme, SchemeTree
from models.coercion import coerce_flag
from planning.classifier import LifecycleClassifier
from planning.date_window import fallback_planning_range
from planning.errors import SchemeLoadError
from planning.reconstructor import SessionReconstructor

logger = logging.getLogger(__name__)


class SchemeTreeBuilder:
    def __init__(
        self,
        reconstructor: Optional[SessionReconstructor] = None,
        classifier: Optional[LifecycleClassifier] = None,
        aggregator: Optional[ProgressAggregator] = None,
        fallback_window_days: int = 5,
    ) -> None:
        self.reconstructor = reconstructor or SessionReconstructor()
        self.classifier = classifier or LifecycleClassifier()
        self.aggregator = aggregator or ProgressAggregator()
        self.fallback_window_days = fallback_window_days

    def build_scheme(self, raw: dict[str, Any] | Scheme) -> Scheme:
        scheme = self.reconstructor.reconstruct_scheme(raw)
        scheme = self.classifier.classify_scheme(scheme)
        return self.aggregator.with_planned_counts(scheme)

    def planning_range(self, raw: Any, today: Optional[date] = None) -> PlanningDateRange:
        """Fenster der Quelle oder, wenn es fehlt/unvollständig ist, der Fallback."""
        if isinstance(raw, dict):
            parsed = PlanningDateRange.model_validate(raw)
            if parsed.start_date and parsed.end_date:
                return parsed
        logger.info("Kein Planungsfenster geliefert, nutze Fallback ab nächstem Montag")
        return fallback_planning_range(today, self.fallback_window_days)

    def build(self, payload: Any, generation: int = 0,
              today: Optional[date] = None) -> SchemeTree:
        """Validiert die Antwort der Scheme-Quelle und baut den Baum.

        Raises:
            SchemeLoadError: success=false, fehlende Pläne oder ungültige Daten.
        """
        if not isinstance(payload, dict):
            raise SchemeLoadError("Ungültige Antwort der Plan-Quelle (kein Objekt).")
        if not coerce_flag(payload.get("success", False)):
            message = payload.get("error") or payload.get("message") or "unbekannter Fehler"
            raise SchemeLoadError(f"Pläne konnten nicht geladen werden: {message}")

        raw_schemes = payload.get("schemes") or []
        if not isinstance(raw_schemes, list):
            raise SchemeLoadError("Ungültige Antwort der Plan-Quelle (schemes ist keine Liste).")

        try:
            schemes = [self.build_scheme(raw) for raw in raw_schemes]
        except ValidationError as e:
            raise SchemeLoadError(f"Plan-Daten ungültig: {e}") from e

        settings = payload.get("settings") or {}
        bulk_only = coerce_flag(settings.get("bulkOnly", False)) if isinstance(settings, dict) else False

        tree = SchemeTree(
            schemes=schemes,
            planning_range=self.planning_range(payload.get("planningDateRange"), today),
            bulk_only=bulk_only,
            generation=generation,
        )
        logger.info(
            f"Baum #{generation} aufgebaut: {len(schemes)} Plan/Pläne, "
            f"Nur-Sammelplanung={'an' if bulk_only else 'aus'}"
        )
        return tree
