"""In-Memory-Quellen für Offline-Betrieb und Tests.

Verhält sich wie die Remote-API: Schreibaufrufe tragen die neuen Pläne in
die gespeicherte Scheme-Payload ein, sodass ein anschließendes Neuladen den
geänderten Zustand zeigt. Verzögerungen und Fehler lassen sich pro
Quelle einstellen.
"""

import asyncio
import copy
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class SourceFailure(Exception):
    """Simulierter Ausfall einer Quelle."""


class InMemorySources:
    """Scheme-, Perioden-, Prüfungs-, Schreib- und Vorschlagsquelle in einem."""

    def __init__(
        self,
        scheme_payload: Optional[dict[str, Any]] = None,
        slots: Optional[list[dict[str, Any]]] = None,
        exams: Optional[list[dict[str, Any]]] = None,
        suggestions: Optional[dict[str, Any]] = None,
    ) -> None:
        self.scheme_payload = copy.deepcopy(scheme_payload or {"success": True, "schemes": []})
        self.slots = list(slots or [])
        self.exams = list(exams or [])
        self.suggestions = dict(suggestions or {})

        # Verzögerungen in Sekunden
        self.scheme_delay = 0.0
        self.period_delay = 0.0
        self.write_delay = 0.0

        # Gesetzt → die jeweilige Quelle wirft SourceFailure mit diesem Text
        self.fail_schemes: Optional[str] = None
        self.fail_periods: Optional[str] = None
        self.fail_exams: Optional[str] = None
        self.fail_writes: Optional[str] = None
        self.fail_suggest: Optional[str] = None
        # Gesetzt → Schreibaufruf antwortet mit {success: false, error}
        self.reject_writes: Optional[str] = None
        # Gesetzt → Sammelplanung meldet diesen createdCount (Teil-Erfolg)
        self.bulk_created_override: Optional[int] = None

        self.calls: Counter = Counter()
        self.written: list[dict[str, Any]] = []

    # ─── Lesen ───

    async def fetch_schemes(self, teacher_email: str) -> dict[str, Any]:
        self.calls["schemes"] += 1
        if self.scheme_delay:
            await asyncio.sleep(self.scheme_delay)
        if self.fail_schemes:
            raise SourceFailure(self.fail_schemes)
        return copy.deepcopy(self.scheme_payload)

    async def fetch_periods(
        self,
        teacher_email: str,
        start_date: str,
        end_date: str,
        exclude_existing: bool,
        class_name: str,
        subject: str,
    ) -> dict[str, Any]:
        self.calls["periods"] += 1
        if self.period_delay:
            await asyncio.sleep(self.period_delay)
        if self.fail_periods:
            raise SourceFailure(self.fail_periods)
        slots = [
            s for s in self.slots
            if start_date <= str(s.get("date", "")) <= end_date
            and s.get("class", class_name) == class_name
            and s.get("subject", subject) == subject
            and not (exclude_existing and s.get("isOccupied"))
        ]
        return {"success": True, "availableSlots": copy.deepcopy(slots)}

    async def fetch_exams(self, class_name: str, subject: str) -> list[dict[str, Any]]:
        self.calls["exams"] += 1
        if self.fail_exams:
            raise SourceFailure(self.fail_exams)
        return copy.deepcopy(self.exams)

    async def suggest(self, context: dict[str, Any]) -> dict[str, Any]:
        self.calls["suggest"] += 1
        if self.fail_suggest:
            raise SourceFailure(self.fail_suggest)
        return dict(self.suggestions)

    # ─── Schreiben ───

    async def create_plan(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls["create"] += 1
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.fail_writes:
            raise SourceFailure(self.fail_writes)
        if self.reject_writes:
            return {"success": False, "error": self.reject_writes}
        self._record(payload["schemeId"], payload["chapter"], None, {
            "sessionNumber": payload["session"],
            "selectedDate": payload["selectedDate"],
            "selectedPeriod": payload["selectedPeriod"],
        })
        self.written.append(copy.deepcopy(payload))
        return {"success": True, "createdCount": 1}

    async def create_bulk_plans(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls["create_bulk"] += 1
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.fail_writes:
            raise SourceFailure(self.fail_writes)
        if self.reject_writes:
            return {"success": False, "error": self.reject_writes}
        if self.bulk_created_override is not None:
            return {"success": True, "createdCount": self.bulk_created_override}
        for entry in payload["sessions"]:
            self._record(payload["schemeId"], payload["chapter"],
                         payload.get("chapterNumber"), entry)
        self.written.append(copy.deepcopy(payload))
        return {"success": True, "createdCount": len(payload["sessions"])}

    def _record(self, scheme_id: str, chapter: str, chapter_number: Optional[int],
                entry: dict[str, Any]) -> None:
        """Trägt eine neue Sitzung als 'planned' in die gespeicherte Payload ein."""
        for scheme in self.scheme_payload.get("schemes", []):
            if scheme.get("schemeId") != scheme_id:
                continue
            for ch in scheme.get("chapters", []):
                matches = (
                    str(ch.get("chapterName")) == str(chapter)
                    or str(ch.get("chapterNumber")) == str(chapter)
                    or (chapter_number is not None and ch.get("chapterNumber") == chapter_number)
                )
                if not matches:
                    continue
                number = int(entry["sessionNumber"])
                sessions = ch.setdefault("sessions", [])
                existing = next(
                    (s for s in sessions if int(s.get("sessionNumber", 0)) == number), None
                )
                if existing is None:
                    existing = {
                        "sessionNumber": number,
                        "sessionName": entry.get("sessionName") or f"Session {number}",
                    }
                    sessions.append(existing)
                existing.update({
                    "status": "planned",
                    "plannedDate": entry.get("selectedDate"),
                    "plannedPeriod": entry.get("selectedPeriod"),
                    "lessonPlanId": f"LP-{scheme_id}-{ch.get('chapterNumber')}-{number}",
                })
                if entry.get("isExtended"):
                    existing["isExtended"] = True
                return
        logger.warning(f"Plan {scheme_id}/{chapter} nicht in der Offline-Payload gefunden")

    # ─── Offline-Bündel ───

    @classmethod
    def from_bundle(cls, bundle: dict[str, Any]) -> "InMemorySources":
        """Bündel aus FakeSchemeGenerator.generate() bzw. 'generate --output'."""
        return cls(
            scheme_payload=bundle.get("schemes"),
            slots=bundle.get("slots"),
            exams=bundle.get("exams"),
            suggestions=bundle.get("suggestions"),
        )


def load_bundle(path: Path) -> dict[str, Any]:
    """Liest ein Offline-Bündel (JSON) von der Platte."""
    with open(path, "r", encoding="utf-8") as f:
        bundle = json.load(f)
    if not isinstance(bundle, dict) or "schemes" not in bundle:
        raise ValueError(f"Kein gültiges Offline-Bündel: {path}")
    return bundle
