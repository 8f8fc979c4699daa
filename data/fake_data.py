"""Testdaten-Generator für die Unterrichtsplanung.

Erzeugt ein Offline-Bündel im Format der Remote-API:
  - schemes:  Antwort von getApprovedSchemesForLessonPlanning (sparse)
  - slots:    Kandidaten-Stunden im Planungsfenster
  - exams:    Prüfungstermine

Absichtliche Sonderfälle:
  1. Kapitel 1 jedes Plans ist vollständig berichtet → Kapitel 2 frei
  2. Eine berichtete Sitzung trägt einen Originaltermin (Kaskade bleibt sichtbar)
  3. Spätere Kapitel sind leer und werden in der Payload ganz weggelassen
  4. Prüfungen liegen teils in einer konkreten Stunde (hart), teils ganztägig
"""

import random
from datetime import date, timedelta
from typing import Any, Optional

from planning.date_window import fallback_planning_range

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_FIRST_NAMES = [
    "Anna", "Birgit", "Christian", "Eva", "Franz", "Iris", "Jürgen",
    "Kathrin", "Markus", "Olga", "Peter", "Sandra", "Thomas", "Ulrike",
]

_LAST_NAMES = [
    "Müller", "Schmidt", "Schneider", "Fischer", "Weber", "Meyer",
    "Wagner", "Becker", "Schulz", "Hoffmann", "Koch", "Richter",
]

_CLASSES = ["STD 6", "STD 7", "STD 8", "STD 9"]

# Fach → Kapitelnamen (in Reihenfolge)
_SUBJECT_CHAPTERS: dict[str, list[str]] = {
    "Math": ["Zahlen", "Brüche", "Gleichungen", "Geometrie", "Statistik"],
    "Science": ["Materie", "Kräfte", "Energie", "Zellen", "Ökosysteme"],
    "English": ["Grammar Basics", "Reading", "Poetry", "Letter Writing"],
    "Social Studies": ["Karten", "Frühgeschichte", "Verfassung", "Wirtschaft"],
}

_PERIODS_PER_DAY = 8


class FakeSchemeGenerator:
    """Generiert reproduzierbare Plan-Payloads inklusive Stunden und Prüfungen."""

    def __init__(self, seed: Optional[int] = None, today: Optional[date] = None,
                 window_days: int = 5) -> None:
        self.rng = random.Random(seed)
        self.today = today or date.today()
        self.window = fallback_planning_range(self.today, window_days)
        self.teacher_name = (
            f"{self.rng.choice(_FIRST_NAMES)} {self.rng.choice(_LAST_NAMES)}"
        )
        self.teacher_email = (
            self.teacher_name.lower().replace(" ", ".")
            .replace("ü", "ue").replace("ö", "oe").replace("ä", "ae")
            + "@schule.example"
        )

    # ─── Sitzungen ────────────────────────────────────────────────────────────

    def _past_day(self, offset: int) -> str:
        return (self.today - timedelta(days=offset)).isoformat()

    def _reported_session(self, number: int) -> dict[str, Any]:
        return {
            "sessionNumber": number,
            "sessionName": f"Session {number}",
            "status": "Reported",
            "plannedDate": self._past_day(30 - number),
            "plannedPeriod": self.rng.randint(1, _PERIODS_PER_DAY),
            "lessonPlanId": f"LP-{self.rng.randint(1000, 9999)}",
        }

    def _chapter(self, number: int, name: str, phase: str) -> dict[str, Any]:
        """phase: 'reported' | 'in-progress' | 'empty'."""
        total = self.rng.randint(3, 6)
        sessions: list[dict[str, Any]] = []

        if phase == "reported":
            sessions = [self._reported_session(n) for n in range(1, total + 1)]
            # Eine früher verschobene, inzwischen berichtete Sitzung
            cascaded = self.rng.choice(sessions)
            cascaded["originalDate"] = self._past_day(40)
            cascaded["originalPeriod"] = 2
        elif phase == "in-progress":
            planned = self.rng.randint(1, total - 1)
            for n in range(1, planned + 1):
                status = self.rng.choice(["Planned", "Ready", "Pending Review"])
                entry = {
                    "sessionNumber": n,
                    "sessionName": f"Session {n}",
                    "status": status,
                    "plannedDate": self.window.start_date,
                    "plannedPeriod": n,
                }
                if n == planned and self.rng.random() < 0.5:
                    entry["status"] = "Cascaded"
                    entry["originalDate"] = self._past_day(2)
                    entry["originalPeriod"] = n
                sessions.append(entry)

        return {
            "chapterNumber": number,
            "chapterName": name,
            "totalSessions": total,
            "plannedSessions": len(sessions),
            "sessionsSparse": True,
            "sessions": sessions,
            "chapterCompleted": False,
        }

    # ─── Pläne ────────────────────────────────────────────────────────────────

    def _scheme(self, idx: int, class_name: str, subject: str) -> dict[str, Any]:
        names = _SUBJECT_CHAPTERS[subject]
        chapters = []
        for n, name in enumerate(names, start=1):
            phase = "reported" if n == 1 else "in-progress" if n == 2 else "empty"
            chapters.append(self._chapter(n, name, phase))
        total = sum(c["totalSessions"] for c in chapters)
        planned = sum(c["plannedSessions"] for c in chapters)
        return {
            "schemeId": f"SCH-{idx:03d}",
            "class": class_name,
            "subject": subject,
            "academicYear": f"{self.today.year}-{self.today.year + 1}",
            "term": "Term 1",
            "totalSessions": total,
            "plannedSessions": planned,
            "overallProgress": round(planned / total * 100) if total else 0,
            "chapters": chapters,
        }

    def generate_schemes(self, count: int = 3) -> list[dict[str, Any]]:
        pairs = [(c, s) for c in _CLASSES for s in _SUBJECT_CHAPTERS]
        chosen = self.rng.sample(pairs, k=min(count, len(pairs)))
        return [self._scheme(i + 1, c, s) for i, (c, s) in enumerate(chosen)]

    # ─── Stunden & Prüfungen ──────────────────────────────────────────────────

    def _window_days(self) -> list[str]:
        start = date.fromisoformat(self.window.start_date)
        end = date.fromisoformat(self.window.end_date)
        return [
            (start + timedelta(days=i)).isoformat()
            for i in range((end - start).days + 1)
        ]

    def generate_slots(self, schemes: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Zwei bis drei Stunden pro Tag und Plan, einzelne bereits belegt."""
        slots = []
        for scheme in schemes:
            for day in self._window_days():
                periods = sorted(self.rng.sample(range(1, _PERIODS_PER_DAY + 1), k=3))
                for period in periods:
                    occupied = self.rng.random() < 0.15
                    slots.append({
                        "date": day,
                        "period": period,
                        "startTime": f"{7 + period:02d}:00",
                        "endTime": f"{7 + period:02d}:45",
                        "isAvailable": not occupied,
                        "isOccupied": occupied,
                        "class": scheme["class"],
                        "subject": scheme["subject"],
                    })
        return slots

    def generate_exams(self, schemes: list[dict[str, Any]]) -> list[dict[str, Any]]:
        exams = []
        days = self._window_days()
        for scheme in schemes:
            day = self.rng.choice(days)
            exams.append({
                "date": day,
                "period": self.rng.randint(1, _PERIODS_PER_DAY),
                "examType": "Unit Test",
                "class": scheme["class"],
                "subject": scheme["subject"],
            })
            if self.rng.random() < 0.5:
                exams.append({
                    "date": self.rng.choice(days),
                    "examType": "Term Exam",
                    "class": scheme["class"],
                    "subject": scheme["subject"],
                })
        return exams

    def generate(self, count: int = 3, bulk_only: bool = False) -> dict[str, Any]:
        """Vollständiges Offline-Bündel."""
        schemes = self.generate_schemes(count)
        return {
            "teacherEmail": self.teacher_email,
            "teacherName": self.teacher_name,
            "schemes": {
                "success": True,
                "schemes": schemes,
                "planningDateRange": {
                    "startDate": self.window.start_date,
                    "endDate": self.window.end_date,
                    "canSubmit": True,
                },
                "settings": {"bulkOnly": bulk_only},
            },
            "slots": self.generate_slots(schemes),
            "exams": self.generate_exams(schemes),
        }

    # ─── Ausgabe ──────────────────────────────────────────────────────────────

    def print_summary(self, bundle: dict[str, Any]) -> None:
        """Gibt eine Rich-Tabelle mit Übersicht der erzeugten Daten aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        schemes = bundle["schemes"]["schemes"]
        console = Console()
        table = Table(title="Erzeugte Testdaten", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Anzahl", justify="right")
        table.add_column("Details")

        sessions = sum(c["totalSessions"] for s in schemes for c in s["chapters"])
        table.add_row("Pläne", str(len(schemes)),
                      ", ".join(f"{s['class']} {s['subject']}" for s in schemes))
        table.add_row("Sitzungen (Soll)", str(sessions), "")
        table.add_row("Kandidaten-Stunden", str(len(bundle["slots"])),
                      f"{self.window.start_date} – {self.window.end_date}")
        table.add_row("Prüfungen", str(len(bundle["exams"])), "")
        table.add_row("Lehrkraft", "1", f"{self.teacher_name} <{self.teacher_email}>")
        console.print(table)
