"""Fehlerklassen der Planungs-Engine.

Vier Kategorien: Ladefehler, Validierungsfehler, Sperren (Gate) und
Schreibfehler. Alle erben von PlanningError, damit die CLI sie einheitlich
abfangen kann.
"""


class PlanningError(Exception):
    """Basisklasse aller Engine-Fehler."""


class SchemeLoadError(PlanningError):
    """Pläne, Perioden oder Prüfungen konnten nicht geladen werden.

    Der zuvor geladene Baum bleibt unverändert erhalten.
    """


class PlanValidationError(PlanningError):
    """Lokale Validierung fehlgeschlagen – es wird nichts gesendet."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class GateViolationError(PlanningError):
    """Vorbereitung ist gesperrt (Kapitel-Gate oder Nur-Sammelplanung)."""


class PlanWriteError(PlanningError):
    """Die Plan-Erstellung wurde abgelehnt oder lieferte eine ungültige Antwort.

    Lokal wird nichts optimistisch aktualisiert; das Formular bleibt offen.
    """
