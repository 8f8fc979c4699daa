"""Planungsfenster: Fallback, wenn die Quelle kein planningDateRange liefert."""

from datetime import date, timedelta
from typing import Optional

from models.scheme import PlanningDateRange


def next_monday(today: date) -> date:
    """Nächster Montag strikt nach heute (Sonntag → morgen, Montag → +7)."""
    return today + timedelta(days=7 - today.weekday())


def fallback_planning_range(today: Optional[date] = None,
                            days: int = 5) -> PlanningDateRange:
    """Nächster Montag bis Montag + (days − 1); Einreichen immer erlaubt."""
    start = next_monday(today or date.today())
    end = start + timedelta(days=max(days, 1) - 1)
    return PlanningDateRange(
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        can_submit=True,
        is_fallback=True,
    )


def submission_blocked_reason(planning_range: PlanningDateRange) -> Optional[str]:
    """Meldung, falls das Einreichen heute gesperrt ist, sonst None."""
    if planning_range.can_submit:
        return None
    day = planning_range.preparation_day or "dem Vorbereitungstag"
    return f"Einreichen ist nur an {day} möglich. Auswahl der Stunde bleibt erlaubt."
