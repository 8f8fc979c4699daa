"""Schnittstellen der externen Datenquellen.

Die Engine spricht nur gegen diese Protokolle; RemoteApiClient (HTTP) und
InMemorySources (offline/Tests) implementieren sie. Alle Methoden liefern
die bereits entpackten Roh-Dicts/-Listen der Quelle.
"""

from typing import Any, Protocol


class SchemeSource(Protocol):
    async def fetch_schemes(self, teacher_email: str) -> dict[str, Any]:
        """{success, schemes[], planningDateRange?, settings?: {bulkOnly}}"""
        ...


class PeriodSource(Protocol):
    async def fetch_periods(
        self,
        teacher_email: str,
        start_date: str,
        end_date: str,
        exclude_existing: bool,
        class_name: str,
        subject: str,
    ) -> dict[str, Any]:
        """{success, availableSlots[]} oder {success: false, error}"""
        ...


class ExamSource(Protocol):
    async def fetch_exams(self, class_name: str, subject: str) -> list[dict[str, Any]]:
        ...


class PlanWriter(Protocol):
    async def create_plan(self, payload: dict[str, Any]) -> dict[str, Any]:
        ...

    async def create_bulk_plans(self, payload: dict[str, Any]) -> dict[str, Any]:
        ...


class SuggestionSource(Protocol):
    async def suggest(self, context: dict[str, Any]) -> dict[str, Any]:
        ...
