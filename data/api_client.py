"""HTTP-Client für die Remote-Procedure-API (eine URL, Aktion als Parameter).

GET-Aufrufe tragen die Aktion im Query-String, POST-Aufrufe im JSON-Body.
POST wird als text/plain gesendet (die Web-App akzeptiert keinen
CORS-Preflight). Antworten sind meist als {status, data, timestamp}
verpackt; entpackt wird data, sonst gilt der Body selbst.
"""

import json
import logging
from typing import Any, Optional

import httpx

from config.defaults import API_ACTIONS
from config.schema import ApiConfig

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Transport- oder Formatfehler der Remote-API."""

    def __init__(self, action: str, message: str,
                 status_code: Optional[int] = None) -> None:
        super().__init__(f"{action}: {message}")
        self.action = action
        self.status_code = status_code


def unwrap_envelope(body: Any) -> Any:
    """{status, data, timestamp} → data; alles andere unverändert."""
    if isinstance(body, dict) and "data" in body and body["data"] is not None:
        return body["data"]
    return body


class RemoteApiClient:
    """Implementiert alle Quell-Protokolle aus data.sources über HTTP."""

    def __init__(self, config: ApiConfig,
                 client: Optional[httpx.AsyncClient] = None) -> None:
        if not config.base_url:
            raise ValueError("api.base_url ist nicht konfiguriert")
        self.config = config
        self._client = client or httpx.AsyncClient(
            timeout=config.request_timeout_seconds, follow_redirects=True,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RemoteApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ─── Transport ───

    def _decode(self, action: str, response: httpx.Response) -> Any:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"{action} fehlgeschlagen: HTTP {response.status_code}")
            raise ApiError(action, f"HTTP {response.status_code}",
                           status_code=response.status_code) from e
        try:
            body = response.json()
        except ValueError as e:
            raise ApiError(action, "Antwort ist kein gültiges JSON",
                           status_code=response.status_code) from e
        return unwrap_envelope(body)

    async def _get(self, key: str, params: dict[str, Any]) -> Any:
        action = API_ACTIONS[key]
        query = {"action": action, **params}
        logger.debug(f"GET {action} {params}")
        try:
            response = await self._client.get(self.config.base_url, params=query)
        except httpx.HTTPError as e:
            logger.error(f"{action} fehlgeschlagen: {e}")
            raise ApiError(action, str(e) or type(e).__name__) from e
        return self._decode(action, response)

    async def _post(self, key: str, field: str, payload: dict[str, Any]) -> Any:
        action = API_ACTIONS[key]
        body = json.dumps({"action": action, field: payload}, ensure_ascii=False)
        logger.debug(f"POST {action}")
        try:
            response = await self._client.post(
                self.config.base_url,
                content=body.encode("utf-8"),
                headers={"Content-Type": "text/plain;charset=utf-8"},
            )
        except httpx.HTTPError as e:
            logger.error(f"{action} fehlgeschlagen: {e}")
            raise ApiError(action, str(e) or type(e).__name__) from e
        return self._decode(action, response)

    # ─── Quellen ───

    async def fetch_schemes(self, teacher_email: str) -> dict[str, Any]:
        return await self._get("schemes", {"teacherEmail": teacher_email})

    async def fetch_periods(
        self,
        teacher_email: str,
        start_date: str,
        end_date: str,
        exclude_existing: bool,
        class_name: str,
        subject: str,
    ) -> dict[str, Any]:
        return await self._get("periods", {
            "teacherEmail": teacher_email,
            "startDate": start_date,
            "endDate": end_date,
            "excludeExisting": "true" if exclude_existing else "false",
            "class": class_name,
            "subject": subject,
        })

    async def fetch_exams(self, class_name: str, subject: str) -> list[dict[str, Any]]:
        result = await self._get("exams", {"class": class_name, "subject": subject})
        if isinstance(result, dict):
            result = result.get("exams", [])
        return result if isinstance(result, list) else []

    async def create_plan(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post("create", "lessonPlanData", payload)

    async def create_bulk_plans(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post("create_bulk", "bulkPlanData", payload)

    async def suggest(self, context: dict[str, Any]) -> dict[str, Any]:
        return await self._post("suggest", "context", context)
