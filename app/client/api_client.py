"""
Async HTTP client for the assessment API
"""
import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from app.client.results import ApiError, SessionGoneError
from app.utils.identity import USER_ID_HEADER

logger = logging.getLogger(__name__)


class AssessmentApiClient:
    """
    Thin wrapper over ``httpx.AsyncClient``

    Returns decoded JSON bodies. A 404 raises ``SessionGoneError``; any
    other failure, transport errors included, raises ``ApiError``.
    """

    def __init__(self, client: httpx.AsyncClient, user_id: Optional[str] = None):
        self.client = client
        self.user_id = user_id

    async def start_session(self, test_id: str, mode: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/sessions/start", json={"testId": str(test_id), "mode": mode})

    async def patch_session(self, session_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PATCH", f"/api/sessions/{session_id}", json=payload)

    async def submit_session(self, session_id: str, overdue_time: int = 0) -> Dict[str, Any]:
        return await self._request(
            "POST", f"/api/sessions/{session_id}/submit", json={"overdueTime": overdue_time}
        )

    async def abandon_session(self, session_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/sessions/{session_id}")

    async def list_active_sessions(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/sessions/active")

    async def get_test(self, test_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/api/tests/{test_id}")

    async def fetch_endless_batch(
        self,
        level: Optional[str] = None,
        unit: Optional[str] = None,
        exclude: Iterable[str] = (),
        limit: Optional[int] = None
    ) -> Dict[str, Any]:
        params = {}
        if level:
            params["level"] = level
        if unit:
            params["unit"] = unit
        exclude = list(exclude)
        if exclude:
            params["exclude"] = ",".join(exclude)
        if limit:
            params["limit"] = str(limit)
        return await self._request("GET", "/api/endless/batch", params=params)

    async def submit_endless_attempt(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/api/endless/attempt", json=payload)

    def _headers(self) -> Dict[str, str]:
        if self.user_id:
            return {USER_ID_HEADER: str(self.user_id)}
        return {}

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self.client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {url} failed: {str(e)}") from e

        if response.status_code == 404:
            raise SessionGoneError(self._message(response), 404)
        if response.is_error:
            raise ApiError(self._message(response), response.status_code)
        return response.json()

    def _message(self, response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"HTTP {response.status_code}"
