# /portal_dashboard/services/portal_api.py

"""
Thin client for the remote portal REST API.

Every portal endpoint answers with an envelope of the form
`{"success": bool, "data": ..., "message": str}`. The client unwraps `data`
on success and raises `PortalAPIError` on any failure, carrying the portal's
own `message` when one was sent. Calls go through `requests`, run in a worker
thread via `asyncio.to_thread` so that several fetches can be in flight on
the event loop at once.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from ..core import config
from ..core.session import SessionContext

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Unable to fetch data."


class PortalAPIError(Exception):
    """A failed portal call. `message` is safe to show to an end user."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


def _message_from_response(response: requests.Response) -> Optional[str]:
    try:
        # 3. UNWRAP: successful responses arrive as `{"data": ...}`.
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str) and body["message"].strip():
        return body["message"]
    return None


class PortalAPIClient:
    def __init__(
        self,
        session: SessionContext,
        base_url: str = config.PORTAL_API_URL,
        timeout: float = config.PORTAL_API_TIMEOUT,
        http: Optional[requests.Session] = None,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({"Content-Type": "application/json"})

    # --- Transport ---

    def _headers(self) -> Dict[str, str]:
        if self.session.token:
            return {"Authorization": f"Bearer {self.session.token}"}
        return {}

    def _request_sync(self, method: str, path: str, params: Optional[Dict[str, Any]] = None, json_body: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        # 1. SEND: transport failures become PortalAPIError with no status.
        try:
            response = self.http.request(
                method, url, params=params, json=json_body,
                headers=self._headers(), timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise PortalAPIError(f"Portal API is unreachable: {e}") from e

        # 2. CHECK STATUS: the portal's own `message` is kept for the caller.
        if not response.ok:
            message = _message_from_response(response) or GENERIC_ERROR_MESSAGE
            payload = None
            try:
                payload = response.json()
            except ValueError:
                pass
            raise PortalAPIError(message, status_code=response.status_code,
                                 payload=payload if isinstance(payload, dict) else None)

        # 3. UNWRAP: successful responses usually arrive as `{"data": ...}`.
        try:
            body = response.json()
        except ValueError as e:
            raise PortalAPIError("Portal API returned a non-JSON response.", status_code=response.status_code) from e

        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await asyncio.to_thread(self._request_sync, "GET", path, params)

    async def _post(self, path: str, json_body: Any) -> Any:
        return await asyncio.to_thread(self._request_sync, "POST", path, None, json_body)

    # --- Student endpoints ---
    async def get_student_dashboard(self) -> Dict: return await self._get("/student/dashboard")
    async def get_student_attendance(self) -> List: return await self._get("/student/attendance")
    async def get_student_marks(self) -> List: return await self._get("/student/marks")
    async def get_student_notices(self) -> List: return await self._get("/student/notices")
    async def get_student_timetable(self) -> List: return await self._get("/student/timetable")
    async def get_student_exam_schedule(self) -> List: return await self._get("/student/exam-schedule")
    async def get_student_fees(self) -> Dict: return await self._get("/student/fees")

    # --- Teacher endpoints ---
    async def get_teacher_dashboard(self) -> Dict: return await self._get("/teacher/dashboard")
    async def get_teacher_courses(self) -> List: return await self._get("/teacher/courses")
    async def get_teacher_assignments(self) -> List: return await self._get("/teacher/assignments")
    async def get_course_students(self, course_id: str) -> List: return await self._get(f"/teacher/courses/{course_id}/students")

    # --- Admin endpoints ---
    async def get_admin_dashboard(self) -> Dict: return await self._get("/admin/dashboard/analytics")

    # --- Auth endpoints ---
    async def login(self, credentials: Dict[str, Any]) -> Dict: return await self._post("/auth/login", credentials)
    async def get_me(self) -> Dict: return await self._get("/auth/me")

    def close(self) -> None:
        self.http.close()
