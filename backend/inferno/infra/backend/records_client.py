from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

import httpx

from inferno import config
from inferno.domain.models import Department, Incident

logger = logging.getLogger(__name__)


class BackendError(RuntimeError):
    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class RecordsClient:
    """Client for the departments/incidents REST backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = config.backend_url(base_url)
        self.timeout = timeout
        self._transport = transport

    async def list_departments_raw(self) -> List[dict]:
        return await self._get_json("/api/v1/departments/")

    async def list_incidents_raw(self, department_id: int) -> List[dict]:
        return await self._get_json(f"/api/v1/departments/{department_id}/incidents/")

    async def get_department_raw(self, department_id: int) -> dict:
        return await self._get_json(f"/api/v1/departments/{department_id}")

    async def get_incident_raw(self, incident_id: int) -> dict:
        return await self._get_json(f"/api/v1/incidents/{incident_id}")

    async def get_department(self, department_id: int) -> Department:
        payload = await self.get_department_raw(department_id)
        try:
            return self.map_department(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise BackendError(f"Backend returned an unusable department {department_id}") from exc

    async def list_incidents(self, department_id: int) -> List[Incident]:
        rows = await self.list_incidents_raw(department_id)
        if not isinstance(rows, list):
            raise BackendError(f"Backend returned no incident list for department {department_id}")
        incidents: List[Incident] = []
        for row in rows:
            try:
                incidents.append(self.map_incident(row))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("skipping unmappable incident row for department %s: %s", department_id, exc)
        return incidents

    async def create_department(self, payload: dict) -> Tuple[int, Any]:
        return await self.forward("POST", "/api/v1/departments/", payload)

    async def delete_department(self, department_id: int) -> Tuple[int, Any]:
        return await self.forward("DELETE", f"/api/v1/departments/{department_id}")

    async def create_incident(self, department_id: int, payload: dict) -> Tuple[int, Any]:
        return await self.forward("POST", f"/api/v1/departments/{department_id}/incidents/", payload)

    async def ping(self) -> bool:
        for path in ("/health", "/docs"):
            try:
                async with self._client() as client:
                    resp = await client.get(f"{self.base_url}{path}")
            except httpx.HTTPError:
                continue
            if resp.is_success:
                return True
        return False

    async def forward(self, method: str, path: str, payload: Optional[dict] = None) -> Tuple[int, Any]:
        """Send a request as-is and hand back the backend status and body."""
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as client:
                resp = await client.request(method, url, json=payload, headers={"Accept": "application/json"})
        except httpx.HTTPError as exc:
            raise BackendError(f"Backend unreachable: {exc}") from exc
        if not resp.content:
            return resp.status_code, {"ok": resp.is_success}
        try:
            return resp.status_code, resp.json()
        except ValueError:
            return resp.status_code, {"ok": resp.is_success, "raw": resp.text}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport, follow_redirects=True)

    async def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as client:
                resp = await client.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as exc:
            raise BackendError(f"Backend unreachable: {exc}") from exc
        if not resp.is_success:
            raise BackendError(f"Backend returned {resp.status_code} for {path}", resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise BackendError(f"Backend returned invalid JSON for {path}", resp.status_code) from exc

    @staticmethod
    def map_department(payload: dict) -> Department:
        return Department(
            id=int(payload["id"]),
            name=payload.get("name") or f"Department {payload['id']}",
            city=payload.get("city"),
            state=payload.get("state"),
            address=payload.get("address"),
            neris_department_id=payload.get("neris_department_id"),
        )

    @classmethod
    def map_incident(cls, payload: dict) -> Incident:
        code = payload.get("neris_incident_type_code")
        if code is None:
            code = payload.get("incident_type_code")
        return Incident(
            id=int(payload["id"]),
            department_id=int(payload.get("department_id") or 0),
            occurred_at=cls._parse_ts(payload.get("occurred_at")),
            address=payload.get("address"),
            city=payload.get("city"),
            state=payload.get("state"),
            neris_incident_id=payload.get("neris_incident_id"),
            incident_type_code=str(code).strip() if code is not None else None,
            incident_type_description=payload.get("incident_type_description"),
        )

    @staticmethod
    def _parse_ts(value: Any) -> Optional[datetime]:
        if not value or not isinstance(value, str):
            return None
        if value.endswith("Z"):
            value = value.replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(value)
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
