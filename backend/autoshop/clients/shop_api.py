"""HTTP client for a remote shop service-of-record.

Implements ``ShopRepository`` so the workflows can run against the remote
service instead of the local store. Bodies are camelCase JSON and every
response is wrapped as ``{status, message, data, timestamp, path}``.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from pydantic import TypeAdapter
from pydantic.alias_generators import to_camel

from autoshop.config import settings
from autoshop.schemas.appointment import AppointmentRead
from autoshop.schemas.common import ApiEnvelope
from autoshop.schemas.project import ProjectRead
from autoshop.schemas.project_update import ProjectUpdateRead
from autoshop.schemas.task import TaskRead
from autoshop.schemas.time_log import TimeLogRead
from autoshop.schemas.vehicle import VehicleRead
from autoshop.utils.logging import get_logger
from autoshop.workflow.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    TransportError,
    ValidationError,
    WorkflowError,
)

logger = get_logger("clients.shop_api")

_json_fields = TypeAdapter(Dict[str, Any])

_STATUS_ERRORS = {
    400: ValidationError,
    422: ValidationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: InvalidStateError,
}


@dataclass(frozen=True)
class AuthContext:
    """Credentials of the user the client acts for."""
    token: str
    user_id: Optional[int] = None
    role: Optional[str] = None

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def to_wire(fields: Dict[str, Any]) -> Dict[str, Any]:
    """camelCase keys and JSON-safe values (dates, times, decimals, enums)."""
    return _json_fields.dump_python({to_camel(key): value for key, value in fields.items()}, mode="json")


def _params(filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return to_wire({key: value for key, value in filters.items() if value is not None}) or None


class ShopApiClient:
    def __init__(
        self,
        auth: AuthContext,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.auth = auth
        # Attempts per read; 0 or 1 means a single try
        self.max_retries = max(1, settings.shop_api_max_retries if max_retries is None else max_retries)
        self.retry_delay = settings.shop_api_retry_delay_seconds if retry_delay is None else retry_delay
        self.client = httpx.AsyncClient(
            base_url=(base_url or settings.shop_api_base_url).rstrip("/"),
            timeout=httpx.Timeout(timeout or settings.shop_api_timeout_seconds, connect=5.0),
            headers=auth.headers(),
            transport=transport,
        )

    async def __aenter__(self) -> "ShopApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    # ---------------- TRANSPORT ----------------

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        # Only reads are retried
        max_attempts = self.max_retries if method == "GET" else 1
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self.client.request(method, path, json=json, params=params)
            except httpx.RequestError as exc:
                logger.warning(
                    "shop_api_request_failed",
                    method=method,
                    path=path,
                    attempt=attempt,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                if attempt >= max_attempts:
                    raise TransportError("failed to reach the shop service", path=path) from exc
                await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))
                continue

            if response.status_code >= 500 and attempt < max_attempts:
                logger.warning(
                    "shop_api_server_error",
                    method=method,
                    path=path,
                    attempt=attempt,
                    status_code=response.status_code,
                )
                await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))
                continue

            return self._unwrap(method, path, response)

    def _unwrap(self, method: str, path: str, response: httpx.Response) -> Any:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= 400:
            message = None
            if isinstance(payload, dict):
                message = payload.get("message") or payload.get("detail")
            message = message or f"shop service returned status {response.status_code}"
            logger.error(
                "shop_api_error",
                method=method,
                path=path,
                status_code=response.status_code,
                error_message=message,
            )
            error_cls = _STATUS_ERRORS.get(response.status_code)
            if error_cls is None:
                raise TransportError(message, status_code=response.status_code, path=path)
            error: WorkflowError = error_cls(message, status_code=response.status_code, path=path)
            raise error

        if isinstance(payload, dict) and "status" in payload and "data" in payload:
            return ApiEnvelope[Any].model_validate(payload).data
        return payload

    # ---------------- APPOINTMENTS ----------------

    async def list_appointments(self, **filters: Any) -> List[AppointmentRead]:
        data = await self._request("GET", "/appointments", params=_params(filters))
        return [AppointmentRead.model_validate(item) for item in data or []]

    async def get_appointment(self, appointment_id: int) -> AppointmentRead:
        return AppointmentRead.model_validate(await self._request("GET", f"/appointments/{appointment_id}"))

    async def create_appointment(self, fields: Dict[str, Any]) -> AppointmentRead:
        return AppointmentRead.model_validate(
            await self._request("POST", "/appointments", json=to_wire(fields))
        )

    async def patch_appointment(self, appointment_id: int, fields: Dict[str, Any]) -> AppointmentRead:
        return AppointmentRead.model_validate(
            await self._request("PATCH", f"/appointments/{appointment_id}", json=to_wire(fields))
        )

    async def set_appointment_status(self, appointment_id: int, status: str) -> AppointmentRead:
        return AppointmentRead.model_validate(
            await self._request(
                "PATCH", f"/appointments/{appointment_id}/status", json={"status": status}
            )
        )

    # ---------------- PROJECTS ----------------

    async def list_projects(self, **filters: Any) -> List[ProjectRead]:
        data = await self._request("GET", "/projects", params=_params(filters))
        return [ProjectRead.model_validate(item) for item in data or []]

    async def get_project(self, project_id: int) -> ProjectRead:
        return ProjectRead.model_validate(await self._request("GET", f"/projects/{project_id}"))

    async def create_project(self, fields: Dict[str, Any]) -> ProjectRead:
        return ProjectRead.model_validate(await self._request("POST", "/projects", json=to_wire(fields)))

    async def patch_project(self, project_id: int, fields: Dict[str, Any]) -> ProjectRead:
        return ProjectRead.model_validate(
            await self._request("PATCH", f"/projects/{project_id}", json=to_wire(fields))
        )

    async def set_project_status(self, project_id: int, status: str) -> ProjectRead:
        return ProjectRead.model_validate(
            await self._request("PATCH", f"/projects/{project_id}/status", json={"status": status})
        )

    # ---------------- VEHICLES ----------------

    async def get_vehicle(self, vehicle_id: int) -> VehicleRead:
        return VehicleRead.model_validate(await self._request("GET", f"/vehicles/{vehicle_id}"))

    # ---------------- TASKS ----------------

    async def list_tasks(self, task_ids: Optional[List[int]] = None) -> List[TaskRead]:
        tasks = [TaskRead.model_validate(item) for item in await self._request("GET", "/tasks") or []]
        if task_ids is None:
            return tasks
        wanted = set(task_ids)
        return [task for task in tasks if task.task_id in wanted]

    # ---------------- PROJECT UPDATES ----------------

    async def list_project_updates(self, project_id: int) -> List[ProjectUpdateRead]:
        data = await self._request("GET", f"/projects/{project_id}/updates")
        return [ProjectUpdateRead.model_validate(item) for item in data or []]

    async def create_project_update(
        self,
        project_id: int,
        fields: Dict[str, Any],
        complete_project: bool = False,
    ) -> ProjectUpdateRead:
        body = to_wire(fields)
        body["taskProgress"] = [to_wire(entry) for entry in fields.get("task_progress") or []]
        # The service writes the update and the completion in one transaction
        body["completeProject"] = complete_project
        return ProjectUpdateRead.model_validate(
            await self._request("POST", f"/projects/{project_id}/updates", json=body)
        )

    # ---------------- TIME LOGS ----------------

    async def list_time_logs(self, **filters: Any) -> List[TimeLogRead]:
        data = await self._request("GET", "/time-logs", params=_params(filters))
        return [TimeLogRead.model_validate(item) for item in data or []]

    async def create_time_log(self, fields: Dict[str, Any]) -> TimeLogRead:
        return TimeLogRead.model_validate(await self._request("POST", "/time-logs", json=to_wire(fields)))
