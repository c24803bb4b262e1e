"""Data-access protocol consumed by the workflows.

Implementations: ``autoshop.repositories.sql.SqlShopRepository`` (local
store) and ``autoshop.clients.shop_api.ShopApiClient`` (remote
service-of-record). Lookups of unknown ids raise ``NotFoundError``;
remote failures raise ``TransportError``.
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from autoshop.schemas.appointment import AppointmentRead
from autoshop.schemas.project import ProjectRead
from autoshop.schemas.project_update import ProjectUpdateRead
from autoshop.schemas.task import TaskRead
from autoshop.schemas.time_log import TimeLogRead
from autoshop.schemas.vehicle import VehicleRead


@runtime_checkable
class ShopRepository(Protocol):
    # Appointments
    async def list_appointments(self, **filters: Any) -> List[AppointmentRead]: ...

    async def get_appointment(self, appointment_id: int) -> AppointmentRead: ...

    async def create_appointment(self, fields: Dict[str, Any]) -> AppointmentRead: ...

    async def patch_appointment(self, appointment_id: int, fields: Dict[str, Any]) -> AppointmentRead: ...

    async def set_appointment_status(self, appointment_id: int, status: str) -> AppointmentRead: ...

    # Projects
    async def list_projects(self, **filters: Any) -> List[ProjectRead]: ...

    async def get_project(self, project_id: int) -> ProjectRead: ...

    async def create_project(self, fields: Dict[str, Any]) -> ProjectRead: ...

    async def patch_project(self, project_id: int, fields: Dict[str, Any]) -> ProjectRead: ...

    async def set_project_status(self, project_id: int, status: str) -> ProjectRead: ...

    # Vehicles
    async def get_vehicle(self, vehicle_id: int) -> VehicleRead: ...

    # Tasks
    async def list_tasks(self, task_ids: Optional[List[int]] = None) -> List[TaskRead]: ...

    # Project updates
    async def list_project_updates(self, project_id: int) -> List[ProjectUpdateRead]: ...

    async def create_project_update(
        self,
        project_id: int,
        fields: Dict[str, Any],
        complete_project: bool = False,
    ) -> ProjectUpdateRead: ...

    # Time logs
    async def list_time_logs(self, **filters: Any) -> List[TimeLogRead]: ...

    async def create_time_log(self, fields: Dict[str, Any]) -> TimeLogRead: ...
