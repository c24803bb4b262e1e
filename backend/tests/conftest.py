from datetime import date, time
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import autoshop.models  # noqa: F401
from autoshop.database import Base
from autoshop.schemas.appointment import AppointmentRead
from autoshop.schemas.project import ProjectRead
from autoshop.schemas.project_update import ProjectUpdateRead
from autoshop.schemas.task import TaskRead
from autoshop.schemas.time_log import TimeLogRead
from autoshop.schemas.vehicle import VehicleRead
from autoshop.workflow.enums import AppointmentStatus, ProjectStatus, TaskStatus
from autoshop.workflow.errors import NotFoundError


class DummyShopRepository:
    """In-memory ShopRepository that records every write it receives."""

    def __init__(self):
        self.appointments: Dict[int, Dict[str, Any]] = {}
        self.projects: Dict[int, Dict[str, Any]] = {}
        self.tasks: Dict[int, Dict[str, Any]] = {}
        self.vehicles: Dict[int, Dict[str, Any]] = {}
        self.updates: List[Dict[str, Any]] = []
        self.time_logs: List[Dict[str, Any]] = []
        self.writes: List[tuple] = []
        self.reads: List[tuple] = []
        self.add_vehicle(11, customer_id=1)

    # ---- seeding ----

    def add_appointment(self, appointment_id: int, **fields: Any) -> AppointmentRead:
        record = {
            "id": appointment_id,
            "customer_id": 1,
            "vehicle_id": 11,
            "employee_id": None,
            "consultation_type": "GENERAL_CHECKUP",
            "appointment_date": date(2026, 3, 2),
            "start_time": time(9, 0),
            "end_time": time(10, 0),
            "status": AppointmentStatus.PENDING.value,
            "customer_issue": None,
            "notes": None,
            "task_ids": [],
        }
        record.update(fields)
        self.appointments[appointment_id] = record
        return AppointmentRead.model_validate(record)

    def add_project(self, project_id: int, **fields: Any) -> ProjectRead:
        record = {
            "id": project_id,
            "name": f"Project {project_id}",
            "description": "",
            "status": ProjectStatus.CREATED.value,
            "start_date": date(2026, 3, 2),
            "end_date": date(2026, 4, 2),
            "customer_id": 1,
            "vehicle_id": 11,
            "appointment_id": None,
            "task_ids": [],
            "assigned_employee_ids": [],
            "main_representative_employee_id": None,
        }
        record.update(fields)
        self.projects[project_id] = record
        return ProjectRead.model_validate(record)

    def add_task(
        self,
        task_id: int,
        name: Optional[str] = None,
        estimated_cost: str = "0",
        estimated_hours: str = "0",
        status: TaskStatus = TaskStatus.REQUESTED,
    ) -> TaskRead:
        record = {
            "task_id": task_id,
            "name": name or f"Service {task_id}",
            "estimated_cost": Decimal(estimated_cost),
            "estimated_hours": Decimal(estimated_hours),
            "status": status.value,
        }
        self.tasks[task_id] = record
        return TaskRead.model_validate(record)

    def add_vehicle(self, vehicle_id: int, customer_id: int = 1, **fields: Any) -> VehicleRead:
        record = {
            "id": vehicle_id,
            "customer_id": customer_id,
            "vin": f"1HGCM82633A{vehicle_id:06d}",
            "license_plate": f"CAB-{vehicle_id:04d}",
            "make": "Toyota",
            "model": "Corolla",
            "year": 2019,
        }
        record.update(fields)
        self.vehicles[vehicle_id] = record
        return VehicleRead.model_validate(record)

    # ---- vehicles ----

    async def get_vehicle(self, vehicle_id: int) -> VehicleRead:
        self.reads.append(("vehicle", vehicle_id))
        if vehicle_id not in self.vehicles:
            raise NotFoundError(f"vehicle {vehicle_id} not found")
        return VehicleRead.model_validate(self.vehicles[vehicle_id])

    # ---- appointments ----

    async def list_appointments(self, **filters: Any) -> List[AppointmentRead]:
        rows = [
            row for row in self.appointments.values()
            if all(value is None or row.get(key) == value for key, value in filters.items())
        ]
        return [AppointmentRead.model_validate(row) for row in rows]

    async def get_appointment(self, appointment_id: int) -> AppointmentRead:
        self.reads.append(("appointment", appointment_id))
        if appointment_id not in self.appointments:
            raise NotFoundError(f"appointment {appointment_id} not found")
        return AppointmentRead.model_validate(self.appointments[appointment_id])

    async def create_appointment(self, fields: Dict[str, Any]) -> AppointmentRead:
        appointment_id = max(self.appointments, default=0) + 1
        self.writes.append(("create_appointment", appointment_id, dict(fields)))
        self.appointments[appointment_id] = {"id": appointment_id, **fields}
        return AppointmentRead.model_validate(self.appointments[appointment_id])

    async def patch_appointment(self, appointment_id: int, fields: Dict[str, Any]) -> AppointmentRead:
        self.writes.append(("patch_appointment", appointment_id, dict(fields)))
        self.appointments[appointment_id].update(fields)
        return AppointmentRead.model_validate(self.appointments[appointment_id])

    async def set_appointment_status(self, appointment_id: int, status: str) -> AppointmentRead:
        self.writes.append(("set_appointment_status", appointment_id, {"status": status}))
        self.appointments[appointment_id]["status"] = status
        return AppointmentRead.model_validate(self.appointments[appointment_id])

    # ---- projects ----

    async def list_projects(self, **filters: Any) -> List[ProjectRead]:
        rows = [
            row for row in self.projects.values()
            if all(value is None or row.get(key) == value for key, value in filters.items())
        ]
        return [ProjectRead.model_validate(row) for row in rows]

    async def get_project(self, project_id: int) -> ProjectRead:
        self.reads.append(("project", project_id))
        if project_id not in self.projects:
            raise NotFoundError(f"project {project_id} not found")
        return ProjectRead.model_validate(self.projects[project_id])

    async def create_project(self, fields: Dict[str, Any]) -> ProjectRead:
        project_id = max(self.projects, default=0) + 1
        self.writes.append(("create_project", project_id, dict(fields)))
        self.projects[project_id] = {"id": project_id, **fields}
        return ProjectRead.model_validate(self.projects[project_id])

    async def patch_project(self, project_id: int, fields: Dict[str, Any]) -> ProjectRead:
        self.writes.append(("patch_project", project_id, dict(fields)))
        self.projects[project_id].update(fields)
        return ProjectRead.model_validate(self.projects[project_id])

    async def set_project_status(self, project_id: int, status: str) -> ProjectRead:
        self.writes.append(("set_project_status", project_id, {"status": status}))
        self.projects[project_id]["status"] = status
        return ProjectRead.model_validate(self.projects[project_id])

    # ---- tasks, updates, time logs ----

    async def list_tasks(self, task_ids: Optional[List[int]] = None) -> List[TaskRead]:
        rows = [
            row for task_id, row in sorted(self.tasks.items())
            if task_ids is None or task_id in task_ids
        ]
        return [TaskRead.model_validate(row) for row in rows]

    async def list_project_updates(self, project_id: int) -> List[ProjectUpdateRead]:
        return [
            ProjectUpdateRead.model_validate(row) for row in self.updates if row["project_id"] == project_id
        ]

    async def create_project_update(
        self,
        project_id: int,
        fields: Dict[str, Any],
        complete_project: bool = False,
    ) -> ProjectUpdateRead:
        self.writes.append(("create_project_update", project_id, dict(fields), complete_project))
        record = {"id": len(self.updates) + 1, "project_id": project_id, **fields}
        self.updates.append(record)
        if complete_project:
            self.projects[project_id]["status"] = ProjectStatus.COMPLETED.value
        return ProjectUpdateRead.model_validate(record)

    async def list_time_logs(self, **filters: Any) -> List[TimeLogRead]:
        rows = [
            row for row in self.time_logs
            if all(value is None or row.get(key) == value for key, value in filters.items())
        ]
        return [TimeLogRead.model_validate(row) for row in rows]

    async def create_time_log(self, fields: Dict[str, Any]) -> TimeLogRead:
        record = {"log_id": len(self.time_logs) + 1, **fields}
        self.time_logs.append(record)
        return TimeLogRead.model_validate(record)


@pytest.fixture
def repository() -> DummyShopRepository:
    return DummyShopRepository()


@pytest_asyncio.fixture
async def session_maker():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
