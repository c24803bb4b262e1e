"""ShopRepository over the local SQLAlchemy store.

Each mutation is applied with a single flush inside the caller's
transaction; ``get_db`` commits or rolls back the whole request.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.database import Base
from autoshop.models.appointment import Appointment
from autoshop.models.project import Project
from autoshop.models.project_update import ProjectUpdate
from autoshop.models.task import Task
from autoshop.models.time_log import TimeLog
from autoshop.models.vehicle import Vehicle
from autoshop.schemas.appointment import AppointmentRead
from autoshop.schemas.project import ProjectRead
from autoshop.schemas.project_update import ProjectUpdateRead
from autoshop.schemas.task import TaskRead
from autoshop.schemas.time_log import TimeLogRead
from autoshop.schemas.vehicle import VehicleRead
from autoshop.utils.logging import get_logger
from autoshop.workflow.enums import ProjectStatus
from autoshop.workflow.errors import NotFoundError, ValidationError

M = TypeVar("M", bound=Base)

logger = get_logger("repositories.sql")


class SqlShopRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, model: Type[M], entity_id: int, label: str) -> M:
        entity = await self.db.get(model, entity_id)
        if entity is None:
            raise NotFoundError(f"{label} {entity_id} not found", **{f"{label}_id": entity_id})
        return entity

    async def _list(self, model: Type[M], filters: Dict[str, Any], order_by) -> List[M]:
        query = select(model)
        for key, value in filters.items():
            if value is None:
                continue
            column = getattr(model, key, None)
            if column is None:
                raise ValidationError(f"unknown filter {key!r}")
            query = query.where(column == getattr(value, "value", value))
        result = await self.db.execute(query.order_by(*order_by))
        return list(result.scalars().all())

    async def _patch(self, entity: M, fields: Dict[str, Any]) -> M:
        for key, value in fields.items():
            setattr(entity, key, value)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def _add(self, entity: M) -> M:
        self.db.add(entity)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    # ---------------- APPOINTMENTS ----------------

    async def list_appointments(self, **filters: Any) -> List[AppointmentRead]:
        rows = await self._list(
            Appointment, filters, (Appointment.appointment_date, Appointment.start_time, Appointment.id)
        )
        return [AppointmentRead.model_validate(row) for row in rows]

    async def get_appointment(self, appointment_id: int) -> AppointmentRead:
        return AppointmentRead.model_validate(await self._get(Appointment, appointment_id, "appointment"))

    async def create_appointment(self, fields: Dict[str, Any]) -> AppointmentRead:
        appointment = await self._add(Appointment(**fields))
        logger.info("appointment_inserted", appointment_id=appointment.id)
        return AppointmentRead.model_validate(appointment)

    async def patch_appointment(self, appointment_id: int, fields: Dict[str, Any]) -> AppointmentRead:
        appointment = await self._get(Appointment, appointment_id, "appointment")
        return AppointmentRead.model_validate(await self._patch(appointment, fields))

    async def set_appointment_status(self, appointment_id: int, status: str) -> AppointmentRead:
        return await self.patch_appointment(appointment_id, {"status": status})

    # ---------------- PROJECTS ----------------

    async def list_projects(self, **filters: Any) -> List[ProjectRead]:
        rows = await self._list(Project, filters, (Project.created_at.desc(), Project.id.desc()))
        return [ProjectRead.model_validate(row) for row in rows]

    async def get_project(self, project_id: int) -> ProjectRead:
        return ProjectRead.model_validate(await self._get(Project, project_id, "project"))

    async def create_project(self, fields: Dict[str, Any]) -> ProjectRead:
        project = await self._add(Project(**fields))
        logger.info("project_inserted", project_id=project.id)
        return ProjectRead.model_validate(project)

    async def patch_project(self, project_id: int, fields: Dict[str, Any]) -> ProjectRead:
        project = await self._get(Project, project_id, "project")
        return ProjectRead.model_validate(await self._patch(project, fields))

    async def set_project_status(self, project_id: int, status: str) -> ProjectRead:
        return await self.patch_project(project_id, {"status": status})

    # ---------------- VEHICLES ----------------

    async def get_vehicle(self, vehicle_id: int) -> VehicleRead:
        return VehicleRead.model_validate(await self._get(Vehicle, vehicle_id, "vehicle"))

    # ---------------- TASKS ----------------

    async def list_tasks(self, task_ids: Optional[List[int]] = None) -> List[TaskRead]:
        query = select(Task).order_by(Task.id)
        if task_ids is not None:
            query = query.where(Task.id.in_(list(task_ids)))
        result = await self.db.execute(query)
        return [TaskRead.model_validate(row) for row in result.scalars().all()]

    # ---------------- PROJECT UPDATES ----------------

    async def list_project_updates(self, project_id: int) -> List[ProjectUpdateRead]:
        result = await self.db.execute(
            select(ProjectUpdate)
            .where(ProjectUpdate.project_id == project_id)
            .order_by(ProjectUpdate.created_at, ProjectUpdate.id)
        )
        return [ProjectUpdateRead.model_validate(row) for row in result.scalars().all()]

    async def create_project_update(
        self,
        project_id: int,
        fields: Dict[str, Any],
        complete_project: bool = False,
    ) -> ProjectUpdateRead:
        project = await self._get(Project, project_id, "project")
        update = ProjectUpdate(project_id=project_id, **fields)
        self.db.add(update)
        if complete_project:
            project.status = ProjectStatus.COMPLETED.value
        # Update row and completion land in the same flush
        await self.db.flush()
        await self.db.refresh(update)
        if complete_project:
            await self.db.refresh(project)
        return ProjectUpdateRead.model_validate(update)

    # ---------------- TIME LOGS ----------------

    async def list_time_logs(self, **filters: Any) -> List[TimeLogRead]:
        rows = await self._list(TimeLog, filters, (TimeLog.start_time, TimeLog.id))
        return [TimeLogRead.model_validate(row) for row in rows]

    async def create_time_log(self, fields: Dict[str, Any]) -> TimeLogRead:
        return TimeLogRead.model_validate(await self._add(TimeLog(**fields)))
