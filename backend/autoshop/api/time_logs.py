from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from autoshop.api.deps import fetch_or_raise, get_repository, to_http_exception
from autoshop.models.user import User
from autoshop.repositories.sql import SqlShopRepository
from autoshop.schemas.time_log import (
    ProjectTimeLogSummary,
    TimeLogCreate,
    TimeLogListResponse,
    TimeLogRead,
)
from autoshop.utils.logging import get_logger
from autoshop.utils.security import require_employee
from autoshop.workflow.errors import ValidationError
from autoshop.workflow.time_logs import hours_worked, project_time_summary

router = APIRouter()
logger = get_logger("api.time_logs")


@router.post("/", response_model=TimeLogRead, status_code=status.HTTP_201_CREATED)
async def create_time_log(
    request: TimeLogCreate,
    repository: SqlShopRepository = Depends(get_repository),
    current_user: User = Depends(require_employee),
) -> TimeLogRead:
    try:
        hours = hours_worked(request.start_time, request.end_time)
    except ValidationError as exc:
        raise to_http_exception(exc) from exc

    time_log = await repository.create_time_log(
        {
            "employee_id": current_user.id,
            "description": request.description,
            "start_time": request.start_time,
            "end_time": request.end_time,
            "hours_worked": hours,
            "task_id": request.task_id,
            "project_id": request.project_id,
            "appointment_id": request.appointment_id,
        }
    )
    logger.info(
        "time_logged",
        log_id=time_log.log_id,
        employee_id=current_user.id,
        hours=hours,
        project_id=request.project_id,
    )
    return time_log


@router.get("/", response_model=TimeLogListResponse)
async def list_time_logs(
    project_id: Optional[int] = Query(None, alias="projectId"),
    appointment_id: Optional[int] = Query(None, alias="appointmentId"),
    repository: SqlShopRepository = Depends(get_repository),
    current_user: User = Depends(require_employee),
) -> TimeLogListResponse:
    filters = {"project_id": project_id, "appointment_id": appointment_id}
    if not current_user.is_admin:
        filters["employee_id"] = current_user.id
    logs = await repository.list_time_logs(**filters)
    return TimeLogListResponse(time_logs=logs, total=len(logs))


@router.get("/projects/{project_id}/summary", response_model=ProjectTimeLogSummary)
async def get_project_time_summary(
    project_id: int,
    repository: SqlShopRepository = Depends(get_repository),
    current_user: User = Depends(require_employee),
) -> ProjectTimeLogSummary:
    project = await fetch_or_raise(repository.get_project(project_id))
    tasks = await repository.list_tasks(project.task_ids)
    logs = await repository.list_time_logs(project_id=project_id)
    return project_time_summary(project, tasks, logs)
