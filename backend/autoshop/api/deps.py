"""Shared dependencies for the workflow routers."""

from typing import Awaitable, TypeVar

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.database import get_db
from autoshop.repositories.sql import SqlShopRepository
from autoshop.services.notification_service import NotificationService
from autoshop.workflow.appointments import AppointmentWorkflow
from autoshop.workflow.errors import ErrorKind, Result, WorkflowError
from autoshop.workflow.projects import ProjectWorkflow

T = TypeVar("T")

_ERROR_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.TRANSPORT: status.HTTP_502_BAD_GATEWAY,
}


def get_repository(db: AsyncSession = Depends(get_db)) -> SqlShopRepository:
    return SqlShopRepository(db)


def get_appointment_workflow(
    repository: SqlShopRepository = Depends(get_repository),
) -> AppointmentWorkflow:
    return AppointmentWorkflow(repository)


def get_project_workflow(
    repository: SqlShopRepository = Depends(get_repository),
) -> ProjectWorkflow:
    return ProjectWorkflow(repository)


def get_notifications(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def to_http_exception(error: WorkflowError) -> HTTPException:
    return HTTPException(
        status_code=_ERROR_STATUS.get(error.kind, status.HTTP_400_BAD_REQUEST),
        detail=error.to_dict(),
    )


def unwrap_or_raise(result: Result[T]) -> T:
    """Return the value of a workflow result or raise the matching HTTPException."""
    if result.ok:
        return result.value
    raise to_http_exception(result.error)


async def fetch_or_raise(lookup: Awaitable[T]) -> T:
    """Await a repository read, turning NotFoundError and friends into HTTP errors."""
    try:
        return await lookup
    except WorkflowError as exc:
        raise to_http_exception(exc) from exc
