from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.api.deps import (
    fetch_or_raise,
    get_notifications,
    get_project_workflow,
    get_repository,
    unwrap_or_raise,
)
from autoshop.config import settings
from autoshop.database import get_db
from autoshop.models.audit_log import AuditAction
from autoshop.models.notification import NotificationType
from autoshop.models.user import User, UserRole
from autoshop.repositories.sql import SqlShopRepository
from autoshop.schemas.project import (
    ProjectCreate,
    ProjectEmployeesAssign,
    ProjectListResponse,
    ProjectProgress,
    ProjectRead,
)
from autoshop.schemas.project_update import (
    ProjectCompleteRequest,
    ProjectUpdateCreate,
    ProjectUpdateRead,
)
from autoshop.schemas.report import ExtraCharge, ReportResponse, ReportSubmit, ReportView
from autoshop.services.notification_service import NotificationService
from autoshop.utils.logging import get_logger
from autoshop.utils.security import get_current_user, require_admin, require_customer, require_employee
from autoshop.workflow.enums import ProjectStatus
from autoshop.workflow.errors import ValidationError
from autoshop.workflow.projects import ProjectWorkflow
from autoshop.workflow.reports import parse_report

router = APIRouter()
logger = get_logger("api.projects")


def _can_view(project: ProjectRead, user: User) -> bool:
    if user.is_admin:
        return True
    if user.is_customer:
        return project.customer_id == user.id
    return user.id in project.assigned_employee_ids


async def _get_visible_project(
    repository: SqlShopRepository, project_id: int, user: User
) -> ProjectRead:
    project = await fetch_or_raise(repository.get_project(project_id))
    if not _can_view(project, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to access this project",
        )
    return project


async def _notify_status(
    notifications: NotificationService,
    user: User,
    project: ProjectRead,
    message: str,
) -> None:
    await notifications.audit(
        user.id,
        AuditAction.PROJECT_STATUS_CHANGED,
        "project",
        project.id,
        {"status": project.status.value},
    )
    recipients = [project.customer_id, *project.assigned_employee_ids]
    await notifications.notify_many(
        [uid for uid in recipients if uid != user.id],
        message,
        NotificationType.PROJECT_STATUS_CHANGED,
        related_project_id=project.id,
    )


@router.get("/", response_model=ProjectListResponse)
async def list_projects(
    pending: Optional[bool] = Query(None),
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    current_user: User = Depends(get_current_user),
) -> ProjectListResponse:
    filters = {"status": status_filter}
    if current_user.is_customer:
        filters["customer_id"] = current_user.id

    projects = await workflow.list_projects(pending=pending, **filters)
    if current_user.is_employee:
        projects = [p for p in projects if current_user.id in p.assigned_employee_ids]
    return ProjectListResponse(projects=projects, total=len(projects))


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: int,
    repository: SqlShopRepository = Depends(get_repository),
    current_user: User = Depends(get_current_user),
) -> ProjectRead:
    return await _get_visible_project(repository, project_id, current_user)


@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: ProjectCreate,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    notifications: NotificationService = Depends(get_notifications),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_customer),
) -> ProjectRead:
    project = unwrap_or_raise(
        await workflow.create_from_appointment(
            current_user.id,
            request.appointment_id,
            request.task_ids,
            name=request.name,
            description=request.description,
            start_date=request.start_date,
            end_date=request.end_date,
        )
    )
    admins = await db.execute(
        select(User.id).where(User.role == UserRole.ADMIN.value, User.is_active.is_(True))
    )
    await notifications.notify_many(
        admins.scalars().all(),
        f"New project '{project.name}' is waiting for employee assignment",
        NotificationType.PROJECT_CREATED,
        related_project_id=project.id,
    )
    return project


@router.put("/{project_id}/employees", response_model=ProjectRead)
async def assign_employees(
    project_id: int,
    request: ProjectEmployeesAssign,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    notifications: NotificationService = Depends(get_notifications),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> ProjectRead:
    if request.employee_ids:
        result = await db.execute(
            select(User.id).where(
                User.id.in_(request.employee_ids),
                User.role == UserRole.EMPLOYEE.value,
                User.is_active.is_(True),
            )
        )
        found = set(result.scalars().all())
        unknown = [eid for eid in request.employee_ids if eid not in found]
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Unknown or inactive employees", "employee_ids": unknown},
            )

    project = unwrap_or_raise(
        await workflow.assign_employees(
            project_id,
            request.employee_ids,
            main_rep_id=request.main_representative_employee_id,
        )
    )
    await notifications.audit(
        current_user.id,
        AuditAction.PROJECT_EMPLOYEES_ASSIGNED,
        "project",
        project.id,
        {
            "employee_ids": project.assigned_employee_ids,
            "main_representative_employee_id": project.main_representative_employee_id,
        },
    )
    await notifications.notify_many(
        project.assigned_employee_ids,
        f"You have been assigned to project '{project.name}'",
        NotificationType.PROJECT_ASSIGNED,
        related_project_id=project.id,
    )
    logger.info(
        "project_team_updated",
        project_id=project.id,
        employee_ids=project.assigned_employee_ids,
        main_representative=project.main_representative_employee_id,
    )
    return project


@router.post("/{project_id}/approve", response_model=ProjectRead)
async def approve_project(
    project_id: int,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_admin),
) -> ProjectRead:
    project = unwrap_or_raise(await workflow.approve(project_id))
    await _notify_status(notifications, current_user, project, f"Project '{project.name}' is now in progress")
    return project


@router.post("/{project_id}/reject", response_model=ProjectRead)
async def reject_project(
    project_id: int,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_admin),
) -> ProjectRead:
    project = unwrap_or_raise(await workflow.reject(project_id))
    await _notify_status(notifications, current_user, project, f"Project '{project.name}' was rejected")
    return project


@router.post("/{project_id}/recommend", response_model=ProjectRead)
async def recommend_project(
    project_id: int,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_employee),
) -> ProjectRead:
    project = unwrap_or_raise(await workflow.recommend(project_id))
    await _notify_status(
        notifications, current_user, project, f"Services for '{project.name}' are ready for your review"
    )
    return project


@router.post("/{project_id}/confirm", response_model=ProjectRead)
async def confirm_project(
    project_id: int,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_customer),
) -> ProjectRead:
    project = unwrap_or_raise(await workflow.confirm(project_id, current_user.id))
    await _notify_status(notifications, current_user, project, f"Project '{project.name}' was confirmed")
    return project


@router.post("/{project_id}/cancel", response_model=ProjectRead)
async def cancel_project(
    project_id: int,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_customer),
) -> ProjectRead:
    project = unwrap_or_raise(await workflow.cancel(project_id, current_user.id))
    await _notify_status(notifications, current_user, project, f"Project '{project.name}' was cancelled")
    return project


@router.get("/{project_id}/updates", response_model=List[ProjectUpdateRead])
async def list_project_updates(
    project_id: int,
    repository: SqlShopRepository = Depends(get_repository),
    current_user: User = Depends(get_current_user),
) -> List[ProjectUpdateRead]:
    await _get_visible_project(repository, project_id, current_user)
    return await repository.list_project_updates(project_id)


@router.post(
    "/{project_id}/updates",
    response_model=ProjectUpdateRead,
    status_code=status.HTTP_201_CREATED,
)
async def post_project_update(
    project_id: int,
    request: ProjectUpdateCreate,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    repository: SqlShopRepository = Depends(get_repository),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_employee),
) -> ProjectUpdateRead:
    update = unwrap_or_raise(await workflow.post_update(project_id, current_user.id, request))
    project = await repository.get_project(project_id)
    await notifications.create_notification(
        project.customer_id,
        f"New update on '{project.name}': {update.message}",
        NotificationType.PROJECT_UPDATE_POSTED,
        related_project_id=project.id,
    )
    return update


@router.post("/{project_id}/complete", response_model=ProjectUpdateRead)
async def complete_project(
    project_id: int,
    request: ProjectCompleteRequest,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    repository: SqlShopRepository = Depends(get_repository),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_employee),
) -> ProjectUpdateRead:
    update = unwrap_or_raise(
        await workflow.mark_completed(
            project_id,
            current_user.id,
            request.completion_message,
            task_progress=request.task_progress,
        )
    )
    project = await repository.get_project(project_id)
    await _notify_status(notifications, current_user, project, f"Project '{project.name}' is complete")
    return update


@router.get("/{project_id}/progress", response_model=ProjectProgress)
async def get_project_progress(
    project_id: int,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    repository: SqlShopRepository = Depends(get_repository),
    current_user: User = Depends(get_current_user),
) -> ProjectProgress:
    await _get_visible_project(repository, project_id, current_user)
    return unwrap_or_raise(await workflow.progress(project_id))


@router.post("/{project_id}/report", response_model=ReportResponse)
async def submit_report(
    project_id: int,
    request: ReportSubmit,
    workflow: ProjectWorkflow = Depends(get_project_workflow),
    repository: SqlShopRepository = Depends(get_repository),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_employee),
) -> ReportResponse:
    report = unwrap_or_raise(
        await workflow.submit_report(
            project_id,
            current_user.id,
            request.task_ids,
            request.extra_charges,
            notes=request.notes,
            submitted_by=current_user.full_name,
        )
    )
    project = await repository.get_project(project_id)
    await notifications.audit(
        current_user.id,
        AuditAction.PROJECT_REPORT_SUBMITTED,
        "project",
        project.id,
        {"total_cost": report.total_cost},
    )
    await notifications.create_notification(
        project.customer_id,
        f"A completion report for '{project.name}' is available",
        NotificationType.PROJECT_REPORT_SUBMITTED,
        related_project_id=project.id,
    )
    return ReportResponse(
        project_id=project.id,
        services_cost=report.services_cost,
        extra_charges_total=report.extra_charges_total,
        total_cost=report.total_cost,
        total_hours=report.total_hours,
        text=report.to_text(settings.currency_code),
    )


@router.get("/{project_id}/report", response_model=ReportView)
async def get_report(
    project_id: int,
    repository: SqlShopRepository = Depends(get_repository),
    current_user: User = Depends(get_current_user),
) -> ReportView:
    project = await _get_visible_project(repository, project_id, current_user)
    try:
        parsed = parse_report(project.description)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No report has been submitted for this project",
        )
    return ReportView(
        project_id=project.id,
        submitted_by=parsed.submitted_by,
        submitted_on=parsed.submitted_on,
        service_names=parsed.service_names,
        services_cost=parsed.services_cost,
        extra_charges_total=parsed.extra_charges_total,
        extra_charges=[
            ExtraCharge(description=charge.description, amount=charge.amount)
            for charge in parsed.extra_charges
        ],
        notes=parsed.notes,
    )
