"""Service catalog: the tasks customers pick from and employees recommend."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.api.deps import to_http_exception
from autoshop.database import get_db
from autoshop.models.appointment import Appointment
from autoshop.models.project import Project
from autoshop.models.task import Task
from autoshop.models.user import User
from autoshop.schemas.task import TaskCreate, TaskListResponse, TaskRead, TaskStatusUpdate
from autoshop.utils.logging import get_logger
from autoshop.utils.security import get_current_user, require_admin
from autoshop.workflow.errors import AuthorizationError, InvalidStateError
from autoshop.workflow.policy import TASK_ACTION_ROLES, TASK_ACTIONS, EntityType, TransitionContext, can_transition

router = APIRouter()
logger = get_logger("api.tasks")


@router.get("/", response_model=TaskListResponse)
async def list_tasks(
    category: Optional[str] = None,
    appointment_id: Optional[int] = Query(None, alias="appointmentId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TaskListResponse:
    query = select(Task)
    if category:
        query = query.where(Task.category == category)
    if appointment_id is not None:
        query = query.where(Task.appointment_id == appointment_id)
    result = await db.execute(query.order_by(Task.id))
    tasks = [TaskRead.model_validate(task) for task in result.scalars().all()]
    return TaskListResponse(tasks=tasks, total=len(tasks))


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TaskRead:
    task = await db.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return TaskRead.model_validate(task)


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    request: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> TaskRead:
    task = Task(
        name=request.name,
        description=request.description,
        estimated_hours=request.estimated_hours,
        estimated_cost=request.estimated_cost,
        category=request.category,
        priority=request.priority.value,
        status=request.status.value,
        appointment_id=request.appointment_id,
        notes=request.notes,
    )
    db.add(task)
    await db.flush()
    await db.refresh(task)
    logger.info("task_created", task_id=task.id, name=task.name)
    return TaskRead.model_validate(task)


async def _works_on_task(db: AsyncSession, task: Task, user: User) -> bool:
    """Whether the task is on one of the caller's appointments or projects."""
    if user.is_admin:
        return True

    appointments = select(Appointment)
    projects = select(Project)
    if user.is_customer:
        appointments = appointments.where(Appointment.customer_id == user.id)
        projects = projects.where(Project.customer_id == user.id)
    else:
        appointments = appointments.where(Appointment.employee_id == user.id)

    for appointment in (await db.execute(appointments)).scalars():
        if appointment.id == task.appointment_id or task.id in (appointment.task_ids or []):
            return True
    for project in (await db.execute(projects)).scalars():
        # Project teams live in a JSON column, so membership is checked here
        if user.is_employee and user.id not in (project.assigned_employee_ids or []):
            continue
        if task.id in (project.task_ids or []):
            return True
    return False


@router.patch("/{task_id}/status", response_model=TaskRead)
async def update_task_status(
    task_id: int,
    request: TaskStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TaskRead:
    """Customers accept or reject services; staff recommend, start and complete them."""
    task = await db.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

    target = request.status.value
    action = TASK_ACTIONS.get(target)
    if action is None or current_user.role not in TASK_ACTION_ROLES[action]:
        raise to_http_exception(
            AuthorizationError(f"{current_user.role} cannot set a service to {target}", task_id=task.id)
        )
    if not await _works_on_task(db, task, current_user):
        raise to_http_exception(AuthorizationError("service is not on your work", task_id=task.id))

    decision = can_transition(EntityType.TASK, task.status, target, TransitionContext(action=action))
    if not decision.allowed:
        raise to_http_exception(InvalidStateError(decision.reason, task_id=task.id, status=task.status))

    previous = task.status
    task.status = target
    await db.flush()
    await db.refresh(task)
    logger.info(
        "task_status_changed",
        task_id=task.id,
        from_status=previous,
        to_status=task.status,
        user_id=current_user.id,
    )
    return TaskRead.model_validate(task)
