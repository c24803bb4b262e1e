"""Admin endpoints for shop accounts and the employee roster."""

from collections import Counter
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.api.deps import get_notifications
from autoshop.database import get_db
from autoshop.models.appointment import Appointment
from autoshop.models.audit_log import AuditAction, AuditLog
from autoshop.models.project import Project
from autoshop.models.user import User, UserRole
from autoshop.schemas.audit import AuditEntry
from autoshop.schemas.user import EmployeeWorkload, UserCreate, UserListResponse, UserResponse, UserUpdate
from autoshop.services.notification_service import NotificationService
from autoshop.utils.logging import get_logger
from autoshop.utils.security import get_password_hash, require_admin
from autoshop.workflow.enums import AppointmentStatus, ProjectStatus

router = APIRouter()
logger = get_logger("api.admin")

_OPEN_APPOINTMENTS = (AppointmentStatus.CONFIRMED.value, AppointmentStatus.IN_PROGRESS.value)
_ACTIVE_PROJECTS = (ProjectStatus.CONFIRMED.value, ProjectStatus.IN_PROGRESS.value)


async def _user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> UserListResponse:
    query = select(User)
    if role:
        query = query.where(User.role == role.value)
    if is_active is not None:
        query = query.where(User.is_active == is_active)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(User.email.ilike(pattern) | User.full_name.ilike(pattern))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    users = (await db.execute(query.order_by(User.full_name))).scalars().all()
    return UserListResponse(users=[UserResponse.model_validate(user) for user in users], total=total)


@router.get("/employees", response_model=list[EmployeeWorkload])
async def employee_workload(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> list[EmployeeWorkload]:
    """Active employees with their open appointments and active projects, least busy first."""
    employees = (
        await db.execute(
            select(User).where(User.role == UserRole.EMPLOYEE.value, User.is_active.is_(True))
        )
    ).scalars().all()

    appointment_counts = dict(
        (
            await db.execute(
                select(Appointment.employee_id, func.count())
                .where(Appointment.status.in_(_OPEN_APPOINTMENTS))
                .group_by(Appointment.employee_id)
            )
        ).all()
    )
    # Project teams are stored as a JSON id list
    project_counts = Counter(
        employee_id
        for team in (
            await db.execute(select(Project.assigned_employee_ids).where(Project.status.in_(_ACTIVE_PROJECTS)))
        ).scalars()
        for employee_id in set(team or [])
    )

    roster = [
        EmployeeWorkload(
            id=employee.id,
            full_name=employee.full_name,
            open_appointments=appointment_counts.get(employee.id, 0),
            active_projects=project_counts[employee.id],
        )
        for employee in employees
    ]
    return sorted(roster, key=lambda e: (e.open_appointments + e.active_projects, e.full_name))


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> User:
    """Open an employee, customer or admin account."""
    email = request.email.lower()
    if (await db.execute(select(User.id).where(User.email == email))).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = User(
        email=email,
        hashed_password=get_password_hash(request.password),
        full_name=request.full_name,
        phone=request.phone,
        role=request.role,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    logger.info("account_created", user_id=user.id, role=user.role, by=current_user.id)
    return user


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> User:
    return await _user_or_404(db, user_id)


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    request: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    notifications: NotificationService = Depends(get_notifications),
) -> User:
    user = await _user_or_404(db, user_id)
    changes = request.model_dump(exclude_unset=True, exclude_none=True)

    new_role = changes.get("role")
    if new_role and new_role != user.role:
        if user.id == current_user.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Admins cannot change their own role")
        await notifications.audit(
            current_user.id,
            AuditAction.USER_ROLE_CHANGED,
            "user",
            user.id,
            {"from": user.role, "to": new_role},
        )

    for field, value in changes.items():
        setattr(user, field, value)
    await db.flush()
    await db.refresh(user)
    return user


@router.get("/audit", response_model=list[AuditEntry])
async def audit_trail(
    entity_type: str,
    entity_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> list[AuditLog]:
    """Who changed an appointment, project or account, oldest first."""
    result = await db.execute(
        select(AuditLog)
        .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.created_at, AuditLog.id)
    )
    return list(result.scalars())
