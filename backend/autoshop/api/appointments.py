from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.api.deps import (
    fetch_or_raise,
    get_appointment_workflow,
    get_notifications,
    get_repository,
    unwrap_or_raise,
)
from autoshop.database import get_db
from autoshop.models.audit_log import AuditAction
from autoshop.models.notification import NotificationType
from autoshop.models.user import User, UserRole
from autoshop.repositories.sql import SqlShopRepository
from autoshop.schemas.appointment import (
    AppointmentAssign,
    AppointmentComplete,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentRead,
    AppointmentReject,
)
from autoshop.services.notification_service import NotificationService
from autoshop.utils.security import get_current_user, require_admin, require_customer, require_employee
from autoshop.workflow.appointments import AppointmentWorkflow, rejection_reason
from autoshop.workflow.enums import AppointmentStatus

router = APIRouter()


def _ensure_can_view(appointment: AppointmentRead, user: User) -> None:
    if user.is_admin:
        return
    if user.is_customer and appointment.customer_id == user.id:
        return
    if user.is_employee and appointment.employee_id == user.id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not allowed to access this appointment",
    )


def _actor_id(user: User) -> Optional[int]:
    # Admins may act on any appointment; employees only on their own
    return None if user.is_admin else user.id


async def _load_employee(db: AsyncSession, employee_id: int) -> User:
    employee = await db.get(User, employee_id)
    if employee is None or employee.role != UserRole.EMPLOYEE.value or not employee.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Selected employee does not exist or is inactive",
        )
    return employee


async def _record_status_change(
    notifications: NotificationService,
    user: User,
    appointment: AppointmentRead,
    message: str,
) -> None:
    await notifications.audit(
        user.id,
        AuditAction.APPOINTMENT_STATUS_CHANGED,
        "appointment",
        appointment.id,
        {"status": appointment.status.value},
    )
    recipients = [appointment.customer_id]
    if appointment.employee_id is not None:
        recipients.append(appointment.employee_id)
    await notifications.notify_many(
        [uid for uid in recipients if uid != user.id],
        message,
        NotificationType.APPOINTMENT_STATUS_CHANGED,
        related_appointment_id=appointment.id,
    )


@router.get("/", response_model=AppointmentListResponse)
async def list_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    repository: SqlShopRepository = Depends(get_repository),
    current_user: User = Depends(get_current_user),
) -> AppointmentListResponse:
    filters = {"status": status_filter}
    if current_user.is_customer:
        filters["customer_id"] = current_user.id
    elif current_user.is_employee:
        filters["employee_id"] = current_user.id

    appointments = await repository.list_appointments(**filters)
    return AppointmentListResponse(appointments=appointments, total=len(appointments))


@router.get("/{appointment_id}", response_model=AppointmentRead)
async def get_appointment(
    appointment_id: int,
    repository: SqlShopRepository = Depends(get_repository),
    current_user: User = Depends(get_current_user),
) -> AppointmentRead:
    appointment = await fetch_or_raise(repository.get_appointment(appointment_id))
    _ensure_can_view(appointment, current_user)
    return appointment


@router.get("/{appointment_id}/rejection-reason")
async def get_rejection_reason(
    appointment_id: int,
    repository: SqlShopRepository = Depends(get_repository),
    current_user: User = Depends(get_current_user),
) -> dict:
    appointment = await fetch_or_raise(repository.get_appointment(appointment_id))
    _ensure_can_view(appointment, current_user)
    return {"reason": rejection_reason(appointment.notes)}


@router.post("/", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    request: AppointmentCreate,
    workflow: AppointmentWorkflow = Depends(get_appointment_workflow),
    notifications: NotificationService = Depends(get_notifications),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_customer),
) -> AppointmentRead:
    appointment = unwrap_or_raise(
        await workflow.book(
            customer_id=current_user.id,
            vehicle_id=request.vehicle_id,
            consultation_type=request.consultation_type,
            appointment_date=request.appointment_date,
            start_time=request.start_time,
            end_time=request.end_time,
            customer_issue=request.customer_issue,
            notes=request.notes,
        )
    )
    admins = await db.execute(
        select(User.id).where(User.role == UserRole.ADMIN.value, User.is_active.is_(True))
    )
    await notifications.notify_many(
        admins.scalars().all(),
        f"New {appointment.consultation_type_label} booked for {appointment.appointment_date.isoformat()}",
        NotificationType.APPOINTMENT_BOOKED,
        related_appointment_id=appointment.id,
    )
    return appointment


@router.post("/{appointment_id}/assign", response_model=AppointmentRead)
async def assign_employee(
    appointment_id: int,
    request: AppointmentAssign,
    workflow: AppointmentWorkflow = Depends(get_appointment_workflow),
    notifications: NotificationService = Depends(get_notifications),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> AppointmentRead:
    employee = await _load_employee(db, request.employee_id)
    appointment = unwrap_or_raise(await workflow.assign_employee(appointment_id, employee.id))

    await notifications.audit(
        current_user.id,
        AuditAction.APPOINTMENT_ASSIGNED,
        "appointment",
        appointment.id,
        {"employee_id": employee.id},
    )
    await notifications.create_notification(
        employee.id,
        f"You have been assigned appointment #{appointment.id}",
        NotificationType.APPOINTMENT_ASSIGNED,
        related_appointment_id=appointment.id,
    )
    await notifications.create_notification(
        appointment.customer_id,
        f"Your appointment #{appointment.id} has been confirmed with {employee.full_name}",
        NotificationType.APPOINTMENT_STATUS_CHANGED,
        related_appointment_id=appointment.id,
    )
    return appointment


@router.post("/{appointment_id}/approve", response_model=AppointmentRead)
async def approve_appointment(
    appointment_id: int,
    workflow: AppointmentWorkflow = Depends(get_appointment_workflow),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_admin),
) -> AppointmentRead:
    appointment = unwrap_or_raise(await workflow.approve(appointment_id))
    await _record_status_change(
        notifications, current_user, appointment, f"Appointment #{appointment.id} was approved"
    )
    return appointment


@router.post("/{appointment_id}/reject", response_model=AppointmentRead)
async def reject_appointment(
    appointment_id: int,
    request: AppointmentReject,
    workflow: AppointmentWorkflow = Depends(get_appointment_workflow),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_admin),
) -> AppointmentRead:
    appointment = unwrap_or_raise(await workflow.reject(appointment_id, request.reason))
    await _record_status_change(
        notifications,
        current_user,
        appointment,
        f"Appointment #{appointment.id} was rejected: {rejection_reason(appointment.notes)}",
    )
    return appointment


@router.post("/{appointment_id}/start", response_model=AppointmentRead)
async def start_appointment(
    appointment_id: int,
    workflow: AppointmentWorkflow = Depends(get_appointment_workflow),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_employee),
) -> AppointmentRead:
    appointment = unwrap_or_raise(await workflow.start(appointment_id, actor_id=_actor_id(current_user)))
    await _record_status_change(
        notifications, current_user, appointment, f"Appointment #{appointment.id} has started"
    )
    return appointment


@router.post("/{appointment_id}/complete", response_model=AppointmentRead)
async def complete_appointment(
    appointment_id: int,
    request: AppointmentComplete,
    workflow: AppointmentWorkflow = Depends(get_appointment_workflow),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_employee),
) -> AppointmentRead:
    appointment = unwrap_or_raise(
        await workflow.complete(
            appointment_id,
            request.notes,
            task_ids=request.task_ids,
            actor_id=_actor_id(current_user),
        )
    )
    await _record_status_change(
        notifications,
        current_user,
        appointment,
        f"Consultation #{appointment.id} is complete; recommended services are ready to review",
    )
    return appointment


@router.post("/{appointment_id}/cancel", response_model=AppointmentRead)
async def cancel_appointment(
    appointment_id: int,
    workflow: AppointmentWorkflow = Depends(get_appointment_workflow),
    notifications: NotificationService = Depends(get_notifications),
    current_user: User = Depends(require_customer),
) -> AppointmentRead:
    appointment = unwrap_or_raise(await workflow.cancel(appointment_id, current_user.id))
    await _record_status_change(
        notifications, current_user, appointment, f"Appointment #{appointment.id} was cancelled"
    )
    return appointment
