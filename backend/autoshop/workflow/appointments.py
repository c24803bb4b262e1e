"""Appointment workflow: booking, assignment, approval, rejection and completion."""

from datetime import date, time
from typing import List, Optional

from autoshop.config import settings
from autoshop.schemas.appointment import AppointmentRead
from autoshop.utils.logging import WorkflowLogger, get_logger
from autoshop.workflow.assignment import dedupe_ids
from autoshop.workflow.enums import AppointmentStatus, ConsultationType
from autoshop.workflow.errors import (
    AuthorizationError,
    InvalidStateError,
    ValidationError,
    workflow_operation,
)
from autoshop.workflow.policy import (
    Action,
    EntityType,
    TransitionContext,
    TransitionDecision,
    Violation,
    can_transition,
    is_terminal,
)
from autoshop.workflow.repository import ShopRepository

REJECTION_PREFIX = "REJECTED: "


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def validate_time_range(start_time: time, end_time: time, min_minutes: Optional[int] = None) -> None:
    """Raise ValidationError unless the slot ends after it starts and is long enough."""
    min_minutes = settings.min_appointment_minutes if min_minutes is None else min_minutes
    if _minutes(end_time) <= _minutes(start_time):
        raise ValidationError("end time must be after start time")
    if _minutes(end_time) - _minutes(start_time) < min_minutes:
        raise ValidationError(f"appointment must be at least {min_minutes} minutes long")


def time_ranges_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    # Half-open: a slot ending at 10:00 does not clash with one starting at 10:00
    return start_a < end_b and start_b < end_a


def rejection_reason(notes: Optional[str]) -> Optional[str]:
    """Reason shown to the customer for a rejected appointment, if any."""
    if not notes or not notes.startswith(REJECTION_PREFIX):
        return None
    return notes[len(REJECTION_PREFIX):].split("\n", 1)[0]


class AppointmentWorkflow:
    """Orchestrates appointment status changes through the transition policy."""

    def __init__(self, repository: ShopRepository):
        self.repository = repository
        self.logger = get_logger("workflow.appointments")

    def _decide(
        self,
        appointment: AppointmentRead,
        target: AppointmentStatus,
        action: Action,
        rejection_reason: Optional[str] = None,
    ) -> TransitionDecision:
        context = TransitionContext(
            action=action,
            has_employee=appointment.employee_id is not None,
            rejection_reason=rejection_reason,
        )
        return can_transition(EntityType.APPOINTMENT, appointment.status, target, context)

    async def _authorize(
        self,
        appointment: AppointmentRead,
        target: AppointmentStatus,
        action: Action,
        rejection_reason: Optional[str] = None,
    ) -> AppointmentRead:
        """Return the appointment the transition may be applied to, or raise.

        A state denial may come from a stale copy, so the appointment is
        re-read once before giving up.
        """
        decision = self._decide(appointment, target, action, rejection_reason)
        if not decision.allowed and decision.violation is Violation.STATE:
            appointment = await self.repository.get_appointment(appointment.id)
            decision = self._decide(appointment, target, action, rejection_reason)

        if decision.allowed:
            return appointment
        error_cls = ValidationError if decision.violation is Violation.PRECONDITION else InvalidStateError
        raise error_cls(
            decision.reason,
            appointment_id=appointment.id,
            current_status=appointment.status.value,
            target_status=target.value,
        )

    def _transitioned(self, before: AppointmentRead, after: AppointmentRead, action: Action) -> AppointmentRead:
        WorkflowLogger("appointment", after.id).transition(
            before.status.value, after.status.value, action.value
        )
        return after

    @staticmethod
    def _check_actor(appointment: AppointmentRead, actor_id: Optional[int]) -> None:
        if actor_id is not None and appointment.employee_id != actor_id:
            raise AuthorizationError(
                "appointment is assigned to another employee",
                appointment_id=appointment.id,
            )

    @workflow_operation("appointment_booked")
    async def book(
        self,
        customer_id: int,
        vehicle_id: int,
        consultation_type: ConsultationType,
        appointment_date: date,
        start_time: time,
        end_time: time,
        customer_issue: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> AppointmentRead:
        validate_time_range(start_time, end_time)

        vehicle = await self.repository.get_vehicle(vehicle_id)
        if vehicle.customer_id != customer_id:
            raise AuthorizationError(
                "vehicle belongs to another customer",
                vehicle_id=vehicle_id,
                customer_id=customer_id,
            )

        existing = await self.repository.list_appointments(customer_id=customer_id)
        for other in existing:
            if (
                other.appointment_date == appointment_date
                and not is_terminal(EntityType.APPOINTMENT, other.status)
                and other.start_time is not None
                and other.end_time is not None
                and time_ranges_overlap(start_time, end_time, other.start_time, other.end_time)
            ):
                raise ValidationError(
                    "the selected time overlaps another appointment",
                    conflicting_appointment_id=other.id,
                )

        return await self.repository.create_appointment(
            {
                "customer_id": customer_id,
                "vehicle_id": vehicle_id,
                "consultation_type": ConsultationType(consultation_type).value,
                "appointment_date": appointment_date,
                "start_time": start_time,
                "end_time": end_time,
                "customer_issue": customer_issue,
                "notes": notes,
                "status": AppointmentStatus.PENDING.value,
                "employee_id": None,
                "task_ids": [],
            }
        )

    @workflow_operation("appointment_assigned")
    async def assign_employee(self, appointment_id: int, employee_id: Optional[int]) -> AppointmentRead:
        if employee_id is None:
            raise ValidationError("an employee must be selected", appointment_id=appointment_id)

        appointment = await self.repository.get_appointment(appointment_id)
        appointment = await self._authorize(appointment, AppointmentStatus.CONFIRMED, Action.ASSIGN)
        # Employee and status change together or not at all
        updated = await self.repository.patch_appointment(
            appointment_id,
            {"employee_id": employee_id, "status": AppointmentStatus.CONFIRMED.value},
        )
        return self._transitioned(appointment, updated, Action.ASSIGN)

    @workflow_operation("appointment_approved")
    async def approve(self, appointment_id: int) -> AppointmentRead:
        appointment = await self.repository.get_appointment(appointment_id)
        if appointment.employee_id is None:
            raise ValidationError(
                "an employee must be assigned before approval", appointment_id=appointment_id
            )
        appointment = await self._authorize(appointment, AppointmentStatus.CONFIRMED, Action.APPROVE)
        updated = await self.repository.set_appointment_status(
            appointment_id, AppointmentStatus.CONFIRMED.value
        )
        return self._transitioned(appointment, updated, Action.APPROVE)

    @workflow_operation("appointment_rejected")
    async def reject(self, appointment_id: int, reason: Optional[str]) -> AppointmentRead:
        if not reason or not reason.strip():
            raise ValidationError("a rejection reason is required", appointment_id=appointment_id)
        reason = reason.strip()

        appointment = await self.repository.get_appointment(appointment_id)
        appointment = await self._authorize(
            appointment, AppointmentStatus.CANCELED, Action.REJECT, rejection_reason=reason
        )
        notes = f"{REJECTION_PREFIX}{reason}"
        if appointment.notes:
            notes = f"{notes}\n{appointment.notes}"
        updated = await self.repository.patch_appointment(
            appointment_id,
            {"status": AppointmentStatus.CANCELED.value, "notes": notes},
        )
        return self._transitioned(appointment, updated, Action.REJECT)

    @workflow_operation("appointment_started")
    async def start(self, appointment_id: int, actor_id: Optional[int] = None) -> AppointmentRead:
        appointment = await self.repository.get_appointment(appointment_id)
        self._check_actor(appointment, actor_id)
        appointment = await self._authorize(appointment, AppointmentStatus.IN_PROGRESS, Action.START)
        updated = await self.repository.set_appointment_status(
            appointment_id, AppointmentStatus.IN_PROGRESS.value
        )
        return self._transitioned(appointment, updated, Action.START)

    @workflow_operation("appointment_completed")
    async def complete(
        self,
        appointment_id: int,
        report_text: Optional[str],
        task_ids: Optional[List[int]] = None,
        actor_id: Optional[int] = None,
    ) -> AppointmentRead:
        if not report_text or not report_text.strip():
            raise ValidationError("a consultation report is required", appointment_id=appointment_id)
        if task_ids is not None and not task_ids:
            raise ValidationError(
                "select at least one recommended service", appointment_id=appointment_id
            )

        appointment = await self.repository.get_appointment(appointment_id)
        self._check_actor(appointment, actor_id)
        appointment = await self._authorize(appointment, AppointmentStatus.COMPLETED, Action.COMPLETE)

        fields = {"status": AppointmentStatus.COMPLETED.value, "notes": report_text}
        if task_ids is not None:
            fields["task_ids"] = list(dedupe_ids(task_ids))
        updated = await self.repository.patch_appointment(appointment_id, fields)
        return self._transitioned(appointment, updated, Action.COMPLETE)

    @workflow_operation("appointment_cancelled")
    async def cancel(self, appointment_id: int, customer_id: int) -> AppointmentRead:
        appointment = await self.repository.get_appointment(appointment_id)
        if appointment.customer_id != customer_id:
            raise AuthorizationError(
                "appointment belongs to another customer", appointment_id=appointment_id
            )
        appointment = await self._authorize(appointment, AppointmentStatus.CANCELED, Action.CANCEL)
        updated = await self.repository.set_appointment_status(
            appointment_id, AppointmentStatus.CANCELED.value
        )
        return self._transitioned(appointment, updated, Action.CANCEL)

    @staticmethod
    def rejection_reason(notes: Optional[str]) -> Optional[str]:
        return rejection_reason(notes)
