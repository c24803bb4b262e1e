from datetime import date, datetime, time
from typing import List, Optional

from pydantic import Field, field_validator

from autoshop.schemas.common import CamelModel
from autoshop.workflow.enums import AppointmentStatus, ConsultationType


class AppointmentRead(CamelModel):
    id: int
    customer_id: int
    vehicle_id: int
    employee_id: Optional[int] = None
    consultation_type: ConsultationType = ConsultationType.GENERAL_CHECKUP
    appointment_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    status: AppointmentStatus
    customer_issue: Optional[str] = None
    notes: Optional[str] = None
    task_ids: List[int] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("task_ids", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v

    @property
    def consultation_type_label(self) -> str:
        return self.consultation_type.label


class AppointmentCreate(CamelModel):
    """Customer booking request."""
    vehicle_id: int
    consultation_type: ConsultationType = ConsultationType.GENERAL_CHECKUP
    appointment_date: date
    start_time: time
    end_time: time
    customer_issue: Optional[str] = None
    notes: Optional[str] = None


class AppointmentAssign(CamelModel):
    employee_id: int


class AppointmentReject(CamelModel):
    reason: str


class AppointmentComplete(CamelModel):
    """Employee completion report for a consultation."""
    notes: str
    task_ids: Optional[List[int]] = None


class AppointmentListResponse(CamelModel):
    appointments: List[AppointmentRead]
    total: int
