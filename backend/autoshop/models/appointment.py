"""Appointment model for customer consultation bookings."""

from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, String, Text, Time, func
from sqlalchemy.orm import Mapped, mapped_column

from autoshop.database import Base
from autoshop.workflow.enums import AppointmentStatus, ConsultationType


class Appointment(Base):
    """A consultation booked by a customer for one of their vehicles."""

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Associations
    customer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id: Mapped[int] = mapped_column(ForeignKey("vehicles.id"), nullable=False, index=True)
    employee_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True
    )

    # Appointment Details
    consultation_type: Mapped[str] = mapped_column(
        String(50), default=ConsultationType.GENERAL_CHECKUP.value, nullable=False
    )
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    customer_issue: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    task_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        default=AppointmentStatus.PENDING.value,
        nullable=False,
        index=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Appointment {self.id} ({self.status})>"
