"""Project model for multi-service jobs derived from appointments."""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from autoshop.database import Base
from autoshop.workflow.enums import ProjectStatus


class Project(Base):
    """A set of accepted services carried out on a customer's vehicle."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Free text; a submitted report is appended after the report delimiter
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=ProjectStatus.CREATED.value,
        nullable=False,
        index=True,
    )
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Associations
    customer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id: Mapped[int] = mapped_column(ForeignKey("vehicles.id"), nullable=False)
    appointment_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("appointments.id"), nullable=True, index=True
    )

    # Ordered task ids and assigned employees
    task_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)
    assigned_employee_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)
    main_representative_employee_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Project {self.id} ({self.status})>"
