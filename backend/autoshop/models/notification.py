from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from autoshop.database import Base


class NotificationType(str, Enum):
    APPOINTMENT_BOOKED = "appointment_booked"
    APPOINTMENT_ASSIGNED = "appointment_assigned"
    APPOINTMENT_STATUS_CHANGED = "appointment_status_changed"
    PROJECT_CREATED = "project_created"
    PROJECT_ASSIGNED = "project_assigned"
    PROJECT_STATUS_CHANGED = "project_status_changed"
    PROJECT_UPDATE_POSTED = "project_update_posted"
    PROJECT_REPORT_SUBMITTED = "project_report_submitted"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    related_appointment_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    related_project_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
