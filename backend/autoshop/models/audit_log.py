from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from autoshop.database import Base


class AuditAction(str, Enum):
    APPOINTMENT_ASSIGNED = "appointment_assigned"
    APPOINTMENT_STATUS_CHANGED = "appointment_status_changed"
    PROJECT_EMPLOYEES_ASSIGNED = "project_employees_assigned"
    PROJECT_STATUS_CHANGED = "project_status_changed"
    PROJECT_REPORT_SUBMITTED = "project_report_submitted"
    USER_ROLE_CHANGED = "user_role_changed"


class AuditLog(Base):
    """Append-only record of who changed which workflow entity."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_entity", "entity_type", "entity_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    # JSON-encoded details such as {"from": "PENDING", "to": "CONFIRMED"}
    payload: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
