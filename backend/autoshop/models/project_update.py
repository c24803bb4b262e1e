from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import JSON, Date, DateTime, Float, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from autoshop.database import Base
from autoshop.workflow.enums import ProjectUpdateType


class ProjectUpdate(Base):
    """Immutable progress message posted by a project's main representative."""

    __tablename__ = "project_updates"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), nullable=False, index=True)
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    message: Mapped[str] = mapped_column(Text, nullable=False)
    update_type: Mapped[str] = mapped_column(
        String(20), default=ProjectUpdateType.GENERAL.value, nullable=False
    )

    additional_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    additional_cost_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    estimated_completion_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # [{"task_id": 1, "completed": true, "percentage": 100}, ...]
    task_progress: Mapped[List[dict]] = mapped_column(JSON, default=list, nullable=False)
    overall_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
