from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, Field

from autoshop.schemas.common import CamelModel


class TimeLogCreate(CamelModel):
    description: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    task_id: Optional[int] = None
    project_id: Optional[int] = None
    appointment_id: Optional[int] = None


class TimeLogRead(CamelModel):
    log_id: int = Field(
        validation_alias=AliasChoices("logId", "log_id", "id"),
        serialization_alias="logId",
    )
    employee_id: int
    description: str
    start_time: datetime
    end_time: datetime
    hours_worked: float
    task_id: Optional[int] = None
    project_id: Optional[int] = None
    appointment_id: Optional[int] = None
    logged_at: Optional[datetime] = None


class TimeLogListResponse(CamelModel):
    time_logs: List[TimeLogRead]
    total: int


class ProjectTimeLogSummary(CamelModel):
    project_id: int
    project_name: str
    total_estimated_hours: float
    total_logged_hours: float
    remaining_hours: float
    percentage_used: float
    is_over_budget: bool
