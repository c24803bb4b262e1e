from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from autoshop.schemas.common import CamelModel
from autoshop.workflow.enums import ProjectUpdateType


class TaskProgressEntry(CamelModel):
    task_id: int
    completed: bool = False
    percentage: float = 0.0


class ProjectUpdateCreate(CamelModel):
    """Progress message submitted by the main representative."""
    message: str
    update_type: ProjectUpdateType = ProjectUpdateType.GENERAL
    additional_cost: Optional[Decimal] = None
    additional_cost_reason: Optional[str] = None
    estimated_completion_date: Optional[date] = None
    task_progress: List[TaskProgressEntry] = Field(default_factory=list)


class ProjectUpdateRead(CamelModel):
    id: int
    project_id: int
    employee_id: int
    message: str
    update_type: ProjectUpdateType
    additional_cost: Optional[Decimal] = None
    additional_cost_reason: Optional[str] = None
    estimated_completion_date: Optional[date] = None
    task_progress: List[TaskProgressEntry] = Field(default_factory=list)
    overall_percentage: Optional[float] = None
    created_at: Optional[datetime] = None


class ProjectCompleteRequest(CamelModel):
    completion_message: str
    task_progress: List[TaskProgressEntry] = Field(default_factory=list)
