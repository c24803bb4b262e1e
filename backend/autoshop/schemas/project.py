from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from autoshop.schemas.common import CamelModel
from autoshop.workflow.enums import ProjectStatus


class ProjectRead(CamelModel):
    id: int
    name: str
    description: str = ""
    status: ProjectStatus
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    customer_id: int
    vehicle_id: int
    appointment_id: Optional[int] = None
    task_ids: List[int] = Field(default_factory=list)
    assigned_employee_ids: List[int] = Field(default_factory=list)
    main_representative_employee_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("task_ids", "assigned_employee_ids", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v


class ProjectCreate(CamelModel):
    """Customer request to turn a completed consultation into a project."""
    appointment_id: int
    task_ids: List[int]
    name: Optional[str] = None
    description: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ProjectEmployeesAssign(CamelModel):
    employee_ids: List[int]
    main_representative_employee_id: Optional[int] = None


class ProjectListResponse(CamelModel):
    projects: List[ProjectRead]
    total: int


class ProjectProgress(CamelModel):
    """What the customer sees on the project updates page."""
    project_id: int
    overall_percentage: Optional[float] = None
    total_additional_cost: Decimal = Decimal("0")
    update_count: int = 0
