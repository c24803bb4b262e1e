from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, Field

from autoshop.schemas.common import CamelModel
from autoshop.workflow.enums import TaskPriority, TaskStatus


class TaskRead(CamelModel):
    """Service line item; the service-of-record names its id ``taskId``."""
    task_id: int = Field(
        validation_alias=AliasChoices("taskId", "task_id", "id"),
        serialization_alias="taskId",
    )
    name: str
    description: str = ""
    estimated_hours: Decimal = Decimal("0")
    estimated_cost: Decimal = Decimal("0")
    category: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.REQUESTED
    appointment_id: Optional[int] = None
    notes: Optional[str] = None


class TaskCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    estimated_hours: Decimal = Field(Decimal("0"), ge=0)
    estimated_cost: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    category: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.REQUESTED
    appointment_id: Optional[int] = None
    notes: Optional[str] = None


class TaskListResponse(CamelModel):
    tasks: List[TaskRead]
    total: int


class TaskStatusUpdate(CamelModel):
    status: TaskStatus
