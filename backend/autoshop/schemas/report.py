from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from autoshop.schemas.common import CamelModel


class ExtraCharge(CamelModel):
    description: str = ""
    amount: Decimal = Decimal("0")


class ReportSubmit(CamelModel):
    """Main representative's completion report."""
    task_ids: List[int]
    extra_charges: List[ExtraCharge] = Field(default_factory=list)
    notes: Optional[str] = None


class ReportResponse(CamelModel):
    project_id: int
    services_cost: Decimal
    extra_charges_total: Decimal
    total_cost: Decimal
    total_hours: Decimal
    text: str


class ReportView(CamelModel):
    """A submitted report as read back from the project description."""
    project_id: int
    submitted_by: Optional[str] = None
    submitted_on: Optional[str] = None
    service_names: List[str] = Field(default_factory=list)
    services_cost: Optional[Decimal] = None
    extra_charges_total: Optional[Decimal] = None
    extra_charges: List[ExtraCharge] = Field(default_factory=list)
    notes: Optional[str] = None
