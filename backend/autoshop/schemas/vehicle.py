"""Vehicle schemas."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator

from autoshop.schemas.common import CamelModel

MIN_YEAR = 1980
VIN_PATTERN = r"^[A-HJ-NPR-Z0-9]{17}$"


class VehicleFields(CamelModel):
    """Editable vehicle details, all optional. Plates and VINs are stored uppercase."""
    vin: Optional[str] = Field(None, pattern=VIN_PATTERN)
    license_plate: Optional[str] = Field(None, min_length=3, max_length=12)
    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = None

    @field_validator("vin", "license_plate", mode="before")
    @classmethod
    def normalize_identifier(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("year")
    @classmethod
    def check_year(cls, value: Optional[int]) -> Optional[int]:
        # Next year's models go on sale before the calendar turns
        latest = date.today().year + 1
        if value is not None and not MIN_YEAR <= value <= latest:
            raise ValueError(f"year must be between {MIN_YEAR} and {latest}")
        return value


class VehicleUpdate(VehicleFields):
    pass


class VehicleCreate(VehicleFields):
    """A customer registering a vehicle; admins register one for a named customer."""
    vin: str = Field(..., pattern=VIN_PATTERN)
    license_plate: str = Field(..., min_length=3, max_length=12)
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: int
    customer_id: Optional[int] = None


class VehicleRead(CamelModel):
    id: int
    customer_id: int
    vin: str
    license_plate: str
    make: str
    model: str
    year: int
    created_at: Optional[datetime] = None


class VehicleListResponse(CamelModel):
    vehicles: List[VehicleRead]
    total: int
