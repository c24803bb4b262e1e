"""Shop account schemas: customers, employees and admins."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from autoshop.schemas.common import CamelModel

ShopRole = Literal["admin", "employee", "customer"]


class AccountDetails(CamelModel):
    email: EmailStr
    full_name: str = Field(..., min_length=2, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        # Names end up in report text as "Submitted by"
        return " ".join(value.split())


class UserCreate(AccountDetails):
    """An admin opening an account; employees are the usual case."""
    password: str = Field(..., min_length=8)
    role: ShopRole = "employee"


class UserUpdate(CamelModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    is_active: Optional[bool] = None
    role: Optional[ShopRole] = None


class ProfileUpdate(CamelModel):
    """Fields a user may change on their own account."""
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)


class UserResponse(AccountDetails):
    id: int
    role: ShopRole
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None


class UserListResponse(CamelModel):
    users: list[UserResponse]
    total: int


class EmployeeWorkload(CamelModel):
    """An employee with the work currently on their plate."""
    id: int
    full_name: str
    open_appointments: int = 0
    active_projects: int = 0
