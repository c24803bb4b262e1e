"""Login, registration and token schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from autoshop.schemas.common import CamelModel
from autoshop.schemas.user import AccountDetails, ShopRole


class TokenPayload(BaseModel):
    """Claims carried by a shop access token."""
    sub: int
    email: str
    role: ShopRole
    exp: datetime


class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: int
    role: ShopRole


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class RegisterRequest(AccountDetails):
    """Self-registration; always opens a customer account."""
    password: str = Field(..., min_length=8)


class PasswordChange(CamelModel):
    current_password: str
    new_password: str = Field(..., min_length=8)
