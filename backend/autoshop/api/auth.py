"""Account endpoints: customer sign-up, login and the caller's own profile."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.config import settings
from autoshop.database import get_db
from autoshop.models.user import User, UserRole
from autoshop.schemas.auth import LoginRequest, PasswordChange, RegisterRequest, Token
from autoshop.schemas.user import ProfileUpdate, UserResponse
from autoshop.utils.logging import get_logger
from autoshop.utils.security import (
    create_access_token,
    get_current_user,
    get_password_hash,
    verify_password,
)

router = APIRouter()
logger = get_logger("api.auth")

_BAD_LOGIN = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Incorrect email or password",
    headers={"WWW-Authenticate": "Bearer"},
)


async def _find_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Open a customer account. Staff accounts are created by an admin."""
    if await _find_by_email(db, request.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    customer = User(
        email=request.email.lower(),
        hashed_password=get_password_hash(request.password),
        full_name=request.full_name,
        phone=request.phone,
        role=UserRole.CUSTOMER.value,
    )
    db.add(customer)
    await db.flush()
    await db.refresh(customer)
    logger.info("customer_registered", user_id=customer.id)
    return customer


@router.post("/login", response_model=Token)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> Token:
    user = await _find_by_email(db, request.email)
    if user is None or not verify_password(request.password, user.hashed_password):
        logger.info("login_failed", email=request.email)
        raise _BAD_LOGIN
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is deactivated")

    user.last_login = datetime.now(timezone.utc)
    await db.flush()
    logger.info("user_logged_in", user_id=user.id, role=user.role)

    return Token(
        access_token=create_access_token(user.id, user.email, user.role),
        expires_in=settings.jwt_expire_minutes * 60,
        user_id=user.id,
        role=user.role,
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_profile(
    request: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> User:
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(current_user, field, value)
    await db.flush()
    await db.refresh(current_user)
    logger.info("profile_updated", user_id=current_user.id, fields=sorted(changes))
    return current_user


@router.post("/me/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    request: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    if not verify_password(request.current_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    current_user.hashed_password = get_password_hash(request.new_password)
    await db.flush()
    logger.info("password_changed", user_id=current_user.id)
