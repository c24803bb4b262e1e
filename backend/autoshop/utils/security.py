"""Bearer token authentication and role checks for the shop API.

Tokens carry the user id, email and shop role. Every protected route resolves
the caller through ``get_current_user`` and, where a route is restricted to
part of the shop, through one of the ``require_*`` dependencies.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.config import settings
from autoshop.database import get_db
from autoshop.models.user import User, UserRole
from autoshop.schemas.auth import TokenPayload
from autoshop.utils.logging import get_logger

logger = get_logger("security")

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer()

# Roles that may act on each part of the shop. Admins can do anything an
# employee can.
ROLE_GROUPS: dict[str, tuple[UserRole, ...]] = {
    "admin": (UserRole.ADMIN,),
    "staff": (UserRole.ADMIN, UserRole.EMPLOYEE),
    "customer": (UserRole.CUSTOMER,),
}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    user_id: int,
    email: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Sign a token for a shop user; defaults to the configured lifetime."""
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    claims = TokenPayload(
        sub=user_id,
        email=email,
        role=UserRole(role).value,
        exp=issued_at + lifetime,
    )
    return jwt.encode(
        {**claims.model_dump(), "sub": str(user_id), "iat": issued_at},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> Optional[TokenPayload]:
    """Return the token claims, or ``None`` if the token is unusable."""
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        logger.info("token_expired")
        return None
    except JWTError as exc:
        logger.warning("token_rejected", error=str(exc))
        return None

    if claims.get("role") not in {role.value for role in UserRole}:
        logger.warning("token_rejected", error="unknown role", role=claims.get("role"))
        return None
    return TokenPayload(
        sub=int(claims["sub"]),
        email=claims["email"],
        role=claims["role"],
        exp=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user row."""
    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise _unauthorized("Invalid or expired token")

    user = await db.get(User, claims.sub)
    if user is None:
        raise _unauthorized("Unknown user")
    if user.role != claims.role:
        # Role changed since the token was issued
        logger.info("token_role_stale", user_id=user.id, token_role=claims.role, role=user.role)
        raise _unauthorized("Token no longer matches the account role")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is deactivated")
    return user


def require_role(*roles: UserRole):
    """Build a dependency that admits only callers holding one of ``roles``."""
    allowed = frozenset(role.value for role in roles)

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(*roles):
            logger.info(
                "role_denied",
                user_id=current_user.id,
                role=current_user.role,
                allowed=sorted(allowed),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This action is limited to: {', '.join(sorted(allowed))}",
            )
        return current_user

    return role_checker


require_admin = require_role(*ROLE_GROUPS["admin"])
require_employee = require_role(*ROLE_GROUPS["staff"])
require_customer = require_role(*ROLE_GROUPS["customer"])
