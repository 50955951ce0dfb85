# src/core/dependencies.py
from typing import List, Optional
from uuid import UUID
from fastapi import Cookie, Depends, Header
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from db.database import get_db
from models.user import User, UserRole
from utils.exceptions import ForbiddenException, UnauthorizedException
from utils.logger import setup_logger
from utils.security import decode_access_token

logger = setup_logger("ROLE CHECKER")

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def extract_token(
    authorization: Optional[str], cookie_token: Optional[str]
) -> Optional[str]:
    """An explicit `Authorization: Bearer` header wins over the cookie"""
    if not authorization:
        return cookie_token or None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("Invalid authentication scheme")
        raise UnauthorizedException("Invalid authentication scheme")
    return parts[1]


async def get_current_user(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    access_token: Optional[str] = Cookie(default=None, alias=ACCESS_COOKIE),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to get current authenticated user from JWT token

    Raises:
        UnauthorizedException: no token, a bad token, or an unknown user
    """
    token = extract_token(authorization, access_token)
    if not token:
        logger.warning("Access token missing")
        raise UnauthorizedException("Unauthorized request")

    try:
        payload = decode_access_token(token)
        user_id = UUID(str(payload.get("sub")))
    except (JWTError, ValueError) as e:
        logger.warning(f"JWT validation failed: {str(e)}")
        raise UnauthorizedException("Invalid access token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        logger.warning(f"User not found in database: {user_id}")
        raise UnauthorizedException("Invalid access token")

    logger.debug(f"Authenticated user: {user_id} ({user.role})")
    return user


class RoleChecker:
    def __init__(self, allowed_roles: List[UserRole]):
        self.allowed_roles = allowed_roles

    async def __call__(self, user: User = Depends(get_current_user)) -> User:
        """
        Dependency to verify user has required role

        Raises:
            ForbiddenException: role not in the allowed list
        """
        if UserRole(user.role) not in self.allowed_roles:
            logger.warning(
                f"Role check failed for {user.id}. "
                f"Required: {[role.value for role in self.allowed_roles]}, "
                f"Has: {user.role}"
            )
            raise ForbiddenException(
                "Access denied. "
                f"{' or '.join(role.value for role in self.allowed_roles)} role required."
            )
        return user


require_patient = RoleChecker([UserRole.USER])
require_doctor = RoleChecker([UserRole.DOCTOR])
require_patient_or_admin = RoleChecker([UserRole.USER, UserRole.ADMIN])
require_doctor_or_admin = RoleChecker([UserRole.DOCTOR, UserRole.ADMIN])
require_admin = RoleChecker([UserRole.ADMIN])
