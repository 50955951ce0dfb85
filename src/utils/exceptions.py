# src/utils/exceptions.py
from enum import Enum
from typing import Any, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from .logger import setup_logger

logger = setup_logger("EXCEPTIONS")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"


class BaseAPIException(Exception):
    """
    Error raised by services and dependencies.

    Carries an ErrorKind instead of an HTTP status; the exception handler
    owns the kind to status mapping.
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    default_detail: str = "Something went wrong"

    def __init__(
        self,
        detail: Optional[str] = None,
        errors: Optional[List[Any]] = None,
        headers: Optional[dict] = None,
    ) -> None:
        self.detail = detail or self.default_detail
        self.errors = errors or []
        self.headers = headers
        super().__init__(self.detail)


class BadRequestException(BaseAPIException):
    kind = ErrorKind.VALIDATION
    default_detail = "Bad Request"


class NotFoundException(BaseAPIException):
    kind = ErrorKind.NOT_FOUND
    default_detail = "Resource not found"


class ConflictException(BaseAPIException):
    kind = ErrorKind.CONFLICT
    default_detail = "Resource already exists"


class UnauthorizedException(BaseAPIException):
    kind = ErrorKind.UNAUTHORIZED
    default_detail = "Unauthorized"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenException(BaseAPIException):
    kind = ErrorKind.FORBIDDEN
    default_detail = "Operation not authorized"


class InternalServerException(BaseAPIException):
    kind = ErrorKind.INTERNAL
    default_detail = "Internal server error"


async def handle_db_exception(
    db: AsyncSession, operation: str, exception: Exception
) -> None:
    """Roll back, log, and re-raise as a typed error"""
    await db.rollback()

    # Duplicate-key errors are normalised by the exception handler
    if isinstance(exception, (BaseAPIException, IntegrityError)):
        raise exception

    logger.error(f"Database error during {operation}: {str(exception)}", exc_info=True)
    raise InternalServerException(f"Internal server error during {operation}")
