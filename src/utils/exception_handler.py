# src/utils/exception_handler.py
import traceback
from typing import Any, Dict, List, Optional
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import JWTError
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from core.config import settings
from .exceptions import BaseAPIException, ErrorKind
from .logger import setup_logger

logger = setup_logger("EXCEPTION HANDLER")

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

DEFAULT_HTTP_MESSAGES = {
    status.HTTP_400_BAD_REQUEST: "Bad request",
    status.HTTP_401_UNAUTHORIZED: "Unauthorized - Authentication required",
    status.HTTP_403_FORBIDDEN: "Forbidden - You don't have permission",
    status.HTTP_404_NOT_FOUND: "Resource not found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed",
    status.HTTP_409_CONFLICT: "Conflict - Resource already exists",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "Internal server error",
}


def status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def format_validation_errors(raw_errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts into field/message pairs"""
    formatted = []
    for error in raw_errors:
        loc = [str(part) for part in error.get("loc", ())]
        # Drop the "body"/"query"/"path" source marker
        if loc and loc[0] in ("body", "query", "path", "cookie", "header"):
            loc = loc[1:]
        formatted.append(
            {"field": ".".join(loc) or "request", "message": error.get("msg", "")}
        )
    return formatted


def error_response(
    status_code: int,
    message: str,
    errors: Optional[List[Any]] = None,
    exc: Optional[BaseException] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "success": False,
        "message": message,
        "errors": errors or [],
    }
    if exc is not None and not settings.IS_PRODUCTION:
        content["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def setup_exception_handlers(app: FastAPI):
    @app.exception_handler(BaseAPIException)
    async def api_exception_handler(request: Request, exc: BaseAPIException):
        status_code = status_for(exc.kind)
        if exc.kind == ErrorKind.NOT_FOUND:
            logger.info(f"Not found: {exc.detail}")
        elif exc.kind == ErrorKind.INTERNAL:
            logger.error(f"Internal error: {exc.detail}")
        else:
            logger.warning(f"API Exception ({exc.kind.value}): {exc.detail}")
        return error_response(
            status_code, exc.detail, exc.errors, exc=exc, headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ):
        errors = format_validation_errors(exc.errors())
        first = errors[0] if errors else {"field": "request", "message": "Invalid"}
        message = f"Invalid value for '{first['field']}': {first['message']}"
        logger.warning(f"Validation failed on {request.url.path}: {message}")
        return error_response(
            status_for(ErrorKind.VALIDATION), message, errors, exc=exc
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_handler(request: Request, exc: ValidationError):
        errors = format_validation_errors(exc.errors())
        logger.warning(f"Model validation failed: {errors}")
        return error_response(
            status_for(ErrorKind.VALIDATION), "Validation error", errors, exc=exc
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail or DEFAULT_HTTP_MESSAGES.get(
            exc.status_code, "An error occurred"
        )

        if exc.status_code == status.HTTP_404_NOT_FOUND:
            logger.info(f"Not found: {detail}")
        else:
            logger.warning(f"HTTP Exception {exc.status_code}: {detail}")

        return error_response(
            exc.status_code,
            str(detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(JWTError)
    async def jwt_exception_handler(request: Request, exc: JWTError):
        logger.warning(f"Credential verification failed: {exc}")
        return error_response(
            status_for(ErrorKind.UNAUTHORIZED),
            "Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        if isinstance(exc, IntegrityError):
            logger.warning(f"Integrity error: {exc.orig}")
            return error_response(
                status_for(ErrorKind.CONFLICT),
                "Duplicate value - possible duplicate or constraint violation",
                exc=exc,
            )

        logger.error(f"Database error: {str(exc)}", exc_info=True)
        if isinstance(exc, NoResultFound):
            return error_response(
                status_for(ErrorKind.NOT_FOUND),
                "Requested resource not found in database",
                exc=exc,
            )
        return error_response(
            status_for(ErrorKind.INTERNAL), "Database operation failed", exc=exc
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(f"Rate limit exceeded: {str(exc.detail)}")
        return error_response(
            status_for(ErrorKind.RATE_LIMITED),
            f"Too many requests - limit is {exc.detail}",
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
        return error_response(
            status_for(ErrorKind.INTERNAL), "Internal server error", exc=exc
        )
