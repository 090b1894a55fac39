"""
Error handler middleware and custom exceptions.

Provides consistent error responses and custom exception classes
for common application errors. Every error body has the shape
``{"message": ..., "correlation_id": ..., "details"?: ...}``.
"""
import logging
from typing import Optional, Dict, Any
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from vendorhive.lib.logging import get_correlation_id, get_logger

logger = get_logger(__name__)


# Custom exception classes
class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[Any] = None):
        super().__init__(
            message=f"{resource} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "resource_id": resource_id} if resource_id is not None else None,
        )


class UnauthorizedException(AppException):
    """Missing or invalid credentials."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ForbiddenException(AppException):
    """Authenticated but not allowed."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class ConflictException(AppException):
    """Resource conflict exception."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class UpstreamServiceException(AppException):
    """A dependency outside this process (object storage) failed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details,
        )


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or get_correlation_id() or "unknown"


def format_validation_message(errors: list) -> str:
    """Human-readable summary of the first pydantic error."""
    if not errors:
        return "Validation error"
    first = errors[0]
    # Drop the "body"/"query" prefix pydantic puts in front of field paths
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    if not location:
        return f"Validation error: {first['msg']}"
    return f"Validation error: {first['msg']} at \"{'.'.join(location)}\""


def error_response(
    request: Request,
    status_code: int,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build the JSON error body shared by every handler below."""
    content: Dict[str, Any] = {
        "message": message,
        "correlation_id": _correlation_id(request),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _request_fields(request: Request, **fields: Any) -> Dict[str, Any]:
    return {"path": request.url.path, "method": request.method, **fields}


# Exception handlers
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Domain errors raised by services and dependencies."""
    log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        log_level,
        f"Application error: {exc.message}",
        extra=_request_fields(request, status_code=exc.status_code, details=exc.details),
    )
    return error_response(request, exc.status_code, exc.message, exc.details)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Malformed input is a 400; the message names the first offending field
    and ``details.errors`` lists all of them.
    """
    errors = [
        {"loc": [str(part) for part in error["loc"]], "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.warning("Validation error", extra=_request_fields(request, errors=errors))
    return error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        format_validation_message(errors),
        {"errors": errors},
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Routing-level errors (unknown route, wrong method)."""
    logger.warning(
        f"HTTP exception: {exc.detail}",
        extra=_request_fields(request, status_code=exc.status_code),
    )
    return error_response(
        request,
        exc.status_code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything else: log the traceback, hide it from the client."""
    logger.error(f"Unhandled exception: {exc}", extra=_request_fields(request), exc_info=True)
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
