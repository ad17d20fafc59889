"""
Exception -> HTTP response mapping.

Services raise typed ``LeaseKernelError`` subclasses; this module is the
only place they are caught.  Anything else escaping a route still leaves
as the same JSON envelope with a 500.  Tenant routes get a localized
generic message, admin and system routes get the exception text.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from lease_api.messages import tenant_message
from lease_kernel.exceptions import (
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    LeaseKernelError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from lease_kernel.logging_config import get_logger

logger = get_logger("api.errors")

TENANT_PATH_PREFIXES = ("/api/user", "/api/notifications")

_STATUS_BY_TYPE: tuple[tuple[type[LeaseKernelError], int], ...] = (
    (ValidationError, 400),
    (UnauthenticatedError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ExternalServiceError, 500),
)


def status_for(exc: LeaseKernelError) -> int:
    for exc_type, status in _STATUS_BY_TYPE:
        if isinstance(exc, exc_type):
            return status
    return 500


def is_tenant_route(request: Request) -> bool:
    return request.url.path.startswith(TENANT_PATH_PREFIXES)


def error_response(request: Request, status: int, code: str, exc: Exception) -> JSONResponse:
    message = tenant_message(exc) if is_tenant_route(request) else str(exc)
    return JSONResponse(
        status_code=status,
        content={"ok": False, "error": code, "message": message},
    )


async def handle_kernel_error(request: Request, exc: LeaseKernelError) -> JSONResponse:
    status = status_for(exc)
    log = logger.error if status >= 500 else logger.info
    log(
        "request_failed",
        extra={
            "path": request.url.path,
            "status_code": status,
            "error_code": exc.code,
            "error": str(exc),
        },
    )
    return error_response(request, status, exc.code, exc)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    logger.info(
        "request_invalid",
        extra={"path": request.url.path, "error": detail},
    )
    return error_response(
        request, 400, ValidationError.code, ValidationError(detail or "Invalid request"),
    )


async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "request_database_error",
        extra={"path": request.url.path, "error": str(exc)},
        exc_info=exc,
    )
    return error_response(
        request, 500, ExternalServiceError.code, ExternalServiceError("database", str(exc)),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_unhandled_error",
        extra={"path": request.url.path, "error_type": type(exc).__name__, "error": str(exc)},
        exc_info=exc,
    )
    return error_response(
        request, 500, ExternalServiceError.code, ExternalServiceError("api", "unexpected server error"),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LeaseKernelError, handle_kernel_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
