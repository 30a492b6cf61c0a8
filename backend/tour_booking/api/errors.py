"""
Exception handlers rendering every failure into the error envelope:

    {"success": false, "error": {"message": ..., "details": ..., "stack": ...}}

`stack` is only included outside production.
"""

import traceback
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from tour_booking.core.config import get_settings
from tour_booking.core.exceptions import APIError
from tour_booking.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def error_response(
    status_code: int,
    message: str,
    details: Any = None,
    exc: Optional[BaseException] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    error: dict[str, Any] = {"message": message}
    if details is not None:
        error["details"] = details
    if exc is not None and not settings.is_production:
        error["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


def _is_unique_violation(exc: IntegrityError) -> bool:
    pgcode = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    if pgcode:
        return pgcode == "23505"
    return "unique" in str(exc.orig).lower()


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    details = exc.details if isinstance(exc, APIError) else None
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"
    return error_response(
        exc.status_code,
        message,
        details=details,
        exc=exc if exc.status_code >= 500 else None,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part not in ("body", "query", "path")),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    logger.info("validation_failed", path=request.url.path, errors=len(details))
    return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", details=details)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    if _is_unique_violation(exc):
        logger.warning("integrity_conflict", path=request.url.path, error=str(exc.orig))
        return error_response(status.HTTP_409_CONFLICT, "A record with this value already exists")

    logger.warning("integrity_violation", path=request.url.path, error=str(exc.orig))
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid reference or constraint violation")


async def no_result_handler(request: Request, exc: NoResultFound) -> JSONResponse:
    return error_response(status.HTTP_404_NOT_FOUND, "Record not found")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", exc=exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(NoResultFound, no_result_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
