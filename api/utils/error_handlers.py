"""
Global Exception Handlers

Maps exceptions raised by routes and services onto the standard
ErrorResponse body:

- InvalidRequestError, MailboxConfigError -> 400
- PermissionError -> 403
- NotFoundError -> 404
- RequestValidationError -> 422
- TransportError -> 502
- anything else -> 500, including builtin ValueError and LookupError
  raised by bugs
"""

import json
import logging
import traceback
from datetime import datetime
from typing import Optional, Dict, Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse as StarletteJSONResponse

from api.models.errors import ErrorResponse, ValidationErrorResponse, ValidationErrorItem
from src.errors import InvalidRequestError, NotFoundError
from src.integrations.errors import MailboxConfigError, TransportError

logger = logging.getLogger(__name__)


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime objects."""
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


class JSONResponse(StarletteJSONResponse):
    """JSONResponse with datetime serialization."""
    def render(self, content):
        return json.dumps(content, cls=DateTimeEncoder).encode("utf-8")


def add_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InvalidRequestError, bad_request_handler)
    app.add_exception_handler(MailboxConfigError, bad_request_handler)
    app.add_exception_handler(PermissionError, forbidden_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(TransportError, transport_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")


def _error(status_code: int, message: str, error_code: str,
           details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    error_response = ErrorResponse(
        status="error",
        message=message,
        error_code=error_code,
        details=details,
        timestamp=datetime.utcnow()
    )
    return JSONResponse(status_code=status_code, content=error_response.model_dump())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    log_exception(request, exc, exc.status_code)
    response = _error(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}",
                      getattr(exc, "details", None))
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with per-field detail."""
    log_exception(request, exc, status.HTTP_422_UNPROCESSABLE_ENTITY)

    validation_errors = [
        ValidationErrorItem(
            loc=[str(loc_item) for loc_item in error["loc"]],
            msg=error["msg"],
            type=error["type"]
        )
        for error in exc.errors()
    ]
    error_response = ValidationErrorResponse(
        status="error",
        message="Request validation error",
        error_code="VALIDATION_ERROR",
        validation_errors=validation_errors,
        timestamp=datetime.utcnow()
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump()
    )


async def bad_request_handler(request: Request, exc: Exception) -> JSONResponse:
    log_exception(request, exc, status.HTTP_400_BAD_REQUEST)
    return _error(status.HTTP_400_BAD_REQUEST, str(exc), "BAD_REQUEST")


async def forbidden_handler(request: Request, exc: PermissionError) -> JSONResponse:
    log_exception(request, exc, status.HTTP_403_FORBIDDEN)
    return _error(status.HTTP_403_FORBIDDEN, str(exc) or "Forbidden", "FORBIDDEN")


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    log_exception(request, exc, status.HTTP_404_NOT_FOUND)
    return _error(status.HTTP_404_NOT_FOUND, str(exc) or "Not found", "NOT_FOUND")


async def transport_error_handler(request: Request, exc: TransportError) -> JSONResponse:
    log_exception(request, exc, status.HTTP_502_BAD_GATEWAY)
    return _error(status.HTTP_502_BAD_GATEWAY, "Mail server error", "MAIL_TRANSPORT_ERROR",
                  {"reason": str(exc)})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions without leaking internals."""
    log_exception(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, include_traceback=True)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        "INTERNAL_SERVER_ERROR",
        {"type": exc.__class__.__name__}
    )


def log_exception(request: Request, exc: Exception, status_code: int,
                  include_traceback: bool = False) -> None:
    """Log an exception with request context at a level matching the status code."""
    if status_code >= 500:
        log_level = logging.ERROR
    elif status_code >= 400:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    error_details = {
        "status_code": status_code,
        "error_type": exc.__class__.__name__,
        "error_message": str(exc),
        "client_host": request.client.host if request.client else "unknown"
    }
    if include_traceback:
        error_details["traceback"] = traceback.format_exc()

    logger.log(
        log_level,
        f"Exception during request to {request.method} {request.url.path}: {exc.__class__.__name__}",
        extra={"error_details": error_details}
    )
