"""Centralized error handling.

Every failure leaves the API as ``{"data": null, "error": {code, message, details?}}``.
Domain exceptions map to 4xx codes, LLM runtime failures to 502, anything
unexpected to a logged 500 carrying an error id.
"""

import logging
from typing import Any
from uuid import UUID, uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import DatabaseError
from starlette.exceptions import HTTPException as StarletteHTTPException

from promptlab.ai.errors import AIRuntimeError
from promptlab.core.envelope import ErrorBody
from promptlab.exceptions import (
    DomainError,
    ForbiddenError,
    InvalidStateError,
    InvalidStepError,
    ResourceNotFoundError,
)


logger = logging.getLogger(__name__)


class ErrorCode:
    """Error codes returned to clients."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    INVALID_STATE = "INVALID_STATE"
    INVALID_STEP = "INVALID_STEP"
    RATE_LIMITED = "RATE_LIMITED"
    AI_ERROR = "AI_ERROR"
    INTERNAL = "INTERNAL_ERROR"


# Checked in order; subclasses before their bases
_DOMAIN_ERRORS: tuple[tuple[type[DomainError], int, str], ...] = (
    (ResourceNotFoundError, status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN, ErrorCode.FORBIDDEN),
    (InvalidStepError, status.HTTP_400_BAD_REQUEST, ErrorCode.INVALID_STEP),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST, ErrorCode.INVALID_STATE),
)

_HTTP_STATUS_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.VALIDATION_ERROR,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
}


def format_error_response(
    code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Format a consistent error response."""
    error = ErrorBody(code=code, message=message, details=details)
    return JSONResponse(
        status_code=status_code,
        content={"data": None, "error": error.model_dump(mode="json", exclude_none=True)},
        headers=headers,
    )


async def handle_domain_errors(request: Request, exc: DomainError) -> JSONResponse:
    """Map domain exceptions onto HTTP status codes."""
    for error_type, status_code, code in _DOMAIN_ERRORS:
        if isinstance(exc, error_type):
            break
    else:
        status_code, code = status.HTTP_400_BAD_REQUEST, ErrorCode.INVALID_STATE

    details: dict[str, Any] | None = None
    if isinstance(exc, InvalidStepError):
        details = {"submitted": exc.submitted, "expected": exc.expected}

    logger.info("%s on %s %s: %s", code, request.method, request.url.path, exc.message)
    return format_error_response(code, exc.message, status_code, details)


async def handle_request_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle body/path/query validation failures as 400s."""
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error.get("loc", ())),
            "message": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    logger.info("Validation error on %s %s", request.method, request.url.path, extra={"errors": errors})
    return format_error_response(
        ErrorCode.VALIDATION_ERROR,
        "Invalid input data",
        status.HTTP_400_BAD_REQUEST,
        {"errors": errors},
    )


async def handle_http_errors(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap HTTPExceptions (auth failures included) in the error envelope."""
    code = _HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL)
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        logger.warning(
            "Authentication failed on %s %s: %s",
            request.method,
            request.url.path,
            exc.detail,
            extra={"client_host": request.client.host if request.client else "unknown"},
        )
    return format_error_response(code, str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


async def handle_ai_errors(request: Request, exc: AIRuntimeError) -> JSONResponse:
    """Handle LLM runtime failures that escaped to the HTTP layer."""
    logger.error("AI error on %s %s: %s", request.method, request.url.path, exc)
    return format_error_response(
        ErrorCode.AI_ERROR,
        "The AI service is temporarily unavailable",
        status.HTTP_502_BAD_GATEWAY,
        {"category": exc.category.value},
    )


async def handle_rate_limit_errors(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle slowapi rate limit breaches."""
    logger.warning("Rate limit exceeded on %s %s: %s", request.method, request.url.path, exc.detail)
    response = format_error_response(
        ErrorCode.RATE_LIMITED,
        f"Rate limit exceeded: {exc.detail}",
        status.HTTP_429_TOO_MANY_REQUESTS,
    )
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)  # noqa: SLF001


async def handle_database_errors(request: Request, exc: DatabaseError) -> JSONResponse:
    """Handle database-related errors."""
    error_id = uuid4()
    log_error_context(request, exc, error_id)
    return format_error_response(
        ErrorCode.INTERNAL,
        "A database error occurred",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"error_id": str(error_id)},
    )


async def handle_unexpected_errors(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors."""
    error_id = uuid4()
    log_error_context(request, exc, error_id)
    # Generic message; internal details stay in the logs
    return format_error_response(
        ErrorCode.INTERNAL,
        "An unexpected error occurred",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"error_id": str(error_id)},
    )


def log_error_context(request: Request, exc: Exception, error_id: UUID | None = None) -> None:
    """Log comprehensive error context for debugging."""
    context = {
        "error_id": str(error_id) if error_id else None,
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client_host": request.client.host if request.client else "unknown",
        "user_id": str(getattr(request.state, "user_id", None)),
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    # Add request headers (excluding sensitive ones)
    context["headers"] = {
        k: v for k, v in request.headers.items() if k.lower() not in ["authorization", "cookie", "x-api-key"]
    }

    logger.error("Request failed", extra=context, exc_info=exc)


def register_error_handlers(app: FastAPI) -> None:
    """Attach every handler above to ``app``."""
    app.add_exception_handler(DomainError, handle_domain_errors)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, handle_http_errors)  # type: ignore[arg-type]
    app.add_exception_handler(AIRuntimeError, handle_ai_errors)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, handle_rate_limit_errors)  # type: ignore[arg-type]
    app.add_exception_handler(DatabaseError, handle_database_errors)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_errors)
