"""Domain Errors and Exception Handlers

Every error leaving the API uses the standard envelope:

    {"success": false, "error": "Human readable message", "code": "machine_code"}

Services raise the exceptions below. The handlers registered in
``register_exception_handlers`` turn them (and FastAPI's own HTTPException /
RequestValidationError) into enveloped JSON responses.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors reported to API callers"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "internal_error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(AppError):
    """Missing required field, malformed id, empty selection"""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "validation_error"


class AuthenticationError(AppError):
    """Missing or invalid bearer token"""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "unauthorized"


class BusinessRuleError(AppError):
    """Request is well-formed but forbidden by a marketplace rule (restricted mode)"""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "business_rule_violation"


class NotFoundError(AppError):
    """Stale id or missing counterparty. Callers treat it as non-fatal."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class InvalidTransitionError(AppError):
    """State machine transition that is not allowed (e.g. mark_read on archived)"""

    status_code = status.HTTP_409_CONFLICT
    default_code = "invalid_transition"


class UpstreamError(AppError):
    """Remote service unreachable or returned an error (client side)"""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_code = "upstream_error"


def error_body(message: str, code: str | None = None) -> dict:
    body = {"success": False, "error": message}
    if code:
        body["code"] = code
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.code))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        code = "unauthorized"
    elif exc.status_code == status.HTTP_404_NOT_FOUND:
        code = "not_found"
    else:
        code = None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, code),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Report the first problem in a readable form: "body.targetUserId: Field required"
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{location}: {first.get('msg', 'Invalid value')}"
    else:
        message = "Invalid request"
    logger.warning(f"{request.method} {request.url.path} -> 400 validation_error: {message}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(message, "validation_error"))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", "internal_error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install envelope-producing handlers on the application"""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
