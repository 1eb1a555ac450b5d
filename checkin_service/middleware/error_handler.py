# checkin_service/middleware/error_handler.py
"""
Error handlers for the check-in API.

Every failure is answered with the same envelope:
    {"success": false, "message", "errorCode", "details", "timestamp"}
"""

import logging
from datetime import datetime, timezone

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from checkin_service.core.config import settings
from checkin_service.core.exceptions import CheckinServiceError

logger = logging.getLogger(__name__)


def error_body(message: str, error_code: str, details=None) -> dict:
    return {
        "success": False,
        "message": message,
        "errorCode": error_code,
        "details": details or {},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def handle_service_error(error: CheckinServiceError, request: Request) -> JSONResponse:
    """Handle business-rule and collaborator errors raised by the services"""

    log = logger.error if error.status_code >= 500 else logger.warning
    log(
        f"{error.error_code} on {request.method} {request.url.path}: {error.message}",
        extra={"category": error.category, "details": error.details},
    )

    headers = {}
    if error.status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        headers["Retry-After"] = "10"

    return JSONResponse(
        status_code=error.status_code,
        content=jsonable_encoder(error_body(error.message, error.error_code, error.details)),
        headers=headers,
    )


def handle_validation_error(error: RequestValidationError, request: Request) -> JSONResponse:
    """Handle FastAPI validation errors"""

    errors = []
    for err in error.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"]
        })

    logger.warning(f"Validation error on {request.url.path}: {len(errors)} field(s)")

    return JSONResponse(
        status_code=422,
        content=error_body("Validation failed", "VALIDATION_ERROR", {"errors": errors}),
    )


def handle_http_exception(error: StarletteHTTPException, request: Request) -> JSONResponse:
    codes = {
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
    }
    return JSONResponse(
        status_code=error.status_code,
        content=error_body(str(error.detail), codes.get(error.status_code, "HTTP_ERROR")),
        headers=getattr(error, "headers", None),
    )


def handle_rate_limit(error: RateLimitExceeded, request: Request) -> JSONResponse:
    logger.warning(f"Rate limit exceeded on {request.url.path}: {error.detail}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_body("Too many requests, please try again later", "RATE_LIMIT_EXCEEDED"),
        headers={"Retry-After": "60"},
    )


def handle_unexpected_error(error: Exception, request: Request) -> JSONResponse:
    """Handle unexpected errors"""

    logger.critical(
        f"Unexpected error: {type(error).__name__} on {request.method} {request.url.path}",
        exc_info=error,
    )

    # Don't expose internal details outside local development
    message = str(error) if settings.ENV == "local" else "Internal Server Error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(message, "INTERNAL_ERROR"),
    )


# Exception handlers for FastAPI
async def service_error_handler(request: Request, exc: CheckinServiceError) -> JSONResponse:
    return handle_service_error(exc, request)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return handle_validation_error(exc, request)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return handle_http_exception(exc, request)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return handle_rate_limit(exc, request)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return handle_unexpected_error(exc, request)
