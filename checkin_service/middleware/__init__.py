"""Middleware module"""

from checkin_service.middleware.error_handler import (
    service_error_handler,
    validation_error_handler,
    http_exception_handler,
    rate_limit_handler,
    unexpected_error_handler,
)

__all__ = [
    "service_error_handler",
    "validation_error_handler",
    "http_exception_handler",
    "rate_limit_handler",
    "unexpected_error_handler",
]
