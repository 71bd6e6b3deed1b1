"""
=============================================================================
LANDING CONTACT API - ERROR HANDLING MODULE
=============================================================================
Error taxonomy, RFC 7807 problem responses and global exception handlers.

Features:
- Typed API errors carrying status, category and safe metadata
- Problem details built per request, tagged with the request ID
- Field-level messages and stack traces only with VERBOSE_ERRORS
- Logs full stack trace server-side for unexpected errors

Usage:
    # In main.py
    from landing_api.core.errors import register_exception_handlers
    register_exception_handlers(app)
=============================================================================
"""

import logging
import traceback
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from landing_api.core.config import settings
from landing_api.schemas.error import PROBLEM_JSON

logger = logging.getLogger(__name__)

PROBLEM_TYPE_BASE = "https://developer.mozilla.org/en-US/docs/Web/HTTP/Status"
SENSITIVE_METADATA_KEYS = {"password", "token", "secret", "apiKey"}


class ErrorCategory(str, Enum):
    """Classification used to pick the log level of an error."""

    CLIENT_ERROR = "CLIENT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    SECURITY_EVENT = "SECURITY_EVENT"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class ApiError(Exception):
    """Base API error with structured metadata for logging and responses."""

    status_code: int = 500
    category: ErrorCategory = ErrorCategory.SERVER_ERROR

    def __init__(
        self,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        is_operational: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.metadata = metadata or {}
        self.is_operational = is_operational

    def headers(self) -> Dict[str, str]:
        return {}


class ValidationError(ApiError):
    """400 - JSON, shape, type, sanitization and schema failures."""

    status_code = 400
    category = ErrorCategory.VALIDATION_ERROR

    def __init__(self, message: str, field_errors: Optional[List[Dict[str, str]]] = None):
        self.field_errors = field_errors or []
        fields = sorted({e["field"] for e in self.field_errors})
        super().__init__(message, {"fields": fields} if fields else None)


class SecurityError(ApiError):
    """403 - origin or referer rejected."""

    status_code = 403
    category = ErrorCategory.SECURITY_EVENT


class MethodNotAllowedError(ApiError):
    status_code = 405
    category = ErrorCategory.CLIENT_ERROR

    def __init__(self, message: str, allowed_methods: List[str]):
        self.allowed_methods = allowed_methods
        super().__init__(message, {"allowedMethods": allowed_methods})

    def headers(self) -> Dict[str, str]:
        return {"Allow": ", ".join(self.allowed_methods)}


class PayloadTooLargeError(ApiError):
    status_code = 413
    category = ErrorCategory.CLIENT_ERROR

    def __init__(self, message: str, max_size: int):
        super().__init__(message, {"maxSize": max_size})


class UnsupportedMediaTypeError(ApiError):
    status_code = 415
    category = ErrorCategory.CLIENT_ERROR

    def __init__(self, message: str, expected_type: str = "application/json"):
        super().__init__(message, {"expectedType": expected_type})


class RateLimitError(ApiError):
    """429 - a throttling outcome, logged as a security event."""

    status_code = 429
    category = ErrorCategory.SECURITY_EVENT

    def __init__(self, message: str, retry_after: int, reset_time: int, limit: int):
        self.retry_after = retry_after
        self.reset_time = reset_time
        self.limit = limit
        super().__init__(message, {"retryAfter": retry_after, "resetTime": reset_time})

    def headers(self) -> Dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(self.reset_time),
        }


STATUS_TITLES = {
    400: "Bad Request",
    403: "Forbidden",
    405: "Method Not Allowed",
    413: "Payload Too Large",
    415: "Unsupported Media Type",
    429: "Too Many Requests",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _status_title(status_code: int) -> str:
    return STATUS_TITLES.get(status_code, "Error")


def to_problem_details(
    error: BaseException, request_id: str, verbose: bool = False
) -> Dict[str, Any]:
    """
    Convert an error to RFC 7807 problem details.

    Unknown errors collapse to a generic 500. Validation messages and stack
    traces are only included when ``verbose`` is set.
    """
    status_code = 500
    detail = "An unexpected error occurred. Please try again later."

    if isinstance(error, ApiError):
        status_code = error.status_code
        detail = error.message

    problem: Dict[str, Any] = {
        "type": f"{PROBLEM_TYPE_BASE}/{status_code}",
        "title": _status_title(status_code),
        "status": status_code,
        "detail": detail,
        "instance": f"/request/{request_id}",
    }

    if isinstance(error, ApiError):
        for key, value in error.metadata.items():
            if key not in SENSITIVE_METADATA_KEYS:
                problem[key] = value

    if verbose:
        if isinstance(error, ValidationError) and error.field_errors:
            problem["errors"] = error.field_errors
        if error.__traceback__ is not None:
            problem["stack"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )

    return problem


def problem_response(
    error: BaseException,
    request_id: str,
    verbose: Optional[bool] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build the HTTP response for an error, always tagged with ``X-Request-ID``."""
    if verbose is None:
        verbose = settings.VERBOSE_ERRORS

    problem = to_problem_details(error, request_id, verbose=verbose)
    response_headers = {"X-Request-ID": request_id}
    if isinstance(error, ApiError):
        response_headers.update(error.headers())
    if headers:
        response_headers.update(headers)

    return JSONResponse(
        status_code=problem["status"],
        content=problem,
        headers=response_headers,
        media_type=PROBLEM_JSON,
    )


def log_error(error: BaseException, request_id: str, **context: Any) -> None:
    """Log an error at the level its category deserves."""
    extra = {
        "request_id": request_id,
        "error_name": type(error).__name__,
        **context,
    }

    if isinstance(error, ApiError):
        extra["category"] = error.category.value
        extra["status_code"] = error.status_code
        if error.category == ErrorCategory.SECURITY_EVENT:
            logger.warning("Security event: %s", error.message, extra=extra)
        elif error.category == ErrorCategory.SERVER_ERROR:
            logger.error("Server error: %s", error.message, extra=extra)
        else:
            # Client mistakes are informational, not our fault
            logger.info("Client error: %s", error.message, extra=extra)
        return

    logger.critical(
        "Unexpected error: %s",
        error,
        exc_info=(type(error), error, error.__traceback__),
        extra=extra,
    )


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "unknown"


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        request_id = _request_id(request)
        log_error(exc, request_id, method=request.method, path=request.url.path)
        return problem_response(exc, request_id)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all handler for unhandled exceptions.

        - Logs the full traceback for debugging
        - Returns a generic problem response to prevent info leakage
        """
        request_id = _request_id(request)
        log_error(exc, request_id, method=request.method, path=request.url.path)
        return problem_response(exc, request_id)
