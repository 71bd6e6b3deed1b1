"""
Standardized error response schemas for the contact API.

Every non-2xx response uses the RFC 7807 (Problem Details) structure,
served as ``application/problem+json``.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

PROBLEM_JSON = "application/problem+json"


class FieldError(BaseModel):
    """
    Detail about a single rejected field.

    Only exposed to clients when verbose diagnostics are enabled.
    """

    field: str = Field(..., description="Name of the rejected field")
    message: str = Field(..., description="Human-readable reason")


class ProblemDetails(BaseModel):
    """
    RFC 7807 problem details.

    Extension members (``retryAfter``, ``resetTime``, ``fields``...) are
    accepted as extra attributes and serialized alongside the standard ones.

    Attributes:
        type: URI identifying the problem type
        title: Short summary of the problem type
        status: HTTP status code
        detail: Explanation specific to this occurrence
        instance: URI of this occurrence (``/request/<request_id>``)
    """

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "type": "https://developer.mozilla.org/en-US/docs/Web/HTTP/Status/429",
                "title": "Too Many Requests",
                "status": 429,
                "detail": "Too many submissions. Please wait before trying again.",
                "instance": "/request/550e8400-e29b-41d4-a716-446655440000",
                "retryAfter": 3599,
                "resetTime": 1767225600000,
            }
        },
    )

    type: str = Field(..., description="Problem type URI")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code", examples=[400, 403, 429])
    detail: str = Field(..., description="Occurrence-specific explanation")
    instance: str = Field(..., description="Request-scoped URI")


class ValidationProblem(ProblemDetails):
    """400 problem with the names (and, in verbose mode, reasons) of bad fields."""

    fields: List[str] = Field(default_factory=list)
    errors: Optional[List[FieldError]] = Field(
        None, description="Per-field reasons, verbose mode only"
    )


class RateLimitProblem(ProblemDetails):
    """429 problem."""

    retryAfter: int = Field(..., description="Seconds until the window resets")
    resetTime: int = Field(..., description="Window reset, epoch milliseconds")


# Error responses for OpenAPI documentation
ERROR_RESPONSES = {
    400: {"model": ValidationProblem, "description": "Bad Request"},
    403: {"model": ProblemDetails, "description": "Forbidden"},
    413: {"model": ProblemDetails, "description": "Payload Too Large"},
    415: {"model": ProblemDetails, "description": "Unsupported Media Type"},
    429: {"model": RateLimitProblem, "description": "Too Many Requests"},
    500: {"model": ProblemDetails, "description": "Internal Server Error"},
}
