"""
Contact form submission pipeline.

Runs every guard in a fixed order and turns the first failure into a
problem response; later stages never run. Expected rejections travel as
``Err`` values, raised exceptions mean a genuine fault.

    origin -> content-type -> rate-limit -> size pre-check -> body read
    -> size post-check -> json -> shape -> field types -> sanitize
    -> schema -> notify -> success
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from landing_api.core.background import BackgroundTasks
from landing_api.core.config import Settings
from landing_api.core.errors import (
    ApiError,
    PayloadTooLargeError,
    RateLimitError,
    UnsupportedMediaTypeError,
    ValidationError,
    log_error,
    problem_response,
)
from landing_api.core.middleware import RequestContext, get_request_context
from landing_api.core.origin_guard import validate_request_origin
from landing_api.core.rate_limiter import (
    IPNetwork,
    RateLimiter,
    RateLimitResult,
    get_client_ip,
    resolve_rate_limit_identity,
)
from landing_api.core.result import Err, Ok, Result
from landing_api.core.sanitizer import hash_identifier, sanitize_input
from landing_api.schemas.contact import (
    TEXT_FIELDS,
    ContactResponse,
    ContactSubmission,
    validate_submission,
)
from landing_api.services.email_service import EmailNotifier

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Thank you! We will be in touch soon."
FORM_INVALID = "Please check your input and try again."
FORM_RATE_LIMIT = "Too many submissions. Please wait before trying again."
REQUEST_TOO_LARGE = "Request too large"
INVALID_CONTENT_TYPE = "Invalid content type"
INVALID_JSON = "Invalid JSON in request body"
NOT_AN_OBJECT = "Request body must be a JSON object"
INVALID_FIELD_TYPES = "Form fields must be strings"
INPUT_TOO_LARGE = "Input too large"
BODY_TIMEOUT = "Request body read timed out"
INVALID_CONTENT_LENGTH = "Invalid Content-Length header"


def is_json_media_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type == "application/json":
        return True
    return media_type.startswith("application/") and media_type.endswith("+json")


def check_field_types(data: Dict[str, Any]) -> Result[Dict[str, Any], ValidationError]:
    """Free-text fields must be strings when present (``null`` counts as absent)."""
    errors = [
        {"field": key, "message": "Must be a string"}
        for key in TEXT_FIELDS
        if data.get(key) is not None and not isinstance(data[key], str)
    ]
    if errors:
        return Err(ValidationError(INVALID_FIELD_TYPES, errors))
    return Ok(data)


def sanitize_fields(data: Dict[str, Any]) -> Result[Dict[str, Any], ValidationError]:
    """Sanitize every free-text field independently; consent passes through untouched."""
    cleaned: Dict[str, Any] = {}
    errors: List[Dict[str, str]] = []
    for key in TEXT_FIELDS:
        result = sanitize_input(data.get(key))
        if isinstance(result, Err):
            errors.append({"field": key, "message": "Input exceeds maximum allowed length"})
        else:
            cleaned[key] = result.value

    if errors:
        return Err(ValidationError(INPUT_TOO_LARGE, errors))

    cleaned["consent"] = data.get("consent")
    return Ok(cleaned)


class ContactPipeline:
    def __init__(
        self,
        settings: Settings,
        rate_limiter: RateLimiter,
        notifier: EmailNotifier,
        background: BackgroundTasks,
        trusted_networks: List[IPNetwork],
    ) -> None:
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.notifier = notifier
        self.background = background
        self.trusted_networks = trusted_networks

    async def handle(self, request: Request) -> Response:
        context = get_request_context(request)
        try:
            return await self._run(request, context)
        except Exception as exc:
            log_error(exc, context.request_id, stage=context.stage)
            return problem_response(
                exc, context.request_id, verbose=self.settings.VERBOSE_ERRORS
            )

    def _reject(
        self, error: ApiError, context: RequestContext, rate_limit: Optional[RateLimitResult] = None
    ) -> Response:
        log_error(
            error,
            context.request_id,
            stage=context.stage,
            client_ip_hash=hash_identifier(context.identity or "unknown"),
        )
        headers = None
        if rate_limit is not None and not isinstance(error, RateLimitError):
            headers = self._rate_limit_headers(rate_limit)
        return problem_response(
            error, context.request_id, verbose=self.settings.VERBOSE_ERRORS, headers=headers
        )

    @staticmethod
    def _rate_limit_headers(result: RateLimitResult) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
        }

    async def _run(self, request: Request, context: RequestContext) -> Response:
        headers = request.headers

        context.stage = "origin"
        origin = validate_request_origin(
            headers.get("origin"), headers.get("referer"), self.settings.ALLOWED_ORIGINS
        )
        if isinstance(origin, Err):
            return self._reject(origin.error, context)

        context.stage = "content_type"
        if not is_json_media_type(headers.get("content-type")):
            return self._reject(UnsupportedMediaTypeError(INVALID_CONTENT_TYPE), context)

        context.stage = "rate_limit"
        context.client_ip = get_client_ip(request, self.trusted_networks)
        context.identity = resolve_rate_limit_identity(context.client_ip, context.request_id)
        rate_limit = self.rate_limiter.check(
            context.identity,
            self.settings.RATE_LIMIT_MAX_REQUESTS,
            self.settings.RATE_LIMIT_WINDOW_MS,
        )
        if not rate_limit.allowed:
            error = RateLimitError(
                FORM_RATE_LIMIT,
                retry_after=rate_limit.retry_after_seconds(self.rate_limiter.clock()),
                reset_time=rate_limit.reset_time,
                limit=rate_limit.limit,
            )
            return self._reject(error, context)

        context.stage = "size_precheck"
        precheck = self._check_declared_length(headers.get("content-length"))
        if isinstance(precheck, Err):
            return self._reject(precheck.error, context, rate_limit)

        context.stage = "body_read"
        try:
            body = await asyncio.wait_for(
                self._read_body(request), timeout=self.settings.BODY_READ_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            return self._reject(ValidationError(BODY_TIMEOUT), context, rate_limit)

        context.stage = "size_postcheck"
        if len(body) > self.settings.MAX_BODY_SIZE:
            return self._reject(
                PayloadTooLargeError(REQUEST_TOO_LARGE, self.settings.MAX_BODY_SIZE),
                context,
                rate_limit,
            )

        context.stage = "json_parse"
        try:
            data = json.loads(body)
        except ValueError:
            # UnicodeDecodeError and JSONDecodeError are both ValueErrors
            return self._reject(ValidationError(INVALID_JSON), context, rate_limit)

        context.stage = "shape"
        if not isinstance(data, dict):
            return self._reject(ValidationError(NOT_AN_OBJECT), context, rate_limit)

        context.stage = "field_types"
        typed = check_field_types(data)
        if isinstance(typed, Err):
            return self._reject(typed.error, context, rate_limit)

        context.stage = "sanitize"
        sanitized = sanitize_fields(typed.value)
        if isinstance(sanitized, Err):
            return self._reject(sanitized.error, context, rate_limit)

        context.stage = "validate"
        validated = validate_submission(
            sanitized.value, self.settings.DISPOSABLE_EMAIL_DOMAINS
        )
        if isinstance(validated, Err):
            return self._reject(ValidationError(FORM_INVALID, validated.error), context, rate_limit)
        submission = validated.value

        context.stage = "notify"
        await self._notify_operator(submission, context)
        self._send_confirmation(submission, context)

        context.stage = "success"
        logger.info(
            "AUDIT: Contact submission accepted id=%s",
            context.request_id,
            extra={
                "event_type": "contact_submission_accepted",
                "request_id": context.request_id,
                "email_domain": submission.email.rsplit("@", 1)[-1].lower(),
                "service": submission.service or None,
                "has_company": bool(submission.company),
                "has_phone": bool(submission.phone),
                "duration_ms": round(context.elapsed_ms, 2),
            },
        )

        return JSONResponse(
            status_code=200,
            content=ContactResponse(success=True, message=SUCCESS_MESSAGE).model_dump(),
            headers={
                "X-Request-ID": context.request_id,
                **self._rate_limit_headers(rate_limit),
            },
        )

    def _check_declared_length(self, value: Optional[str]) -> Result[Optional[int], ApiError]:
        if value is None:
            return Ok(None)
        try:
            declared = int(value)
        except ValueError:
            return Err(ValidationError(INVALID_CONTENT_LENGTH))
        if declared < 0:
            return Err(ValidationError(INVALID_CONTENT_LENGTH))
        if declared > self.settings.MAX_BODY_SIZE:
            return Err(PayloadTooLargeError(REQUEST_TOO_LARGE, self.settings.MAX_BODY_SIZE))
        return Ok(declared)

    async def _read_body(self, request: Request) -> bytes:
        # Stop pulling chunks once past the limit; the post-check rejects it
        limit = self.settings.MAX_BODY_SIZE
        chunks: List[bytes] = []
        size = 0
        async for chunk in request.stream():
            chunks.append(chunk)
            size += len(chunk)
            if size > limit:
                break
        return b"".join(chunks)

    async def _notify_operator(self, submission: ContactSubmission, context: RequestContext) -> None:
        """Awaited but never fatal: the submitter gets a success either way."""
        try:
            await asyncio.wait_for(
                self.notifier.send_notification(submission),
                timeout=self.settings.EMAIL_SEND_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Operator notification timed out id=%s",
                context.request_id,
                extra={"event_type": "contact_notification_timeout", "request_id": context.request_id},
            )
        except Exception as exc:
            logger.error(
                "Operator notification failed id=%s error=%s",
                context.request_id,
                exc,
                extra={"event_type": "contact_notification_failed", "request_id": context.request_id},
            )

    def _send_confirmation(self, submission: ContactSubmission, context: RequestContext) -> None:
        """Fire-and-forget: failures surface only through the task's done callback."""
        self.background.spawn(
            asyncio.wait_for(
                self.notifier.send_confirmation(submission),
                timeout=self.settings.EMAIL_SEND_TIMEOUT_SECONDS,
            ),
            name=f"contact-confirmation-{context.request_id}",
            context={"request_id": context.request_id},
        )
