"""
Python client for the contact endpoint.

Mirrors what the landing page does: run the cheap pre-check, refuse to send
an incomplete form, POST the JSON body and map problem responses to
user-facing messages.

Usage:
    async with ContactFormClient("https://api.example.com", origin="https://example.com") as client:
        result = await client.submit(form)
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from landing_api.schemas.contact import CONSENT_TOKEN, ContactResponse, precheck_contact_form
from landing_api.schemas.error import PROBLEM_JSON

logger = logging.getLogger(__name__)

SUBMISSION_TIMEOUT_SECONDS = 30.0

FORM_REQUIRED = "Please fill in all required fields."
FORM_SUBMISSION_FAILED = "Failed to submit form. Please try again."
FORM_RATE_LIMIT = "Too many submissions. Please wait before trying again."
NETWORK_ERROR = "Network error. Please check your connection and try again."
SECURITY_FAILED = "Security validation failed. Please refresh the page and try again."
REQUEST_TOO_LARGE = "Request too large. Please shorten your message."

FORM_FIELDS = ("name", "email", "phone", "message", "company", "service")


class ContactFormError(Exception):
    """Submission failed; ``message`` is safe to show to the user."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        problem: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.problem = problem or {}

    @property
    def request_id(self) -> Optional[str]:
        instance = self.problem.get("instance")
        if isinstance(instance, str) and instance.startswith("/request/"):
            return instance[len("/request/"):]
        return None

    @property
    def retry_after(self) -> Optional[int]:
        return self.problem.get("retryAfter")


class ContactFormIncomplete(ContactFormError):
    """Pre-check failed; nothing was sent."""

    def __init__(self, field_errors: Dict[str, str]):
        super().__init__(FORM_REQUIRED)
        self.field_errors = field_errors


def build_payload(form: Mapping[str, Any]) -> Dict[str, str]:
    """Coerce raw form values to the strings the endpoint expects."""
    payload = {}
    for key in FORM_FIELDS:
        value = form.get(key)
        payload[key] = value if isinstance(value, str) else ""
    consent = form.get("consent")
    # A ticked checkbox may arrive as True or as its submitted value
    payload["consent"] = CONSENT_TOKEN if consent is True or consent == CONSENT_TOKEN else ""
    return payload


def user_message_for(status_code: int, problem: Mapping[str, Any], debug: bool = False) -> str:
    if status_code == 429:
        return FORM_RATE_LIMIT
    if status_code == 403:
        return SECURITY_FAILED
    if status_code == 413:
        return REQUEST_TOO_LARGE
    if debug and problem.get("detail"):
        return str(problem["detail"])
    return FORM_SUBMISSION_FAILED


class ContactFormClient:
    def __init__(
        self,
        base_url: str,
        origin: str,
        timeout: float = SUBMISSION_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        debug: bool = False,
    ):
        self.origin = origin
        self.debug = debug
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Origin": origin, "Accept": f"application/json, {PROBLEM_JSON}"},
        )

    async def __aenter__(self) -> "ContactFormClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def submit(self, form: Mapping[str, Any]) -> ContactResponse:
        """Pre-check and submit a contact form.

        Raises:
            ContactFormIncomplete: required fields missing, nothing sent
            ContactFormError: network failure or a problem response
        """
        errors = precheck_contact_form(form)
        if errors:
            raise ContactFormIncomplete(errors)

        try:
            response = await self._client.post("/contact", json=build_payload(form))
        except httpx.TimeoutException as exc:
            logger.warning("Contact submission timed out: %s", exc)
            raise ContactFormError(NETWORK_ERROR) from exc
        except httpx.HTTPError as exc:
            logger.warning("Contact submission failed: %s", exc)
            raise ContactFormError(NETWORK_ERROR) from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            raise ContactFormError(FORM_SUBMISSION_FAILED, response.status_code)

        if response.is_success:
            return ContactResponse.model_validate(body)

        logger.info(
            "Contact submission rejected status=%s request_id=%s",
            response.status_code,
            response.headers.get("X-Request-ID"),
        )
        raise ContactFormError(
            user_message_for(response.status_code, body, self.debug),
            response.status_code,
            body,
        )
