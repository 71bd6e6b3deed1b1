from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from landing_api.core.result import Err, Ok, Result

NAME_MAX = 100
EMAIL_MAX = 255
MESSAGE_MIN = 10
MESSAGE_MAX = 5000
COMPANY_MAX = 200

# RFC 5322 compliant subset
EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
PHONE_SEPARATORS = re.compile(r"[\s\-()]")
PHONE_REGEX = re.compile(r"^\+?[0-9]{10,15}$")

SERVICE_OPTIONS = (
    "web3-strategy",
    "cybersecurity",
    "infrastructure",
    "cloud",
    "compliance",
    "transformation",
    "other",
)

DEFAULT_DISPOSABLE_DOMAINS = (
    "tempmail.com",
    "10minutemail.com",
    "guerrillamail.com",
    "mailinator.com",
    "throwaway.email",
)

CONSENT_TOKEN = "on"
TEXT_FIELDS = ("name", "email", "message", "company", "phone", "service")


def normalize_phone(phone: str) -> str:
    return PHONE_SEPARATORS.sub("", phone)


def is_disposable_email(email: str, disposable_domains: Iterable[str]) -> bool:
    domain = email.rsplit("@", 1)[-1].lower()
    return domain in {d.lower() for d in disposable_domains}


class ContactSubmission(BaseModel):
    """A fully validated contact form submission."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field("", validate_default=True)
    email: str = Field("", validate_default=True)
    message: str = Field("", validate_default=True)
    company: str = ""
    phone: str = ""
    service: str = ""
    consent: str = Field("", validate_default=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise ValueError("Name is required")
        if len(v) > NAME_MAX:
            raise ValueError(f"Name must be less than {NAME_MAX} characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str, info: ValidationInfo) -> str:
        if not v:
            raise ValueError("Email is required")
        if len(v) > EMAIL_MAX:
            raise ValueError(f"Email must be less than {EMAIL_MAX} characters")
        if not EMAIL_REGEX.match(v):
            raise ValueError("Please enter a valid email address")

        context = info.context or {}
        disposable = context.get("disposable_domains") or DEFAULT_DISPOSABLE_DOMAINS
        if is_disposable_email(v, disposable):
            raise ValueError("Please use a valid business email address")
        return v

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        if len(v) < MESSAGE_MIN:
            raise ValueError(f"Message must be at least {MESSAGE_MIN} characters")
        if len(v) > MESSAGE_MAX:
            raise ValueError(f"Message must be less than {MESSAGE_MAX} characters")
        return v

    @field_validator("company")
    @classmethod
    def validate_company(cls, v: str) -> str:
        if len(v) > COMPANY_MAX:
            raise ValueError(f"Company name must be less than {COMPANY_MAX} characters")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if v and not PHONE_REGEX.match(normalize_phone(v)):
            raise ValueError("Please enter a valid phone number")
        return v

    @field_validator("service")
    @classmethod
    def validate_service(cls, v: str) -> str:
        if v and v not in SERVICE_OPTIONS:
            raise ValueError("Please select a valid service")
        return v

    @field_validator("consent", mode="before")
    @classmethod
    def validate_consent(cls, v: Any) -> str:
        # Checkbox value only; booleans and "true" do not count
        if not isinstance(v, str) or v != CONSENT_TOKEN:
            raise ValueError("You must agree to be contacted")
        return v


class ContactResponse(BaseModel):
    success: bool
    message: str


def _field_errors(exc: PydanticValidationError) -> List[Dict[str, str]]:
    errors = []
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "__root__"
        ctx_error = (err.get("ctx") or {}).get("error")
        message = str(ctx_error) if ctx_error is not None else err["msg"]
        errors.append({"field": field, "message": message})
    return errors


def validate_submission(
    data: Mapping[str, Any],
    disposable_domains: Optional[Iterable[str]] = None,
) -> Result[ContactSubmission, List[Dict[str, str]]]:
    """Validate sanitized form data, collecting every field error at once."""
    context = {"disposable_domains": list(disposable_domains or DEFAULT_DISPOSABLE_DOMAINS)}
    try:
        return Ok(ContactSubmission.model_validate(dict(data), context=context))
    except PydanticValidationError as exc:
        return Err(_field_errors(exc))


def precheck_contact_form(form: Mapping[str, Any]) -> Dict[str, str]:
    """Cheap client-side pre-check run before submitting.

    Returns field -> message; an empty dict means the form may be sent. The
    server repeats the full validation regardless.
    """
    errors: Dict[str, str] = {}

    def _text(key: str) -> str:
        value = form.get(key)
        return value.strip() if isinstance(value, str) else ""

    if not _text("name"):
        errors["name"] = "Name is required"
    if not _text("email"):
        errors["email"] = "Email is required"

    message = _text("message")
    if not message:
        errors["message"] = "Message is required"
    elif len(message) < MESSAGE_MIN:
        errors["message"] = f"Message must be at least {MESSAGE_MIN} characters"

    if not form.get("consent"):
        errors["consent"] = "You must agree to be contacted"

    return errors
