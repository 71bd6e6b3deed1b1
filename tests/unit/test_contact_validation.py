"""Tests for contact submission schema validation and the client pre-check."""
import pytest

from landing_api.core.result import Err, Ok
from landing_api.schemas.contact import (
    SERVICE_OPTIONS,
    is_disposable_email,
    normalize_phone,
    precheck_contact_form,
    validate_submission,
)


@pytest.fixture()
def data():
    return {
        "name": "Ada Lovelace",
        "email": "ada@analytical.example",
        "message": "Hello, this is a test message.",
        "company": "",
        "phone": "",
        "service": "",
        "consent": "on",
    }


def _errors(result):
    assert isinstance(result, Err)
    return {e["field"]: e["message"] for e in result.error}


def test_valid_submission(data):
    result = validate_submission(data)
    assert isinstance(result, Ok)
    assert result.value.name == "Ada Lovelace"
    assert result.value.consent == "on"


def test_unknown_fields_are_ignored(data):
    data["website"] = "http://spam.example"
    assert isinstance(validate_submission(data), Ok)


def test_all_errors_collected(data):
    data.update(name="", email="nope", message="short", consent="")
    assert _errors(validate_submission(data)) == {
        "name": "Name is required",
        "email": "Please enter a valid email address",
        "message": "Message must be at least 10 characters",
        "consent": "You must agree to be contacted",
    }


def test_missing_fields_reported(data):
    errors = _errors(validate_submission({"consent": "on"}))
    assert errors["name"] == "Name is required"
    assert errors["email"] == "Email is required"
    assert errors["message"] == "Message must be at least 10 characters"


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("name", "a" * 101, "Name must be less than 100 characters"),
        ("email", "a" * 250 + "@x.example", "Email must be less than 255 characters"),
        ("message", "m" * 5001, "Message must be less than 5000 characters"),
        ("company", "c" * 201, "Company name must be less than 200 characters"),
    ],
)
def test_length_limits(data, field, value, message):
    data[field] = value
    assert _errors(validate_submission(data)) == {field: message}


@pytest.mark.parametrize(
    "field, value",
    [("name", "a" * 100), ("message", "m" * 10), ("message", "m" * 5000), ("company", "c" * 200)],
)
def test_length_boundaries_accepted(data, field, value):
    data[field] = value
    assert isinstance(validate_submission(data), Ok)


@pytest.mark.parametrize("consent", ["off", "true", "yes", "ON", True, 1, None, ""])
def test_consent_must_be_exactly_on(data, consent):
    data["consent"] = consent
    assert _errors(validate_submission(data)) == {"consent": "You must agree to be contacted"}


@pytest.mark.parametrize("phone", ["+1 (555) 123-4567", "5551234567", "+44 20 7946 0958", "123456789012345"])
def test_valid_phones(data, phone):
    data["phone"] = phone
    assert isinstance(validate_submission(data), Ok)


@pytest.mark.parametrize(
    "phone",
    [
        "555-1234",
        "1234567890123456",
        "555.123.4567",
        "call me",
        "++15551234567",
        "١" * 10,
        "+३०४५६७८९१२",
    ],
)
def test_invalid_phones(data, phone):
    data["phone"] = phone
    assert _errors(validate_submission(data)) == {"phone": "Please enter a valid phone number"}


@pytest.mark.parametrize("service", SERVICE_OPTIONS)
def test_known_services(data, service):
    data["service"] = service
    assert isinstance(validate_submission(data), Ok)


def test_unknown_service(data):
    data["service"] = "blockchain-consulting"
    assert _errors(validate_submission(data)) == {"service": "Please select a valid service"}


@pytest.mark.parametrize("email", ["x@mailinator.com", "x@MAILINATOR.COM", "x@TempMail.com"])
def test_disposable_email_rejected(data, email):
    data["email"] = email
    assert _errors(validate_submission(data)) == {"email": "Please use a valid business email address"}


def test_disposable_domains_are_configurable(data):
    data["email"] = "ada@mailinator.com"
    assert isinstance(validate_submission(data, ["burner.example"]), Ok)

    data["email"] = "ada@burner.example"
    assert _errors(validate_submission(data, ["burner.example"])) == {
        "email": "Please use a valid business email address"
    }


@pytest.mark.parametrize("email", ["plainaddress", "@no-local.example", "a@b@c.example", "a@-bad.example"])
def test_malformed_emails(data, email):
    data["email"] = email
    assert _errors(validate_submission(data)) == {"email": "Please enter a valid email address"}


def test_submission_is_frozen(data):
    submission = validate_submission(data).value
    with pytest.raises(Exception):
        submission.name = "Mallory"


def test_helpers():
    assert normalize_phone("+1 (555) 123-4567") == "+15551234567"
    assert is_disposable_email("a@Mailinator.com", ["mailinator.com"])
    assert not is_disposable_email("a@example.com", ["mailinator.com"])


class TestPrecheckContactForm:
    def test_complete_form(self, data):
        assert precheck_contact_form(data) == {}

    def test_required_fields(self):
        assert precheck_contact_form({"name": "  ", "email": "", "message": None}) == {
            "name": "Name is required",
            "email": "Email is required",
            "message": "Message is required",
            "consent": "You must agree to be contacted",
        }

    def test_short_message(self, data):
        data["message"] = "  too short "
        assert precheck_contact_form(data) == {"message": "Message must be at least 10 characters"}

    def test_does_not_check_email_syntax(self, data):
        # The server owns full validation
        data["email"] = "not-an-email"
        assert precheck_contact_form(data) == {}
