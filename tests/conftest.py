from typing import List, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from landing_api.api import deps as api_deps
from landing_api.core.config import settings
from landing_api.main import app

ALLOWED_ORIGIN = "https://blocknexus.example"
LOCAL_ORIGIN = "http://localhost:3000"
CLIENT_IP = "203.0.113.7"

VALID_SUBMISSION = {
    "name": "Ada Lovelace",
    "email": "ada@analytical.example",
    "message": "We would like to discuss a security review of our platform.",
    "company": "Analytical Engines Ltd",
    "phone": "+1 (555) 123-4567",
    "service": "cybersecurity",
    "consent": "on",
}


# -----------------------------------------------------------------------------
# Collaborators
# -----------------------------------------------------------------------------


class FakeNotifier:
    """Records submissions instead of sending email."""

    def __init__(self):
        self.notifications: List = []
        self.confirmations: List = []
        self.notification_error: Optional[Exception] = None
        self.confirmation_error: Optional[Exception] = None

    async def send_notification(self, submission):
        if self.notification_error is not None:
            raise self.notification_error
        self.notifications.append(submission)

    async def send_confirmation(self, submission):
        if self.confirmation_error is not None:
            raise self.confirmation_error
        self.confirmations.append(submission)


# -----------------------------------------------------------------------------
# Settings & state
# -----------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def contact_settings(monkeypatch):
    monkeypatch.setattr(settings, "ALLOWED_ORIGINS", [ALLOWED_ORIGIN, LOCAL_ORIGIN])
    monkeypatch.setattr(settings, "VERBOSE_ERRORS", False)
    monkeypatch.setattr(settings, "MAX_BODY_SIZE", 10 * 1024)
    monkeypatch.setattr(settings, "BODY_READ_TIMEOUT_SECONDS", 5.0)
    monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 3)
    monkeypatch.setattr(settings, "RATE_LIMIT_WINDOW_MS", 3_600_000)
    monkeypatch.setattr(settings, "EMAIL_SEND_TIMEOUT_SECONDS", 1.0)
    app.state.rate_limiter.reset()
    yield settings
    app.state.rate_limiter.reset()


@pytest.fixture()
def notifier():
    fake = FakeNotifier()
    app.dependency_overrides[api_deps.get_email_notifier] = lambda: fake
    yield fake
    app.dependency_overrides.pop(api_deps.get_email_notifier, None)


# -----------------------------------------------------------------------------
# HTTP clients
# -----------------------------------------------------------------------------


def make_client(client_ip: str = CLIENT_IP) -> httpx.AsyncClient:
    transport = ASGITransport(app=app, client=(client_ip, 50000))
    return httpx.AsyncClient(transport=transport, base_url="http://testserver")


@pytest_asyncio.fixture
async def client(notifier):
    async with make_client() as c:
        yield c
    # Let detached confirmation tasks finish on this loop
    await app.state.background_tasks.shutdown(timeout=1.0)


@pytest.fixture()
def submission():
    return dict(VALID_SUBMISSION)


@pytest.fixture()
def origin_headers():
    return {"Origin": ALLOWED_ORIGIN, "Content-Type": "application/json"}


@pytest.fixture()
def client_factory(notifier):
    return make_client
