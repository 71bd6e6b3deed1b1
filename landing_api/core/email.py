from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from landing_api.core.config import Settings

logger = logging.getLogger(__name__)


class EmailNotConfiguredError(RuntimeError):
    """Raised when a send is attempted without an SMTP host."""


@dataclass(frozen=True)
class SmtpConfig:
    host: Optional[str]
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpConfig":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            timeout=settings.EMAIL_SEND_TIMEOUT_SECONDS,
        )

    @property
    def configured(self) -> bool:
        return bool(self.host)


def _send_email_sync(message: EmailMessage, config: SmtpConfig) -> None:
    if not config.host:
        raise EmailNotConfiguredError("SMTP_HOST is not configured")

    with smtplib.SMTP(config.host, config.port, timeout=config.timeout) as server:
        server.starttls()
        if config.user and config.password:
            server.login(config.user, config.password)
        server.send_message(message)


async def send_email(
    message: EmailMessage,
    config: SmtpConfig,
    retries: int = 2,
    retry_delay: float = 1.0,
) -> None:
    """Send through SMTP on a worker thread, retrying transient failures."""
    last_error: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            await asyncio.to_thread(_send_email_sync, message, config)
            return
        except EmailNotConfiguredError:
            raise
        except Exception as exc:
            last_error = exc
            logger.warning("Email send attempt %s failed: %s", attempt + 1, exc)
            if attempt < retries:
                await asyncio.sleep(retry_delay * (attempt + 1))

    if last_error:
        raise last_error
