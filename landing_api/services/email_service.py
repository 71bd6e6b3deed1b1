from __future__ import annotations

import logging
from email.message import EmailMessage
from html import escape
from typing import Protocol

from landing_api.core.config import Settings
from landing_api.core.email import EmailNotConfiguredError, SmtpConfig, send_email
from landing_api.schemas.contact import ContactSubmission

logger = logging.getLogger(__name__)

SITE_NAME = "Block Nexus"


class EmailNotifier(Protocol):
    """Outbound email collaborator used by the contact pipeline."""

    async def send_notification(self, submission: ContactSubmission) -> None:
        ...

    async def send_confirmation(self, submission: ContactSubmission) -> None:
        ...


def _optional_lines(submission: ContactSubmission) -> list[tuple[str, str]]:
    rows = []
    if submission.company:
        rows.append(("Company", submission.company))
    if submission.phone:
        rows.append(("Phone", submission.phone))
    if submission.service:
        rows.append(("Service Interest", submission.service))
    return rows


def build_notification_message(
    submission: ContactSubmission, sender: str, recipient: str
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = recipient
    msg["Reply-To"] = submission.email
    subject = "New Contact Form Submission"
    if submission.company:
        subject = f"{subject} - {submission.company}"
    msg["Subject"] = subject

    text_lines = [
        "New Contact Form Submission",
        "",
        "Contact Information:",
        f"Name: {submission.name}",
        f"Email: {submission.email}",
        *(f"{label}: {value}" for label, value in _optional_lines(submission)),
        "",
        "Message:",
        submission.message,
        "",
        "---",
        f"This email was sent from the {SITE_NAME} contact form.",
        f"Reply directly to this email to respond to {submission.name}.",
    ]
    msg.set_content("\n".join(text_lines))

    rows = "".join(
        f"<p><strong>{escape(label)}:</strong> {escape(value)}</p>"
        for label, value in [
            ("Name", submission.name),
            ("Email", submission.email),
            *_optional_lines(submission),
        ]
    )
    html = (
        "<!DOCTYPE html><html><body>"
        "<h2>New Contact Form Submission</h2>"
        f"<div>{rows}</div>"
        "<h3>Message</h3>"
        f'<p style="white-space: pre-wrap;">{escape(submission.message)}</p>'
        f"<p>This email was sent from the {SITE_NAME} contact form.</p>"
        "</body></html>"
    )
    msg.add_alternative(html, subtype="html")
    return msg


def build_confirmation_message(
    submission: ContactSubmission, sender: str, reply_to: str
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = submission.email
    msg["Subject"] = f"Thank you for contacting {SITE_NAME}"

    service_line = (
        f"Service Interest: {submission.service}\n\n" if submission.service else ""
    )
    msg.set_content(
        f"Hi {submission.name},\n\n"
        "We've received your message and will get back to you as soon as "
        "possible. Our team typically responds within 24-48 hours.\n\n"
        f"{service_line}"
        f"If you have any urgent questions, reach us at {reply_to}.\n\n"
        f"Best regards,\nThe {SITE_NAME} Team\n\n"
        "---\nThis is an automated confirmation email. Please do not reply."
    )

    service_html = (
        f"<p><strong>Service Interest:</strong> {escape(submission.service)}</p>"
        if submission.service
        else ""
    )
    msg.add_alternative(
        "<!DOCTYPE html><html><body>"
        f"<h2>Thank you for contacting {SITE_NAME}</h2>"
        f"<p>Hi {escape(submission.name)},</p>"
        "<p>We've received your message and will get back to you as soon as "
        "possible. Our team typically responds within 24-48 hours.</p>"
        f"{service_html}"
        f"<p>Best regards,<br>The {SITE_NAME} Team</p>"
        "</body></html>",
        subtype="html",
    )
    return msg


class SmtpEmailNotifier:
    """Sends contact emails through SMTP.

    Without an SMTP host, local environments log and skip. Production raises
    for the operator notification and skips the confirmation, which is the
    less important of the two.
    """

    def __init__(self, settings: Settings) -> None:
        self.smtp = SmtpConfig.from_settings(settings)
        self.sender = settings.EMAIL_FROM
        self.recipient = settings.EMAIL_TO
        self.is_production = settings.is_production

    async def send_notification(self, submission: ContactSubmission) -> None:
        if not self.smtp.configured:
            if self.is_production:
                raise EmailNotConfiguredError("Email service not configured")
            logger.info(
                "SMTP not configured; skipping operator notification",
                extra={"event_type": "email_skipped", "kind": "notification"},
            )
            return

        message = build_notification_message(submission, self.sender, self.recipient)
        await send_email(message, self.smtp)

    async def send_confirmation(self, submission: ContactSubmission) -> None:
        if not self.smtp.configured:
            logger.info(
                "SMTP not configured; skipping confirmation email",
                extra={"event_type": "email_skipped", "kind": "confirmation"},
            )
            return

        message = build_confirmation_message(submission, self.sender, self.recipient)
        await send_email(message, self.smtp)
