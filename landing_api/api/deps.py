from typing import List

from fastapi import Depends, Request

from landing_api.core.background import BackgroundTasks
from landing_api.core.config import settings
from landing_api.core.rate_limiter import IPNetwork, RateLimiter
from landing_api.services.contact_service import ContactPipeline
from landing_api.services.email_service import EmailNotifier, SmtpEmailNotifier


def get_rate_limiter(request: Request) -> RateLimiter:
    """
    Process-wide rate limiter created at startup.

    Usage:
        @router.post("/items")
        def create(limiter: RateLimiter = Depends(get_rate_limiter)):
            ...
    """
    return request.app.state.rate_limiter


def get_trusted_networks(request: Request) -> List[IPNetwork]:
    return request.app.state.trusted_networks


def get_background_tasks(request: Request) -> BackgroundTasks:
    return request.app.state.background_tasks


def get_email_notifier() -> EmailNotifier:
    return SmtpEmailNotifier(settings)


def get_contact_pipeline(
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    notifier: EmailNotifier = Depends(get_email_notifier),
    background: BackgroundTasks = Depends(get_background_tasks),
    trusted_networks: List[IPNetwork] = Depends(get_trusted_networks),
) -> ContactPipeline:
    return ContactPipeline(
        settings=settings,
        rate_limiter=rate_limiter,
        notifier=notifier,
        background=background,
        trusted_networks=trusted_networks,
    )
