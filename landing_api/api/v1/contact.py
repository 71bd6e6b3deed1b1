"""
Contact form endpoint.

Public endpoint receiving JSON contact submissions from the landing page.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from landing_api.api.deps import get_contact_pipeline
from landing_api.core.errors import MethodNotAllowedError
from landing_api.schemas.contact import ContactResponse
from landing_api.schemas.error import ERROR_RESPONSES
from landing_api.services.contact_service import ContactPipeline

router = APIRouter(tags=["contact"])


@router.post(
    "/contact",
    response_model=ContactResponse,
    responses=ERROR_RESPONSES,
    summary="Submit the contact form",
    description=(
        "Accepts a JSON contact submission. Requires a same-site Origin or "
        "Referer, is rate limited per client IP, and notifies the site operator "
        "by email."
    ),
)
async def submit_contact(
    request: Request,
    pipeline: ContactPipeline = Depends(get_contact_pipeline),
) -> Response:
    return await pipeline.handle(request)


@router.api_route(
    "/contact",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def contact_method_not_allowed() -> Response:
    raise MethodNotAllowedError("Method not allowed", ["POST"])
