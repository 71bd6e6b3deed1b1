"""Response hardening for the contact API.

Every response is JSON, so outside the interactive docs nothing may be
framed, cached or allowed to load subresources.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-site",
}
API_CONTENT_SECURITY_POLICY = "default-src 'none'; frame-ancestors 'none'"
HSTS_VALUE = "max-age=31536000; includeSubDomains"

# Swagger UI and ReDoc load scripts and styles from a CDN
DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")


def _served_over_https(request: Request) -> bool:
    if request.url.scheme == "https":
        return True
    return request.headers.get("X-Forwarded-Proto", "").lower() == "https"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)

        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)

        if not request.url.path.startswith(DOCS_PATHS):
            response.headers.setdefault("Content-Security-Policy", API_CONTENT_SECURITY_POLICY)
            response.headers.setdefault("Cache-Control", "no-store")

        if _served_over_https(request):
            response.headers["Strict-Transport-Security"] = HSTS_VALUE

        return response
