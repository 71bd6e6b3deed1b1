import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from landing_api.api.v1 import contact
from landing_api.core.background import BackgroundTasks
from landing_api.core.config import settings
from landing_api.core.errors import register_exception_handlers
from landing_api.core.logging import setup_logging
from landing_api.core.middleware import AccessLogMiddleware, RequestIdMiddleware
from landing_api.core.rate_limiter import (
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitSweeper,
    parse_trusted_networks,
)
from landing_api.core.security_headers import SecurityHeadersMiddleware

# Setup logging
logger = setup_logging()
app_logger = logging.getLogger(__name__)


# =============================================================================
# OpenAPI Tags Metadata
# =============================================================================
tags_metadata = [
    {
        "name": "contact",
        "description": "**Contact** - Public contact form. Same-origin only, rate limited per client IP.",
    },
    {
        "name": "health",
        "description": "**Health** - Liveness metadata for uptime checks.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    app_logger.info("Starting %s v%s", settings.PROJECT_NAME, settings.VERSION)
    app_logger.info("Environment: %s", settings.ENVIRONMENT)
    app_logger.info("Allowed origins: %s", ", ".join(settings.ALLOWED_ORIGINS) or "(none)")

    sweeper = RateLimitSweeper(
        app.state.rate_limiter, settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS
    )
    sweeper.start()

    yield

    # Shutdown
    app_logger.info("Shutting down...")
    await sweeper.stop()
    await app.state.background_tasks.shutdown()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
## Landing Contact API

Receives contact form submissions from the marketing site, validates and
sanitizes them, and forwards them to the site operator by email.

Errors follow RFC 7807 and are served as `application/problem+json`.
    """,
    openapi_tags=tags_metadata,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Process-wide state shared by every request
app.state.rate_limiter = RateLimiter(InMemoryRateLimitStore())
app.state.trusted_networks = parse_trusted_networks(settings.TRUSTED_PROXIES)
app.state.background_tasks = BackgroundTasks()

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
    expose_headers=[
        "X-Request-ID",
        "X-RateLimit-Limit",
        "X-RateLimit-Remaining",
        "X-RateLimit-Reset",
        "Retry-After",
    ],
)

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(AccessLogMiddleware)

# Request ID Tracing
app.add_middleware(RequestIdMiddleware)

# Register global exception handlers
register_exception_handlers(app)

# Contact form (public)
app.include_router(contact.router)


# Health check endpoint
@app.get(
    "/health",
    tags=["health"],
    summary="Health check",
    description="Returns service health metadata for monitoring and uptime checks.",
)
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
    }


# Root endpoint
@app.get(
    "/",
    summary="API root",
    description="Returns basic API metadata and links to documentation and health endpoints.",
)
async def root():
    """Root endpoint with API info"""
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/health",
    }
