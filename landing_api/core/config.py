from typing import List, Optional
from urllib.parse import urlsplit

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_ORIGINS = ["http://localhost:3000"]


class Settings(BaseSettings):
    PROJECT_NAME: str = "Landing Contact API"
    VERSION: str = "1.0.0"

    # --- Environment & Debug ---
    ENVIRONMENT: str = "local"
    DEBUG: bool = False  # Default to False for security
    VERBOSE_ERRORS: bool = False  # Field-level detail and stacks in problem responses
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # --- Request guards ---
    MAX_BODY_SIZE: int = Field(default=10 * 1024, gt=0)
    BODY_READ_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)

    # --- Rate Limiting / Proxy ---
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=3, ge=1)
    RATE_LIMIT_WINDOW_MS: int = Field(default=3_600_000, gt=0)
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS: float = Field(default=60.0, gt=0)
    TRUSTED_PROXIES: List[str] = Field(
        default_factory=lambda: ["127.0.0.1", "10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16"],
        description="CIDR ranges of trusted reverse proxies for X-Forwarded-For",
    )

    # --- Email ---
    EMAIL_FROM: str = "noreply@localhost"
    EMAIL_TO: str = "contact@localhost"
    EMAIL_SEND_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None

    # --- Contact form ---
    DISPOSABLE_EMAIL_DOMAINS: List[str] = Field(
        default_factory=lambda: [
            "tempmail.com",
            "10minutemail.com",
            "guerrillamail.com",
            "mailinator.com",
            "throwaway.email",
        ]
    )

    # --- Origins (CSRF allow-list + CORS) ---
    SITE_URL: Optional[str] = None
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=list,
        validate_default=True,
        description="Exact origins allowed to submit the contact form.",
    )

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    @field_validator("VERBOSE_ERRORS", mode="after")
    @classmethod
    def no_verbose_errors_in_production(cls, v: bool, info: ValidationInfo) -> bool:
        env = info.data.get("ENVIRONMENT") or "local"
        if env == "production":
            return False
        return v

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def default_allowed_origins(cls, v, info: ValidationInfo):
        if isinstance(v, str) and v.strip() in ("", "[]"):
            v = []
        if v is None:
            v = []
        origins = [o.rstrip("/") for o in v] if isinstance(v, list) else v
        if not isinstance(origins, list):
            return origins

        env = info.data.get("ENVIRONMENT") or "local"
        if env != "production":
            origins.extend(o for o in DEV_ORIGINS if o not in origins)

        site_url = info.data.get("SITE_URL")
        if site_url:
            parts = urlsplit(site_url)
            if parts.scheme and parts.netloc:
                site_origin = f"{parts.scheme}://{parts.netloc}"
                if site_origin not in origins:
                    origins.append(site_origin)
        return origins

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
