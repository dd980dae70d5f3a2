"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

DEFAULT_TURNSTILE_ENDPOINT = "https://challenges.cloudflare.com/turnstile/v0/siteverify"
TURNSTILE_SECRET_LENGTH = 35
DEFAULT_MAX_BODY_SIZE = 4096

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_turnstile_settings() -> "TurnstileSettings":
    # WB_CF_TURN_SECRET takes precedence over TURNSTILE_SECRET
    override = os.getenv("WB_CF_TURN_SECRET")
    if override is not None:
        return TurnstileSettings(secret=override)  # type: ignore[call-arg]
    return TurnstileSettings()  # type: ignore[call-arg]


def _build_smtp_settings() -> "SMTPSettings":
    return SMTPSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Server and submission-endpoint configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    host: str = Field(
        "0.0.0.0",
        description="Interface the HTTP server binds to",
    )
    port: int = Field(
        8080,
        description="Port the HTTP server listens on",
        ge=1,
        le=65535,
    )
    submit_path: str = Field(
        "/-/cta",
        description="Path of the form submission endpoint",
    )
    max_body_size: int = Field(
        DEFAULT_MAX_BODY_SIZE,
        description="Maximum submission body size in bytes (0 selects the default)",
        ge=0,
    )
    block_bot_user_agents: bool = Field(
        True,
        description="Reject submissions with empty or automation-looking User-Agent",
    )
    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-IP rate limiting of submissions",
    )
    rate_limit_requests: int = Field(
        5,
        description="Maximum number of submissions allowed per window (per client IP)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Sliding rate limit window size in seconds",
        ge=1,
    )
    mail_subject: str = Field(
        "New CTA Submission",
        description="Subject line of forwarded submission emails",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    @field_validator("submit_path")
    @classmethod
    def _check_submit_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("submit_path must start with '/'")
        return value

    @field_validator("max_body_size")
    @classmethod
    def _default_max_body_size(cls, value: int) -> int:
        return value or DEFAULT_MAX_BODY_SIZE


class TurnstileSettings(BaseSettings):
    """Challenge verification (Cloudflare Turnstile) configuration.

    An empty secret leaves verification unconfigured; every submission is
    then rejected at the verification step.
    """

    secret: str = Field(
        "",
        description="Turnstile secret key",
    )
    endpoint: str = Field(
        DEFAULT_TURNSTILE_ENDPOINT,
        description="Siteverify endpoint URL",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Verification request timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="TURNSTILE_",
        case_sensitive=False,
    )

    @field_validator("secret")
    @classmethod
    def _check_secret(cls, value: str) -> str:
        if value and len(value) != TURNSTILE_SECRET_LENGTH:
            raise ValueError(
                f"turnstile secret must be {TURNSTILE_SECRET_LENGTH} characters long"
            )
        return value

    @field_validator("endpoint")
    @classmethod
    def _check_endpoint(cls, value: str) -> str:
        if not value:
            return DEFAULT_TURNSTILE_ENDPOINT
        if not value.startswith(("http://", "https://")):
            raise ValueError("turnstile endpoint must start with http:// or https://")
        return value

    @property
    def masked_secret(self) -> str | None:
        """Secret shortened for startup logs, or None when unset."""
        if not self.secret:
            return None
        return self.secret[:5] + "*******..."


class SMTPSettings(BaseSettings):
    """Outbound mail transport configuration."""

    server: str = Field("localhost", description="SMTP server host name")
    port: int = Field(25, description="SMTP server port", ge=1, le=65535)
    encryption: Literal["ssl", "starttls", "none"] = Field(
        "starttls",
        description="ssl (implicit TLS), starttls (upgrade when offered) or none",
    )
    username: str = Field("", description="Login user; authentication is skipped when empty")
    password: str = Field("", description="Login password")
    verify_tls: bool = Field(
        True,
        description="Verify server certificates (disable only for test servers)",
    )
    from_address: str = Field("", description="Envelope and header sender")
    to_address: str = Field("", description="Recipient of forwarded submissions")
    timeout_seconds: float = Field(30.0, description="SMTP socket timeout in seconds", gt=0)

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        case_sensitive=False,
    )

    @field_validator("encryption", mode="before")
    @classmethod
    def _normalize_encryption(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().lower()
            # Anything not recognized falls back to an unencrypted session
            if value not in ("ssl", "starttls"):
                return "none"
        return value


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Minimum log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )

    @field_validator("format", "output", mode="before")
    @classmethod
    def _lowercase_choice(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class SiteSettings(BaseModel):
    """A static site served under a URL prefix.

    ``spa`` sites additionally serve ``basepage`` for every client-side route
    listed in ``paths``.
    """

    dir: str
    type: Literal["static", "spa"] = "static"
    basepage: str = ""
    paths: list[str] = Field(default_factory=list)

    @field_validator("type", mode="before")
    @classmethod
    def _lower_type(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_basepage(self) -> "SiteSettings":
        if self.type == "spa" and not self.basepage:
            raise ValueError("spa sites require a basepage")
        return self


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    turnstile: TurnstileSettings = Field(default_factory=_build_turnstile_settings)
    smtp: SMTPSettings = Field(default_factory=_build_smtp_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)
    locations: dict[str, SiteSettings] = Field(
        default_factory=dict,
        description="URL prefix -> static site (JSON in the LOCATIONS variable)",
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
