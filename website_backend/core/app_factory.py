"""Application factory for the FastAPI app.

Builds the long-lived collaborators (rate limiter, verifier, mailer) once per
application and wires middleware, handlers, routers and static sites.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from website_backend.adapters.captcha.turnstile import TurnstileVerifier
from website_backend.adapters.mail.smtp import SMTPMailTransport
from website_backend.adapters.rate_limit.in_memory import SlidingWindowRateLimiter
from website_backend.api.routes import build_submission_router, health_router
from website_backend.core.config import Settings, settings as default_settings
from website_backend.core.exception_handlers import setup_exception_handlers
from website_backend.core.logging import configure_logging
from website_backend.core.middleware import build_request_context_middleware
from website_backend.core.static_sites import mount_sites
from website_backend.services.mailer import Mailer
from website_backend.services.submission_pipeline import SubmissionPipeline

logger = logging.getLogger(__name__)


def build_pipeline(cfg: Settings) -> SubmissionPipeline:
    """Construct the submission pipeline and its collaborators from settings."""
    limiter = SlidingWindowRateLimiter(
        limit=cfg.app.rate_limit_requests,
        window_seconds=cfg.app.rate_limit_window_seconds,
        enabled=cfg.app.rate_limit_enabled,
    )
    verifier = TurnstileVerifier(
        secret=cfg.turnstile.secret,
        endpoint=cfg.turnstile.endpoint,
        timeout_seconds=cfg.turnstile.timeout_seconds,
    )
    mailer = Mailer(
        smtp_settings=cfg.smtp,
        transport=SMTPMailTransport(cfg.smtp),
        subject=cfg.app.mail_subject,
    )
    return SubmissionPipeline(
        settings=cfg.app,
        limiter=limiter,
        verifier=verifier,
        mailer=mailer,
    )


def _log_verifier_config(cfg: Settings) -> None:
    if cfg.turnstile.masked_secret is None:
        logger.warning(
            "turnstile.not_configured",
            extra={"hint": "set TURNSTILE_SECRET; every submission will be rejected"},
        )
        return
    logger.info(
        "turnstile.configured",
        extra={"endpoint": cfg.turnstile.endpoint, "secret_hint": cfg.turnstile.masked_secret},
    )


def create_app(
    cfg: Settings | None = None,
    *,
    pipeline: SubmissionPipeline | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        cfg: Settings to use; defaults to the environment-loaded settings.
        pipeline: Prebuilt pipeline (tests inject stubs here).
        configure_logs: Whether to install the root logging handler.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and sites.

    Raises:
        ValidationAppError: If a configured static site directory is missing.
    """
    cfg = cfg or default_settings

    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(cfg.log)

    app = FastAPI(
        title="Website Backend",
        description=(
            "Serves static sites and accepts one protected form submission "
            "endpoint that forwards sanitized input by email."
        ),
        version="0.1.0",
        debug=cfg.app.debug,
    )

    app.state.settings = cfg
    app.state.pipeline = pipeline or build_pipeline(cfg)
    _log_verifier_config(cfg)

    # Middleware
    app.middleware("http")(build_request_context_middleware(cfg.log))

    # Exception handlers
    setup_exception_handlers(app)

    # Routers before static mounts so they win over file lookups
    app.include_router(build_submission_router(cfg.app.submit_path))
    app.include_router(health_router)
    mount_sites(app, cfg.locations)

    logger.info("app.created", extra={"submit_path": cfg.app.submit_path})
    return app
