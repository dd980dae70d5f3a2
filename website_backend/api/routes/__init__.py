from __future__ import annotations

from website_backend.api.routes.health import router as health_router
from website_backend.api.routes.submission import build_submission_router

__all__ = ["build_submission_router", "health_router"]
