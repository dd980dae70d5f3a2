"""Serve configured static sites and single-page apps.

Mounted after the API routes so the submission endpoint and health check
take precedence over any file lookup.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from website_backend.core.config import SiteSettings
from website_backend.core.errors import ValidationAppError

logger = logging.getLogger(__name__)


def _mount_path(prefix: str) -> str:
    # Starlette mounts take "/blog", not "/blog/"; "/" becomes the catch-all ""
    return prefix.rstrip("/")


def _require_dir(prefix: str, site: SiteSettings) -> Path:
    directory = Path(site.dir)
    if not directory.is_dir():
        raise ValidationAppError(
            code="site_dir_missing",
            message=f"{site.type} directory does not exist for {prefix}: {site.dir}",
        )
    return directory


def _spa_basepage_route(basepage: Path):
    async def serve_basepage(rest: str) -> FileResponse:
        return FileResponse(basepage)

    return serve_basepage


async def _redirect_to_directory(request: Request) -> RedirectResponse:
    target = request.url.path + "/"
    if request.url.query:
        target += "?" + request.url.query
    return RedirectResponse(target, status_code=301)


def mount_site(app: FastAPI, prefix: str, site: SiteSettings) -> None:
    """Mount one site under ``prefix``.

    Raises:
        ValidationAppError: If the directory (or the SPA base page) is missing.
    """
    directory = _require_dir(prefix, site)
    mount_path = _mount_path(prefix)

    if site.type == "spa":
        basepage = directory / site.basepage
        if not basepage.is_file():
            raise ValidationAppError(
                code="site_basepage_missing",
                message=f"spa base file does not exist for {prefix}: {basepage}",
            )
        for client_path in site.paths:
            base = f"{mount_path}/{client_path.strip('/')}"
            # "/app/dashboard" redirects to "/app/dashboard/" like a directory
            app.add_api_route(
                base,
                _redirect_to_directory,
                methods=["GET", "HEAD"],
                include_in_schema=False,
            )
            route = f"{base}/{{rest:path}}"
            app.add_api_route(
                route,
                _spa_basepage_route(basepage),
                methods=["GET", "HEAD"],
                include_in_schema=False,
            )
            logger.info("static.spa_route", extra={"route": route, "file": str(basepage)})

    app.mount(mount_path, StaticFiles(directory=directory, html=True), name=f"site:{prefix}")
    logger.info(
        "static.mounted",
        extra={"site_type": site.type, "prefix": prefix, "dir": str(directory)},
    )


def mount_sites(app: FastAPI, locations: Mapping[str, SiteSettings]) -> None:
    """Mount every configured site, most specific prefix first."""
    for prefix in sorted(locations, key=len, reverse=True):
        mount_site(app, prefix, locations[prefix])
