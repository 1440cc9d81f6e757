"""FastAPI server for the gallery indexer.

Exposes:
- GET  /api/gallery-data         (on-demand gallery index, cached per domain)
- GET  /api/public-config        (token-free view of a domain's config)
- POST /api/admin/directories    (directory tree of the listing, admin only)
- GET  /api/admin/config
- PUT  /api/admin/config
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .cache import GalleryCache
from .config import AppConfig, get_config
from .errors import ConfigError, UpstreamFetchError
from .logging_config import get_logger
from .pipeline import GalleryPipeline
from .repository import STORAGE_BACKEND, ResolvedDomainConfig, source_config_for
from .web import (
    domain_config,
    error_response,
    gallery_error_response,
    get_gallery_cache,
    get_http_client,
)

from admin import router as admin_router

logger = get_logger(__name__)

CACHE_CONTROL = "public, max-age=30"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log the first incoming request with full URL for debugging."""

    async def dispatch(self, request, call_next):
        if not getattr(request.app.state, "logged_first_request", False):
            user_agent = request.headers.get("user-agent", "")
            client_ip = request.client.host if request.client else "unknown"
            logging.getLogger("gallery.request").info(
                'client_connected ip="%s" url="%s %s" host="%s" ua="%s"'
                % (client_ip, request.method, str(request.url), request.headers.get("host", ""), user_agent)
            )
            request.app.state.logged_first_request = True
        return await call_next(request)


app = FastAPI(title="ImgBed Gallery")
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.get("/favicon.ico", include_in_schema=False)
def favicon() -> Response:
    return Response(status_code=204)


@app.get("/api/gallery-data")
async def gallery_data(
    resolved: ResolvedDomainConfig = Depends(domain_config),
    cache: GalleryCache = Depends(get_gallery_cache),
    client: Optional[httpx.AsyncClient] = Depends(get_http_client),
):
    """Gallery index for the requesting domain, served from cache when fresh."""
    config = get_config()
    domain = resolved.domain

    if resolved.data_mode != "imgbed-api":
        return error_response(
            400,
            "gallery-mode-disabled",
            "The ImgBed API gallery mode is not enabled for this domain.",
        )

    source = source_config_for(resolved, config)
    try:
        source.require(token=True)
    except ConfigError as exc:
        return gallery_error_response(exc)

    pipeline = GalleryPipeline(source, timeout=config.imgbed.timeout_seconds, client=client)

    async def compute():
        return (await pipeline.build_gallery()).artifact

    try:
        index, cached = await cache.get_or_compute(domain, source, compute)
    except UpstreamFetchError as exc:
        logger.error(f"Gallery fetch failed for {domain}: {exc}")
        return gallery_error_response(exc, "imgbed-fetch-failed")

    return JSONResponse(
        content={
            "success": True,
            "mode": "imgbed-api",
            "cached": cached,
            "data": index.model_dump(),
        },
        headers={"Cache-Control": CACHE_CONTROL},
    )


@app.get("/api/public-config")
def public_config(resolved: ResolvedDomainConfig = Depends(domain_config)):
    """Display-relevant configuration for the frontend; never includes the token."""
    return {
        "success": True,
        "data": {
            "domain": resolved.domain,
            "config": resolved.settings.public(),
            "storageBackend": STORAGE_BACKEND,
        },
    }


app.include_router(admin_router, prefix="/api/admin")


def run_server(config: AppConfig, host: Optional[str], port: Optional[int]) -> None:
    """Run the FastAPI app with Uvicorn."""
    import uvicorn

    effective_host = host or config.server_host
    effective_port = port or config.server_port
    logger.info(f"Gallery API listening on http://{effective_host}:{effective_port}/api/gallery-data")

    uvicorn.run(
        app,
        host=effective_host,
        port=effective_port,
        log_level="info",
        log_config=None,
    )
