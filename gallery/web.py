"""Request helpers shared by the public API and the admin router."""

from __future__ import annotations

from typing import Optional

import httpx
from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session

from .cache import GalleryCache
from .config import get_config
from .database import get_session
from .errors import GalleryError, UpstreamFetchError
from .repository import ConfigRepository, ResolvedDomainConfig, resolve_domain_config
from .utils import normalize_domain

_gallery_cache: Optional[GalleryCache] = None


def get_gallery_cache() -> GalleryCache:
    """Process-wide cache, created with the configured TTL on first use."""
    global _gallery_cache
    if _gallery_cache is None:
        _gallery_cache = GalleryCache(ttl_seconds=get_config().gallery.cache_ttl_seconds)
    return _gallery_cache


def get_http_client() -> Optional[httpx.AsyncClient]:
    """Upstream HTTP client; None lets each run open its own."""
    return None


def request_domain(request: Request, explicit: Optional[str] = None) -> str:
    """Explicit value, else ?domain=, else X-Forwarded-Host, else Host."""
    for candidate in (
        explicit,
        request.query_params.get("domain"),
        request.headers.get("x-forwarded-host"),
        request.headers.get("host"),
    ):
        if candidate and candidate.strip():
            return normalize_domain(candidate)
    return normalize_domain(request.url.hostname)


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "message": message},
    )


def gallery_error_response(exc: GalleryError, code: Optional[str] = None) -> JSONResponse:
    """400 for configuration problems, 502 for upstream failures."""
    status = 502 if isinstance(exc, UpstreamFetchError) else 400
    return error_response(status, code or exc.code, exc.message)


def domain_config(
    request: Request,
    domain: Optional[str] = None,
    session: Session = Depends(get_session),
) -> ResolvedDomainConfig:
    """Effective config of the requesting domain.

    A plain ``def`` dependency, so the SQLite read runs in the threadpool.
    """
    return resolve_domain_config(ConfigRepository(session), request_domain(request, domain), get_config())
