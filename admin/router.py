"""FastAPI router for admin operations: domain config and directory browsing."""

from __future__ import annotations

from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlmodel import Session

from gallery.config import get_config
from gallery.database import get_session
from gallery.errors import GalleryError
from gallery.logging_config import get_logger
from gallery.models import DomainSettings, ImgbedSettings
from gallery.pipeline import GalleryPipeline
from gallery.repository import (
    STORAGE_BACKEND,
    ConfigRepository,
    ResolvedDomainConfig,
    resolve_domain_config,
    source_config_for,
)
from gallery.web import domain_config, gallery_error_response, get_http_client, request_domain

from .auth import require_admin

logger = get_logger(__name__)

router = APIRouter(tags=["admin"], dependencies=[Depends(require_admin)])


class DirectoriesRequest(BaseModel):
    domain: Optional[str] = None
    imgbed: Optional[ImgbedSettings] = None
    config: Optional[DomainSettings] = None

    def override(self) -> Optional[ImgbedSettings]:
        if self.imgbed is not None:
            return self.imgbed
        if self.config is not None:
            return self.config.imgbed
        return None


class ConfigUpdate(BaseModel):
    domain: Optional[str] = None
    config: DomainSettings = DomainSettings()


@router.post("/directories")
async def admin_directories(
    request: Request,
    body: Optional[DirectoriesRequest] = None,
    session: Session = Depends(get_session),
    client: Optional[httpx.AsyncClient] = Depends(get_http_client),
):
    """Directory tree of the listing, with unsaved form values layered on top."""
    body = body or DirectoriesRequest()
    config = get_config()
    domain = request_domain(request, body.domain)

    resolved = await run_in_threadpool(
        resolve_domain_config, ConfigRepository(session), domain, config
    )
    source = source_config_for(resolved, config, body.override())

    pipeline = GalleryPipeline.for_directories(
        source, timeout=config.imgbed.timeout_seconds, client=client
    )
    try:
        result = await pipeline.build_directories()
    except GalleryError as exc:
        logger.error(f"Directory listing failed for {domain}: {exc}")
        code = exc.code if exc.code.startswith("missing-") else "imgbed-directory-fetch-failed"
        return gallery_error_response(exc, code)

    return {"success": True, "data": result.artifact.to_dict()}


@router.get("/config")
def admin_config_get(resolved: ResolvedDomainConfig = Depends(domain_config)):
    """Effective domain config, including the stored token."""
    return {
        "success": True,
        "data": {
            "domain": resolved.domain,
            "config": resolved.settings.model_dump(by_alias=True),
            "storageBackend": STORAGE_BACKEND,
            "existed": resolved.existed,
        },
    }


@router.put("/config")
def admin_config_put(
    request: Request,
    update: ConfigUpdate,
    session: Session = Depends(get_session),
    username: str = Depends(require_admin),
):
    """Replace the stored config of a domain."""
    domain = request_domain(request, update.domain)
    repo = ConfigRepository(session)
    saved = repo.save(domain, update.config)
    repo.commit()
    logger.info(f"Config for {domain} updated by {username}")
    return {
        "success": True,
        "data": {
            "domain": domain,
            "config": saved.model_dump(by_alias=True),
            "storageBackend": STORAGE_BACKEND,
            "updatedBy": username,
        },
    }
