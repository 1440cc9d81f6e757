"""Shared listing pipeline.

One instance is configured per run and then driven to one of two artifacts:

- ``build_gallery()``: list -> normalize -> classify -> assemble (gallery
  endpoint, offline generator)
- ``build_directories()``: list -> normalize -> directory tree (admin browser)

Two outcome channels: record-level problems are counted in the returned
RunResult; config and transport failures raise ConfigError /
UpstreamFetchError and no artifact is produced.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, Optional, TypeVar

import httpx

from .assembler import GalleryIndex, assemble_gallery
from .classifier import classify_records
from .config import ImgbedSourceConfig
from .listing import DIRECTORY_MAX_PAGES, GALLERY_MAX_PAGES, MAX_FILES_LIMIT, ListingClient
from .logging_config import get_logger
from .tree import DirectoryListing, build_directory_listing
from .utils import mask_token

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RunResult(Generic[T]):
    artifact: T
    record_count: int
    skipped: int = 0
    ignored: int = 0


class GalleryPipeline:
    """Configured once with an effective source config, then run."""

    def __init__(
        self,
        source: ImgbedSourceConfig,
        *,
        mode: str = "imgbed-api",
        max_pages: int = GALLERY_MAX_PAGES,
        max_records: int = MAX_FILES_LIMIT,
        timeout: float = 30.0,
        enable_preview_mapping: bool = True,
        require_token: bool = True,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.source = source
        self.mode = mode
        self.max_pages = max_pages
        self.max_records = max_records
        self.timeout = timeout
        self.enable_preview_mapping = enable_preview_mapping
        self.require_token = require_token
        self.client = client

    @classmethod
    def for_directories(cls, source: ImgbedSourceConfig, **kwargs) -> "GalleryPipeline":
        """Admin browser variant: tighter page cap, token optional."""
        kwargs.setdefault("max_pages", DIRECTORY_MAX_PAGES)
        kwargs.setdefault("require_token", False)
        return cls(source, **kwargs)

    def listing_client(self) -> ListingClient:
        return ListingClient(
            self.source,
            max_pages=self.max_pages,
            max_records=self.max_records,
            timeout=self.timeout,
            client=self.client,
        )

    async def fetch_records(self) -> list:
        self.source.require(token=self.require_token)
        client = self.listing_client()
        logger.info(
            f"Listing {client.endpoint} (dir={self.source.list_dir or '/'}, "
            f"page_size={self.source.page_size}, token={mask_token(self.source.api_token) or 'none'})"
        )
        records = await client.list_all()
        logger.info(f"Fetched {len(records)} records for {self.source.domain}")
        return records

    async def build_gallery(self) -> RunResult[GalleryIndex]:
        records = await self.fetch_records()
        classified = classify_records(
            records, self.source, enable_preview_mapping=self.enable_preview_mapping
        )
        index = assemble_gallery(classified, self.source, mode=self.mode)
        logger.info(
            f"Gallery for {self.source.domain}: {index.total_images} images "
            f"in {len(index.gallery)} categories"
        )
        return RunResult(
            artifact=index,
            record_count=len(records),
            skipped=classified.skipped,
            ignored=classified.ignored,
        )

    async def build_directories(self) -> RunResult[DirectoryListing]:
        records = await self.fetch_records()
        listing = build_directory_listing(records, self.source)
        return RunResult(artifact=listing, record_count=len(records), skipped=listing.skipped)


def write_index(index: GalleryIndex, output_path: Path) -> Path:
    """Persist the index as pretty-printed UTF-8 JSON."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(index.model_dump(), ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    return output_path
