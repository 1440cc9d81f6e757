"""Assemble the gallery index from classified entries.

Pairs every original with its preview (falling back to the original URL),
groups by category and sorts names with the locale-aware collation key.
Assembly is total: any ClassifiedListing yields an index.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from .classifier import CategoryEntry, ClassifiedListing, PreviewEntry
from .config import ImgbedSourceConfig
from .path_utils import build_absolute_url, build_file_url
from .utils import collation_key, now_iso, sort_by_name


class SourceDescriptor(BaseModel):
    """Effective configuration echoed into the artifact for the frontend."""

    type: str = "imgbed"
    base_url: str
    list_endpoint: str
    random_endpoint: str
    random_orientation: str = ""
    file_route_prefix: str
    list_dir: str
    preview_dir: str
    mode: str = "imgbed-api"


class GalleryImage(BaseModel):
    name: str
    original: str
    preview: str
    category: str


class GalleryCategory(BaseModel):
    name: str
    images: List[GalleryImage]
    count: int


class GalleryIndex(BaseModel):
    source: SourceDescriptor
    gallery: Dict[str, GalleryCategory]
    total_images: int
    generated_at: str

    def without_timestamp(self) -> dict:
        return self.model_dump(exclude={"generated_at"})


def describe_source(source: ImgbedSourceConfig, mode: str = "imgbed-api") -> SourceDescriptor:
    return SourceDescriptor(
        base_url=source.base_url,
        list_endpoint=build_absolute_url(source.base_url, source.list_endpoint),
        random_endpoint=build_absolute_url(source.base_url, source.random_endpoint),
        random_orientation=source.random_orientation,
        file_route_prefix=source.file_route_prefix,
        list_dir=source.list_dir or "/",
        preview_dir=source.preview_dir,
        mode=mode,
    )


def build_preview_map(previews: Iterable[PreviewEntry]) -> dict[str, PreviewEntry]:
    """dedupe key -> preview; colliding keys keep the smallest path."""
    preview_map: dict[str, PreviewEntry] = {}
    for entry in previews:
        current = preview_map.get(entry.dedupe_key)
        if current is None or entry.relative_path < current.relative_path:
            preview_map[entry.dedupe_key] = entry
    return preview_map


def dedupe_originals(originals: Iterable[CategoryEntry]) -> list[CategoryEntry]:
    """One original per dedupe key (smallest path), first-seen order kept."""
    chosen: dict[str, CategoryEntry] = {}
    for entry in originals:
        current = chosen.get(entry.dedupe_key)
        if current is None or entry.relative_path < current.relative_path:
            chosen[entry.dedupe_key] = entry
    return list(chosen.values())


def assemble_gallery(
    classified: ClassifiedListing,
    source: ImgbedSourceConfig,
    *,
    mode: str = "imgbed-api",
    generated_at: Optional[str] = None,
) -> GalleryIndex:
    preview_map = build_preview_map(classified.previews)
    originals = dedupe_originals(classified.originals)

    grouped: dict[str, list[GalleryImage]] = {}
    for entry in originals:
        original_url = build_file_url(source.base_url, source.file_route_prefix, entry.relative_path)
        preview = preview_map.get(entry.dedupe_key)
        preview_url = (
            build_file_url(source.base_url, source.file_route_prefix, preview.relative_path)
            if preview
            else original_url
        )
        grouped.setdefault(entry.category, []).append(
            GalleryImage(
                name=entry.base_name,
                original=original_url,
                preview=preview_url,
                category=entry.category,
            )
        )

    gallery: dict[str, GalleryCategory] = {}
    for category in sorted(grouped, key=collation_key):
        images = sort_by_name(grouped[category], lambda image: image.name)
        gallery[category] = GalleryCategory(name=category, images=images, count=len(images))

    return GalleryIndex(
        source=describe_source(source, mode),
        gallery=gallery,
        total_images=len(originals),
        generated_at=generated_at or now_iso(),
    )
