"""Split listed paths into preview entries and original entries.

Layout relative to the list directory::

    <category>/<file>                 original
    <file>                            original in the default category
    <preview_dir>/<category>/<file>   preview of <category>/<file>, any extension

An original and its preview share a dedupe key: ``category/path-without-extension``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from .config import DEFAULT_CATEGORY, ImgbedSourceConfig
from .logging_config import get_logger
from .path_utils import (
    get_base_name,
    get_extension,
    split_segments,
    strip_extension,
    to_relative,
)

logger = get_logger(__name__)


IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".avif", ".svg"})

# Metadata keys ImgBed has used for the MIME type over time
MIME_KEYS = ("File-Mime", "file-mime", "FileType", "fileType", "mimeType", "mime")


@dataclass(frozen=True)
class FileRecord:
    """One entry of the raw listing."""

    path: str
    name: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, item: Any) -> "FileRecord":
        """Build from a listing item; ValueError when it carries no usable path."""
        if not isinstance(item, Mapping):
            raise ValueError(f"listing entry is not an object: {item!r}")
        raw_path = item.get("name") or item.get("path") or item.get("src")
        if not isinstance(raw_path, str) or not raw_path.strip():
            raise ValueError(f"listing entry has no path: {item!r}")
        name = item.get("name") or item.get("path") or ""
        metadata = item.get("metadata")
        return cls(
            path=raw_path,
            name=name if isinstance(name, str) else "",
            metadata=metadata if isinstance(metadata, Mapping) else {},
        )


@dataclass(frozen=True)
class PreviewEntry:
    category: str
    dedupe_key: str
    relative_path: str


@dataclass(frozen=True)
class CategoryEntry:
    category: str
    base_name: str
    dedupe_key: str
    relative_path: str


@dataclass
class ClassifiedListing:
    previews: list[PreviewEntry] = field(default_factory=list)
    originals: list[CategoryEntry] = field(default_factory=list)
    skipped: int = 0  # malformed records
    ignored: int = 0  # well-formed but not part of the gallery


def is_image_file(record: FileRecord) -> bool:
    """Known image extension, or a metadata MIME type starting with ``image/``."""
    if get_extension(record.name).lower() in IMAGE_EXTENSIONS:
        return True

    mime = next((record.metadata[key] for key in MIME_KEYS if record.metadata.get(key)), None)
    return isinstance(mime, str) and mime.lower().startswith("image/")


def parse_preview(relative_path: str, preview_dir: str) -> Optional[PreviewEntry]:
    parts = split_segments(relative_path)
    if len(parts) < 3 or parts[0] != preview_dir:
        return None

    category = parts[1]
    file_path = "/".join(parts[2:])
    return PreviewEntry(
        category=category,
        dedupe_key=f"{category}/{strip_extension(file_path)}",
        relative_path=relative_path,
    )


def parse_original(
    relative_path: str,
    preview_dir: str,
    default_category: str = DEFAULT_CATEGORY,
) -> Optional[CategoryEntry]:
    parts = split_segments(relative_path)
    if not parts:
        return None

    if len(parts) == 1:
        category, file_path = default_category, parts[0]
    else:
        category, file_path = parts[0], "/".join(parts[1:])

    # Previews too shallow to be claimed above must not become a category
    if category == preview_dir:
        return None

    return CategoryEntry(
        category=category,
        base_name=get_base_name(file_path, get_extension(file_path)),
        dedupe_key=f"{category}/{strip_extension(file_path)}",
        relative_path=relative_path,
    )


def classify_records(
    records: Iterable[Any],
    source: ImgbedSourceConfig,
    *,
    enable_preview_mapping: bool = True,
) -> ClassifiedListing:
    """Classify raw listing items. Never raises for a single bad record."""
    result = ClassifiedListing()

    for item in records:
        try:
            record = FileRecord.from_raw(item)
        except ValueError as exc:
            result.skipped += 1
            logger.debug(f"Skipping record: {exc}")
            continue

        if not is_image_file(record):
            result.ignored += 1
            continue

        relative = to_relative(record.path, source.file_route_prefix, source.list_dir)
        if not relative:
            result.ignored += 1
            continue

        if enable_preview_mapping:
            preview = parse_preview(relative, source.preview_dir)
            if preview:
                result.previews.append(preview)
                continue

        original = parse_original(relative, source.preview_dir, source.default_category)
        if original is None:
            result.ignored += 1
            continue
        result.originals.append(original)

    if result.skipped:
        logger.info(f"Skipped {result.skipped} malformed listing records")
    return result
