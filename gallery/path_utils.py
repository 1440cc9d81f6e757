"""Path utilities for converting between listed paths, relative paths and URLs.

All paths handled by the classifier and tree builder are relative to the
configured list directory. Listed entries may arrive as absolute URLs, as
route-prefixed paths (``/file/photos/cats/a.jpg``) or as bare paths; these
helpers reduce all of them to the same canonical relative form.
"""

from __future__ import annotations

import re
from urllib.parse import quote, unquote, urlsplit

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)

# Characters encodeURI leaves alone, besides alphanumerics and "-_.~"
_URI_SAFE = ";,/?:@&=+$!*'()#"


def is_absolute_url(value: str) -> bool:
    return bool(_ABSOLUTE_URL.match(value or ""))


def clean_segment_prefix(prefix: str) -> str:
    """Trim surrounding slashes: ``"/file/"`` -> ``"file"``."""
    return str(prefix or "").strip().strip("/")


def strip_segment_prefix(path: str, prefix: str) -> str:
    """Strip ``prefix`` from ``path`` only as whole leading segment(s).

    Returns ``""`` when the path *is* the prefix.

    Example:
        >>> strip_segment_prefix("photos/cats/a.jpg", "photos")
        "cats/a.jpg"
        >>> strip_segment_prefix("photoshop/a.jpg", "photos")
        "photoshop/a.jpg"
    """
    clean = clean_segment_prefix(prefix)
    if not clean:
        return path
    if path == clean:
        return ""
    if path.startswith(f"{clean}/"):
        return path[len(clean) + 1:]
    return path


def normalize_listed_path(raw_path: object, file_route_prefix: str) -> str:
    """Reduce a listed path or URL to a path relative to the file route.

    Example:
        >>> normalize_listed_path("https://img.example.com/file/photos/a.jpg?x=1", "/file")
        "photos/a.jpg"
    """
    if not raw_path or not isinstance(raw_path, str):
        return ""

    normalized = raw_path.strip()
    if not normalized:
        return ""

    if is_absolute_url(normalized):
        try:
            normalized = unquote(urlsplit(normalized).path)
        except ValueError:
            # Unparseable URL: keep the raw string and let the rules below apply
            pass

    normalized = normalized.split("?", 1)[0].split("#", 1)[0].lstrip("/")

    prefix = clean_segment_prefix(file_route_prefix)
    if prefix and normalized.startswith(f"{prefix}/"):
        return normalized[len(prefix) + 1:]
    return normalized


def strip_dir_prefix(normalized_path: str, list_dir: str) -> str:
    """Make a normalized path relative to the list (scope) directory.

    An empty result means the entry is the scope directory itself.
    """
    return strip_segment_prefix(normalized_path, list_dir)


def to_relative(raw_path: object, file_route_prefix: str, list_dir: str) -> str:
    """Both normalization stages in one call; ``""`` means discard."""
    normalized = normalize_listed_path(raw_path, file_route_prefix)
    if not normalized:
        return ""
    return strip_dir_prefix(normalized, list_dir)


def split_segments(relative_path: str) -> list[str]:
    return [part for part in relative_path.split("/") if part]


def get_extension(file_path: str) -> str:
    """Extension of the last segment, dot included.

    A leading dot (``.hidden``) is not an extension.
    """
    name = str(file_path or "").split("/")[-1]
    index = name.rfind(".")
    if index <= 0:
        return ""
    return name[index:]


def get_base_name(file_path: str, extension: str = "") -> str:
    name = str(file_path or "").split("/")[-1]
    if not extension or not name.lower().endswith(extension.lower()):
        return name
    return name[: len(name) - len(extension)]


def strip_extension(file_path: str) -> str:
    extension = get_extension(file_path)
    return file_path[: -len(extension)] if extension else file_path


def build_absolute_url(base_url: str, endpoint_or_path: str) -> str:
    """Join an endpoint onto the base URL unless it is already absolute.

    Example:
        >>> build_absolute_url("https://img.example.com/", "/api/manage/list")
        "https://img.example.com/api/manage/list"
    """
    if not endpoint_or_path:
        return ""
    if is_absolute_url(endpoint_or_path):
        return endpoint_or_path
    clean = str(endpoint_or_path).lstrip("/")
    return f"{str(base_url).rstrip('/')}/{clean}"


def build_file_url(base_url: str, file_route_prefix: str, relative_path: str) -> str:
    """Public URL of a listed file, with the path encodeURI-style quoted."""
    prefix = clean_segment_prefix(file_route_prefix)
    clean_path = str(relative_path or "").lstrip("/")
    route = f"{prefix}/" if prefix else ""
    return f"{str(base_url).rstrip('/')}/{route}{quote(clean_path, safe=_URI_SAFE)}"
