"""Utility functions for the gallery indexer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, TypeVar
from urllib.parse import urlsplit

from pypinyin import Style, lazy_pinyin

T = TypeVar("T")


def collation_key(name: str) -> tuple:
    """Locale-aware sort key for display names.

    Han characters are compared by their pinyin reading (tone-numbered), the
    way a zh-CN collator orders them; everything else compares case-folded.
    Raw code-point order would put 张 before 李.

    Example:
        >>> sorted(["张", "李", "王"], key=collation_key)
        ["李", "王", "张"]
    """
    syllables = lazy_pinyin(name, style=Style.TONE3, neutral_tone_with_five=True)
    # Lowercase before uppercase on otherwise equal names
    return (tuple(s.casefold() for s in syllables), name.casefold(), name.swapcase())


def sort_by_name(items: Iterable[T], name: Callable[[T], str]) -> List[T]:
    return sorted(items, key=lambda item: collation_key(name(item)))


def now_iso() -> str:
    """UTC timestamp with millisecond precision, e.g. ``2025-01-31T08:00:00.000Z``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_domain(value: Optional[str], fallback: str = "default") -> str:
    """Lower-cased host without scheme, path or port.

    Example:
        >>> normalize_domain("https://Gallery.Example.com:8443/admin")
        "gallery.example.com"
    """
    source = str(value or "").strip()
    if not source:
        return fallback

    if "://" in source:
        try:
            host = urlsplit(source).hostname
        except ValueError:
            host = None
        if host:
            return host.lower()
        source = source.split("://", 1)[1]

    host = source.split("/", 1)[0]
    if ":" in host and not host.endswith("]"):
        host = host.rsplit(":", 1)[0]
    return host.lower() or fallback


def mask_token(token: str) -> str:
    """Show only the last four characters of a secret in logs."""
    if not token:
        return ""
    return f"***{token[-4:]}" if len(token) > 8 else "***"
