"""Per-domain memoization of gallery indexes.

An entry is reused only while its signature matches the current effective
configuration and it is younger than the TTL. Editing any output-affecting
setting therefore misses without explicit invalidation. Concurrent misses for
the same domain may both compute; the later write wins.
"""

from __future__ import annotations

import dataclasses
import json
import time
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .config import ImgbedSourceConfig
from .logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 60.0

SIGNATURE_FIELDS = (
    "base_url",
    "list_endpoint",
    "random_endpoint",
    "random_orientation",
    "file_route_prefix",
    "list_dir",
    "preview_dir",
    "default_category",
    "recursive",
    "page_size",
    "api_token",
)


def config_signature(source: ImgbedSourceConfig) -> str:
    """Stable serialization of every field that affects a run's output."""
    values = dataclasses.asdict(source)
    return json.dumps(
        {name: values[name] for name in SIGNATURE_FIELDS},
        sort_keys=True,
        ensure_ascii=False,
    )


def cache_key(domain: str) -> str:
    return f"gallery-data:{domain}"


@dataclasses.dataclass
class CacheEntry(Generic[T]):
    signature: str
    timestamp: float
    data: T


class GalleryCache(Generic[T]):
    """In-process cache with an injectable clock."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, domain: str, signature: str) -> Optional[T]:
        entry = self._entries.get(cache_key(domain))
        if entry is None or entry.signature != signature:
            return None
        if self.clock() - entry.timestamp >= self.ttl_seconds:
            return None
        return entry.data

    def put(self, domain: str, signature: str, data: T, timestamp: Optional[float] = None) -> None:
        self._entries[cache_key(domain)] = CacheEntry(
            signature=signature,
            timestamp=self.clock() if timestamp is None else timestamp,
            data=data,
        )

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_compute(
        self,
        domain: str,
        source: ImgbedSourceConfig,
        compute: Callable[[], Awaitable[T]],
    ) -> tuple[T, bool]:
        """Return (data, cached). Cache faults never fail the caller."""
        signature = config_signature(source)
        started = self.clock()

        try:
            hit = self.get(domain, signature)
        except Exception as exc:
            logger.warning(f"Cache read failed for {domain}: {exc}")
            hit = None
        if hit is not None:
            logger.debug(f"Cache hit for {domain}")
            return hit, True

        data = await compute()

        try:
            self.put(domain, signature, data, timestamp=started)
        except Exception as exc:
            logger.warning(f"Cache write failed for {domain}: {exc}")
        return data, False
