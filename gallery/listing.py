"""Paginated client for the ImgBed list API.

Pages are fetched strictly one after another: the next offset is whatever
the previous page reports as returned. A run either yields the complete
listing (within the record/page caps) or raises UpstreamFetchError; a
partial listing is never returned.
"""

from __future__ import annotations

import math
from typing import Any, Optional

import httpx

from .config import ImgbedSourceConfig
from .errors import UpstreamFetchError
from .logging_config import get_logger
from .path_utils import build_absolute_url

logger = get_logger(__name__)


MAX_FILES_LIMIT = 10000
GALLERY_MAX_PAGES = 200
DIRECTORY_MAX_PAGES = 120
BODY_SNIPPET_LENGTH = 200


def to_auth_header(token: str) -> str:
    """Bearer header value; the scheme is added when the token lacks it."""
    token = (token or "").strip()
    if not token:
        return ""
    return token if token.lower().startswith("bearer ") else f"Bearer {token}"


def _non_negative_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return int(number)


class ListingClient:
    """Fetch every file record of an ImgBed listing.

    Stops on the first of: an empty page, a short page (returned count below
    the page size), the server-reported total being reached, or the page /
    record cap.
    """

    def __init__(
        self,
        source: ImgbedSourceConfig,
        *,
        max_pages: int = GALLERY_MAX_PAGES,
        max_records: int = MAX_FILES_LIMIT,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.source = source
        self.max_pages = max_pages
        self.max_records = max_records
        self.timeout = timeout
        self._client = client

    @property
    def endpoint(self) -> str:
        return build_absolute_url(self.source.base_url, self.source.list_endpoint)

    def page_params(self, start: int) -> dict[str, str]:
        params = {
            "start": str(start),
            "count": str(self.source.page_size),
            "fileType": "image",
            "accessStatus": "normal",
        }
        if self.source.recursive:
            params["recursive"] = "true"
        if self.source.list_dir:
            params["dir"] = self.source.list_dir
        return params

    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        auth = to_auth_header(self.source.api_token)
        if auth:
            headers["Authorization"] = auth
        return headers

    async def list_all(self) -> list[dict]:
        if self._client is not None:
            return await self._paginate(self._client)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._paginate(client)

    async def _fetch_page(self, client: httpx.AsyncClient, start: int) -> dict:
        try:
            response = await client.get(
                self.endpoint, params=self.page_params(start), headers=self.headers()
            )
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"ImgBed list request failed: {exc}") from exc

        if not response.is_success:
            snippet = response.text[:BODY_SNIPPET_LENGTH].strip()
            raise UpstreamFetchError(
                f"ImgBed list request failed ({response.status_code}): "
                f"{snippet or response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFetchError(
                f"ImgBed list response is not JSON: {response.text[:BODY_SNIPPET_LENGTH]}",
                status_code=response.status_code,
            ) from exc
        return payload if isinstance(payload, dict) else {}

    async def _paginate(self, client: httpx.AsyncClient) -> list[dict]:
        page_size = self.source.page_size
        records: list[dict] = []
        start = 0
        page = 1

        while len(records) < self.max_records and page <= self.max_pages:
            payload = await self._fetch_page(client, start)
            files = payload.get("files")
            if not isinstance(files, list):
                files = []
            records.extend(files)

            returned = _non_negative_int(payload.get("returnedCount"))
            if returned is None:
                returned = len(files)
            total = _non_negative_int(payload.get("totalCount"))

            logger.debug(f"Page {page}: {len(files)} records (accumulated {len(records)})")

            if not files or returned < page_size:
                break

            start += returned
            page += 1

            if total is not None and len(records) >= total:
                break
        else:
            logger.warning(
                f"Listing capped after {page - 1} pages / {len(records)} records "
                f"(limits: {self.max_pages} pages, {self.max_records} records)"
            )

        return records[: self.max_records]
