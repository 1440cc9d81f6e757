"""Shared fixtures: a deterministic ImgBed list API behind httpx.MockTransport."""

from __future__ import annotations

from typing import Optional

import httpx
import pytest

from gallery.config import ImgbedSourceConfig


class FakeImgbed:
    """Serves ``files`` honoring start/count and reporting totalCount."""

    def __init__(
        self,
        names: list,
        *,
        report_total: bool = True,
        report_returned: bool = True,
        fail_at_start: Optional[int] = None,
        status_code: int = 500,
    ):
        self.files = [n if isinstance(n, dict) else {"name": n} for n in names]
        self.report_total = report_total
        self.report_returned = report_returned
        self.fail_at_start = fail_at_start
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        start = int(request.url.params["start"])
        count = int(request.url.params["count"])
        if self.fail_at_start is not None and start >= self.fail_at_start:
            return httpx.Response(self.status_code, text="upstream exploded")

        page = self.files[start:start + count]
        payload: dict = {"files": page}
        if self.report_returned:
            payload["returnedCount"] = len(page)
        if self.report_total:
            payload["totalCount"] = len(self.files)
        return httpx.Response(200, json=payload)

    @property
    def starts(self) -> list[int]:
        return [int(r.url.params["start"]) for r in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_source(**overrides) -> ImgbedSourceConfig:
    values = {
        "domain": "gallery.example.com",
        "base_url": "https://img.example.com",
        "api_token": "secret-token",
        "page_size": 3,
    }
    values.update(overrides)
    return ImgbedSourceConfig(**values)


@pytest.fixture
def source() -> ImgbedSourceConfig:
    return make_source()
