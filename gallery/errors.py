"""Run-level failures.

Record-level problems never raise; they are counted and skipped by the
classifier and tree builder. Anything here fails a whole pipeline run.
"""

from __future__ import annotations


class GalleryError(Exception):
    """Base class for failures that abort a pipeline run."""

    code = "gallery-error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class ConfigError(GalleryError):
    """The effective configuration cannot drive a run (missing base URL, token...)."""

    code = "invalid-config"


class UpstreamFetchError(GalleryError):
    """The listing API answered non-2xx, failed in transport, or sent junk."""

    code = "imgbed-fetch-failed"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
