"""Admin API for the gallery indexer.

Mounted under /api/admin: per-domain config and the listing's directory tree.
"""

from .router import router

__all__ = ["router"]
