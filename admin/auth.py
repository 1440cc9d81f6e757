"""Admin session tokens: HMAC-signed payload with expiry.

Tokens are issued by whatever fronts the admin login; this module only needs
the shared secret from ``[admin] session_secret`` to verify them.
"""

from __future__ import annotations

import base64
import hmac
import hashlib
import json
import time
from typing import Optional

from fastapi import HTTPException, Request

from gallery.config import get_config

SESSION_COOKIE_NAME = "admin_session"
SESSION_MAX_AGE_SECONDS = 24 * 3600


def _b64_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64_decode(s: str) -> bytes:
    pad = 4 - (len(s) % 4)
    if pad != 4:
        s += "=" * pad
    return base64.urlsafe_b64decode(s)


def create_session_token(
    username: str, secret: str, max_age: int = SESSION_MAX_AGE_SECONDS, now: Optional[float] = None
) -> str:
    """Build token value: base64(payload).base64(hmac)."""
    expiry = int(now if now is not None else time.time()) + max_age
    payload_bytes = json.dumps({"u": username, "e": expiry}, sort_keys=True).encode("utf-8")
    sig = hmac.new(secret.encode("utf-8"), payload_bytes, hashlib.sha256).digest()
    return f"{_b64_encode(payload_bytes)}.{_b64_encode(sig)}"


def verify_session_token(token: Optional[str], secret: str, now: Optional[float] = None) -> Optional[str]:
    """Return the username if the token is authentic and unexpired, else None."""
    if not token or not secret:
        return None
    parts = token.split(".")
    if len(parts) != 2:
        return None
    try:
        payload_bytes = _b64_decode(parts[0])
        payload = json.loads(payload_bytes.decode("utf-8"))
        expiry = payload.get("e")
        username = payload.get("u")
        if expiry is None or username is None:
            return None
        if int(now if now is not None else time.time()) > expiry:
            return None
        expected_sig = hmac.new(secret.encode("utf-8"), payload_bytes, hashlib.sha256).digest()
        if not hmac.compare_digest(_b64_encode(expected_sig), parts[1]):
            return None
        return username
    except (ValueError, KeyError, AttributeError, json.JSONDecodeError):
        return None


def _token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.cookies.get(SESSION_COOKIE_NAME)


def require_admin(request: Request) -> str:
    """FastAPI dependency: the authenticated admin username, or 401/403."""
    admin = get_config().admin
    if not admin.enabled:
        raise HTTPException(status_code=403, detail="Admin access is disabled")
    username = verify_session_token(_token_from_request(request), admin.session_secret)
    if username is None:
        raise HTTPException(status_code=401, detail="Admin session is missing or expired")
    return username
