"""
Rate limiting per user (or IP when anonymous).

Two scopes: provider-backed calls (content generation, refinement, topic
search) are limited per hour; everything else under the API prefix per minute.
"""

import re
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request, Response, status
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware

from lessonforge.config import get_settings

_AI_PATH = re.compile(r"/(content/[^/]+|sessions(/[^/]+/(generate|refine))?)$")


def _get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _get_user_id_from_jwt(request: Request) -> Optional[str]:
    """User id from a Bearer JWT, if it decodes. Authorization proper happens in deps."""
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    token = auth[7:].strip()
    if not token:
        return None
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None


def is_ai_request(path: str, method: str) -> bool:
    return method == "POST" and bool(_AI_PATH.search(path))


class InMemoryRateLimitStore:
    """Fixed-window in-memory store. Key -> (count, window_start, window_seconds)."""

    def __init__(self):
        self._data: Dict[str, Tuple[int, float, int]] = {}

    def check_and_incr(self, scope: str, identifier: str, limit: int, window_seconds: int) -> bool:
        """True if under the limit (and counted); False if over (not counted)."""
        key = f"{scope}:{identifier}"
        now = time.monotonic()
        entry = self._data.get(key)
        if entry is None or now - entry[1] >= entry[2]:
            self._data[key] = (1, now, window_seconds)
            return True
        count, start, window = entry
        if count >= limit:
            return False
        self._data[key] = (count + 1, start, window)
        return True

    def cleanup_old(self, max_age_seconds: int = 7200) -> None:
        now = time.monotonic()
        for key in [k for k, (_, start, _) in self._data.items() if now - start > max_age_seconds]:
            self._data.pop(key, None)


# Single-process store.
_store: Optional[InMemoryRateLimitStore] = None


def get_store() -> InMemoryRateLimitStore:
    global _store
    if _store is None:
        _store = InMemoryRateLimitStore()
    return _store


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        path = request.url.path or ""
        if not settings.rate_limit_enabled or not path.startswith(settings.api_v1_prefix):
            return await call_next(request)

        store = get_store()
        store.cleanup_old()

        identifier = _get_user_id_from_jwt(request) or _get_client_ip(request)
        if is_ai_request(path, request.method):
            scope, limit, window = "ai", settings.rate_limit_ai_per_hour, 3600
        else:
            scope, limit, window = "api", settings.rate_limit_api_per_minute, 60

        if not store.check_and_incr(scope, identifier, limit, window):
            return Response(
                content='{"detail":"Too many requests. Please try again later.","code":"rate_limited"}',
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                media_type="application/json",
            )
        return await call_next(request)
