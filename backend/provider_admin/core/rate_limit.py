"""In-memory rate limiting middleware.

Limits:
  /auth/*            → 10 requests/minute per IP
  /dashboard/bulk/*  → 20 requests/minute per session

Single-instance only: counters live in process memory.
"""

import time
from collections import defaultdict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

# (prefix, max_requests, window_seconds)
_IP_RULES: list[tuple[str, int, int]] = [
    ("/auth/", 10, 60),
]

_SESSION_RULES: list[tuple[str, int, int]] = [
    ("/dashboard/bulk/", 20, 60),
]


class _SlidingWindow:
    """Simple sliding-window counter store."""

    def __init__(self) -> None:
        # key -> list of timestamps
        self._hits: dict[str, list[float]] = defaultdict(list)

    def is_allowed(self, key: str, max_requests: int, window: int) -> bool:
        now = time.monotonic()
        cutoff = now - window
        hits = self._hits[key]
        # Prune old entries
        self._hits[key] = hits = [t for t in hits if t > cutoff]
        if len(hits) >= max_requests:
            return False
        hits.append(now)
        return True


_ip_window = _SlidingWindow()
_session_window = _SlidingWindow()


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        from provider_admin.config import settings
        if not settings.is_production:
            return await call_next(request)

        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        for prefix, max_req, window in _IP_RULES:
            if path.startswith(prefix):
                key = f"ip:{client_ip}:{prefix}"
                if not _ip_window.is_allowed(key, max_req, window):
                    return _rate_limit_response(request)

        # Admin id is not resolved yet at this point, so key by session token
        token = request.headers.get("X-Session-Token")
        if token:
            for prefix, max_req, window in _SESSION_RULES:
                if path.startswith(prefix):
                    key = f"session:{token}:{prefix}"
                    if not _session_window.is_allowed(key, max_req, window):
                        return _rate_limit_response(request)

        return await call_next(request)


def _rate_limit_response(request: Request) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=429,
        content={
            "error": True,
            "status_code": 429,
            "detail": "Rate limit exceeded. Please try again later.",
            "request_id": request_id,
        },
        headers={"Retry-After": "60"},
    )
