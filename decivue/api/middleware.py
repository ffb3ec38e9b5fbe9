"""API security middleware."""

import logging
import secrets
import time
from collections import defaultdict, deque

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from decivue.utils.config import get_settings

logger = logging.getLogger("decivue.api.middleware")

PUBLIC_PATHS = {
    "/",
    "/health",
    "/api/docs",
    "/api/redoc",
    "/openapi.json",
}

# Paths that run evaluation or pairwise detection get the stricter limit
STRICT_PATHS = (
    "/api/v1/decisions/batch-evaluate",
    "/api/v1/decisions/evaluate-pending",
    "/api/v1/assumption-conflicts/detect",
    "/api/v1/decision-conflicts/detect",
)

_WINDOW_SECONDS = 60


def _provided_key(request: Request) -> str:
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.headers.get("x-api-key", "")


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Require the shared API key on every non-public endpoint.

    Enabled when ``DECIVUE_API_KEY`` (or ``SECURITY__API_KEY``) is set; local
    development without a key allows all requests.

    Clients pass the key via ``Authorization: Bearer <key>`` or ``X-API-Key``.
    """

    def __init__(self, app, api_key: str | None = None):
        super().__init__(app)
        self._api_key = api_key if api_key is not None else get_settings().security.api_key

    async def dispatch(self, request: Request, call_next):
        if not self._api_key:
            return await call_next(request)

        path = request.url.path.rstrip("/")
        if path in PUBLIC_PATHS or path == "":
            return await call_next(request)

        provided = _provided_key(request)
        if not provided or not secrets.compare_digest(provided, self._api_key):
            logger.warning(
                "Unauthorized request to %s from %s",
                request.url.path,
                request.client.host if request.client else "unknown",
            )
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid or missing API key"},
            )

        return await call_next(request)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding window rate limiter by client IP."""

    def __init__(self, app, default_limit: int | None = None, strict_limit: int | None = None):
        super().__init__(app)
        security = get_settings().security
        self._default_limit = default_limit or security.rate_limit_default
        self._strict_limit = strict_limit or security.rate_limit_strict
        self._windows: dict[str, deque] = defaultdict(deque)

    def _get_client_ip(self, request: Request) -> str:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in PUBLIC_PATHS or path == "":
            return await call_next(request)

        strict = path.rstrip("/").endswith(STRICT_PATHS)
        limit = self._strict_limit if strict else self._default_limit
        client_ip = self._get_client_ip(request)
        window = self._windows[f"{client_ip}:strict" if strict else client_ip]

        now = time.monotonic()
        cutoff = now - _WINDOW_SECONDS
        while window and window[0] < cutoff:
            window.popleft()

        if len(window) >= limit:
            retry_after = int(window[0] - cutoff) + 1
            logger.warning(
                "Rate limit exceeded for %s on %s (%d/%d)",
                client_ip, path, len(window), limit,
            )
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests"},
                headers={"Retry-After": str(retry_after)},
            )

        window.append(now)
        return await call_next(request)
