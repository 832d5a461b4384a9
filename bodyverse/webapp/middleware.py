"""
FastAPI middleware for rate limiting.

Requests are counted per client and limit group. Location lookups get the
tightest limit since every miss spends geolocation API quota, and all
endpoints that geolocate share that one allowance.
"""

import logging
import time
from collections import defaultdict
from collections.abc import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from bodyverse.utils.config_loader import RateLimitSettings

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

LOCATION_PATHS = ("/api/location", "/api/pricing/local")
RATES_PATHS = ("/api/rates", "/api/convert")


class RateLimitState:
    """Tracks request counts per client."""

    def __init__(self):
        # client_id -> limit group -> list of timestamps
        self.requests: dict[str, dict[str, list]] = defaultdict(lambda: defaultdict(list))

    def record_request(self, client_id: str, endpoint: str) -> None:
        """Record a request from a client."""
        self.requests[client_id][endpoint].append(time.time())

    def get_request_count(self, client_id: str, endpoint: str, window_seconds: int) -> int:
        """Get the number of requests in the time window."""
        cutoff = time.time() - window_seconds

        timestamps = self.requests[client_id][endpoint]
        valid_timestamps = [t for t in timestamps if t > cutoff]
        self.requests[client_id][endpoint] = valid_timestamps

        return len(valid_timestamps)

    def cleanup(self, max_age_seconds: int = 300) -> None:
        """Remove old entries to prevent memory growth."""
        cutoff = time.time() - max_age_seconds

        for client_id in list(self.requests.keys()):
            for endpoint in list(self.requests[client_id].keys()):
                self.requests[client_id][endpoint] = [
                    t for t in self.requests[client_id][endpoint] if t > cutoff
                ]
                if not self.requests[client_id][endpoint]:
                    del self.requests[client_id][endpoint]
            if not self.requests[client_id]:
                del self.requests[client_id]

    def reset(self) -> None:
        self.requests.clear()


# Global rate limit state
_rate_limit_state = RateLimitState()


def reset_rate_limits() -> None:
    """Forget all recorded requests."""
    _rate_limit_state.reset()


def get_client_id(request: Request, trust_forwarded_for: bool = False) -> str:
    """
    Extract client identifier from request.

    X-Forwarded-For is honoured only when trust_forwarded_for is set.
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


def get_limit_group(path: str) -> str:
    """Name of the limit group a path is counted under."""
    if path.startswith(LOCATION_PATHS):
        return "location"
    elif path.startswith(RATES_PATHS):
        return "rates"
    else:
        return "default"


def get_endpoint_limit(path: str, settings: RateLimitSettings) -> int:
    """Get the rate limit for a specific endpoint."""
    return {
        "location": settings.location_rpm,
        "rates": settings.rates_rpm,
        "default": settings.default_rpm,
    }[get_limit_group(path)]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware for rate limiting requests."""

    def __init__(self, app, settings: RateLimitSettings | None = None):
        super().__init__(app)
        self.settings = settings or RateLimitSettings()
        self.state = _rate_limit_state
        self._last_cleanup = time.time()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with rate limiting."""
        if not self.settings.enabled:
            return await call_next(request)

        path = request.url.path
        if path.startswith("/health"):
            return await call_next(request)

        if time.time() - self._last_cleanup > WINDOW_SECONDS:
            self.state.cleanup()
            self._last_cleanup = time.time()

        client_id = get_client_id(request, self.settings.trust_forwarded_for)
        group = get_limit_group(path)
        limit = get_endpoint_limit(path, self.settings)

        current_count = self.state.get_request_count(client_id, group, WINDOW_SECONDS)

        if current_count >= limit:
            logger.warning(
                f"Rate limit exceeded: client={client_id}, group={group}, path={path}, "
                f"count={current_count}, limit={limit}",
                extra={"client_id": client_id, "limit_group": group},
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "RATE_LIMITED",
                    "message": f"Rate limit exceeded. Maximum {limit} requests per minute.",
                    "details": {"retry_after_seconds": WINDOW_SECONDS},
                },
                headers={
                    "Retry-After": str(WINDOW_SECONDS),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        self.state.record_request(client_id, group)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count - 1))

        return response
