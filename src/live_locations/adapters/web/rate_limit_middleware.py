"""Per-IP rate limiting for the HTTP surface using throttled-py."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from throttled import RateLimiterType, Throttled, rate_limiter, store

from live_locations.adapters.web.client_info import get_client_info_from_scope

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 60.0


def retry_after_of(result: Any) -> float:
    """Seconds until the limited client may retry, from a throttled-py result."""
    state = getattr(result, "state", None)
    if state is not None and hasattr(state, "retry_after"):
        return float(state.retry_after)
    return float(getattr(result, "retry_after", DEFAULT_RETRY_AFTER))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Token-bucket limit per client IP on plain HTTP requests.

    WebSocket traffic never reaches ``dispatch``; BaseHTTPMiddleware only
    handles the ``http`` scope.
    """

    def __init__(self, app: Callable, requests_per_minute: int = 100) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.quota = rate_limiter.per_min(requests_per_minute, burst=requests_per_minute)
        self.rate_limiter_store = store.MemoryStore()
        logger.info(f"Rate limiting enabled: {requests_per_minute} requests per minute per IP")

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        client_ip = get_client_info_from_scope(request.scope).ip

        throttle = Throttled(
            key=client_ip,
            using=RateLimiterType.TOKEN_BUCKET.value,
            quota=self.quota,
            store=self.rate_limiter_store,
        )
        result = throttle.limit()
        if result.limited:
            retry_after = retry_after_of(result)
            logger.warning(f"Rate limit exceeded for IP {client_ip}, retry after {retry_after} seconds")
            return Response(
                content="Rate limit exceeded. Please try again later.",
                status_code=429,
                headers={"Retry-After": str(int(retry_after))},
            )

        response: Response = await call_next(request)
        return response
