# app/api/middleware/rate_limit_middleware.py
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.services.rate_limit.rate_limit_store import RateLimitStore

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/api/v1/public/"


def client_identity(request: Request, trusted_proxy_count: int = 0) -> str:
    """
    The address to count requests against.

    X-Forwarded-For is only read behind trusted proxies: each of them appends
    the peer it saw, so the client is the hop trusted_proxy_count entries from
    the right. Anything further left was written by the caller.
    """
    peer = request.client.host if request.client else "unknown"
    if trusted_proxy_count <= 0:
        return peer

    forwarded = request.headers.get("X-Forwarded-For")
    if not forwarded:
        return peer

    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    if len(hops) < trusted_proxy_count:
        return hops[0] if hops else peer
    return hops[-trusted_proxy_count]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-client rate limiting for the unauthenticated booking endpoints.

    The counting store is injected, so the limit is shared across instances
    when it is Redis-backed. If the store itself fails the request is let
    through.
    """

    def __init__(
            self,
            app,
            store: RateLimitStore,
            requests_per_minute: int = 30,
            trusted_proxy_count: int = 0,
    ):
        super().__init__(app)
        self.store = store
        self.requests_per_minute = requests_per_minute
        self.trusted_proxy_count = trusted_proxy_count

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(PUBLIC_PREFIX):
            return await call_next(request)

        client = client_identity(request, self.trusted_proxy_count)
        try:
            allowed = await self.store.hit(client, self.requests_per_minute, 60)
        except Exception as e:
            logger.warning(f"Rate limit store unavailable, allowing request from {client}: {e}")
            allowed = True

        if not allowed:
            logger.info(f"Rate limit exceeded for {client} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Too many requests. Please try again in a minute.",
                    "code": "RATE_LIMITED",
                    "retryable": True,
                },
                headers={"Retry-After": "60"}
            )

        return await call_next(request)
