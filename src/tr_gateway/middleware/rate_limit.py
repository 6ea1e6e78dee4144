"""Per-IP fixed-window rate limit for the auth endpoints (anti brute-force).

Redis INCR + EXPIRE, key "ratelimit:auth:{ip}", AUTH_RATE_LIMIT_PER_MINUTE
requests per 60s window. Trade opens are limited separately by counting rows
in PostgreSQL.

If Redis is unreachable the request is let through: losing the limiter must
not take login down with it.
"""

import logging

from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from config.settings import settings
from src.tr_common.errors import TooManyRequestsError
from src.tr_common.redis_client import get_redis
from src.tr_common.response import error_response

logger = logging.getLogger("tr.request")

AUTH_PATH_PREFIX = "/api/v1/auth/"
WINDOW_SECONDS = 60


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop when behind a proxy, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limit: int | None = None) -> None:  # type: ignore[no-untyped-def]
        super().__init__(app)
        self.limit = settings.AUTH_RATE_LIMIT_PER_MINUTE if limit is None else limit

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method != "POST" or not request.url.path.startswith(AUTH_PATH_PREFIX):
            return await call_next(request)

        key = f"ratelimit:auth:{client_ip(request)}"
        try:
            redis = await get_redis()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, WINDOW_SECONDS)
        except RedisError:
            logger.warning("Rate limiter unavailable; allowing %s", key, exc_info=True)
            return await call_next(request)

        if count > self.limit:
            exc = TooManyRequestsError()
            resp = error_response(exc.code, exc.message, exc.retryable)
            resp.request_id = getattr(request.state, "request_id", resp.request_id)
            return JSONResponse(
                status_code=429,
                content=resp.model_dump(),
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )
        return await call_next(request)
