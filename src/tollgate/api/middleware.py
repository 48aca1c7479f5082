from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse
from starlette.types import ASGIApp
import structlog

from tollgate.core.errors import RateLimitEvaluationError, RateLimitExceeded
from tollgate.core.policy import build_key

logger = structlog.get_logger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):

    def __init__(self, app: ASGIApp, resource: str = "api"):
        super().__init__(app)
        self.resource = resource

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:

        limiter = getattr(request.app.state, "limiter", None)
        policy_resolver = getattr(request.app.state, "policy_resolver", None)

        if not limiter or not policy_resolver:
            logger.warning("middleware_uninitialized_skipping")
            return await call_next(request)

        api_key = request.headers.get("X-API-Key")
        client_ip = request.client.host if request.client else "unknown"
        if api_key:
            client_id = build_key(self.resource, "key", api_key)
        else:
            client_id = build_key(self.resource, "ip", client_ip)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            client_id=client_id,
            path=request.url.path,
            method=request.method
        )

        tier = policy_resolver.resolve_tier(api_key)
        policy = policy_resolver.get_policy(api_key)

        try:
            await limiter.allow(client_id, policy)
        except RateLimitExceeded as exc:
            logger.info(
                "rate_limit_check",
                status="denied",
                window=exc.window_name,
                current=exc.current,
                limit=exc.limit,
                tier=tier,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": "Quota exceeded",
                    "tier": tier,
                    "window": exc.window_name,
                    "window_seconds": exc.window_seconds,
                    "current": exc.current,
                    "limit": exc.limit,
                },
                headers={
                    "X-RateLimit-Limit": str(exc.limit),
                    "X-RateLimit-Window": exc.window_name,
                    "Retry-After": str(exc.window_seconds),
                    "X-User-Tier": tier,
                },
            )
        except RateLimitEvaluationError:
            logger.exception("rate_limit_evaluation_failed", tier=tier)
            return JSONResponse(
                status_code=500,
                content={
                    "error": "rate_limit_unavailable",
                    "message": "Rate limit check failed",
                },
            )

        logger.info("rate_limit_check", status="allowed", tier=tier)

        response = await call_next(request)
        response.headers["X-User-Tier"] = tier
        return response
