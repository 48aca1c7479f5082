from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from redis.asyncio import from_url
import structlog

from tollgate.config import get_settings
from tollgate.api.middleware import RateLimitMiddleware
from tollgate.api.routes import router
from tollgate.core.backends.redis import RedisBackend
from tollgate.core.logging import setup_logging
from tollgate.core.policy import PolicyResolver
from tollgate.core.strategies.base import RateLimiter
from tollgate.core.strategies.sliding_window import SlidingWindowLimiter

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifecycle manager.
    Handles Redis connection startup and graceful shutdown.
    """
    settings = get_settings()
    redis_client = None

    # An injected limiter (tests, embedding) owns its own store
    if getattr(app.state, "limiter", None) is None:
        redis_client = from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout,
        )
        backend = RedisBackend(redis_client, key_prefix=settings.rate_limit_key_prefix)
        app.state.limiter = SlidingWindowLimiter(backend)

    logger.info("tollgate_started", limiter=type(app.state.limiter).__name__)
    yield

    if redis_client is not None:
        await redis_client.aclose()
        app.state.limiter = None
    logger.info("tollgate_stopped")


def create_app(limiter: RateLimiter | None = None) -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.limiter = limiter
    app.state.policy_resolver = PolicyResolver()

    app.add_middleware(RateLimitMiddleware, resource=settings.rate_limit_resource)
    app.include_router(router)
    return app


app = create_app()
