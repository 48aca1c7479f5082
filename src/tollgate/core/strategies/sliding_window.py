import time
from typing import Callable

import structlog

from tollgate.core.backends.base import ExecutionBackend
from tollgate.core.strategies.base import RateLimiter, RateLimitResult
from tollgate.core.windows import WindowConfig

logger = structlog.get_logger(__name__)


class SlidingWindowLimiter(RateLimiter):
    """
    Multi-window Sliding Window Log limiter.
    Exact counting over the trailing second/minute/hour/day, one store
    round trip per check. The backend does the atomic work; this class only
    supplies the clock and turns the raw outcome into a result.
    """

    def __init__(
        self,
        backend: ExecutionBackend,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend
        self._clock = clock

    async def check(self, key: str, config: WindowConfig | None) -> RateLimitResult:
        if config is None or config.is_unlimited:
            return RateLimitResult.allowed(key)

        outcome = await self.backend.execute(
            key,
            self._clock(),
            per_second=config.per_second,
            per_minute=config.per_minute,
            per_hour=config.per_hour,
            per_day=config.per_day,
        )

        if outcome.accepted:
            return RateLimitResult.allowed(key)

        result = RateLimitResult.denied(key, outcome.violation)
        logger.debug(
            "rate_limit_exceeded",
            key=key,
            window=result.window,
            current=result.current,
            limit=result.limit,
        )
        return result

    async def reset(self, key: str) -> None:
        await self.backend.reset(key)
        logger.info("rate_limit_reset", key=key)
