import uuid
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from tollgate.core.backends.base import (
    DEFAULT_KEY_PREFIX,
    ExecutionBackend,
    ExecutionResult,
    to_microseconds,
)
from tollgate.core.errors import RateLimitEvaluationError
from tollgate.core.windows import Window

WINDOWS = list(Window)


class RedisBackend(ExecutionBackend):
    """
    Sliding window log over Redis sorted sets, one ZSET per (key, window).
    The whole check-and-record runs inside a single EVAL, so concurrent
    callers on any number of servers never interleave for the same key.
    """

    # KEYS[i]       sorted set of window i, in evaluation order
    # ARGV[1]       now in microseconds (also the marker score)
    # ARGV[2]       per-call nonce, makes same-microsecond markers unique
    # ARGV[2i+1]    limit of window i (0 = unconstrained)
    # ARGV[2i+2]    duration of window i in seconds
    #
    # Reply: {1} when accepted,
    #        {0, window_index, window_seconds, count, limit} when rejected.
    _LUA_SCRIPT = """
    local now = tonumber(ARGV[1])
    local member = ARGV[1] .. ':' .. ARGV[2]

    -- 1. Purge and count every constrained window, first violation wins
    for i = 1, #KEYS do
        local limit = tonumber(ARGV[2 * i + 1])
        if limit > 0 then
            local seconds = tonumber(ARGV[2 * i + 2])
            redis.call('ZREMRANGEBYSCORE', KEYS[i], '-inf', now - seconds * 1000000)
            local count = redis.call('ZCARD', KEYS[i])
            if count >= limit then
                return {0, i, seconds, count, ARGV[2 * i + 1]}
            end
        end
    end

    -- 2. Record the request in every constrained window
    for i = 1, #KEYS do
        local limit = tonumber(ARGV[2 * i + 1])
        if limit > 0 then
            redis.call('ZADD', KEYS[i], now, member)
            redis.call('EXPIRE', KEYS[i], tonumber(ARGV[2 * i + 2]) + 1)
        end
    end

    return {1}
    """

    def __init__(self, redis: Redis, key_prefix: str = DEFAULT_KEY_PREFIX):
        super().__init__(key_prefix)
        self._redis = redis

    async def execute(
        self,
        key: str,
        now: float,
        per_second: int = 0,
        per_minute: int = 0,
        per_hour: int = 0,
        per_day: int = 0,
    ) -> ExecutionResult:
        limits = (per_second, per_minute, per_hour, per_day)
        if not any(limit > 0 for limit in limits):
            return ExecutionResult.accept()

        keys = [self.storage_key(key, window) for window in WINDOWS]
        args: list[str | int] = [to_microseconds(now), uuid.uuid4().hex]
        for window, limit in zip(WINDOWS, limits):
            args.extend((limit, window.seconds))

        try:
            reply = await self.eval_script(self._LUA_SCRIPT, keys=keys, args=args)
        except RedisError as exc:
            raise RateLimitEvaluationError(f"rate limit check failed: {exc}") from exc

        return self._parse_reply(reply)

    async def reset(self, key: str) -> None:
        keys = [self.storage_key(key, window) for window in WINDOWS]
        try:
            await self._redis.delete(*keys)
        except RedisError as exc:
            raise RateLimitEvaluationError(f"rate limit reset failed: {exc}") from exc

    async def eval_script(self, script: str, keys: list[str], args: list[Any]) -> Any:
        return await self._redis.eval(script, len(keys), *keys, *args)

    @staticmethod
    def _parse_reply(reply: Any) -> ExecutionResult:
        if not isinstance(reply, (list, tuple)) or not reply:
            raise RateLimitEvaluationError(f"invalid lua script result: {reply!r}")

        flag = reply[0]
        if not isinstance(flag, int) or flag not in (0, 1):
            raise RateLimitEvaluationError(f"invalid success flag in lua result: {flag!r}")
        if flag == 1:
            return ExecutionResult.accept()

        if len(reply) < 5:
            raise RateLimitEvaluationError(f"incomplete lua result: {reply!r}")
        try:
            # limit comes back as a bulk string (bytes or str), int() takes both
            index, seconds, count, limit = (int(value) for value in reply[1:5])
        except (TypeError, ValueError) as exc:
            raise RateLimitEvaluationError(f"invalid lua result: {reply!r}") from exc

        if not 1 <= index <= len(WINDOWS):
            raise RateLimitEvaluationError(f"unknown window index in lua result: {index}")
        window = WINDOWS[index - 1]
        if seconds != window.seconds:
            raise RateLimitEvaluationError(
                f"window {window} reported {seconds}s, expected {window.seconds}s"
            )

        return ExecutionResult.reject(window, count, limit)
