"""
Errors raised by the rate limiter.

Callers tell the two failure modes apart by type:

    RateLimitExceeded         -> the request was rejected (respond 429)
    RateLimitEvaluationError  -> the decision could not be made (respond 500)
"""


class LimiterError(Exception):
    """Base class for all rate limiter errors."""


class RateLimitExceeded(LimiterError):
    """
    A configured window limit was reached.

    Attributes:
        key: The rate limit key that was throttled.
        window_name: Name of the violated window, e.g. "per_second".
        window_seconds: Duration of the violated window.
        current: Number of requests already recorded in the window.
        limit: The configured limit for the window.
    """

    def __init__(
        self,
        key: str,
        window_name: str,
        window_seconds: int,
        current: int,
        limit: int,
    ) -> None:
        self.key = key
        self.window_name = window_name
        self.window_seconds = window_seconds
        self.current = current
        self.limit = limit
        super().__init__(
            f"rate limit exceeded: key={key}, window={window_name}({window_seconds}s), "
            f"current={current}, limit={limit}"
        )


class RateLimitEvaluationError(LimiterError):
    """The backing store could not evaluate the request."""


def is_rate_limit_exceeded(exc: BaseException) -> bool:
    return isinstance(exc, RateLimitExceeded)
