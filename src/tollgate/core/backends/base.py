"""
Abstract base class for atomic execution backends.

A backend owns the per-(key, window) marker sets and runs the whole
multi-window check-and-record sequence as one indivisible operation.
Separating the store from the limiter allows:
- Testing with an in-memory backend (no Redis needed)
- Running the same policy against any store with atomic scripting
- Keeping the limiter itself stateless apart from its clock

Every backend implements the same algorithm:

1. For each window with a limit > 0, in evaluation order:
   purge markers with score <= now - window_seconds, count the rest,
   and stop with a violation if count >= limit.
2. Only if no window was violated, record one marker per constrained
   window and reset that window's expiration to window_seconds + 1.

A rejected request is therefore recorded in no window at all.
"""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass

from tollgate.core.windows import Window

MICROSECONDS = 1_000_000

DEFAULT_KEY_PREFIX = "rate_limit"


def to_microseconds(seconds: float) -> int:
    """Convert a Unix timestamp in seconds to integer microseconds."""
    return int(round(seconds * MICROSECONDS))


def slot_tag(key: str) -> str:
    """Non-empty, brace-free digest of a key, used as its Redis Cluster hash tag."""
    return hashlib.blake2b(key.encode("utf-8"), digest_size=8).hexdigest()


@dataclass(frozen=True)
class WindowViolation:
    """The first window whose limit was reached."""

    window: Window
    count: int
    limit: int

    @property
    def name(self) -> str:
        return self.window.value

    @property
    def seconds(self) -> int:
        return self.window.seconds


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of one atomic execution.

    Attributes:
        accepted: True when the request passed every constrained window
            and was recorded.
        violation: The violated window when rejected, otherwise None.
    """

    accepted: bool
    violation: WindowViolation | None = None

    @classmethod
    def accept(cls) -> "ExecutionResult":
        return cls(accepted=True)

    @classmethod
    def reject(cls, window: Window, count: int, limit: int) -> "ExecutionResult":
        return cls(accepted=False, violation=WindowViolation(window, count, limit))


class ExecutionBackend(ABC):
    """
    Abstract base class for rate limit state storage and execution.

    Implementations must guarantee that concurrent `execute` calls for the
    same key behave as if applied one at a time.

    Available implementations:
    - InMemoryBackend: For testing and development (single process)
    - RedisBackend: For production (distributed, one Lua round trip)

    Example:
        >>> backend = InMemoryBackend()  # for testing
        >>> limiter = SlidingWindowLimiter(backend)

        >>> backend = RedisBackend(redis_client)  # for production
        >>> limiter = SlidingWindowLimiter(backend)
    """

    def __init__(self, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self.key_prefix = key_prefix

    def storage_key(self, key: str, window: Window) -> str:
        """
        Build the store key holding the markers of one (key, window) pair.

        The hash tag is a digest of the caller's key rather than the key
        itself: a raw key may be empty or contain braces, and Redis Cluster
        ignores an empty tag, which would scatter the windows of one key
        across slots.

        Layout:
            <prefix>:{<slot_tag(key)>}:<key>:<window>
            e.g. rate_limit:{<16 hex chars>}:sms:aliyun:user:123:per_minute
        """
        return f"{self.key_prefix}:{{{slot_tag(key)}}}:{key}:{window.value}"

    @abstractmethod
    async def execute(
        self,
        key: str,
        now: float,
        per_second: int = 0,
        per_minute: int = 0,
        per_hour: int = 0,
        per_day: int = 0,
    ) -> ExecutionResult:
        """
        Atomically check every constrained window and record the request.

        Args:
            key: The rate limit key.
            now: Current Unix time in seconds, supplied by the caller.
                 The store's own clock is never consulted.
            per_second: Limit for the 1 second window (0 = unconstrained).
            per_minute: Limit for the 60 second window (0 = unconstrained).
            per_hour: Limit for the 3600 second window (0 = unconstrained).
            per_day: Limit for the 86400 second window (0 = unconstrained).

        Returns:
            ExecutionResult with the first violated window, if any.

        Raises:
            RateLimitEvaluationError: The store could not run the operation
                or returned something unexpected.
        """

    @abstractmethod
    async def reset(self, key: str) -> None:
        """
        Remove all window state for a key.

        Args:
            key: The rate limit key to reset. No error if it has no state.
        """
