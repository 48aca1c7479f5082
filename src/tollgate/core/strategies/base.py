"""
Abstract base classes for rate limiters.

This module defines the contract every limiter follows: a structured
`check` that reports the decision, and an `allow` that raises on rejection
so call sites can simply await it before doing the throttled work.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum

from tollgate.core.backends.base import WindowViolation
from tollgate.core.errors import RateLimitExceeded
from tollgate.core.windows import Window, WindowConfig


class RateLimitStatus(StrEnum):
    """
    Possible outcomes of a rate limit check.

    ALLOWED: Request is within every configured window and was recorded.
    DENIED: A window limit was reached; nothing was recorded.
    """

    ALLOWED = "allowed"
    DENIED = "denied"


@dataclass(frozen=True)
class RateLimitResult:
    """
    Immutable result of a rate limit check. Never persisted.

    Attributes:
        status: Whether the request is ALLOWED or DENIED.
        key: The key that was checked.
        window: The violated window (None when allowed).
        window_seconds: Duration of the violated window (0 when allowed).
        current: Requests already recorded in the violated window.
        limit: Configured limit of the violated window.
    """

    status: RateLimitStatus
    key: str
    window: Window | None = None
    window_seconds: int = 0
    current: int = 0
    limit: int = 0

    @property
    def is_allowed(self) -> bool:
        """Convenience property to check if request should proceed."""
        return self.status == RateLimitStatus.ALLOWED

    @classmethod
    def allowed(cls, key: str) -> "RateLimitResult":
        return cls(status=RateLimitStatus.ALLOWED, key=key)

    @classmethod
    def denied(cls, key: str, violation: WindowViolation) -> "RateLimitResult":
        return cls(
            status=RateLimitStatus.DENIED,
            key=key,
            window=violation.window,
            window_seconds=violation.seconds,
            current=violation.count,
            limit=violation.limit,
        )

    def to_error(self) -> RateLimitExceeded:
        return RateLimitExceeded(
            key=self.key,
            window_name=self.window.value if self.window else "",
            window_seconds=self.window_seconds,
            current=self.current,
            limit=self.limit,
        )


class RateLimiter(ABC):
    """
    Abstract base class for rate limiters.

    Implementations must hold no per-key state in process: every decision
    is made against the shared store so that any number of instances can
    enforce the same limits.
    """

    @abstractmethod
    async def check(self, key: str, config: WindowConfig | None) -> RateLimitResult:
        """
        Check a request against every configured window.

        Args:
            key: Opaque identifier of the throttled subject.
                 Examples: "sms:aliyun:user:123", "api:ip:192.168.1.1"
            config: Window limits. None means unconstrained.

        Returns:
            RateLimitResult with the decision and, when denied, the first
            violated window in evaluation order.

        Raises:
            RateLimitEvaluationError: The store could not make a decision.
        """

    async def allow(self, key: str, config: WindowConfig | None) -> None:
        """
        Admit the request or raise.

        Raises:
            RateLimitExceeded: A configured window limit was reached.
            RateLimitEvaluationError: The store could not make a decision.
        """
        result = await self.check(key, config)
        if not result.is_allowed:
            raise result.to_error()

    @abstractmethod
    async def reset(self, key: str) -> None:
        """
        Reset rate limit state for a specific key.

        Args:
            key: The rate limit key to reset.
        """
