"""
In-memory execution backend for testing and development.

This backend stores all marker sets in Python dictionaries, making it:
- Fast: No network calls, no serialization
- Simple: No external dependencies
- Isolated: Each instance is independent

WARNING: Not suitable for production!
- No persistence (data lost on restart)
- No distribution (single process only)

Use RedisBackend for production deployments.
"""

import asyncio
import uuid

from tollgate.core.backends.base import (
    DEFAULT_KEY_PREFIX,
    MICROSECONDS,
    ExecutionBackend,
    ExecutionResult,
    to_microseconds,
)
from tollgate.core.windows import Window


class InMemoryBackend(ExecutionBackend):
    """
    In-memory implementation of ExecutionBackend.

    Marker sets are kept as score-sorted lists of (score, member) tuples.
    Expiration is tracked per storage key and evaluated against the `now`
    passed to `execute`, so tests fully control time. Every execution sweeps
    all expired keys, not only the ones it touches.

    Concurrency:
        All executions are serialized by one asyncio.Lock, which makes the
        check-and-record sequence atomic for coroutines sharing this
        instance. It is NOT safe across threads or processes.
    """

    def __init__(self, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        super().__init__(key_prefix)
        # Sorted sets: storage key -> list of (score_us, member), ascending
        self._sorted_sets: dict[str, list[tuple[int, str]]] = {}
        # Expiration times: storage key -> microsecond timestamp
        self._expiry: dict[str, int] = {}
        self._lock = asyncio.Lock()

    def _sweep_expired(self, now_us: int) -> int:
        """Drop every storage key whose expiration has passed, like Redis TTLs."""
        expired = [k for k, expires_at in self._expiry.items() if now_us >= expires_at]
        for storage_key in expired:
            self._sorted_sets.pop(storage_key, None)
            self._expiry.pop(storage_key, None)
        return len(expired)

    def _purge_and_count(self, storage_key: str, max_score: int) -> int:
        """Drop members with score <= max_score and return what is left."""
        items = self._sorted_sets.get(storage_key)
        if not items:
            return 0
        kept = [(score, member) for score, member in items if score > max_score]
        if kept:
            self._sorted_sets[storage_key] = kept
        else:
            # An empty Redis sorted set ceases to exist
            self._sorted_sets.pop(storage_key, None)
            self._expiry.pop(storage_key, None)
        return len(kept)

    def _record(self, storage_key: str, score: int, member: str, ttl_us: int) -> None:
        items = self._sorted_sets.setdefault(storage_key, [])
        items.append((score, member))
        items.sort(key=lambda item: item[0])
        self._expiry[storage_key] = score + ttl_us

    async def execute(
        self,
        key: str,
        now: float,
        per_second: int = 0,
        per_minute: int = 0,
        per_hour: int = 0,
        per_day: int = 0,
    ) -> ExecutionResult:
        limits = zip(Window, (per_second, per_minute, per_hour, per_day))
        constrained = [(window, limit) for window, limit in limits if limit > 0]
        if not constrained:
            return ExecutionResult.accept()

        now_us = to_microseconds(now)

        async with self._lock:
            self._sweep_expired(now_us)

            for window, limit in constrained:
                storage_key = self.storage_key(key, window)
                count = self._purge_and_count(
                    storage_key, now_us - window.seconds * MICROSECONDS
                )
                if count >= limit:
                    return ExecutionResult.reject(window, count, limit)

            member = f"{now_us}:{uuid.uuid4().hex}"
            for window, _ in constrained:
                self._record(
                    self.storage_key(key, window),
                    now_us,
                    member,
                    (window.seconds + 1) * MICROSECONDS,
                )

        return ExecutionResult.accept()

    async def reset(self, key: str) -> None:
        async with self._lock:
            for window in Window:
                storage_key = self.storage_key(key, window)
                self._sorted_sets.pop(storage_key, None)
                self._expiry.pop(storage_key, None)

    # =========================================================================
    # Utility Methods (not part of interface, useful for testing)
    # =========================================================================

    def keys(self) -> list[str]:
        """Storage keys that currently hold markers."""
        return sorted(self._sorted_sets)

    def count(self, key: str, window: Window) -> int:
        """Markers currently stored for a (key, window) pair, without purging."""
        return len(self._sorted_sets.get(self.storage_key(key, window), []))

    def expires_at(self, key: str, window: Window) -> float | None:
        """Expiration of a (key, window) pair as Unix seconds, if set."""
        expires_at = self._expiry.get(self.storage_key(key, window))
        return None if expires_at is None else expires_at / MICROSECONDS
