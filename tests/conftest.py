from unittest.mock import Mock

import pytest

from tollgate.core.backends.memory import InMemoryBackend
from tollgate.core.strategies.sliding_window import SlidingWindowLimiter


@pytest.fixture
def clock() -> Mock:
    """A controllable clock frozen at t=1000s."""
    return Mock(return_value=1000.0)


@pytest.fixture
def backend() -> InMemoryBackend:
    """Create a fresh in-memory backend for each test."""
    return InMemoryBackend()


@pytest.fixture
def limiter(backend: InMemoryBackend, clock: Mock) -> SlidingWindowLimiter:
    """Create a Sliding Window limiter with the test backend and clock."""
    return SlidingWindowLimiter(backend, clock=clock)
