"""
Time windows and per-key window limits.

A request is evaluated against every configured window at once. Windows are
always evaluated in the order they are declared on `Window` (tightest first),
and the first violated window is the one reported.
"""

from dataclasses import dataclass, fields
from enum import StrEnum

MAX_LIMIT = 2**63 - 1


class Window(StrEnum):
    """Named trailing windows, declared in evaluation order."""

    PER_SECOND = "per_second"
    PER_MINUTE = "per_minute"
    PER_HOUR = "per_hour"
    PER_DAY = "per_day"

    @property
    def seconds(self) -> int:
        return WINDOW_SECONDS[self]


WINDOW_SECONDS = {
    Window.PER_SECOND: 1,
    Window.PER_MINUTE: 60,
    Window.PER_HOUR: 3600,
    Window.PER_DAY: 86400,
}


@dataclass(frozen=True)
class WindowConfig:
    """
    Limits for the four windows of a single key.

    Each limit is the number of requests admitted within the trailing
    window. A limit of 0 leaves that window unconstrained.

    Example:
        >>> WindowConfig(per_second=3, per_day=1000)
    """

    per_second: int = 0
    per_minute: int = 0
    per_hour: int = 0
    per_day: int = 0

    def __post_init__(self) -> None:
        for field in fields(self):
            value = getattr(self, field.name)
            # bool is an int subclass; True as a limit is almost certainly a bug
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{field.name} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{field.name} must be non-negative, got {value}")
            if value > MAX_LIMIT:
                raise ValueError(f"{field.name} exceeds {MAX_LIMIT}")

    def limit_for(self, window: Window) -> int:
        return getattr(self, window.value)

    def limits(self) -> list[tuple[Window, int]]:
        """(window, limit) pairs in evaluation order, zeros included."""
        return [(window, self.limit_for(window)) for window in Window]

    @property
    def is_unlimited(self) -> bool:
        return all(limit == 0 for _, limit in self.limits())
