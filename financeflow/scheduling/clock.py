"""
Clocks

The engine never calls date.today() directly. It asks an injected clock,
so tests and replays can pin "today" to a fixed calendar date.
"""

from datetime import date, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current calendar date."""

    def today(self) -> date:
        ...


class SystemClock:
    """Wall-clock implementation (local date of the host)."""

    def today(self) -> date:
        return date.today()


class FixedClock:
    """A clock stuck on one date until it is moved explicitly."""

    def __init__(self, current: date):
        self._current = current

    def today(self) -> date:
        return self._current

    def set(self, current: date) -> None:
        self._current = current

    def advance(self, days: int = 1) -> None:
        self._current = self._current + timedelta(days=days)
