"""Scheduling package: calendar arithmetic, clocks and monthly projections."""

from financeflow.scheduling.clock import Clock, FixedClock, SystemClock
from financeflow.scheduling.projection import (
    MONTHLY_MULTIPLIERS,
    ProjectionCalculator,
    to_monthly_amount,
)
from financeflow.scheduling.recurrence import advance, occurrences

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "MONTHLY_MULTIPLIERS",
    "ProjectionCalculator",
    "to_monthly_amount",
    "advance",
    "occurrences",
]
