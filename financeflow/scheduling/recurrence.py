"""
Recurrence Rule

Pure date advancement for planned transactions. No I/O, no clock.

Month and year steps use relativedelta, which clamps to the last day of
the target month: Jan 31 + 1 month is Feb 28 (or 29), and Feb 29 + 1 year
is Feb 28 on a non-leap year.
"""

from datetime import date, timedelta
from typing import Iterator, Union

import structlog
from dateutil.relativedelta import relativedelta

from financeflow.errors import UnknownFrequencyError
from financeflow.models.planned import Frequency

logger = structlog.get_logger(__name__)

_STEPS = {
    Frequency.DAILY: timedelta(days=1),
    Frequency.WEEKLY: timedelta(days=7),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.YEARLY: relativedelta(years=1),
}


def _step_for(frequency: Union[Frequency, str], strict: bool):
    try:
        return _STEPS[Frequency(frequency)]
    except ValueError:
        if strict:
            raise UnknownFrequencyError(f"Unknown frequency: {frequency!r}")
        # Legacy rows with an unrecognized frequency move monthly
        logger.warning("unknown_frequency_fallback", frequency=str(frequency), fallback="monthly")
        return _STEPS[Frequency.MONTHLY]


def advance(
    current_date: date,
    frequency: Union[Frequency, str],
    strict: bool = False,
) -> date:
    """
    Return the occurrence that follows current_date.

    Args:
        current_date: The occurrence that just fired
        frequency: Recurrence frequency (enum member or its raw value)
        strict: Raise UnknownFrequencyError instead of falling back to monthly

    Returns:
        The next occurrence date, always strictly after current_date
    """
    return current_date + _step_for(frequency, strict)


def occurrences(
    start: date,
    frequency: Union[Frequency, str],
    until: date,
    strict: bool = False,
) -> Iterator[date]:
    """
    Yield start and every following occurrence up to and including until.

    Each step is computed from the previous occurrence, the same way repeated
    executions move next_date, so a Jan 31 monthly rule yields Feb 29 and
    then Mar 29.
    """
    current = start
    while current <= until:
        yield current
        current = advance(current, frequency, strict=strict)
