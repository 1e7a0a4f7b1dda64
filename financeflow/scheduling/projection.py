"""
Monthly Projection

Normalizes grouped per-frequency totals into a monthly figure.

This is a forecasting approximation: a month is taken as 30 days and
52/12 weeks is rounded to 4.33. It is not meant to reconcile with the
ledger to the cent.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

import structlog

from financeflow.errors import UnknownFrequencyError
from financeflow.models.execution import FrequencyTotal, MonthlyProjection
from financeflow.models.planned import Frequency, OperationType

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")

# Yearly amounts are divided by 12 instead
MONTHLY_MULTIPLIERS = {
    Frequency.DAILY: Decimal("30"),
    Frequency.WEEKLY: Decimal("4.33"),
    Frequency.MONTHLY: Decimal("1"),
}


def to_monthly_amount(
    amount: Decimal,
    frequency: Union[Frequency, str],
    strict: bool = False,
) -> Decimal:
    """Convert an amount recurring at frequency into its monthly equivalent (unrounded)."""
    try:
        key = Frequency(frequency)
    except ValueError:
        if strict:
            raise UnknownFrequencyError(f"Unknown frequency: {frequency!r}")
        logger.warning("unknown_frequency_fallback", frequency=str(frequency), fallback="x1")
        return amount
    if key == Frequency.YEARLY:
        return amount / Decimal("12")
    return amount * MONTHLY_MULTIPLIERS[key]


class ProjectionCalculator:
    """
    Turns grouped (operation type, frequency, total) rows into a monthly
    income / expense / balance projection.

    Rounding happens once, at output, so that many small yearly rows do not
    accumulate rounding error.
    """

    def __init__(self, strict: bool = False):
        self._strict = strict

    def calculate(self, totals: Iterable[FrequencyTotal]) -> MonthlyProjection:
        income = Decimal("0")
        expense = Decimal("0")

        for row in totals:
            monthly = to_monthly_amount(row.total_amount, row.frequency, strict=self._strict)
            if row.operation_type == OperationType.INCOME:
                income += monthly
            else:
                expense += monthly

        return MonthlyProjection(
            monthly_income=income.quantize(CENT, rounding=ROUND_HALF_UP),
            monthly_expense=expense.quantize(CENT, rounding=ROUND_HALF_UP),
            monthly_balance=(income - expense).quantize(CENT, rounding=ROUND_HALF_UP),
        )
