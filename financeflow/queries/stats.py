"""
Stats Aggregation

Composes the store's single-query counts with the monthly projection into
one reporting payload. No independent algorithm lives here: counting is
the store's job, normalization is the projection calculator's.
"""

from typing import Optional

from financeflow.models.execution import MonthlyProjection, PlannedTransactionStats
from financeflow.scheduling import Clock, ProjectionCalculator, SystemClock
from financeflow.services.storage import PlannedTransactionStoreInterface


class StatsAggregator:
    """Builds the stats payload for one user's planned transactions."""

    def __init__(
        self,
        store: PlannedTransactionStoreInterface,
        clock: Optional[Clock] = None,
        calculator: Optional[ProjectionCalculator] = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._calculator = calculator or ProjectionCalculator()

    def get_monthly_projection(self, user_id: int) -> MonthlyProjection:
        totals = self._store.sum_amounts_by_type_and_frequency(user_id)
        return self._calculator.calculate(totals)

    def get_stats(self, user_id: int) -> PlannedTransactionStats:
        counts = self._store.aggregate_counts(user_id, self._clock.today())
        return PlannedTransactionStats(
            total_count=counts.total,
            active_count=counts.active,
            inactive_count=counts.inactive,
            due_count=counts.due,
            income_count=counts.income_active,
            expense_count=counts.expense_active,
            monthly_projection=self.get_monthly_projection(user_id),
        )
