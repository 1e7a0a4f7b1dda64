"""Reporting queries package."""

from financeflow.queries.stats import StatsAggregator

__all__ = ["StatsAggregator"]
