"""Validation package."""

from financeflow.validation.validator import PlannedTransactionValidator

__all__ = ["PlannedTransactionValidator"]
