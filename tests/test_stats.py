"""
Tests for stats aggregation, the component factory and settings.
"""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from financeflow.config import AppSettings, DatabaseSettings, get_settings, validate_all_settings
from financeflow.models import Frequency, OperationType
from financeflow.orchestrator import (
    ExecutionCoordinator,
    PlannedTransactionService,
    create_app_components,
)
from financeflow.queries import StatsAggregator
from financeflow.scheduling import FixedClock

from conftest import OTHER_USER_ID, TODAY, USER_ID, make_record


class TestStatsAggregator:
    """Counts plus monthly projection."""

    def test_empty_user(self, store, clock):
        stats = StatsAggregator(store, clock).get_stats(USER_ID)
        assert stats.total_count == 0
        assert stats.monthly_projection.monthly_balance == Decimal("0.00")

    def test_stats(self, store, clock):
        store.create(make_record(
            title="Salary",
            amount=Decimal("3000.00"),
            operation_type=OperationType.INCOME,
            next_date=date(2024, 3, 25),
        ))
        store.create(make_record(title="Rent"))
        store.create(make_record(
            title="Insurance",
            amount=Decimal("600.00"),
            frequency=Frequency.YEARLY,
            next_date=date(2024, 9, 1),
        ))
        store.create(make_record(title="Old gym", amount=Decimal("40.00"), active=False))
        store.create(make_record(user_id=OTHER_USER_ID))

        stats = StatsAggregator(store, clock).get_stats(USER_ID)

        assert stats.total_count == 4
        assert stats.active_count == 3
        assert stats.inactive_count == 1
        assert stats.due_count == 1
        assert stats.income_count == 1
        assert stats.expense_count == 2
        assert stats.monthly_projection.monthly_income == Decimal("3000.00")
        assert stats.monthly_projection.monthly_expense == Decimal("1250.00")
        assert stats.monthly_projection.monthly_balance == Decimal("1750.00")

    def test_due_count_follows_clock(self, store):
        store.create(make_record(next_date=date(2024, 3, 10)))
        clock = FixedClock(TODAY)
        aggregator = StatsAggregator(store, clock)

        assert aggregator.get_stats(USER_ID).due_count == 0
        clock.set(date(2024, 3, 10))
        assert aggregator.get_stats(USER_ID).due_count == 1

    def test_response_dict(self, store, clock):
        store.create(make_record())
        data = StatsAggregator(store, clock).get_stats(USER_ID).to_response_dict()
        assert data["monthly_projection"]["monthly_expense"] == "1200.00"


class TestCreateAppComponents:
    """Wiring through the factory."""

    def test_in_memory(self):
        coordinator, service, stats = create_app_components(
            use_sqlite=False, clock=FixedClock(TODAY)
        )
        assert isinstance(coordinator, ExecutionCoordinator)
        assert isinstance(service, PlannedTransactionService)

        created = service.create({
            "title": "Rent",
            "amount": "1200.00",
            "operation_type": "expense",
            "frequency": "monthly",
        }, USER_ID)
        result = coordinator.execute_all_due(USER_ID)

        assert result.total_executed == 1
        assert service.get_by_id(created.id, USER_ID).next_date == date(2024, 4, 1)
        assert stats.get_stats(USER_ID).due_count == 0

    def test_sqlite(self, tmp_path):
        coordinator, service, stats = create_app_components(
            db_path=str(tmp_path / "app.db"), clock=FixedClock(TODAY)
        )
        created = service.create({
            "title": "Salary",
            "amount": "3000.00",
            "operation_type": "income",
            "frequency": "monthly",
        }, USER_ID)

        result = coordinator.execute_one(created.id, USER_ID)

        assert result.transaction.amount == Decimal("3000.00")
        assert result.planned_transaction.next_date == date(2024, 4, 1)
        assert stats.get_monthly_projection(USER_ID).monthly_income == Decimal("3000.00")


class TestSettings:
    """Tests for pydantic-settings configuration."""

    def test_defaults(self):
        settings = AppSettings(_env_file=None)
        assert settings.upcoming_horizon_days == 30
        assert settings.reject_unknown_frequency is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("UPCOMING_HORIZON_DAYS", "14")
        monkeypatch.setenv("FINANCEFLOW_DB_PATH", ":memory:")
        assert AppSettings(_env_file=None).upcoming_horizon_days == 14
        assert DatabaseSettings().path == ":memory:"

    def test_rejects_bad_log_level(self):
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None, log_level="LOUD")

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_validate_all_settings(self):
        results = validate_all_settings()
        assert results["app"] is True
        assert results["database"] is True
