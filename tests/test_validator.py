"""
Tests for the two-stage request validator.
"""

import pytest
from datetime import date
from decimal import Decimal

from financeflow.config import AppSettings
from financeflow.validation import PlannedTransactionValidator

from conftest import TODAY, make_record


@pytest.fixture
def validator(app_settings):
    return PlannedTransactionValidator(app_settings)


def _create_data(**overrides):
    data = {
        "title": "Rent",
        "amount": "1200.00",
        "operation_type": "expense",
        "frequency": "monthly",
        "next_date": "2024-03-05",
    }
    data.update(overrides)
    return data


class TestValidateCreate:
    """Stage 1 and stage 2 on creation requests."""

    def test_valid_request(self, validator):
        result, request = validator.validate_create(_create_data(), TODAY)
        assert result.is_valid is True
        assert result.issues == []
        assert request.amount == Decimal("1200.00")

    def test_missing_next_date_is_fine(self, validator):
        data = _create_data()
        del data["next_date"]
        result, request = validator.validate_create(data, TODAY)
        assert result.is_valid is True
        assert request.next_date is None

    @pytest.mark.parametrize("field,value", [
        ("amount", "0"),
        ("amount", "-10"),
        ("title", "x" * 151),
        ("description", "x" * 1001),
        ("interest_rate", "101"),
        ("duration", 0),
        ("duration_unit", "week"),
        ("frequency", "fortnightly"),
        ("operation_type", "transfer"),
    ])
    def test_schema_errors(self, validator, field, value):
        result, request = validator.validate_create(_create_data(**{field: value}), TODAY)
        assert request is None
        assert result.schema_valid is False
        assert result.is_valid is False
        assert any(issue.field == field for issue in result.issues)

    def test_schema_failure_skips_semantic_stage(self, validator):
        result, _ = validator.validate_create(
            _create_data(amount="-1", sub_category_id=3), TODAY
        )
        assert result.semantic_valid is False
        assert all(issue.field != "sub_category_id" for issue in result.issues)

    def test_duration_needs_unit(self, validator):
        result, _ = validator.validate_create(_create_data(duration=12), TODAY)
        assert result.is_valid is False
        assert result.issues[0].field == "duration_unit"

    def test_unit_needs_duration(self, validator):
        result, _ = validator.validate_create(_create_data(duration_unit="month"), TODAY)
        assert result.is_valid is False
        assert result.issues[0].field == "duration"

    def test_sub_category_needs_category(self, validator):
        result, _ = validator.validate_create(_create_data(sub_category_id=3), TODAY)
        assert result.schema_valid is True
        assert result.semantic_valid is False

    def test_past_date_is_only_a_warning(self, validator):
        result, _ = validator.validate_create(_create_data(next_date="2024-01-01"), TODAY)
        assert result.is_valid is True
        assert len(result.warnings) == 1

    def test_far_future_date_warns(self, validator):
        result, _ = validator.validate_create(_create_data(next_date="2035-01-01"), TODAY)
        assert result.is_valid is True
        assert result.issues[0].issue_type == "suspicious_date"

    def test_large_amount_warns(self):
        validator = PlannedTransactionValidator(AppSettings(_env_file=None, max_amount=1000))
        result, _ = validator.validate_create(_create_data(amount="5000.00"), TODAY)
        assert result.is_valid is True
        assert result.issues[0].issue_type == "suspicious_value"


class TestValidateUpdate:
    """Validation of partial updates against the stored record."""

    def test_partial_update(self, validator):
        result, update = validator.validate_update({"title": "New"}, make_record(), TODAY)
        assert result.is_valid is True
        assert update.changes() == {"title": "New"}

    def test_cannot_clear_required_field(self, validator):
        result, _ = validator.validate_update({"amount": None}, make_record(), TODAY)
        assert result.is_valid is False
        assert result.issues[0].field == "amount"

    def test_clearing_category_under_sub_category(self, validator):
        existing = make_record(category_id=1, sub_category_id=2)
        result, _ = validator.validate_update({"category_id": None}, existing, TODAY)
        assert result.is_valid is False

    def test_unchanged_past_next_date_does_not_warn(self, validator):
        existing = make_record(next_date=date(2024, 1, 1))
        result, _ = validator.validate_update({"title": "New"}, existing, TODAY)
        assert result.warnings == []

    def test_new_past_next_date_warns(self, validator):
        result, _ = validator.validate_update(
            {"next_date": "2024-01-01"}, make_record(), TODAY
        )
        assert result.is_valid is True
        assert len(result.warnings) == 1

    def test_unrelated_update_on_unpaired_record(self, validator):
        """Stored rows with an incomplete pairing still accept other changes."""
        existing = make_record(duration=12, sub_category_id=5)
        result, _ = validator.validate_update({"title": "Renamed"}, existing, TODAY)
        assert result.is_valid is True

    def test_touching_duration_checks_pairing(self, validator):
        existing = make_record(duration=12)
        result, _ = validator.validate_update({"duration": 6}, existing, TODAY)
        assert result.is_valid is False
        assert result.issues[0].field == "duration_unit"

    def test_touching_sub_category_checks_category(self, validator):
        existing = make_record(sub_category_id=5)
        result, _ = validator.validate_update({"sub_category_id": 6}, existing, TODAY)
        assert result.is_valid is False
        assert result.issues[0].field == "sub_category_id"

    def test_adding_duration_to_record_with_unit(self, validator):
        existing = make_record(duration=6, duration_unit="month")
        result, _ = validator.validate_update({"duration": 12}, existing, TODAY)
        assert result.is_valid is True


class TestSummary:
    """Tests for the plain-text summary."""

    def test_all_passed(self, validator):
        result, _ = validator.validate_create(_create_data(), TODAY)
        assert validator.get_user_friendly_summary(result) == "All checks passed."

    def test_lists_errors_and_warnings(self, validator):
        result, _ = validator.validate_create(
            _create_data(next_date="2024-01-01", duration=3), TODAY
        )
        summary = validator.get_user_friendly_summary(result)
        assert "Error - duration_unit" in summary
        assert "Warning - " in summary
