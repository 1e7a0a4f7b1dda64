"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation of create/update requests happens in two
distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Types, enums, bounds (positive amount, title length, rate in [0, 100])
- Delegated to the pydantic request models

STAGE 2 - SEMANTIC VALIDATION:
- Field combinations (duration needs a unit, sub-category needs a category)
- Required fields that an update tries to clear
- Suspicious values (past or far-future next date, huge amounts)

Stage 2 only runs when stage 1 passes. Warnings never block; they are
returned so the caller can show them.

IMPORTANT: Validation NEVER silently fixes issues.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union

from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from financeflow.config import AppSettings, get_settings
from financeflow.models.planned import (
    PlannedTransaction,
    PlannedTransactionCreate,
    PlannedTransactionUpdate,
)
from financeflow.models.validation import ValidationIssue, ValidationResult


# Fields an update may change but never set to null
_NOT_NULLABLE = ("title", "amount", "operation_type", "frequency", "next_date", "active")


class PlannedTransactionValidator:
    """
    Validates planned transaction create and update requests.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        model: type,
        data: Union[dict, PlannedTransactionCreate, PlannedTransactionUpdate],
    ) -> tuple[Optional[Any], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (parsed_model_or_None, list_of_issues)
        """
        if isinstance(data, model):
            return data, []

        try:
            return model.model_validate(data), []
        except ValidationError as e:
            issues = [
                ValidationIssue(
                    field=".".join(str(part) for part in err["loc"]) or "request",
                    issue_type=err["type"],
                    message=err["msg"],
                    severity="error",
                )
                for err in e.errors()
            ]
            return None, issues

    def _validate_semantic(
        self,
        effective: dict[str, Any],
        today: date,
        touched: Optional[set[str]] = None,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation on the record as it would be stored.

        touched limits the pairing checks to requests that change one of
        the paired fields (None checks everything). A stored record whose
        pairing is already incomplete can still take unrelated updates.
        """
        issues = []

        def touches(*fields: str) -> bool:
            return touched is None or any(f in touched for f in fields)

        if touches("duration", "duration_unit"):
            has_duration = effective.get("duration") is not None
            has_unit = effective.get("duration_unit") is not None
            if has_duration and not has_unit:
                issues.append(ValidationIssue(
                    field="duration_unit",
                    issue_type="missing",
                    message="A duration needs a unit (day, month or year)",
                    severity="error",
                ))
            elif has_unit and not has_duration:
                issues.append(ValidationIssue(
                    field="duration",
                    issue_type="missing",
                    message="A duration unit was given without a duration",
                    severity="error",
                ))

        if (
            touches("category_id", "sub_category_id")
            and effective.get("sub_category_id") is not None
            and effective.get("category_id") is None
        ):
            issues.append(ValidationIssue(
                field="sub_category_id",
                issue_type="inconsistent",
                message="A sub-category requires a category",
                severity="error",
            ))

        next_date = effective.get("next_date")
        if next_date is not None:
            if next_date < today:
                issues.append(ValidationIssue(
                    field="next_date",
                    issue_type="past_date",
                    message=f"Next date ({next_date}) is in the past; it will be due on the next run",
                    severity="warning",
                ))
            elif next_date > today + relativedelta(years=self._settings.max_future_years):
                issues.append(ValidationIssue(
                    field="next_date",
                    issue_type="suspicious_date",
                    message=f"Next date ({next_date}) is unusually far in the future",
                    severity="warning",
                    suggested_fix="Please verify the year",
                ))

        amount = effective.get("amount")
        if amount is not None and amount > Decimal(str(self._settings.max_amount)):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return issues

    def _result(
        self,
        schema_issues: list[ValidationIssue],
        semantic_issues: list[ValidationIssue],
    ) -> ValidationResult:
        schema_valid = not any(i.severity == "error" for i in schema_issues)
        semantic_valid = schema_valid and not any(
            i.severity == "error" for i in semantic_issues
        )
        all_issues = schema_issues + semantic_issues
        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=[i.message for i in all_issues if i.severity == "warning"],
        )

    def validate_create(
        self,
        data: Union[dict, PlannedTransactionCreate],
        today: date,
    ) -> tuple[ValidationResult, Optional[PlannedTransactionCreate]]:
        """
        Validate a creation request.

        A missing next_date is not an issue: the service schedules it for today.
        """
        request, schema_issues = self._validate_schema(PlannedTransactionCreate, data)
        if request is None:
            return self._result(schema_issues, []), None

        effective = request.model_dump()
        if effective["next_date"] is None:
            effective["next_date"] = today
        semantic_issues = self._validate_semantic(effective, today)
        return self._result(schema_issues, semantic_issues), request

    def validate_update(
        self,
        data: Union[dict, PlannedTransactionUpdate],
        existing: PlannedTransaction,
        today: date,
    ) -> tuple[ValidationResult, Optional[PlannedTransactionUpdate]]:
        """
        Validate a partial update against the record it will be applied to.

        Field combinations are checked on the merged result, so clearing a
        category that a sub-category still depends on is caught here.
        """
        request, schema_issues = self._validate_schema(PlannedTransactionUpdate, data)
        if request is None:
            return self._result(schema_issues, []), None

        changes = request.changes()
        semantic_issues = [
            ValidationIssue(
                field=name,
                issue_type="missing",
                message=f"{name} cannot be cleared",
                severity="error",
            )
            for name in _NOT_NULLABLE
            if name in changes and changes[name] is None
        ]

        effective = existing.model_dump()
        effective.update(changes)
        # Only warn about a past next_date if this update is the one setting it
        if "next_date" not in changes:
            effective["next_date"] = None
        semantic_issues.extend(self._validate_semantic(effective, today, touched=set(changes)))
        return self._result(schema_issues, semantic_issues), request

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Plain-text summary of a validation result."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"Error - {issue.field}: {issue.message}")
        for warning in result.warnings:
            lines.append(f"Warning - {warning}")
        return "\n".join(lines)
