"""
Two-Stage Form Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Amount present, numeric and greater than zero
- Description not blank
- Date present and a real calendar date
- Category one of the known tokens

STAGE 2 - SEMANTIC VALIDATION:
- Dates in the future
- Unusually large amounts
These are warnings: the user may well mean it.

Stage 2 only runs when stage 1 passes, since it needs parsed values.

IMPORTANT: Validation NEVER silently fixes input.
It reports issues for the user to correct.
"""

import math
import re
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.formatting import format_currency
from expense_tracker.models.expense import (
    ExpenseCategory,
    ExpenseFormData,
    ValidationIssue,
    ValidationResult,
)


AMOUNT_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)")


def parse_amount(text: str) -> Optional[Decimal]:
    """
    Parse a form amount written in plain decimal notation.

    None for anything else (exponents, NaN, Infinity) and for magnitudes
    that cannot be stored as a JSON number.
    """
    if not isinstance(text, str) or not AMOUNT_PATTERN.fullmatch(text.strip()):
        return None
    try:
        value = Decimal(text.strip())
    except InvalidOperation:
        return None
    if not math.isfinite(float(value)):
        return None
    return value


def parse_date(text: str) -> Optional[date]:
    """Parse a form date in ISO format (YYYY-MM-DD); None when invalid."""
    try:
        return date.fromisoformat(text.strip())
    except (ValueError, AttributeError):
        return None


class ExpenseFormValidator:
    """
    Validates raw expense form input.

    Stage 1: Schema validation (blocking errors)
    Stage 2: Semantic validation (non-blocking warnings)
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        form: ExpenseFormData,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        amount = parse_amount(form.amount)
        if amount is None or amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing" if not form.amount.strip() else "invalid_value",
                message="Please enter a valid amount greater than 0",
                severity="error",
                suggested_fix="Use digits and an optional decimal point, e.g. 12.50",
            ))

        if not form.description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Please enter a description",
                severity="error",
            ))

        if not form.date.strip():
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Please select a date",
                severity="error",
            ))
        elif parse_date(form.date) is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message="Please select a date",
                severity="error",
                suggested_fix="Dates look like 2024-06-01",
            ))

        if form.category not in {category.value for category in ExpenseCategory}:
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message="Please select a valid category",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        form: ExpenseFormData,
        today: date,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Only called after stage 1 passed, so parsing cannot fail here.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        amount = parse_amount(form.amount)
        expense_date = parse_date(form.date)

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if expense_date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({expense_date.isoformat()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_expense_amount))
        if amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({format_currency(amount)}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(
        self,
        form: ExpenseFormData,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run the full two-stage validation pipeline.

        Args:
            form: Raw form input
            today: Reference date for the future-date check (defaults to today)

        Returns:
            ValidationResult with all issues found
        """
        today = today or date.today()
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(form)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(form, today)
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Summarize a validation result in plain language for the form."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if not result.schema_valid:
            lines.append("Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
