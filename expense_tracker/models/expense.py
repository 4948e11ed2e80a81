"""
Core Data Models for Expense Tracker

These models define the schemas for every value flowing through the system:
1. The persisted Expense entity
2. Raw form input as the UI hands it over
3. Ephemeral filter specifications
4. Derived summaries (recomputed on demand, never persisted)

DESIGN DECISION: Categories are a closed enum whose declaration order is the
canonical order. That single ordering drives bucket initialization and the
top-category tie-break, so both always agree.
"""

import math
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Optional, Union

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)


logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    Declaration order is the canonical order: Food, Transportation,
    Entertainment, Shopping, Bills, Other.
    """
    FOOD = "Food"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    SHOPPING = "Shopping"
    BILLS = "Bills"
    OTHER = "Other"

    @classmethod
    def coerce(cls, value: Any) -> "ExpenseCategory":
        """Map any value onto a category; unrecognized tokens become OTHER."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


CATEGORY_ORDER: tuple[ExpenseCategory, ...] = tuple(ExpenseCategory)

ALL_CATEGORIES = "All"

CategoryFilter = Union[ExpenseCategory, Literal["All"]]


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class Expense(BaseModel):
    """
    A single recorded spending transaction.

    The persisted JSON shape is one record of the stored collection:
    id, amount, description, category, date, createdAt, updatedAt.
    Dump with ``model_dump(mode="json", by_alias=True)`` to get it.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier, immutable after creation"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount spent (currency-agnostic, shown as USD)"
    )
    description: str = Field(
        ...,
        min_length=1,
        description="What the money was spent on"
    )
    category: ExpenseCategory = Field(
        default=ExpenseCategory.OTHER,
        description="Expense category"
    )
    date: date
    created_at: datetime = Field(
        default_factory=utc_now,
        alias="createdAt",
        description="When the record was created"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        alias="updatedAt",
        description="When the record was last edited"
    )

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> ExpenseCategory:
        """Unknown category tokens are stored as Other rather than rejected."""
        category = ExpenseCategory.coerce(v)
        if category is ExpenseCategory.OTHER and v not in (
            ExpenseCategory.OTHER,
            ExpenseCategory.OTHER.value,
        ):
            logger.warning("unknown_category_normalized", category=str(v))
        return category

    @field_validator("amount")
    @classmethod
    def validate_storable_amount(cls, v: Decimal) -> Decimal:
        """Amounts are stored as JSON numbers, so they must fit a float."""
        if not math.isfinite(float(v)):
            raise ValueError("Amount is too large to store")
        return v

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def validate_timestamps(self) -> "Expense":
        if self.updated_at < self.created_at:
            raise ValueError("Updated timestamp cannot be before created timestamp")
        return self

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, amount: Decimal) -> float:
        # Stored blobs keep amounts as plain JSON numbers
        return float(amount)


# =============================================================================
# FORM / FILTER MODELS (ephemeral, never persisted)
# =============================================================================

class ExpenseFormData(BaseModel):
    """
    Raw user input exactly as the form collaborator supplies it.

    Everything is a string; validation.ExpenseFormValidator decides
    whether it can become an Expense.
    """

    amount: str = ""
    description: str = ""
    category: str = ExpenseCategory.OTHER.value
    date: str = ""

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExpenseFormData":
        """Pre-fill a form for editing an existing expense."""
        return cls(
            amount=format(expense.amount, "f"),
            description=expense.description,
            category=expense.category.value,
            date=expense.date.isoformat(),
        )


class ExpenseFilters(BaseModel):
    """
    Filter specification for the expense list.

    Every clause is optional; an unset clause matches everything.
    """

    category: CategoryFilter = ALL_CATEGORIES
    date_from: Optional[date] = Field(
        default=None,
        description="Inclusive lower bound on expense date"
    )
    date_to: Optional[date] = Field(
        default=None,
        description="Inclusive upper bound on expense date"
    )
    search_term: str = Field(
        default="",
        description="Case-insensitive substring matched against description"
    )

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def empty_date_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


# =============================================================================
# DERIVED MODELS (recomputed on demand)
# =============================================================================

class CategoryTotal(BaseModel):
    """A category together with its summed spend."""

    category: ExpenseCategory
    amount: Decimal


class CategoryShare(BaseModel):
    """A category's spend and its share relative to some reference amount."""

    category: ExpenseCategory
    amount: Decimal
    percentage: float = Field(ge=0.0, le=100.0)


class ExpenseSummary(BaseModel):
    """Aggregate view over a collection of expenses."""

    total_expenses: Decimal
    monthly_total: Decimal
    category_summary: dict[ExpenseCategory, Decimal]
    top_category: CategoryTotal


class FilterResult(BaseModel):
    """Matching expenses (newest first) and their combined amount."""

    expenses: list[Expense] = Field(default_factory=list)
    total: Decimal = Decimal("0")

    @property
    def count(self) -> int:
        return len(self.expenses)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found in form input."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'future_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage form validation.

    Stage 1: Schema validation (presence, parsing)
    Stage 2: Semantic validation (suspicious but allowed values)
    """

    validated_at: datetime = Field(default_factory=utc_now)

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def field_errors(self) -> dict[str, str]:
        """First error message per field, for inline form display."""
        errors: dict[str, str] = {}
        for issue in self.issues:
            if issue.severity == "error":
                errors.setdefault(issue.field, issue.message)
        return errors
