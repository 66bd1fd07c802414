"""
Budget Window

A spending limit for one category over a half-open date range
[start_date, end_date).

DESIGN DECISION: Spent, remaining and percentage used are DERIVED. They are
computed on demand from the expenses passed to ``compute_utilization`` and
never stored on the budget, so they cannot drift from the expenses. Every
report goes through this one algorithm.

Two active budgets of the same user and category may not overlap:

    a.start < b.end and b.start < a.end

Touching ranges ([Jan 1, Feb 1) and [Feb 1, Mar 1)) do not overlap.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from finance_tracker.config import get_settings
from finance_tracker.exceptions import InvalidArgumentError, OverlappingBudgetError
from finance_tracker.models.base import Entity
from finance_tracker.models.expense import Expense
from finance_tracker.models.money import Money, SignedAmount
from finance_tracker.validation.guards import (
    normalize_key,
    optional_text,
    require_date_order,
    require_in_range,
    require_text,
)

HUNDRED = Decimal("100")


class BudgetPeriod(str, Enum):
    """Recurrence pattern of a budget."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: Optional[str]) -> "BudgetPeriod":
        """Parse a user-supplied pattern; unknown or empty means monthly."""
        if not value:
            return cls.MONTHLY
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.MONTHLY


class BudgetUtilization(BaseModel):
    """Result of comparing a budget with the expenses in its window."""
    model_config = ConfigDict(frozen=True)

    budget_id: UUID
    limit: Money
    spent: Money
    remaining: SignedAmount
    percentage_used: Decimal
    is_over_budget: bool
    alert_triggered: bool
    expense_ids: tuple[UUID, ...] = ()

    @property
    def expense_count(self) -> int:
        return len(self.expense_ids)


class Budget(Entity):
    """A spending limit for a category over a date range."""

    name: str
    description: Optional[str] = None
    limit: Money
    category: str = Field(..., description="Category name, matched case-insensitively")
    start_date: date
    end_date: date
    period: Optional[BudgetPeriod] = None
    alert_threshold_percent: Decimal = Field(default=Decimal("80"), ge=0, le=100)
    alerts_enabled: bool = True
    is_active: bool = True

    @field_validator('name', mode='before')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return require_text(v, "name", max_length=100)

    @field_validator('description', mode='before')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return optional_text(v, "description", max_length=500)

    @field_validator('category', mode='before')
    @classmethod
    def validate_category(cls, v: str) -> str:
        return require_text(v, "category", max_length=100)

    @model_validator(mode='after')
    def validate_dates(self) -> 'Budget':
        require_date_order(self.start_date, self.end_date)
        return self

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        user_id: UUID,
        name: str,
        limit: Money,
        category: str,
        start_date: date,
        end_date: date,
        description: Optional[str] = None,
        period: Optional[BudgetPeriod] = None,
        alert_threshold_percent: Optional[Decimal] = None,
    ) -> "Budget":
        """
        Build a new active budget.

        Raises InvalidDateRangeError if start_date is not before end_date.
        The overlap check needs the user's other budgets and is done by the
        caller through ``ensure_no_overlap`` before persisting.
        """
        require_date_order(start_date, end_date)
        if alert_threshold_percent is None:
            threshold = get_settings().ledger.default_alert_threshold
        else:
            threshold = require_in_range(
                alert_threshold_percent, "alert_threshold_percent", Decimal("0"), HUNDRED
            )
        return cls(
            user_id=user_id,
            name=name,
            description=description,
            limit=limit,
            category=category,
            start_date=start_date,
            end_date=end_date,
            period=period,
            alert_threshold_percent=threshold,
        )

    # -------------------------------------------------------------------------
    # Overlap
    # -------------------------------------------------------------------------

    @property
    def category_key(self) -> str:
        return normalize_key(self.category)

    def covers(self, day: date) -> bool:
        return self.start_date <= day < self.end_date

    def overlaps(self, other: "Budget") -> bool:
        return self.overlaps_range(other.start_date, other.end_date)

    def overlaps_range(self, start: date, end: date) -> bool:
        return self.start_date < end and start < self.end_date

    def conflicts_with(self, other: "Budget") -> bool:
        """Same owner and category, both active, different budgets, overlapping."""
        return (
            other.id != self.id
            and other.user_id == self.user_id
            and other.category_key == self.category_key
            and self.is_active
            and other.is_active
            and self.overlaps(other)
        )

    def ensure_no_overlap(self, existing: Iterable["Budget"]) -> None:
        for other in existing:
            if self.conflicts_with(other):
                raise OverlappingBudgetError(
                    f"A budget for '{self.category}' already covers "
                    f"{other.start_date.isoformat()} to {other.end_date.isoformat()}",
                    budget_id=str(other.id),
                    category=self.category,
                )

    # -------------------------------------------------------------------------
    # Utilization
    # -------------------------------------------------------------------------

    def includes(self, expense: Expense) -> bool:
        return (
            expense.user_id == self.user_id
            and expense.category.matches(self.category)
            and self.covers(expense.expense_date)
        )

    def compute_utilization(self, expenses: Iterable[Expense]) -> BudgetUtilization:
        """
        Compare the limit with the matching expenses.

        Raises CurrencyMismatchError if a matching expense is in a different
        currency from the limit; mixed currencies are never summed.
        """
        matching = [e for e in expenses if self.includes(e)]
        spent = Money.total((e.amount for e in matching), self.limit.currency)

        if self.limit.is_zero:
            percentage = Decimal("0")
        else:
            percentage = (spent.amount / self.limit.amount * HUNDRED).quantize(Decimal("0.01"))

        return BudgetUtilization(
            budget_id=self.id,
            limit=self.limit,
            spent=spent,
            remaining=self.limit.subtract(spent),
            percentage_used=percentage,
            is_over_budget=spent > self.limit,
            alert_triggered=self.alerts_enabled and percentage >= self.alert_threshold_percent,
            expense_ids=tuple(e.id for e in matching),
        )

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def update_details(self, name: str, limit: Money, description: Optional[str] = None) -> None:
        if limit is None:
            raise InvalidArgumentError("Limit is required", field="limit")
        name = require_text(name, "name", max_length=100)
        description = optional_text(description, "description", max_length=500)
        self.name = name
        self.limit = limit
        self.description = description
        self._touch()

    def update_date_range(self, start_date: date, end_date: date) -> None:
        require_date_order(start_date, end_date)
        self.start_date = start_date
        self.end_date = end_date
        self._touch()

    def change_category(self, category: str) -> None:
        self.category = require_text(category, "category", max_length=100)
        self._touch()

    def set_alert_threshold(self, percent: Decimal) -> None:
        self.alert_threshold_percent = require_in_range(
            percent, "alert_threshold_percent", Decimal("0"), HUNDRED
        )
        self.alerts_enabled = True
        self._touch()

    def disable_alerts(self) -> None:
        self.alerts_enabled = False
        self._touch()

    def set_recurrence(self, period: BudgetPeriod) -> None:
        """Record the recurrence pattern. Creating the next window is the scheduler's job."""
        if not isinstance(period, BudgetPeriod):
            raise InvalidArgumentError("Unknown recurrence period", field="period")
        self.period = period
        self._touch()

    def remove_recurrence(self) -> None:
        self.period = None
        self._touch()

    @property
    def is_recurring(self) -> bool:
        return self.period is not None

    def activate(self) -> None:
        self.is_active = True
        self._touch()

    def deactivate(self) -> None:
        self.is_active = False
        self._touch()
