"""
Report Builder

DESIGN DECISION: Reports are DETERMINISTIC aggregations over stored data.
Nothing is estimated and nothing is converted between currencies.

- Budget performance goes through ``Budget.compute_utilization``, the same
  algorithm every other caller uses, so a report can never disagree with
  the budget screen.
- Expense totals are grouped per (category, currency). Amounts in different
  currencies are listed side by side, never summed.
"""

from collections import Counter
from datetime import date, datetime
from typing import Callable
from uuid import UUID

from pydantic import BaseModel, Field

from finance_tracker.exceptions import NotFoundError
from finance_tracker.models.budget import BudgetUtilization
from finance_tracker.models.events import utc_now
from finance_tracker.models.money import Money
from finance_tracker.services.storage import UnitOfWork
from finance_tracker.validation.guards import require_date_order


class BudgetPerformance(BaseModel):
    """One budget and how much of it is used."""

    budget_id: UUID
    name: str
    category: str
    start_date: date
    end_date: date
    utilization: BudgetUtilization


class BudgetPerformanceReport(BaseModel):
    user_id: UUID
    start_date: date
    end_date: date
    generated_at: datetime = Field(default_factory=utc_now)
    budgets: list[BudgetPerformance] = Field(default_factory=list)

    @property
    def over_budget(self) -> list[BudgetPerformance]:
        return [b for b in self.budgets if b.utilization.is_over_budget]

    @property
    def alerts(self) -> list[BudgetPerformance]:
        return [b for b in self.budgets if b.utilization.alert_triggered]


class CategoryTotal(BaseModel):
    category: str
    total: Money
    expense_count: int = Field(ge=0)


class ExpenseSummary(BaseModel):
    """Totals of a user's expenses in [start_date, end_date)."""

    user_id: UUID
    start_date: date
    end_date: date
    generated_at: datetime = Field(default_factory=utc_now)
    expense_count: int = Field(default=0, ge=0)
    totals: list[Money] = Field(
        default_factory=list,
        description="One grand total per currency"
    )
    by_category: list[CategoryTotal] = Field(default_factory=list)
    status_counts: dict[str, int] = Field(default_factory=dict)

    @property
    def data_found(self) -> bool:
        return self.expense_count > 0

    def total_for(self, currency: str) -> Money:
        for total in self.totals:
            if total.currency == currency.strip().upper():
                return total
        return Money.zero(currency)


class ReportBuilder:
    """
    Builds read-only reports from a unit of work.

    GUARANTEES:
    - Only real stored data is reported
    - Empty periods give empty reports, not errors
    """

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self._uow_factory = uow_factory

    async def budget_performance(self, user_id: UUID, start_date: date, end_date: date) -> BudgetPerformanceReport:
        """
        Utilization of every active budget overlapping [start_date, end_date).

        Each budget is measured over its own window.
        """
        require_date_order(start_date, end_date)

        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            budgets = await uow.budgets.find_active_by_user(user_id)
            expenses = await uow.expenses.find_by_user(user_id)

        rows = [
            BudgetPerformance(
                budget_id=budget.id,
                name=budget.name,
                category=budget.category,
                start_date=budget.start_date,
                end_date=budget.end_date,
                utilization=budget.compute_utilization(expenses),
            )
            for budget in sorted(budgets, key=lambda b: (b.start_date, b.category_key))
            if budget.overlaps_range(start_date, end_date)
        ]
        return BudgetPerformanceReport(
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            budgets=rows,
        )

    async def expense_summary(self, user_id: UUID, start_date: date, end_date: date) -> ExpenseSummary:
        """Totals by category and counts by status."""
        require_date_order(start_date, end_date)

        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            expenses = await uow.expenses.find_by_date_range(user_id, start_date, end_date)

        groups: dict[tuple[str, str], list[Money]] = {}
        for expense in expenses:
            key = (expense.category.name, expense.amount.currency)
            groups.setdefault(key, []).append(expense.amount)

        by_category = [
            CategoryTotal(
                category=category,
                total=Money.total(amounts, currency),
                expense_count=len(amounts),
            )
            for (category, currency), amounts in sorted(groups.items())
        ]

        currencies = sorted({e.amount.currency for e in expenses})
        totals = [
            Money.total((e.amount for e in expenses if e.amount.currency == currency), currency)
            for currency in currencies
        ]

        return ExpenseSummary(
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            expense_count=len(expenses),
            totals=totals,
            by_category=by_category,
            status_counts=dict(Counter(e.status.value for e in expenses)),
        )

    @staticmethod
    async def _require_user(uow: UnitOfWork, user_id: UUID) -> None:
        if not await uow.users.exists(user_id):
            raise NotFoundError(f"User {user_id} not found", user_id=str(user_id))
