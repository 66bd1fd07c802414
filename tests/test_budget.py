"""Tests for budget windows: overlap and utilization."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from finance_tracker.exceptions import (
    CurrencyMismatchError,
    InvalidDateRangeError,
    OutOfRangeError,
    OverlappingBudgetError,
)
from finance_tracker.models.budget import Budget, BudgetPeriod
from finance_tracker.models.expense import Expense
from finance_tracker.models.money import Money


def make_budget(user_id, start, end, category="Travel", limit=None, **kwargs) -> Budget:
    return Budget.create(
        user_id=user_id,
        name=f"{category} budget",
        limit=limit or Money(1000, "USD"),
        category=category,
        start_date=start,
        end_date=end,
        **kwargs,
    )


def make_expense(user_id, taxonomy, amount, day, category="Travel") -> Expense:
    return Expense.create(
        user_id=user_id,
        description="Spend",
        amount=amount,
        category=taxonomy.find_by_name(category),
        expense_date=day,
    )


class TestBudgetCreation:

    def test_defaults(self, user_id, jan):
        budget = make_budget(user_id, *jan)
        assert budget.is_active
        assert budget.alerts_enabled
        assert budget.alert_threshold_percent == Decimal("80")
        assert not budget.is_recurring

    def test_start_must_precede_end(self, user_id):
        with pytest.raises(InvalidDateRangeError):
            make_budget(user_id, date(2024, 2, 1), date(2024, 2, 1))

    def test_threshold_out_of_range(self, user_id, jan):
        with pytest.raises(OutOfRangeError):
            make_budget(user_id, *jan, alert_threshold_percent=Decimal("101"))

    def test_default_threshold_from_settings(self, user_id, jan, monkeypatch):
        monkeypatch.setenv("FINANCE_DEFAULT_ALERT_THRESHOLD", "65")
        budget = make_budget(user_id, *jan)
        assert budget.alert_threshold_percent == Decimal("65")


class TestBudgetOverlap:

    def test_overlapping_ranges_conflict(self, user_id):
        a = make_budget(user_id, date(2024, 1, 1), date(2024, 1, 31))
        b = make_budget(user_id, date(2024, 1, 15), date(2024, 2, 15))
        assert a.overlaps(b)
        with pytest.raises(OverlappingBudgetError):
            b.ensure_no_overlap([a])

    def test_touching_ranges_do_not_overlap(self, user_id):
        """Test ranges are half-open: [Jan 1, Feb 1) and [Feb 1, Mar 1)."""
        a = make_budget(user_id, date(2024, 1, 1), date(2024, 2, 1))
        b = make_budget(user_id, date(2024, 2, 1), date(2024, 3, 1))
        assert not a.overlaps(b)
        b.ensure_no_overlap([a])

    def test_category_match_is_case_insensitive(self, user_id, jan):
        a = make_budget(user_id, *jan, category="Travel")
        b = make_budget(user_id, *jan, category=" travel ")
        assert b.conflicts_with(a)

    def test_other_category_does_not_conflict(self, user_id, jan):
        a = make_budget(user_id, *jan, category="Travel")
        b = make_budget(user_id, *jan, category="Meals")
        b.ensure_no_overlap([a])

    def test_other_user_does_not_conflict(self, user_id, jan):
        a = make_budget(user_id, *jan)
        b = make_budget(uuid4(), *jan)
        b.ensure_no_overlap([a])

    def test_inactive_budget_does_not_conflict(self, user_id, jan):
        a = make_budget(user_id, *jan)
        a.deactivate()
        b = make_budget(user_id, *jan)
        b.ensure_no_overlap([a])

    def test_budget_does_not_conflict_with_itself(self, user_id, jan):
        a = make_budget(user_id, *jan)
        a.ensure_no_overlap([a])


class TestBudgetUtilization:

    def test_spent_remaining_and_percentage(self, user_id, taxonomy, jan, usd):
        budget = make_budget(user_id, *jan, limit=usd(500))
        expenses = [
            make_expense(user_id, taxonomy, usd("100.00"), date(2024, 1, 5)),
            make_expense(user_id, taxonomy, usd("150.50"), date(2024, 1, 20)),
        ]
        result = budget.compute_utilization(expenses)
        assert result.spent == usd("250.50")
        assert result.remaining.amount == Decimal("249.50")
        assert result.percentage_used == Decimal("50.10")
        assert not result.is_over_budget
        assert not result.alert_triggered
        assert result.expense_count == 2

    def test_only_matching_expenses_count(self, user_id, taxonomy, jan, usd):
        budget = make_budget(user_id, *jan, limit=usd(100))
        expenses = [
            make_expense(user_id, taxonomy, usd(10), date(2024, 1, 1)),                  # start: in
            make_expense(user_id, taxonomy, usd(20), date(2024, 2, 1)),                  # end: out
            make_expense(user_id, taxonomy, usd(30), date(2024, 1, 10), category="Meals"),
            make_expense(uuid4(), taxonomy, usd(40), date(2024, 1, 10)),
            make_expense(user_id, taxonomy, usd(5), date(2024, 1, 31), category="TRAVEL"),
        ]
        result = budget.compute_utilization(expenses)
        assert result.spent == usd(15)
        assert result.expense_count == 2

    def test_over_budget_has_negative_remaining(self, user_id, taxonomy, jan, usd):
        budget = make_budget(user_id, *jan, limit=usd(100))
        result = budget.compute_utilization(
            [make_expense(user_id, taxonomy, usd(130), date(2024, 1, 2))]
        )
        assert result.is_over_budget
        assert result.remaining.is_negative
        assert result.remaining.amount == Decimal("-30.00")
        assert result.percentage_used == Decimal("130.00")
        assert result.alert_triggered

    def test_alert_at_threshold(self, user_id, taxonomy, jan, usd):
        budget = make_budget(user_id, *jan, limit=usd(100))
        result = budget.compute_utilization(
            [make_expense(user_id, taxonomy, usd(80), date(2024, 1, 2))]
        )
        assert result.alert_triggered

    def test_disabled_alerts_never_trigger(self, user_id, taxonomy, jan, usd):
        budget = make_budget(user_id, *jan, limit=usd(100))
        budget.disable_alerts()
        result = budget.compute_utilization(
            [make_expense(user_id, taxonomy, usd(200), date(2024, 1, 2))]
        )
        assert result.is_over_budget
        assert not result.alert_triggered

    def test_zero_limit_reports_zero_percent(self, user_id, taxonomy, jan, usd):
        budget = make_budget(user_id, *jan, limit=usd(0))
        result = budget.compute_utilization(
            [make_expense(user_id, taxonomy, usd(10), date(2024, 1, 2))]
        )
        assert result.percentage_used == Decimal("0")
        assert result.is_over_budget

    def test_no_expenses(self, user_id, jan, usd):
        result = make_budget(user_id, *jan, limit=usd(100)).compute_utilization([])
        assert result.spent == usd(0)
        assert result.remaining.amount == Decimal("100.00")

    def test_currency_mismatch_rejected(self, user_id, taxonomy, jan, usd):
        budget = make_budget(user_id, *jan, limit=usd(100))
        with pytest.raises(CurrencyMismatchError):
            budget.compute_utilization(
                [make_expense(user_id, taxonomy, Money(10, "EUR"), date(2024, 1, 2))]
            )


class TestBudgetEditing:

    def test_set_alert_threshold_reenables_alerts(self, user_id, jan):
        budget = make_budget(user_id, *jan)
        budget.disable_alerts()
        budget.set_alert_threshold(Decimal("90"))
        assert budget.alerts_enabled
        assert budget.alert_threshold_percent == Decimal("90")

    def test_set_alert_threshold_out_of_range(self, user_id, jan):
        budget = make_budget(user_id, *jan)
        with pytest.raises(OutOfRangeError):
            budget.set_alert_threshold(Decimal("-1"))
        assert budget.alert_threshold_percent == Decimal("80")

    def test_recurrence(self, user_id, jan):
        budget = make_budget(user_id, *jan)
        budget.set_recurrence(BudgetPeriod.MONTHLY)
        assert budget.is_recurring
        budget.remove_recurrence()
        assert budget.period is None

    def test_period_parse_defaults_to_monthly(self):
        assert BudgetPeriod.parse("Quarterly") == BudgetPeriod.QUARTERLY
        assert BudgetPeriod.parse("fortnightly") == BudgetPeriod.MONTHLY
        assert BudgetPeriod.parse(None) == BudgetPeriod.MONTHLY

    def test_update_date_range_validates(self, user_id, jan):
        budget = make_budget(user_id, *jan)
        with pytest.raises(InvalidDateRangeError):
            budget.update_date_range(date(2024, 3, 1), date(2024, 2, 1))
        assert (budget.start_date, budget.end_date) == jan
