"""Reporting package."""

from finance_tracker.queries.reports import (
    BudgetPerformance,
    BudgetPerformanceReport,
    CategoryTotal,
    ExpenseSummary,
    ReportBuilder,
)

__all__ = [
    "BudgetPerformance",
    "BudgetPerformanceReport",
    "CategoryTotal",
    "ExpenseSummary",
    "ReportBuilder",
]
