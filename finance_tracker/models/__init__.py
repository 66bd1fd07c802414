"""
Data Models Package

This package contains the domain models of the Finance Tracker.
Every entity and value object validates itself on construction.
"""

from finance_tracker.models.money import Money, SignedAmount
from finance_tracker.models.category import (
    SYSTEM_CATEGORIES,
    UNCATEGORIZED,
    Category,
    CategoryTaxonomy,
)
from finance_tracker.models.events import (
    DomainEvent,
    DomainEventBuilder,
    DomainEventType,
)
from finance_tracker.models.expense import Expense, ExpenseStatus
from finance_tracker.models.budget import Budget, BudgetPeriod, BudgetUtilization
from finance_tracker.models.invoice import Invoice, InvoiceLineItem, InvoiceStatus
from finance_tracker.models.user import User

__all__ = [
    # Value objects
    "Money",
    "SignedAmount",
    # Categories
    "SYSTEM_CATEGORIES",
    "UNCATEGORIZED",
    "Category",
    "CategoryTaxonomy",
    # Events
    "DomainEvent",
    "DomainEventBuilder",
    "DomainEventType",
    # Entities
    "Budget",
    "BudgetPeriod",
    "BudgetUtilization",
    "Expense",
    "ExpenseStatus",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceStatus",
    "User",
]
