"""
Storage Services Package

Provides the repository and unit-of-work interfaces and an in-memory
implementation. Designed so a database backend can be swapped in.
"""

from finance_tracker.services.storage.interface import (
    BudgetRepository,
    CategoryRepository,
    DuplicateError,
    ExpenseRepository,
    InvoiceRepository,
    Repository,
    StorageError,
    TransactionError,
    UnitOfWork,
    UserRepository,
)
from finance_tracker.services.storage.memory import (
    InMemoryDatabase,
    InMemoryUnitOfWork,
)

__all__ = [
    # Interfaces
    "BudgetRepository",
    "CategoryRepository",
    "ExpenseRepository",
    "InvoiceRepository",
    "Repository",
    "UnitOfWork",
    "UserRepository",
    # Exceptions
    "DuplicateError",
    "StorageError",
    "TransactionError",
    # In-memory implementation
    "InMemoryDatabase",
    "InMemoryUnitOfWork",
]
