"""
Abstract Storage Interface

DESIGN DECISION: Business logic talks to repositories grouped behind a
UnitOfWork. This allows us to:
1. Swap the in-memory backend for a real database later
2. Use the in-memory backend for testing
3. Make multi-entity changes all-or-nothing

The contract of the UnitOfWork:
- Everything staged between ``begin`` and ``commit`` becomes visible together,
  or (on ``rollback`` or an exception inside ``async with``) none of it does.
- ``save_changes`` flushes staged work. Outside a transaction that is an
  immediate commit; inside one it only becomes visible at ``commit``.
- Domain events of staged entities are dispatched only after the changes
  are visible.
- Concurrent writers to the same entity: last writer wins.

Repositories return detached copies. Mutating a returned entity does
nothing until it is passed back through ``update``.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Generic, Optional, TypeVar
from uuid import UUID

from finance_tracker.models.budget import Budget
from finance_tracker.models.category import CategoryTaxonomy
from finance_tracker.models.events import DomainEvent
from finance_tracker.models.expense import Expense, ExpenseStatus
from finance_tracker.models.invoice import Invoice, InvoiceStatus
from finance_tracker.models.user import User

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Operations every entity repository supports."""

    @abstractmethod
    async def find_by_id(self, entity_id: UUID) -> Optional[T]:
        """
        Retrieve an entity by its ID.

        Returns:
            A detached copy if found, None otherwise
        """
        pass

    @abstractmethod
    async def add(self, entity: T) -> T:
        """
        Stage a new entity.

        Raises:
            DuplicateError: If an entity with the same ID exists
        """
        pass

    @abstractmethod
    async def update(self, entity: T) -> T:
        """
        Stage changes to an existing entity.

        Raises:
            StorageError: If the entity does not exist
        """
        pass

    @abstractmethod
    async def delete(self, entity_id: UUID) -> bool:
        """
        Stage removal of an entity.

        Returns:
            True if the entity existed
        """
        pass

    @abstractmethod
    async def exists(self, entity_id: UUID) -> bool:
        pass


class OwnedRepository(Repository[T]):
    """Repository of entities that belong to a user."""

    @abstractmethod
    async def find_by_user(self, user_id: UUID) -> list[T]:
        pass


class ExpenseRepository(OwnedRepository[Expense]):

    @abstractmethod
    async def find_by_user_and_category(self, user_id: UUID, category: str) -> list[Expense]:
        """Expenses of a user whose category name matches case-insensitively."""
        pass

    @abstractmethod
    async def find_by_date_range(
        self,
        user_id: UUID,
        start_date: date,
        end_date: date,
    ) -> list[Expense]:
        """Expenses with ``start_date <= expense_date < end_date``."""
        pass

    @abstractmethod
    async def find_by_status(self, user_id: UUID, status: ExpenseStatus) -> list[Expense]:
        pass

    @abstractmethod
    async def is_category_referenced(self, user_id: UUID, category: str) -> bool:
        pass


class BudgetRepository(OwnedRepository[Budget]):

    @abstractmethod
    async def find_by_user_and_category(self, user_id: UUID, category: str) -> list[Budget]:
        pass

    @abstractmethod
    async def find_overlapping(
        self,
        user_id: UUID,
        category: str,
        start_date: date,
        end_date: date,
        exclude_id: Optional[UUID] = None,
    ) -> list[Budget]:
        """
        Active budgets of the user and category overlapping [start_date, end_date).

        Args:
            exclude_id: Budget to leave out (the one being edited)
        """
        pass

    @abstractmethod
    async def find_active_by_user(self, user_id: UUID) -> list[Budget]:
        pass


class InvoiceRepository(OwnedRepository[Invoice]):

    @abstractmethod
    async def find_by_number(self, invoice_number: str) -> Optional[Invoice]:
        pass

    @abstractmethod
    async def invoice_number_exists(self, invoice_number: str) -> bool:
        """Global uniqueness check, across all users."""
        pass

    @abstractmethod
    async def last_invoice_number(self, prefix: str) -> Optional[str]:
        """
        Invoice number starting with ``prefix`` whose remainder is the
        largest integer (INV-2024-10000 ranks above INV-2024-9999).

        Numbers whose remainder is not all digits are ignored.
        """
        pass

    @abstractmethod
    async def find_by_status(self, user_id: UUID, status: InvoiceStatus) -> list[Invoice]:
        pass


class CategoryRepository(ABC):
    """
    Stores one CategoryTaxonomy per user.

    Users who never customised anything get the default taxonomy.
    """

    @abstractmethod
    async def get_taxonomy(self, user_id: UUID) -> CategoryTaxonomy:
        pass

    @abstractmethod
    async def save_taxonomy(self, user_id: UUID, taxonomy: CategoryTaxonomy) -> None:
        pass

    @abstractmethod
    async def name_exists(self, user_id: UUID, name: str) -> bool:
        """Case-insensitive check across system and user categories."""
        pass


class UserRepository(Repository[User]):

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        pass


class UnitOfWork(ABC):
    """
    Transaction boundary over all repositories.

    Usage:
        async with uow:
            expense = await uow.expenses.find_by_id(expense_id)
            expense.submit()
            await uow.expenses.update(expense)
        # committed here, or rolled back if the block raised
    """

    expenses: ExpenseRepository
    budgets: BudgetRepository
    invoices: InvoiceRepository
    categories: CategoryRepository
    users: UserRepository

    @abstractmethod
    async def begin(self) -> None:
        """
        Start a transaction.

        Raises:
            TransactionError: If a transaction is already active
        """
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Make all staged changes visible and dispatch their events."""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Discard all staged changes and their events."""
        pass

    @abstractmethod
    async def save_changes(self) -> int:
        """
        Flush staged changes.

        Returns:
            Number of staged entity changes flushed
        """
        pass

    @abstractmethod
    def record_event(self, event: DomainEvent) -> None:
        """Queue an event that is not attached to a staged entity."""
        pass

    @property
    @abstractmethod
    def in_transaction(self) -> bool:
        pass

    async def __aenter__(self) -> "UnitOfWork":
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self.in_transaction:
            return
        if exc_type is not None:
            await self.rollback()
        else:
            await self.commit()


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class TransactionError(StorageError):
    """Transaction used out of order (e.g. commit without begin)."""
    pass
