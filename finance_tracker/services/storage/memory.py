"""
In-Memory Storage Implementation

DESIGN DECISION: The in-memory backend is a real implementation of the
UnitOfWork contract, not a mock. It is used by the tests and by anything
that embeds the domain core without a database.

How it works:
- InMemoryDatabase holds the committed state, shared by all units of work.
- Each unit of work stages writes in its own overlay. Reads see the overlay
  first, then committed state.
- Commit applies the whole overlay in one step after checking constraints
  (unique ids on insert, unique invoice numbers). A failed check applies
  nothing.
- Everything handed in or out is deep-copied, so no caller ever holds the
  stored instance.

TRADEOFFS:
- No optimistic version check; the last commit to an entity wins.
- Queries scan every row (fine for tests and small embedded use).
"""

import copy
from datetime import date
from typing import TYPE_CHECKING, Callable, Generic, Iterable, Optional, TypeVar
from uuid import UUID

import structlog

from finance_tracker.models.budget import Budget
from finance_tracker.models.category import CategoryTaxonomy
from finance_tracker.models.events import DomainEvent
from finance_tracker.models.expense import Expense, ExpenseStatus
from finance_tracker.models.invoice import Invoice, InvoiceStatus
from finance_tracker.models.user import User
from finance_tracker.services.storage.interface import (
    BudgetRepository,
    CategoryRepository,
    DuplicateError,
    ExpenseRepository,
    InvoiceRepository,
    StorageError,
    TransactionError,
    UnitOfWork,
    UserRepository,
)
from finance_tracker.validation.guards import normalize_key

if TYPE_CHECKING:
    from finance_tracker.audit.logger import AuditLogger

T = TypeVar("T")

EXPENSES = "expenses"
BUDGETS = "budgets"
INVOICES = "invoices"
USERS = "users"
TAXONOMIES = "taxonomies"
TABLES = (EXPENSES, BUDGETS, INVOICES, USERS, TAXONOMIES)

# Marker for a staged delete
_DELETED = object()


class InMemoryDatabase:
    """
    Committed state shared between units of work.

    Usage:
        db = InMemoryDatabase(audit_logger=AuditLogger())
        async with db.unit_of_work() as uow:
            await uow.users.add(user)
    """

    def __init__(self, audit_logger: Optional["AuditLogger"] = None):
        self.tables: dict[str, dict[UUID, object]] = {name: {} for name in TABLES}
        self.audit_logger = audit_logger

    def unit_of_work(self) -> "InMemoryUnitOfWork":
        return InMemoryUnitOfWork(self)

    def count(self, table: str) -> int:
        return len(self.tables[table])

    def apply(self, staged: dict[str, dict[UUID, object]], inserted: set[tuple[str, UUID]]) -> None:
        """Validate and apply a staged overlay all at once."""
        for table, key in inserted:
            if key in self.tables[table]:
                raise DuplicateError(f"{table} row {key} already exists")
        self._check_invoice_numbers(staged.get(INVOICES, {}))

        for table, rows in staged.items():
            for key, value in rows.items():
                if value is _DELETED:
                    self.tables[table].pop(key, None)
                else:
                    self.tables[table][key] = value

    def _check_invoice_numbers(self, staged_invoices: dict[UUID, object]) -> None:
        owners: dict[str, UUID] = {
            invoice.invoice_number: key
            for key, invoice in self.tables[INVOICES].items()
            if key not in staged_invoices
        }
        for key, invoice in staged_invoices.items():
            if invoice is _DELETED:
                continue
            owner = owners.get(invoice.invoice_number)
            if owner is not None and owner != key:
                raise DuplicateError(f"Invoice number {invoice.invoice_number} already exists")
            owners[invoice.invoice_number] = key


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of work over an InMemoryDatabase."""

    def __init__(self, database: InMemoryDatabase):
        self._db = database
        self._staged: dict[str, dict[UUID, object]] = {name: {} for name in TABLES}
        self._inserted: set[tuple[str, UUID]] = set()
        self._events: list[DomainEvent] = []
        self._active = False
        self._logger = structlog.get_logger("finance_tracker.storage")

        self.expenses = InMemoryExpenseRepository(self)
        self.budgets = InMemoryBudgetRepository(self)
        self.invoices = InMemoryInvoiceRepository(self)
        self.categories = InMemoryCategoryRepository(self)
        self.users = InMemoryUserRepository(self)

    # -------------------------------------------------------------------------
    # Staging (used by the repositories)
    # -------------------------------------------------------------------------

    def _read(self, table: str, key: UUID) -> Optional[object]:
        staged = self._staged[table]
        if key in staged:
            value = staged[key]
            return None if value is _DELETED else value
        return self._db.tables[table].get(key)

    def _rows(self, table: str) -> Iterable[object]:
        staged = self._staged[table]
        for key, value in self._db.tables[table].items():
            if key not in staged:
                yield value
        for value in staged.values():
            if value is not _DELETED:
                yield value

    def _stage(self, table: str, key: UUID, value: object, insert: bool = False) -> None:
        self._staged[table][key] = value
        if insert:
            self._inserted.add((table, key))

    def _stage_delete(self, table: str, key: UUID) -> None:
        self._staged[table][key] = _DELETED
        self._inserted.discard((table, key))

    def _collect_events(self, entity: object) -> None:
        pull = getattr(entity, "pull_domain_events", None)
        if pull is not None:
            self._events.extend(pull())

    def _pending_count(self) -> int:
        return sum(len(rows) for rows in self._staged.values())

    # -------------------------------------------------------------------------
    # UnitOfWork
    # -------------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._active

    def record_event(self, event: DomainEvent) -> None:
        self._events.append(event)

    async def begin(self) -> None:
        if self._active:
            raise TransactionError("A transaction is already active")
        self._active = True

    async def save_changes(self) -> int:
        pending = self._pending_count()
        if self._active:
            # Visible only at commit.
            return pending
        await self._apply_and_dispatch()
        return pending

    async def commit(self) -> None:
        if not self._active:
            raise TransactionError("No active transaction to commit")
        changes = self._pending_count()
        try:
            await self._apply_and_dispatch()
        except StorageError:
            self._discard()
            self._active = False
            raise
        self._active = False
        self._logger.debug("transaction_committed", changes=changes)

    async def rollback(self) -> None:
        if not self._active:
            raise TransactionError("No active transaction to roll back")
        discarded = self._pending_count()
        self._discard()
        self._active = False
        self._logger.debug("transaction_rolled_back", discarded=discarded)

    async def _apply_and_dispatch(self) -> None:
        staged = {table: rows for table, rows in self._staged.items() if rows}
        self._db.apply(staged, self._inserted)
        events = self._events
        self._discard()
        if events and self._db.audit_logger is not None:
            await self._db.audit_logger.publish(events)

    def _discard(self) -> None:
        self._staged = {name: {} for name in TABLES}
        self._inserted = set()
        self._events = []


# =============================================================================
# REPOSITORIES
# =============================================================================

class _InMemoryRepository(Generic[T]):
    """Shared id-keyed operations."""

    table: str = ""
    label: str = "entity"

    def __init__(self, uow: InMemoryUnitOfWork):
        self._uow = uow

    def _all(self) -> list[T]:
        return [copy.deepcopy(row) for row in self._uow._rows(self.table)]

    def _where(self, predicate: Callable[[T], bool]) -> list[T]:
        return [copy.deepcopy(row) for row in self._uow._rows(self.table) if predicate(row)]

    async def find_by_id(self, entity_id: UUID) -> Optional[T]:
        row = self._uow._read(self.table, entity_id)
        return copy.deepcopy(row) if row is not None else None

    async def exists(self, entity_id: UUID) -> bool:
        return self._uow._read(self.table, entity_id) is not None

    async def add(self, entity: T) -> T:
        if await self.exists(entity.id):
            raise DuplicateError(f"{self.label} {entity.id} already exists")
        self._uow._collect_events(entity)
        self._uow._stage(self.table, entity.id, copy.deepcopy(entity), insert=True)
        return entity

    async def update(self, entity: T) -> T:
        if not await self.exists(entity.id):
            raise StorageError(f"{self.label} {entity.id} does not exist")
        self._uow._collect_events(entity)
        self._uow._stage(self.table, entity.id, copy.deepcopy(entity))
        return entity

    async def delete(self, entity_id: UUID) -> bool:
        if not await self.exists(entity_id):
            return False
        self._uow._stage_delete(self.table, entity_id)
        return True


class _OwnedInMemoryRepository(_InMemoryRepository[T]):

    async def find_by_user(self, user_id: UUID) -> list[T]:
        return self._where(lambda row: row.user_id == user_id)


class InMemoryExpenseRepository(_OwnedInMemoryRepository[Expense], ExpenseRepository):
    table = EXPENSES
    label = "Expense"

    async def find_by_user_and_category(self, user_id: UUID, category: str) -> list[Expense]:
        return self._where(
            lambda e: e.user_id == user_id and e.category.matches(category)
        )

    async def find_by_date_range(self, user_id: UUID, start_date: date, end_date: date) -> list[Expense]:
        return sorted(
            self._where(
                lambda e: e.user_id == user_id and start_date <= e.expense_date < end_date
            ),
            key=lambda e: e.expense_date,
        )

    async def find_by_status(self, user_id: UUID, status: ExpenseStatus) -> list[Expense]:
        return self._where(lambda e: e.user_id == user_id and e.status == status)

    async def is_category_referenced(self, user_id: UUID, category: str) -> bool:
        return any(
            e.user_id == user_id and e.category.matches(category)
            for e in self._uow._rows(self.table)
        )


class InMemoryBudgetRepository(_OwnedInMemoryRepository[Budget], BudgetRepository):
    table = BUDGETS
    label = "Budget"

    async def find_by_user_and_category(self, user_id: UUID, category: str) -> list[Budget]:
        key = normalize_key(category)
        return self._where(lambda b: b.user_id == user_id and b.category_key == key)

    async def find_overlapping(
        self,
        user_id: UUID,
        category: str,
        start_date: date,
        end_date: date,
        exclude_id: Optional[UUID] = None,
    ) -> list[Budget]:
        key = normalize_key(category)
        return self._where(
            lambda b: b.user_id == user_id
            and b.category_key == key
            and b.is_active
            and b.id != exclude_id
            and b.overlaps_range(start_date, end_date)
        )

    async def find_active_by_user(self, user_id: UUID) -> list[Budget]:
        return self._where(lambda b: b.user_id == user_id and b.is_active)


class InMemoryInvoiceRepository(_OwnedInMemoryRepository[Invoice], InvoiceRepository):
    table = INVOICES
    label = "Invoice"

    async def find_by_number(self, invoice_number: str) -> Optional[Invoice]:
        matches = self._where(lambda i: i.invoice_number == invoice_number)
        return matches[0] if matches else None

    async def invoice_number_exists(self, invoice_number: str) -> bool:
        return any(i.invoice_number == invoice_number for i in self._uow._rows(self.table))

    async def last_invoice_number(self, prefix: str) -> Optional[str]:
        numbered = [
            (int(i.invoice_number[len(prefix):]), i.invoice_number)
            for i in self._uow._rows(self.table)
            if i.invoice_number.startswith(prefix) and i.invoice_number[len(prefix):].isdigit()
        ]
        return max(numbered)[1] if numbered else None

    async def find_by_status(self, user_id: UUID, status: InvoiceStatus) -> list[Invoice]:
        return self._where(lambda i: i.user_id == user_id and i.status == status)


class InMemoryUserRepository(_InMemoryRepository[User], UserRepository):
    table = USERS
    label = "User"

    async def find_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        matches = self._where(lambda u: u.email == email)
        return matches[0] if matches else None


class InMemoryCategoryRepository(CategoryRepository):
    """Taxonomies are immutable, so they are stored without copying."""

    def __init__(self, uow: InMemoryUnitOfWork):
        self._uow = uow

    async def get_taxonomy(self, user_id: UUID) -> CategoryTaxonomy:
        taxonomy = self._uow._read(TAXONOMIES, user_id)
        return taxonomy if taxonomy is not None else CategoryTaxonomy.default()

    async def save_taxonomy(self, user_id: UUID, taxonomy: CategoryTaxonomy) -> None:
        self._uow._stage(TAXONOMIES, user_id, taxonomy)

    async def name_exists(self, user_id: UUID, name: str) -> bool:
        taxonomy = await self.get_taxonomy(user_id)
        return taxonomy.contains(name)
