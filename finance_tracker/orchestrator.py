"""
Main Orchestrator for the Finance Tracker

This module ties together the domain models, the unit of work and the
external collaborators, and defines the end-to-end flows for:
1. Expenses (create → optional AI categorization → review → reimburse)
2. Budgets (create/update with overlap check → utilization)
3. Invoices (create with unique number → line items → send → paid)
4. Categories (register → deactivate → delete)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every operation runs inside one unit of work (all-or-nothing)
- Every operation checks that the user exists and owns the entity
- AI collaborators are best-effort; their failures never fail an operation
- Domain events go out only after commit

This is the "glue" that ensures the system works correctly
even when individual collaborators misbehave.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional, Union
from uuid import UUID

from finance_tracker.audit import AuditLogger
from finance_tracker.config import get_settings
from finance_tracker.exceptions import (
    ForbiddenError,
    IllegalOperationError,
    NotFoundError,
)
from finance_tracker.models.budget import Budget, BudgetPeriod, BudgetUtilization
from finance_tracker.models.category import Category, CategoryTaxonomy
from finance_tracker.models.events import DomainEventBuilder
from finance_tracker.models.expense import Expense
from finance_tracker.models.invoice import Invoice, InvoiceStatus
from finance_tracker.models.money import Money
from finance_tracker.models.user import User
from finance_tracker.services.external import (
    CategorySuggestion,
    DocumentExtraction,
    DocumentExtractor,
    ExpenseCategorizer,
    ExternalServiceError,
    FileStorage,
    Notifier,
)
from finance_tracker.services.invoice_numbers import (
    InvoiceNumberGenerator,
    reserve_invoice_number,
)
from finance_tracker.services.storage import InMemoryDatabase, UnitOfWork

UnitOfWorkFactory = Callable[[], UnitOfWork]

# (description, unit price, quantity)
LineItemInput = tuple[str, Money, int]

DELETABLE_INVOICE_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED})


class _Flow:
    """Shared lookups and access checks."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._uow_factory = uow_factory
        self._audit_logger = audit_logger

    @staticmethod
    async def _require_user(uow: UnitOfWork, user_id: UUID) -> User:
        user = await uow.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=str(user_id))
        return user

    @staticmethod
    def _require_owned(entity, user_id: UUID, kind: str, entity_id: UUID):
        if entity is None:
            raise NotFoundError(f"{kind} {entity_id} not found", entity_id=str(entity_id))
        if entity.user_id != user_id:
            raise ForbiddenError(
                f"{kind} {entity_id} belongs to another user",
                entity_id=str(entity_id),
            )
        return entity


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseFlow(_Flow):
    """
    Orchestrates the expense lifecycle.

    Flow:
    1. Create → category resolved through the user's taxonomy
    2. If it resolved to Uncategorized, ask the categorizer (best-effort)
    3. Edit / tag / attach receipt while not approved
    4. Submit → Approve or Reject
    5. Mark reimbursed (approved + reimbursable only)

    AI suggestions only replace Uncategorized, and only above the
    configured confidence threshold.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        categorizer: Optional[ExpenseCategorizer] = None,
        document_extractor: Optional[DocumentExtractor] = None,
        file_storage: Optional[FileStorage] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(uow_factory, audit_logger)
        self._categorizer = categorizer
        self._document_extractor = document_extractor
        self._file_storage = file_storage

    async def _load(self, uow: UnitOfWork, user_id: UUID, expense_id: UUID) -> Expense:
        await self._require_user(uow, user_id)
        expense = await uow.expenses.find_by_id(expense_id)
        return self._require_owned(expense, user_id, "Expense", expense_id)

    async def create_expense(
        self,
        user_id: UUID,
        description: str,
        amount: Money,
        expense_date: date,
        category_name: Optional[str] = None,
        notes: Optional[str] = None,
        merchant_name: Optional[str] = None,
        payment_method: Optional[str] = None,
        is_reimbursable: bool = False,
        tags: Iterable[str] = (),
        receipt_text: Optional[str] = None,
    ) -> Expense:
        """
        Create a Draft expense.

        Unknown, blank or inactive category names resolve to Uncategorized;
        only then is the categorizer consulted.
        """
        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            taxonomy = await uow.categories.get_taxonomy(user_id)
            category = taxonomy.find_by_name(category_name)

            expense = Expense.create(
                user_id=user_id,
                description=description,
                amount=amount,
                category=category,
                expense_date=expense_date,
                notes=notes,
                merchant_name=merchant_name,
                payment_method=payment_method,
                is_reimbursable=is_reimbursable,
                tags=tags,
            )

            if category == taxonomy.uncategorized:
                await self._suggest_category(expense, taxonomy, receipt_text)

            await uow.expenses.add(expense)
        return expense

    async def _suggest_category(
        self,
        expense: Expense,
        taxonomy: CategoryTaxonomy,
        receipt_text: Optional[str],
    ) -> None:
        """Best-effort AI categorization. Never raises."""
        if not self._categorizer:
            return

        try:
            suggestion = await self._categorizer.categorize(
                description=expense.description,
                merchant_name=expense.merchant_name,
                amount=expense.amount.amount,
                receipt_text=receipt_text,
            )
            if not isinstance(suggestion, CategorySuggestion):
                raise ExternalServiceError(
                    f"Categorizer returned {type(suggestion).__name__}, expected CategorySuggestion"
                )
        except Exception as e:
            if self._audit_logger:
                self._audit_logger.log_external_service_error(
                    service="categorizer",
                    error_message=str(e),
                    expense_id=expense.id,
                )
            return

        self._apply_suggestion(
            expense,
            taxonomy,
            suggestion.category_name,
            suggestion.confidence,
            receipt_text,
            service="categorizer",
        )

    def _apply_suggestion(
        self,
        expense: Expense,
        taxonomy: CategoryTaxonomy,
        category_name: Optional[str],
        confidence: float,
        extracted_text: Optional[str],
        service: str,
    ) -> None:
        threshold = get_settings().ai.confidence_threshold
        if confidence <= threshold:
            if self._audit_logger:
                self._audit_logger.log_suggestion_ignored(
                    service=service,
                    confidence=confidence,
                    threshold=threshold,
                    expense_id=expense.id,
                )
            return

        suggested = taxonomy.find_by_name(category_name)
        if suggested == taxonomy.uncategorized:
            return
        expense.set_ai_categorization(suggested, confidence, extracted_text)

    async def update_expense(
        self,
        user_id: UUID,
        expense_id: UUID,
        description: str,
        amount: Money,
        expense_date: date,
        category_name: Optional[str] = None,
        notes: Optional[str] = None,
        merchant_name: Optional[str] = None,
        payment_method: Optional[str] = None,
        is_reimbursable: Optional[bool] = None,
    ) -> Expense:
        async with self._uow_factory() as uow:
            expense = await self._load(uow, user_id, expense_id)
            taxonomy = await uow.categories.get_taxonomy(user_id)
            expense.update_details(
                description=description,
                amount=amount,
                category=taxonomy.find_by_name(category_name),
                expense_date=expense_date,
                notes=notes,
                merchant_name=merchant_name,
                payment_method=payment_method,
                is_reimbursable=is_reimbursable,
            )
            await uow.expenses.update(expense)
        return expense

    async def _transition(self, user_id: UUID, expense_id: UUID, change: Callable[[Expense], None]) -> Expense:
        async with self._uow_factory() as uow:
            expense = await self._load(uow, user_id, expense_id)
            change(expense)
            await uow.expenses.update(expense)
        return expense

    async def submit_expense(self, user_id: UUID, expense_id: UUID) -> Expense:
        return await self._transition(user_id, expense_id, lambda e: e.submit())

    async def approve_expense(self, user_id: UUID, expense_id: UUID) -> Expense:
        return await self._transition(user_id, expense_id, lambda e: e.approve())

    async def reject_expense(self, user_id: UUID, expense_id: UUID, reason: str) -> Expense:
        return await self._transition(user_id, expense_id, lambda e: e.reject(reason))

    async def mark_reimbursed(self, user_id: UUID, expense_id: UUID) -> Expense:
        return await self._transition(user_id, expense_id, lambda e: e.mark_reimbursed())

    async def add_tag(self, user_id: UUID, expense_id: UUID, tag: str) -> Expense:
        return await self._transition(user_id, expense_id, lambda e: e.add_tag(tag))

    async def remove_tag(self, user_id: UUID, expense_id: UUID, tag: str) -> Expense:
        return await self._transition(user_id, expense_id, lambda e: e.remove_tag(tag))

    async def upload_receipt(
        self,
        user_id: UUID,
        expense_id: UUID,
        content: bytes,
        filename: str,
        content_type: str,
    ) -> tuple[Expense, Optional[DocumentExtraction]]:
        """
        Store a receipt file and attach its URL.

        The upload itself is required; extraction afterwards is best-effort.
        If the expense is still Uncategorized and extraction suggests a
        category confidently enough, that category is applied.

        Returns:
            (expense, extraction or None)
        """
        if not self._file_storage:
            raise ExternalServiceError("File storage is not configured")

        async with self._uow_factory() as uow:
            expense = await self._load(uow, user_id, expense_id)
            if not expense.is_editable:
                raise IllegalOperationError(
                    "Cannot attach a receipt to an approved expense",
                    expense_id=str(expense_id),
                )

            try:
                url = await self._file_storage.upload(content, filename, content_type)
            except Exception as e:
                if self._audit_logger:
                    self._audit_logger.log_external_service_error(
                        service="file_storage",
                        error_message=str(e),
                        expense_id=expense_id,
                    )
                raise
            expense.attach_receipt(url)

            extraction = await self._extract(expense, content, filename)
            if extraction and extraction.suggested_category:
                taxonomy = await uow.categories.get_taxonomy(user_id)
                if expense.category == taxonomy.uncategorized:
                    self._apply_suggestion(
                        expense,
                        taxonomy,
                        extraction.suggested_category,
                        extraction.category_confidence,
                        extraction.extracted_text,
                        service="document_extractor",
                    )

            await uow.expenses.update(expense)
        return expense, extraction

    async def _extract(self, expense: Expense, content: bytes, filename: str) -> Optional[DocumentExtraction]:
        if not self._document_extractor:
            return None
        try:
            extraction = await self._document_extractor.extract(content, filename)
            if not isinstance(extraction, DocumentExtraction):
                raise ExternalServiceError(
                    f"Extractor returned {type(extraction).__name__}, expected DocumentExtraction"
                )
            return extraction
        except Exception as e:
            if self._audit_logger:
                self._audit_logger.log_external_service_error(
                    service="document_extractor",
                    error_message=str(e),
                    expense_id=expense.id,
                )
            return None

    async def delete_expense(self, user_id: UUID, expense_id: UUID) -> None:
        """Delete a non-approved expense and record the "expense deleted" event."""
        async with self._uow_factory() as uow:
            expense = await self._load(uow, user_id, expense_id)
            if not expense.is_editable:
                raise IllegalOperationError(
                    "Cannot delete an approved expense",
                    expense_id=str(expense_id),
                )
            await uow.expenses.delete(expense_id)
            uow.record_event(DomainEventBuilder.expense_deleted(expense_id, user_id))

    async def get_expense(self, user_id: UUID, expense_id: UUID) -> Expense:
        async with self._uow_factory() as uow:
            return await self._load(uow, user_id, expense_id)

    async def list_expenses(self, user_id: UUID, category_name: Optional[str] = None) -> list[Expense]:
        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            if category_name:
                expenses = await uow.expenses.find_by_user_and_category(user_id, category_name)
            else:
                expenses = await uow.expenses.find_by_user(user_id)
        return sorted(expenses, key=lambda e: (e.expense_date, e.created_at))


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetFlow(_Flow):
    """
    Orchestrates budgets.

    CRITICAL: The overlap check always runs BEFORE anything is staged.
    Two active budgets of one user and category never overlap in storage.
    """

    async def _load(self, uow: UnitOfWork, user_id: UUID, budget_id: UUID) -> Budget:
        await self._require_user(uow, user_id)
        budget = await uow.budgets.find_by_id(budget_id)
        return self._require_owned(budget, user_id, "Budget", budget_id)

    @staticmethod
    async def _resolve_category(uow: UnitOfWork, user_id: UUID, name: str) -> Category:
        """Budgets must name an existing category (no Uncategorized fallback)."""
        taxonomy = await uow.categories.get_taxonomy(user_id)
        return taxonomy.get(name)

    @staticmethod
    async def _ensure_no_overlap(uow: UnitOfWork, budget: Budget) -> None:
        if not budget.is_active:
            return
        existing = await uow.budgets.find_overlapping(
            budget.user_id,
            budget.category,
            budget.start_date,
            budget.end_date,
            exclude_id=budget.id,
        )
        budget.ensure_no_overlap(existing)

    async def create_budget(
        self,
        user_id: UUID,
        name: str,
        limit: Money,
        category_name: str,
        start_date: date,
        end_date: date,
        description: Optional[str] = None,
        period: Optional[Union[BudgetPeriod, str]] = None,
        alert_threshold_percent: Optional[Decimal] = None,
    ) -> Budget:
        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            category = await self._resolve_category(uow, user_id, category_name)
            budget = Budget.create(
                user_id=user_id,
                name=name,
                limit=limit,
                category=category.name,
                start_date=start_date,
                end_date=end_date,
                description=description,
                period=BudgetPeriod.parse(period) if isinstance(period, str) else period,
                alert_threshold_percent=alert_threshold_percent,
            )
            await self._ensure_no_overlap(uow, budget)
            await uow.budgets.add(budget)
        return budget

    async def update_budget(
        self,
        user_id: UUID,
        budget_id: UUID,
        name: str,
        limit: Money,
        category_name: str,
        start_date: date,
        end_date: date,
        description: Optional[str] = None,
    ) -> Budget:
        """
        Replace name, limit, category and date range.

        The loaded budget is a detached copy; if the overlap check fails the
        unit of work rolls back and nothing is stored.
        """
        async with self._uow_factory() as uow:
            budget = await self._load(uow, user_id, budget_id)
            category = await self._resolve_category(uow, user_id, category_name)
            budget.update_details(name=name, limit=limit, description=description)
            budget.change_category(category.name)
            budget.update_date_range(start_date, end_date)
            await self._ensure_no_overlap(uow, budget)
            await uow.budgets.update(budget)
        return budget

    async def _change(self, user_id: UUID, budget_id: UUID, change: Callable[[Budget], None]) -> Budget:
        async with self._uow_factory() as uow:
            budget = await self._load(uow, user_id, budget_id)
            change(budget)
            await uow.budgets.update(budget)
        return budget

    async def set_alert_threshold(self, user_id: UUID, budget_id: UUID, percent: Decimal) -> Budget:
        return await self._change(user_id, budget_id, lambda b: b.set_alert_threshold(percent))

    async def disable_alerts(self, user_id: UUID, budget_id: UUID) -> Budget:
        return await self._change(user_id, budget_id, lambda b: b.disable_alerts())

    async def set_recurrence(self, user_id: UUID, budget_id: UUID, period: Union[BudgetPeriod, str]) -> Budget:
        if isinstance(period, str):
            period = BudgetPeriod.parse(period)
        return await self._change(user_id, budget_id, lambda b: b.set_recurrence(period))

    async def remove_recurrence(self, user_id: UUID, budget_id: UUID) -> Budget:
        return await self._change(user_id, budget_id, lambda b: b.remove_recurrence())

    async def deactivate_budget(self, user_id: UUID, budget_id: UUID) -> Budget:
        return await self._change(user_id, budget_id, lambda b: b.deactivate())

    async def activate_budget(self, user_id: UUID, budget_id: UUID) -> Budget:
        """Reactivate; fails if another active budget now covers the range."""
        async with self._uow_factory() as uow:
            budget = await self._load(uow, user_id, budget_id)
            budget.activate()
            await self._ensure_no_overlap(uow, budget)
            await uow.budgets.update(budget)
        return budget

    async def delete_budget(self, user_id: UUID, budget_id: UUID) -> None:
        async with self._uow_factory() as uow:
            await self._load(uow, user_id, budget_id)
            await uow.budgets.delete(budget_id)

    async def get_utilization(self, user_id: UUID, budget_id: UUID) -> BudgetUtilization:
        async with self._uow_factory() as uow:
            budget = await self._load(uow, user_id, budget_id)
            expenses = await uow.expenses.find_by_user_and_category(user_id, budget.category)
        return budget.compute_utilization(expenses)

    async def list_budgets(self, user_id: UUID, active_only: bool = False) -> list[Budget]:
        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            if active_only:
                budgets = await uow.budgets.find_active_by_user(user_id)
            else:
                budgets = await uow.budgets.find_by_user(user_id)
        return sorted(budgets, key=lambda b: (b.start_date, b.name))


# =============================================================================
# INVOICES
# =============================================================================

class InvoiceFlow(_Flow):
    """
    Orchestrates invoices.

    Flow:
    1. Create → reserve a globally unique invoice number
    2. Edit client, terms and line items while Draft
    3. Send → locked, "invoice generated" event
    4. Mark paid, or cancel

    Only Draft and Cancelled invoices may be deleted.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        number_generator: Optional[InvoiceNumberGenerator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(uow_factory, audit_logger)
        self._number_generator = number_generator

    async def _load(self, uow: UnitOfWork, user_id: UUID, invoice_id: UUID) -> Invoice:
        await self._require_user(uow, user_id)
        invoice = await uow.invoices.find_by_id(invoice_id)
        return self._require_owned(invoice, user_id, "Invoice", invoice_id)

    async def create_invoice(
        self,
        user_id: UUID,
        client_name: str,
        client_email: str,
        issue_date: date,
        due_date: date,
        tax_rate: Decimal = Decimal("0"),
        currency: Optional[str] = None,
        client_address: Optional[str] = None,
        notes: Optional[str] = None,
        line_items: Iterable[LineItemInput] = (),
    ) -> Invoice:
        """
        Create a Draft invoice.

        Currency defaults to the user's default currency.
        """
        async with self._uow_factory() as uow:
            user = await self._require_user(uow, user_id)
            number = await reserve_invoice_number(
                uow.invoices, issue_date, generator=self._number_generator
            )
            invoice = Invoice.create(
                user_id=user_id,
                client_name=client_name,
                client_email=client_email,
                issue_date=issue_date,
                due_date=due_date,
                tax_rate=tax_rate,
                currency=currency or user.default_currency,
                invoice_number=number,
                client_address=client_address,
                notes=notes,
            )
            for description, unit_price, quantity in line_items:
                invoice.add_line_item(description, unit_price, quantity)
            await uow.invoices.add(invoice)
        return invoice

    async def _change(self, user_id: UUID, invoice_id: UUID, change: Callable[[Invoice], object]) -> Invoice:
        async with self._uow_factory() as uow:
            invoice = await self._load(uow, user_id, invoice_id)
            change(invoice)
            await uow.invoices.update(invoice)
        return invoice

    async def add_line_item(
        self,
        user_id: UUID,
        invoice_id: UUID,
        description: str,
        unit_price: Money,
        quantity: int = 1,
    ) -> Invoice:
        return await self._change(
            user_id, invoice_id, lambda i: i.add_line_item(description, unit_price, quantity)
        )

    async def update_line_item(
        self,
        user_id: UUID,
        invoice_id: UUID,
        index: int,
        description: str,
        unit_price: Money,
        quantity: int,
    ) -> Invoice:
        return await self._change(
            user_id,
            invoice_id,
            lambda i: i.update_line_item(index, description, unit_price, quantity),
        )

    async def remove_line_item(self, user_id: UUID, invoice_id: UUID, index: int) -> Invoice:
        return await self._change(user_id, invoice_id, lambda i: i.remove_line_item(index))

    async def update_client(
        self,
        user_id: UUID,
        invoice_id: UUID,
        client_name: str,
        client_email: str,
        client_address: Optional[str] = None,
    ) -> Invoice:
        return await self._change(
            user_id,
            invoice_id,
            lambda i: i.update_client(client_name, client_email, client_address),
        )

    async def update_terms(
        self,
        user_id: UUID,
        invoice_id: UUID,
        issue_date: date,
        due_date: date,
        tax_rate: Decimal,
        notes: Optional[str] = None,
    ) -> Invoice:
        return await self._change(
            user_id,
            invoice_id,
            lambda i: i.update_terms(issue_date, due_date, tax_rate, notes),
        )

    async def send_invoice(self, user_id: UUID, invoice_id: UUID) -> Invoice:
        return await self._change(user_id, invoice_id, lambda i: i.send())

    async def mark_paid(
        self,
        user_id: UUID,
        invoice_id: UUID,
        paid_date: date,
        payment_method: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Invoice:
        return await self._change(
            user_id,
            invoice_id,
            lambda i: i.mark_as_paid(paid_date, payment_method, payment_reference),
        )

    async def cancel_invoice(self, user_id: UUID, invoice_id: UUID) -> Invoice:
        return await self._change(user_id, invoice_id, lambda i: i.cancel())

    async def delete_invoice(self, user_id: UUID, invoice_id: UUID) -> None:
        async with self._uow_factory() as uow:
            invoice = await self._load(uow, user_id, invoice_id)
            if invoice.status not in DELETABLE_INVOICE_STATUSES:
                raise IllegalOperationError(
                    f"Cannot delete a {invoice.status.value} invoice",
                    invoice_id=str(invoice_id),
                )
            await uow.invoices.delete(invoice_id)

    async def get_invoice(self, user_id: UUID, invoice_id: UUID) -> Invoice:
        async with self._uow_factory() as uow:
            return await self._load(uow, user_id, invoice_id)

    async def list_overdue(self, user_id: UUID, today: Optional[date] = None) -> list[Invoice]:
        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            sent = await uow.invoices.find_by_status(user_id, InvoiceStatus.SENT)
        overdue = [i for i in sent if i.is_overdue(today)]
        return sorted(overdue, key=lambda i: i.due_date)


# =============================================================================
# CATEGORIES
# =============================================================================

class CategoryFlow(_Flow):
    """
    Orchestrates the per-user category taxonomy.

    System categories are fixed. User categories that are referenced by
    expenses or budgets can only be deactivated, never deleted.
    """

    async def list_categories(self, user_id: UUID, include_inactive: bool = False) -> list[Category]:
        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            taxonomy = await uow.categories.get_taxonomy(user_id)
        return taxonomy.categories(include_inactive=include_inactive)

    async def register_category(
        self,
        user_id: UUID,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Category:
        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            taxonomy = await uow.categories.get_taxonomy(user_id)
            options = {k: v for k, v in {"color": color, "icon": icon}.items() if v}
            taxonomy = taxonomy.register(name, description=description, **options)
            await uow.categories.save_taxonomy(user_id, taxonomy)
        return taxonomy.get(name)

    async def deactivate_category(self, user_id: UUID, name: str) -> Category:
        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            taxonomy = (await uow.categories.get_taxonomy(user_id)).deactivate(name)
            await uow.categories.save_taxonomy(user_id, taxonomy)
        return taxonomy.get(name)

    async def activate_category(self, user_id: UUID, name: str) -> Category:
        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            taxonomy = (await uow.categories.get_taxonomy(user_id)).activate(name)
            await uow.categories.save_taxonomy(user_id, taxonomy)
        return taxonomy.get(name)

    async def delete_category(self, user_id: UUID, name: str) -> None:
        async with self._uow_factory() as uow:
            await self._require_user(uow, user_id)
            taxonomy = await uow.categories.get_taxonomy(user_id)
            referenced = (
                await uow.expenses.is_category_referenced(user_id, name)
                or bool(await uow.budgets.find_by_user_and_category(user_id, name))
            )
            taxonomy = taxonomy.remove(name, is_referenced=referenced)
            await uow.categories.save_taxonomy(user_id, taxonomy)


def create_app_components(
    notifier: Optional[Notifier] = None,
    categorizer: Optional[ExpenseCategorizer] = None,
    document_extractor: Optional[DocumentExtractor] = None,
    file_storage: Optional[FileStorage] = None,
    number_generator: Optional[InvoiceNumberGenerator] = None,
) -> tuple[ExpenseFlow, BudgetFlow, InvoiceFlow, CategoryFlow, InMemoryDatabase]:
    """
    Factory function to wire all flows to one in-memory database.

    Returns:
        (expense_flow, budget_flow, invoice_flow, category_flow, database)
    """
    audit_logger = AuditLogger(notifier)
    database = InMemoryDatabase(audit_logger=audit_logger)

    expense_flow = ExpenseFlow(
        database.unit_of_work,
        categorizer=categorizer,
        document_extractor=document_extractor,
        file_storage=file_storage,
        audit_logger=audit_logger,
    )
    budget_flow = BudgetFlow(database.unit_of_work, audit_logger=audit_logger)
    invoice_flow = InvoiceFlow(
        database.unit_of_work,
        number_generator=number_generator,
        audit_logger=audit_logger,
    )
    category_flow = CategoryFlow(database.unit_of_work, audit_logger=audit_logger)

    return expense_flow, budget_flow, invoice_flow, category_flow, database
