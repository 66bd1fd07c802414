"""
Expense Record

A single expense with a review lifecycle:

    Draft --submit--> Submitted --approve--> Approved
                          |
                          +------reject----> Rejected

CRITICAL: Approved expenses are immutable. Every other state may be edited;
a Rejected expense is fixed up and its status only changes again through
an explicit transition.

Each public method checks all of its preconditions before assigning
anything, so a failed call leaves the expense exactly as it was.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from pydantic import field_validator

from finance_tracker.exceptions import (
    IllegalOperationError,
    IllegalTransitionError,
    InvalidArgumentError,
    OutOfRangeError,
)
from finance_tracker.models.base import Entity
from finance_tracker.models.category import Category
from finance_tracker.models.events import DomainEventBuilder
from finance_tracker.models.money import Money
from finance_tracker.validation.guards import optional_text, require_in_range, require_text

MAX_DESCRIPTION_LENGTH = 500
MAX_TAG_LENGTH = 50


class ExpenseStatus(str, Enum):
    """Review status of an expense."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


class Expense(Entity):
    """
    An expense owned by one user.

    Build new expenses with ``Expense.create`` so the "expense created" event
    is recorded; the plain constructor is for rehydrating stored records.
    """

    description: str
    amount: Money
    category: Category
    expense_date: date
    notes: Optional[str] = None
    merchant_name: Optional[str] = None
    payment_method: Optional[str] = None
    receipt_url: Optional[str] = None
    is_reimbursable: bool = False
    is_reimbursed: bool = False
    status: ExpenseStatus = ExpenseStatus.DRAFT
    rejection_reason: Optional[str] = None

    # AI-assisted fields
    is_ai_categorized: bool = False
    ai_confidence_score: Optional[float] = None
    extracted_text: Optional[str] = None

    tags: tuple[str, ...] = ()

    @field_validator('description', mode='before')
    @classmethod
    def validate_description(cls, v: str) -> str:
        return require_text(v, "description", max_length=MAX_DESCRIPTION_LENGTH)

    @field_validator('notes', mode='before')
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        return optional_text(v, "notes", max_length=1000)

    @field_validator('merchant_name', mode='before')
    @classmethod
    def validate_merchant(cls, v: Optional[str]) -> Optional[str]:
        return optional_text(v, "merchant_name", max_length=200)

    @field_validator('payment_method', mode='before')
    @classmethod
    def validate_payment_method(cls, v: Optional[str]) -> Optional[str]:
        return optional_text(v, "payment_method", max_length=50)

    @field_validator('ai_confidence_score', mode='before')
    @classmethod
    def validate_confidence(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return None
        return float(require_in_range(v, "ai_confidence_score", Decimal("0"), Decimal("1")))

    @field_validator('tags', mode='before')
    @classmethod
    def validate_tags(cls, v: Iterable[str]) -> tuple[str, ...]:
        normalized: list[str] = []
        for tag in v or ():
            tag = normalize_tag(require_text(tag, "tag", max_length=MAX_TAG_LENGTH))
            if tag not in normalized:
                normalized.append(tag)
        return tuple(normalized)

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        user_id: UUID,
        description: str,
        amount: Money,
        category: Category,
        expense_date: date,
        notes: Optional[str] = None,
        merchant_name: Optional[str] = None,
        payment_method: Optional[str] = None,
        is_reimbursable: bool = False,
        tags: Iterable[str] = (),
    ) -> "Expense":
        expense = cls(
            user_id=user_id,
            description=description,
            amount=amount,
            category=category,
            expense_date=expense_date,
            notes=notes,
            merchant_name=merchant_name,
            payment_method=payment_method,
            is_reimbursable=is_reimbursable,
            tags=tuple(tags),
        )
        expense._record(DomainEventBuilder.expense_created(
            expense_id=expense.id,
            user_id=expense.user_id,
            amount=expense.amount.amount,
            currency=expense.amount.currency,
        ))
        return expense

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    @property
    def is_editable(self) -> bool:
        return self.status != ExpenseStatus.APPROVED

    def _ensure_editable(self, action: str) -> None:
        if not self.is_editable:
            raise IllegalOperationError(
                f"Cannot {action} an approved expense",
                expense_id=str(self.id),
            )

    def update_details(
        self,
        description: str,
        amount: Money,
        category: Category,
        expense_date: date,
        notes: Optional[str] = None,
        merchant_name: Optional[str] = None,
        payment_method: Optional[str] = None,
        is_reimbursable: Optional[bool] = None,
    ) -> None:
        """
        Replace the editable details.

        This is the only path through which amount, category and date change.
        An "expense updated" event is recorded when the amount changes.
        """
        self._ensure_editable("update")
        if not isinstance(amount, Money):
            raise InvalidArgumentError("Amount must be a Money value", field="amount")
        if not isinstance(category, Category):
            raise InvalidArgumentError("Category is required", field="category")
        if not isinstance(expense_date, date):
            raise InvalidArgumentError("Expense date must be a date", field="expense_date")

        description = require_text(description, "description", max_length=MAX_DESCRIPTION_LENGTH)
        notes = optional_text(notes, "notes", max_length=1000)
        merchant_name = optional_text(merchant_name, "merchant_name", max_length=200)
        payment_method = optional_text(payment_method, "payment_method", max_length=50)

        old_amount = self.amount

        self.description = description
        self.amount = amount
        self.category = category
        self.expense_date = expense_date
        self.notes = notes
        self.merchant_name = merchant_name
        self.payment_method = payment_method
        if is_reimbursable is not None:
            self.is_reimbursable = is_reimbursable
        self._touch()

        if old_amount != amount:
            self._record(DomainEventBuilder.expense_updated(
                expense_id=self.id,
                user_id=self.user_id,
                old_amount=old_amount.amount,
                new_amount=amount.amount,
                currency=amount.currency,
            ))

    def attach_receipt(self, receipt_url: str) -> None:
        self._ensure_editable("attach a receipt to")
        self.receipt_url = require_text(receipt_url, "receipt_url", max_length=2048)
        self._touch()

    def set_ai_categorization(
        self,
        category: Category,
        confidence: float,
        extracted_text: Optional[str] = None,
    ) -> None:
        """
        Override the category with an AI suggestion.

        This replaces the category outright; it does not merge with what
        the user chose.
        """
        if category is None:
            raise InvalidArgumentError("Category is required", field="category")
        if isinstance(confidence, bool) or not 0.0 <= float(confidence) <= 1.0:
            raise OutOfRangeError(
                "Confidence score must be between 0 and 1",
                field="confidence",
                value=str(confidence),
            )
        self._ensure_editable("recategorize")

        self.category = category
        self.is_ai_categorized = True
        self.ai_confidence_score = float(confidence)
        self.extracted_text = extracted_text
        self._touch()

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    def add_tag(self, tag: str) -> None:
        """Add a tag; adding one that is already there does nothing."""
        normalized = normalize_tag(require_text(tag, "tag", max_length=MAX_TAG_LENGTH))
        if normalized in self.tags:
            return
        self._ensure_editable("tag")
        self.tags = self.tags + (normalized,)
        self._touch()

    def remove_tag(self, tag: str) -> None:
        if tag is None or not tag.strip():
            return
        normalized = normalize_tag(tag)
        if normalized not in self.tags:
            return
        self._ensure_editable("untag")
        self.tags = tuple(t for t in self.tags if t != normalized)
        self._touch()

    def has_tag(self, tag: str) -> bool:
        return normalize_tag(tag or "") in self.tags

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def submit(self) -> None:
        if self.status != ExpenseStatus.DRAFT:
            raise IllegalTransitionError("expense", "submit", self.status.value)
        self.status = ExpenseStatus.SUBMITTED
        self._touch()

    def approve(self) -> None:
        if self.status != ExpenseStatus.SUBMITTED:
            raise IllegalTransitionError("expense", "approve", self.status.value)
        self.status = ExpenseStatus.APPROVED
        self.rejection_reason = None
        self._touch()

    def reject(self, reason: str) -> None:
        if self.status != ExpenseStatus.SUBMITTED:
            raise IllegalTransitionError("expense", "reject", self.status.value)
        reason = require_text(reason, "reason", max_length=500)
        self.status = ExpenseStatus.REJECTED
        self.rejection_reason = reason
        self._touch()

    def mark_reimbursed(self) -> None:
        """
        Record that an approved, reimbursable expense was paid back.

        Marking it a second time is rejected so double payouts surface.
        """
        if not self.is_reimbursable:
            raise IllegalOperationError(
                "Cannot mark non-reimbursable expense as reimbursed",
                expense_id=str(self.id),
            )
        if self.status != ExpenseStatus.APPROVED:
            raise IllegalOperationError(
                "Cannot reimburse non-approved expense",
                expense_id=str(self.id),
                status=self.status.value,
            )
        if self.is_reimbursed:
            raise IllegalOperationError(
                "Expense is already reimbursed",
                expense_id=str(self.id),
            )
        self.is_reimbursed = True
        self._touch()
