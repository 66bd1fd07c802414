"""
Invoice Ledger

A billable document made of ordered line items.

    Draft --send--> Sent --mark_as_paid--> Paid
      |               |
      +----cancel-----+----> Cancelled

DESIGN DECISION: subtotal, tax and total are computed properties over the
line items. There is no stored total that could go stale; reading a total
right after any line-item change always reflects that change.

Line items are owned by their invoice and addressed by position. A line
item holds no reference back to the invoice.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from finance_tracker.config import get_settings
from finance_tracker.exceptions import (
    CurrencyMismatchError,
    EmptyInvoiceError,
    IllegalOperationError,
    IllegalTransitionError,
    IndexOutOfRangeError,
    InvalidArgumentError,
    InvalidDateRangeError,
)
from finance_tracker.models.base import Entity
from finance_tracker.models.events import DomainEventBuilder
from finance_tracker.models.money import Money
from finance_tracker.validation.guards import (
    optional_text,
    require_date_order,
    require_in_range,
    require_text,
)


class InvoiceStatus(str, Enum):
    """Lifecycle status of an invoice."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    CANCELLED = "cancelled"


LOCKED_STATUSES = frozenset({InvoiceStatus.SENT, InvoiceStatus.PAID})


def _require_email(value: str) -> str:
    email = require_text(value, "client_email", max_length=254).lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain or " " in email:
        raise InvalidArgumentError(f"Invalid client email: {value}", field="client_email")
    return email


def _require_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgumentError("Quantity must be a whole number", field="quantity")
    if quantity <= 0:
        raise InvalidArgumentError("Quantity must be greater than zero", field="quantity")
    return quantity


class InvoiceLineItem(BaseModel):
    """One billable line. Immutable; edits replace the item."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    description: str
    unit_price: Money
    quantity: int = 1

    @field_validator('description', mode='before')
    @classmethod
    def validate_description(cls, v: str) -> str:
        return require_text(v, "description", max_length=500)

    @field_validator('quantity', mode='before')
    @classmethod
    def validate_quantity(cls, v: int) -> int:
        return _require_quantity(v)

    @computed_field
    @property
    def total_price(self) -> Money:
        return self.unit_price.multiply(self.quantity)


class Invoice(Entity):
    """
    An invoice with line items and derived totals.

    Build new invoices with ``Invoice.create``.
    """

    invoice_number: str
    client_name: str
    client_email: str
    client_address: Optional[str] = None
    issue_date: date
    due_date: date
    currency: str = Field(..., min_length=3, max_length=3)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    notes: Optional[str] = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    paid_date: Optional[date] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    line_items: tuple[InvoiceLineItem, ...] = ()

    @field_validator('client_name', mode='before')
    @classmethod
    def validate_client_name(cls, v: str) -> str:
        return require_text(v, "client_name", max_length=200)

    @field_validator('client_email', mode='before')
    @classmethod
    def validate_client_email(cls, v: str) -> str:
        return _require_email(v)

    @field_validator('currency', mode='before')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return Money.zero(v).currency

    @model_validator(mode='after')
    def validate_invoice(self) -> 'Invoice':
        require_date_order(self.issue_date, self.due_date, strict=False)
        for item in self.line_items:
            if item.unit_price.currency != self.currency:
                raise CurrencyMismatchError("invoice", self.currency, item.unit_price.currency)
        return self

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        user_id: UUID,
        client_name: str,
        client_email: str,
        issue_date: date,
        due_date: date,
        tax_rate: Decimal = Decimal("0"),
        currency: Optional[str] = None,
        invoice_number: Optional[str] = None,
        client_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> "Invoice":
        """
        Build a new Draft invoice.

        If no invoice number is given a timestamp-based one is generated;
        the caller is still responsible for the uniqueness check.
        """
        # Imported here: invoice_numbers depends on this module's types.
        from finance_tracker.services.invoice_numbers import TimestampInvoiceNumberGenerator

        if due_date < issue_date:
            raise InvalidDateRangeError("Due date cannot be before issue date", field="due_date")
        rate = require_in_range(tax_rate, "tax_rate", Decimal("0"), Decimal("1"))
        number = invoice_number or TimestampInvoiceNumberGenerator().candidate(issue_date)

        return cls(
            user_id=user_id,
            invoice_number=require_text(number, "invoice_number", max_length=50),
            client_name=client_name,
            client_email=client_email,
            client_address=optional_text(client_address, "client_address", max_length=500),
            issue_date=issue_date,
            due_date=due_date,
            currency=currency or get_settings().ledger.default_currency,
            tax_rate=rate,
            notes=optional_text(notes, "notes", max_length=2000),
        )

    # -------------------------------------------------------------------------
    # Derived amounts
    # -------------------------------------------------------------------------

    @computed_field
    @property
    def subtotal(self) -> Money:
        return Money.total((item.total_price for item in self.line_items), self.currency)

    @computed_field
    @property
    def tax_amount(self) -> Money:
        return self.subtotal.multiply(self.tax_rate)

    @computed_field
    @property
    def total(self) -> Money:
        return self.subtotal.add(self.tax_amount)

    # -------------------------------------------------------------------------
    # Line items
    # -------------------------------------------------------------------------

    @property
    def is_editable(self) -> bool:
        return self.status not in LOCKED_STATUSES

    def _ensure_editable(self) -> None:
        if not self.is_editable:
            raise IllegalOperationError(
                "Cannot modify sent or paid invoices",
                invoice_id=str(self.id),
                status=self.status.value,
            )

    def _ensure_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidArgumentError("Index must be an integer", field="index")
        if index < 0 or index >= len(self.line_items):
            raise IndexOutOfRangeError(index, len(self.line_items))

    def _build_item(
        self,
        description: str,
        unit_price: Money,
        quantity: int,
        item_id: Optional[UUID] = None,
    ) -> InvoiceLineItem:
        if unit_price is None:
            raise InvalidArgumentError("Unit price is required", field="unit_price")
        if unit_price.currency != self.currency:
            raise CurrencyMismatchError("invoice", self.currency, unit_price.currency)
        data = {
            "description": description,
            "unit_price": unit_price,
            "quantity": quantity,
        }
        if item_id is not None:
            data["id"] = item_id
        return InvoiceLineItem(**data)

    def add_line_item(self, description: str, unit_price: Money, quantity: int = 1) -> InvoiceLineItem:
        self._ensure_editable()
        item = self._build_item(description, unit_price, quantity)
        self.line_items = self.line_items + (item,)
        self._touch()
        return item

    def remove_line_item(self, index: int) -> InvoiceLineItem:
        self._ensure_editable()
        self._ensure_index(index)
        removed = self.line_items[index]
        self.line_items = self.line_items[:index] + self.line_items[index + 1:]
        self._touch()
        return removed

    def update_line_item(
        self,
        index: int,
        description: str,
        unit_price: Money,
        quantity: int,
    ) -> InvoiceLineItem:
        self._ensure_editable()
        self._ensure_index(index)
        item = self._build_item(description, unit_price, quantity, item_id=self.line_items[index].id)
        items = list(self.line_items)
        items[index] = item
        self.line_items = tuple(items)
        self._touch()
        return item

    # -------------------------------------------------------------------------
    # Header edits (Draft only)
    # -------------------------------------------------------------------------

    def _ensure_draft(self, action: str) -> None:
        if self.status != InvoiceStatus.DRAFT:
            raise IllegalOperationError(
                f"Cannot {action} once the invoice is {self.status.value}",
                invoice_id=str(self.id),
            )

    def update_client(
        self,
        client_name: str,
        client_email: str,
        client_address: Optional[str] = None,
    ) -> None:
        self._ensure_draft("change the client")
        name = require_text(client_name, "client_name", max_length=200)
        email = _require_email(client_email)
        address = optional_text(client_address, "client_address", max_length=500)
        self.client_name = name
        self.client_email = email
        self.client_address = address
        self._touch()

    def update_terms(
        self,
        issue_date: date,
        due_date: date,
        tax_rate: Decimal,
        notes: Optional[str] = None,
    ) -> None:
        self._ensure_draft("change the terms")
        if due_date < issue_date:
            raise InvalidDateRangeError("Due date cannot be before issue date", field="due_date")
        rate = require_in_range(tax_rate, "tax_rate", Decimal("0"), Decimal("1"))
        notes = optional_text(notes, "notes", max_length=2000)
        self.issue_date = issue_date
        self.due_date = due_date
        self.tax_rate = rate
        self.notes = notes
        self._touch()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def send(self) -> None:
        """Lock the invoice and record the "invoice generated" event."""
        if self.status != InvoiceStatus.DRAFT:
            raise IllegalTransitionError("invoice", "send", self.status.value)
        if not self.line_items:
            raise EmptyInvoiceError(
                "Cannot send invoice without line items", invoice_id=str(self.id)
            )
        self.status = InvoiceStatus.SENT
        self._touch()
        total = self.total
        self._record(DomainEventBuilder.invoice_generated(
            invoice_id=self.id,
            user_id=self.user_id,
            invoice_number=self.invoice_number,
            total=total.amount,
            currency=total.currency,
            client_email=self.client_email,
        ))

    def mark_as_paid(
        self,
        paid_date: date,
        payment_method: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> None:
        if self.status != InvoiceStatus.SENT:
            raise IllegalTransitionError("invoice", "mark as paid", self.status.value)
        if paid_date is None:
            raise InvalidArgumentError("Paid date is required", field="paid_date")
        if paid_date < self.issue_date:
            raise InvalidDateRangeError("Paid date cannot be before issue date", field="paid_date")
        method = optional_text(payment_method, "payment_method", max_length=50)
        reference = optional_text(payment_reference, "payment_reference", max_length=100)

        self.status = InvoiceStatus.PAID
        self.paid_date = paid_date
        self.payment_method = method
        self.payment_reference = reference
        self._touch()

    def cancel(self) -> None:
        if self.status == InvoiceStatus.PAID:
            raise IllegalOperationError("Cannot cancel paid invoice", invoice_id=str(self.id))
        if self.status == InvoiceStatus.CANCELLED:
            raise IllegalTransitionError("invoice", "cancel", self.status.value)
        self.status = InvoiceStatus.CANCELLED
        self._touch()

    # -------------------------------------------------------------------------
    # Due dates
    # -------------------------------------------------------------------------

    def is_overdue(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self.status == InvoiceStatus.SENT and today > self.due_date

    def days_overdue(self, today: Optional[date] = None) -> int:
        today = today or date.today()
        return (today - self.due_date).days if self.is_overdue(today) else 0
