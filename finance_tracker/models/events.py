"""
Domain Events

Entities record what happened to them as DomainEvent objects. Events are
collected by the unit of work and dispatched only after a successful commit,
so a rolled back change never notifies anybody.

Consumers (email, notifications, audit log) subscribe through the
AuditLogger; the domain core never delivers anything itself.

DESIGN DECISION: Events are append-only facts. Amounts are carried as
strings so the structured log and any JSON consumer see exact decimals.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DomainEventType(str, Enum):
    """Types of events the domain core emits."""
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    INVOICE_GENERATED = "invoice_generated"


class DomainEvent(BaseModel):
    """A single thing that happened to an entity."""

    event_id: UUID = Field(default_factory=uuid4)
    occurred_at: datetime = Field(default_factory=utc_now)
    event_type: DomainEventType
    entity_type: str = Field(..., description="'expense' or 'invoice'")
    entity_id: UUID
    user_id: UUID
    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> dict:
        """Flatten for structured logging."""
        return {
            "event_id": str(self.event_id),
            "occurred_at": self.occurred_at.isoformat(),
            "event_type": self.event_type.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id),
            "user_id": str(self.user_id),
            "description": self.description,
            "details": self.details,
        }


class DomainEventBuilder:
    """
    Helper class to build domain events with common patterns.

    Usage:
        event = DomainEventBuilder.expense_created(expense_id, user_id, amount, "USD")
        event = DomainEventBuilder.invoice_generated(invoice_id, user_id, number, total, "USD")
    """

    @staticmethod
    def expense_created(
        expense_id: UUID,
        user_id: UUID,
        amount: Decimal,
        currency: str,
    ) -> DomainEvent:
        return DomainEvent(
            event_type=DomainEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=expense_id,
            user_id=user_id,
            description=f"Expense created: {amount:.2f} {currency}",
            details={
                "amount": str(amount),
                "currency": currency,
            },
        )

    @staticmethod
    def expense_updated(
        expense_id: UUID,
        user_id: UUID,
        old_amount: Decimal,
        new_amount: Decimal,
        currency: str,
    ) -> DomainEvent:
        return DomainEvent(
            event_type=DomainEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense_id,
            user_id=user_id,
            description=f"Expense amount changed from {old_amount:.2f} to {new_amount:.2f} {currency}",
            details={
                "old_amount": str(old_amount),
                "new_amount": str(new_amount),
                "currency": currency,
            },
        )

    @staticmethod
    def expense_deleted(expense_id: UUID, user_id: UUID) -> DomainEvent:
        return DomainEvent(
            event_type=DomainEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            user_id=user_id,
            description="Expense deleted",
        )

    @staticmethod
    def invoice_generated(
        invoice_id: UUID,
        user_id: UUID,
        invoice_number: str,
        total: Decimal,
        currency: str,
        client_email: Optional[str] = None,
    ) -> DomainEvent:
        return DomainEvent(
            event_type=DomainEventType.INVOICE_GENERATED,
            entity_type="invoice",
            entity_id=invoice_id,
            user_id=user_id,
            description=f"Invoice {invoice_number} sent for {total:.2f} {currency}",
            details={
                "invoice_number": invoice_number,
                "total": str(total),
                "currency": currency,
                "client_email": client_email,
            },
        )
