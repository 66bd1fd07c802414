"""
Entity Base Model

Shared identity, ownership and timestamps for the aggregate roots
(Expense, Budget, Invoice), plus the list of pending domain events.
"""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from finance_tracker.models.events import DomainEvent, utc_now
from finance_tracker.validation.guards import require_user_id


class Entity(BaseModel):
    """
    Base for aggregate roots.

    Entities are mutated only through their own methods. Other aggregates
    are referenced by id or by value, never by a live object.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID = Field(..., description="Owning user")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    _events: list[DomainEvent] = PrivateAttr(default_factory=list)

    @field_validator('user_id')
    @classmethod
    def validate_user_id(cls, v: UUID) -> UUID:
        return require_user_id(v)

    @property
    def domain_events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._events)

    def pull_domain_events(self) -> list[DomainEvent]:
        """Return pending events and clear them."""
        events, self._events = self._events, []
        return events

    def clear_domain_events(self) -> None:
        self._events = []

    def _record(self, event: DomainEvent) -> None:
        self._events.append(event)

    def _touch(self) -> None:
        self.updated_at = utc_now()
