"""User reference model. Authentication lives outside the domain core."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finance_tracker.models.events import utc_now
from finance_tracker.models.money import Money


class User(BaseModel):
    """The owner of expenses, budgets, invoices and custom categories."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    email: str = Field(..., min_length=3, max_length=254)
    full_name: Optional[str] = Field(default=None, max_length=200)
    default_currency: str = "USD"
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('email')
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator('default_currency', mode='before')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return Money.zero(v).currency
