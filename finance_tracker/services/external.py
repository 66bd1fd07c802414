"""
External Collaborator Interfaces

The domain core consumes a few services it does not implement:

1. CATEGORIZER - suggests a category for an expense (AI)
2. DOCUMENT EXTRACTOR - reads text and fields from a receipt (AI/OCR)
3. FILE STORAGE - stores receipt files and returns a URL
4. NOTIFIER - delivers committed domain events (email, push, ...)

CRITICAL BOUNDARIES:
- Categorizer and document extractor are BEST-EFFORT. Any failure they raise
  is caught at the call site and degrades to "no suggestion".
- Their results are suggestions. They never persist anything themselves.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.models.events import DomainEvent


class CategorySuggestion(BaseModel):
    """AI's suggestion for an expense category."""

    category_name: str = Field(..., min_length=1, max_length=100)
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: Optional[str] = None


class DocumentExtraction(BaseModel):
    """
    Data read from a receipt or invoice document.

    CRITICAL: This is PROPOSED data, NOT verified.
    All fields are optional because extraction might miss any of them.
    """

    extracted_text: Optional[str] = None
    merchant_name: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = None
    document_date: Optional[date] = None
    description: Optional[str] = None
    suggested_category: Optional[str] = None
    category_confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ExternalServiceError(Exception):
    """Base exception for collaborator failures."""
    pass


class ExpenseCategorizer(ABC):

    @abstractmethod
    async def categorize(
        self,
        description: str,
        merchant_name: Optional[str] = None,
        amount: Optional[Decimal] = None,
        receipt_text: Optional[str] = None,
    ) -> CategorySuggestion:
        """
        Suggest a category for an expense.

        Raises:
            ExternalServiceError (or anything else): treated as "no suggestion"
        """
        pass


class DocumentExtractor(ABC):

    @abstractmethod
    async def extract(self, content: bytes, filename: str) -> DocumentExtraction:
        pass


class FileStorage(ABC):

    @abstractmethod
    async def upload(self, content: bytes, filename: str, content_type: str) -> str:
        """
        Store a file.

        Returns:
            Public URL of the stored file
        """
        pass

    @abstractmethod
    async def delete(self, url: str) -> None:
        pass


class Notifier(ABC):

    @abstractmethod
    async def notify(self, event: DomainEvent) -> None:
        """Deliver one committed domain event."""
        pass
