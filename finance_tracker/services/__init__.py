"""Services package."""

from finance_tracker.services.external import (
    CategorySuggestion,
    DocumentExtraction,
    DocumentExtractor,
    ExpenseCategorizer,
    ExternalServiceError,
    FileStorage,
    Notifier,
)
from finance_tracker.services.storage import (
    DuplicateError,
    InMemoryDatabase,
    InMemoryUnitOfWork,
    StorageError,
    TransactionError,
    UnitOfWork,
)
from finance_tracker.services.invoice_numbers import (
    InvoiceNumberCollisionError,
    InvoiceNumberGenerator,
    SequentialInvoiceNumberGenerator,
    TimestampInvoiceNumberGenerator,
    reserve_invoice_number,
)

__all__ = [
    # Collaborators
    "CategorySuggestion",
    "DocumentExtraction",
    "DocumentExtractor",
    "ExpenseCategorizer",
    "ExternalServiceError",
    "FileStorage",
    "Notifier",
    # Storage
    "DuplicateError",
    "InMemoryDatabase",
    "InMemoryUnitOfWork",
    "StorageError",
    "TransactionError",
    "UnitOfWork",
    # Invoice numbers
    "InvoiceNumberCollisionError",
    "InvoiceNumberGenerator",
    "SequentialInvoiceNumberGenerator",
    "TimestampInvoiceNumberGenerator",
    "reserve_invoice_number",
]
