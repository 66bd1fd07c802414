"""
Invoice Number Generation

Two formats are supported:

    timestamp   INV-20240115-9F2C41AB   (date + 8 random hex digits)
    sequential  INV-2024-0042           (year + zero-padded sequence)

CRITICAL: Invoice numbers are globally unique. Every candidate is checked
against the invoice repository before it is used. A collision is retried
with a fresh candidate (bounded by settings); it is never accepted.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import uuid4

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from finance_tracker.config import get_settings
from finance_tracker.services.storage.interface import DuplicateError, InvoiceRepository

logger = structlog.get_logger("finance_tracker.invoice_numbers")


class InvoiceNumberCollisionError(DuplicateError):
    """A candidate invoice number is already taken."""

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(f"Invoice number {invoice_number} already exists")


class InvoiceNumberGenerator(ABC):

    @abstractmethod
    async def propose(self, invoices: InvoiceRepository, issue_date: date, attempt: int = 0) -> str:
        """
        Propose a candidate number.

        Args:
            attempt: 0 for the first try, incremented on every collision
        """
        pass


class TimestampInvoiceNumberGenerator(InvoiceNumberGenerator):
    """INV-<yyyymmdd>-<8 upper-case hex digits>."""

    def candidate(self, issue_date: date) -> str:
        return f"INV-{issue_date:%Y%m%d}-{uuid4().hex[:8].upper()}"

    async def propose(self, invoices: InvoiceRepository, issue_date: date, attempt: int = 0) -> str:
        return self.candidate(issue_date)


class SequentialInvoiceNumberGenerator(InvoiceNumberGenerator):
    """INV-<year>-<seq4>, continuing from the highest number of that year."""

    @staticmethod
    def prefix(issue_date: date) -> str:
        return f"INV-{issue_date.year}-"

    async def propose(self, invoices: InvoiceRepository, issue_date: date, attempt: int = 0) -> str:
        prefix = self.prefix(issue_date)
        last = await invoices.last_invoice_number(prefix)
        sequence = 0
        if last:
            suffix = last[len(prefix):]
            if suffix.isdigit():
                sequence = int(suffix)
        return f"{prefix}{sequence + 1 + attempt:04d}"


def generator_for(strategy: Optional[str] = None) -> InvoiceNumberGenerator:
    strategy = strategy or get_settings().invoice.number_strategy
    if strategy == "sequential":
        return SequentialInvoiceNumberGenerator()
    return TimestampInvoiceNumberGenerator()


async def reserve_invoice_number(
    invoices: InvoiceRepository,
    issue_date: date,
    generator: Optional[InvoiceNumberGenerator] = None,
    max_attempts: Optional[int] = None,
) -> str:
    """
    Return an invoice number that no stored invoice uses.

    Raises:
        InvoiceNumberCollisionError: if every attempt collided
    """
    generator = generator or generator_for()
    max_attempts = max_attempts or get_settings().invoice.max_number_attempts

    number = ""
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        retry=retry_if_exception_type(InvoiceNumberCollisionError),
        reraise=True,
    ):
        with attempt:
            attempt_index = attempt.retry_state.attempt_number - 1
            number = await generator.propose(invoices, issue_date, attempt_index)
            if await invoices.invoice_number_exists(number):
                logger.warning(
                    "invoice_number_collision",
                    invoice_number=number,
                    attempt=attempt_index + 1,
                )
                raise InvoiceNumberCollisionError(number)
    return number
