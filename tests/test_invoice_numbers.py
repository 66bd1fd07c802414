"""Tests for invoice number generation and the uniqueness retry."""

import asyncio
import re
import pytest
from datetime import date
from uuid import uuid4

from finance_tracker.models.invoice import Invoice
from finance_tracker.services.invoice_numbers import (
    InvoiceNumberCollisionError,
    InvoiceNumberGenerator,
    SequentialInvoiceNumberGenerator,
    TimestampInvoiceNumberGenerator,
    generator_for,
    reserve_invoice_number,
)

ISSUE_DATE = date(2024, 3, 5)


class ScriptedGenerator(InvoiceNumberGenerator):
    """Proposes numbers from a fixed list."""

    def __init__(self, numbers):
        self.numbers = list(numbers)
        self.attempts = []

    async def propose(self, invoices, issue_date, attempt=0):
        self.attempts.append(attempt)
        return self.numbers[min(attempt, len(self.numbers) - 1)]


def store_invoices(database, user_id, *numbers):
    async def save():
        async with database.unit_of_work() as uow:
            for number in numbers:
                await uow.invoices.add(Invoice.create(
                    user_id=user_id,
                    client_name="Acme",
                    client_email="a@acme.com",
                    issue_date=ISSUE_DATE,
                    due_date=ISSUE_DATE,
                    invoice_number=number,
                ))
    asyncio.run(save())


def reserve(database, **kwargs):
    async def run():
        async with database.unit_of_work() as uow:
            return await reserve_invoice_number(uow.invoices, ISSUE_DATE, **kwargs)
    return asyncio.run(run())


class TestGenerators:

    def test_timestamp_format(self):
        number = TimestampInvoiceNumberGenerator().candidate(ISSUE_DATE)
        assert re.fullmatch(r"INV-20240305-[0-9A-F]{8}", number)

    def test_sequential_starts_at_one(self, database):
        number = reserve(database, generator=SequentialInvoiceNumberGenerator())
        assert number == "INV-2024-0001"

    def test_sequential_continues_from_highest(self, database, user_id):
        store_invoices(database, user_id, "INV-2024-0001", "INV-2024-0007", "INV-2023-0099")
        number = reserve(database, generator=SequentialInvoiceNumberGenerator())
        assert number == "INV-2024-0008"

    def test_sequential_orders_numerically_past_9999(self, database, user_id):
        """Test INV-2024-10000 ranks above INV-2024-9999."""
        store_invoices(database, user_id, "INV-2024-9999", *(f"INV-2024-{n}" for n in range(10000, 10005)))
        number = reserve(database, generator=SequentialInvoiceNumberGenerator())
        assert number == "INV-2024-10005"

    def test_generator_for_strategy(self, monkeypatch):
        assert isinstance(generator_for("sequential"), SequentialInvoiceNumberGenerator)
        assert isinstance(generator_for("timestamp"), TimestampInvoiceNumberGenerator)
        monkeypatch.setenv("FINANCE_INVOICE_NUMBER_STRATEGY", "sequential")
        assert isinstance(generator_for(), SequentialInvoiceNumberGenerator)


class TestReserveInvoiceNumber:

    def test_collision_is_retried(self, database, user_id):
        store_invoices(database, user_id, "INV-TAKEN")
        generator = ScriptedGenerator(["INV-TAKEN", "INV-FREE"])
        number = reserve(database, generator=generator)
        assert number == "INV-FREE"
        assert generator.attempts == [0, 1]

    def test_gives_up_after_max_attempts(self, database, user_id):
        """Test a collision is never accepted silently."""
        store_invoices(database, user_id, "INV-TAKEN")
        generator = ScriptedGenerator(["INV-TAKEN"])
        with pytest.raises(InvoiceNumberCollisionError) as exc_info:
            reserve(database, generator=generator, max_attempts=3)
        assert exc_info.value.invoice_number == "INV-TAKEN"
        assert generator.attempts == [0, 1, 2]

    def test_max_attempts_from_settings(self, database, user_id, monkeypatch):
        monkeypatch.setenv("FINANCE_INVOICE_MAX_NUMBER_ATTEMPTS", "2")
        store_invoices(database, user_id, "INV-TAKEN")
        generator = ScriptedGenerator(["INV-TAKEN"])
        with pytest.raises(InvoiceNumberCollisionError):
            reserve(database, generator=generator)
        assert generator.attempts == [0, 1]

    def test_uniqueness_is_global_across_users(self, database, user_id):
        store_invoices(database, uuid4(), "INV-TAKEN")
        generator = ScriptedGenerator(["INV-TAKEN", "INV-MINE"])
        assert reserve(database, generator=generator) == "INV-MINE"
