"""Tests for the in-memory unit of work and repositories."""

import asyncio
import pytest
from datetime import date
from uuid import uuid4

from finance_tracker.models.budget import Budget
from finance_tracker.models.events import DomainEventType
from finance_tracker.models.expense import Expense, ExpenseStatus
from finance_tracker.models.invoice import Invoice
from finance_tracker.services.storage import (
    DuplicateError,
    InMemoryDatabase,
    StorageError,
    TransactionError,
)


def make_expense(user_id, taxonomy, usd, amount=10, day=date(2024, 1, 10), category="Travel"):
    return Expense.create(
        user_id=user_id,
        description="Spend",
        amount=usd(amount),
        category=taxonomy.find_by_name(category),
        expense_date=day,
    )


def make_invoice(user_id, number):
    return Invoice.create(
        user_id=user_id,
        client_name="Acme",
        client_email="a@acme.com",
        issue_date=date(2024, 1, 1),
        due_date=date(2024, 1, 31),
        invoice_number=number,
    )


class TestTransactions:

    def test_commit_makes_changes_visible(self, database, user_id, taxonomy, usd):
        expense = make_expense(user_id, taxonomy, usd)

        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.add(expense)
                assert database.count("expenses") == 0
            async with database.unit_of_work() as uow:
                return await uow.expenses.find_by_id(expense.id)

        stored = asyncio.run(run())
        assert stored.model_dump() == expense.model_dump()
        assert stored is not expense

    def test_exception_rolls_back(self, database, user_id, taxonomy, usd):
        expense = make_expense(user_id, taxonomy, usd)

        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.add(expense)
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(run())
        assert database.count("expenses") == 0

    def test_explicit_rollback(self, database, user_id, taxonomy, usd):
        async def run():
            uow = database.unit_of_work()
            await uow.begin()
            await uow.expenses.add(make_expense(user_id, taxonomy, usd))
            await uow.rollback()
            assert not uow.in_transaction

        asyncio.run(run())
        assert database.count("expenses") == 0

    def test_reads_see_own_staged_writes(self, database, user_id, taxonomy, usd):
        expense = make_expense(user_id, taxonomy, usd)

        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.add(expense)
                return await uow.expenses.exists(expense.id), await uow.expenses.find_by_user(user_id)

        exists, listed = asyncio.run(run())
        assert exists
        assert [e.id for e in listed] == [expense.id]

    def test_begin_twice_rejected(self, database):
        async def run():
            uow = database.unit_of_work()
            await uow.begin()
            await uow.begin()

        with pytest.raises(TransactionError):
            asyncio.run(run())

    def test_commit_without_begin_rejected(self, database):
        with pytest.raises(TransactionError):
            asyncio.run(database.unit_of_work().commit())

    def test_save_changes_outside_transaction_commits(self, database, user_id, taxonomy, usd):
        async def run():
            uow = database.unit_of_work()
            await uow.expenses.add(make_expense(user_id, taxonomy, usd))
            return await uow.save_changes()

        assert asyncio.run(run()) == 1
        assert database.count("expenses") == 1

    def test_save_changes_inside_transaction_waits_for_commit(self, database, user_id, taxonomy, usd):
        async def run():
            uow = database.unit_of_work()
            await uow.begin()
            await uow.expenses.add(make_expense(user_id, taxonomy, usd))
            flushed = await uow.save_changes()
            visible_before = database.count("expenses")
            await uow.commit()
            return flushed, visible_before

        flushed, visible_before = asyncio.run(run())
        assert flushed == 1
        assert visible_before == 0
        assert database.count("expenses") == 1

    def test_returned_entities_are_detached(self, database, user_id, taxonomy, usd):
        expense = make_expense(user_id, taxonomy, usd)

        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.add(expense)
            async with database.unit_of_work() as uow:
                loaded = await uow.expenses.find_by_id(expense.id)
                loaded.submit()
            async with database.unit_of_work() as uow:
                return await uow.expenses.find_by_id(expense.id)

        assert asyncio.run(run()).status == ExpenseStatus.DRAFT

    def test_last_writer_wins(self, database, user_id, taxonomy, usd):
        expense = make_expense(user_id, taxonomy, usd)

        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.add(expense)

            first, second = database.unit_of_work(), database.unit_of_work()
            await first.begin()
            await second.begin()
            a = await first.expenses.find_by_id(expense.id)
            b = await second.expenses.find_by_id(expense.id)
            a.update_details("First", usd(1), a.category, a.expense_date)
            b.update_details("Second", usd(2), b.category, b.expense_date)
            await first.expenses.update(a)
            await second.expenses.update(b)
            await first.commit()
            await second.commit()

            async with database.unit_of_work() as uow:
                return await uow.expenses.find_by_id(expense.id)

        assert asyncio.run(run()).description == "Second"


class TestRepositoryRules:

    def test_add_duplicate_id_rejected(self, database, user_id, taxonomy, usd):
        expense = make_expense(user_id, taxonomy, usd)

        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.add(expense)
            async with database.unit_of_work() as uow:
                await uow.expenses.add(expense)

        with pytest.raises(DuplicateError):
            asyncio.run(run())

    def test_update_missing_rejected(self, database, user_id, taxonomy, usd):
        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.update(make_expense(user_id, taxonomy, usd))

        with pytest.raises(StorageError):
            asyncio.run(run())

    def test_delete(self, database, user_id, taxonomy, usd):
        expense = make_expense(user_id, taxonomy, usd)

        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.add(expense)
            async with database.unit_of_work() as uow:
                deleted = await uow.expenses.delete(expense.id)
                missing = await uow.expenses.delete(uuid4())
            return deleted, missing

        assert asyncio.run(run()) == (True, False)
        assert database.count("expenses") == 0

    def test_duplicate_invoice_number_rejected_at_commit(self, database, user_id):
        async def run():
            async with database.unit_of_work() as uow:
                await uow.invoices.add(make_invoice(user_id, "INV-1"))
            async with database.unit_of_work() as uow:
                await uow.invoices.add(make_invoice(uuid4(), "INV-1"))

        with pytest.raises(DuplicateError):
            asyncio.run(run())
        assert database.count("invoices") == 1

    def test_failed_commit_applies_nothing(self, database, user_id, taxonomy, usd):
        async def run():
            async with database.unit_of_work() as uow:
                await uow.invoices.add(make_invoice(user_id, "INV-1"))
            async with database.unit_of_work() as uow:
                await uow.expenses.add(make_expense(user_id, taxonomy, usd))
                await uow.invoices.add(make_invoice(user_id, "INV-1"))

        with pytest.raises(DuplicateError):
            asyncio.run(run())
        assert database.count("expenses") == 0

    def test_expense_queries(self, database, user_id, taxonomy, usd):
        other_user = uuid4()
        expenses = [
            make_expense(user_id, taxonomy, usd, day=date(2024, 1, 1)),
            make_expense(user_id, taxonomy, usd, day=date(2024, 1, 31), category="Meals"),
            make_expense(user_id, taxonomy, usd, day=date(2024, 2, 1)),
            make_expense(other_user, taxonomy, usd, day=date(2024, 1, 5)),
        ]

        async def run():
            async with database.unit_of_work() as uow:
                for expense in expenses:
                    await uow.expenses.add(expense)
            async with database.unit_of_work() as uow:
                return (
                    await uow.expenses.find_by_user_and_category(user_id, "travel"),
                    await uow.expenses.find_by_date_range(user_id, date(2024, 1, 1), date(2024, 2, 1)),
                    await uow.expenses.is_category_referenced(user_id, "MEALS"),
                    await uow.expenses.is_category_referenced(user_id, "Software"),
                    await uow.expenses.find_by_status(user_id, ExpenseStatus.DRAFT),
                )

        travel, january, meals_used, software_used, drafts = asyncio.run(run())
        assert len(travel) == 2
        assert [e.expense_date for e in january] == [date(2024, 1, 1), date(2024, 1, 31)]
        assert meals_used
        assert not software_used
        assert len(drafts) == 3

    def test_find_overlapping_budgets(self, database, user_id, usd):
        january = Budget.create(
            user_id=user_id, name="Jan", limit=usd(100), category="Travel",
            start_date=date(2024, 1, 1), end_date=date(2024, 2, 1),
        )

        async def run():
            async with database.unit_of_work() as uow:
                await uow.budgets.add(january)
            async with database.unit_of_work() as uow:
                return (
                    await uow.budgets.find_overlapping(user_id, "TRAVEL", date(2024, 1, 15), date(2024, 3, 1)),
                    await uow.budgets.find_overlapping(user_id, "Travel", date(2024, 2, 1), date(2024, 3, 1)),
                    await uow.budgets.find_overlapping(
                        user_id, "Travel", date(2024, 1, 1), date(2024, 2, 1), exclude_id=january.id
                    ),
                )

        overlapping, touching, excluded = asyncio.run(run())
        assert [b.id for b in overlapping] == [january.id]
        assert touching == []
        assert excluded == []

    def test_invoice_queries(self, database, user_id):
        async def run():
            async with database.unit_of_work() as uow:
                await uow.invoices.add(make_invoice(user_id, "INV-2024-0003"))
                await uow.invoices.add(make_invoice(user_id, "INV-2024-0010"))
            async with database.unit_of_work() as uow:
                return (
                    await uow.invoices.invoice_number_exists("INV-2024-0003"),
                    await uow.invoices.last_invoice_number("INV-2024-"),
                    await uow.invoices.last_invoice_number("INV-2025-"),
                    await uow.invoices.find_by_number("INV-2024-0010"),
                )

        exists, last, none, found = asyncio.run(run())
        assert exists
        assert last == "INV-2024-0010"
        assert none is None
        assert found.invoice_number == "INV-2024-0010"

    def test_category_taxonomy_per_user(self, database, user_id, taxonomy):
        async def run():
            async with database.unit_of_work() as uow:
                await uow.categories.save_taxonomy(user_id, taxonomy.register("Hardware"))
            async with database.unit_of_work() as uow:
                return (
                    await uow.categories.name_exists(user_id, "hardware"),
                    await uow.categories.name_exists(uuid4(), "hardware"),
                    await uow.categories.name_exists(uuid4(), "Office"),
                )

        assert asyncio.run(run()) == (True, False, True)


class TestEventDispatch:

    def test_events_dispatched_after_commit(self, database, notifier, user_id, taxonomy, usd):
        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.add(make_expense(user_id, taxonomy, usd))
                assert notifier.events == []

        asyncio.run(run())
        assert [e.event_type for e in notifier.events] == [DomainEventType.EXPENSE_CREATED]

    def test_rollback_discards_events(self, database, notifier, user_id, taxonomy, usd):
        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.add(make_expense(user_id, taxonomy, usd))
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(run())
        assert notifier.events == []

    def test_failed_commit_discards_events(self, database, notifier, user_id, usd):
        async def run():
            async with database.unit_of_work() as uow:
                await uow.invoices.add(make_invoice(user_id, "INV-1"))
            invoice = make_invoice(user_id, "INV-1")
            invoice.add_line_item("Work", usd(10), 1)
            invoice.send()
            async with database.unit_of_work() as uow:
                await uow.invoices.add(invoice)

        with pytest.raises(DuplicateError):
            asyncio.run(run())
        assert notifier.events == []

    def test_database_without_audit_logger(self, user_id, taxonomy, usd):
        database = InMemoryDatabase()

        async def run():
            async with database.unit_of_work() as uow:
                await uow.expenses.add(make_expense(user_id, taxonomy, usd))

        asyncio.run(run())
        assert database.count("expenses") == 1
