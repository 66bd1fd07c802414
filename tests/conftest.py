"""
Shared fixtures.

Async code is driven with ``asyncio.run`` inside the tests. External
collaborators are replaced by the plain fakes below; no real services
are called.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.config import get_settings
from finance_tracker.models.category import CategoryTaxonomy
from finance_tracker.models.money import Money
from finance_tracker.models.user import User
from finance_tracker.services.external import (
    CategorySuggestion,
    DocumentExtraction,
    DocumentExtractor,
    ExpenseCategorizer,
    ExternalServiceError,
    FileStorage,
    Notifier,
)
from finance_tracker.services.storage import InMemoryDatabase


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeCategorizer(ExpenseCategorizer):
    """Returns a fixed suggestion, or raises if ``error`` is set."""

    def __init__(self, category_name: str = "Travel", confidence: float = 0.9, error: Optional[Exception] = None):
        self.category_name = category_name
        self.confidence = confidence
        self.error = error
        self.calls = []

    async def categorize(self, description, merchant_name=None, amount=None, receipt_text=None):
        self.calls.append(description)
        if self.error:
            raise self.error
        return CategorySuggestion(
            category_name=self.category_name,
            confidence=self.confidence,
            reasoning="test",
        )


class FakeDocumentExtractor(DocumentExtractor):

    def __init__(self, extraction: Optional[DocumentExtraction] = None, error: Optional[Exception] = None):
        self.extraction = extraction or DocumentExtraction(extracted_text="TAXI 42.00")
        self.error = error

    async def extract(self, content, filename):
        if self.error:
            raise self.error
        return self.extraction


class FakeFileStorage(FileStorage):

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.files = {}

    async def upload(self, content, filename, content_type):
        if self.fail:
            raise ExternalServiceError("upload failed")
        url = f"https://files.example.test/{filename}"
        self.files[url] = content
        return url

    async def delete(self, url):
        self.files.pop(url, None)


class RecordingNotifier(Notifier):

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events = []

    async def notify(self, event):
        if self.fail:
            raise ExternalServiceError("notifier down")
        self.events.append(event)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached; tests that patch the environment need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def taxonomy():
    return CategoryTaxonomy.default()


@pytest.fixture
def usd():
    def make(amount) -> Money:
        return Money(Decimal(str(amount)), "USD")
    return make


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def audit_logger(notifier):
    return AuditLogger(notifier)


@pytest.fixture
def database(audit_logger):
    return InMemoryDatabase(audit_logger=audit_logger)


@pytest.fixture
def user(database):
    """A stored user."""
    stored = User(email="Owner@Example.com", full_name="Owner", default_currency="usd")

    async def save():
        async with database.unit_of_work() as uow:
            await uow.users.add(stored)

    asyncio.run(save())
    return stored


@pytest.fixture
def jan():
    return date(2024, 1, 1), date(2024, 2, 1)
