"""Shared pytest fixtures for ledgersync tests."""

import os
import tempfile
from typing import Optional

import pytest

from ledgersync.database.factories import create_sqlite_database
from ledgersync.domain.account import AccountService
from ledgersync.domain.category import CategoryService
from ledgersync.domain.entities import ChangeSet, ProviderPage, ProviderRecord
from ledgersync.domain.linkage import ConnectionRegistry
from ledgersync.domain.reconciliation import ReconciliationEngine
from ledgersync.domain.transaction import TransactionService
from ledgersync.providers.base import SyncProvider


class FakeProvider(SyncProvider):
    """Serves scripted pages keyed by the cursor they follow.

    ``pages`` maps an incoming cursor (None for the first call) to a
    ProviderPage, or to an exception to raise for that cursor.
    """

    def __init__(self, pages: dict, balances: Optional[list] = None):
        self.pages = pages
        self.balances = balances or []
        self.calls: list[Optional[str]] = []

    def fetch_page(self, cursor):
        self.calls.append(cursor)
        page = self.pages.get(cursor)
        if page is None:
            return ProviderPage(changes=ChangeSet(), next_cursor=cursor, has_more=False)
        if isinstance(page, Exception):
            raise page
        return page

    def fetch_balances(self):
        if isinstance(self.balances, Exception):
            raise self.balances
        return self.balances


def record(external_id, amount, description="Coffee shop", account="acc-1", on="2024-03-01", **kwargs):
    """Build a provider record in the provider's own sign convention."""
    return ProviderRecord(
        external_id=external_id,
        account_external_id=account,
        date=on,
        amount=amount,
        description=description,
        **kwargs,
    )


def page(added=(), modified=(), removed=(), next_cursor="c1", has_more=False):
    return ProviderPage(
        changes=ChangeSet(added=list(added), modified=list(modified), removed=list(removed)),
        next_cursor=next_cursor,
        has_more=has_more,
    )


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def registry(temp_db):
    """Create a ConnectionRegistry with a temporary database."""
    return ConnectionRegistry(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Create a manual account for testing."""
    account_id = account_service.create_account(name="Test Account", institution="Test Bank")
    return account_service.get_account(account_id)


@pytest.fixture
def sample_categories(category_service):
    """Seed the default categories and return {name: id}."""
    category_service.seed_defaults()
    return {c.name: c.id for c in category_service.list_categories()}


@pytest.fixture
def linkage(registry):
    """An active linkage with one linked account, external id 'acc-1'."""
    linkage = registry.register("item-1", "access-sandbox-1", "First Bank")
    registry.link_account(linkage.id, "acc-1", "First Checking")
    return registry.get(linkage.id)


@pytest.fixture
def linked_account(temp_db, linkage):
    return temp_db.get_account_by_external_id("acc-1")


@pytest.fixture
def engine(temp_db, sample_categories, category_service):
    """Reconciliation engine over the default rules, Plaid sign convention."""
    return ReconciliationEngine(temp_db, category_service.load_matcher())


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()

