"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional
from datetime import date
from decimal import Decimal

from ledgersync.domain.entities import (
    Linkage,
    Account,
    Category,
    Transaction,
    Balance,
    ColumnMapping,
    SyncLogEntry,
)


class Database(ABC):
    """Abstract ledger handle.

    Every write method commits immediately unless it runs inside
    ``unit_of_work()``, in which case the whole block commits or rolls back
    together.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """Group writes into one atomic commit.

        Nested calls join the outermost unit of work.
        """
        pass

    # Linkage operations
    @abstractmethod
    def create_linkage(self, item_id: str, access_token: str, institution_name: Optional[str]) -> int:
        """Create a linkage in active status. Returns linkage ID."""
        pass

    @abstractmethod
    def get_linkage(self, linkage_id: int) -> Optional[Linkage]:
        """Get linkage by ID."""
        pass

    @abstractmethod
    def get_linkage_by_item_id(self, item_id: str) -> Optional[Linkage]:
        """Get linkage by the provider's item identifier."""
        pass

    @abstractmethod
    def list_linkages(self, status: Optional[str] = None) -> list[Linkage]:
        """List linkages, optionally filtered by status."""
        pass

    @abstractmethod
    def update_linkage_status(
        self,
        linkage_id: int,
        status: str,
        error_message: Optional[str] = None,
        mark_synced: bool = False,
    ) -> None:
        """Set linkage status and error text; stamp last_synced_at if mark_synced."""
        pass

    @abstractmethod
    def update_linkage_cursor(self, linkage_id: int, cursor: Optional[str]) -> None:
        """Persist the provider cursor for a linkage."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        name: str,
        institution: Optional[str],
        account_type: str = "checking",
        external_account_id: Optional[str] = None,
        linkage_id: Optional[int] = None,
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_external_id(self, external_account_id: str) -> Optional[Account]:
        """Get account by provider account identifier."""
        pass

    @abstractmethod
    def list_accounts(self, linkage_id: Optional[int] = None) -> list[Account]:
        """List accounts, optionally only those bound to one linkage."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self,
        name: str,
        category_type: str = "expense",
        keywords: Optional[str] = None,
        priority: int = 0,
    ) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_name(self, name: str) -> Optional[Category]:
        """Get category by name (case-insensitive)."""
        pass

    @abstractmethod
    def list_categories(self) -> list[Category]:
        """List categories in rule priority order."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        account_id: Optional[int],
        date: date,
        amount: Decimal,
        description: str,
        category_id: Optional[int] = None,
        type: str = "expense",
        source: str = "manual",
        fingerprint: Optional[str] = None,
        external_id: Optional[str] = None,
        is_pending: bool = False,
        notes: Optional[str] = None,
        content_fingerprint: Optional[str] = None,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def get_transaction_by_fingerprint(self, fingerprint: str) -> Optional[Transaction]:
        """Get the transaction carrying a fingerprint, if any."""
        pass

    @abstractmethod
    def find_transaction_by_content(self, account_id: int, content_fingerprint: str) -> Optional[Transaction]:
        """Get a transaction on an account whose content hash matches, if any."""
        pass

    @abstractmethod
    def get_transaction_by_external_id(self, external_id: str) -> Optional[Transaction]:
        """Get the transaction carrying a provider record id, if any."""
        pass

    @abstractmethod
    def update_transaction(
        self,
        transaction_id: int,
        account_id: Optional[int] = None,
        date: Optional[date] = None,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        category_id: Optional[int] = None,
        type: Optional[str] = None,
        source: Optional[str] = None,
        fingerprint: Optional[str] = None,
        external_id: Optional[str] = None,
        is_pending: Optional[bool] = None,
        notes: Optional[str] = None,
        user_edited: Optional[bool] = None,
        update_category: bool = False,
    ) -> None:
        """Update transaction fields.

        Args:
            update_category: If True, update category_id even if it's None (to clear it)
        """
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        uncategorized: bool = False,
        source: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Transaction]:
        """List transactions with optional filters, newest first."""
        pass

    # Balance operations
    @abstractmethod
    def get_balance(self, account_id: int, on_date: date) -> Optional[Balance]:
        """Get the balance snapshot for (account, date)."""
        pass

    @abstractmethod
    def create_balance(self, account_id: int, on_date: date, amount: Decimal, source: str) -> int:
        """Create a balance snapshot. Returns balance ID."""
        pass

    @abstractmethod
    def update_balance(self, balance_id: int, amount: Decimal, source: str) -> None:
        """Replace amount and provenance of an existing snapshot."""
        pass

    @abstractmethod
    def list_balances(self, account_id: Optional[int] = None, limit: Optional[int] = None) -> list[Balance]:
        """List balance snapshots, newest date first."""
        pass

    # Column mapping operations
    @abstractmethod
    def get_column_mapping(self, institution: str, account_id: Optional[int]) -> Optional[ColumnMapping]:
        """Get the mapping saved for exactly (institution, account_id-or-None)."""
        pass

    @abstractmethod
    def create_column_mapping(
        self,
        institution: str,
        account_id: Optional[int],
        date_column: str,
        amount_column: Optional[str],
        description_column: str,
        debit_column: Optional[str] = None,
        credit_column: Optional[str] = None,
    ) -> int:
        """Create a column mapping. Returns mapping ID."""
        pass

    @abstractmethod
    def update_column_mapping(
        self,
        mapping_id: int,
        date_column: str,
        amount_column: Optional[str],
        description_column: str,
        debit_column: Optional[str] = None,
        credit_column: Optional[str] = None,
    ) -> None:
        """Replace the columns of an existing mapping."""
        pass

    @abstractmethod
    def get_column_mapping_by_id(self, mapping_id: int) -> Optional[ColumnMapping]:
        """Get column mapping by ID."""
        pass

    @abstractmethod
    def list_column_mappings(self, institution: Optional[str] = None) -> list[ColumnMapping]:
        """List mappings, most recently updated first."""
        pass

    # Sync log operations
    @abstractmethod
    def append_sync_log(
        self,
        linkage_id: int,
        status: str,
        added: int,
        modified: int,
        removed: int,
        error_message: Optional[str] = None,
    ) -> int:
        """Append one sync log entry. Returns entry ID."""
        pass

    @abstractmethod
    def list_sync_log(self, limit: int = 50, linkage_id: Optional[int] = None) -> list[SyncLogEntry]:
        """Most recent sync log entries with their linkage's institution name."""
        pass
