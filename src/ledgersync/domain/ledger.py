"""Read-only view of the ledger for reporting collaborators."""

from datetime import date
from typing import Optional

from ledgersync.database.base import Database
from ledgersync.domain.entities import (
    Account as AccountEntity,
    Balance as BalanceEntity,
    SyncLogEntry as SyncLogEntryEntity,
    Transaction as TransactionEntity,
)


class LedgerReader:
    """Query-only access to transactions, balances, accounts and the sync log."""

    def __init__(self, db: Database):
        self.db = db

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
    ) -> list[TransactionEntity]:
        """List transactions, newest first.

        Raises:
            ValueError: If start_date is after end_date
        """
        if start_date and end_date and start_date > end_date:
            raise ValueError("Start date must be before or equal to end date")
        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            account_id=account_id,
            category_id=category_id,
            uncategorized=uncategorized,
            source=source,
            search=search,
            limit=limit,
            offset=offset,
        )

    def list_balances(self, account_id: Optional[int] = None, limit: Optional[int] = None) -> list[BalanceEntity]:
        return self.db.list_balances(account_id=account_id, limit=limit)

    def list_accounts(self) -> list[AccountEntity]:
        return self.db.list_accounts()

    def recent_sync_log(self, limit: int = 50, linkage_id: Optional[int] = None) -> list[SyncLogEntryEntity]:
        """Latest sync runs, newest first, with the institution name attached."""
        return self.db.list_sync_log(limit=limit, linkage_id=linkage_id)
