"""Domain model entities for ledgersync.

These are pure data classes representing business concepts, independent of
database schema. The storage layer converts its rows into these before
handing them to services, and provider adapters produce the provider-side
records below, so reconciliation logic never touches ORM objects or SDK
models directly.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Optional


# Linkage lifecycle
LINKAGE_ACTIVE = "active"
LINKAGE_ERROR = "error"
LINKAGE_REVOKED = "revoked"
LINKAGE_STATUSES = (LINKAGE_ACTIVE, LINKAGE_ERROR, LINKAGE_REVOKED)

# Transaction provenance
SOURCE_MANUAL = "manual"
SOURCE_IMPORT = "import"
SOURCE_PROVIDER = "provider"
SOURCE_SEED = "seed"
TRANSACTION_SOURCES = (SOURCE_MANUAL, SOURCE_IMPORT, SOURCE_PROVIDER, SOURCE_SEED)
BALANCE_SOURCES = (SOURCE_MANUAL, SOURCE_IMPORT, SOURCE_PROVIDER)

# Transaction / category types
TYPE_INCOME = "income"
TYPE_EXPENSE = "expense"
TYPE_TRANSFER = "transfer"
TRANSACTION_TYPES = (TYPE_INCOME, TYPE_EXPENSE, TYPE_TRANSFER)

ACCOUNT_TYPES = ("checking", "savings", "credit_card", "investment", "loan", "other")

SYNC_SUCCESS = "success"
SYNC_ERROR = "error"


@dataclass(frozen=True)
class Linkage:
    """Connection to one external aggregation provider item."""

    id: int
    item_id: str
    access_token: str
    institution_name: Optional[str]
    status: str
    cursor: Optional[str]
    error_message: Optional[str]
    last_synced_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @property
    def is_revoked(self) -> bool:
        return self.status == LINKAGE_REVOKED

    def __repr__(self) -> str:
        # Keep the credential out of logs and tracebacks
        return (
            f"Linkage(id={self.id!r}, item_id={self.item_id!r}, "
            f"institution_name={self.institution_name!r}, status={self.status!r})"
        )


@dataclass(frozen=True)
class Account:
    """Financial account domain entity."""

    id: int
    name: str
    institution: Optional[str]
    account_type: str
    external_account_id: Optional[str]
    linkage_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Spending category with its keyword rules."""

    id: int
    name: str
    category_type: str
    keywords: Optional[str]
    priority: int
    created_at: datetime

    @property
    def keyword_list(self) -> list[str]:
        if not self.keywords:
            return []
        return [k.strip().lower() for k in self.keywords.split(",") if k.strip()]


@dataclass(frozen=True)
class CategoryRule:
    """A single keyword -> category rule."""

    keyword: str
    category_id: int


@dataclass(frozen=True)
class Transaction:
    """Ledger entry domain entity."""

    id: int
    account_id: Optional[int]
    date: date
    amount: Decimal
    description: str
    category_id: Optional[int]
    type: str
    source: str
    fingerprint: Optional[str]
    external_id: Optional[str]
    is_pending: bool
    notes: Optional[str]
    user_edited: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class TransactionDraft:
    """A transaction that has been mapped and fingerprinted but not stored."""

    account_id: int
    date: date
    amount: Decimal
    description: str
    category_id: Optional[int]
    type: str
    source: str
    fingerprint: str
    external_id: Optional[str] = None
    is_pending: bool = False
    content_fingerprint: Optional[str] = None


@dataclass(frozen=True)
class Balance:
    """Point-in-time balance snapshot for one account."""

    id: int
    account_id: int
    date: date
    amount: Decimal
    source: str
    updated_at: datetime


@dataclass(frozen=True)
class ColumnMapping:
    """Saved CSV column projection for an institution (and optionally an account)."""

    id: int
    institution: str
    account_id: Optional[int]
    date_column: str
    amount_column: Optional[str]
    description_column: str
    debit_column: Optional[str]
    credit_column: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def is_debit_credit(self) -> bool:
        return bool(self.debit_column and self.credit_column)


@dataclass(frozen=True)
class SyncLogEntry:
    """Immutable audit record of one sync run."""

    id: int
    linkage_id: int
    status: str
    added: int
    modified: int
    removed: int
    error_message: Optional[str]
    created_at: datetime
    institution_name: Optional[str] = None


@dataclass(frozen=True)
class ProviderRecord:
    """One transaction as reported by the aggregation provider.

    ``amount`` follows the provider's own sign convention; it is normalized
    by the reconciliation engine.
    """

    external_id: str
    date: object
    amount: object
    description: Optional[str]
    account_external_id: Optional[str] = None
    merchant_name: Optional[str] = None
    category_hint: Optional[str] = None
    pending: bool = False


@dataclass(frozen=True)
class ChangeSet:
    """Added/modified/removed records for one provider page."""

    added: list[ProviderRecord] = field(default_factory=list)
    modified: list[ProviderRecord] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.removed)


@dataclass(frozen=True)
class ProviderPage:
    """One page of the provider's cursor-based change stream."""

    changes: ChangeSet
    next_cursor: Optional[str]
    has_more: bool


@dataclass(frozen=True)
class ProviderBalance:
    """Current balance of one provider account."""

    account_external_id: str
    current: Decimal


@dataclass(frozen=True)
class InsertOutcome:
    """Result of a fingerprint-guarded insert."""

    inserted: bool
    transaction_id: Optional[int] = None
    existing_id: Optional[int] = None


@dataclass
class ReconcileResult:
    """Counts from applying one change set."""

    added: int = 0
    modified: int = 0
    removed: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class SyncResult:
    """Outcome of syncing one linkage."""

    linkage_id: int
    institution_name: Optional[str] = None
    added: int = 0
    modified: int = 0
    removed: int = 0
    errors: list[str] = field(default_factory=list)
    error: Optional[str] = None
    cursor: Optional[str] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    def absorb(self, result: ReconcileResult) -> None:
        """Add one page's counts to the running totals."""
        self.added += result.added
        self.modified += result.modified
        self.removed += result.removed
        self.errors.extend(result.errors)


@dataclass
class ImportResult:
    """Outcome of a batch import."""

    imported: int = 0
    duplicates: int = 0
    errors: list[str] = field(default_factory=list)
