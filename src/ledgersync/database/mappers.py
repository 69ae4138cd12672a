"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so schema changes stay out of the
reconciliation code.
"""

from ledgersync.domain import entities as domain
from ledgersync.database.models import (
    Linkage as ORMLinkage,
    Account as ORMAccount,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    Balance as ORMBalance,
    ColumnMapping as ORMColumnMapping,
    SyncLogEntry as ORMSyncLogEntry,
)


def linkage_to_domain(orm_linkage: ORMLinkage) -> domain.Linkage:
    """Convert SQLAlchemy Linkage model to domain Linkage entity."""
    return domain.Linkage(
        id=orm_linkage.id,
        item_id=orm_linkage.item_id,
        access_token=orm_linkage.access_token,
        institution_name=orm_linkage.institution_name,
        status=orm_linkage.status,
        cursor=orm_linkage.cursor,
        error_message=orm_linkage.error_message,
        last_synced_at=orm_linkage.last_synced_at,
        created_at=orm_linkage.created_at,
        updated_at=orm_linkage.updated_at,
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        institution=orm_account.institution,
        account_type=orm_account.account_type,
        external_account_id=orm_account.external_account_id,
        linkage_id=orm_account.linkage_id,
        created_at=orm_account.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        category_type=orm_category.category_type,
        keywords=orm_category.keywords,
        priority=orm_category.priority,
        created_at=orm_category.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        account_id=orm_transaction.account_id,
        date=orm_transaction.date,
        amount=orm_transaction.amount,
        description=orm_transaction.description,
        category_id=orm_transaction.category_id,
        type=orm_transaction.type,
        source=orm_transaction.source,
        fingerprint=orm_transaction.fingerprint,
        external_id=orm_transaction.external_id,
        is_pending=orm_transaction.is_pending,
        notes=orm_transaction.notes,
        user_edited=orm_transaction.user_edited,
        created_at=orm_transaction.created_at,
        updated_at=orm_transaction.updated_at,
    )


def balance_to_domain(orm_balance: ORMBalance) -> domain.Balance:
    """Convert SQLAlchemy Balance model to domain Balance entity."""
    return domain.Balance(
        id=orm_balance.id,
        account_id=orm_balance.account_id,
        date=orm_balance.date,
        amount=orm_balance.amount,
        source=orm_balance.source,
        updated_at=orm_balance.updated_at,
    )


def column_mapping_to_domain(orm_mapping: ORMColumnMapping) -> domain.ColumnMapping:
    """Convert SQLAlchemy ColumnMapping model to domain ColumnMapping entity."""
    return domain.ColumnMapping(
        id=orm_mapping.id,
        institution=orm_mapping.institution,
        account_id=orm_mapping.account_id,
        date_column=orm_mapping.date_column,
        amount_column=orm_mapping.amount_column,
        description_column=orm_mapping.description_column,
        debit_column=orm_mapping.debit_column,
        credit_column=orm_mapping.credit_column,
        created_at=orm_mapping.created_at,
        updated_at=orm_mapping.updated_at,
    )


def sync_log_to_domain(orm_entry: ORMSyncLogEntry) -> domain.SyncLogEntry:
    """Convert SQLAlchemy SyncLogEntry model to domain SyncLogEntry entity."""
    linkage = orm_entry.linkage
    return domain.SyncLogEntry(
        id=orm_entry.id,
        linkage_id=orm_entry.linkage_id,
        status=orm_entry.status,
        added=orm_entry.added,
        modified=orm_entry.modified,
        removed=orm_entry.removed,
        error_message=orm_entry.error_message,
        created_at=orm_entry.created_at,
        institution_name=linkage.institution_name if linkage is not None else None,
    )
