"""Fingerprint dedup for imported/provider transactions and balance upserts."""

import hashlib
import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgersync.database.base import Database
from ledgersync.domain.entities import (
    Balance,
    BALANCE_SOURCES,
    InsertOutcome,
    TransactionDraft,
)
from ledgersync.domain.errors import NotFoundError, ValidationError, account_not_found
from ledgersync.utils.amount_parser import CENTS

logger = logging.getLogger(__name__)


def compute_fingerprint(
    account_id: int,
    txn_date: date,
    amount: Decimal,
    description: str,
    external_id: Optional[str] = None,
) -> str:
    """Hash the canonical (account, date, amount, description, external id) tuple.

    Amounts are quantized to cents so "-5", "-5.0" and "-5.00" agree, and the
    description is trimmed but otherwise kept verbatim.
    """
    canonical = "|".join(
        [
            str(account_id),
            txn_date.isoformat(),
            str(Decimal(amount).quantize(CENTS)),
            (description or "").strip(),
            external_id or "",
        ]
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def insert_if_absent(db: Database, draft: TransactionDraft) -> InsertOutcome:
    """Insert a fingerprinted transaction unless one with that fingerprint exists.

    Raises:
        NotFoundError: If the draft's account does not exist
    """
    existing = db.get_transaction_by_fingerprint(draft.fingerprint)
    if existing is not None:
        logger.debug("Fingerprint %s already stored as transaction %s", draft.fingerprint[:12], existing.id)
        return InsertOutcome(inserted=False, existing_id=existing.id)

    if db.get_account(draft.account_id) is None:
        raise NotFoundError(account_not_found(draft.account_id))

    transaction_id = db.create_transaction(
        account_id=draft.account_id,
        date=draft.date,
        amount=draft.amount,
        description=draft.description,
        category_id=draft.category_id,
        type=draft.type,
        source=draft.source,
        fingerprint=draft.fingerprint,
        external_id=draft.external_id,
        is_pending=draft.is_pending,
        content_fingerprint=draft.content_fingerprint or draft.fingerprint,
    )
    return InsertOutcome(inserted=True, transaction_id=transaction_id)


def upsert_balance(
    db: Database,
    account_id: int,
    on_date: date,
    amount: Decimal,
    source: str = "manual",
) -> Balance:
    """Write the balance for (account, date), replacing any earlier value.

    Raises:
        ValidationError: If source is unknown
        NotFoundError: If the account does not exist
    """
    if source not in BALANCE_SOURCES:
        raise ValidationError(
            f"Invalid balance source '{source}'. Must be one of: {', '.join(BALANCE_SOURCES)}"
        )
    if db.get_account(account_id) is None:
        raise NotFoundError(account_not_found(account_id))

    amount = Decimal(amount).quantize(CENTS)
    with db.unit_of_work():
        existing = db.get_balance(account_id, on_date)
        if existing is None:
            db.create_balance(account_id, on_date, amount, source)
        else:
            db.update_balance(existing.id, amount, source)

    balance = db.get_balance(account_id, on_date)
    assert balance is not None
    return balance
