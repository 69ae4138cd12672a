"""Transaction domain service for user-initiated writes."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgersync.database.base import Database
from ledgersync.domain.category import CategoryService, transaction_type_for
from ledgersync.domain.entities import (
    Transaction as TransactionEntity,
    SOURCE_MANUAL,
    TRANSACTION_TYPES,
)
from ledgersync.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    category_not_found,
    transaction_not_found,
)
from ledgersync.utils.amount_parser import CENTS

logger = logging.getLogger(__name__)


class TransactionService:
    """Service for manual entry and user edits.

    Edits never touch a row's fingerprint, source or provider id, so a later
    sync or re-upload still recognises the row.
    """

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db
        self.category_service = CategoryService(db)

    def create_manual_transaction(
        self,
        account_id: int,
        date: date,
        amount: Decimal,
        description: str,
        category_id: Optional[int] = None,
        type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Create a manual transaction.

        Args:
            account_id: Account ID
            date: Transaction date
            amount: Signed amount, outflows negative
            description: Description
            category_id: Category ID; classified from the description when omitted
            type: income, expense or transfer; derived when omitted
            notes: Optional notes

        Returns:
            Transaction ID

        Raises:
            NotFoundError: If the account or category doesn't exist
            ValidationError: If the description is empty or the type is unknown
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        description = (description or "").strip()
        if not description:
            raise ValidationError("Description is required")
        if type is not None and type not in TRANSACTION_TYPES:
            raise ValidationError(f"Invalid type '{type}'. Must be one of: {', '.join(TRANSACTION_TYPES)}")

        if category_id is None:
            category_id = self.category_service.load_matcher().classify(description)
            category = self.db.get_category(category_id) if category_id is not None else None
        else:
            category = self.db.get_category(category_id)
            if category is None:
                raise NotFoundError(category_not_found(category_id))

        amount = Decimal(amount).quantize(CENTS)
        return self.db.create_transaction(
            account_id=account_id,
            date=date,
            amount=amount,
            description=description,
            category_id=category_id,
            type=type or transaction_type_for(amount, category),
            source=SOURCE_MANUAL,
            notes=notes,
        )

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def update_transaction(
        self,
        transaction_id: int,
        date: Optional[date] = None,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        category_id: Optional[int] = None,
        type: Optional[str] = None,
        notes: Optional[str] = None,
        clear_category: bool = False,
    ) -> None:
        """Apply a user edit.

        The row is marked user-edited, which stops future provider
        modifications from recategorizing it.

        Raises:
            NotFoundError: If the transaction or category doesn't exist
            ValidationError: If the type is unknown or nothing would change
        """
        if self.db.get_transaction(transaction_id) is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if category_id is not None and clear_category:
            raise ValidationError("Cannot both set and clear the category")
        if category_id is not None and self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))
        if type is not None and type not in TRANSACTION_TYPES:
            raise ValidationError(f"Invalid type '{type}'. Must be one of: {', '.join(TRANSACTION_TYPES)}")
        if description is not None and not description.strip():
            raise ValidationError("Description cannot be empty")
        if all(v is None for v in (date, amount, description, category_id, type, notes)) and not clear_category:
            raise ValidationError("No changes given")

        self.db.update_transaction(
            transaction_id,
            date=date,
            amount=Decimal(amount).quantize(CENTS) if amount is not None else None,
            description=description.strip() if description is not None else None,
            category_id=category_id,
            type=type,
            notes=notes,
            user_edited=True,
            update_category=clear_category,
        )
        logger.debug("Transaction %s edited by user", transaction_id)

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        if self.db.get_transaction(transaction_id) is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        self.db.delete_transaction(transaction_id)
