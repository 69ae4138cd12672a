"""Saved CSV column mappings."""

from typing import Optional

from ledgersync.database.base import Database
from ledgersync.domain.entities import ColumnMapping as ColumnMappingEntity
from ledgersync.domain.errors import NotFoundError, ValidationError, account_not_found


class ColumnMappingService:
    """Service for saving and looking up CSV column mappings."""

    def __init__(self, db: Database):
        """Initialize column mapping service.

        Args:
            db: Database instance
        """
        self.db = db

    def save_mapping(
        self,
        institution: str,
        date_column: str,
        description_column: str,
        amount_column: Optional[str] = None,
        account_id: Optional[int] = None,
        debit_column: Optional[str] = None,
        credit_column: Optional[str] = None,
    ) -> ColumnMappingEntity:
        """Save a mapping for (institution, account), replacing any earlier one.

        Args:
            institution: Institution name
            date_column: CSV header holding the date
            description_column: CSV header holding the description
            amount_column: CSV header holding the signed amount
            account_id: Restrict the mapping to one account; None for institution-wide
            debit_column: CSV header holding outflows (with credit_column, instead of amount)
            credit_column: CSV header holding inflows

        Returns:
            The stored mapping

        Raises:
            ValidationError: If required columns are missing
            NotFoundError: If the account doesn't exist
        """
        institution = (institution or "").strip()
        if not institution:
            raise ValidationError("Institution is required")
        if not date_column or not description_column:
            raise ValidationError("Mapping must include date and description columns")
        if not amount_column and not (debit_column and credit_column):
            raise ValidationError("Mapping must include an amount column or both debit and credit columns")
        if account_id is not None and self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        existing = self.db.get_column_mapping(institution, account_id)
        if existing is None:
            mapping_id = self.db.create_column_mapping(
                institution=institution,
                account_id=account_id,
                date_column=date_column,
                amount_column=amount_column,
                description_column=description_column,
                debit_column=debit_column,
                credit_column=credit_column,
            )
        else:
            mapping_id = existing.id
            self.db.update_column_mapping(
                mapping_id,
                date_column=date_column,
                amount_column=amount_column,
                description_column=description_column,
                debit_column=debit_column,
                credit_column=credit_column,
            )

        mapping = self.db.get_column_mapping_by_id(mapping_id)
        assert mapping is not None
        return mapping

    def get_mapping(self, institution: str, account_id: Optional[int] = None) -> Optional[ColumnMappingEntity]:
        """Find the mapping for an upload.

        An account-specific mapping wins over the institution-wide one.
        """
        institution = (institution or "").strip()
        if account_id is not None:
            mapping = self.db.get_column_mapping(institution, account_id)
            if mapping is not None:
                return mapping
        return self.db.get_column_mapping(institution, None)

    def list_mappings(self, institution: Optional[str] = None) -> list[ColumnMappingEntity]:
        """List mappings, most recently updated first."""
        return self.db.list_column_mappings(institution=institution)
