"""Account domain service."""

from typing import Optional
from ledgersync.database.base import Database
from ledgersync.domain.entities import Account as AccountEntity, ACCOUNT_TYPES
from ledgersync.domain.errors import ConflictError, ValidationError


class AccountService:
    """Service for managing local (manual) accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(self, name: str, institution: Optional[str] = None, account_type: str = "checking") -> int:
        """Create a new manual account.

        Args:
            name: Account name
            institution: Institution name
            account_type: checking, savings, credit_card, investment, loan or other

        Returns:
            Account ID

        Raises:
            ValidationError: If the type is unknown
            ConflictError: If a manual account with the same name exists
        """
        if account_type not in ACCOUNT_TYPES:
            raise ValidationError(
                f"Invalid account type '{account_type}'. Must be one of: {', '.join(ACCOUNT_TYPES)}"
            )

        # Linked accounts may share names across institutions; manual ones may not
        for acc in self.db.list_accounts():
            if acc.linkage_id is None and acc.name == name:
                raise ConflictError(f"Account with name '{name}' already exists")

        return self.db.create_account(name=name, institution=institution, account_type=account_type)

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts."""
        return self.db.list_accounts()

    def resolve(self, account: str | int) -> int:
        """Resolve an account name or ID to an account ID.

        Raises:
            ValueError: If the account is not found
        """
        try:
            account_id = int(account)
        except (ValueError, TypeError):
            account_id = None

        if account_id is not None:
            if self.db.get_account(account_id) is None:
                raise ValueError(f"Account ID {account_id} not found")
            return account_id

        for acc in self.db.list_accounts():
            if acc.name == account:
                return acc.id
        raise ValueError(f"Account '{account}' not found")
