"""Connection registry for aggregation provider linkages."""

import logging
from typing import Optional

from ledgersync.database.base import Database
from ledgersync.domain.entities import (
    Account as AccountEntity,
    Linkage as LinkageEntity,
    LINKAGE_ACTIVE,
    LINKAGE_ERROR,
    LINKAGE_REVOKED,
    ACCOUNT_TYPES,
)
from ledgersync.domain.errors import (
    ConflictError,
    LinkageRevokedError,
    NotFoundError,
    ValidationError,
    linkage_not_found,
    linkage_revoked,
)

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Tracks provider linkages, their accounts and lifecycle status.

    Every status change is committed before the method returns, so the next
    read in the same process sees it.
    """

    def __init__(self, db: Database):
        """Initialize connection registry.

        Args:
            db: Database instance
        """
        self.db = db

    def register(self, item_id: str, access_token: str, institution_name: Optional[str] = None) -> LinkageEntity:
        """Record a completed token exchange as an active linkage.

        Args:
            item_id: Provider item identifier
            access_token: Opaque provider credential
            institution_name: Display name of the institution

        Returns:
            The new linkage (status active, no cursor)

        Raises:
            ValidationError: If item_id or access_token is empty
            ConflictError: If the item is already registered
        """
        if not item_id or not access_token:
            raise ValidationError("item_id and access_token are required")
        if self.db.get_linkage_by_item_id(item_id) is not None:
            raise ConflictError(f"Item '{item_id}' is already registered")

        linkage_id = self.db.create_linkage(
            item_id=item_id, access_token=access_token, institution_name=institution_name
        )
        logger.info("Registered linkage %s for %s", linkage_id, institution_name or item_id)
        return self.get(linkage_id)

    def get(self, linkage_id: int) -> LinkageEntity:
        """Get a linkage.

        Raises:
            NotFoundError: If the linkage doesn't exist
        """
        linkage = self.db.get_linkage(linkage_id)
        if linkage is None:
            raise NotFoundError(linkage_not_found(linkage_id))
        return linkage

    def list_linkages(self) -> list[LinkageEntity]:
        """List linkages in every status."""
        return self.db.list_linkages()

    def list_active(self) -> list[LinkageEntity]:
        """List linkages eligible for scheduled sync."""
        return self.db.list_linkages(status=LINKAGE_ACTIVE)

    def mark_error(self, linkage_id: int, message: str) -> None:
        """Put a linkage into error status with the failure text.

        A revoked linkage stays revoked.
        """
        linkage = self.get(linkage_id)
        if linkage.is_revoked:
            logger.warning("Ignoring error for revoked linkage %s: %s", linkage_id, message)
            return
        self.db.update_linkage_status(linkage_id, LINKAGE_ERROR, error_message=message)
        logger.warning("Linkage %s marked as error: %s", linkage_id, message)

    def mark_active(self, linkage_id: int) -> None:
        """Return a linkage to active status after a successful sync."""
        linkage = self.get(linkage_id)
        if linkage.is_revoked:
            raise LinkageRevokedError(linkage_revoked(linkage_id))
        self.db.update_linkage_status(linkage_id, LINKAGE_ACTIVE, error_message=None, mark_synced=True)

    def revoke(self, linkage_id: int) -> None:
        """Disconnect a linkage. Terminal and idempotent.

        Accounts and transactions stay in place for provenance.
        """
        linkage = self.get(linkage_id)
        if linkage.is_revoked:
            return
        self.db.update_linkage_status(linkage_id, LINKAGE_REVOKED, error_message=None)
        logger.info("Revoked linkage %s", linkage_id)

    def link_account(
        self,
        linkage_id: int,
        external_account_id: str,
        name: str,
        account_type: str = "checking",
    ) -> AccountEntity:
        """Create the local account for a provider account, or return it if present.

        Raises:
            LinkageRevokedError: If the linkage is revoked
            ValidationError: If the account type is unknown
            ConflictError: If the provider account belongs to another linkage
        """
        linkage = self.get(linkage_id)
        if linkage.is_revoked:
            raise LinkageRevokedError(linkage_revoked(linkage_id))
        if account_type not in ACCOUNT_TYPES:
            raise ValidationError(
                f"Invalid account type '{account_type}'. Must be one of: {', '.join(ACCOUNT_TYPES)}"
            )

        existing = self.db.get_account_by_external_id(external_account_id)
        if existing is not None:
            if existing.linkage_id != linkage_id:
                raise ConflictError(
                    f"Account '{external_account_id}' is already linked to another connection"
                )
            return existing

        account_id = self.db.create_account(
            name=name,
            institution=linkage.institution_name,
            account_type=account_type,
            external_account_id=external_account_id,
            linkage_id=linkage_id,
        )
        account = self.db.get_account(account_id)
        assert account is not None
        return account

    def accounts_for(self, linkage_id: int) -> list[AccountEntity]:
        """Accounts bound to a linkage."""
        return self.db.list_accounts(linkage_id=linkage_id)
