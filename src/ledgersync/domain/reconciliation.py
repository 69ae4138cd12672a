"""Apply provider change sets to the local ledger."""

import logging
from typing import Optional

from ledgersync.database.base import Database
from ledgersync.domain.category import CategoryRuleMatcher, transaction_type_for
from ledgersync.domain.entities import (
    Account,
    Category,
    ChangeSet,
    Linkage,
    ProviderRecord,
    ReconcileResult,
    TransactionDraft,
    SOURCE_IMPORT,
    SOURCE_PROVIDER,
)
from ledgersync.domain.errors import (
    LinkageRevokedError,
    MalformedRecordError,
    linkage_revoked,
    unknown_provider_account,
)
from ledgersync.domain.idempotency import compute_fingerprint, insert_if_absent
from ledgersync.utils.amount_parser import parse_amount
from ledgersync.utils.date_parser import parse_date

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Applies added/modified/removed provider records in one unit of work.

    Amounts are normalized here, once: with ``outflows_positive`` (the Plaid
    convention) provider amounts are negated so that money leaving an account
    is negative in the ledger.
    """

    def __init__(self, db: Database, matcher: CategoryRuleMatcher, outflows_positive: bool = True):
        self.db = db
        self.matcher = matcher
        self.outflows_positive = outflows_positive

    def reconcile(self, linkage: Linkage, change_set: ChangeSet) -> ReconcileResult:
        """Apply one page of provider changes for a linkage.

        Phases run in order added, modified, removed, so when the same record
        appears in both ``added`` and ``modified`` the modification wins.
        Malformed records are reported in ``errors`` and skipped; any other
        exception rolls back the entire page.

        Raises:
            LinkageRevokedError: If the linkage is revoked
        """
        if linkage.is_revoked:
            raise LinkageRevokedError(linkage_revoked(linkage.id))

        accounts = self.db.list_accounts(linkage_id=linkage.id)
        categories = self.db.list_categories()
        context = _PageContext(accounts, categories)
        result = ReconcileResult()

        with self.db.unit_of_work():
            for index, record in enumerate(change_set.added):
                draft = self._map_or_report(record, context, result, f"added[{index}]")
                if draft is not None:
                    self._apply_added(draft, result)

            for index, record in enumerate(change_set.modified):
                draft = self._map_or_report(record, context, result, f"modified[{index}]")
                if draft is not None:
                    self._apply_modified(draft, result)

            for index, external_id in enumerate(change_set.removed):
                if not external_id:
                    result.errors.append(f"removed[{index}]: missing transaction id")
                    continue
                self._apply_removed(external_id, result)

        logger.info(
            "Reconciled linkage %s: +%d ~%d -%d (%d rejected)",
            linkage.id,
            result.added,
            result.modified,
            result.removed,
            len(result.errors),
        )
        return result

    def _map_or_report(
        self, record: ProviderRecord, context: "_PageContext", result: ReconcileResult, label: str
    ) -> Optional[TransactionDraft]:
        try:
            return self._map(record, context)
        except MalformedRecordError as e:
            ident = record.external_id or "?"
            result.errors.append(f"{label} ({ident}): {e}")
            logger.warning("Rejected provider record %s (%s): %s", label, ident, e)
            return None

    def _map(self, record: ProviderRecord, context: "_PageContext") -> TransactionDraft:
        if not record.external_id:
            raise MalformedRecordError("missing transaction id")

        account = context.account_for(record.account_external_id)

        try:
            txn_date = parse_date(record.date)
            amount = parse_amount(record.amount)
        except ValueError as e:
            raise MalformedRecordError(str(e)) from None
        if self.outflows_positive:
            amount = -amount

        description = (record.description or record.merchant_name or "Unknown").strip()
        content_fingerprint = compute_fingerprint(account.id, txn_date, amount, description)

        category = context.category_named(record.category_hint)
        if category is None:
            category = context.category_by_id(self.matcher.classify(description))

        return TransactionDraft(
            account_id=account.id,
            date=txn_date,
            amount=amount,
            description=description,
            category_id=category.id if category is not None else None,
            type=transaction_type_for(amount, category),
            source=SOURCE_PROVIDER,
            fingerprint=compute_fingerprint(account.id, txn_date, amount, description, record.external_id),
            external_id=record.external_id,
            is_pending=bool(record.pending),
            content_fingerprint=content_fingerprint,
        )

    def _apply_added(self, draft: TransactionDraft, result: ReconcileResult) -> None:
        # Replay of a page we already applied
        if self.db.get_transaction_by_external_id(draft.external_id) is not None:
            return

        # Same transaction uploaded earlier from a CSV: adopt it instead of duplicating
        imported = self.db.get_transaction_by_fingerprint(draft.content_fingerprint)
        if imported is not None and imported.source == SOURCE_IMPORT and imported.external_id is None:
            self.db.update_transaction(
                imported.id,
                source=SOURCE_PROVIDER,
                external_id=draft.external_id,
                is_pending=draft.is_pending,
            )
            logger.debug("Adopted imported transaction %s as %s", imported.id, draft.external_id)
            return

        outcome = insert_if_absent(self.db, draft)
        if outcome.inserted:
            result.added += 1

    def _apply_modified(self, draft: TransactionDraft, result: ReconcileResult) -> None:
        existing = self.db.get_transaction_by_external_id(draft.external_id)
        if existing is None:
            # Provider modified something we never saw: treat as an add
            logger.info("Modified record %s not found locally; adding it", draft.external_id)
            self._apply_added(draft, result)
            return

        if existing.user_edited:
            self.db.update_transaction(
                existing.id,
                date=draft.date,
                amount=draft.amount,
                description=draft.description,
                is_pending=draft.is_pending,
            )
        else:
            self.db.update_transaction(
                existing.id,
                date=draft.date,
                amount=draft.amount,
                description=draft.description,
                is_pending=draft.is_pending,
                category_id=draft.category_id,
                type=draft.type,
                update_category=True,
            )
        result.modified += 1

    def _apply_removed(self, external_id: str, result: ReconcileResult) -> None:
        existing = self.db.get_transaction_by_external_id(external_id)
        if existing is None:
            return
        self.db.delete_transaction(existing.id)
        result.removed += 1


class _PageContext:
    """Account and category lookups loaded once per page."""

    def __init__(self, accounts: list[Account], categories: list[Category]):
        self.accounts = {a.external_account_id: a for a in accounts if a.external_account_id}
        self._only_account = accounts[0] if len(accounts) == 1 else None
        self.categories = {c.id: c for c in categories}
        self.categories_by_name = {c.name.lower(): c for c in categories}

    def account_for(self, external_account_id: Optional[str]) -> Account:
        if external_account_id is None and self._only_account is not None:
            return self._only_account
        account = self.accounts.get(external_account_id) if external_account_id else None
        if account is None:
            raise MalformedRecordError(unknown_provider_account(external_account_id))
        return account

    def category_named(self, name: Optional[str]) -> Optional[Category]:
        if not name:
            return None
        return self.categories_by_name.get(name.strip().lower())

    def category_by_id(self, category_id: Optional[int]) -> Optional[Category]:
        if category_id is None:
            return None
        return self.categories.get(category_id)
