"""Incremental, cursor-based sync of one linkage."""

import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from ledgersync.database.base import Database
from ledgersync.domain.entities import SyncResult, SOURCE_PROVIDER
from ledgersync.domain.errors import (
    DomainError,
    LinkageRevokedError,
    ProviderError,
    SyncInProgressError,
    linkage_revoked,
    sync_in_progress,
)
from ledgersync.domain.idempotency import upsert_balance
from ledgersync.domain.linkage import ConnectionRegistry
from ledgersync.domain.reconciliation import ReconciliationEngine
from ledgersync.providers.base import ProviderFactory, SyncProvider

logger = logging.getLogger(__name__)


class LinkageLocks:
    """One non-blocking mutex per linkage id."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, linkage_id: int) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(linkage_id, threading.Lock())

    def is_locked(self, linkage_id: int) -> bool:
        return self._lock_for(linkage_id).locked()

    @contextmanager
    def hold(self, linkage_id: int) -> Iterator[None]:
        """Hold the linkage's lock for the duration of the block.

        Raises:
            SyncInProgressError: If another caller already holds it
        """
        lock = self._lock_for(linkage_id)
        if not lock.acquire(blocking=False):
            raise SyncInProgressError(sync_in_progress(linkage_id))
        try:
            yield
        finally:
            lock.release()


class SyncController:
    """Drives FETCH_PAGE -> RECONCILE_PAGE until the provider has no more pages.

    Each page's reconciliation and the cursor that follows it are committed
    together, so after a failure the stored cursor always points just past
    the last page that was applied.
    """

    def __init__(
        self,
        db: Database,
        engine: ReconciliationEngine,
        provider_factory: ProviderFactory,
        locks: Optional[LinkageLocks] = None,
    ):
        self.db = db
        self.engine = engine
        self.provider_factory = provider_factory
        self.locks = locks or LinkageLocks()
        self.registry = ConnectionRegistry(db)

    def sync(self, linkage_id: int, cancel_event: Optional[threading.Event] = None) -> SyncResult:
        """Pull and reconcile everything the provider has after the stored cursor.

        Fetch and reconcile failures stop the run, put the linkage into error
        status and come back in ``SyncResult.error`` with the counts applied so
        far. Cancellation is checked between pages only.

        Raises:
            NotFoundError: If the linkage doesn't exist
            LinkageRevokedError: If the linkage is revoked (nothing is fetched)
            SyncInProgressError: If the linkage is already being synced
        """
        linkage = self.registry.get(linkage_id)
        if linkage.is_revoked:
            raise LinkageRevokedError(linkage_revoked(linkage_id))

        with self.locks.hold(linkage_id):
            result = SyncResult(
                linkage_id=linkage_id,
                institution_name=linkage.institution_name,
                cursor=linkage.cursor,
            )
            logger.info("Syncing linkage %s (%s)", linkage_id, linkage.institution_name or linkage.item_id)

            try:
                provider = self.provider_factory(linkage)
                self._run_pages(linkage_id, provider, result, cancel_event)
            except LinkageRevokedError as e:
                # Revoked while we were running: leave the status alone
                result.error = str(e)
                logger.warning("Linkage %s revoked during sync", linkage_id)
                return result
            except Exception as e:
                result.error = str(e) or e.__class__.__name__
                logger.error("Sync of linkage %s failed: %s", linkage_id, result.error)
                self.registry.mark_error(linkage_id, result.error)
                return result

            if result.cancelled:
                logger.info("Sync of linkage %s cancelled at cursor %s", linkage_id, result.cursor)
                return result

            self.registry.mark_active(linkage_id)
            self._sync_balances(linkage_id, provider)

        logger.info(
            "Linkage %s synced: %d added, %d modified, %d removed",
            linkage_id,
            result.added,
            result.modified,
            result.removed,
        )
        return result

    def _run_pages(
        self,
        linkage_id: int,
        provider: SyncProvider,
        result: SyncResult,
        cancel_event: Optional[threading.Event],
    ) -> None:
        cursor = result.cursor
        while True:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                return

            page = provider.fetch_page(cursor)

            # Re-read so a revoke between pages is honored
            linkage = self.registry.get(linkage_id)
            with self.db.unit_of_work():
                page_result = self.engine.reconcile(linkage, page.changes)
                self.db.update_linkage_cursor(linkage_id, page.next_cursor)

            result.absorb(page_result)
            cursor = page.next_cursor
            result.cursor = cursor

            if not page.has_more:
                return

    def _sync_balances(self, linkage_id: int, provider: SyncProvider) -> None:
        """Record today's provider balances. Failures are logged, never raised."""
        try:
            balances = provider.fetch_balances()
        except ProviderError as e:
            logger.warning("Could not fetch balances for linkage %s: %s", linkage_id, e)
            return

        today = date.today()
        for balance in balances:
            account = self.db.get_account_by_external_id(balance.account_external_id)
            if account is None or account.linkage_id != linkage_id:
                logger.debug("Skipping balance for unlinked account %s", balance.account_external_id)
                continue
            try:
                upsert_balance(self.db, account.id, today, balance.current, SOURCE_PROVIDER)
            except DomainError as e:
                logger.warning("Could not store balance for account %s: %s", account.id, e)
