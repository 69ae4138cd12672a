"""Fan-out over linkages and the sync log."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from ledgersync.database.base import Database
from ledgersync.domain.entities import SyncResult, SYNC_ERROR, SYNC_SUCCESS
from ledgersync.domain.errors import NotFoundError
from ledgersync.domain.linkage import ConnectionRegistry
from ledgersync.domain.sync import SyncController

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Runs the sync controller for each active linkage, one after another.

    A failure in one linkage never stops the others: it is captured into that
    linkage's result and written to the sync log.
    """

    def __init__(self, db: Database, controller: SyncController):
        self.db = db
        self.controller = controller
        self.registry = ConnectionRegistry(db)

    def sync_all(self, cancel_event: Optional[threading.Event] = None) -> list[SyncResult]:
        """Sync every active linkage and return one result per linkage."""
        linkages = self.registry.list_active()
        logger.info("Syncing %d active linkage(s)", len(linkages))

        results = []
        for linkage in linkages:
            if cancel_event is not None and cancel_event.is_set():
                break
            results.append(self.sync_linkage(linkage.id, cancel_event))
        return results

    def sync_linkage(self, linkage_id: int, cancel_event: Optional[threading.Event] = None) -> SyncResult:
        """Sync one linkage and append its sync log entry.

        Raises:
            NotFoundError: If the linkage doesn't exist
        """
        try:
            result = self.controller.sync(linkage_id, cancel_event)
        except NotFoundError:
            raise
        except Exception as e:
            logger.exception("Sync of linkage %s aborted", linkage_id)
            linkage = self.db.get_linkage(linkage_id)
            result = SyncResult(
                linkage_id=linkage_id,
                institution_name=linkage.institution_name if linkage else None,
                cursor=linkage.cursor if linkage else None,
                error=str(e) or e.__class__.__name__,
            )

        self._log(result)
        return result

    def _log(self, result: SyncResult) -> None:
        if result.ok:
            message = None
            if result.cancelled:
                message = "cancelled"
            elif result.errors:
                message = f"{len(result.errors)} record(s) rejected: {result.errors[0]}"
            status = SYNC_SUCCESS
        else:
            message = result.error
            status = SYNC_ERROR

        self.db.append_sync_log(
            linkage_id=result.linkage_id,
            status=status,
            added=result.added,
            modified=result.modified,
            removed=result.removed,
            error_message=message,
        )


class BackgroundSyncQueue:
    """Deferred syncs on a single worker thread.

    Only the worker touches the ledger while jobs are pending, which keeps the
    single-writer rule. Failed jobs are logged; their exception stays on the
    returned future.
    """

    def __init__(self, orchestrator: SyncOrchestrator):
        self.orchestrator = orchestrator
        self._cancel = threading.Event()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ledgersync-sync")

    def submit(self, linkage_id: int) -> "Future[SyncResult]":
        """Queue a sync of one linkage."""
        future = self._executor.submit(self.orchestrator.sync_linkage, linkage_id, self._cancel)
        future.add_done_callback(_log_failure)
        return future

    def submit_all(self) -> "Future[list[SyncResult]]":
        """Queue a sync of every active linkage."""
        future = self._executor.submit(self.orchestrator.sync_all, self._cancel)
        future.add_done_callback(_log_failure)
        return future

    def shutdown(self, wait: bool = True, cancel: bool = False) -> None:
        """Stop accepting work.

        With ``cancel``, queued jobs are dropped and a running job stops at its
        next page boundary.
        """
        if cancel:
            self._cancel.set()
        self._executor.shutdown(wait=wait, cancel_futures=cancel)

    def __enter__(self) -> "BackgroundSyncQueue":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=True)


def _log_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Background sync failed: %s", exc, exc_info=exc)
