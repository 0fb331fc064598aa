"""Index reconciliation: the single commit point of a sync.

``IndexReconciler.reconcile`` performs, for one document:

1. clear every fact the index holds for the document;
2. write the (already re-stamped) structured data;
3. invalidate the document's render cache.

Steps 1 and 2 form the commit. Their failure is logged and reported as
``FAILED``; it never propagates to the caller. Step 3 is best-effort and
its failure does not undo 1-2. Repeating the same call yields the same end
state.

Concurrent reconciliations of the same document inside one process are
serialised by a lock table keyed by document identity. Across processes
the last write wins.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone

from .interfaces import RenderCache, SemanticIndex
from .models import (
    DocumentRef,
    ReconcileOutcome,
    ReconcileResult,
    StructuredData,
)

logger = logging.getLogger(__name__)


class DocumentLockTable:
    """Process-local mutual exclusion keyed by document identity.

    Locks are created on first use and dropped once no thread holds or
    waits for them, so the table does not grow with every page ever synced.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, document: DocumentRef):
        key = document.key
        with self._guard:
            lock, users = self._locks.get(key, (threading.Lock(), 0))
            self._locks[key] = (lock, users + 1)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                lock, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class IndexReconciler:
    """Replace a document's indexed facts and invalidate its render cache.

    Args:
        index: The semantic index.
        cache: Render cache to invalidate after a successful write.
        locks: Optional shared lock table (one is created if omitted).
    """

    def __init__(
        self,
        index: SemanticIndex,
        cache: RenderCache | None = None,
        locks: DocumentLockTable | None = None,
    ) -> None:
        self.index = index
        self.cache = cache
        self.locks = locks or DocumentLockTable()

    def reconcile(
        self, document: DocumentRef, data: StructuredData
    ) -> ReconcileResult:
        """Clear and rewrite *document*'s facts with *data*.

        Returns:
            ``ReconcileResult`` with outcome ``OK`` or ``FAILED``.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        log_fields = {
            "document": document.key,
            "target_revision": data.source_revision_id,
            "latest_revision": data.version_stamp,
        }

        with self.locks.hold(document):
            try:
                self.index.clear_data(document)
                self.index.update_data(data)
            except Exception as exc:
                logger.error(
                    "Index write failed for %s (r%s stamped r%s): %s",
                    document,
                    data.source_revision_id,
                    data.version_stamp,
                    exc,
                    extra={
                        **log_fields,
                        "event": "index_write_failed",
                        "outcome": ReconcileOutcome.FAILED.value,
                    },
                )
                return ReconcileResult(
                    document=document,
                    outcome=ReconcileOutcome.FAILED,
                    target_revision_id=data.source_revision_id,
                    latest_revision_id=data.version_stamp,
                    error=f"index write failed: {exc}",
                    started_at=started_at,
                    completed_at=datetime.now(timezone.utc).isoformat(),
                )

        self.invalidate_cache(document)

        logger.info(
            "Reconciled %s: content of r%s indexed as r%s",
            document,
            data.source_revision_id,
            data.version_stamp,
            extra={
                **log_fields,
                "event": "reconciled",
                "outcome": ReconcileOutcome.OK.value,
            },
        )
        return ReconcileResult(
            document=document,
            outcome=ReconcileOutcome.OK,
            target_revision_id=data.source_revision_id,
            latest_revision_id=data.version_stamp,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )

    def invalidate_cache(self, document: DocumentRef) -> None:
        """Best-effort render cache invalidation; failures are only logged."""
        if self.cache is None:
            return
        try:
            self.cache.invalidate(document)
        except Exception as exc:
            logger.warning(
                "Render cache invalidation failed for %s: %s",
                document,
                exc,
                extra={
                    "event": "cache_invalidation_failed",
                    "document": document.key,
                },
            )
