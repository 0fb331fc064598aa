"""Truth sync engine: one reconciliation for one document.

``TruthSyncEngine.sync_document`` chains the pipeline with state read at
call time:

1. Resolve the target revision (override > approved > latest).
2. Read the latest revision id.
3. Materialize structured data from the target revision.
4. Re-stamp it with the latest revision id.
5. Clear and rewrite the index, then invalidate the render cache.

The engine never raises. Every failure becomes a ``ReconcileResult``
(``SKIPPED`` when the target revision is missing, ``FAILED`` when
derivation or the index write fails, ``DISABLED`` when the capability
toggle is off) and is logged with document and revision ids.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..errors import DerivationError, RevisionNotFound
from .derivation import AnnotationDeriver
from .interfaces import (
    ApprovalTracker,
    ContentStore,
    Deriver,
    RenderCache,
    SemanticIndex,
)
from .materializer import NOT_FOUND, ContentMaterializer
from .models import DocumentRef, ReconcileOutcome, ReconcileResult
from .reconciler import DocumentLockTable, IndexReconciler
from .resolver import resolve_target
from .spoofer import stamp

logger = logging.getLogger(__name__)


class TruthSyncEngine:
    """Reconcile a document's indexed facts with its approved revision.

    Args:
        store: Revision lookup (latest id, revision, raw content).
        tracker: Approved revision lookup.
        index: Semantic index to clear and rewrite.
        cache: Render cache invalidated after each write.
        deriver: Content-to-facts derivation. Defaults to
            ``AnnotationDeriver``.
        enabled: Capability toggle computed once at startup. When ``False``
            every call returns ``DISABLED`` without touching any
            collaborator.
        locks: Lock table shared with other engines in this process.
    """

    def __init__(
        self,
        store: ContentStore,
        tracker: ApprovalTracker,
        index: SemanticIndex,
        cache: RenderCache | None = None,
        deriver: Deriver | None = None,
        enabled: bool = True,
        locks: DocumentLockTable | None = None,
    ) -> None:
        self.store = store
        self.tracker = tracker
        self.index = index
        self.enabled = enabled
        self.materializer = ContentMaterializer(
            store, deriver or AnnotationDeriver()
        )
        self.reconciler = IndexReconciler(index, cache, locks)

    def resolve(
        self, document: DocumentRef, override: int | None = None
    ) -> int | None:
        """Return the target revision id for *document*."""
        return resolve_target(document, self.tracker, self.store, override)

    def sync_document(
        self, document: DocumentRef, override: int | None = None
    ) -> ReconcileResult:
        """Run one full reconciliation for *document*.

        Args:
            document: Page to reconcile.
            override: Explicit target revision id (``revsync``).

        Returns:
            The ``ReconcileResult``; never raises.
        """
        started_at = datetime.now(timezone.utc).isoformat()

        if not self.enabled:
            logger.debug("Reconciliation disabled, skipping %s", document)
            return ReconcileResult(
                document=document,
                outcome=ReconcileOutcome.DISABLED,
                error="semantic index capability is disabled",
                started_at=started_at,
                completed_at=datetime.now(timezone.utc).isoformat(),
            )

        target_id: int | None = None
        latest_id: int | None = None
        try:
            target_id = self.resolve(document, override)
            latest_id = self.store.get_latest_revision_id(document)
            data = self.materializer.materialize(document, target_id)
        except DerivationError as exc:
            return self._failed(
                document, target_id, latest_id, str(exc), started_at,
                event="derivation_failed",
            )
        except Exception as exc:
            logger.exception("Unexpected error preparing %s", document)
            return self._failed(
                document, target_id, latest_id,
                f"unexpected error: {exc}", started_at,
                event="sync_error",
            )

        if data is NOT_FOUND or not latest_id:
            reason = (
                str(RevisionNotFound(target_id))
                if data is NOT_FOUND
                else "document has no latest revision"
            )
            logger.info(
                "Skipping reconciliation of %s: %s",
                document,
                reason,
                extra={
                    "event": "sync_skipped",
                    "document": document.key,
                    "target_revision": target_id,
                    "latest_revision": latest_id,
                    "outcome": ReconcileOutcome.SKIPPED.value,
                },
            )
            # The page still renders against fresh state
            self.reconciler.invalidate_cache(document)
            return ReconcileResult(
                document=document,
                outcome=ReconcileOutcome.SKIPPED,
                target_revision_id=target_id,
                latest_revision_id=latest_id,
                error=reason,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc).isoformat(),
            )

        spoofed = stamp(data, latest_id)
        return self.reconciler.reconcile(document, spoofed)

    def _failed(
        self,
        document: DocumentRef,
        target_id: int | None,
        latest_id: int | None,
        error: str,
        started_at: str,
        event: str,
    ) -> ReconcileResult:
        logger.error(
            "Reconciliation of %s failed: %s",
            document,
            error,
            extra={
                "event": event,
                "document": document.key,
                "target_revision": target_id,
                "latest_revision": latest_id,
                "outcome": ReconcileOutcome.FAILED.value,
            },
        )
        return ReconcileResult(
            document=document,
            outcome=ReconcileOutcome.FAILED,
            target_revision_id=target_id,
            latest_revision_id=latest_id,
            error=error,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
