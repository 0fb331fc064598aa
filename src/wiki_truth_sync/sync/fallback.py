"""Eventual-consistency fallback for approval changes.

Every approval or unapproval enqueues one ``ReconciliationJob`` carrying
only the document identity. The job re-resolves target and latest
revisions when it runs, so a queue that drains late still writes current
truth. The interactive staged workflow is independent of this path:
whichever finishes last leaves the same end state.
"""

from __future__ import annotations

import logging

from .interfaces import JobRunner
from .models import DocumentRef, ReconciliationJob

logger = logging.getLogger(__name__)


class ApprovalListener:
    """Turn approval-state changes into queued reconciliation jobs.

    Args:
        runner: Queue that accepts ``ReconciliationJob`` instances.
        enabled: Capability toggle; when ``False`` nothing is enqueued.
    """

    def __init__(self, runner: JobRunner, enabled: bool = True) -> None:
        self.runner = runner
        self.enabled = enabled

    def on_approval_changed(self, document: DocumentRef) -> bool:
        """Enqueue a reconciliation job for *document*.

        Enqueue failures are logged and swallowed so the approval action
        itself never fails because of the queue.

        Returns:
            ``True`` if a job was enqueued.
        """
        if not self.enabled:
            logger.debug(
                "Reconciliation disabled, not enqueueing %s", document
            )
            return False

        job = ReconciliationJob(document=document)
        try:
            self.runner.enqueue(job)
        except Exception as exc:
            logger.error(
                "Failed to enqueue reconciliation for %s: %s",
                document,
                exc,
                extra={
                    "event": "enqueue_failed",
                    "document": document.key,
                    "job_id": job.job_id,
                },
            )
            return False

        logger.info(
            "Enqueued reconciliation job %s for %s",
            job.job_id,
            document,
            extra={
                "event": "job_enqueued",
                "document": document.key,
                "job_id": job.job_id,
            },
        )
        return True
