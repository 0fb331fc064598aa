"""Drain the reconciliation job queue."""

from __future__ import annotations

import logging

from ..sync.engine import TruthSyncEngine
from ..sync.models import ReconcileOutcome, ReconcileResult
from .queue import MemoryJobQueue

logger = logging.getLogger(__name__)


class JobWorker:
    """Run queued reconciliation jobs against an engine.

    Args:
        queue: Queue to drain.
        engine: Engine each job runs through.
        max_attempts: Executions before a job that keeps failing is dropped.
    """

    def __init__(
        self,
        queue: MemoryJobQueue,
        engine: TruthSyncEngine,
        max_attempts: int = 3,
    ) -> None:
        self.queue = queue
        self.engine = engine
        self.max_attempts = max_attempts

    def run_pending(self, limit: int | None = None) -> list[ReconcileResult]:
        """Run up to *limit* pending jobs (all of them when ``None``).

        Each job is claimed before it runs; jobs another worker claimed
        first are skipped. Every executed job is acknowledged, except
        ``FAILED`` ones with attempts left, which go to the back of the
        queue. A failing job never stops the rest of the run.

        Returns:
            One result per executed job, in execution order.
        """
        results: list[ReconcileResult] = []
        for job in self.queue.pending(limit):
            if not self.queue.claim(job.job_id):
                continue
            try:
                result = job.run(self.engine)
            except Exception as exc:
                logger.exception("Job %s crashed", job.job_id)
                result = ReconcileResult(
                    document=job.document,
                    outcome=ReconcileOutcome.FAILED,
                    error=str(exc),
                )
            results.append(result)

            if result.outcome != ReconcileOutcome.FAILED:
                self.queue.ack(job.job_id)
                continue

            attempted = job.retried()
            if attempted.attempts >= self.max_attempts:
                logger.error(
                    "Dropping job %s for %s after %d attempts: %s",
                    job.job_id,
                    job.document,
                    attempted.attempts,
                    result.error,
                    extra={
                        "event": "job_dropped",
                        "document": job.document.key,
                        "job_id": job.job_id,
                        "outcome": result.outcome.value,
                    },
                )
                self.queue.ack(job.job_id)
            else:
                logger.warning(
                    "Job %s for %s failed (attempt %d of %d), requeued",
                    job.job_id,
                    job.document,
                    attempted.attempts,
                    self.max_attempts,
                    extra={
                        "event": "job_requeued",
                        "document": job.document.key,
                        "job_id": job.job_id,
                    },
                )
                self.queue.requeue(attempted)

        if results:
            logger.info("Ran %d reconciliation jobs", len(results))
        return results
