"""Reconciliation job queues.

A queue is an ordered list of ``ReconciliationJob`` entries. Enqueueing a
job for a document that already has one waiting keeps the existing entry:
the job only carries the document identity and resolves revisions when it
runs, so a second entry would do the same work twice. A job that a worker
has claimed no longer counts as waiting, so a change observed while it
runs gets an entry of its own.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from ..errors import JobQueueError
from ..sync.models import ReconciliationJob

logger = logging.getLogger(__name__)

JOBS_FILENAME = "jobs.json"


class MemoryJobQueue:
    """Job queue kept in memory for the lifetime of the process."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._jobs: list[ReconciliationJob] = []
        self._running: set[str] = set()

    def _waiting_for(self, job: ReconciliationJob) -> ReconciliationJob | None:
        for queued in self._jobs:
            if (
                queued.document == job.document
                and queued.job_id != job.job_id
                and queued.job_id not in self._running
            ):
                return queued
        return None

    def enqueue(self, job: ReconciliationJob) -> None:
        with self._lock:
            if self._waiting_for(job) is not None:
                logger.debug(
                    "Job for %s already pending, not enqueueing %s",
                    job.document,
                    job.job_id,
                )
                return
            self._jobs.append(job)
            self._persist()

    def pending(self, limit: int | None = None) -> list[ReconciliationJob]:
        """Jobs waiting to run, in enqueue order. Claimed jobs are left out."""
        with self._lock:
            jobs = [j for j in self._jobs if j.job_id not in self._running]
        return jobs if limit is None else jobs[:limit]

    def claim(self, job_id: str) -> bool:
        """Mark a job as running.

        Returns:
            False if the job is gone or another worker already claimed it.
        """
        with self._lock:
            if job_id in self._running:
                return False
            if not any(j.job_id == job_id for j in self._jobs):
                return False
            self._running.add(job_id)
            return True

    def ack(self, job_id: str) -> None:
        """Remove a finished job. Unknown ids are ignored."""
        with self._lock:
            self._running.discard(job_id)
            self._jobs = [j for j in self._jobs if j.job_id != job_id]
            self._persist()

    def requeue(self, job: ReconciliationJob) -> None:
        """Move *job* (replacing its old entry) to the back of the queue.

        The job is dropped instead when a newer job for the same document
        is already waiting; that one will do the same work.
        """
        with self._lock:
            self._running.discard(job.job_id)
            self._jobs = [j for j in self._jobs if j.job_id != job.job_id]
            newer = self._waiting_for(job)
            if newer is not None:
                logger.debug(
                    "Job %s superseded by %s for %s",
                    job.job_id,
                    newer.job_id,
                    job.document,
                )
            else:
                self._jobs.append(job)
            self._persist()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def _persist(self) -> None:
        """Hook for durable subclasses; called with the lock held."""


class FileJobQueue(MemoryJobQueue):
    """Job queue persisted to ``<state_dir>/jobs.json``.

    Args:
        state_dir: Directory holding the queue file. Created on first write.
    """

    def __init__(self, state_dir: Path) -> None:
        super().__init__()
        self._state_dir = Path(state_dir)
        self._load()

    @property
    def path(self) -> Path:
        return self._state_dir / JOBS_FILENAME

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, encoding="utf-8") as fh:
                raw = json.load(fh)
            self._jobs = [
                ReconciliationJob.model_validate(entry)
                for entry in raw.get("jobs", [])
            ]
        except (OSError, ValueError) as e:
            raise JobQueueError(
                f"Cannot read job queue {self.path}: {e}"
            ) from e

    def _persist(self) -> None:
        payload = {
            "version": 1,
            "jobs": [job.model_dump(mode="json") for job in self._jobs],
        }
        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self._state_dir), suffix=".tmp"
            )
        except OSError as e:
            raise JobQueueError(f"Cannot write job queue: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(e, OSError):
                raise JobQueueError(f"Cannot write job queue: {e}") from e
            raise
