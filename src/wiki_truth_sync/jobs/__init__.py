"""Background reconciliation jobs: queues and the worker that drains them."""

from pathlib import Path

from .queue import FileJobQueue, MemoryJobQueue
from .worker import JobWorker


def create_queue(backend: str, state_dir: Path) -> MemoryJobQueue:
    """Return the job queue for *backend* (``file`` or ``memory``)."""
    if backend == "memory":
        return MemoryJobQueue()
    return FileJobQueue(state_dir)


__all__ = ["FileJobQueue", "JobWorker", "MemoryJobQueue", "create_queue"]
