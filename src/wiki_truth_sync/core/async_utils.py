"""Thread offloading for MCP handlers.

The engine, the wiki client and the stores are synchronous. Tool handlers
push every call into a worker thread; calls that reach the wiki also take
a slot from a shared semaphore so a burst of ``truth_sync`` requests
cannot open more than ``max_parallel_requests`` API connections.
"""

import asyncio
import logging
from typing import Any, Callable, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

# Set by the server lifespan; None means wiki calls are not bounded
_semaphore: asyncio.Semaphore | None = None


def init_semaphore(max_parallel: int = 5) -> None:
    """Bound concurrent wiki calls to *max_parallel*."""
    global _semaphore
    _semaphore = asyncio.Semaphore(max_parallel)
    logger.info("Concurrent wiki calls limited to %d", max_parallel)


async def run_sync(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Call *func* in a worker thread.

    For local work only: index lookups, queue operations and listener
    notifications. Wiki calls go through ``run_sync_limited``.

    Example:
        data = await run_sync(ctx.index.get_data, document)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_sync_limited(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Call *func* in a worker thread while holding a wiki call slot.

    A reconciliation makes several API requests (approval, latest
    revision, content, purge); the slot is held for all of them.
    """
    if _semaphore is None:
        return await run_sync(func, *args, **kwargs)
    async with _semaphore:
        return await run_sync(func, *args, **kwargs)
