"""
Tests for async_utils module.

Covers run_sync, run_sync_limited, and init_semaphore.
"""

import asyncio
import threading
import time

import pytest

import wiki_truth_sync.core.async_utils as mod
from wiki_truth_sync.core.async_utils import (
    init_semaphore,
    run_sync,
    run_sync_limited,
)


def _sync_add(a: int, b: int) -> int:
    return a + b


@pytest.fixture(autouse=True)
def restore_semaphore():
    original = mod._semaphore
    yield
    mod._semaphore = original


async def test_run_sync_calls_function():
    """run_sync delegates to asyncio.to_thread with correct args."""
    assert await run_sync(_sync_add, 3, 4) == 7


async def test_run_sync_passes_kwargs():
    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    assert await run_sync(_kw_func, name="world") == "hello world"


async def test_run_sync_propagates_exceptions():
    def _boom():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await run_sync(_boom)


async def test_init_semaphore_sets_value():
    init_semaphore(5)
    assert isinstance(mod._semaphore, asyncio.Semaphore)
    assert mod._semaphore._value == 5


async def test_run_sync_limited_with_semaphore():
    init_semaphore(2)
    assert await run_sync_limited(_sync_add, 10, 20) == 30


async def test_run_sync_limited_without_semaphore():
    """run_sync_limited falls back to unbounded when semaphore is None."""
    mod._semaphore = None
    assert await run_sync_limited(_sync_add, 5, 6) == 11


async def test_run_sync_limited_concurrency_bound():
    """run_sync_limited actually limits concurrency via semaphore."""
    init_semaphore(2)

    max_concurrent = 0
    current_concurrent = 0
    lock = threading.Lock()

    def _track_concurrency(val):
        nonlocal max_concurrent, current_concurrent
        with lock:
            current_concurrent += 1
            max_concurrent = max(max_concurrent, current_concurrent)
        time.sleep(0.05)
        with lock:
            current_concurrent -= 1
        return val

    results = await asyncio.gather(
        *(run_sync_limited(_track_concurrency, i) for i in range(6))
    )

    assert results == [0, 1, 2, 3, 4, 5]
    assert max_concurrent <= 2
