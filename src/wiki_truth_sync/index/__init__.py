"""Semantic fact index backends.

- ``MemorySemanticStore`` -- process-lifetime store, used in tests and for
  ``index.backend: memory``.
- ``FileSemanticStore`` -- JSON file under the state directory.

Both enforce a per-document freshness watermark that survives
``clear_data``.
"""

from pathlib import Path

from .file import FileSemanticStore
from .memory import MemorySemanticStore


def create_index(backend: str, state_dir: Path) -> MemorySemanticStore:
    """Return the index for *backend* (``file`` or ``memory``)."""
    if backend == "memory":
        return MemorySemanticStore()
    return FileSemanticStore(state_dir)


__all__ = ["FileSemanticStore", "MemorySemanticStore", "create_index"]
