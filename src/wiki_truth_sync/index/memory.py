"""In-process semantic fact index.

Holds one ``StructuredData`` set per document plus a per-document
freshness watermark: the highest version stamp the index has accepted.
``clear_data`` removes the facts but keeps the watermark, so a write
stamped older than what was already indexed is refused with
``StaleWriteError`` even right after a clear.
"""

from __future__ import annotations

import logging
import threading

from ..errors import StaleWriteError
from ..sync.models import DocumentRef, FactValue, StructuredData

logger = logging.getLogger(__name__)


class MemorySemanticStore:
    """Semantic index kept in memory for the lifetime of the process."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, StructuredData] = {}
        self._watermarks: dict[str, int] = {}

    # ------------------------------------------------------------------
    # SemanticIndex protocol
    # ------------------------------------------------------------------

    def clear_data(self, document: DocumentRef) -> None:
        with self._lock:
            removed = self._data.pop(document.key, None)
            self._persist()
        if removed is not None:
            logger.debug(
                "Cleared %d properties for %s", len(removed.facts), document
            )

    def update_data(self, data: StructuredData) -> None:
        """Store *data* as the document's fact set.

        Raises:
            StaleWriteError: If ``data.version_stamp`` is older than the
                document's watermark.
        """
        key = data.document.key
        with self._lock:
            watermark = self._watermarks.get(key)
            if watermark is not None and data.version_stamp < watermark:
                raise StaleWriteError(key, data.version_stamp, watermark)
            self._data[key] = data
            self._watermarks[key] = data.version_stamp
            self._persist()
        logger.debug(
            "Indexed %d properties for %s stamped r%s",
            len(data.facts),
            data.document,
            data.version_stamp,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_data(self, document: DocumentRef) -> StructuredData | None:
        with self._lock:
            return self._data.get(document.key)

    def get_watermark(self, document: DocumentRef) -> int | None:
        """Highest version stamp accepted for *document*, if any."""
        with self._lock:
            return self._watermarks.get(document.key)

    def get_values(
        self, document: DocumentRef, prop: str
    ) -> list[FactValue]:
        data = self.get_data(document)
        return data.values(prop) if data is not None else []

    def find_documents(
        self, prop: str, value: FactValue | None = None
    ) -> list[DocumentRef]:
        """Documents that record *prop* (with *value*, when given)."""
        with self._lock:
            sets = list(self._data.values())
        found = []
        for data in sets:
            values = data.facts.get(prop)
            if not values:
                continue
            if value is None or value in values:
                found.append(data.document)
        return sorted(found, key=lambda d: (d.namespace, d.title))

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def _persist(self) -> None:
        """Hook for durable subclasses; called with the lock held."""
