"""JSON-file backed semantic fact index.

Same semantics as ``MemorySemanticStore``; every mutation is written to
``<state_dir>/index.json``. Writes go to a temp file in the same directory
and then ``os.replace()`` the target, so readers never see partial data.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from ..errors import IndexWriteError
from ..sync.models import DocumentRef, StructuredData
from .memory import MemorySemanticStore

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.json"
FORMAT_VERSION = 1


class FileSemanticStore(MemorySemanticStore):
    """Semantic index persisted as JSON under *state_dir*.

    Args:
        state_dir: Directory holding ``index.json``. Created on first write.
    """

    def __init__(self, state_dir: Path) -> None:
        super().__init__()
        self._state_dir = Path(state_dir)
        self._load()

    @property
    def path(self) -> Path:
        return self._state_dir / INDEX_FILENAME

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise IndexWriteError(
                f"Cannot read index file {self.path}: {e}"
            ) from e

        for key, entry in raw.get("documents", {}).items():
            watermark = entry.get("watermark")
            if watermark is not None:
                self._watermarks[key] = int(watermark)
            if entry.get("facts") is None:
                continue
            document = DocumentRef(
                namespace=entry["namespace"], title=entry["title"]
            )
            self._data[key] = StructuredData(
                document=document,
                facts=entry["facts"],
                version_stamp=entry["version_stamp"],
                source_revision_id=entry["source_revision_id"],
            )
        logger.debug(
            "Loaded %d indexed documents from %s", len(self._data), self.path
        )

    def _persist(self) -> None:
        documents: dict[str, dict] = {}
        for key, watermark in self._watermarks.items():
            documents[key] = {"watermark": watermark, "facts": None}
        for key, data in self._data.items():
            documents[key] = {
                "namespace": data.document.namespace,
                "title": data.document.title,
                "facts": data.facts,
                "version_stamp": data.version_stamp,
                "source_revision_id": data.source_revision_id,
                "watermark": self._watermarks.get(key, data.version_stamp),
            }

        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self._state_dir), suffix=".tmp"
            )
        except OSError as e:
            raise IndexWriteError(f"Cannot write index: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(
                    {"version": FORMAT_VERSION, "documents": documents},
                    fh,
                    indent=2,
                )
            os.replace(tmp_path, self.path)
        except BaseException as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(e, OSError):
                raise IndexWriteError(f"Cannot write index: {e}") from e
            raise
