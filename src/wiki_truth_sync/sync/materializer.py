"""Content materialization: revision id in, structured data out.

Runs the same content-to-facts derivation a normal page save would, but on
demand and for any historical revision. Produces an in-memory
``StructuredData`` value only; nothing is written to the index here.
"""

from __future__ import annotations

import enum
import logging

from ..core.encoding import decode_content
from ..errors import DerivationError
from .interfaces import ContentStore, Deriver
from .models import DocumentRef, StructuredData

logger = logging.getLogger(__name__)


class _NotFound(enum.Enum):
    NOT_FOUND = "not_found"

    def __bool__(self) -> bool:
        return False


NOT_FOUND = _NotFound.NOT_FOUND
"""Sentinel returned when the target revision does not exist."""


class ContentMaterializer:
    """Fetch a revision and derive its structured data.

    Args:
        store: Revision lookup and raw content access.
        deriver: Content-to-facts derivation.
    """

    def __init__(self, store: ContentStore, deriver: Deriver) -> None:
        self.store = store
        self.deriver = deriver

    def materialize(
        self, document: DocumentRef, target_revision_id: int | None
    ) -> StructuredData | _NotFound:
        """Derive structured data from *target_revision_id*.

        Returns:
            ``StructuredData`` stamped with the target revision id, or
            ``NOT_FOUND`` when the revision does not exist or belongs to a
            different document.

        Raises:
            DerivationError: If decoding or derivation fails.
        """
        if not target_revision_id:
            return NOT_FOUND

        revision = self.store.get_revision(target_revision_id)
        if revision is None:
            logger.warning(
                "Revision r%s not found for %s",
                target_revision_id,
                document,
                extra={
                    "event": "revision_not_found",
                    "document": document.key,
                    "target_revision": target_revision_id,
                },
            )
            return NOT_FOUND

        if revision.document.key != document.key:
            logger.warning(
                "Revision r%s belongs to %s, not %s",
                target_revision_id,
                revision.document,
                document,
                extra={
                    "event": "revision_not_found",
                    "document": document.key,
                    "target_revision": target_revision_id,
                },
            )
            return NOT_FOUND

        try:
            raw = self.store.get_raw_content(revision)
            text, encoding = decode_content(raw)
            facts = self.deriver.derive(document, text)
        except DerivationError:
            raise
        except Exception as exc:
            raise DerivationError(
                f"Failed to derive facts for {document} r{target_revision_id}: {exc}"
            ) from exc

        if encoding != "utf-8":
            logger.info(
                "Decoded %s r%s as %s", document, target_revision_id, encoding
            )

        return StructuredData(
            document=document,
            facts=facts,
            version_stamp=target_revision_id,
            source_revision_id=target_revision_id,
        )
