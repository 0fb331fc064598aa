"""Protocols for the collaborators the sync engine depends on.

The engine never imports a concrete backend. ``WikiClient`` satisfies
``ContentStore``, ``ApprovalTracker`` and ``RenderCache``; the stores in
``wiki_truth_sync.index`` satisfy ``SemanticIndex``; the queues in
``wiki_truth_sync.jobs`` satisfy ``JobRunner``.
"""

from __future__ import annotations

from typing import Protocol

from .models import (
    DocumentRef,
    FactValue,
    ReconciliationJob,
    Revision,
    StructuredData,
)


class ContentStore(Protocol):
    """Document and revision lookup."""

    def get_latest_revision_id(self, document: DocumentRef) -> int | None:
        """Return the latest revision id, or ``None`` if the page is missing."""
        ...  # pragma: no cover

    def get_revision(self, revision_id: int) -> Revision | None:
        """Return the revision, or ``None`` if it does not exist."""
        ...  # pragma: no cover

    def get_raw_content(self, revision: Revision) -> bytes:
        """Return the raw main-slot content of *revision*."""
        ...  # pragma: no cover


class ApprovalTracker(Protocol):
    def get_approved_revision_id(self, document: DocumentRef) -> int | None:
        """Return the approved revision id, or ``None`` when unapproved."""
        ...  # pragma: no cover


class SemanticIndex(Protocol):
    """One structured-data set per document, keyed by document identity."""

    def clear_data(self, document: DocumentRef) -> None:
        ...  # pragma: no cover

    def update_data(self, data: StructuredData) -> None:
        """Store *data*.

        Raises:
            StaleWriteError: If ``data.version_stamp`` is older than what
                the index already accepted for the document.
        """
        ...  # pragma: no cover


class RenderCache(Protocol):
    def invalidate(self, document: DocumentRef) -> None:
        ...  # pragma: no cover


class JobRunner(Protocol):
    def enqueue(self, job: ReconciliationJob) -> None:
        ...  # pragma: no cover


class Deriver(Protocol):
    """Content-to-facts derivation, the equivalent of a page save's parse."""

    def derive(
        self, document: DocumentRef, text: str
    ) -> dict[str, list[FactValue]]:
        ...  # pragma: no cover
