"""Pydantic models for the truth sync engine.

Defines the data contracts shared by every sync module:

- ``DocumentRef``: Stable identity of a wiki page.
- ``Revision``: One immutable snapshot of a page.
- ``StructuredData``: Semantic facts derived from a revision, with the
  version stamp the index uses for freshness checks.
- ``SyncStage``: States of the staged workflow.
- ``SyncSession``: Request-scoped view of one staged sync (never persisted).
- ``ReconciliationJob``: Unit of work queued by the fallback path.
- ``ReconcileOutcome`` / ``ReconcileResult``: What one reconciliation did.

All models are frozen (immutable).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

from ..validators import normalize_page_title

if TYPE_CHECKING:
    from .engine import TruthSyncEngine

FactValue = str | int | float | bool


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentRef(BaseModel):
    """Identity of a wiki page.

    Attributes:
        namespace: Numeric wiki namespace (0 is the main namespace).
        title: Page title without namespace prefix, stored in canonical
            form (``Main_page`` and ``main page`` both become ``Main page``).
    """

    namespace: int = 0
    title: str

    model_config = {"frozen": True}

    @field_validator("title")
    @classmethod
    def _canonical_title(cls, value: str) -> str:
        return normalize_page_title(value)

    @property
    def key(self) -> str:
        """Index identity, ``"<namespace>:<title>"``."""
        return f"{self.namespace}:{self.title}"

    def __str__(self) -> str:
        return self.key


class Revision(BaseModel):
    """An immutable page snapshot.

    Attributes:
        revision_id: Unique revision identifier.
        document: Page the revision belongs to.
        content: Raw content bytes of the main slot.
        timestamp: ISO 8601 save time, when known.
    """

    revision_id: int
    document: DocumentRef
    content: bytes = b""
    timestamp: str | None = None

    model_config = {"frozen": True}


class StructuredData(BaseModel):
    """Semantic facts for one document.

    Attributes:
        document: Page the facts describe.
        facts: Property name to list of values, in document order.
        version_stamp: Revision id the data claims to come from. The index
            compares this against what it already holds.
        source_revision_id: Revision the content was really derived from.
    """

    document: DocumentRef
    facts: dict[str, list[FactValue]] = {}
    version_stamp: int
    source_revision_id: int

    model_config = {"frozen": True}

    def values(self, prop: str) -> list[FactValue]:
        """Return the values recorded for *prop* (empty when absent)."""
        return list(self.facts.get(prop, []))


class SyncStage(str, Enum):
    """States of the staged workflow controller."""

    IDLE = "idle"
    PHASE1 = "phase1"
    PHASE2 = "phase2"
    DONE = "done"


class SyncSession(BaseModel):
    """Request-scoped state of one staged sync. Never persisted.

    Attributes:
        document: Page being synchronised.
        target_revision_id: Revision whose content becomes the truth.
        latest_revision_id: Current latest revision of the page.
        phase: 1 (overlay + redirect) or 2 (reconcile).
        override_revision_id: Explicit ``revsync`` value, if any.
    """

    document: DocumentRef
    target_revision_id: int | None
    latest_revision_id: int | None
    phase: int
    override_revision_id: int | None = None

    model_config = {"frozen": True}


class ReconciliationJob(BaseModel):
    """Queued reconciliation for one document.

    Only the document identity is captured; target and latest revisions
    are resolved when the job runs.
    """

    document: DocumentRef
    job_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    enqueued_at: str = Field(default_factory=_utc_now)
    attempts: int = 0

    model_config = {"frozen": True}

    def run(self, engine: TruthSyncEngine) -> ReconcileResult:
        """Reconcile the document against the state at execution time."""
        return engine.sync_document(self.document)

    def retried(self) -> ReconciliationJob:
        """Copy of this job with one more recorded attempt."""
        return self.model_copy(update={"attempts": self.attempts + 1})


class ReconcileOutcome(str, Enum):
    """How a reconciliation attempt ended."""

    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"
    DISABLED = "disabled"


class ReconcileResult(BaseModel):
    """Result of reconciling one document.

    Attributes:
        document: Page that was reconciled.
        outcome: See ``ReconcileOutcome``.
        target_revision_id: Revision whose content was used.
        latest_revision_id: Stamp written to the index.
        error: Failure or skip reason.
        started_at: ISO 8601 start time.
        completed_at: ISO 8601 completion time.
    """

    document: DocumentRef
    outcome: ReconcileOutcome
    target_revision_id: int | None = None
    latest_revision_id: int | None = None
    error: str | None = None
    started_at: str = Field(default_factory=_utc_now)
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.outcome == ReconcileOutcome.OK
