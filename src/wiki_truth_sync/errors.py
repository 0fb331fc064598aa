"""Exception hierarchy for the truth sync engine.

Every failure the engine can observe maps onto one of these types so the
reconciler, the job worker and the MCP tool layer can tell "nothing to do"
apart from "attempted and failed".
"""


class TruthSyncError(Exception):
    """Base class for all engine errors."""


class RevisionNotFound(TruthSyncError):
    """The target revision id does not resolve to an existing revision."""

    def __init__(self, revision_id: int | None):
        self.revision_id = revision_id
        super().__init__(f"Revision {revision_id} not found")


class DerivationError(TruthSyncError):
    """Raw content could not be turned into structured data."""


class IndexWriteError(TruthSyncError):
    """Clearing or writing the semantic index failed."""


class StaleWriteError(IndexWriteError):
    """The index refused data stamped older than what it already holds."""

    def __init__(self, document_key: str, stamp: int, watermark: int):
        self.document_key = document_key
        self.stamp = stamp
        self.watermark = watermark
        super().__init__(
            f"Stale write for {document_key}: stamp {stamp} < watermark {watermark}"
        )


class JobQueueError(TruthSyncError):
    """The job runner could not accept or persist a job."""
