"""Target revision resolution.

Decides which revision's content should become the indexed truth for a
document. Precedence, first non-empty wins:

1. An explicit override from the caller (``revsync`` or a tool argument).
2. The approval tracker's approved revision.
3. The document's latest revision.

Revision id ``0`` counts as empty at every level.
"""

from __future__ import annotations

import logging

from .interfaces import ApprovalTracker, ContentStore
from .models import DocumentRef

logger = logging.getLogger(__name__)


def resolve_target(
    document: DocumentRef,
    tracker: ApprovalTracker,
    store: ContentStore,
    override: int | None = None,
) -> int | None:
    """Return the revision id whose content should be treated as truth.

    Returns ``None`` only when the override is empty, the page is
    unapproved and has no revisions at all. Callers guard that case
    through the materializer's not-found handling.
    """
    if override:
        logger.debug("Target for %s: override r%s", document, override)
        return override

    approved = tracker.get_approved_revision_id(document)
    if approved:
        logger.debug("Target for %s: approved r%s", document, approved)
        return approved

    latest = store.get_latest_revision_id(document)
    logger.debug("Target for %s: latest r%s", document, latest)
    return latest or None
