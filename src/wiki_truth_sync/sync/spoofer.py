"""Truth spoofing: re-stamp structured data as the latest revision.

The index only accepts data whose version stamp is at least what it
already holds for the document. Data derived from an approved revision
that is older than the latest draft would be refused, or overwritten by
the next save. Stamping it with the latest revision id makes the index
treat approved content as current without touching revision history.
"""

from __future__ import annotations

from .models import StructuredData


def stamp(data: StructuredData, latest_revision_id: int) -> StructuredData:
    """Return a copy of *data* whose version stamp is *latest_revision_id*.

    ``source_revision_id`` is left alone so reports can still say where the
    content really came from.
    """
    return data.model_copy(update={"version_stamp": latest_revision_id})
