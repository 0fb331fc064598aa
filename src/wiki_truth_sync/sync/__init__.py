"""Revision truth synchronisation engine.

Public API for forcing a semantic fact index to hold the facts of a
page's *approved* revision while claiming the page's *latest* revision id
as their version stamp.

Architecture
------------
A reconciliation re-reads all state at call time and runs four steps:
resolve the target revision, materialise its facts, re-stamp them with the
latest revision id ("truth spoofing"), then clear and rewrite the index and
invalidate the render cache. Two paths trigger it: the staged workflow
(an overlay page view followed by a client redirect into phase 2) and the
job queue fed on every approval change.

Modules:

- ``engine``       -- ``TruthSyncEngine``: one reconciliation per call.
- ``resolver``     -- ``resolve_target``: override > approved > latest.
- ``materializer`` -- ``ContentMaterializer``: revision content to facts.
- ``derivation``   -- ``AnnotationDeriver``: wikitext annotation parser.
- ``spoofer``      -- ``stamp``: version stamp rewrite.
- ``reconciler``   -- ``IndexReconciler``, ``DocumentLockTable``.
- ``workflow``     -- ``StagedWorkflowController``: two-phase page flow.
- ``overlay``      -- overlay markup and client script.
- ``fallback``     -- ``ApprovalListener``: enqueue on approval change.
- ``interfaces``   -- collaborator Protocols.
- ``models``       -- pydantic data contracts.
- ``reporter``     -- human-readable and JSON result formatting.

Usage example
-------------
::

    from wiki_truth_sync.core.client import WikiClient
    from wiki_truth_sync.index import MemorySemanticStore
    from wiki_truth_sync.sync import DocumentRef, TruthSyncEngine

    client = WikiClient(config)
    engine = TruthSyncEngine(
        store=client, tracker=client, index=MemorySemanticStore(), cache=client
    )
    result = engine.sync_document(DocumentRef(title="Main_Page"))
    print(format_sync_result(result))
"""

from .engine import TruthSyncEngine
from .fallback import ApprovalListener
from .materializer import NOT_FOUND, ContentMaterializer
from .models import (
    DocumentRef,
    ReconcileOutcome,
    ReconcileResult,
    ReconciliationJob,
    Revision,
    StructuredData,
    SyncSession,
    SyncStage,
)
from .reconciler import DocumentLockTable, IndexReconciler
from .reporter import (
    format_job_run,
    format_sync_result,
    job_run_to_json,
    result_to_json,
)
from .resolver import resolve_target
from .spoofer import stamp
from .workflow import PageInjection, PageRequest, StagedWorkflowController

__all__ = [
    "NOT_FOUND",
    "ApprovalListener",
    "ContentMaterializer",
    "DocumentLockTable",
    "DocumentRef",
    "IndexReconciler",
    "PageInjection",
    "PageRequest",
    "ReconcileOutcome",
    "ReconcileResult",
    "ReconciliationJob",
    "Revision",
    "StagedWorkflowController",
    "StructuredData",
    "SyncSession",
    "SyncStage",
    "TruthSyncEngine",
    "format_job_run",
    "format_sync_result",
    "job_run_to_json",
    "resolve_target",
    "result_to_json",
    "stamp",
]
