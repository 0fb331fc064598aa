"""Runtime objects shared by every MCP tool handler."""

from dataclasses import dataclass, field
from typing import Any

from ..core.client import WikiClient
from ..index import MemorySemanticStore
from ..jobs import JobWorker, MemoryJobQueue
from ..sync.engine import TruthSyncEngine
from ..sync.fallback import ApprovalListener


@dataclass
class SyncContext:
    """Everything a tool handler needs, built once by the server lifespan.

    Attributes:
        client: Wiki API client (content store, approvals, render cache).
        index: Semantic fact index.
        queue: Reconciliation job queue.
        engine: Engine wired to the collaborators above.
        listener: Approval-change listener feeding ``queue``.
        worker: Drains ``queue`` through ``engine``.
        enabled: Global capability toggle computed at startup.
        capabilities: Detection result the toggle was computed from.
    """

    client: WikiClient
    index: MemorySemanticStore
    queue: MemoryJobQueue
    engine: TruthSyncEngine
    listener: ApprovalListener
    worker: JobWorker
    enabled: bool = True
    capabilities: dict[str, Any] = field(default_factory=dict)
