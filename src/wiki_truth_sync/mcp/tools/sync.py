"""MCP tool handlers for truth synchronisation.

Defines four tools:

- ``truth_sync`` -- reconcile one page now.
- ``truth_sync_notify`` -- record an approval change (enqueue a job).
- ``truth_sync_jobs`` -- run pending reconciliation jobs.
- ``truth_sync_status`` -- queue size and, for a page, stamp vs latest.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...core.async_utils import run_sync, run_sync_limited
from ...sync.models import DocumentRef, ReconcileOutcome
from ...sync.reporter import (
    format_job_run,
    format_sync_result,
    job_run_to_json,
    result_to_json,
)
from ...validators import parse_revision_id, validate_page_title
from ..context import SyncContext
from .registry import ToolSpec

logger = logging.getLogger(__name__)

_PAGE_PROPERTIES: dict[str, Any] = {
    "page": {
        "type": "string",
        "description": "Page title without namespace prefix",
    },
    "namespace": {
        "type": "integer",
        "default": 0,
        "description": "Numeric namespace (0 = main)",
    },
}


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="truth_sync",
        description=(
            "Reconcile a page's semantic facts with its approved revision. "
            "The facts are re-derived from the approved (or given) revision "
            "and indexed under the page's latest revision id."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                **_PAGE_PROPERTIES,
                "revision": {
                    "type": "integer",
                    "description": (
                        "Explicit target revision id. Defaults to the approved "
                        "revision, or the latest one when nothing is approved."
                    ),
                },
            },
            "required": ["page"],
        },
    ),
    types.Tool(
        name="truth_sync_notify",
        description=(
            "Record that a page's approval changed. Queues a background "
            "reconciliation job; run it with truth_sync_jobs."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": dict(_PAGE_PROPERTIES),
            "required": ["page"],
        },
    ),
    types.Tool(
        name="truth_sync_jobs",
        description="Run pending reconciliation jobs from the queue.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Maximum jobs to run (default: all)",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="truth_sync_status",
        description=(
            "Show whether reconciliation is enabled, how many jobs are "
            "pending and, for a page, its indexed stamp against the "
            "latest and approved revisions."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": dict(_PAGE_PROPERTIES),
            "required": [],
        },
    ),
]


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def document_from_args(args: dict[str, Any]) -> DocumentRef:
    """Build a ``DocumentRef`` from ``page``/``namespace`` arguments.

    Raises:
        ValueError: If the title is missing or invalid.
    """
    title = args.get("page")
    if not title:
        raise ValueError("page is required")
    is_valid, error_msg = validate_page_title(title)
    if not is_valid:
        raise ValueError(error_msg)
    try:
        namespace = int(args.get("namespace", 0) or 0)
    except (TypeError, ValueError):
        raise ValueError(
            f"namespace must be an integer, got {args.get('namespace')!r}"
        ) from None
    return DocumentRef(namespace=namespace, title=title)


async def resolve_document(
    ctx: SyncContext, args: dict[str, Any]
) -> DocumentRef:
    """``document_from_args`` plus the wiki's namespace prefix lookup."""
    return await run_sync(
        ctx.client.canonical_document, document_from_args(args)
    )


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_truth_sync(
    ctx: SyncContext, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``truth_sync`` tool."""
    document = await resolve_document(ctx, args)
    override, error = parse_revision_id(args.get("revision"))
    if error:
        raise ValueError(error)

    result = await run_sync_limited(
        ctx.engine.sync_document, document, override
    )
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_sync_result(result))
        ],
        structuredContent=result_to_json(result),
        isError=result.outcome == ReconcileOutcome.FAILED,
    )


async def _handle_notify(
    ctx: SyncContext, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``truth_sync_notify`` tool."""
    document = await resolve_document(ctx, args)
    queued = await run_sync(ctx.listener.on_approval_changed, document)

    if queued:
        text = f"Queued reconciliation for {document}."
    elif not ctx.enabled:
        text = f"Reconciliation is disabled; nothing queued for {document}."
    else:
        text = f"Could not queue reconciliation for {document}; see server log."
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent={
            "page": document.title,
            "namespace": document.namespace,
            "queued": queued,
            "pending": len(ctx.queue),
        },
        isError=ctx.enabled and not queued,
    )


async def _handle_jobs(
    ctx: SyncContext, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``truth_sync_jobs`` tool."""
    limit = args.get("limit")
    if limit is not None:
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise ValueError(f"limit must be an integer, got {limit!r}") from None
        if limit < 1:
            raise ValueError("limit must be at least 1")

    results = await run_sync_limited(ctx.worker.run_pending, limit)
    structured = job_run_to_json(results)
    structured["pending"] = len(ctx.queue)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=format_job_run(results))],
        structuredContent=structured,
    )


async def _handle_status(
    ctx: SyncContext, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``truth_sync_status`` tool."""
    pending = len(ctx.queue)
    lines = [
        f"Reconciliation: {'enabled' if ctx.enabled else 'disabled'}",
        f"  Pending jobs: {pending}",
    ]
    structured: dict[str, Any] = {
        "enabled": ctx.enabled,
        "pending_jobs": pending,
        "capabilities": ctx.capabilities,
    }

    if args.get("page"):
        document = await resolve_document(ctx, args)
        latest = await run_sync_limited(
            ctx.engine.store.get_latest_revision_id, document
        )
        approved = await run_sync_limited(
            ctx.engine.tracker.get_approved_revision_id, document
        )
        data = await run_sync(ctx.index.get_data, document)
        stamp = data.version_stamp if data is not None else None
        source = data.source_revision_id if data is not None else None
        in_sync = (
            data is not None
            and stamp == latest
            and source == (approved or latest)
        )

        lines += [
            f"Page {document}",
            f"  Latest revision:   {latest}",
            f"  Approved revision: {approved if approved else 'none'}",
            f"  Indexed content:   {source if source else 'none'}",
            f"  Indexed stamp:     {stamp if stamp else 'none'}",
            f"  In sync:           {'yes' if in_sync else 'no'}",
        ]
        structured["page"] = {
            "namespace": document.namespace,
            "title": document.title,
            "latest_revision_id": latest,
            "approved_revision_id": approved,
            "indexed_source_revision_id": source,
            "indexed_version_stamp": stamp,
            "in_sync": in_sync,
        }

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent=structured,
    )


# ToolSpec list for registry-based dispatch
SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=SYNC_TOOLS[0],
        permissions=frozenset({"SYNC_WRITE"}),
        handler=_handle_truth_sync,
    ),
    ToolSpec(
        tool=SYNC_TOOLS[1],
        permissions=frozenset({"SYNC_WRITE"}),
        handler=_handle_notify,
    ),
    ToolSpec(
        tool=SYNC_TOOLS[2],
        permissions=frozenset({"SYNC_ADMIN"}),
        handler=_handle_jobs,
    ),
    ToolSpec(
        tool=SYNC_TOOLS[3],
        permissions=frozenset({"SYNC_VIEW"}),
        handler=_handle_status,
    ),
]
