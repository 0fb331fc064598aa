"""MCP tool handler for reading the semantic fact index."""

import mcp.types as types

from ...core.async_utils import run_sync
from ..context import SyncContext
from .errors import build_error_response
from .registry import ToolSpec
from .sync import resolve_document

FACTS_TOOLS = [
    types.Tool(
        name="semantic_facts",
        description=(
            "Show the semantic facts indexed for a page, with the revision "
            "they were derived from and the revision id they are stamped with."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "page": {
                    "type": "string",
                    "description": "Page title without namespace prefix",
                },
                "namespace": {
                    "type": "integer",
                    "default": 0,
                    "description": "Numeric namespace (0 = main)",
                },
                "property": {
                    "type": "string",
                    "description": "Only show values of this property",
                },
            },
            "required": ["page"],
        },
    )
]


async def _handle_semantic_facts(
    ctx: SyncContext, args: dict
) -> types.CallToolResult:
    """Handle semantic_facts tool."""
    document = await resolve_document(ctx, args)
    data = await run_sync(ctx.index.get_data, document)
    if data is None:
        return build_error_response(
            "not_found",
            f"No facts indexed for {document}",
            "Run truth_sync for this page first.",
        )

    prop = args.get("property")
    facts = {prop: data.values(prop)} if prop else data.facts

    lines = [
        f"Facts for {document} "
        f"(content r{data.source_revision_id}, stamped r{data.version_stamp}):"
    ]
    if not any(facts.values()):
        lines.append("  (none)")
    for name, values in facts.items():
        rendered = ", ".join(str(v) for v in values) or "(none)"
        lines.append(f"  {name}: {rendered}")

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={
            "namespace": document.namespace,
            "page": document.title,
            "source_revision_id": data.source_revision_id,
            "version_stamp": data.version_stamp,
            "facts": facts,
        },
    )


FACTS_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=FACTS_TOOLS[0],
        permissions=frozenset({"SYNC_VIEW"}),
        handler=_handle_semantic_facts,
    ),
]
