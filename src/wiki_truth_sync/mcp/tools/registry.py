"""Permission-filtered dispatch for the truth sync tools.

Every tool is a ``ToolSpec``: its MCP definition, the sync permissions it
needs and its handler. Operators choose what an agent may do with a
permissions file:

- ``SYNC_VIEW``: inspect indexed facts and sync status.
- ``SYNC_WRITE``: reconcile pages and record approval changes.
- ``SYNC_ADMIN``: drain the reconciliation job queue.

``ping`` needs no permission and is always listed. Handler exceptions
never reach the MCP session; ``call_tool`` turns them into error results.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

import mcp.types as types
import requests

from ...core.client import WikiAPIError
from ..context import SyncContext
from .errors import (
    build_error_response,
    translate_http_error,
    translate_wiki_error,
)

logger = logging.getLogger(__name__)

Handler = Callable[[SyncContext, dict], Awaitable[types.CallToolResult]]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """One tool with its required permissions and handler.

    Attributes:
        tool: MCP definition shown to the agent.
        permissions: All of these must be granted; empty means always on.
        handler: ``await handler(ctx, args)`` produces the tool result.
    """

    tool: types.Tool
    permissions: frozenset[str]
    handler: Handler

    def permitted(self, granted: frozenset[str] | None) -> bool:
        if granted is None or not self.permissions:
            return True
        return self.permissions <= granted


class ToolRegistry:
    """The tools an agent may see and call.

    Args:
        specs: Every tool the server knows.
        allowed_permissions: Granted permissions, or None to grant all.
    """

    def __init__(
        self,
        specs: list[ToolSpec],
        allowed_permissions: frozenset[str] | None = None,
    ):
        self._specs: dict[str, ToolSpec] = {
            spec.tool.name: spec
            for spec in specs
            if spec.permitted(allowed_permissions)
        }

    def list_tools(self) -> list[types.Tool]:
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        ctx: SyncContext,
    ) -> types.CallToolResult:
        """Run tool *name* against the engine in *ctx*.

        Wiki API errors, failed HTTP requests and bad arguments come back
        as error results that tell the agent what to fix. Anything else
        is logged with its traceback and reported as ``server_error``.

        Raises:
            ValueError: If *name* is not a tool of this registry.
        """
        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(ctx, args)
        except Exception as e:
            return _error_result(name, args, e)


def _error_result(
    name: str, args: dict, exc: Exception
) -> types.CallToolResult:
    if isinstance(exc, WikiAPIError):
        logger.warning("Wiki API error in %s: %s", name, exc)
        return translate_wiki_error(exc, args.get("page"))
    if isinstance(exc, requests.RequestException):
        logger.warning("Wiki request failed in %s: %s", name, exc)
        return translate_http_error(exc)
    if isinstance(exc, ValueError):
        return build_error_response(
            "validation_error", str(exc), "Check parameter values and retry."
        )
    logger.error("Unexpected error in tool %s", name, exc_info=exc)
    return build_error_response(
        "server_error", str(exc), "Check the server log and retry later."
    )


def load_permissions_file(path: str | Path) -> frozenset[str]:
    """Read granted permissions, one per line (``#`` starts a comment).

    A read-only agent gets a file containing just ``SYNC_VIEW``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a line is not an UPPER_SNAKE_CASE name, or the
            file grants nothing.
    """
    path = Path(path)
    permissions: set[str] = set()
    for line_num, line in enumerate(path.read_text().splitlines(), 1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if not stripped.replace("_", "").isalpha() or not stripped.isupper():
            raise ValueError(
                f"Invalid permission '{stripped}' at line {line_num} in {path}. "
                "Expected UPPER_SNAKE_CASE (e.g., SYNC_VIEW)."
            )
        permissions.add(stripped)
    if not permissions:
        raise ValueError(
            f"No permissions found in {path}. File must contain at least one permission."
        )
    return frozenset(permissions)
