"""MCP Server for wiki truth synchronisation using stdio transport.

This module implements the Model Context Protocol server that lets AI
agents reconcile a wiki's semantic fact index with approved revisions.

Transport: stdio (for desktop MCP clients)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import ensure_config, load_hierarchical_config
from ..config_schema import UnifiedConfig, build_config
from ..core.async_utils import run_sync
from ..logger import setup_logging
from .context import SyncContext
from .lifespan import server_lifespan
from .tools import (
    ALL_SPECS,
    ToolRegistry,
    build_error_response,
    load_permissions_file,
)
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

server = Server("wiki-truth-sync")

# Initialized in lifespan
_context: SyncContext | None = None

# Initialized in main
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available, no permission required)
# ---------------------------------------------------------------------------


async def _handle_ping(
    ctx: SyncContext, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- test wiki connectivity."""
    try:
        generator = await run_sync(ctx.client.validate_connection)
        state = "enabled" if ctx.enabled else "disabled"
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=f"Connected to {generator}. Reconciliation {state}.",
                )
            ]
        )
    except Exception as e:
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=f"Wiki connection failed: {e}. Check WIKI_URL, WIKI_USERNAME, WIKI_PASSWORD.",
                )
            ],
            isError=True,
        )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Test wiki connectivity and report whether reconciliation is enabled",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    permissions=frozenset(),
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_context() -> SyncContext:
    """Get the global SyncContext instance.

    Raises:
        RuntimeError: If the context is not initialized
    """
    if _context is None:
        raise RuntimeError(
            "SyncContext not initialized. Server lifespan not started."
        )
    return _context


def set_context(ctx: SyncContext | None) -> None:
    global _context
    _context = ctx


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """Return all registered (and permitted) tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch.

    Args:
        name: The name of the tool to execute.
        arguments: Tool arguments (optional).

    Returns:
        CallToolResult with tool output content and optional isError flag.
    """
    ctx = get_context()
    try:
        return await get_registry().call_tool(name, arguments, ctx)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


def _load_unified_config() -> UnifiedConfig:
    """Load config files; fall back to defaults if they cannot be read."""
    try:
        return build_config(load_hierarchical_config())
    except Exception as e:
        print(
            f"Warning: could not load config file, using defaults: {e}",
            file=sys.stderr,
        )
        return UnifiedConfig()


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Sets up logging for MCP mode (file only, never stdout), builds the
    engine via the lifespan manager, and serves tools over stdio.

    Args:
        config_overrides: Optional dict with config values to override (url, username, password, insecure, log_file, permissions_file)
    """
    overrides = config_overrides or {}
    unified = _load_unified_config()

    # Must run before stdio_server so nothing reaches stdout during negotiation
    setup_logging(
        mode="mcp",
        debug=bool(overrides.get("debug")),
        log_file=overrides.get("log_file") or unified.logging.file,
        debug_format=unified.logging.format,
        level=unified.logging.level,
    )

    permissions_file = overrides.get("permissions_file")
    allowed_permissions = None
    if permissions_file:
        allowed_permissions = load_permissions_file(permissions_file)
        logger.info(
            "Loaded %d permissions from %s",
            len(allowed_permissions),
            permissions_file,
        )

    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs, allowed_permissions)
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(all_specs),
    )

    if permissions_file:
        print(
            f"Permissions file: {permissions_file} "
            f"({registry.tool_count()} of {len(all_specs)} tools enabled)",
            file=sys.stderr,
        )

    set_registry(registry)

    # set_context() is called here rather than inside the lifespan so
    # `python -m wiki_truth_sync.mcp.server` updates this module, not a
    # second copy imported under its package name.
    async with server_lifespan(
        config_overrides=config_overrides, unified=unified
    ) as lifespan_ctx:
        set_context(lifespan_ctx["context"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="wiki-truth-sync",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_context(None)
            set_registry(None)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Wiki Truth Sync - MCP server that keeps a semantic index aligned with approved revisions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .truth_sync/config.yml)
  wiki-truth-sync

  # Override wiki URL
  wiki-truth-sync --url https://wiki.example.org/w

  # Use with insecure SSL (development only)
  wiki-truth-sync --url http://localhost:8080 --insecure

  # Custom log file location
  wiki-truth-sync --log-file /var/log/wiki-truth-sync.log

  # Read-only tools
  wiki-truth-sync --permissions-file /etc/wiki-truth-sync/view.permissions

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr. Do not pipe stdin/stdout manually.
        """,
    )

    parser.add_argument(
        "--url",
        help="Override wiki URL (takes precedence over WIKI_URL env var and config files)",
    )
    parser.add_argument(
        "--username",
        help="Override HTTP auth username (takes precedence over WIKI_USERNAME)",
    )
    parser.add_argument(
        "--password",
        help="Override HTTP auth password (takes precedence over WIKI_PASSWORD)"
        " (visible in process list -- prefer WIKI_PASSWORD env var for security)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path (default: /tmp/wiki-truth-sync.log)",
    )
    parser.add_argument(
        "--permissions-file",
        help="Path to permissions file restricting available tools. "
        "Format: one permission per line (SYNC_VIEW, SYNC_WRITE, SYNC_ADMIN), # for comments. "
        "If not specified, all tools are available.",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a commented starter config file (if none exists) and exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"wiki-truth-sync version {__version__}",
    )

    args = parser.parse_args()

    if args.init_config:
        print(f"Config file: {ensure_config()}", file=sys.stderr)
        return

    config_overrides = {}
    if args.url:
        config_overrides["url"] = args.url
    if args.username:
        config_overrides["username"] = args.username
    if args.password:
        config_overrides["password"] = args.password
    if args.insecure:
        config_overrides["insecure"] = True
    if args.debug:
        config_overrides["debug"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.permissions_file:
        config_overrides["permissions_file"] = args.permissions_file

    if config_overrides:
        override_keys = [
            k for k in config_overrides.keys() if k != "password"
        ]
        print(
            f"Config overrides from CLI: {', '.join(override_keys)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(
            main(
                config_overrides=config_overrides
                if config_overrides
                else None
            )
        )
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
