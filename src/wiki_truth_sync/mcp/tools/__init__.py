"""MCP tool handlers for truth synchronisation.

This package contains MCP tool implementations that wrap the sync engine
with async handlers and structured error responses.
"""

from .errors import build_error_response, translate_wiki_error
from .facts import FACTS_SPECS, FACTS_TOOLS
from .registry import ToolRegistry, ToolSpec, load_permissions_file
from .sync import SYNC_SPECS, SYNC_TOOLS

ALL_SPECS: list[ToolSpec] = SYNC_SPECS + FACTS_SPECS

__all__ = [
    "build_error_response",
    "translate_wiki_error",
    # Registry
    "ToolSpec",
    "ToolRegistry",
    "load_permissions_file",
    # Spec lists
    "ALL_SPECS",
    "FACTS_SPECS",
    "SYNC_SPECS",
    # Tool lists
    "FACTS_TOOLS",
    "SYNC_TOOLS",
]
