"""Core wiki client functionality shared between the engine and MCP server."""

from .async_utils import run_sync, run_sync_limited
from .client import WikiAPIError, WikiClient

__all__ = ["WikiAPIError", "WikiClient", "run_sync", "run_sync_limited"]
