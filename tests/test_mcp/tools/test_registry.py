"""Tests for ToolSpec, ToolRegistry, and load_permissions_file.

Covers:
- ToolSpec creation and immutability
- ToolRegistry filtering (no filter, permission filter, empty permissions)
- ToolRegistry list_tools, tool_count, call_tool error translation
- load_permissions_file parsing, validation, and error cases
"""

import dataclasses
from unittest.mock import MagicMock

import mcp.types as types
import pytest
import requests

from wiki_truth_sync.core.client import WikiAPIError
from wiki_truth_sync.mcp.tools import ALL_SPECS
from wiki_truth_sync.mcp.tools.registry import (
    ToolRegistry,
    ToolSpec,
    load_permissions_file,
)


def _make_spec(name, permissions=frozenset(), handler=None):
    if handler is None:

        async def handler(ctx, args):
            return types.CallToolResult(
                content=[types.TextContent(type="text", text=f"ok:{name}")]
            )

    return ToolSpec(
        tool=types.Tool(
            name=name,
            description=f"Test tool {name}",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        permissions=frozenset(permissions),
        handler=handler,
    )


def _raising(exc):
    async def handler(ctx, args):
        raise exc

    return handler


def _text(result):
    return result.content[0].text


class TestToolSpec:
    def test_frozen(self):
        spec = _make_spec("a")
        with pytest.raises(dataclasses.FrozenInstanceError):
            spec.permissions = frozenset({"X"})


class TestToolRegistryFiltering:
    def test_no_filter_includes_all(self):
        registry = ToolRegistry(
            [_make_spec("a"), _make_spec("b", {"SYNC_ADMIN"})]
        )
        assert registry.tool_count() == 2

    def test_permission_filter(self):
        registry = ToolRegistry(
            [
                _make_spec("ping"),
                _make_spec("view", {"SYNC_VIEW"}),
                _make_spec("write", {"SYNC_WRITE"}),
            ],
            allowed_permissions=frozenset({"SYNC_VIEW"}),
        )
        names = [t.name for t in registry.list_tools()]
        assert names == ["ping", "view"]

    def test_builtin_view_only(self):
        registry = ToolRegistry(ALL_SPECS, frozenset({"SYNC_VIEW"}))
        names = {t.name for t in registry.list_tools()}
        assert names == {"truth_sync_status", "semantic_facts"}

    def test_builtin_names(self):
        names = {spec.tool.name for spec in ALL_SPECS}
        assert names == {
            "truth_sync",
            "truth_sync_notify",
            "truth_sync_jobs",
            "truth_sync_status",
            "semantic_facts",
        }


class TestToolRegistryCallTool:
    async def test_dispatch(self):
        registry = ToolRegistry([_make_spec("a")])
        result = await registry.call_tool("a", None, MagicMock())
        assert _text(result) == "ok:a"

    async def test_unknown_tool_raises(self):
        registry = ToolRegistry([_make_spec("a")])
        with pytest.raises(ValueError, match="Unknown tool"):
            await registry.call_tool("nope", {}, MagicMock())

    async def test_filtered_tool_raises(self):
        registry = ToolRegistry(
            [_make_spec("w", {"SYNC_WRITE"})], frozenset({"SYNC_VIEW"})
        )
        with pytest.raises(ValueError):
            await registry.call_tool("w", {}, MagicMock())

    async def test_wiki_error_translated(self):
        registry = ToolRegistry(
            [_make_spec("a", handler=_raising(WikiAPIError("missingtitle", "x")))]
        )
        result = await registry.call_tool("a", {"page": "Widget"}, MagicMock())
        assert result.isError
        assert "'Widget'" in _text(result)

    async def test_request_error_translated(self):
        registry = ToolRegistry(
            [_make_spec("a", handler=_raising(requests.Timeout("slow")))]
        )
        result = await registry.call_tool("a", {}, MagicMock())
        assert _text(result).startswith("Error (connection_error)")

    async def test_value_error_translated(self):
        registry = ToolRegistry(
            [_make_spec("a", handler=_raising(ValueError("page is required")))]
        )
        result = await registry.call_tool("a", {}, MagicMock())
        assert _text(result).startswith(
            "Error (validation_error): page is required"
        )

    async def test_unexpected_error_translated(self):
        registry = ToolRegistry(
            [_make_spec("a", handler=_raising(KeyError("boom")))]
        )
        result = await registry.call_tool("a", {}, MagicMock())
        assert result.isError
        assert _text(result).startswith("Error (server_error)")


class TestLoadPermissionsFile:
    def test_parses_with_comments(self, tmp_path):
        path = tmp_path / "view.permissions"
        path.write_text("# read only\n\nSYNC_VIEW\n  SYNC_ADMIN  \n")
        assert load_permissions_file(path) == frozenset(
            {"SYNC_VIEW", "SYNC_ADMIN"}
        )

    def test_invalid_permission(self, tmp_path):
        path = tmp_path / "bad.permissions"
        path.write_text("SYNC_VIEW\nsync-write\n")
        with pytest.raises(ValueError, match="line 2"):
            load_permissions_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.permissions"
        path.write_text("# nothing\n")
        with pytest.raises(ValueError, match="No permissions"):
            load_permissions_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_permissions_file(tmp_path / "absent")
