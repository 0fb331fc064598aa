"""Tests for the truth_sync* MCP tool handlers.

Handlers run against an in-memory wiki whose approved revision (r4)
is older than its latest (r10).
"""

from unittest.mock import MagicMock

import pytest

from wiki_truth_sync.mcp.tools import ALL_SPECS, ToolRegistry
from wiki_truth_sync.mcp.tools.sync import document_from_args
from wiki_truth_sync.sync.fallback import ApprovalListener
from wiki_truth_sync.sync.models import DocumentRef


@pytest.fixture
def registry():
    return ToolRegistry(ALL_SPECS)


def _text(result):
    return result.content[0].text


class TestDocumentFromArgs:
    def test_main_namespace(self):
        assert document_from_args({"page": "Widget"}) == DocumentRef(
            title="Widget"
        )

    def test_namespace_coerced(self):
        doc = document_from_args({"page": "Policy", "namespace": "4"})
        assert doc == DocumentRef(namespace=4, title="Policy")

    def test_missing_page(self):
        with pytest.raises(ValueError, match="page is required"):
            document_from_args({})

    def test_invalid_title(self):
        with pytest.raises(ValueError, match="cannot contain"):
            document_from_args({"page": "a|b"})

    def test_invalid_namespace(self):
        with pytest.raises(ValueError, match="namespace must be an integer"):
            document_from_args({"page": "Widget", "namespace": "main"})

    def test_underscore_title_canonical(self):
        doc = document_from_args({"page": "main_page"})
        assert doc == DocumentRef(title="Main page")
        assert doc.key == "0:Main page"


class TestTruthSync:
    async def test_reconciles_to_approved_content(self, registry, sync_ctx):
        result = await registry.call_tool(
            "truth_sync", {"page": "Widget"}, sync_ctx
        )

        assert not result.isError
        assert _text(result) == (
            "Reconciled 0:Widget: content of r4 indexed as r10"
        )
        assert result.structuredContent["outcome"] == "ok"
        data = sync_ctx.index.get_data(DocumentRef(title="Widget"))
        assert data.facts == {"X": [0]}
        assert data.version_stamp == 10

    async def test_lower_case_title_reaches_same_page(self, registry, sync_ctx):
        result = await registry.call_tool(
            "truth_sync", {"page": "widget"}, sync_ctx
        )

        assert result.structuredContent["outcome"] == "ok"
        assert result.structuredContent["target_revision_id"] == 4

    async def test_namespace_prefix_resolved_by_client(self, registry, sync_ctx):
        sync_ctx.client.canonical_document.side_effect = None
        sync_ctx.client.canonical_document.return_value = DocumentRef(
            namespace=12, title="Foo"
        )

        result = await registry.call_tool(
            "truth_sync_status", {"page": "Help:Foo"}, sync_ctx
        )

        sync_ctx.client.canonical_document.assert_called_once_with(
            DocumentRef(title="Help:Foo")
        )
        assert result.structuredContent["page"]["namespace"] == 12
        assert result.structuredContent["page"]["title"] == "Foo"

    async def test_explicit_revision(self, registry, sync_ctx):
        result = await registry.call_tool(
            "truth_sync", {"page": "Widget", "revision": 10}, sync_ctx
        )
        assert result.structuredContent["target_revision_id"] == 10
        assert _text(result).endswith("(approved is latest)")

    async def test_invalid_revision(self, registry, sync_ctx):
        result = await registry.call_tool(
            "truth_sync", {"page": "Widget", "revision": "abc"}, sync_ctx
        )
        assert result.isError
        assert _text(result).startswith("Error (validation_error)")
        assert sync_ctx.index.calls == []

    async def test_index_failure_is_error(self, registry, sync_ctx):
        sync_ctx.index.fail_on = "update"

        result = await registry.call_tool(
            "truth_sync", {"page": "Widget"}, sync_ctx
        )

        assert result.isError
        assert result.structuredContent["outcome"] == "failed"
        assert "update exploded" in _text(result)

    async def test_unknown_page_skipped(self, registry, sync_ctx):
        result = await registry.call_tool(
            "truth_sync", {"page": "Nowhere"}, sync_ctx
        )
        assert not result.isError
        assert result.structuredContent["outcome"] == "skipped"


class TestNotifyAndJobs:
    async def test_notify_queues_then_jobs_runs(self, registry, sync_ctx):
        notified = await registry.call_tool(
            "truth_sync_notify", {"page": "Widget"}, sync_ctx
        )
        assert notified.structuredContent == {
            "page": "Widget",
            "namespace": 0,
            "queued": True,
            "pending": 1,
        }
        # Nothing is written until the job runs
        assert sync_ctx.index.calls == []

        ran = await registry.call_tool("truth_sync_jobs", {}, sync_ctx)

        assert ran.structuredContent["counts"]["ok"] == 1
        assert ran.structuredContent["pending"] == 0
        assert _text(ran).startswith("Ran 1 jobs: 1 reconciled")
        data = sync_ctx.index.get_data(DocumentRef(title="Widget"))
        assert data.source_revision_id == 4

    async def test_notify_disabled(self, registry, sync_ctx):
        sync_ctx.enabled = False
        sync_ctx.listener = ApprovalListener(sync_ctx.queue, enabled=False)

        result = await registry.call_tool(
            "truth_sync_notify", {"page": "Widget"}, sync_ctx
        )

        assert not result.isError
        assert result.structuredContent["queued"] is False
        assert "disabled" in _text(result)

    async def test_notify_queue_failure(self, registry, sync_ctx):
        runner = MagicMock()
        runner.enqueue.side_effect = OSError("read-only file system")
        sync_ctx.listener = ApprovalListener(runner)

        result = await registry.call_tool(
            "truth_sync_notify", {"page": "Widget"}, sync_ctx
        )

        assert result.isError
        assert "Could not queue" in _text(result)

    async def test_jobs_empty_queue(self, registry, sync_ctx):
        result = await registry.call_tool("truth_sync_jobs", {}, sync_ctx)
        assert _text(result) == "No pending reconciliation jobs."
        assert result.structuredContent["counts"]["total"] == 0

    @pytest.mark.parametrize("limit", ["many", 0, -2])
    async def test_jobs_invalid_limit(self, registry, sync_ctx, limit):
        result = await registry.call_tool(
            "truth_sync_jobs", {"limit": limit}, sync_ctx
        )
        assert result.isError
        assert "limit" in _text(result)


class TestStatus:
    async def test_global_status(self, registry, sync_ctx):
        result = await registry.call_tool("truth_sync_status", {}, sync_ctx)

        assert result.structuredContent["enabled"] is True
        assert result.structuredContent["pending_jobs"] == 0
        assert "page" not in result.structuredContent
        assert _text(result).startswith("Reconciliation: enabled")

    async def test_page_out_of_sync_then_in_sync(self, registry, sync_ctx):
        before = await registry.call_tool(
            "truth_sync_status", {"page": "Widget"}, sync_ctx
        )
        assert before.structuredContent["page"] == {
            "namespace": 0,
            "title": "Widget",
            "latest_revision_id": 10,
            "approved_revision_id": 4,
            "indexed_source_revision_id": 10,
            "indexed_version_stamp": 10,
            "in_sync": False,
        }

        await registry.call_tool("truth_sync", {"page": "Widget"}, sync_ctx)
        after = await registry.call_tool(
            "truth_sync_status", {"page": "Widget"}, sync_ctx
        )
        assert after.structuredContent["page"]["in_sync"] is True
        assert "In sync:           yes" in _text(after)
