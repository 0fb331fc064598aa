"""Shared pytest fixtures for wiki-truth-sync tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

from wiki_truth_sync.config import Config
from wiki_truth_sync.index import MemorySemanticStore
from wiki_truth_sync.jobs import JobWorker, MemoryJobQueue
from wiki_truth_sync.mcp.context import SyncContext
from wiki_truth_sync.sync.engine import TruthSyncEngine
from wiki_truth_sync.sync.fallback import ApprovalListener
from wiki_truth_sync.sync.models import (
    DocumentRef,
    ReconciliationJob,
    Revision,
    StructuredData,
)

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live wiki",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live wiki"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeWiki:
    """In-memory content store and approval tracker.

    Revisions are appended per page; the last one saved is the latest.
    """

    def __init__(self) -> None:
        self.revisions: dict[int, Revision] = {}
        self.latest: dict[str, int] = {}
        self.approved: dict[str, int] = {}
        self.calls: list[tuple] = []

    def save(self, document: DocumentRef, revision_id: int, text: str) -> None:
        self.revisions[revision_id] = Revision(
            revision_id=revision_id,
            document=document,
            content=text.encode("utf-8"),
        )
        self.latest[document.key] = revision_id

    def approve(self, document: DocumentRef, revision_id: int | None) -> None:
        if revision_id is None:
            self.approved.pop(document.key, None)
        else:
            self.approved[document.key] = revision_id

    # ContentStore
    def get_latest_revision_id(self, document: DocumentRef) -> int | None:
        self.calls.append(("latest", document.key))
        return self.latest.get(document.key)

    def get_revision(self, revision_id: int) -> Revision | None:
        self.calls.append(("revision", revision_id))
        return self.revisions.get(revision_id)

    def get_raw_content(self, revision: Revision) -> bytes:
        return revision.content

    # ApprovalTracker
    def get_approved_revision_id(self, document: DocumentRef) -> int | None:
        self.calls.append(("approved", document.key))
        return self.approved.get(document.key)


class RecordingIndex(MemorySemanticStore):
    """Memory store that records every protocol call."""

    def __init__(self, fail_on: str | None = None) -> None:
        super().__init__()
        self.calls: list[tuple[str, str]] = []
        self.fail_on = fail_on

    def clear_data(self, document: DocumentRef) -> None:
        self.calls.append(("clear", document.key))
        if self.fail_on == "clear":
            raise RuntimeError("clear exploded")
        super().clear_data(document)

    def update_data(self, data: StructuredData) -> None:
        self.calls.append(("update", data.document.key))
        if self.fail_on == "update":
            raise RuntimeError("update exploded")
        super().update_data(data)


class FakeCache:
    def __init__(self, fail: bool = False) -> None:
        self.invalidated: list[str] = []
        self.fail = fail

    def invalidate(self, document: DocumentRef) -> None:
        self.invalidated.append(document.key)
        if self.fail:
            raise RuntimeError("purge failed")


class FakeRunner:
    def __init__(self, fail: bool = False) -> None:
        self.jobs: list[ReconciliationJob] = []
        self.fail = fail

    def enqueue(self, job: ReconciliationJob) -> None:
        if self.fail:
            raise RuntimeError("queue unavailable")
        self.jobs.append(job)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def page():
    return DocumentRef(title="Widget")


@pytest.fixture
def wiki():
    return FakeWiki()


@pytest.fixture
def index():
    return RecordingIndex()


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def diverged(wiki, index, page):
    """Page whose approved revision (4, X=0) is older than its latest (10, X=1).

    The index holds the draft's facts, as a normal save of r10 would leave it.
    """
    wiki.save(page, 4, "Status [[X::0]]")
    wiki.save(page, 10, "Status [[X::1]]")
    wiki.approve(page, 4)
    index.update_data(
        StructuredData(
            document=page,
            facts={"X": [1]},
            version_stamp=10,
            source_revision_id=10,
        )
    )
    index.calls.clear()
    return wiki


@pytest.fixture
def mock_config(tmp_path):
    """Create a Config instance for testing."""
    return Config(
        wiki_url="https://wiki.example.org/w",
        username="testuser",
        password="testpass",
        insecure=False,
        state_dir=str(tmp_path / ".truth_sync"),
    )


@pytest.fixture
def mock_wiki_client(mock_config):
    """Create a mock WikiClient instance for testing."""
    from wiki_truth_sync.core.client import WikiClient

    client = MagicMock(spec=WikiClient)
    client.config = mock_config
    return client


@pytest.fixture
def sync_ctx(diverged, index):
    """Tool handler context around the diverged page, with a memory queue."""
    queue = MemoryJobQueue()
    engine = TruthSyncEngine(
        store=diverged, tracker=diverged, index=index, cache=FakeCache()
    )
    client = MagicMock()
    client.validate_connection.return_value = "MediaWiki 1.41.0"
    client.canonical_document.side_effect = lambda document: document
    return SyncContext(
        client=client,
        index=index,
        queue=queue,
        engine=engine,
        listener=ApprovalListener(queue),
        worker=JobWorker(queue, engine),
        enabled=True,
        capabilities={"has_approvals": True, "detection_method": "api"},
    )
