"""Tests for reconciliation report formatting."""

from wiki_truth_sync.sync.models import (
    DocumentRef,
    ReconcileOutcome,
    ReconcileResult,
)
from wiki_truth_sync.sync.reporter import (
    format_job_run,
    format_sync_result,
    job_run_to_json,
    result_to_json,
)

DOC = DocumentRef(title="Widget")


def _result(outcome, target=None, latest=None, error=None):
    return ReconcileResult(
        document=DOC,
        outcome=outcome,
        target_revision_id=target,
        latest_revision_id=latest,
        error=error,
        started_at="2026-01-01T00:00:00+00:00",
        completed_at="2026-01-01T00:00:01+00:00",
    )


class TestFormatSyncResult:
    def test_ok_spoofed(self):
        text = format_sync_result(_result(ReconcileOutcome.OK, 4, 10))
        assert text == "Reconciled 0:Widget: content of r4 indexed as r10"

    def test_ok_approved_is_latest(self):
        text = format_sync_result(_result(ReconcileOutcome.OK, 10, 10))
        assert text.endswith("(approved is latest)")

    def test_failure_has_error_line(self):
        text = format_sync_result(
            _result(ReconcileOutcome.FAILED, 4, error="update exploded")
        )
        first, second = text.split("\n")
        assert first == "Failed 0:Widget (target r4)"
        assert second == "  update exploded"

    def test_skipped_without_target(self):
        text = format_sync_result(
            _result(ReconcileOutcome.SKIPPED, error="no revision")
        )
        assert text.startswith("Skipped 0:Widget\n")


class TestFormatJobRun:
    def test_empty(self):
        assert format_job_run([]) == "No pending reconciliation jobs."

    def test_counts(self):
        text = format_job_run(
            [
                _result(ReconcileOutcome.OK, 4, 10),
                _result(ReconcileOutcome.OK, 10, 10),
                _result(ReconcileOutcome.FAILED, 4, error="boom"),
            ]
        )
        assert text.splitlines()[0] == (
            "Ran 3 jobs: 2 reconciled, 0 skipped, 1 failed, 0 disabled"
        )
        assert "Failed 0:Widget (target r4)" in text


class TestJson:
    def test_result_to_json(self):
        entry = result_to_json(_result(ReconcileOutcome.OK, 4, 10))
        assert entry == {
            "namespace": 0,
            "page": "Widget",
            "outcome": "ok",
            "target_revision_id": 4,
            "latest_revision_id": 10,
            "started_at": "2026-01-01T00:00:00+00:00",
            "completed_at": "2026-01-01T00:00:01+00:00",
        }

    def test_error_included(self):
        entry = result_to_json(_result(ReconcileOutcome.FAILED, error="boom"))
        assert entry["error"] == "boom"

    def test_job_run_to_json(self):
        payload = job_run_to_json(
            [
                _result(ReconcileOutcome.OK, 4, 10),
                _result(ReconcileOutcome.SKIPPED),
            ]
        )
        assert payload["counts"] == {
            "total": 2,
            "ok": 1,
            "skipped": 1,
            "failed": 0,
            "disabled": 0,
        }
        assert len(payload["results"]) == 2
