"""Reconciliation report formatting functions.

Provides human-readable and machine-readable output for sync operations:

- ``format_sync_result`` -- one reconciliation, one or two lines.
- ``format_job_run`` -- summary of a job worker drain.
- ``result_to_json`` -- structured dict for MCP tool output.
- ``job_run_to_json`` -- structured dict for a job worker drain.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from .models import ReconcileOutcome

if TYPE_CHECKING:
    from .models import ReconcileResult

_OUTCOME_LABELS = {
    ReconcileOutcome.OK: "Reconciled",
    ReconcileOutcome.SKIPPED: "Skipped",
    ReconcileOutcome.FAILED: "Failed",
    ReconcileOutcome.DISABLED: "Disabled",
}

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_result(result: ReconcileResult) -> str:
    """Format one reconciliation result as human-readable text.

    Args:
        result: The reconciliation result.

    Returns:
        Formatted string; a second line carries the error, if any.
    """
    label = _OUTCOME_LABELS[result.outcome]
    line = f"{label} {result.document}"
    if result.outcome == ReconcileOutcome.OK:
        line += (
            f": content of r{result.target_revision_id} "
            f"indexed as r{result.latest_revision_id}"
        )
        if result.target_revision_id == result.latest_revision_id:
            line += " (approved is latest)"
    elif result.target_revision_id is not None:
        line += f" (target r{result.target_revision_id})"

    lines = [line]
    if result.error:
        lines.append(f"  {result.error}")
    return "\n".join(lines)


def format_job_run(results: list[ReconcileResult]) -> str:
    """Format the results of one job worker drain.

    Args:
        results: Results in execution order.

    Returns:
        Multi-line formatted string.
    """
    if not results:
        return "No pending reconciliation jobs."

    counts = Counter(r.outcome for r in results)
    lines = [
        f"Ran {len(results)} jobs: "
        f"{counts[ReconcileOutcome.OK]} reconciled, "
        f"{counts[ReconcileOutcome.SKIPPED]} skipped, "
        f"{counts[ReconcileOutcome.FAILED]} failed, "
        f"{counts[ReconcileOutcome.DISABLED]} disabled",
        "",
    ]
    for r in results:
        lines.append(format_sync_result(r))
    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def result_to_json(result: ReconcileResult) -> dict:
    """Convert a result to a structured dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.
    """
    entry: dict = {
        "namespace": result.document.namespace,
        "page": result.document.title,
        "outcome": result.outcome.value,
        "target_revision_id": result.target_revision_id,
        "latest_revision_id": result.latest_revision_id,
        "started_at": result.started_at,
        "completed_at": result.completed_at,
    }
    if result.error:
        entry["error"] = result.error
    return entry


def job_run_to_json(results: list[ReconcileResult]) -> dict:
    counts = Counter(r.outcome.value for r in results)
    return {
        "counts": {
            "total": len(results),
            **{o.value: counts.get(o.value, 0) for o in ReconcileOutcome},
        },
        "results": [result_to_json(r) for r in results],
    }
