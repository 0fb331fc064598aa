"""Staged, client-driven sync workflow.

A host calls ``StagedWorkflowController.handle`` from its page-render
hook. The controller is a state machine driven one request at a time::

    IDLE --(action=approve|unapprove)--> PHASE1 --(client redirect)--> PHASE2 --> DONE

- PHASE1 renders the overlay at 0% and a script that redirects to the same
  page with ``syncstage=2&revsync=<target>``. No reconciliation happens, so
  the approval action's own response is not delayed.
- PHASE2 releases the request's session lock, runs the reconciliation
  synchronously, then renders the overlay again with a script that purges
  the page and navigates to its plain URL.

No server-side state survives between the phases: the redirect URL
carries the target revision and the phase marker. If the client never
comes back for phase 2, the queued fallback job still reconciles.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from ..config_schema import WorkflowConfig
from ..validators import parse_revision_id
from .engine import TruthSyncEngine
from .models import (
    DocumentRef,
    ReconcileOutcome,
    ReconcileResult,
    SyncSession,
    SyncStage,
)
from .overlay import render_overlay_html, render_overlay_script

logger = logging.getLogger(__name__)

APPROVAL_ACTIONS = frozenset({"approve", "unapprove"})
STAGE_PARAM = "syncstage"
REVISION_PARAM = "revsync"
PHASE_TWO_MARKER = "2"


@dataclass
class PageRequest:
    """What the host knows about the page view being rendered.

    Attributes:
        document: Page being viewed.
        url: Link URL of the page (no sync parameters).
        params: Query parameters of the current request.
        printable: True for print views, which never show the overlay.
        release_session: Releases the host's per-client session lock.
    """

    document: DocumentRef
    url: str
    params: Mapping[str, str] = field(default_factory=dict)
    printable: bool = False
    release_session: Callable[[], None] | None = None


@dataclass(frozen=True)
class PageInjection:
    """Markup and inline script for the host to add to the page."""

    stage: SyncStage
    html: str
    script: str
    session: SyncSession
    result: ReconcileResult | None = None


class StagedWorkflowController:
    """Decide the sync stage of a page view and produce its page additions.

    Args:
        engine: Engine used for phase 2 reconciliation and target lookup.
        timings: Client-side delays for the overlay script.
    """

    def __init__(
        self,
        engine: TruthSyncEngine,
        timings: WorkflowConfig | None = None,
    ) -> None:
        self.engine = engine
        self.timings = timings or WorkflowConfig()

    def stage_for(self, request: PageRequest) -> SyncStage:
        """Return PHASE1, PHASE2 or IDLE for *request*."""
        if request.printable:
            return SyncStage.IDLE
        if request.params.get(STAGE_PARAM) == PHASE_TWO_MARKER:
            return SyncStage.PHASE2
        if request.params.get("action") in APPROVAL_ACTIONS:
            return SyncStage.PHASE1
        return SyncStage.IDLE

    def handle(self, request: PageRequest) -> PageInjection | None:
        """Process one page view.

        Returns:
            ``None`` for ordinary page views, otherwise the overlay markup
            and script. Never raises for reconciliation failures.
        """
        stage = self.stage_for(request)
        if stage == SyncStage.IDLE:
            return None

        override, invalid_override = self._parse_override(request)

        if stage == SyncStage.PHASE1:
            return self._phase_one(request, override, invalid_override)
        return self._phase_two(request, override, invalid_override)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _phase_one(
        self,
        request: PageRequest,
        override: int | None,
        invalid_override: bool,
    ) -> PageInjection:
        target = None
        latest = None
        try:
            # Display only; nothing is reconciled in phase 1
            target = None if invalid_override else self.engine.resolve(
                request.document, override
            )
            latest = self.engine.store.get_latest_revision_id(
                request.document
            )
        except Exception as exc:
            logger.error(
                "Could not resolve sync target for %s: %s",
                request.document,
                exc,
                extra={"event": "resolve_failed", "document": request.document.key},
            )

        session = SyncSession(
            document=request.document,
            target_revision_id=target,
            latest_revision_id=latest,
            phase=1,
            override_revision_id=override,
        )
        logger.debug("Phase 1 for %s, target r%s", request.document, target)
        return PageInjection(
            stage=SyncStage.PHASE1,
            html=render_overlay_html(target),
            script=render_overlay_script(
                request.url, None, target, self.timings
            ),
            session=session,
        )

    def _phase_two(
        self,
        request: PageRequest,
        override: int | None,
        invalid_override: bool,
    ) -> PageInjection:
        # The purge request from this same client must not queue behind us
        if request.release_session is not None:
            try:
                request.release_session()
            except Exception as exc:
                logger.warning(
                    "Failed to release session for %s: %s",
                    request.document,
                    exc,
                )

        if invalid_override:
            result = ReconcileResult(
                document=request.document,
                outcome=ReconcileOutcome.SKIPPED,
                error=f"invalid {REVISION_PARAM} value: {request.params.get(REVISION_PARAM)!r}",
            )
            logger.warning(
                "Skipping reconciliation of %s: %s",
                request.document,
                result.error,
                extra={
                    "event": "sync_skipped",
                    "document": request.document.key,
                    "outcome": result.outcome.value,
                },
            )
        else:
            try:
                result = self.engine.sync_document(request.document, override)
            except Exception as exc:
                logger.exception(
                    "Phase 2 reconciliation crashed for %s", request.document
                )
                result = ReconcileResult(
                    document=request.document,
                    outcome=ReconcileOutcome.FAILED,
                    target_revision_id=override,
                    error=str(exc),
                )

        target = result.target_revision_id or override
        session = SyncSession(
            document=request.document,
            target_revision_id=target,
            latest_revision_id=result.latest_revision_id,
            phase=2,
            override_revision_id=override,
        )
        return PageInjection(
            stage=SyncStage.DONE,
            html=render_overlay_html(target),
            script=render_overlay_script(
                request.url, PHASE_TWO_MARKER, target, self.timings
            ),
            session=session,
            result=result,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _parse_override(
        self, request: PageRequest
    ) -> tuple[int | None, bool]:
        """Return ``(override, invalid)`` for the ``revsync`` parameter."""
        override, error = parse_revision_id(
            request.params.get(REVISION_PARAM)
        )
        if error:
            logger.warning(
                "Ignoring %s for %s: %s",
                REVISION_PARAM,
                request.document,
                error,
            )
            return None, True
        return override, False
