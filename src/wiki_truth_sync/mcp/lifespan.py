"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..config import DEFAULT_STATE_DIR, load_config
from ..config_loader import discover_config_files, load_hierarchical_config
from ..config_schema import UnifiedConfig, build_config
from ..core.async_utils import init_semaphore, run_sync
from ..core.client import WikiClient
from ..detection import CapabilityDetector, is_sync_enabled
from ..index import create_index
from ..jobs import JobWorker, create_queue
from ..sync.engine import TruthSyncEngine
from ..sync.fallback import ApprovalListener
from ..sync.reconciler import DocumentLockTable
from .context import SyncContext

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


def build_context(
    client: WikiClient,
    unified: UnifiedConfig,
    state_dir: Path,
    capabilities: dict[str, Any],
) -> SyncContext:
    """Wire the engine, index, queue and worker around *client*."""
    enabled = is_sync_enabled(
        capabilities,
        index_enabled=unified.index.enabled,
        require_approvals=unified.index.require_approvals,
    )
    index = create_index(unified.index.backend, state_dir)
    queue = create_queue(unified.jobs.backend, state_dir)
    engine = TruthSyncEngine(
        store=client,
        tracker=client,
        index=index,
        cache=client,
        enabled=enabled,
        locks=DocumentLockTable(),
    )
    return SyncContext(
        client=client,
        index=index,
        queue=queue,
        engine=engine,
        listener=ApprovalListener(queue, enabled=enabled),
        worker=JobWorker(
            queue, engine, max_attempts=unified.jobs.max_attempts
        ),
        enabled=enabled,
        capabilities=capabilities,
    )


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
    unified: UnifiedConfig | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config file if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Create WikiClient and validate connection
    - Detect capabilities and compute the reconciliation toggle
    - Open the semantic index and job queue
    - Fail fast if the wiki is unreachable

    On shutdown:
    - Log shutdown message

    Args:
        config_overrides: Optional dict with config values from CLI (url, username, password, insecure)
        unified: Already-loaded config file contents; loaded here when omitted

    Yields:
        Dict with 'context' key containing the initialized SyncContext

    Raises:
        RuntimeError: If configuration is invalid or the wiki connection fails.
    """
    logger.info("MCP server starting...")
    _stderr_print("Wiki Truth Sync server starting...")

    try:
        # .env first, so ${VAR} interpolation in YAML can use its values
        load_dotenv()

        sources = []
        config_files = discover_config_files()
        if unified is None:
            unified = build_config(load_hierarchical_config())

        yaml_fallbacks: dict[str, Any] | None = None
        if config_files:
            yaml_fallbacks = {
                k: v
                for k, v in unified.wiki.model_dump().items()
                if v is not None
            }
            if unified.index.state_dir != DEFAULT_STATE_DIR:
                yaml_fallbacks["state_dir"] = unified.index.state_dir
            sources.append(f"config file: {config_files[0]}")

        overrides = config_overrides or {}
        config = load_config(
            url=overrides.get("url"),
            username=overrides.get("username"),
            password=overrides.get("password"),
            insecure=overrides.get("insecure", False),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Wiki URL: %s", config.wiki_url)
        _stderr_print(f"  Wiki URL: {config.wiki_url}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Ensure WIKI_URL is set.")
        raise RuntimeError(
            f"Configuration error: {e}. Ensure WIKI_URL is set."
        ) from e

    logger.info("Validating wiki connection...")
    _stderr_print("  Validating wiki connection...")
    try:
        client = WikiClient(config)
        generator = await run_sync(client.validate_connection)
        logger.info("Successfully connected to %s", generator)
        _stderr_print(f"  Connected to {generator}")
    except Exception as e:
        logger.error("Failed to connect to wiki: %s", e)
        _stderr_print("ERROR: Wiki connection failed.")
        _stderr_print(f"  {e}")
        _stderr_print("  Check WIKI_URL, WIKI_USERNAME, WIKI_PASSWORD.")
        raise RuntimeError(
            f"Wiki connection failed: {e}. Check WIKI_URL, WIKI_USERNAME, WIKI_PASSWORD."
        ) from e

    state_dir = Path(config.state_dir)
    try:
        detector = CapabilityDetector(client, config)
        capabilities = await run_sync(detector.detect_all)
        ctx = build_context(client, unified, state_dir, capabilities)
    except Exception as e:
        logger.error("Failed to initialise sync state: %s", e)
        _stderr_print(f"ERROR: Failed to initialise sync state: {e}")
        raise RuntimeError(f"Sync state initialisation failed: {e}") from e

    init_semaphore(config.max_parallel_requests)
    _stderr_print(f"  Parallel requests: {config.max_parallel_requests}")
    _stderr_print(f"  State directory: {state_dir}")
    if ctx.enabled:
        _stderr_print("  Reconciliation: enabled")
    else:
        logger.warning(
            "Reconciliation disabled (index.enabled=%s, approvals extension=%s)",
            unified.index.enabled,
            capabilities.get("has_approvals"),
        )
        _stderr_print("  Reconciliation: DISABLED")
    _stderr_print("Server ready. Waiting for MCP client connection...")

    yield {"context": ctx}

    logger.info("MCP server shutting down")
    _stderr_print("Wiki Truth Sync server shutting down.")
