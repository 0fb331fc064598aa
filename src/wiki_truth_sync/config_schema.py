"""Unified configuration schema for wiki_truth_sync.

Defines Pydantic models for the config file structure with dedicated
sections for the wiki connection, the semantic index, the job queue, the
staged workflow's client timings, and logging. Includes an adapter that
produces the ``Config`` dataclass used by the connection layer.

Usage:
    from wiki_truth_sync.config_schema import build_config, to_legacy_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    legacy = to_legacy_config(unified, cli_overrides={"url": "https://..."})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class WikiConfig(BaseModel):
    """Wiki connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    url: str | None = Field(
        default=None, description="Wiki base URL (directory of api.php)"
    )
    username: str | None = Field(
        default=None, description="HTTP auth username"
    )
    password: str | None = Field(
        default=None, description="HTTP auth password"
    )
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    max_parallel_requests: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum concurrent requests to the wiki (1-100)",
    )

    model_config = {"frozen": True}


class IndexConfig(BaseModel):
    """Semantic index settings.

    Attributes:
        enabled: Master switch for reconciliation. When ``False`` no
            reconciliation logic runs anywhere.
        backend: ``file`` persists facts under ``state_dir``; ``memory``
            keeps them for the process lifetime only.
        state_dir: Directory for index files, the job queue and caches.
        require_approvals: Only reconcile when the wiki reports an
            approvals extension.
    """

    enabled: bool = Field(default=True, description="Enable reconciliation")
    backend: Literal["file", "memory"] = Field(
        default="file", description="Index storage backend"
    )
    state_dir: str = Field(
        default=".truth_sync", description="State directory"
    )
    require_approvals: bool = Field(
        default=True,
        description="Require the approvals extension on the wiki",
    )

    model_config = {"frozen": True}


class JobsConfig(BaseModel):
    """Background job queue settings."""

    backend: Literal["file", "memory"] = Field(
        default="file", description="Job queue storage backend"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=50,
        description="Executions before a failing job is dropped",
    )

    model_config = {"frozen": True}


class WorkflowConfig(BaseModel):
    """Client-side timings (milliseconds) for the staged sync overlay."""

    start_delay_ms: int = Field(default=100, ge=0, le=10000)
    redirect_delay_ms: int = Field(default=500, ge=0, le=10000)
    complete_delay_ms: int = Field(default=800, ge=0, le=10000)
    purge_delay_ms: int = Field(default=600, ge=0, le=10000)

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json`` (structured reconciliation events).
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log line format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()`` (zero-config)
    is always valid.
    """

    wiki: WikiConfig = Field(default_factory=WikiConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.
    Unknown sections are ignored with a warning.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    known = set(UnifiedConfig.model_fields)
    unknown = sorted(k for k in raw_data if k not in known)
    if unknown:
        logger.warning(
            "Ignoring unknown config sections: %s", ", ".join(unknown)
        )

    return UnifiedConfig(
        **{k: v for k, v in raw_data.items() if k in known}
    )


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> Config dataclass
# ---------------------------------------------------------------------------


def to_legacy_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value > empty

    CLI overrides dict keys: url, username, password, insecure, debug.

    Args:
        unified: The unified config produced by ``build_config()``.
        cli_overrides: Optional dict of CLI argument values.

    Returns:
        ``Config`` dataclass instance (NOT validated; caller should run
        ``validate_config()`` separately if needed).
    """
    from .config import Config

    overrides = cli_overrides or {}

    return Config(
        wiki_url=overrides.get("url") or unified.wiki.url or "",
        username=overrides.get("username")
        or unified.wiki.username
        or "",
        password=overrides.get("password")
        or unified.wiki.password
        or "",
        insecure=overrides.get("insecure", False)
        or unified.wiki.insecure,
        debug=overrides.get("debug", False) or unified.wiki.debug,
        max_parallel_requests=unified.wiki.max_parallel_requests,
        state_dir=unified.index.state_dir,
    )
