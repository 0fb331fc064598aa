"""Tests for the unified config schema and adapter functions.

Covers the Pydantic section models in config_schema.py, the
build_config() factory, and the to_legacy_config() adapter.
"""

import pytest
from pydantic import ValidationError

from wiki_truth_sync.config_schema import (
    IndexConfig,
    JobsConfig,
    LoggingConfig,
    UnifiedConfig,
    WikiConfig,
    WorkflowConfig,
    build_config,
    to_legacy_config,
)

# ---------------------------------------------------------------------------
# UnifiedConfig tests
# ---------------------------------------------------------------------------


class TestUnifiedConfig:
    """Tests for the top-level UnifiedConfig model."""

    def test_empty_dict_produces_valid_defaults(self):
        config = UnifiedConfig()
        assert config.wiki.url is None
        assert config.wiki.insecure is False
        assert config.index.enabled is True
        assert config.index.backend == "file"
        assert config.index.state_dir == ".truth_sync"
        assert config.index.require_approvals is True
        assert config.jobs.max_attempts == 3
        assert config.logging.level == "INFO"
        assert config.logging.format == "text"

    def test_full_config_with_all_sections(self):
        config = build_config(
            {
                "wiki": {
                    "url": "https://wiki.example.org/w",
                    "username": "bot",
                    "password": "secret",
                    "max_parallel_requests": 10,
                },
                "index": {"backend": "memory", "require_approvals": False},
                "jobs": {"backend": "memory", "max_attempts": 5},
                "workflow": {"redirect_delay_ms": 0},
                "logging": {"level": "DEBUG", "format": "json"},
            }
        )
        assert config.wiki.max_parallel_requests == 10
        assert config.index.backend == "memory"
        assert config.jobs.max_attempts == 5
        assert config.workflow.redirect_delay_ms == 0
        assert config.workflow.complete_delay_ms == 800
        assert config.logging.format == "json"

    def test_unknown_sections_ignored(self, caplog):
        config = build_config({"trac": {"url": "x"}, "logging": {}})
        assert config == UnifiedConfig()
        assert "trac" in caplog.text

    def test_empty_raw_data(self):
        assert build_config({}) == UnifiedConfig()

    def test_frozen_model_prevents_mutation(self):
        config = UnifiedConfig()
        with pytest.raises(ValidationError):
            config.index = IndexConfig(enabled=False)


class TestSectionValidation:
    def test_wiki_max_parallel_bounds(self):
        with pytest.raises(ValidationError):
            WikiConfig(max_parallel_requests=0)
        with pytest.raises(ValidationError):
            WikiConfig(max_parallel_requests=101)

    def test_index_backend_rejects_unknown(self):
        with pytest.raises(ValidationError):
            IndexConfig(backend="redis")

    def test_jobs_max_attempts_positive(self):
        with pytest.raises(ValidationError):
            JobsConfig(max_attempts=0)

    def test_workflow_delays_non_negative(self):
        with pytest.raises(ValidationError):
            WorkflowConfig(start_delay_ms=-1)

    def test_logging_format_rejects_unknown(self):
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")


# ---------------------------------------------------------------------------
# to_legacy_config()
# ---------------------------------------------------------------------------


class TestToLegacyConfig:
    def test_values_from_unified(self):
        unified = build_config(
            {
                "wiki": {"url": "https://wiki.example.org", "username": "bot"},
                "index": {"state_dir": "/srv/state"},
            }
        )
        config = to_legacy_config(unified)
        assert config.wiki_url == "https://wiki.example.org"
        assert config.username == "bot"
        assert config.password == ""
        assert config.state_dir == "/srv/state"

    def test_cli_overrides_win(self):
        unified = build_config({"wiki": {"url": "https://wiki.example.org"}})
        config = to_legacy_config(
            unified, cli_overrides={"url": "https://cli.example.org", "insecure": True}
        )
        assert config.wiki_url == "https://cli.example.org"
        assert config.insecure is True

    def test_zero_config(self):
        config = to_legacy_config(UnifiedConfig())
        assert config.wiki_url == ""
        assert config.max_parallel_requests == 5
