"""
Capability detection for the wiki behind the sync engine.

Decides once at startup whether reconciliation can run: the approvals
extension must be installed (unless configured otherwise) and the index
must be enabled. Results are cached to avoid a detection round-trip on
every start.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

APPROVALS_EXTENSION = "Approved Revs"
SEMANTIC_EXTENSION = "Semantic MediaWiki"


class CapabilityDetector:
    """
    Detects wiki capabilities through multiple methods.

    Detection methods:
    1. Action API siteinfo (fastest, works for anonymous readers)
    2. Web scraping Special:Version (fallback when the API is restricted)

    Results are cached in <state_dir>/capabilities.json with 24-hour expiry.
    """

    CACHE_EXPIRY_HOURS = 24

    def __init__(self, wiki_client, config):
        """
        Initialize capability detector.

        Args:
            wiki_client: WikiClient instance for API calls
            config: Config object (cache enabled when it has a state_dir)
        """
        self.wiki_client = wiki_client
        self.config = config

        state_dir = getattr(config, "state_dir", None)
        if state_dir:
            self.cache_path = Path(state_dir) / "capabilities.json"
        else:
            self.cache_path = None
            logger.warning("No state directory available, caching disabled")

    def detect_all(self, force_refresh: bool = False) -> dict[str, Any]:
        """
        Detect all capabilities using orchestrated detection methods.

        Args:
            force_refresh: If True, bypass cache and re-detect

        Returns:
            Dictionary with capability information:
            {
                "mediawiki_version": str or None,
                "extensions": list[str],
                "has_approvals": bool,
                "has_semantic_extension": bool,
                "detection_method": str,  # "api", "web_scraping", "none"
                "timestamp": str  # ISO 8601 timestamp
            }
        """
        if not force_refresh:
            cached = self._load_cache()
            if cached:
                logger.info(
                    "Using cached capabilities (expires in %s)",
                    self._format_cache_age(cached.get("timestamp")),
                )
                return cached

        capabilities: dict[str, Any] = {
            "mediawiki_version": None,
            "extensions": [],
            "has_approvals": False,
            "has_semantic_extension": False,
            "detection_method": "none",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        api_caps = self._detect_via_api()
        if api_caps:
            capabilities.update(api_caps)
            capabilities["detection_method"] = "api"
            logger.info(
                "Detected capabilities via API: %d extensions",
                len(api_caps["extensions"]),
            )
        else:
            web_caps = self._detect_via_web()
            if web_caps:
                capabilities["mediawiki_version"] = web_caps.get(
                    "mediawiki_version"
                )
                capabilities["extensions"] = sorted(
                    web_caps.get("extensions", {})
                )
                capabilities["detection_method"] = "web_scraping"
                logger.info(
                    "Detected capabilities via web scraping: MediaWiki %s",
                    web_caps.get("mediawiki_version", "unknown"),
                )

        names = set(capabilities["extensions"])
        capabilities["has_approvals"] = APPROVALS_EXTENSION in names
        capabilities["has_semantic_extension"] = SEMANTIC_EXTENSION in names

        # Failed detections are not cached so the next start retries
        if capabilities["detection_method"] != "none":
            self._save_cache(capabilities)

        return capabilities

    def _detect_via_api(self) -> dict[str, Any]:
        """
        Detect capabilities via meta=siteinfo.

        Returns:
            Dict with mediawiki_version and extensions, or {} on failure
        """
        try:
            info = self.wiki_client.get_site_info()
        except Exception as e:
            logger.warning("API detection failed: %s", e)
            return {}

        generator = str(info["general"].get("generator", ""))
        parts = generator.split()
        version = parts[1] if len(parts) >= 2 else None
        extensions = sorted(
            ext["name"] for ext in info["extensions"] if ext.get("name")
        )
        logger.debug(
            "API detection: MediaWiki %s, %d extensions",
            version,
            len(extensions),
        )
        return {"mediawiki_version": version, "extensions": extensions}

    def _detect_via_web(self) -> dict[str, Any]:
        """
        Detect capabilities via web scraping (fallback method).

        Returns:
            Dict with mediawiki_version and extensions
        """
        from .web_scraper import scrape_version_page

        auth_tuple = (
            (self.config.username, self.config.password)
            if self.config.username
            else None
        )
        return scrape_version_page(
            self.config.wiki_url,
            auth_tuple,
            verify=not self.config.insecure,
        )

    def _load_cache(self) -> dict[str, Any] | None:
        """
        Load capabilities from cache file if exists and not expired.

        Returns:
            Cached capabilities dict, or None if cache invalid/expired
        """
        if not self.cache_path or not self.cache_path.exists():
            return None

        try:
            with open(self.cache_path, "r") as f:
                cached = json.load(f)

            timestamp_str = cached.get("timestamp")
            if not timestamp_str:
                logger.warning(
                    "Cache missing timestamp, treating as expired"
                )
                return None

            try:
                cached_time = datetime.fromisoformat(timestamp_str)
            except ValueError:
                logger.warning(
                    "Invalid timestamp format in cache: %s",
                    timestamp_str,
                )
                return None

            if cached_time.tzinfo is None:
                cached_time = cached_time.replace(tzinfo=timezone.utc)

            age = datetime.now(timezone.utc) - cached_time
            if age > timedelta(hours=self.CACHE_EXPIRY_HOURS):
                logger.info(
                    "Cache expired (age: %s), will re-detect", age
                )
                return None

            logger.debug("Cache valid (age: %s)", age)
            return cached

        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load cache: %s", e)
            return None

    def _save_cache(self, capabilities: dict[str, Any]) -> None:
        if not self.cache_path:
            logger.debug("Cache path not available, skipping save")
            return

        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.cache_path, "w") as f:
                json.dump(capabilities, f, indent=2)
            logger.debug(
                "Saved capabilities to cache: %s", self.cache_path
            )
        except OSError as e:
            logger.warning("Failed to save cache: %s", e)

    def _format_cache_age(self, timestamp_str: str | None) -> str:
        """
        Format remaining cache lifetime for logging.

        Returns:
            Human-readable string like "2h 30m" or "expired"
        """
        if not timestamp_str:
            return "unknown"

        try:
            cached_time = datetime.fromisoformat(timestamp_str)
            if cached_time.tzinfo is None:
                cached_time = cached_time.replace(tzinfo=timezone.utc)

            age = datetime.now(timezone.utc) - cached_time
            expiry = timedelta(hours=self.CACHE_EXPIRY_HOURS) - age

            if expiry.total_seconds() <= 0:
                return "expired"

            hours = int(expiry.total_seconds() // 3600)
            minutes = int((expiry.total_seconds() % 3600) // 60)

            if hours > 0:
                return f"{hours}h {minutes}m"
            return f"{minutes}m"

        except (ValueError, AttributeError):
            return "unknown"


def is_sync_enabled(
    capabilities: dict[str, Any],
    index_enabled: bool = True,
    require_approvals: bool = True,
) -> bool:
    """
    Global capability toggle for reconciliation.

    Args:
        capabilities: Result of ``CapabilityDetector.detect_all``
        index_enabled: ``index.enabled`` from config
        require_approvals: ``index.require_approvals`` from config

    Returns:
        True when reconciliation may run
    """
    if not index_enabled:
        return False
    if require_approvals and not capabilities.get("has_approvals"):
        return False
    return True
