"""
Wiki capability detection module.

Detects wiki capabilities including:
- MediaWiki version
- Installed extensions (approvals, semantic)
"""

from .capabilities import CapabilityDetector, is_sync_enabled
from .web_scraper import scrape_version_page

__all__ = ["CapabilityDetector", "is_sync_enabled", "scrape_version_page"]
