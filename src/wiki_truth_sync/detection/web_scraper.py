"""
Web scraping utilities for detecting wiki capabilities.

Scrapes Special:Version to extract the MediaWiki version and the list of
installed extensions when the API's siteinfo is unavailable.
"""

import logging
from typing import Any

import requests
from lxml import html

logger = logging.getLogger(__name__)


def scrape_version_page(
    base_url: str,
    auth_tuple: tuple[str, str] | None = None,
    verify: bool = True,
) -> dict[str, Any]:
    """
    Scrape the wiki's Special:Version page.

    Args:
        base_url: Wiki base URL (directory of index.php)
        auth_tuple: (username, password) for HTTP Basic authentication
        verify: Verify TLS certificates

    Returns:
        Dict with keys:
        - mediawiki_version: str or None
        - extensions: dict mapping extension name to version string

    Returns empty dict if scraping fails (permission denied, connection error, etc.).
    """
    try:
        version_url = f"{base_url.rstrip('/')}/index.php"
        response = requests.get(
            version_url,
            params={"title": "Special:Version"},
            auth=auth_tuple,
            verify=verify,
            timeout=10,
        )
        response.raise_for_status()

        tree = html.fromstring(response.content)

        result: dict[str, Any] = {
            "mediawiki_version": None,
            "extensions": {},
        }

        # <meta name="generator" content="MediaWiki 1.41.0">
        generator = tree.xpath('//meta[@name="generator"]/@content')
        if generator:
            parts = generator[0].strip().split()
            if len(parts) >= 2 and parts[0] == "MediaWiki":
                result["mediawiki_version"] = parts[1]
                logger.debug(
                    "Extracted MediaWiki version: %s",
                    result["mediawiki_version"],
                )

        # One <tr class="mw-version-ext"> per installed extension or skin
        for row in tree.xpath('//tr[contains(@class, "mw-version-ext")]'):
            names = row.xpath(
                './/*[contains(@class, "mw-version-ext-name")]'
            )
            if not names:
                continue
            name = names[0].text_content().strip()
            versions = row.xpath(
                './/*[contains(@class, "mw-version-ext-version")]'
            )
            result["extensions"][name] = (
                versions[0].text_content().strip() if versions else ""
            )

        logger.debug("Extracted %d extensions", len(result["extensions"]))
        return result

    except requests.HTTPError as e:
        logger.warning(
            "Web scraping failed: HTTP %d", e.response.status_code
        )
        return {}

    except requests.RequestException as e:
        logger.warning("Web scraping failed: connection error - %s", e)
        return {}

    except Exception as e:
        logger.warning("Web scraping failed: unexpected error - %s", e)
        return {}
