import threading
from typing import Any

import requests

from .. import __version__
from ..config import Config
from ..sync.models import DocumentRef, Revision
from ..validators import normalize_page_title, validate_page_title


class WikiAPIError(Exception):
    """Error envelope returned by the wiki's Action API."""

    def __init__(self, code: str, info: str):
        self.code = code
        self.info = info
        super().__init__(f"{code}: {info}")


class WikiClient:
    """MediaWiki Action API client.

    Provides revision lookup, approved revision lookup and page purging,
    which makes one instance usable as the engine's content store,
    approval tracker and render cache.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.api_url = self._get_api_url()
        self._namespaces: dict[int, str] | None = None
        self._namespace_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """Session of the current thread."""
        return self._get_session()

    def _get_api_url(self) -> str:
        return f"{self.config.wiki_url.rstrip('/')}/api.php"

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        if self.config.username:
            session.auth = (self.config.username, self.config.password)
        session.verify = not self.config.insecure
        session.headers["User-Agent"] = f"wiki-truth-sync/{__version__}"
        return session

    def _api_request(
        self, params: dict[str, Any], post: bool = False
    ) -> dict[str, Any]:
        """
        Make an Action API request and return the decoded JSON body.
        """
        payload = {"format": "json", "formatversion": "2", **params}
        session = self._get_session()
        if post:
            response = session.post(
                self.api_url, data=payload, timeout=(10, 60)
            )
        else:
            response = session.get(
                self.api_url, params=payload, timeout=(10, 60)
            )
        response.raise_for_status()

        data = response.json()
        error = data.get("error")
        if error is not None:
            raise WikiAPIError(
                error.get("code", "unknown"),
                error.get("info", "Unknown error"),
            )
        return data

    # ------------------------------------------------------------------
    # Titles
    # ------------------------------------------------------------------

    def full_title(self, document: DocumentRef) -> str:
        """
        Title with its namespace prefix, as the API expects it.

        Raises:
            ValueError: If the title is invalid or the namespace is unknown
        """
        is_valid, error_msg = validate_page_title(document.title)
        if not is_valid:
            raise ValueError(f"Invalid page title: {error_msg}")
        if document.namespace == 0:
            return document.title

        prefix = self.get_namespaces().get(document.namespace)
        if prefix is None:
            raise ValueError(f"Unknown namespace {document.namespace}")
        return f"{prefix}:{document.title}"

    def canonical_document(self, document: DocumentRef) -> DocumentRef:
        """
        Move a namespace prefix typed into a main-namespace title into
        the namespace field (``0:Help:Foo`` -> ``12:Foo``).

        Titles whose prefix is not a known namespace are returned as is.
        """
        if document.namespace != 0 or ":" not in document.title:
            return document
        prefix, rest = document.title.split(":", 1)
        wanted = normalize_page_title(prefix).lower()
        for ns_id, name in self.get_namespaces().items():
            if ns_id != 0 and name and name.lower() == wanted:
                return DocumentRef(namespace=ns_id, title=rest)
        return document

    def get_namespaces(self) -> dict[int, str]:
        """
        Namespace id to canonical prefix, fetched once per client.
        """
        with self._namespace_lock:
            if self._namespaces is None:
                data = self._api_request(
                    {
                        "action": "query",
                        "meta": "siteinfo",
                        "siprop": "namespaces",
                    }
                )
                namespaces = data.get("query", {}).get("namespaces", {})
                self._namespaces = {
                    int(ns["id"]): ns.get("name", "")
                    for ns in namespaces.values()
                }
            return self._namespaces

    # ------------------------------------------------------------------
    # Content store
    # ------------------------------------------------------------------

    def get_latest_revision_id(self, document: DocumentRef) -> int | None:
        """
        Latest revision id of a page.

        Returns:
            The ``lastrevid``, or None if the page does not exist
        """
        data = self._api_request(
            {
                "action": "query",
                "prop": "info",
                "titles": self.full_title(document),
            }
        )
        pages = data.get("query", {}).get("pages", [])
        if not pages or pages[0].get("missing") or pages[0].get("invalid"):
            return None
        last = pages[0].get("lastrevid")
        return int(last) if last else None

    def get_revision(self, revision_id: int) -> Revision | None:
        """
        Fetch a revision with its main-slot content.

        Returns:
            The revision, or None for unknown or deleted revision ids
        """
        data = self._api_request(
            {
                "action": "query",
                "prop": "revisions",
                "revids": str(revision_id),
                "rvprop": "ids|timestamp|content",
                "rvslots": "main",
            }
        )
        query = data.get("query", {})
        if query.get("badrevids"):
            return None

        for page in query.get("pages", []):
            for rev in page.get("revisions", []):
                if int(rev.get("revid", 0)) != revision_id:
                    continue
                main = rev.get("slots", {}).get("main", {})
                if main.get("texthidden") or "content" not in main:
                    return None
                return Revision(
                    revision_id=revision_id,
                    document=DocumentRef(
                        namespace=page.get("ns", 0),
                        title=self._strip_namespace(
                            page["title"], page.get("ns", 0)
                        ),
                    ),
                    content=main["content"].encode("utf-8"),
                    timestamp=rev.get("timestamp"),
                )
        return None

    def get_raw_content(self, revision: Revision) -> bytes:
        """
        Raw content of a revision (fetched along with the revision).
        """
        return revision.content

    def _strip_namespace(self, title: str, namespace: int) -> str:
        if namespace == 0:
            return title
        prefix = self.get_namespaces().get(namespace, "")
        if prefix and title.startswith(prefix + ":"):
            return title[len(prefix) + 1 :]
        return title

    # ------------------------------------------------------------------
    # Approval tracker
    # ------------------------------------------------------------------

    def get_approved_revision_id(self, document: DocumentRef) -> int | None:
        """
        Approved revision id of a page from the approvals listing.

        Returns:
            The approved ``revid``, or None if the page has no approval
        """
        data = self._api_request(
            {
                "action": "query",
                "list": "approvedrevs",
                "arpage": self.full_title(document),
            }
        )
        # arpage filters by page; the listing echoes the canonical title
        for entry in data.get("query", {}).get("approvedrevs", []):
            if entry.get("revid"):
                return int(entry["revid"])
        return None

    # ------------------------------------------------------------------
    # Render cache
    # ------------------------------------------------------------------

    def purge(self, document: DocumentRef) -> bool:
        """
        Purge the page's parser cache.

        Returns:
            True if the wiki reported the page as purged
        """
        data = self._api_request(
            {"action": "purge", "titles": self.full_title(document)},
            post=True,
        )
        purged = data.get("purge", [])
        return bool(purged) and bool(purged[0].get("purged"))

    def invalidate(self, document: DocumentRef) -> None:
        self.purge(document)

    # ------------------------------------------------------------------
    # Site
    # ------------------------------------------------------------------

    def get_site_info(self) -> dict[str, Any]:
        """
        General site information and installed extensions.

        Returns:
            Dict with keys: general (dict), extensions (list of dicts)
        """
        data = self._api_request(
            {
                "action": "query",
                "meta": "siteinfo",
                "siprop": "general|extensions",
            }
        )
        query = data.get("query", {})
        return {
            "general": query.get("general", {}),
            "extensions": query.get("extensions", []),
        }

    def validate_connection(self) -> str:
        """
        Validate connection by fetching site information.
        Returns the wiki's generator string (e.g. ``MediaWiki 1.41.0``).
        """
        general = self.get_site_info()["general"]
        return str(general.get("generator", ""))
