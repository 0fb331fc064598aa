"""
Input validation for page titles and revision identifiers.

Titles and revision ids arrive from query strings and MCP tool arguments;
both are checked here before any wiki API call is made.
"""

# Characters MediaWiki never allows in a page title
_ILLEGAL_TITLE_CHARS = frozenset("#<>[]|{}")

MAX_TITLE_BYTES = 255


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Page title")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def normalize_page_title(title: str) -> str:
    """
    Canonical form of a page title, as the wiki stores it.

    Underscores become spaces, whitespace runs collapse, and the first
    letter is upper-cased (``main_page`` -> ``Main page``).
    """
    text = " ".join(title.replace("_", " ").split())
    if not text:
        return ""
    return text[0].upper() + text[1:]


def validate_page_title(title: str) -> tuple[bool, str]:
    """
    Validate a wiki page title.

    Args:
        title: The page title to validate

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot contain any of ``# < > [ ] | { }``
        - Cannot exceed 255 bytes in UTF-8
    """
    if not title or not title.strip():
        return (
            False,
            format_validation_error("Page title", "cannot be empty"),
        )

    bad = sorted({c for c in title if c in _ILLEGAL_TITLE_CHARS})
    if bad:
        return (
            False,
            format_validation_error(
                "Page title", f"cannot contain {' '.join(bad)}"
            ),
        )

    if len(title.encode("utf-8")) > MAX_TITLE_BYTES:
        return (
            False,
            format_validation_error(
                "Page title", f"exceeds {MAX_TITLE_BYTES} bytes"
            ),
        )

    return (True, "")


def parse_revision_id(value: object) -> tuple[int | None, str]:
    """
    Parse a revision id from a request parameter or tool argument.

    Args:
        value: Raw value (str, int or None)

    Returns:
        Tuple of (revision_id, error_message).
        ``(None, "")`` when the value is absent, empty or ``0``;
        ``(None, reason)`` when it is present but not a positive integer.
    """
    if value is None or value == "" or value == 0 or value == "0":
        return (None, "")

    if isinstance(value, bool):
        return (
            None,
            format_validation_error("Revision id", "must be an integer"),
        )

    if isinstance(value, int):
        rev_id = value
    else:
        text = str(value).strip()
        if not text.isdigit():
            return (
                None,
                format_validation_error(
                    "Revision id", f"must be an integer, got '{text}'"
                ),
            )
        rev_id = int(text)

    if rev_id < 0:
        return (
            None,
            format_validation_error("Revision id", "must be positive"),
        )
    if rev_id == 0:
        return (None, "")
    return (rev_id, "")
