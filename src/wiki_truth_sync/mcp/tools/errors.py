"""Error response builders for MCP tool handlers.

Structured error responses carry a corrective action so an AI agent can
recover without human intervention.
"""

import mcp.types as types
import requests

from ...core.client import WikiAPIError


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, permission_denied, validation_error, disabled, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "Page 'Foo' not found", "Check the page title.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


# Action API error codes, grouped by what the agent should do next
_NOT_FOUND_CODES = frozenset(
    {"missingtitle", "nosuchrevid", "invalidtitle", "nosuchpageid"}
)
_PERMISSION_CODES = frozenset(
    {"permissiondenied", "readapidenied", "blocked", "protectedpage"}
)


def translate_wiki_error(
    error: WikiAPIError, page: str | None = None
) -> types.CallToolResult:
    """Translate an Action API error into a structured error response.

    Args:
        error: The API error
        page: Optional page title for contextual suggestions

    Returns:
        CallToolResult with isError=True and corrective action
    """
    match error.code:
        case code if code in _NOT_FOUND_CODES:
            action = (
                f"Check that page '{page}' and the revision exist."
                if page
                else "Check the page title and revision id."
            )
            return build_error_response("not_found", error.info, action)

        case code if code in _PERMISSION_CODES:
            return build_error_response(
                "permission_denied",
                error.info,
                "Check WIKI_USERNAME/WIKI_PASSWORD or ask a wiki administrator for read access.",
            )

        case "unknown_list" | "badvalue" | "unrecognizedparams":
            return build_error_response(
                "unsupported",
                error.info,
                "Install the Approved Revs extension on the wiki or set index.require_approvals: false.",
            )

        case _:
            return build_error_response(
                "server_error",
                f"{error.code}: {error.info}",
                "Contact the wiki administrator or retry later.",
            )


def translate_http_error(
    error: requests.RequestException,
) -> types.CallToolResult:
    """Translate a transport failure into a structured error response."""
    return build_error_response(
        "connection_error",
        str(error),
        "Check WIKI_URL and network connectivity, then retry.",
    )
