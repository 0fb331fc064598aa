"""Byte-to-text decoding for raw revision content."""

from charset_normalizer import from_bytes


def decode_content(raw: bytes) -> tuple[str, str]:
    """Decode raw revision content with automatic encoding detection.

    UTF-8 is tried first since wikis store text that way; charset-normalizer
    only runs for content that is not valid UTF-8 (legacy imports).

    Args:
        raw: Raw content bytes.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    if not raw:
        return ("", "utf-8")

    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")

    encoding = result.encoding
    # ascii is a strict subset of utf-8
    if encoding == "ascii":
        encoding = "utf-8"
    return (str(result), encoding)
