"""Semantic annotation parsing for wikitext.

``AnnotationDeriver`` turns raw wikitext into property/value facts. It is
the default ``Deriver`` and understands two forms:

- inline annotations: ``[[Population::3,500]]`` or
  ``[[Located in::Berlin|the capital]]`` (the label after ``|`` is display
  text and is ignored);
- ``{{#set: Prop=Value | Other prop=Value }}`` parser-function blocks.

Values are trimmed and typed: integers and floats become numbers
(thousands separators allowed), ``true``/``false`` become booleans,
everything else stays a string. Property names are normalised the way wiki
titles are: underscores become spaces, runs of whitespace collapse and the
first letter is upper-cased.
"""

from __future__ import annotations

import logging
import re

from ..errors import DerivationError
from .models import DocumentRef, FactValue

logger = logging.getLogger(__name__)

_INLINE_PATTERN = re.compile(r"\[\[([^\[\]|:]+?)::([^\[\]]*?)\]\]")
_SET_PATTERN = re.compile(r"\{\{\s*#set:(.*?)\}\}", re.DOTALL | re.IGNORECASE)
_NUMBER_PATTERN = re.compile(r"^[+-]?(\d{1,3}(,\d{3})+|\d+)(\.\d+)?$")
_WHITESPACE = re.compile(r"\s+")


def normalize_property(name: str) -> str:
    """Normalise a property name (``population_count`` -> ``Population count``)."""
    text = _WHITESPACE.sub(" ", name.replace("_", " ")).strip()
    if not text:
        return ""
    return text[0].upper() + text[1:]


def coerce_value(raw: str) -> FactValue:
    """Type a raw annotation value.

    Examples:
        >>> coerce_value("3,500")
        3500
        >>> coerce_value("2.5")
        2.5
        >>> coerce_value("True")
        True
        >>> coerce_value("Berlin")
        'Berlin'
    """
    text = raw.strip()
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if _NUMBER_PATTERN.match(text):
        digits = text.replace(",", "")
        if "." in digits:
            return float(digits)
        return int(digits)
    return text


class AnnotationDeriver:
    """Default content-to-facts derivation for wikitext."""

    def derive(
        self, document: DocumentRef, text: str
    ) -> dict[str, list[FactValue]]:
        """Extract facts from *text*.

        Raises:
            DerivationError: If *text* is not a string.
        """
        if not isinstance(text, str):
            raise DerivationError(
                f"Cannot derive facts for {document}: expected text, got {type(text).__name__}"
            )

        facts: dict[str, list[FactValue]] = {}
        for prop, value in self._iter_annotations(text):
            name = normalize_property(prop)
            if not name or not value.strip():
                continue
            typed = coerce_value(value)
            bucket = facts.setdefault(name, [])
            # 1 == True in Python, so compare on (type, value)
            if (type(typed), typed) not in {(type(v), v) for v in bucket}:
                bucket.append(typed)

        logger.debug(
            "Derived %d properties for %s", len(facts), document
        )
        return facts

    def _iter_annotations(self, text: str):
        """Yield ``(property, raw_value)`` pairs in document order."""
        spans: list[tuple[int, str, str]] = []

        for match in _INLINE_PATTERN.finditer(text):
            value = match.group(2).split("|", 1)[0]
            spans.append((match.start(), match.group(1), value))

        for match in _SET_PATTERN.finditer(text):
            for part in match.group(1).split("|"):
                if "=" not in part:
                    continue
                prop, value = part.split("=", 1)
                spans.append((match.start(), prop, value))

        spans.sort(key=lambda span: span[0])
        for _, prop, value in spans:
            yield prop, value
