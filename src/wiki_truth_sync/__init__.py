"""Keep a semantic fact index aligned with approved wiki revisions."""

__version__ = "0.1.0"
