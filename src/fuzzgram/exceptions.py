"""Custom exception hierarchy for fuzzgram.

Configuration problems surface once, when a schema is activated. Argument
problems surface synchronously at call time. Storage and index failures wrap
the underlying library error so callers can discriminate categories while
keeping the original context.
"""

from __future__ import annotations


class FuzzgramError(Exception):
    """Base class for all fuzzgram exceptions."""


class ConfigurationError(FuzzgramError):
    """Raised when field specifications, activation options or settings are invalid."""


class InvalidArgumentError(FuzzgramError):
    """Raised when a call receives an unusable argument (min size, query, filter)."""


class StorageError(FuzzgramError):
    """Raised when the storage layer encounters an error (DB, missing document, etc.)."""


class SearchError(FuzzgramError):
    """Raised for text index write or query issues."""
