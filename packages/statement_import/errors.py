"""Exception hierarchy for the statement import pipeline.

Fatal errors (``SecurityError``, ``HeaderNotFound``, ``RateLimitExceeded``)
abort a whole import before any row is processed. ``RowParseError`` is
row-local: parsers catch it, record a failure for the row and move on.
``StoreError`` wraps record-store failures so the importer can degrade to
per-row inserts without depending on a particular storage backend.
"""

from __future__ import annotations


class StatementImportError(Exception):
    """Base class for all pipeline errors."""


class SecurityError(StatementImportError):
    """Raised when a CSV payload fails the up-front security validation."""

    def __init__(self, message: str, *, rule: str) -> None:
        super().__init__(message)
        self.rule = rule


class HeaderNotFound(StatementImportError):
    """Raised when no header line carrying the required markers exists."""


class RateLimitExceeded(StatementImportError):
    """Raised when a user exceeds the number of imports allowed per window."""

    def __init__(self, user_key: str, *, retry_after: float) -> None:
        super().__init__(
            "Rate limit exceeded. Please wait before trying again "
            f"(retry in {retry_after:.0f}s)."
        )
        self.user_key = user_key
        self.retry_after = retry_after


class RowParseError(StatementImportError, ValueError):
    """A single statement row could not be parsed."""


class AmountValidationError(RowParseError):
    """An amount was not a finite number or exceeded the allowed magnitude."""


class StoreError(StatementImportError):
    """The record store rejected an insert."""


__all__ = [
    "StatementImportError",
    "SecurityError",
    "HeaderNotFound",
    "RateLimitExceeded",
    "RowParseError",
    "AmountValidationError",
    "StoreError",
]
