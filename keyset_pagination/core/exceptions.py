"""Pagination exceptions.

Custom exceptions raised by the cursor algebra, the paginator and the
reference record stores. Store failures raised by the backing database
are never wrapped; they reach the caller unchanged.
"""
from __future__ import annotations

from typing import Any


class PaginationError(Exception):
    """Base exception for pagination operations.

    Raised when a pagination call cannot proceed because of malformed
    arguments, an unusable ordering declaration or a corrupted cursor.
    Nothing is mutated before these errors are raised.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize pagination error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class InvalidSortSpec(PaginationError):
    """Ordering declaration cannot be turned into a sort specification.

    Raised when a leaf of the declaration is not a known order tag or
    when the declaration is neither a mapping nor a list of mappings.
    """

    def __init__(self, message: str, path: str | None = None):
        """Initialize invalid sort spec error.

        Args:
            message: Error description
            path: Dot-path of the offending key (if applicable)
        """
        details = {"path": path} if path else {}
        super().__init__(message, details=details)


class EmptySortSpec(InvalidSortSpec):
    """Ordering declaration has no keys.

    An unordered cursor cannot establish a deterministic boundary, so this
    is rejected when the sort specification is built, never at query time.
    """

    def __init__(self, message: str = "Cannot create cursor with empty order_by"):
        super().__init__(message)


class InvalidPaginationArgs(PaginationError, ValueError):
    """Pagination arguments are contradictory or out of range.

    Attributes:
        argument: Name of the offending argument (if a single one applies)
    """

    def __init__(self, message: str, argument: str | None = None):
        """Initialize invalid pagination arguments error.

        Args:
            message: Error description
            argument: Name of the problematic argument (if applicable)
        """
        self.argument = argument
        details = {"argument": argument} if argument else {}
        super().__init__(message, details=details)


class InvalidCursor(PaginationError, ValueError):
    """Cursor token could not be decoded.

    Decoding fails closed: a token is either fully valid or rejected, a
    partially populated cursor is never produced.
    """

    def __init__(self, reason: str):
        """Initialize invalid cursor error.

        Args:
            reason: Why the token was rejected
        """
        self.reason = reason
        super().__init__(f"Invalid cursor: {reason}")


class UnsupportedFilterError(PaginationError):
    """Filter or order document uses a construct the store cannot evaluate.

    Raised by the reference stores for unknown operators and for paths
    that cross a to-many relationship.
    """

    def __init__(self, message: str, operator: str | None = None):
        """Initialize unsupported filter error.

        Args:
            message: Error description
            operator: The operator or path segment that was rejected
        """
        details = {"operator": operator} if operator else {}
        super().__init__(message, details=details)


__all__ = [
    "EmptySortSpec",
    "InvalidCursor",
    "InvalidPaginationArgs",
    "InvalidSortSpec",
    "PaginationError",
    "UnsupportedFilterError",
]
