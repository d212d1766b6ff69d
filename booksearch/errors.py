"""Error taxonomy for the search pipeline."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class BookSearchError(Exception):
    """Base class for all book search errors."""


class InvalidNumericParameter(BookSearchError, ValueError):
    """A year-like input could not be coerced to an integer."""


class StoreError(BookSearchError):
    """The record store could not be reached or failed a query."""


class EmptyOrMalformedBulkInput(BookSearchError, ValueError):
    """Bulk-load input is not a non-empty list of records."""


class SearchRequestError(BookSearchError):
    """A search request failed on its way to or from the service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FailureKind(str, Enum):
    """Coarse failure categories reported to search callers."""
    STORE_UNAVAILABLE = "StoreUnavailable"


@dataclass(frozen=True)
class SearchFailure:
    """User-safe failure returned by the search service."""
    kind: FailureKind
    message: str
    detail: Optional[str] = None


@dataclass(frozen=True)
class PartialBulkInsertFailure:
    """One record rejected during a bulk load."""
    index: int
    title: Optional[str]
    reason: str
