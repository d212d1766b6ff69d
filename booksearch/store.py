"""Record store interface and the in-memory realization."""
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple, Union

from booksearch.errors import EmptyOrMalformedBulkInput, PartialBulkInsertFailure
from booksearch.models import Book, BulkLoadReport
from booksearch.parse import read_records_file, sanitize_record
from booksearch.query import (
    DEFAULT_ORDER, AllOf, AnyOf, Contains, Equals, Predicate, SortOrder
)

logger = logging.getLogger(__name__)


def validate_bulk_input(records: Any) -> List[Any]:
    """
    Reject bulk-load input that is not a non-empty list.

    Raises:
        EmptyOrMalformedBulkInput: Before any store mutation happens
    """
    if not isinstance(records, list) or not records:
        raise EmptyOrMalformedBulkInput("Bulk input must be a non-empty list of records")
    return records


def record_title(raw: Any) -> Optional[str]:
    if isinstance(raw, dict) and isinstance(raw.get("title"), str):
        return raw["title"]
    return None


def matches(predicate: Predicate, book: Book) -> bool:
    """Evaluate a predicate tree against one record."""
    if isinstance(predicate, Contains):
        value = getattr(book, predicate.field)
        return value is not None and predicate.text.lower() in value.lower()
    if isinstance(predicate, Equals):
        value = getattr(book, predicate.field)
        return value is not None and value == predicate.value
    if isinstance(predicate, AllOf):
        return all(matches(child, book) for child in predicate.children)
    if isinstance(predicate, AnyOf):
        return any(matches(child, book) for child in predicate.children)
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def sort_records(books: Iterable[Book], order: SortOrder) -> List[Book]:
    """Stable sort with unset values grouped at one end."""
    books = list(books)
    present = [b for b in books if getattr(b, order.field) is not None]
    missing = [b for b in books if getattr(b, order.field) is None]
    present.sort(key=lambda b: getattr(b, order.field), reverse=order.descending)
    return present + missing if order.nulls_last else missing + present


class RecordStore(ABC):
    """Query capability shared by every store realization."""

    @abstractmethod
    def query(self, predicate: Predicate, order: SortOrder = DEFAULT_ORDER) -> List[Book]:
        """
        Return the records matching a predicate.

        Args:
            predicate: Predicate tree built by ``build_query``
            order: Sort directive

        Returns:
            Matching records in the requested order

        Raises:
            StoreError: If the store cannot be read
        """

    @abstractmethod
    def insert(self, record: Any) -> Book:
        """Sanitize and insert one record, returning the stored Book."""

    @abstractmethod
    def replace_all(self, records: Any) -> BulkLoadReport:
        """
        Replace the entire record set (best effort, not atomic per record).

        Raises:
            EmptyOrMalformedBulkInput: If ``records`` is not a non-empty list
            StoreError: If the store cannot be written
        """

    @abstractmethod
    def count(self) -> int:
        """Number of stored records."""

    def close(self):
        """Release store resources."""

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class MemoryRecordStore(RecordStore):
    """Fully materialized store backed by an immutable tuple snapshot."""

    def __init__(self, records: Optional[List[Any]] = None):
        """
        Initialize the store.

        Args:
            records: Optional initial records, bulk-loaded immediately
        """
        self._records: Tuple[Book, ...] = ()
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

        if records is not None:
            self.replace_all(records)

    def _build(self, record: Any) -> Book:
        fields = sanitize_record(record)
        now = datetime.now(timezone.utc)
        return Book(id=str(next(self._ids)), created_at=now, updated_at=now, **fields)

    def query(self, predicate: Predicate, order: SortOrder = DEFAULT_ORDER) -> List[Book]:
        snapshot = self._records
        return sort_records([b for b in snapshot if matches(predicate, b)], order)

    def insert(self, record: Any) -> Book:
        with self._lock:
            book = self._build(record)
            self._records = self._records + (book,)
        return book

    def replace_all(self, records: Any) -> BulkLoadReport:
        records = validate_bulk_input(records)
        report = BulkLoadReport()
        loaded: List[Book] = []

        with self._lock:
            for index, raw in enumerate(records):
                try:
                    loaded.append(self._build(raw))
                except ValueError as e:
                    report.failures.append(
                        PartialBulkInsertFailure(index, record_title(raw), str(e))
                    )
            self._records = tuple(loaded)

        report.inserted = len(loaded)
        if report.partial:
            logger.warning(f"Bulk load skipped {len(report.failures)} of {len(records)} records")
        logger.info(f"Loaded {report.inserted} books into memory store")
        return report

    def count(self) -> int:
        return len(self._records)

    def all(self) -> List[Book]:
        """Snapshot of every record in insertion order."""
        return list(self._records)


def load_sample_data(store: RecordStore, path: Union[str, Path]) -> BulkLoadReport:
    """
    Replace the store contents with records from a JSON file.

    Args:
        store: Target store
        path: JSON file holding a list of record objects

    Returns:
        BulkLoadReport with the inserted count

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not valid JSON
        EmptyOrMalformedBulkInput: If the file does not hold a non-empty list
    """
    records = read_records_file(path)
    logger.info(f"Loading sample data from {path}")
    return store.replace_all(records)
