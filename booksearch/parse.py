"""Parse and normalize raw inputs: search forms, bulk records, API payloads."""
import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional, Iterable, Mapping, Union

from booksearch.errors import InvalidNumericParameter
from booksearch.models import Book, SearchParameters, RefinementParameters

logger = logging.getLogger(__name__)

# Range of the ``year`` column in the persistent store
YEAR_MIN = -(2 ** 31)
YEAR_MAX = 2 ** 31 - 1

SEARCH_FIELDS = ("q", "author", "year", "category")
TEXT_FIELDS = ("author", "description", "category", "isbn", "cover_image")


def clean_text(value: Any) -> Optional[str]:
    """
    Trim a text value, treating blank input as absent.

    Args:
        value: Raw value (non-strings are converted with ``str``)

    Returns:
        Trimmed string, or None when missing or whitespace-only
    """
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    # NUL can never be stored or matched by PostgreSQL
    text = text.replace("\x00", "").strip()
    return text or None


def coerce_year(value: Any, strict: bool = False) -> Optional[int]:
    """
    Coerce a year-like value to an integer.

    Missing and blank values are unset, not errors. Integral floats and
    numeric strings such as ``"2001"`` or ``"2001.0"`` are accepted;
    booleans, non-finite numbers, fractions and anything outside the
    storable range are invalid.

    Args:
        value: Raw year (int, float, str or None)
        strict: Raise instead of returning None for invalid input

    Returns:
        The year, or None when unset or invalid (non-strict mode)

    Raises:
        InvalidNumericParameter: If strict and the value is not a valid year
    """
    if value is None:
        return None

    year: Optional[int] = None
    if isinstance(value, bool):
        year = None
    elif isinstance(value, int):
        year = value
    elif isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            year = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if "_" not in text:
            try:
                year = int(text)
            except ValueError:
                try:
                    number = float(text)
                except ValueError:
                    number = math.nan
                if math.isfinite(number) and number.is_integer():
                    year = int(number)

    if year is not None and YEAR_MIN <= year <= YEAR_MAX:
        return year

    if strict:
        raise InvalidNumericParameter(f"Not a valid year: {value!r}")
    return None


def parse_search_parameters(values: Optional[Mapping[str, Any]]) -> SearchParameters:
    """
    Build SearchParameters from a form or query-string mapping.

    Unknown keys are ignored and blank values count as absent.
    """
    values = values or {}
    cleaned = {name: clean_text(values.get(name)) for name in SEARCH_FIELDS}
    return SearchParameters(**cleaned)


def parse_refinement_parameters(
    categories: Union[str, Iterable[str], None] = None,
    year_from: Any = None,
    year_to: Any = None
) -> RefinementParameters:
    """
    Build RefinementParameters from raw form values.

    Args:
        categories: Selected labels, or a comma-separated string
        year_from: Inclusive lower bound (invalid input means no bound)
        year_to: Inclusive upper bound (invalid input means no bound)

    Returns:
        RefinementParameters with duplicate and blank labels removed
    """
    if categories is None:
        raw_labels: Iterable[Any] = []
    elif isinstance(categories, str):
        raw_labels = categories.split(",")
    else:
        raw_labels = categories

    labels: List[str] = []
    seen = set()
    for raw in raw_labels:
        label = clean_text(raw)
        if label and label.casefold() not in seen:
            seen.add(label.casefold())
            labels.append(label)

    return RefinementParameters(
        categories=tuple(labels),
        year_from=coerce_year(year_from),
        year_to=coerce_year(year_to)
    )


def sanitize_record(raw: Any) -> Dict[str, Any]:
    """
    Normalize one bulk-load record before it reaches a store.

    Args:
        raw: Record-like mapping (``coverImage`` or ``cover_image``)

    Returns:
        Dict with trimmed text fields and an integer-or-None year

    Raises:
        ValueError: If the record is not a mapping or has no title
    """
    if not isinstance(raw, Mapping):
        raise ValueError("Record is not an object")

    title = clean_text(raw.get("title"))
    if not title:
        raise ValueError("Record has no title")

    record: Dict[str, Any] = {"title": title}
    for name in TEXT_FIELDS:
        if name == "cover_image":
            record[name] = clean_text(raw.get("coverImage", raw.get("cover_image")))
        else:
            record[name] = clean_text(raw.get(name))
    record["year"] = coerce_year(raw.get("year"))
    return record


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_book(item: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single book from a books endpoint payload.

    Args:
        item: One JSON object from the response

    Returns:
        Book object or None if the item has no id or title
    """
    if not isinstance(item, dict):
        logger.warning(f"Skipping non-object book entry: {item!r}")
        return None

    book_id = clean_text(item.get("id", item.get("_id")))
    title = clean_text(item.get("title"))
    if not book_id or not title:
        logger.warning(f"Skipping book entry without id or title: {item!r}")
        return None

    return Book(
        id=book_id,
        title=title,
        author=clean_text(item.get("author")),
        description=clean_text(item.get("description")),
        category=clean_text(item.get("category")),
        isbn=clean_text(item.get("isbn")),
        cover_image=clean_text(item.get("coverImage")),
        year=coerce_year(item.get("year")),
        created_at=_parse_timestamp(item.get("createdAt")),
        updated_at=_parse_timestamp(item.get("updatedAt"))
    )


def parse_books_response(payload: Any) -> List[Book]:
    """
    Parse a books endpoint response.

    Args:
        payload: A JSON array of books, or an object with a ``books`` array

    Returns:
        List of Book objects (empty if nothing usable was found)
    """
    if isinstance(payload, dict):
        payload = payload.get("books")
    if not isinstance(payload, list):
        return []

    books = []
    for item in payload:
        book = parse_book(item)
        if book:
            books.append(book)

    return books


def read_records_file(path: Union[str, Path]) -> Any:
    """Read a JSON bulk-load source from disk."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
