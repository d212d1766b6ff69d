"""Tests for parsing functions."""
import math

import pytest

from booksearch.errors import InvalidNumericParameter
from booksearch.models import RefinementParameters, SearchParameters
from booksearch.parse import (
    clean_text,
    coerce_year,
    parse_book,
    parse_books_response,
    parse_refinement_parameters,
    parse_search_parameters,
    sanitize_record,
)


def test_clean_text_blank_is_absent():
    """Test that empty and whitespace-only values become None."""
    assert clean_text(None) is None
    assert clean_text("") is None
    assert clean_text("   \t") is None
    assert clean_text("  Dune ") == "Dune"
    assert clean_text(1965) == "1965"
    assert clean_text("du\x00ne") == "dune"
    assert clean_text("\x00") is None


@pytest.mark.parametrize("raw, expected", [
    (2001, 2001),
    ("2001", 2001),
    (" 2001 ", 2001),
    ("2001.0", 2001),
    (1999.0, 1999),
    (None, None),
    ("", None),
    ("   ", None),
])
def test_coerce_year_valid(raw, expected):
    """Test integer coercion of year-like values."""
    assert coerce_year(raw) == expected


@pytest.mark.parametrize("raw", [
    "abc", "2001.5", "NaN", "Infinity", math.nan, math.inf, True, "1_999", 2 ** 40, [2001],
])
def test_coerce_year_invalid(raw):
    """Test that non-finite, fractional and non-numeric years are unset."""
    assert coerce_year(raw) is None
    with pytest.raises(InvalidNumericParameter):
        coerce_year(raw, strict=True)


def test_parse_search_parameters_ignores_unknown_and_blank():
    """Test building SearchParameters from a loose mapping."""
    params = parse_search_parameters({
        "q": "  fiction ",
        "author": "   ",
        "year": "",
        "page": "3",
    })

    assert params == SearchParameters(q="fiction")
    assert params.to_query_params() == {"q": "fiction"}
    assert parse_search_parameters(None) == SearchParameters()


def test_parse_refinement_parameters():
    """Test category de-duplication and lenient year bounds."""
    params = parse_refinement_parameters(
        categories=["Fiction", "fiction", " ", "Business"],
        year_from="2000",
        year_to="soon"
    )

    assert params == RefinementParameters(
        categories=("Fiction", "Business"),
        year_from=2000,
        year_to=None
    )


def test_parse_refinement_parameters_from_string():
    """Test a comma-separated category selection."""
    params = parse_refinement_parameters(categories="Fiction,Finance")
    assert params.categories == ("Fiction", "Finance")
    assert not params.has_year_bound


def test_sanitize_record_complete():
    """Test sanitizing a bulk record with all fields present."""
    record = sanitize_record({
        "title": "  Dune ",
        "author": " Frank Herbert",
        "description": "",
        "category": "Fiction",
        "isbn": "9780441172719",
        "coverImage": "http://example.com/dune.jpg",
        "year": "1965",
        "extra": "ignored",
    })

    assert record == {
        "title": "Dune",
        "author": "Frank Herbert",
        "description": None,
        "category": "Fiction",
        "isbn": "9780441172719",
        "cover_image": "http://example.com/dune.jpg",
        "year": 1965,
    }


def test_sanitize_record_invalid_year_is_unset():
    """Test that a bad year is stored as unset, never 0 or NaN."""
    assert sanitize_record({"title": "Book", "year": "n/a"})["year"] is None
    assert sanitize_record({"title": "Book", "year": math.nan})["year"] is None


@pytest.mark.parametrize("raw", [{"title": "   "}, {"author": "Nobody"}, "Dune", None])
def test_sanitize_record_requires_title(raw):
    """Test that records without a usable title are rejected."""
    with pytest.raises(ValueError):
        sanitize_record(raw)


def test_parse_book_complete():
    """Test parsing a book payload with all fields present."""
    book = parse_book({
        "id": "42",
        "title": "Dune",
        "author": "Frank Herbert",
        "year": 1965,
        "category": "Fiction",
        "coverImage": "http://example.com/dune.jpg",
        "createdAt": "2024-01-02T03:04:05Z",
    })

    assert book is not None
    assert book.id == "42"
    assert book.year == 1965
    assert book.cover_image == "http://example.com/dune.jpg"
    assert book.created_at.year == 2024
    assert book.updated_at is None


def test_parse_book_no_id():
    """Test that a book without ID returns None."""
    assert parse_book({"title": "No ID Book"}) is None


def test_parse_books_response():
    """Test parsing both response shapes."""
    items = [{"id": "1", "title": "Book 1"}, {"id": "2", "title": "Book 2"}, "junk"]

    assert [b.title for b in parse_books_response(items)] == ["Book 1", "Book 2"]
    assert [b.id for b in parse_books_response({"books": items})] == ["1", "2"]
    assert parse_books_response({"message": "nope"}) == []
