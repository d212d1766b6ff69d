"""Tests for search predicate construction."""
import pytest

from booksearch.models import SearchParameters
from booksearch.query import (
    DEFAULT_ORDER, AllOf, AnyOf, Contains, Equals, SortOrder, build_query
)


def test_empty_parameters_match_everything():
    """Test that no parameters means no constraint."""
    query = build_query(SearchParameters())

    assert query.predicate == AllOf()
    assert query.order == SortOrder("year", descending=True, nulls_last=True)


def test_all_parameters_are_and_combined():
    """Test the full predicate shape."""
    query = build_query({"q": "fiction", "author": "Herbert", "year": "1965", "category": "fic"})

    assert query.predicate == AllOf((
        Contains("author", "Herbert"),
        Contains("category", "fic"),
        Equals("year", 1965),
        AnyOf((Contains("title", "fiction"), Contains("description", "fiction"))),
    ))
    assert query.order == DEFAULT_ORDER


def test_keyword_only_searches_title_or_description():
    """Test that q is an OR-group over title and description only."""
    query = build_query({"q": "dune"})

    assert query.predicate == AllOf((
        AnyOf((Contains("title", "dune"), Contains("description", "dune"))),
    ))


@pytest.mark.parametrize("year", ["abc", "2001.5", "NaN", "", "   "])
def test_invalid_year_is_dropped(year):
    """Test that a non-numeric year behaves like an absent year."""
    assert build_query({"year": year}) == build_query({})


def test_blank_values_are_absent():
    """Test that whitespace-only values add no constraint."""
    assert build_query(SearchParameters(q="  ", author="\t", category="")) == build_query(None)


def test_values_are_trimmed_and_unknown_keys_ignored():
    """Test tolerant parameter handling."""
    query = build_query({"author": "  Gibson  ", "sort": "title", "page": 2})

    assert query.predicate == AllOf((Contains("author", "Gibson"),))


def test_keyword_is_kept_verbatim():
    """Test that pattern characters are passed through untouched."""
    query = build_query({"q": "100% (.*)"})

    assert query.predicate.children[0].children[0] == Contains("title", "100% (.*)")


def test_unsupported_fields_are_rejected():
    """Test that predicates only reference searchable fields."""
    with pytest.raises(ValueError):
        Contains("isbn; DROP TABLE books", "x")
    with pytest.raises(ValueError):
        Equals("title", 1)
