"""Tests for the search service."""
from booksearch.errors import FailureKind, SearchFailure
from booksearch.models import SearchParameters
from booksearch.service import STORE_UNAVAILABLE_MESSAGE, SearchService

from conftest import DEFAULT_ORDER_TITLES, UnreachableStore


def test_search_without_parameters(memory_store):
    """Test that a bare search returns every record in default order."""
    service = SearchService(memory_store)

    for params in (None, {}, SearchParameters()):
        assert [b.title for b in service.search(params)] == DEFAULT_ORDER_TITLES


def test_search_accepts_mapping(memory_store):
    result = SearchService(memory_store).search({"q": "dune", "unknown": "x"})
    assert [b.title for b in result] == ["Dune"]


def test_search_empty_result(memory_store):
    assert SearchService(memory_store).search({"author": "nobody at all"}) == []


def test_store_failure_is_generic():
    """Test that the cause is not leaked to callers."""
    result = SearchService(UnreachableStore()).search({"q": "dune"})

    assert isinstance(result, SearchFailure)
    assert result.kind is FailureKind.STORE_UNAVAILABLE
    assert result.message == STORE_UNAVAILABLE_MESSAGE
    assert result.detail is None


def test_store_failure_with_diagnostics():
    """Test that diagnostics attach the underlying cause."""
    result = SearchService(UnreachableStore(), diagnostics=True).search()

    assert isinstance(result, SearchFailure)
    assert result.message == STORE_UNAVAILABLE_MESSAGE
    assert "refused" in result.detail


def test_store_failure_is_logged(caplog):
    with caplog.at_level("ERROR", logger="booksearch.service"):
        SearchService(UnreachableStore()).search()

    assert "Failed to fetch books" in caplog.text
