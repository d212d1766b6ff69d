"""Pytest configuration and fixtures."""
import os

import pytest

from booksearch.database import PostgresRecordStore
from booksearch.errors import StoreError
from booksearch.models import Book
from booksearch.query import DEFAULT_ORDER
from booksearch.store import MemoryRecordStore

TEST_DATABASE_URL = os.getenv("BOOKSEARCH_TEST_DATABASE_URL")

SAMPLE_RECORDS = [
    {"title": "Dune", "author": "Frank Herbert",
     "description": "Desert planet science fiction epic.", "year": 1965, "category": "Fiction"},
    {"title": "Fiction Writing Handbook", "author": "Jane Doe",
     "description": "How to write stories.", "year": 2001, "category": "Reference"},
    {"title": "Clean Code", "author": "Robert C. Martin",
     "description": "Agile software craftsmanship.", "year": 2008, "category": "Programming"},
    {"title": "Neuromancer", "author": "William Gibson",
     "description": "Cyberpunk novel.", "year": 1984, "category": "Fiction"},
    {"title": "Meditations", "author": "Marcus Aurelius",
     "description": "Stoic notes.", "year": None, "category": "Philosophy"},
    {"title": "100% Effort", "author": "A_B Writer",
     "description": "Percent signs and under_scores.", "year": "2008", "category": "Self-Help"},
    {"title": "Regex (.*) Cookbook", "author": "C. Back\\slash",
     "description": "Patterns [a-z]+ explained.", "year": "n/a", "category": "Programming"},
    {"title": "Zero to One", "author": "Peter Thiel",
     "description": "Startups.", "year": 2014, "category": "Business"},
]

# Titles of SAMPLE_RECORDS in the default search order
DEFAULT_ORDER_TITLES = [
    "Zero to One",
    "Clean Code",
    "100% Effort",
    "Fiction Writing Handbook",
    "Neuromancer",
    "Dune",
    "Meditations",
    "Regex (.*) Cookbook",
]


def make_book(book_id="1", title="Book", **fields) -> Book:
    """Build a Book for refinement and session tests."""
    return Book(id=book_id, title=title, **fields)


class UnreachableStore(MemoryRecordStore):
    """Store whose queries fail as if the database were down."""

    def query(self, predicate, order=DEFAULT_ORDER):
        raise StoreError("Book query failed") from ConnectionRefusedError("db host 10.0.0.5 refused")


@pytest.fixture
def sample_records():
    return [dict(record) for record in SAMPLE_RECORDS]


@pytest.fixture
def memory_store(sample_records):
    return MemoryRecordStore(sample_records)


@pytest.fixture
def postgres_store(sample_records):
    """PostgreSQL store; skipped unless BOOKSEARCH_TEST_DATABASE_URL is set."""
    if not TEST_DATABASE_URL:
        pytest.skip("BOOKSEARCH_TEST_DATABASE_URL not set")

    store = PostgresRecordStore(TEST_DATABASE_URL)
    store.init_schema()
    store.replace_all(sample_records)
    yield store
    store.close()


@pytest.fixture(params=["memory", "postgres"])
def store(request):
    """Every available store realization, loaded with SAMPLE_RECORDS."""
    return request.getfixturevalue(f"{request.param}_store")
