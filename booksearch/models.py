"""Data models for books and search inputs."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Tuple, Dict, Any

from booksearch.errors import PartialBulkInsertFailure


@dataclass(frozen=True)
class Book:
    """Normalized catalog record."""
    id: str
    title: str
    author: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    isbn: Optional[str] = None
    cover_image: Optional[str] = None
    year: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def author_str(self) -> str:
        """Author for display."""
        return self.author or "Unknown author"

    @property
    def year_str(self) -> str:
        """Year for display."""
        return str(self.year) if self.year is not None else "Year unknown"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape served by the books endpoint."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "category": self.category,
            "isbn": self.isbn,
            "coverImage": self.cover_image,
            "year": self.year,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class SearchParameters:
    """Server-side search inputs; ``None`` means not provided."""
    q: Optional[str] = None
    author: Optional[str] = None
    year: Optional[str] = None
    category: Optional[str] = None

    def to_query_params(self) -> Dict[str, str]:
        """Query-string parameters for the fields that are present."""
        params = {
            "q": self.q,
            "author": self.author,
            "year": self.year,
            "category": self.category,
        }
        return {key: value for key, value in params.items() if value is not None}


@dataclass(frozen=True)
class RefinementParameters:
    """Client-side refinement inputs, never sent to the server.

    An empty ``categories`` selection means every category is shown.
    Year bounds are inclusive and independently optional.
    """
    categories: Tuple[str, ...] = ()
    year_from: Optional[int] = None
    year_to: Optional[int] = None

    @property
    def has_year_bound(self) -> bool:
        return self.year_from is not None or self.year_to is not None


@dataclass
class BulkLoadReport:
    """Outcome of replacing the record set."""
    inserted: int = 0
    failures: List[PartialBulkInsertFailure] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        """True when at least one record was rejected."""
        return bool(self.failures)
