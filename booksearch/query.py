"""Translate search parameters into a store-neutral predicate and ordering.

The predicate is a small tree of frozen dataclasses. Every record store
evaluates the same tree, so matching rules live here and nowhere else:

* ``Contains`` is a case-insensitive, literal substring match. The text is
  never interpreted as a pattern.
* ``Equals`` is exact equality.
* ``AllOf`` / ``AnyOf`` combine children with AND / OR. An empty ``AllOf``
  matches everything and an empty ``AnyOf`` matches nothing.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional, Tuple, Union

from booksearch.errors import InvalidNumericParameter
from booksearch.models import SearchParameters
from booksearch.parse import coerce_year, parse_search_parameters

logger = logging.getLogger(__name__)

# Fields a predicate may reference
TEXT_FIELDS = ("title", "author", "description", "category")
NUMERIC_FIELDS = ("year",)


@dataclass(frozen=True)
class Contains:
    field: str
    text: str

    def __post_init__(self):
        if self.field not in TEXT_FIELDS:
            raise ValueError(f"Unsupported text field: {self.field}")


@dataclass(frozen=True)
class Equals:
    field: str
    value: int

    def __post_init__(self):
        if self.field not in NUMERIC_FIELDS:
            raise ValueError(f"Unsupported numeric field: {self.field}")


@dataclass(frozen=True)
class AllOf:
    children: Tuple["Predicate", ...] = ()


@dataclass(frozen=True)
class AnyOf:
    children: Tuple["Predicate", ...] = ()


Predicate = Union[Contains, Equals, AllOf, AnyOf]


@dataclass(frozen=True)
class SortOrder:
    """Sort directive; records lacking the field go last when ``nulls_last``."""
    field: str = "year"
    descending: bool = True
    nulls_last: bool = True


@dataclass(frozen=True)
class Query:
    predicate: Predicate
    order: SortOrder


MATCH_ALL = AllOf()
DEFAULT_ORDER = SortOrder("year", descending=True, nulls_last=True)


def _parse_year_constraint(raw: Optional[str]) -> Optional[int]:
    try:
        return coerce_year(raw, strict=True)
    except InvalidNumericParameter:
        logger.debug(f"Ignoring non-numeric year parameter: {raw!r}")
        return None


def build_query(params: Union[SearchParameters, Mapping[str, Any], None]) -> Query:
    """
    Build the store query for a set of search parameters.

    Per-field constraints are AND-ed; the keyword matches title OR
    description. Absent parameters add no constraint, so empty
    parameters match every record. A year that is not a valid integer
    is dropped rather than reported.

    Args:
        params: SearchParameters, or a raw mapping (unknown keys ignored)

    Returns:
        Query with the predicate and a year-descending, unset-last order
    """
    if isinstance(params, SearchParameters):
        params = asdict(params)
    params = parse_search_parameters(params)

    constraints = []
    if params.author:
        constraints.append(Contains("author", params.author))
    if params.category:
        constraints.append(Contains("category", params.category))

    year = _parse_year_constraint(params.year)
    if year is not None:
        constraints.append(Equals("year", year))

    if params.q:
        constraints.append(AnyOf((
            Contains("title", params.q),
            Contains("description", params.q),
        )))

    return Query(predicate=AllOf(tuple(constraints)), order=DEFAULT_ORDER)
