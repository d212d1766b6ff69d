"""Client-side refinement of an already fetched result set."""
from typing import Iterable, List

from booksearch.models import Book, RefinementParameters


def refine(results: Iterable[Book], params: RefinementParameters) -> List[Book]:
    """
    Narrow fetched results by category selection and year range.

    An empty category selection applies no category constraint;
    otherwise a book's category must equal one of the selected labels,
    ignoring case. When a year bound is set, books without a year are
    excluded. Input order is preserved and the result is idempotent.

    Args:
        results: Base result list
        params: Refinement inputs

    Returns:
        Books passing every active constraint
    """
    selected = {label.casefold() for label in params.categories}
    refined = []

    for book in results:
        if selected:
            if book.category is None or book.category.casefold() not in selected:
                continue
        if params.has_year_bound:
            if book.year is None:
                continue
            if params.year_from is not None and book.year < params.year_from:
                continue
            if params.year_to is not None and book.year > params.year_to:
                continue
        refined.append(book)

    return refined
