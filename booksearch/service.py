"""Server-side half of the search pipeline."""
import logging
from typing import Any, List, Mapping, Union

from booksearch.errors import FailureKind, SearchFailure, StoreError
from booksearch.models import Book, SearchParameters
from booksearch.query import build_query
from booksearch.store import RecordStore

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = "Unable to fetch books right now."


class SearchService:
    """Runs searches against a record store."""

    def __init__(self, store: RecordStore, diagnostics: bool = False):
        """
        Initialize the service.

        Args:
            store: Record store to query (read-only)
            diagnostics: Attach the failure cause to returned failures
        """
        self.store = store
        self.diagnostics = diagnostics

    def search(
        self,
        params: Union[SearchParameters, Mapping[str, Any], None] = None
    ) -> Union[List[Book], SearchFailure]:
        """
        Search the store.

        Missing parameters are never an error; empty parameters return
        every record. Unknown keys in a mapping are ignored.

        Args:
            params: SearchParameters or a raw query-string mapping

        Returns:
            Books ordered by year descending (unset years last), or a
            SearchFailure if the store could not be queried
        """
        query = build_query(params)

        try:
            books = self.store.query(query.predicate, query.order)
        except StoreError as e:
            logger.error(f"Failed to fetch books: {e}", exc_info=True)
            return SearchFailure(
                kind=FailureKind.STORE_UNAVAILABLE,
                message=STORE_UNAVAILABLE_MESSAGE,
                detail=str(e.__cause__ or e) if self.diagnostics else None
            )

        logger.info(f"Search matched {len(books)} books")
        return books
