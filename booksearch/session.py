"""Client-side search session state."""
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from booksearch.errors import SearchRequestError
from booksearch.models import Book, RefinementParameters, SearchParameters
from booksearch.parse import parse_refinement_parameters, parse_search_parameters
from booksearch.refine import refine

logger = logging.getLogger(__name__)

SearchTransport = Callable[[SearchParameters], Awaitable[List[Book]]]

UNEXPECTED_ERROR_MESSAGE = "Unexpected error occurred."

INITIAL_SEARCH_VALUES = {"q": "", "author": "", "year": "", "category": ""}


class SearchState(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    SUCCESS = "success"
    FAILED = "failed"


class SearchSessionController:
    """
    Owns the state behind a search form.

    Search inputs go to the server on ``submit``; refinement inputs
    never do and only narrow the fetched base set locally. Every change
    to the base set or the refinement inputs is followed by an explicit
    recompute of ``results``.

    Only the most recent submission may leave ``SEARCHING``: each
    submit takes a new generation number and an outcome whose
    generation is no longer current is discarded. ``reset`` also bumps
    the generation, so an in-flight search cannot revive a cleared
    session.
    """

    def __init__(self, transport: SearchTransport):
        """
        Initialize the controller.

        Args:
            transport: Async callable performing the server search
        """
        self.transport = transport
        self._generation = 0
        self._clear()

    def _clear(self):
        self.search_values: Dict[str, str] = dict(INITIAL_SEARCH_VALUES)
        self.refinement = RefinementParameters()
        self.base_results: List[Book] = []
        self.results: List[Book] = []
        self.state = SearchState.IDLE
        self.error: Optional[str] = None
        self.has_searched = False

    @property
    def is_loading(self) -> bool:
        return self.state is SearchState.SEARCHING

    def update_search(self, **values: Any):
        """Edit search inputs; unknown field names are ignored."""
        for name, value in values.items():
            if name in self.search_values:
                self.search_values[name] = "" if value is None else str(value)

    def update_refinement(
        self,
        categories: Any = None,
        year_from: Any = None,
        year_to: Any = None
    ):
        """Replace the refinement inputs and recompute displayed results."""
        self.refinement = parse_refinement_parameters(categories, year_from, year_to)
        self._recompute()

    def set_refinement(self, refinement: RefinementParameters):
        self.refinement = refinement
        self._recompute()

    def _recompute(self):
        self.results = refine(self.base_results, self.refinement)

    async def submit(self) -> bool:
        """
        Run a search with the current inputs.

        Returns:
            True if this submission's outcome was applied, False if a
            newer submission or a reset superseded it
        """
        self._generation += 1
        generation = self._generation

        params = parse_search_parameters(self.search_values)
        previous = (self.state, self.error, self.has_searched)
        self.state = SearchState.SEARCHING
        self.error = None
        self.has_searched = True

        try:
            books = await self.transport(params)
        except asyncio.CancelledError:
            if generation == self._generation:
                self._restore(*previous)
            raise
        except SearchRequestError as e:
            return self._fail(generation, e.message)
        except Exception:
            logger.exception("Search transport raised an unexpected error")
            return self._fail(generation, UNEXPECTED_ERROR_MESSAGE)

        if generation != self._generation:
            logger.info(f"Discarding stale search response (generation {generation})")
            return False

        self.base_results = list(books)
        self.state = SearchState.SUCCESS
        self._recompute()
        return True

    def _fail(self, generation: int, message: str) -> bool:
        if generation != self._generation:
            logger.info(f"Discarding stale search failure (generation {generation})")
            return False

        self.error = message or UNEXPECTED_ERROR_MESSAGE
        self.base_results = []
        self.state = SearchState.FAILED
        self._recompute()
        return True

    def _restore(self, state: SearchState, error: Optional[str], has_searched: bool):
        # A cancelled search leaves the session as it was before submit
        self.state = SearchState.IDLE if state is SearchState.SEARCHING else state
        self.error = error
        self.has_searched = has_searched

    def reset(self):
        """Return to IDLE, clearing inputs, results and error."""
        self._generation += 1
        self._clear()
