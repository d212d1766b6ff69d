"""Search transports used by the session controller."""
import asyncio
import random
import httpx
from typing import Any, Dict, List, Optional
import logging

from booksearch.errors import SearchFailure, SearchRequestError
from booksearch.models import Book, SearchParameters
from booksearch.parse import parse_books_response
from booksearch.service import SearchService

logger = logging.getLogger(__name__)

SEARCH_ERROR_MESSAGE = "Unable to search books right now. Please try again."


class AsyncBooksApiClient:
    """Async client for the books endpoint with retries and backoff."""

    SEARCH_PATH = "/books"

    def __init__(
        self,
        base_url: str,
        timeout: int = 10,
        max_retries: int = 3,
        base_backoff: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            base_url: API root, e.g. ``http://localhost:5000``
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts per search
            base_backoff: Base delay for exponential backoff
            transport: Optional httpx transport (used by tests)
        """
        self.max_retries = max(1, max_retries)
        self.base_backoff = base_backoff

        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport
        )

    async def search(self, params: SearchParameters) -> List[Book]:
        """
        Search for books.

        Args:
            params: Search parameters; absent fields are not sent

        Returns:
            Books in the order the service returned them

        Raises:
            SearchRequestError: If the request failed after all retries
        """
        payload = await self._get_with_retry(self.SEARCH_PATH, params.to_query_params())
        return parse_books_response(payload)

    async def __call__(self, params: SearchParameters) -> List[Book]:
        return await self.search(params)

    async def _get_with_retry(self, path: str, params: Dict[str, str]) -> Any:
        """
        Make a GET request with retry logic.

        Rate limits, server errors, timeouts and connection errors are
        retried; other client errors fail immediately.
        """
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                logger.info(f"Request attempt {attempt + 1}/{self.max_retries}: {path} {params}")
                response = await self.client.get(path, params=params)

            except httpx.TransportError as e:
                logger.warning(f"Transport error on attempt {attempt + 1}: {e}")
                if last_attempt:
                    raise SearchRequestError(SEARCH_ERROR_MESSAGE) from e
                await self._backoff(attempt)
                continue

            if response.status_code == 200:
                try:
                    return response.json()
                except ValueError as e:
                    logger.error(f"Invalid JSON from {path}: {e}")
                    raise SearchRequestError(SEARCH_ERROR_MESSAGE, response.status_code) from e

            if response.status_code == 429 or response.status_code >= 500:
                logger.warning(f"Status {response.status_code} on attempt {attempt + 1}")
                if last_attempt:
                    raise SearchRequestError(SEARCH_ERROR_MESSAGE, response.status_code)
                await self._backoff(attempt)
                continue

            logger.error(f"Client error ({response.status_code}): {response.text}")
            raise SearchRequestError(SEARCH_ERROR_MESSAGE, response.status_code)

        raise SearchRequestError(SEARCH_ERROR_MESSAGE)

    async def _backoff(self, attempt: int):
        """
        Sleep with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (0-indexed)
        """
        delay = self.base_backoff * (2 ** attempt)
        total_delay = delay + random.uniform(0, delay)

        logger.info(f"Backing off for {total_delay:.2f} seconds")
        await asyncio.sleep(total_delay)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


class LocalBooksClient:
    """In-process transport that runs a SearchService in a worker thread."""

    def __init__(self, service: SearchService):
        self.service = service

    async def search(self, params: SearchParameters) -> List[Book]:
        result = await asyncio.to_thread(self.service.search, params)
        if isinstance(result, SearchFailure):
            raise SearchRequestError(result.message)
        return result

    async def __call__(self, params: SearchParameters) -> List[Book]:
        return await self.search(params)
