"""HTTP surface for the books search.

Endpoints:
- GET  /            : health check
- GET  /books       : search by q / author / year / category
- POST /books/seed  : replace the record set with the sample data file

Run with ``uvicorn booksearch.api:create_app --factory`` (``pip install .[server]``).
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from booksearch.config import Config
from booksearch.database import open_store
from booksearch.errors import SearchFailure, StoreError
from booksearch.service import SearchService
from booksearch.store import MemoryRecordStore, RecordStore, load_sample_data

logger = logging.getLogger(__name__)


def create_app(store: Optional[RecordStore] = None, config: Optional[Config] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        store: Record store to serve; opened from ``config`` when omitted
        config: Config instance (defaults to environment configuration)
    """
    config = config or Config()
    if store is None:
        store = open_store(config)
        if isinstance(store, MemoryRecordStore):
            load_sample_data(store, config.SAMPLE_DATA_PATH)

    service = SearchService(store, diagnostics=config.DIAGNOSTICS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        store.close()

    app = FastAPI(
        title="Library Book Search",
        description="Search catalog books by keyword, author, year and category.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.service = service

    def _failure(status_code: int, message: str, detail: Optional[str] = None) -> JSONResponse:
        content = {"message": message}
        if detail:
            content["error"] = detail
        return JSONResponse(status_code=status_code, content=content)

    @app.get("/")
    def health_check():
        return {"status": "ok"}

    @app.get("/books")
    def list_books(
        q: Optional[str] = Query(default=None, description="Keyword in title or description"),
        author: Optional[str] = Query(default=None, description="Author substring"),
        year: Optional[str] = Query(default=None, description="Exact publication year"),
        category: Optional[str] = Query(default=None, description="Category substring"),
    ):
        result = service.search({"q": q, "author": author, "year": year, "category": category})
        if isinstance(result, SearchFailure):
            return _failure(503, result.message, result.detail)
        return [book.to_dict() for book in result]

    @app.post("/books/seed", status_code=201)
    def seed_books():
        try:
            report = load_sample_data(store, config.SAMPLE_DATA_PATH)
        except ValueError as e:
            logger.error(f"Rejected sample data: {e}")
            return _failure(
                400,
                "Sample data file is empty or invalid.",
                str(e) if config.DIAGNOSTICS else None
            )
        except (OSError, StoreError) as e:
            logger.error(f"Failed to seed books: {e}", exc_info=True)
            return _failure(
                503 if isinstance(e, StoreError) else 500,
                "Unable to seed books at the moment.",
                str(e) if config.DIAGNOSTICS else None
            )

        return {
            "message": "Sample books inserted successfully.",
            "count": report.inserted,
            "skipped": len(report.failures),
        }

    return app
