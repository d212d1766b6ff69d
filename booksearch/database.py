"""PostgreSQL realization of the record store."""
import psycopg2
from psycopg2 import pool
from typing import Any, List, Tuple
import logging

from booksearch.errors import PartialBulkInsertFailure, StoreError
from booksearch.models import Book, BulkLoadReport
from booksearch.parse import sanitize_record
from booksearch.query import (
    DEFAULT_ORDER, AllOf, AnyOf, Contains, Equals, Predicate, SortOrder
)
from booksearch.store import MemoryRecordStore, RecordStore, validate_bulk_input, record_title

logger = logging.getLogger(__name__)

# Predicate fields -> table columns
COLUMNS = {
    "title": "title",
    "author": "author",
    "description": "description",
    "category": "category",
    "year": "year",
}

SELECT_COLUMNS = """
    id, title, author, description, category, isbn, cover_image,
    year, created_at, updated_at
"""


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so the text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def compile_predicate(predicate: Predicate) -> Tuple[str, List[Any]]:
    """
    Compile a predicate tree into a SQL condition.

    Args:
        predicate: Predicate tree built by ``build_query``

    Returns:
        (sql, params) for use with ``cursor.execute``
    """
    if isinstance(predicate, Contains):
        column = COLUMNS[predicate.field]
        return f"{column} ILIKE %s ESCAPE '\\'", [f"%{escape_like(predicate.text)}%"]

    if isinstance(predicate, Equals):
        column = COLUMNS[predicate.field]
        return f"{column} = %s", [predicate.value]

    if isinstance(predicate, (AllOf, AnyOf)):
        if not predicate.children:
            return ("TRUE" if isinstance(predicate, AllOf) else "FALSE"), []

        joiner = " AND " if isinstance(predicate, AllOf) else " OR "
        parts = []
        params: List[Any] = []
        for child in predicate.children:
            sql, child_params = compile_predicate(child)
            parts.append(f"({sql})")
            params.extend(child_params)
        return joiner.join(parts), params

    raise TypeError(f"Unsupported predicate: {predicate!r}")


def compile_order(order: SortOrder) -> str:
    """Compile a sort directive; ties fall back to insertion order."""
    column = COLUMNS[order.field]
    direction = "DESC" if order.descending else "ASC"
    nulls = "LAST" if order.nulls_last else "FIRST"
    return f"ORDER BY {column} {direction} NULLS {nulls}, id ASC"


def _row_to_book(row) -> Book:
    return Book(str(row[0]), *row[1:])


class PostgresRecordStore(RecordStore):
    """PostgreSQL record store with connection pooling."""

    def __init__(self, connection_string: str, min_conn: int = 1, max_conn: int = 10):
        """
        Initialize database connection pool.

        Args:
            connection_string: PostgreSQL connection string
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool

        Raises:
            StoreError: If the database cannot be reached
        """
        try:
            self.connection_pool = psycopg2.pool.ThreadedConnectionPool(
                min_conn,
                max_conn,
                connection_string
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to create connection pool: {e}")
            raise StoreError("Failed to create connection pool") from e

        logger.info("Database connection pool created successfully")

    def _getconn(self):
        try:
            return self.connection_pool.getconn()
        except psycopg2.Error as e:
            logger.error(f"Failed to get a database connection: {e}")
            raise StoreError("Database connection unavailable") from e

    def _putconn(self, conn):
        try:
            self.connection_pool.putconn(conn)
        except psycopg2.Error as e:
            logger.error(f"Failed to return a database connection: {e}")
            raise StoreError("Database connection could not be returned") from e

    def init_schema(self):
        """Create the books table if it doesn't exist."""
        conn = self._getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS books (
                        id BIGSERIAL PRIMARY KEY,
                        title TEXT NOT NULL CHECK (btrim(title) <> ''),
                        author TEXT,
                        description TEXT,
                        category TEXT,
                        isbn TEXT,
                        cover_image TEXT,
                        year INTEGER,
                        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                cur.execute("""
                    CREATE INDEX IF NOT EXISTS idx_books_year
                    ON books (year DESC NULLS LAST)
                """)

                conn.commit()
                logger.info("Database schema initialized successfully")
        except psycopg2.Error as e:
            conn.rollback()
            raise StoreError("Failed to initialize schema") from e
        finally:
            self._putconn(conn)

    def query(self, predicate: Predicate, order: SortOrder = DEFAULT_ORDER) -> List[Book]:
        where, params = compile_predicate(predicate)
        sql = f"SELECT {SELECT_COLUMNS} FROM books WHERE {where} {compile_order(order)}"

        conn = self._getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
            return [_row_to_book(row) for row in rows]
        except (psycopg2.Error, ValueError) as e:
            # ValueError: parameters the driver refuses to adapt
            raise StoreError("Book query failed") from e
        finally:
            self._putconn(conn)

    def _insert(self, cur, fields) -> Book:
        cur.execute(f"""
            INSERT INTO books (
                title, author, description, category, isbn, cover_image, year
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING {SELECT_COLUMNS}
        """, (
            fields["title"], fields["author"], fields["description"],
            fields["category"], fields["isbn"], fields["cover_image"],
            fields["year"]
        ))
        return _row_to_book(cur.fetchone())

    def insert(self, record: Any) -> Book:
        fields = sanitize_record(record)

        conn = self._getconn()
        try:
            with conn.cursor() as cur:
                book = self._insert(cur, fields)
            conn.commit()
            return book
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to insert book: {e}")
            raise StoreError("Failed to insert book") from e
        finally:
            self._putconn(conn)

    def replace_all(self, records: Any) -> BulkLoadReport:
        records = validate_bulk_input(records)
        report = BulkLoadReport()

        conn = self._getconn()
        try:
            try:
                with conn.cursor() as cur:
                    cur.execute("DELETE FROM books")
                conn.commit()
            except psycopg2.Error as e:
                conn.rollback()
                raise StoreError("Failed to clear books") from e

            # Each record commits on its own so one bad row can't sink the load
            for index, raw in enumerate(records):
                try:
                    fields = sanitize_record(raw)
                    with conn.cursor() as cur:
                        self._insert(cur, fields)
                    conn.commit()
                    report.inserted += 1
                except ValueError as e:
                    report.failures.append(
                        PartialBulkInsertFailure(index, record_title(raw), str(e))
                    )
                except psycopg2.Error as e:
                    conn.rollback()
                    logger.error(f"Failed to insert book #{index}: {e}")
                    report.failures.append(
                        PartialBulkInsertFailure(index, record_title(raw), "Insert failed")
                    )
        finally:
            self._putconn(conn)

        if report.partial:
            logger.warning(f"Bulk load skipped {len(report.failures)} of {len(records)} records")
        logger.info(f"Loaded {report.inserted} books into database")
        return report

    def count(self) -> int:
        conn = self._getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM books")
                return cur.fetchone()[0]
        except psycopg2.Error as e:
            raise StoreError("Failed to count books") from e
        finally:
            self._putconn(conn)

    def close(self):
        """Close all connections in the pool."""
        if self.connection_pool:
            self.connection_pool.closeall()
            logger.info("Database connection pool closed")


def open_store(config) -> RecordStore:
    """
    Open the record store selected by ``config.BACKEND``.

    Args:
        config: Config instance

    Returns:
        A ready-to-query store (schema initialized for PostgreSQL)
    """
    if config.BACKEND == "postgres":
        store = PostgresRecordStore(config.DATABASE_URL)
        store.init_schema()
        return store
    if config.BACKEND == "memory":
        return MemoryRecordStore()
    raise ValueError(f"Unknown store backend: {config.BACKEND}")
