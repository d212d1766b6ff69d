#!/usr/bin/env python3
"""Book Explorer CLI - search, refine and seed the book catalog."""
import argparse
import asyncio
import sys
import json
from tabulate import tabulate
from booksearch.client import AsyncBooksApiClient, LocalBooksClient
from booksearch.config import Config
from booksearch.database import open_store
from booksearch.errors import StoreError
from booksearch.service import SearchService
from booksearch.session import SearchSessionController, SearchState
from booksearch.store import MemoryRecordStore, load_sample_data
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def setup_store(config: Config):
    """Open the configured store; the memory store starts from sample data."""
    store = open_store(config)
    if isinstance(store, MemoryRecordStore):
        load_sample_data(store, config.SAMPLE_DATA_PATH)
    return store


async def run_session(args, transport) -> SearchSessionController:
    """Drive one search session: submit, then refine locally."""
    session = SearchSessionController(transport)
    session.update_search(q=args.q, author=args.author, year=args.year, category=args.category)
    session.update_refinement(
        categories=args.categories,
        year_from=args.year_from,
        year_to=args.year_to
    )
    await session.submit()
    return session


async def search_books(args, config: Config):
    """Search through the HTTP API or an in-process service."""
    api_url = args.api_url or config.API_URL

    if api_url:
        async with AsyncBooksApiClient(
            api_url,
            timeout=config.DEFAULT_TIMEOUT,
            max_retries=config.DEFAULT_MAX_RETRIES
        ) as client:
            session = await run_session(args, client)
    else:
        with setup_store(config) as store:
            service = SearchService(store, diagnostics=config.DIAGNOSTICS)
            session = await run_session(args, LocalBooksClient(service))

    if session.state is SearchState.FAILED:
        logger.error(f"Search failed: {session.error}")
        return False

    logger.info(f"Fetched {len(session.base_results)} books, showing {len(session.results)}")
    display_books(session.results, args.format)
    return True


def display_books(books, format_type: str):
    """Display books in specified format."""
    if not books:
        print("No results found.")
        return

    if format_type == "table":
        headers = ["Title", "Author", "Year", "Category"]
        rows = [
            [
                book.title[:50] + "..." if len(book.title) > 50 else book.title,
                book.author_str[:30] + "..." if len(book.author_str) > 30 else book.author_str,
                book.year_str,
                book.category or "None"
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([book.to_dict() for book in books], indent=2))

    elif format_type == "compact":
        for i, book in enumerate(books, 1):
            print(f"{i}. {book.title} - {book.author_str} ({book.year_str})")


def seed_books(args, config: Config):
    """Replace the store contents with a JSON sample file."""
    with open_store(config) as store:
        report = load_sample_data(store, args.file or config.SAMPLE_DATA_PATH)

    print(f"✅ Inserted {report.inserted} books")
    for failure in report.failures:
        print(f"⚠️  Skipped record #{failure.index} ({failure.title or 'untitled'}): {failure.reason}")


def show_stats(args, config: Config):
    """Show store statistics."""
    with setup_store(config) as store:
        total = store.count()

    print("\n" + "=" * 50)
    print("STORE STATISTICS")
    print("=" * 50)
    print(f"Backend: {config.BACKEND}")
    print(f"Total books stored: {total}")
    print("=" * 50 + "\n")


def export_data(args, config: Config):
    """Export every stored book as JSON."""
    with setup_store(config) as store:
        service = SearchService(store, diagnostics=config.DIAGNOSTICS)
        result = service.search()

    if not isinstance(result, list):
        raise StoreError(result.detail or result.message)

    data = [book.to_dict() for book in result]
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.info(f"✅ Exported {len(data)} books to {args.output}")
    else:
        print(json.dumps(data, indent=2, ensure_ascii=False))


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Book Explorer - search and refine the book catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Keyword search
  %(prog)s search --q fiction

  # Search by author, then keep only 2000-2010 Programming books
  %(prog)s search --author martin --categories Programming --year-from 2000 --year-to 2010

  # Search through a running API
  %(prog)s search --q data --api-url http://localhost:5000

  # Load sample data into PostgreSQL
  BOOKSEARCH_BACKEND=postgres %(prog)s seed --file data/books.json
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Search command
    search_parser = subparsers.add_parser("search", help="Search for books")
    search_parser.add_argument("--q", default="", help="Keyword in title or description")
    search_parser.add_argument("--author", default="", help="Author substring")
    search_parser.add_argument("--year", default="", help="Exact publication year")
    search_parser.add_argument("--category", default="", help="Category substring")
    search_parser.add_argument("--categories", nargs="*", default=[], help="Keep only these categories")
    search_parser.add_argument("--year-from", help="Keep books published in or after this year")
    search_parser.add_argument("--year-to", help="Keep books published in or before this year")
    search_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")
    search_parser.add_argument("--api-url", help="Search through the HTTP API at this URL")

    # Seed command
    seed_parser = subparsers.add_parser("seed", help="Bulk-load books from a JSON file")
    seed_parser.add_argument("--file", help="JSON file (default: sample data)")

    # Stats command
    subparsers.add_parser("stats", help="Show store statistics")

    # Export command
    export_parser = subparsers.add_parser("export", help="Export all books as JSON")
    export_parser.add_argument("--output", help="Output file (default: stdout)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()

    try:
        if args.command == "search":
            if not asyncio.run(search_books(args, config)):
                sys.exit(1)

        elif args.command == "seed":
            seed_books(args, config)

        elif args.command == "stats":
            show_stats(args, config)

        elif args.command == "export":
            export_data(args, config)

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
