"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    # Database
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "booksdb")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")

    @property
    def DATABASE_URL(self):
        """Build PostgreSQL connection string."""
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Store: "memory" or "postgres"
    BACKEND = os.getenv("BOOKSEARCH_BACKEND", "memory").strip().lower()

    # API
    API_URL = os.getenv("BOOKSEARCH_API_URL")

    # Attach failure causes to search failures
    DIAGNOSTICS = _flag("BOOKSEARCH_DIAGNOSTICS")

    # Sample data for bulk loads
    SAMPLE_DATA_PATH = os.getenv(
        "BOOKSEARCH_SAMPLE_DATA",
        os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "books.json")
    )

    # Defaults
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))
    DEFAULT_MAX_RETRIES = int(os.getenv("DEFAULT_MAX_RETRIES", "3"))
