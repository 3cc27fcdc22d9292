import sqlite3
import json
import logging
import os
from typing import List, Dict, Any, Optional

from dotenv import load_dotenv

# Load .env before reading os.environ so LIBRARY_DB_FILE is honoured regardless
# of import order (api -> library -> database -> config).
load_dotenv()

logger = logging.getLogger(__name__)

# Default database file. LIBRARY_DB_FILE overrides it; tests point it at tmp_path.
DATABASE_FILE = os.environ.get("LIBRARY_DB_FILE") or "library.db"

BOOK_COLUMNS = (
    "id",
    "title",
    "author",
    "is_checked_out",
    "last_checked_out_at",
    "last_checked_in_at",
    "created_at",
)


def get_db_connection(db_file: Optional[str] = None) -> sqlite3.Connection:
    """Open a connection to the SQLite database with dict-like rows."""
    conn = sqlite3.connect(db_file or DATABASE_FILE)
    conn.row_factory = sqlite3.Row
    return conn


def create_tables(db_file: Optional[str] = None) -> None:
    """Create the books table and its indexes if they do not exist yet."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                is_checked_out INTEGER NOT NULL DEFAULT 0,
                last_checked_out_at TIMESTAMP,
                last_checked_in_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Older catalogs were created before checkout tracking existed
        cursor.execute("PRAGMA table_info(books)")
        columns = [column[1] for column in cursor.fetchall()]
        if "is_checked_out" not in columns:
            cursor.execute("ALTER TABLE books ADD COLUMN is_checked_out INTEGER NOT NULL DEFAULT 0")
        if "last_checked_out_at" not in columns:
            cursor.execute("ALTER TABLE books ADD COLUMN last_checked_out_at TIMESTAMP")
        if "last_checked_in_at" not in columns:
            cursor.execute("ALTER TABLE books ADD COLUMN last_checked_in_at TIMESTAMP")
        if "created_at" not in columns:
            # ALTER TABLE cannot add a column with a non-constant default, so backfill instead.
            cursor.execute("ALTER TABLE books ADD COLUMN created_at TIMESTAMP")
            cursor.execute("UPDATE books SET created_at = CURRENT_TIMESTAMP WHERE created_at IS NULL")

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_title ON books(title)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_author ON books(author)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_created_at ON books(created_at)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_is_checked_out ON books(is_checked_out)")

        conn.commit()
    finally:
        conn.close()


def seed_from_json(json_file: str, db_file: Optional[str] = None) -> int:
    """Load books from a JSON list of ``{"title", "author"}`` objects.

    One-shot import: nothing happens when the books table already has rows or
    the file does not exist. Returns the number of inserted books.
    """
    if not os.path.exists(json_file):
        return 0

    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM books")
        if cursor.fetchone()[0] > 0:
            return 0

        try:
            with open(json_file, "r", encoding="utf-8") as f:
                data: List[Dict[str, Any]] = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Could not read seed file {json_file}: {e}")
            return 0

        rows = [
            (str(item["title"]).strip(), str(item["author"]).strip())
            for item in data
            if isinstance(item, dict) and item.get("title") and item.get("author")
        ]
        if rows:
            cursor.executemany(
                "INSERT INTO books (title, author, is_checked_out, created_at) "
                "VALUES (?, ?, 0, datetime('now'))",
                rows,
            )
            conn.commit()
        logger.info(f"Seeded {len(rows)} books from {json_file}")
        return len(rows)
    finally:
        conn.close()


def initialize_database(db_file: Optional[str] = None, seed_file: Optional[str] = None) -> None:
    """Create tables and run the optional one-shot seed import."""
    create_tables(db_file)
    if seed_file:
        seed_from_json(seed_file, db_file)
