import math
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple

from book import Book
from config import settings
from database import get_db_connection, initialize_database

# Columns the search box may target; "all" means title OR author.
SEARCH_FIELDS = ("all", "title", "author", "is_checked_out", "created_at")
SORT_FIELDS = ("title", "author", "created_at", "is_checked_out")
SORT_DIRECTIONS = ("asc", "desc")

DEFAULT_FIELD = "all"
DEFAULT_SORT = "created_at"
DEFAULT_DIR = "desc"


@dataclass
class BookQuery:
    """Search, sort and paging options for one page of the catalog."""
    search: str = ""
    field: str = DEFAULT_FIELD
    sort: str = DEFAULT_SORT
    dir: str = DEFAULT_DIR
    page: int = 1
    page_size: int = settings.page_size

    def normalized(self) -> "BookQuery":
        """Return a copy whose column names are safe to place in SQL."""
        return BookQuery(
            search=self.search or "",
            field=self.field if self.field in SEARCH_FIELDS else DEFAULT_FIELD,
            sort=self.sort if self.sort in SORT_FIELDS else DEFAULT_SORT,
            dir=self.dir.lower() if (self.dir or "").lower() in SORT_DIRECTIONS else DEFAULT_DIR,
            page=self.page if self.page and self.page > 0 else 1,
            page_size=self.page_size if self.page_size and self.page_size > 0 else settings.page_size,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class BookPage:
    books: List[Book] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = settings.page_size

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


class Library:
    """Catalog operations over the books table."""

    def __init__(self, db_file: Optional[str] = None, seed_file: Optional[str] = None) -> None:
        self.db_file = db_file
        initialize_database(db_file, seed_file)  # Ensure the table exists

    def _connect(self):
        return get_db_connection(self.db_file)

    # ------------------------- Queries ------------------------- #
    @staticmethod
    def _where_clause(query: BookQuery) -> Tuple[str, List[Any]]:
        if not query.search:
            return "", []
        pattern = f"%{query.search}%"
        if query.field == "all":
            return " WHERE (title LIKE ? OR author LIKE ?)", [pattern, pattern]
        return f" WHERE {query.field} LIKE ?", [pattern]

    def query_books(self, query: BookQuery) -> BookPage:
        """Return one page of books matching the search, in the requested order."""
        query = query.normalized()
        where, params = self._where_clause(query)

        sql = (
            f"SELECT * FROM books{where} "
            f"ORDER BY {query.sort} {query.dir.upper()}, id {query.dir.upper()} "
            "LIMIT ? OFFSET ?"
        )
        conn = self._connect()
        try:
            rows = conn.execute(sql, params + [query.page_size, query.offset]).fetchall()
            total = conn.execute(f"SELECT COUNT(*) AS count FROM books{where}", params).fetchone()["count"]
        finally:
            conn.close()

        return BookPage(
            books=[Book.from_dict(dict(row)) for row in rows],
            total=total or 0,
            page=query.page,
            page_size=query.page_size,
        )

    def all_books(self) -> List[Book]:
        """Every book in the catalog, oldest first."""
        conn = self._connect()
        try:
            rows = conn.execute("SELECT * FROM books ORDER BY id").fetchall()
            return [Book.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def get_book(self, book_id: int) -> Optional[Book]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
            return Book.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def get_statistics(self) -> Dict[str, Any]:
        """Get library statistics."""
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM books")
            total_books = cursor.fetchone()[0]

            cursor.execute("SELECT COUNT(*) FROM books WHERE is_checked_out = 1")
            checked_out = cursor.fetchone()[0]

            cursor.execute("SELECT COUNT(DISTINCT author) FROM books")
            unique_authors = cursor.fetchone()[0]

            return {
                "total_books": total_books,
                "checked_out": checked_out,
                "available": total_books - checked_out,
                "unique_authors": unique_authors,
            }
        finally:
            conn.close()

    # ------------------------- Mutations ------------------------- #
    def _execute(self, sql: str, params: tuple) -> int:
        conn = self._connect()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def create_book(self, title: str, author: str) -> int:
        """Insert a new, available book and return its id."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                "INSERT INTO books (title, author, is_checked_out, created_at) "
                "VALUES (?, ?, 0, datetime('now'))",
                (title, author),
            )
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()

    def update_book(self, book_id: int, title: str, author: str) -> bool:
        return self._execute("UPDATE books SET title = ?, author = ? WHERE id = ?", (title, author, book_id)) > 0

    def checkout_book(self, book_id: int) -> bool:
        return self._execute(
            "UPDATE books SET is_checked_out = 1, last_checked_out_at = datetime('now') WHERE id = ?",
            (book_id,),
        ) > 0

    def return_book(self, book_id: int) -> bool:
        return self._execute(
            "UPDATE books SET is_checked_out = 0, last_checked_in_at = datetime('now') WHERE id = ?",
            (book_id,),
        ) > 0

    def delete_book(self, book_id: int) -> bool:
        return self._execute("DELETE FROM books WHERE id = ?", (book_id,)) > 0

    def close(self) -> None:
        """Connections are opened per operation, so there is nothing to release."""
        return None
