"""Page loader and form-action handler for the books page.

Both functions are framework-agnostic: they take plain mappings (query
parameters or submitted form fields) so the web app and the CLI share the same
validation and messages.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping, Optional

from ai_service import BookAssistant
from config import settings
from library import Library, BookQuery, DEFAULT_FIELD, DEFAULT_SORT, DEFAULT_DIR
from utils.validators import TextValidator, BookValidationError, parse_book_id

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load books"
ACTION_ERROR = "Failed to process action"

# Options shown in the "Search In" select
FIELDS = [
    ("all", "All Fields"),
    ("title", "Title"),
    ("author", "Author"),
    ("is_checked_out", "Status"),
    ("created_at", "Added On"),
]

# Options shown in the "Sort By" select
SORT_OPTIONS = [
    ("title", "Title"),
    ("author", "Author"),
    ("created_at", "Added On"),
    ("is_checked_out", "Status"),
]


@dataclass
class ActionResult:
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def _parse_page(raw: Any) -> int:
    try:
        page = int(str(raw).strip())
    except (TypeError, ValueError):
        return 1
    return page if page > 0 else 1


def parse_book_query(params: Mapping[str, Any]) -> BookQuery:
    """Build a BookQuery from the page's query-string parameters."""
    return BookQuery(
        search=params.get("search") or "",
        field=params.get("field") or DEFAULT_FIELD,
        sort=params.get("sort") or DEFAULT_SORT,
        dir=params.get("dir") or DEFAULT_DIR,
        page=_parse_page(params.get("page") or 1),
        page_size=settings.page_size,
    ).normalized()


def empty_page_data(error: Optional[str] = None) -> Dict[str, Any]:
    return {
        "books": [],
        "pagination": {"current_page": 1, "total_pages": 0, "total_books": 0},
        "filters": {"search": "", "field": DEFAULT_FIELD, "sort": DEFAULT_SORT, "dir": DEFAULT_DIR},
        "ai_prompt": "",
        "ai_response": None,
        "error": error,
    }


async def load_books_page(library: Library, assistant: BookAssistant,
                          params: Mapping[str, Any]) -> Dict[str, Any]:
    """Everything the books page needs to render.

    A database failure anywhere in here turns into the empty payload with
    ``error`` set; assistant failures are already folded into its fallback text.
    """
    try:
        query = parse_book_query(params)
        ai_prompt = (params.get("ai_prompt") or "").strip()

        page = library.query_books(query)

        ai_response = None
        if ai_prompt:
            ai_response = await assistant.ask(ai_prompt, library.all_books())

        return {
            "books": page.books,
            "pagination": {
                "current_page": page.page,
                "total_pages": page.total_pages,
                "total_books": page.total,
            },
            "filters": {"search": query.search, "field": query.field, "sort": query.sort, "dir": query.dir},
            "ai_prompt": ai_prompt,
            "ai_response": ai_response,
            "error": None,
        }
    except Exception as e:
        logger.error(f"Database error: {e}")
        return empty_page_data(LOAD_ERROR)


def _require_book_id(form: Mapping[str, Any]) -> Optional[int]:
    return parse_book_id(form.get("bookId"))


def handle_action(library: Library, form: Mapping[str, Any]) -> ActionResult:
    """Apply one submitted form action (``_action``) to the catalog."""
    action = form.get("_action")
    try:
        if action == "delete":
            book_id = _require_book_id(form)
            if not book_id:
                return ActionResult(False, error="Book ID is required")
            library.delete_book(book_id)
            return ActionResult(True, message="Book deleted successfully")

        if action == "checkout":
            book_id = _require_book_id(form)
            if not book_id:
                return ActionResult(False, error="Book ID is required")
            library.checkout_book(book_id)
            return ActionResult(True, message="Book checked out successfully")

        if action == "return":
            book_id = _require_book_id(form)
            if not book_id:
                return ActionResult(False, error="Book ID is required")
            library.return_book(book_id)
            return ActionResult(True, message="Book returned successfully")

        if action == "edit":
            title, author = form.get("title"), form.get("author")
            try:
                TextValidator.require_title_and_author(title, author)
            except BookValidationError as e:
                return ActionResult(False, error=str(e))
            book_id = _require_book_id(form)
            if not book_id:
                return ActionResult(False, error="Book ID is required for editing")
            library.update_book(book_id, title.strip(), author.strip())
            return ActionResult(True, message="Book updated successfully")

        if action == "create":
            title, author = form.get("title"), form.get("author")
            try:
                TextValidator.require_title_and_author(title, author)
            except BookValidationError as e:
                return ActionResult(False, error=str(e))
            library.create_book(title.strip(), author.strip())
            return ActionResult(True, message="Book created successfully")

        return ActionResult(False, error="Invalid action")
    except Exception as e:
        logger.error(f"Action error: {e}")
        return ActionResult(False, error=ACTION_ERROR)
