import asyncio
import json
from unittest.mock import MagicMock

import httpx
import pytest

from ai_service import FALLBACK_RESPONSE
from views import (
    ACTION_ERROR,
    LOAD_ERROR,
    handle_action,
    load_books_page,
    parse_book_query,
)


def _load(lib, assistant, params):
    return asyncio.run(load_books_page(lib, assistant, params))


@pytest.fixture
def silent_assistant(assistant_factory):
    def handler(request):
        raise AssertionError("assistant should not be called")

    return assistant_factory(handler)


# --- loader ---
def test_loader_defaults(lib, silent_assistant):
    lib.create_book("Dune", "Frank Herbert")

    data = _load(lib, silent_assistant, {})

    assert [b.title for b in data["books"]] == ["Dune"]
    assert data["pagination"] == {"current_page": 1, "total_pages": 1, "total_books": 1}
    assert data["filters"] == {"search": "", "field": "all", "sort": "created_at", "dir": "desc"}
    assert data["ai_response"] is None
    assert data["error"] is None


def test_loader_pages_ten_books_at_a_time(lib, silent_assistant):
    for i in range(25):
        lib.create_book(f"Book {i:02d}", "Author")

    data = _load(lib, silent_assistant, {"sort": "title", "dir": "asc", "page": "3"})

    assert [b.title for b in data["books"]] == [f"Book {i}" for i in range(20, 25)]
    assert data["pagination"] == {"current_page": 3, "total_pages": 3, "total_books": 25}


def test_loader_filters_echo_the_request(lib, silent_assistant):
    lib.create_book("Emma", "Jane Austen")
    lib.create_book("Dune", "Frank Herbert")

    data = _load(lib, silent_assistant, {"search": "austen", "field": "author", "sort": "title", "dir": "asc"})

    assert [b.title for b in data["books"]] == ["Emma"]
    assert data["filters"] == {"search": "austen", "field": "author", "sort": "title", "dir": "asc"}
    assert data["pagination"]["total_books"] == 1


@pytest.mark.parametrize("raw", ["abc", "0", "-2", ""])
def test_loader_bad_page_becomes_first_page(raw):
    assert parse_book_query({"page": raw}).page == 1


def test_loader_asks_assistant_with_all_books(lib, assistant_factory):
    for i in range(12):
        lib.create_book(f"Book {i}", "Author")
    seen = {}

    def handler(request):
        seen["user"] = json.loads(request.content)["messages"][1]["content"]
        return httpx.Response(200, json={"result": {"response": "There are twelve books."}})

    data = _load(lib, assistant_factory(handler), {"ai_prompt": "  How many books?  ", "page": "1"})

    assert data["ai_response"] == "There are twelve books."
    assert data["ai_prompt"] == "How many books?"
    # The context lists every book, not just the current page
    assert '12. "Book 11" by Author - Available' in seen["user"]
    assert len(data["books"]) == 10


def test_loader_ai_failure_keeps_the_page(lib, assistant_factory):
    lib.create_book("Dune", "Frank Herbert")
    assistant = assistant_factory(lambda request: httpx.Response(503))

    data = _load(lib, assistant, {"ai_prompt": "anything"})

    assert data["ai_response"] == FALLBACK_RESPONSE
    assert data["error"] is None
    assert len(data["books"]) == 1


def test_loader_skips_assistant_when_ai_disabled(monkeypatch, lib, silent_assistant):
    from config import settings

    monkeypatch.setattr(settings, "enable_ai_features", False)
    lib.create_book("Dune", "Frank Herbert")

    data = _load(lib, silent_assistant, {"ai_prompt": "hi"})

    assert data["ai_response"] == FALLBACK_RESPONSE
    assert len(data["books"]) == 1


def test_loader_database_failure_returns_error_payload(silent_assistant):
    broken = MagicMock()
    broken.query_books.side_effect = RuntimeError("database is locked")

    data = _load(broken, silent_assistant, {"search": "x", "sort": "title"})

    assert data["error"] == LOAD_ERROR
    assert data["books"] == []
    assert data["pagination"] == {"current_page": 1, "total_pages": 0, "total_books": 0}
    assert data["filters"] == {"search": "", "field": "all", "sort": "created_at", "dir": "desc"}
    assert data["ai_response"] is None


# --- actions ---
def test_create_action(lib):
    result = handle_action(lib, {"_action": "create", "title": "Dune", "author": "Frank Herbert"})

    assert result.success is True
    assert result.message == "Book created successfully"
    book = lib.all_books()[0]
    assert (book.title, book.author, book.is_checked_out) == ("Dune", "Frank Herbert", 0)


@pytest.mark.parametrize("form", [
    {"_action": "create", "title": "", "author": "Someone"},
    {"_action": "create", "title": "Something", "author": ""},
    {"_action": "create", "title": "   ", "author": "Someone"},
    {"_action": "create"},
])
def test_create_requires_title_and_author(lib, form):
    result = handle_action(lib, form)

    assert result.success is False
    assert result.error == "Title and author are required"
    assert lib.all_books() == []


def test_checkout_and_return_actions(lib):
    book_id = lib.create_book("Dune", "Frank Herbert")

    result = handle_action(lib, {"_action": "checkout", "bookId": str(book_id)})
    assert result.to_dict() == {"success": True, "message": "Book checked out successfully"}
    book = lib.get_book(book_id)
    assert book.checked_out and book.last_checked_out_at

    result = handle_action(lib, {"_action": "return", "bookId": str(book_id)})
    assert result.message == "Book returned successfully"
    book = lib.get_book(book_id)
    assert not book.checked_out and book.last_checked_in_at


def test_edit_action(lib):
    book_id = lib.create_book("Old", "Author")

    result = handle_action(lib, {"_action": "edit", "bookId": str(book_id), "title": "New", "author": "Writer"})

    assert result.message == "Book updated successfully"
    assert lib.get_book(book_id).title == "New"


def test_edit_checks_fields_before_id(lib):
    result = handle_action(lib, {"_action": "edit", "title": "", "author": ""})
    assert result.error == "Title and author are required"

    result = handle_action(lib, {"_action": "edit", "title": "T", "author": "A"})
    assert result.error == "Book ID is required for editing"


def test_delete_action(lib):
    book_id = lib.create_book("Doomed", "Author")

    result = handle_action(lib, {"_action": "delete", "bookId": str(book_id)})

    assert result.message == "Book deleted successfully"
    assert lib.get_book(book_id) is None


@pytest.mark.parametrize("action", ["delete", "checkout", "return"])
@pytest.mark.parametrize("book_id", [None, "", "0", "abc", "1.5"])
def test_id_actions_require_numeric_id(lib, action, book_id):
    form = {"_action": action}
    if book_id is not None:
        form["bookId"] = book_id

    result = handle_action(lib, form)

    assert result.success is False
    assert result.error == "Book ID is required"


@pytest.mark.parametrize("action", [None, "", "explode"])
def test_unknown_action(lib, action):
    result = handle_action(lib, {"_action": action} if action is not None else {})
    assert result.to_dict() == {"success": False, "error": "Invalid action"}


def test_database_failure_during_action():
    broken = MagicMock()
    broken.delete_book.side_effect = RuntimeError("disk I/O error")

    result = handle_action(broken, {"_action": "delete", "bookId": "3"})

    assert result.success is False
    assert result.error == ACTION_ERROR
