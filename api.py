import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List
from urllib.parse import urlencode
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from ai_service import BookAssistant
from config import settings
from database import get_db_connection
from library import Library
from views import (
    ActionResult,
    FIELDS,
    SORT_OPTIONS,
    handle_action,
    load_books_page,
)

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

# Created on first use so importing the app does not touch the filesystem
_library: Optional[Library] = None
_assistant: Optional[BookAssistant] = None


def get_library() -> Library:
    """Return the shared Library instance, creating it on first use."""
    global _library
    if _library is None:
        _library = Library(settings.database_file, seed_file=settings.seed_file)
    return _library


def get_assistant() -> BookAssistant:
    global _assistant
    if _assistant is None:
        _assistant = BookAssistant()
    return _assistant


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create the table before the first request
    get_library()
    logger.info(f"{settings.app_name} {settings.app_version} started")
    yield


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)


# --- Template helpers ---
def format_date(value: Optional[str]) -> str:
    """Render a stored SQLite timestamp as a short date, or a dash when unset."""
    if not value:
        return "—"
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", ""))
    except ValueError:
        return str(value)
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def page_url(params: Dict[str, Any], **overrides: Any) -> str:
    """Query string for the books page with some parameters replaced or dropped (None)."""
    merged = {k: v for k, v in params.items() if v not in (None, "")}
    for key, value in overrides.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return f"?{urlencode(merged)}" if merged else "?"


templates.env.filters["format_date"] = format_date
templates.env.globals["page_url"] = page_url


def _render_books_page(request: Request, data: Dict[str, Any],
                       result: Optional[ActionResult] = None, status_code: int = 200) -> HTMLResponse:
    params = dict(request.query_params)
    context = {
        **data,
        "params": params,
        "fields": FIELDS,
        "sort_options": SORT_OPTIONS,
        "editing_id": params.get("edit"),
        "is_creating": params.get("new") == "1",
        "result": result,
        "app_name": settings.app_name,
    }
    return templates.TemplateResponse(request, "books.html", context, status_code=status_code)


# --- Models ---
class BookModel(BaseModel):
    id: int
    title: str
    author: str
    is_checked_out: int
    last_checked_out_at: str | None = None
    last_checked_in_at: str | None = None
    created_at: str | None = None


class PaginationModel(BaseModel):
    current_page: int
    total_pages: int
    total_books: int


class FiltersModel(BaseModel):
    search: str
    field: str
    sort: str
    dir: str


class BooksPageModel(BaseModel):
    books: List[BookModel]
    pagination: PaginationModel
    filters: FiltersModel
    ai_prompt: str = ""
    ai_response: str | None = None
    error: str | None = None


class ActionResultModel(BaseModel):
    success: bool
    message: str | None = None
    error: str | None = None


# --- Pages ---
@app.get("/", include_in_schema=False)
def read_root():
    return RedirectResponse(url="/books")


@app.get("/books", response_class=HTMLResponse)
async def books_page(request: Request,
                     library: Library = Depends(get_library),
                     assistant: BookAssistant = Depends(get_assistant)):
    """Render the searchable, paginated books table."""
    data = await load_books_page(library, assistant, request.query_params)
    return _render_books_page(request, data)


@app.post("/books", response_class=HTMLResponse)
async def books_action(request: Request,
                       library: Library = Depends(get_library),
                       assistant: BookAssistant = Depends(get_assistant)):
    """Apply a form action and re-render the page with its outcome."""
    form = await request.form()
    result = handle_action(library, form)
    data = await load_books_page(library, assistant, request.query_params)
    return _render_books_page(request, data, result, status_code=200 if result.success else 400)


# --- JSON API ---
@app.get("/api/books", response_model=BooksPageModel)
async def books_data(request: Request,
                     library: Library = Depends(get_library),
                     assistant: BookAssistant = Depends(get_assistant)):
    """Same data as the books page, as JSON."""
    data = await load_books_page(library, assistant, request.query_params)
    data["books"] = [book.to_dict() for book in data["books"]]
    return data


@app.post("/api/books", response_model=ActionResultModel)
async def books_data_action(request: Request, library: Library = Depends(get_library)):
    form = await request.form()
    result = handle_action(library, form)
    return JSONResponse(result.to_dict(), status_code=200 if result.success else 400)


# --- Health check ---
@app.get("/health")
def health(library: Library = Depends(get_library), assistant: BookAssistant = Depends(get_assistant)):
    """Lightweight health endpoint with a quick database probe."""
    db_ok = True
    total_books = 0
    try:
        conn = get_db_connection(library.db_file)
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
        total_books = library.get_statistics()["total_books"]
    except Exception as e:
        logger.error(f"Health check database probe failed: {e}")
        db_ok = False
    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "total_books": total_books,
        "db": db_ok,
        "services": {"ai_assistant": assistant.is_available()},
    }
