import asyncio
import logging
import subprocess
import sys
import webbrowser
from typing import Optional

import typer
from rich.console import Console

from ai_service import BookAssistant
from config import settings
from library import Library
from views import handle_action, parse_book_query
from utils.ui_helpers import (
    set_output_mode,
    print_list_result,
    print_stats_result,
    print_action_result,
    print_answer,
)

APP_NAME = "Library CLI"

console = Console()
logger = logging.getLogger(__name__)


def get_library() -> Library:
    """Open the catalog configured in settings (tables are created if missing)."""
    return Library(settings.database_file, seed_file=settings.seed_file)


def _run_action(form: dict) -> None:
    result = handle_action(get_library(), form)
    print_action_result(result)
    if not result.success:
        raise typer.Exit(code=1)


# --- Typer CLI ---
app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
):
    """Global CLI options (output mode, log level)."""
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level)
    if output:
        set_output_mode(output)


@app.command("init-db")
def cli_init_db():
    """Create the books table and import the seed file if the catalog is empty."""
    lib = get_library()
    stats = lib.get_statistics()
    print(f"Database ready: {stats['total_books']} books")


@app.command("list")
def cli_list(
    search: str = typer.Option("", "--search", "-s", help="Search term"),
    field: str = typer.Option("all", "--field", "-f", help="all | title | author | is_checked_out | created_at"),
    sort: str = typer.Option("created_at", "--sort", help="title | author | created_at | is_checked_out"),
    direction: str = typer.Option("desc", "--dir", help="asc | desc"),
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
):
    """List one page of books, with the same search and sort as the web page."""
    query = parse_book_query({"search": search, "field": field, "sort": sort, "dir": direction, "page": page})
    result = get_library().query_books(query)
    print_list_result(result.books, page=result.page, total_pages=result.total_pages, total_books=result.total)


@app.command("add")
def cli_add(title: str, author: str):
    """Add a new book."""
    _run_action({"_action": "create", "title": title, "author": author})


@app.command("edit")
def cli_edit(book_id: str, title: str, author: str):
    """Change the title and author of a book."""
    _run_action({"_action": "edit", "bookId": book_id, "title": title, "author": author})


@app.command("checkout")
def cli_checkout(book_id: str):
    """Mark a book as checked out."""
    _run_action({"_action": "checkout", "bookId": book_id})


@app.command("return")
def cli_return(book_id: str):
    """Mark a book as returned."""
    _run_action({"_action": "return", "bookId": book_id})


@app.command("remove")
def cli_remove(book_id: str):
    """Delete a book."""
    _run_action({"_action": "delete", "bookId": book_id})


@app.command("stats")
def cli_stats():
    """Show catalog statistics."""
    print_stats_result(get_library().get_statistics())


@app.command("ask")
def cli_ask(question: str):
    """Ask the AI book assistant a question about the catalog."""
    question = question.strip()
    if not question:
        print("Error: question is required")
        raise typer.Exit(code=1)
    assistant = BookAssistant()
    if not assistant.is_available():
        logger.warning("AI assistant is not configured; the request will fall back")
    answer = asyncio.run(assistant.ask(question, get_library().all_books()))
    print_answer(answer)


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
    open_browser: bool = typer.Option(True, "--browser/--no-browser", help="Open the page in a browser"),
):
    """Start the web UI with Uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/books"
    print(f"Starting web UI on {url}")
    if open_browser:
        try:
            webbrowser.open(url)
        except Exception as e:
            logger.warning(f"Could not open a browser: {e}")

    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    try:
        subprocess.run(args)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] `uvicorn` could not be started. Make sure it is installed.")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
