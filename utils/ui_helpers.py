import os
import json
from typing import List, Any, Dict, Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_list_result(books: List[Any], page: int = 1, total_pages: int = 0, total_books: Optional[int] = None) -> None:
    """Print one page of books in the current output mode.
    - plain: '#ID Title by Author [Status]' lines, or 'No books found.'
    - json: object with books and pagination
    - rich: Rich table with a page footer
    """
    mode = get_output_mode()
    total = len(books) if total_books is None else total_books

    if mode == "json":
        payload = {
            "books": [b.to_dict() for b in books],
            "pagination": {"current_page": page, "total_pages": total_pages, "total_books": total},
        }
        print(json.dumps(payload, ensure_ascii=False))
        return

    if not books:
        print("No books found.")
        return

    if mode == "rich":
        table = Table(title="📚 Library Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Status")
        table.add_column("Added On", style="dim")
        for b in books:
            status = "[red]Checked Out[/]" if b.checked_out else "[green]Available[/]"
            table.add_row(str(b.id), escape(b.title), escape(b.author), status, b.created_at or "—")
        _console.print(table)
        _console.print(f"[dim]Page {page} of {total_pages} ({total} books)[/]")
    else:
        for b in books:
            print(f"#{b.id} {b.title} by {b.author} [{b.status_label}]")
        print(f"Page {page} of {total_pages} ({total} books)")


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print catalog statistics in the current output mode."""
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Total Books:[/] {stats.get('total_books', 0)}\n"
            f"[bold]Checked Out:[/] {stats.get('checked_out', 0)}\n"
            f"[bold]Available:[/] {stats.get('available', 0)}\n"
            f"[bold]Unique Authors:[/] {stats.get('unique_authors', 0)}"
        )
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        print(f"Total Books: {stats.get('total_books', 0)}")
        print(f"Checked Out: {stats.get('checked_out', 0)}")
        print(f"Available: {stats.get('available', 0)}")
        print(f"Unique Authors: {stats.get('unique_authors', 0)}")


def print_action_result(result: Any) -> None:
    """Print the outcome of a catalog action."""
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps(result.to_dict(), ensure_ascii=False))
    elif mode == "rich":
        if result.success:
            _console.print(f"[green]✅ {escape(result.message)}[/]")
        else:
            _console.print(f"[bold red]❌ {escape(result.error)}[/]")
    else:
        print(result.message if result.success else f"Error: {result.error}")


def print_answer(answer: str) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps({"ai_response": answer}, ensure_ascii=False))
    elif mode == "rich":
        _console.print(Panel(escape(answer), title="🤖 AI Book Assistant", border_style="magenta"))
    else:
        print(answer)
