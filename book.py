from __future__ import annotations


class Book:
    """A single catalog record with its checkout status."""

    def __init__(self, title: str, author: str, id: int | None = None, is_checked_out: int = 0,
                 last_checked_out_at: str | None = None, last_checked_in_at: str | None = None,
                 created_at: str | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.is_checked_out = int(is_checked_out or 0)
        self.last_checked_out_at = last_checked_out_at
        self.last_checked_in_at = last_checked_in_at
        self.created_at = created_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (#{self.id})"

    @property
    def checked_out(self) -> bool:
        return bool(self.is_checked_out)

    @property
    def status_label(self) -> str:
        return "Checked Out" if self.checked_out else "Available"

    def context_line(self, index: int) -> str:
        """One line of the assistant's book list, numbered from 1."""
        return f'{index}. "{self.title}" by {self.author} - {self.status_label}'

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "is_checked_out": self.is_checked_out,
            "last_checked_out_at": self.last_checked_out_at,
            "last_checked_in_at": self.last_checked_in_at,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data.get("id"),
            title=data["title"],
            author=data["author"],
            is_checked_out=data.get("is_checked_out") or 0,
            last_checked_out_at=data.get("last_checked_out_at"),
            last_checked_in_at=data.get("last_checked_in_at"),
            created_at=data.get("created_at"),
        )
