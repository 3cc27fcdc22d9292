from typing import Any, Optional


class BookValidationError(ValueError):
    """Raised when a book form is missing a required value."""
    pass


class TextValidator:
    """Basic checks for the title and author form fields."""

    @staticmethod
    def _is_present(text: Optional[str]) -> bool:
        return text is not None and bool(str(text).strip())

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        return TextValidator._is_present(title)

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        return TextValidator._is_present(author)

    @staticmethod
    def require_title_and_author(title: Optional[str], author: Optional[str]) -> None:
        if not (TextValidator.validate_title(title) and TextValidator.validate_author(author)):
            raise BookValidationError("Title and author are required")


def parse_book_id(raw: Any) -> Optional[int]:
    """Parse a submitted book id.

    Blank, non-numeric, zero and fractional values are all rejected with None,
    matching how the page treats a missing ``bookId``.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if value != value or value == 0 or not value.is_integer():
        return None
    return int(value)
