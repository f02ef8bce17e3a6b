"""
Common utilities

Shared helpers for formatting and book id argument handling.
"""

import logging
from pathlib import Path
from typing import TypeAlias

logger = logging.getLogger(__name__)


# Common type aliases
BookId: TypeAlias = str


def pluralize(count: int, word: str) -> str:
    """
    Return correct singular/plural form of a word.

    Args:
        count: Number of items
        word: Base word (singular form)

    Returns:
        str: Correctly pluralized word
    """
    return word if count == 1 else f"{word}s"


def format_duration(seconds: float) -> str:
    """
    Format duration as human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        str: Formatted duration (e.g., "1.5s", "2m 30s", "1h 15m")
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        remaining_seconds = seconds % 60
        return f"{minutes}m {remaining_seconds:.0f}s"
    else:
        hours = int(seconds // 3600)
        remaining_minutes = int((seconds % 3600) // 60)
        return f"{hours}h {remaining_minutes}m"


def parse_int_list(value: str) -> list[int]:
    """Parse a comma-separated list of non-negative integers (e.g. "0,2000,5000")."""
    if not value.strip():
        return []
    numbers = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            number = int(part)
        except ValueError as e:
            raise ValueError(f"'{part}' is not an integer") from e
        if number < 0:
            raise ValueError(f"'{part}' must be non-negative")
        numbers.append(number)
    return numbers


def _validate_book_id(book_id: str) -> None:
    """Validate a single book id.

    Raises:
        ValueError: If the book id is invalid
    """
    if not book_id:
        raise ValueError("Empty book id found")
    if any(c.isspace() for c in book_id):
        raise ValueError(f"Book id '{book_id}' must not contain whitespace")
    if len(book_id) > 64:
        raise ValueError(f"Book id '{book_id}' is too long (max 64 characters)")


def dedupe_preserving_order(book_ids: list[str]) -> list[str]:
    """Drop repeated ids, keeping the first occurrence."""
    return list(dict.fromkeys(book_ids))


def validate_and_parse_book_ids(book_ids_str: str) -> list[str]:
    """Validate and parse comma-separated book id string.

    Args:
        book_ids_str: Comma-separated string of book ids

    Returns:
        List of validated book ids

    Raises:
        ValueError: If any book id is invalid
    """
    if not book_ids_str.strip():
        raise ValueError("Book ids string cannot be empty")

    book_ids = [book_id.strip() for book_id in book_ids_str.split(",")]
    book_ids = [book_id for book_id in book_ids if book_id]

    if not book_ids:
        raise ValueError("No valid book ids found")

    for book_id in book_ids:
        _validate_book_id(book_id)

    return dedupe_preserving_order(book_ids)


def read_book_ids_from_file(file_path: str) -> list[str]:
    """Read and validate book ids from a text file, one per line.

    Blank lines and lines starting with '#' are skipped.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If any book id is invalid or no valid ids are found
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Book ids file not found: {file_path}")

    if not path.is_file():
        raise ValueError(f"Path is not a file: {file_path}")

    try:
        with open(path, encoding="utf-8") as f:
            lines = f.readlines()
    except OSError as e:
        raise ValueError(f"Failed to read book ids file '{file_path}': {e}") from e

    book_ids = []
    for line_num, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        try:
            _validate_book_id(line)
            book_ids.append(line)
        except ValueError as e:
            raise ValueError(f"Invalid book id on line {line_num}: {e}") from e

    if not book_ids:
        raise ValueError(f"No valid book ids found in file: {file_path}")

    return dedupe_preserving_order(book_ids)


def parse_book_id_arguments(book_ids_str: str | None, book_ids_file: str | None) -> list[str] | None:
    """Parse and validate book ids from either string or file input.

    Returns:
        List of validated book ids, or None if no input provided

    Raises:
        ValueError: If both inputs provided, or if any book id is invalid
        FileNotFoundError: If file doesn't exist
    """
    has_book_ids = book_ids_str is not None and book_ids_str.strip()
    has_book_ids_file = book_ids_file is not None and book_ids_file.strip()

    if has_book_ids and has_book_ids_file:
        raise ValueError("Cannot specify both --book-ids and --book-ids-file. Use one or the other.")

    if not has_book_ids and not has_book_ids_file:
        return None

    if has_book_ids:
        assert book_ids_str is not None  # Type checker hint - already checked above
        return validate_and_parse_book_ids(book_ids_str)
    else:
        assert book_ids_file is not None  # Type checker hint - already checked above
        return read_book_ids_from_file(book_ids_file)
