"""
Combined export serializers

Turns a collection of exported books into one Markdown, JSON or CSV document.
All functions here are pure.
"""

import csv
import io
import json
import re
from collections.abc import Sequence
from enum import Enum
from typing import Any

from weread_export.constants import COMBINED_EXPORT_BASENAME, FALLBACK_FILE_NAME, FILE_EXTENSIONS, MIME_TYPES
from weread_export.models import CombinedExport, ExportedBook, as_book_list


class ExportFormat(Enum):
    """Supported combined export formats."""

    MARKDOWN = "markdown"
    JSON = "json"
    CSV = "csv"

    @classmethod
    def parse(cls, value: "str | ExportFormat") -> "ExportFormat":
        if isinstance(value, ExportFormat):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unsupported format: {value!r}") from None

    @property
    def file_name(self) -> str:
        return f"{COMBINED_EXPORT_BASENAME}.{FILE_EXTENSIONS[self.value]}"

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self.value]


CSV_HEADERS = [
    "bookId",
    "title",
    "author",
    "rating",
    "coverUrl",
    "chapterUid",
    "chapterTitle",
    "range",
    "markText",
    "reviewText",
    "createdAt",
    "readingTime",
    "startTime",
    "finishTime",
]

BOOK_SEPARATOR = "\n\n---\n\n"

_ILLEGAL_FILE_NAME_CHARS = re.compile(r'[\\/:*?"<>|]+')
_NEWLINES = re.compile(r"\r?\n")


def sanitize_file_name(name: str) -> str:
    """Replace characters that are illegal in file names and trim; fall back to a fixed label."""
    safe = _ILLEGAL_FILE_NAME_CHARS.sub("_", name).strip()
    return safe or FALLBACK_FILE_NAME


def flatten_newlines(value: str) -> str:
    """Replace LF and CRLF with a literal backslash-n so every record stays on one line."""
    return _NEWLINES.sub(r"\\n", value)


def _text(value: Any) -> str:
    """Stringify a cell; None and empty values become empty strings, 0 stays "0"."""
    if value is None:
        return ""
    return str(value)


def _or_empty(value: Any) -> Any:
    # Falsy values (0, "") render as empty cells, matching the web export
    return value if value else ""


def book_csv_rows(book: dict[str, Any]) -> list[list[Any]]:
    """Rows for one serialized book; a book without notes yields one row carrying its markdown."""
    notes = book.get("notes") or [{"markdown": book.get("markdown", "")}]
    rows = []
    for note in notes:
        rows.append(
            [
                note.get("bookId") or book.get("bookId"),
                book.get("title"),
                _or_empty(book.get("author")),
                _or_empty(book.get("rating")),
                note.get("coverUrl") or book.get("coverUrl") or "",
                note.get("chapterUid") if note.get("chapterUid") is not None else "",
                _or_empty(note.get("chapterTitle")),
                _or_empty(note.get("range")),
                note.get("markText") or note.get("markdown") or "",
                _or_empty(note.get("reviewText")),
                _or_empty(note.get("createdAt")),
                _or_empty(note.get("readingTime")),
                _or_empty(note.get("startTime")),
                _or_empty(note.get("finishTime")),
            ]
        )
    return rows


def to_json(books: list[dict[str, Any]]) -> str:
    return json.dumps(books, indent=2, ensure_ascii=False)


def to_csv(books: list[dict[str, Any]]) -> str:
    """Header line unquoted, every data field quoted; no trailing newline."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for book in books:
        for row in book_csv_rows(book):
            writer.writerow([flatten_newlines(_text(value)) for value in row])

    rows = output.getvalue().removesuffix("\n")
    header = ",".join(CSV_HEADERS)
    return f"{header}\n{rows}" if rows else header


def to_markdown(books: list[dict[str, Any]]) -> str:
    return BOOK_SEPARATOR.join(f"# {book.get('title')}\n\n{book.get('markdown', '')}" for book in books)


_WRITERS = {
    ExportFormat.JSON: to_json,
    ExportFormat.CSV: to_csv,
    ExportFormat.MARKDOWN: to_markdown,
}


def build_combined_export(items: Sequence[ExportedBook], export_format: ExportFormat | str) -> CombinedExport:
    """
    Serialize books into a single document.

    Args:
        items: Exported books, in output order
        export_format: "markdown", "json" or "csv"

    Returns:
        CombinedExport with suggested file name, content and MIME type

    Raises:
        ValueError: If the format is not supported
    """
    fmt = ExportFormat.parse(export_format)
    books = as_book_list(items)
    return {
        "file_name": fmt.file_name,
        "content": _WRITERS[fmt](books),
        "mime_type": fmt.mime_type,
    }
