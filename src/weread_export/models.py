#!/usr/bin/env python3
"""
Export Models

Normalized records produced by the fetch-and-merge step and the state types
of a batch export run.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias, TypedDict

from weread_export.common import BookId

# Raw endpoint payloads are untyped JSON trees
RawPayload: TypeAlias = dict[str, Any]

Rating: TypeAlias = str | int | float

ExportFormatName = Literal["markdown", "json", "csv"]


@dataclass(frozen=True)
class ExportRequest:
    """Input to one fetch-and-merge attempt sequence."""

    book_id: BookId
    user_vid: str
    retry_delays: tuple[int, ...] = ()


@dataclass(frozen=True)
class BookPayloads:
    """The three JSON payloads fetched for one book."""

    bookmarks: RawPayload
    reviews: RawPayload
    progress: RawPayload


@dataclass(frozen=True)
class ReadingProgress:
    """Book-level reading statistics from the progress endpoint (Unix seconds)."""

    reading_time: int | None = None
    start_time: int | None = None
    finish_time: int | None = None


@dataclass(frozen=True)
class NoteRecord:
    """One highlight, flattened with its book, chapter, review and progress context."""

    book_id: BookId
    title: str
    author: str | None = None
    cover_url: str | None = None
    rating: Rating | None = None
    chapter_uid: int | str | None = None
    chapter_title: str = ""
    range: str | None = None
    mark_text: str = ""
    review_text: str = ""
    created_at: int | str = ""
    style: int | None = None
    reading_time: int | None = None
    start_time: int | None = None
    finish_time: int | None = None

    # Field name -> serialized key
    FIELD_KEYS = {
        "book_id": "bookId",
        "title": "title",
        "author": "author",
        "cover_url": "coverUrl",
        "rating": "rating",
        "chapter_uid": "chapterUid",
        "chapter_title": "chapterTitle",
        "range": "range",
        "mark_text": "markText",
        "review_text": "reviewText",
        "created_at": "createdAt",
        "style": "style",
        "reading_time": "readingTime",
        "start_time": "startTime",
        "finish_time": "finishTime",
    }

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optional values."""
        return {key: getattr(self, name) for name, key in self.FIELD_KEYS.items() if getattr(self, name) is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NoteRecord":
        """Build from a camelCase dict such as one produced by ``to_dict``."""
        kwargs = {name: data[key] for name, key in cls.FIELD_KEYS.items() if key in data}
        kwargs.setdefault("book_id", "")
        kwargs.setdefault("title", "")
        return cls(**kwargs)


@dataclass(frozen=True)
class ExportedBook:
    """A fully merged and rendered book, ready for serialization."""

    book_id: BookId
    title: str
    markdown: str
    cover_url: str | None = None
    author: str | None = None
    rating: Rating | None = None
    notes: tuple[NoteRecord, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "bookId": self.book_id,
            "title": self.title,
            "markdown": self.markdown,
        }
        if self.cover_url is not None:
            data["coverUrl"] = self.cover_url
        if self.author is not None:
            data["author"] = self.author
        if self.rating is not None:
            data["rating"] = self.rating
        data["notes"] = [note.to_dict() for note in self.notes]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExportedBook":
        return cls(
            book_id=data.get("bookId", ""),
            title=data.get("title", ""),
            markdown=data.get("markdown", ""),
            cover_url=data.get("coverUrl"),
            author=data.get("author"),
            rating=data.get("rating"),
            notes=tuple(NoteRecord.from_dict(note) for note in data.get("notes") or []),
        )


@dataclass
class BatchProgress:
    """Live counters of one orchestration run.

    Mutated only by the orchestrator; callers read it from the progress callback.
    """

    total: int
    done: int = 0
    failed: set[BookId] = field(default_factory=set)
    round_index: int = 0

    @property
    def remaining(self) -> int:
        return self.total - self.done


@dataclass
class BatchResult:
    """Final partition of a batch export."""

    succeeded: list[ExportedBook]
    permanently_failed: set[BookId]
    rounds: int

    @property
    def complete(self) -> bool:
        return not self.permanently_failed


class CombinedExport(TypedDict):
    """Serialized output with the name and MIME type a writer should use."""

    file_name: str
    content: str
    mime_type: str


def as_book_list(items: Sequence[ExportedBook]) -> list[dict[str, Any]]:
    """Serialize books to the list-of-dicts shape shared by the JSON and CSV writers."""
    return [item.to_dict() for item in items]
