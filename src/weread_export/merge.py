"""
Merge the three WeRead payloads of a book into normalized records
"""

import logging
from typing import Any

from weread_export.markdown import prepend_cover, render_book_markdown
from weread_export.models import BookPayloads, ExportedBook, NoteRecord, RawPayload, ReadingProgress

logger = logging.getLogger(__name__)

# Bookmark/review entries of this type are text highlights and text-anchored thoughts
HIGHLIGHT_TYPE = 1


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _first_present(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first value that is not None (falsy values such as 0 are kept)."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def normalize_cover_url(raw: str | None) -> str | None:
    """Switch a cover URL to the larger "t6_" image variant."""
    if not raw:
        return None
    return raw.replace("s_", "t6_", 1)


def find_chapter_title(chapters: list[Any], chapter_uid: Any) -> str:
    if not chapters or chapter_uid is None:
        return ""
    for chapter in chapters:
        if isinstance(chapter, dict) and chapter.get("chapterUid") == chapter_uid:
            return chapter.get("title") or ""
    return ""


def note_key(chapter_uid: Any, text_range: Any) -> str:
    return f"{chapter_uid}-{text_range}"


def build_review_index(review_data: RawPayload) -> dict[str, str]:
    """Map "chapterUid-range" to the text of the user's thought anchored at that range."""
    index = {}
    for item in _as_list(_as_dict(review_data).get("reviews")):
        item = _as_dict(item)
        review = _as_dict(item.get("review")) or item
        if review.get("type") != HIGHLIGHT_TYPE or not review.get("range"):
            continue
        index[note_key(review.get("chapterUid"), review.get("range"))] = (
            review.get("content") or review.get("abstract") or ""
        )
    return index


def extract_reading_progress(progress_data: RawPayload) -> ReadingProgress:
    progress = _as_dict(_as_dict(progress_data).get("book"))
    return ReadingProgress(
        reading_time=progress.get("readingTime"),
        start_time=progress.get("startReadingTime"),
        finish_time=progress.get("finishTime"),
    )


def book_title(mark_data: RawPayload, book_id: str) -> str:
    return _as_dict(_as_dict(mark_data).get("book")).get("title") or book_id


def book_rating(book: dict[str, Any]) -> Any:
    return _first_present(book, "rating", "score", default="")


def build_note_records(
    mark_data: RawPayload,
    review_data: RawPayload,
    progress_data: RawPayload,
    book_id: str = "",
) -> list[NoteRecord]:
    """Flatten the highlight entries of the bookmark payload into NoteRecords.

    Only highlights (type 1) are kept. Chapter titles come from the bookmark
    payload's chapter table, thoughts from the review index, reading statistics
    from the progress payload (identical on every note of the book).
    """
    mark_data = _as_dict(mark_data)
    book = _as_dict(mark_data.get("book"))
    chapters = _as_list(mark_data.get("chapters"))
    progress = extract_reading_progress(progress_data)
    reviews = build_review_index(review_data)
    title = book_title(mark_data, book_id)
    cover_url = normalize_cover_url(book.get("cover"))

    notes = []
    for mark in _as_list(mark_data.get("updated")):
        if not isinstance(mark, dict) or mark.get("type") != HIGHLIGHT_TYPE:
            continue
        chapter_uid = mark.get("chapterUid")
        notes.append(
            NoteRecord(
                book_id=mark.get("bookId") or book.get("bookId") or book_id,
                title=title,
                author=book.get("author"),
                cover_url=cover_url,
                rating=book_rating(book),
                chapter_uid=chapter_uid,
                chapter_title=find_chapter_title(chapters, chapter_uid),
                range=mark.get("range"),
                mark_text=mark.get("markText") or mark.get("abstract") or "",
                review_text=reviews.get(note_key(chapter_uid, mark.get("range")), ""),
                created_at=mark.get("createTime") or "",
                style=mark.get("style"),
                reading_time=progress.reading_time,
                start_time=progress.start_time,
                finish_time=progress.finish_time,
            )
        )
    return notes


def merge_book_payloads(book_id: str, payloads: BookPayloads) -> ExportedBook:
    """Build the ExportedBook for one successfully fetched book."""
    mark_data = _as_dict(payloads.bookmarks)
    book = _as_dict(mark_data.get("book"))
    title = book_title(mark_data, book_id)
    cover_url = normalize_cover_url(book.get("cover"))
    rating = book_rating(book)
    notes = build_note_records(mark_data, payloads.reviews, payloads.progress, book_id)

    chapter_order = [
        chapter.get("chapterUid") for chapter in _as_list(mark_data.get("chapters")) if isinstance(chapter, dict)
    ]
    markdown = render_book_markdown(
        title,
        notes,
        author=book.get("author"),
        rating=rating,
        progress=extract_reading_progress(payloads.progress),
        chapter_order=[uid for uid in chapter_order if uid is not None],
    )

    logger.debug(f"[{book_id}] Merged {len(notes)} notes from {len(_as_list(mark_data.get('updated')))} bookmarks")

    return ExportedBook(
        book_id=book_id,
        title=title,
        markdown=prepend_cover(markdown, title, cover_url),
        cover_url=cover_url,
        author=book.get("author"),
        rating=rating,
        notes=tuple(notes),
    )
