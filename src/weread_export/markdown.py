"""
Markdown rendering for a single book's notes
"""

import re
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from weread_export.constants import COVER_ALT_SUFFIX
from weread_export.models import NoteRecord, Rating, ReadingProgress

UNGROUPED_CHAPTER_TITLE = "未分章节"
EMPTY_NOTES_TEXT = "暂无笔记"

_RANGE_START = re.compile(r"^\s*(\d+)")


def format_reading_time(seconds: Any) -> str | None:
    """Format accumulated reading time, e.g. 3900 -> "1小时5分钟".

    Returns None for values that are not a number of seconds.
    """
    try:
        hours, remainder = divmod(int(seconds), 3600)
    except (TypeError, ValueError):
        return None
    minutes = remainder // 60
    if hours:
        return f"{hours}小时{minutes}分钟"
    if minutes:
        return f"{minutes}分钟"
    return "不足1分钟"


def format_date(timestamp: Any) -> str | None:
    """UTC date of a Unix timestamp in seconds; None when it cannot be converted."""
    try:
        return datetime.fromtimestamp(int(timestamp), UTC).strftime("%Y-%m-%d")
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _range_start(note: NoteRecord) -> int:
    match = _RANGE_START.match(str(note.range or ""))
    return int(match.group(1)) if match else 0


def _chapter_key(chapter_uid) -> str:
    return "" if chapter_uid is None else str(chapter_uid)


def group_notes_by_chapter(
    notes: Sequence[NoteRecord], chapter_order: Sequence[int | str] = ()
) -> list[tuple[str, list[NoteRecord]]]:
    """Group notes into (chapter title, notes) sections.

    Sections follow ``chapter_order``; chapters missing from it come after, in
    the order they first appear. Notes inside a section are sorted by the start
    offset of their range.
    """
    groups: dict[str, list[NoteRecord]] = {}
    for note in notes:
        groups.setdefault(_chapter_key(note.chapter_uid), []).append(note)

    ordered_keys = [key for key in (_chapter_key(uid) for uid in chapter_order) if key in groups]
    ordered_keys = list(dict.fromkeys(ordered_keys))
    ordered_keys += [key for key in groups if key not in ordered_keys]

    sections = []
    for key in ordered_keys:
        chapter_notes = sorted(groups[key], key=_range_start)
        title = next((note.chapter_title for note in chapter_notes if note.chapter_title), "")
        sections.append((title or UNGROUPED_CHAPTER_TITLE, chapter_notes))
    return sections


def render_book_markdown(
    title: str,
    notes: Sequence[NoteRecord],
    author: str | None = None,
    rating: Rating | None = None,
    progress: ReadingProgress | None = None,
    chapter_order: Sequence[int | str] = (),
) -> str:
    """Render one book as a Markdown document: header, metadata list, then notes by chapter."""
    lines = [f"# {title}", ""]

    metadata = []
    if author:
        metadata.append(f"- 作者：{author}")
    if rating not in (None, ""):
        metadata.append(f"- 评分：{rating}")
    if progress is not None:
        # Values that cannot be converted are left out
        reading_time = format_reading_time(progress.reading_time) if progress.reading_time else None
        start_date = format_date(progress.start_time) if progress.start_time else None
        finish_date = format_date(progress.finish_time) if progress.finish_time else None
        if reading_time:
            metadata.append(f"- 阅读时长：{reading_time}")
        if start_date:
            metadata.append(f"- 开始阅读：{start_date}")
        if finish_date:
            metadata.append(f"- 读完时间：{finish_date}")
    if metadata:
        lines.extend(metadata)
        lines.append("")

    if not notes:
        lines.append(EMPTY_NOTES_TEXT)
        return "\n".join(lines) + "\n"

    for chapter_title, chapter_notes in group_notes_by_chapter(notes, chapter_order):
        lines.append(f"## {chapter_title}")
        lines.append("")
        for note in chapter_notes:
            quoted = "\n".join(f"> {line}" if line else ">" for line in str(note.mark_text).splitlines() or [""])
            lines.append(quoted)
            lines.append("")
            if note.review_text:
                lines.append(f"💭 {note.review_text}")
                lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"


def prepend_cover(markdown: str, title: str, cover_url: str | None) -> str:
    """Put the cover image reference in front of a rendered book, when there is a cover."""
    if not cover_url:
        return markdown
    return f"![{title} {COVER_ALT_SUFFIX}]({cover_url})\n\n{markdown}"
