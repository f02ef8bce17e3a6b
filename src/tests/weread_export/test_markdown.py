"""Tests for single-book markdown rendering."""

import pytest

from weread_export.markdown import (
    format_date,
    format_reading_time,
    group_notes_by_chapter,
    prepend_cover,
    render_book_markdown,
)
from weread_export.models import NoteRecord, ReadingProgress


def note(chapter_uid, text_range, text, chapter_title="", review=""):
    return NoteRecord(
        book_id="b1",
        title="T",
        chapter_uid=chapter_uid,
        chapter_title=chapter_title,
        range=text_range,
        mark_text=text,
        review_text=review,
    )


@pytest.mark.parametrize(
    "seconds,expected",
    [(0, "不足1分钟"), (59, "不足1分钟"), (60, "1分钟"), (3600, "1小时0分钟"), (3900, "1小时5分钟")],
)
def test_format_reading_time(seconds, expected):
    assert format_reading_time(seconds) == expected


def test_format_date_is_utc():
    assert format_date(1700000000) == "2023-11-14"


def test_group_notes_follows_chapter_order_then_range():
    notes = [
        note(1, "200-210", "late", "第一章"),
        note(2, "5-9", "other", "第二章"),
        note(1, "10-20", "early", "第一章"),
    ]

    sections = group_notes_by_chapter(notes, chapter_order=[2, 1])

    assert [title for title, _ in sections] == ["第二章", "第一章"]
    assert [n.mark_text for n in sections[1][1]] == ["early", "late"]


def test_group_notes_unknown_chapters_keep_first_appearance():
    sections = group_notes_by_chapter([note(9, "1-2", "x"), note(None, "1-2", "y")], chapter_order=[1])
    assert [title for title, _ in sections] == ["未分章节", "未分章节"]
    assert [s[1][0].mark_text for s in sections] == ["x", "y"]


def test_render_full_document():
    notes = [note(1, "10-20", "第一句", "第一章", review="很好")]
    markdown = render_book_markdown(
        "活着",
        notes,
        author="余华",
        rating=8.9,
        progress=ReadingProgress(reading_time=3900, start_time=1700000000, finish_time=None),
    )

    assert markdown == (
        "# 活着\n\n"
        "- 作者：余华\n"
        "- 评分：8.9\n"
        "- 阅读时长：1小时5分钟\n"
        "- 开始阅读：2023-11-14\n\n"
        "## 第一章\n\n"
        "> 第一句\n\n"
        "💭 很好\n"
    )


def test_render_multiline_highlight_is_fully_quoted():
    markdown = render_book_markdown("T", [note(1, "1-2", "line one\n\nline two", "C")])
    assert "> line one\n>\n> line two" in markdown


def test_render_without_notes():
    assert render_book_markdown("空书", []) == "# 空书\n\n暂无笔记\n"


def test_render_skips_empty_rating():
    assert "评分" not in render_book_markdown("T", [], rating="")


def test_prepend_cover():
    assert prepend_cover("# T\n", "T", "https://img/t6_1.jpg") == "![T 封面](https://img/t6_1.jpg)\n\n# T\n"


def test_prepend_cover_without_url():
    assert prepend_cover("# T\n", "T", None) == "# T\n"


@pytest.mark.parametrize("value", ["abc", None, [1]])
def test_format_reading_time_unconvertible(value):
    assert format_reading_time(value) is None


@pytest.mark.parametrize("value", [1700000000000, "tomorrow", None])
def test_format_date_unconvertible(value):
    assert format_date(value) is None


def test_render_skips_unconvertible_progress():
    markdown = render_book_markdown(
        "T",
        [note(1, 5, "text", "C")],
        progress=ReadingProgress(reading_time="abc", start_time=1700000000000, finish_time=1700000000),
    )

    assert "阅读时长" not in markdown
    assert "开始阅读" not in markdown
    assert "- 读完时间：2023-11-14" in markdown
    assert "> text" in markdown
