"""Tests for file and clipboard output."""

import io

import pytest

from weread_export.errors import ClipboardUnavailableError
from weread_export.models import ExportedBook
from weread_export.output import (
    StdoutClipboard,
    copy_markdown_to_clipboard,
    download_combined_export,
    download_markdown_file,
    write_text_file,
)


@pytest.mark.asyncio
async def test_write_text_file_creates_directory(tmp_path):
    path = await write_text_file(tmp_path / "nested", "a.txt", "内容")

    assert path == tmp_path / "nested" / "a.txt"
    assert path.read_text(encoding="utf-8") == "内容"


@pytest.mark.asyncio
async def test_download_markdown_file_sanitizes_title(tmp_path):
    path = await download_markdown_file("a/b: c?", "# x\n", tmp_path)

    assert path.name == "a_b_ c_.md"
    assert path.read_text(encoding="utf-8") == "# x\n"


@pytest.mark.asyncio
async def test_download_markdown_file_empty_title(tmp_path):
    path = await download_markdown_file("", "# x\n", tmp_path)
    assert path.name == "导出.md"


@pytest.mark.asyncio
async def test_download_combined_export(tmp_path):
    books = [ExportedBook(book_id="b1", title="T", markdown="body")]

    path = await download_combined_export(books, "markdown", tmp_path)

    assert path.name == "weread-export.md"
    assert path.read_text(encoding="utf-8") == "# T\n\nbody"


@pytest.mark.asyncio
async def test_copy_to_stdout_clipboard():
    stream = io.StringIO()

    await copy_markdown_to_clipboard("# T", StdoutClipboard(stream))

    assert stream.getvalue() == "# T\n"


@pytest.mark.asyncio
async def test_copy_without_clipboard_raises():
    with pytest.raises(ClipboardUnavailableError):
        await copy_markdown_to_clipboard("# T", None)
