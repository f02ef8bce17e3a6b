"""
Output sinks for exported text

Writes exports to files under a directory, or to a clipboard-like target.
Writes are best effort and never retried.
"""

import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, TextIO

import aiofiles

from weread_export.errors import ClipboardUnavailableError
from weread_export.models import ExportedBook
from weread_export.serializers import ExportFormat, build_combined_export, sanitize_file_name

logger = logging.getLogger(__name__)


class Clipboard(Protocol):
    """Anything that can receive plain text for the user to paste."""

    async def write_text(self, text: str) -> None: ...


class StdoutClipboard:
    """Clipboard stand-in for terminals: prints the text so it can be piped or copied."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream

    async def write_text(self, text: str) -> None:
        stream = self.stream or sys.stdout
        stream.write(text)
        if not text.endswith("\n"):
            stream.write("\n")
        stream.flush()


async def write_text_file(directory: Path | str, file_name: str, content: str, mime_type: str = "") -> Path:
    """
    Write text to ``directory/file_name`` as UTF-8.

    Args:
        directory: Target directory (created if missing)
        file_name: Suggested file name
        content: Text content
        mime_type: MIME type of the content, logged only

    Returns:
        Path of the written file
    """
    path = Path(directory) / file_name
    path.parent.mkdir(parents=True, exist_ok=True)

    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(content)

    logger.info(f"Wrote {len(content):,} characters to {path}" + (f" ({mime_type})" if mime_type else ""))
    return path


async def download_markdown_file(title: str, markdown: str, directory: Path | str) -> Path:
    """Save one book's markdown as ``{title}.md`` with an OS-safe name."""
    return await write_text_file(directory, f"{sanitize_file_name(title)}.md", markdown, "text/markdown;charset=utf-8")


async def download_combined_export(
    items: Sequence[ExportedBook], export_format: ExportFormat | str, directory: Path | str
) -> Path:
    """Serialize ``items`` and save them under the format's suggested file name."""
    export = build_combined_export(items, export_format)
    return await write_text_file(directory, export["file_name"], export["content"], export["mime_type"])


async def copy_markdown_to_clipboard(markdown: str, clipboard: Clipboard | None) -> None:
    """
    Hand markdown to a clipboard.

    Raises:
        ClipboardUnavailableError: If no clipboard is available
    """
    if clipboard is None:
        raise ClipboardUnavailableError("No clipboard available to write to")
    await clipboard.write_text(markdown)
