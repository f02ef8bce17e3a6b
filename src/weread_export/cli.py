#!/usr/bin/env python3
"""
WeRead Export Command Line Interface

Export reading notes (highlights, thoughts, reading progress) from WeRead.

Commands:
  book     Export one book to Markdown (file or stdout)
  batch    Export many books into one combined Markdown, JSON or CSV file
"""

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from weread_export.client import WeReadClient
from weread_export.common import parse_book_id_arguments, parse_int_list, pluralize
from weread_export.config import ExportConfig, apply_config_to_args, load_export_config, save_export_config
from weread_export.constants import FAILED_BOOKS_FILENAME, TASK_RETRY_DEPTH
from weread_export.errors import WeReadExportError
from weread_export.exporter import export_book
from weread_export.logging_config import setup_logging
from weread_export.models import ExportedBook
from weread_export.orchestrator import run_batch_export
from weread_export.output import (
    StdoutClipboard,
    copy_markdown_to_clipboard,
    download_combined_export,
    download_markdown_file,
    write_text_file,
)
from weread_export.progress_reporter import ProgressPrinter
from weread_export.serializers import ExportFormat

logger = logging.getLogger(__name__)

COOKIE_ENV_VAR = "WEREAD_COOKIE"


def _int_list(value: str) -> list[int]:
    try:
        return parse_int_list(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    # Defaults are None so values from --config can fill the gaps
    parser.add_argument("--user-vid", help="WeRead user id (vid) whose notes are exported")
    parser.add_argument("--cookie", help=f"Cookie header for weread.qq.com (default: ${COOKIE_ENV_VAR})")
    parser.add_argument("--config", help="JSON config file with export settings")
    parser.add_argument("--output-dir", type=Path, help="Directory for exported files (default: output)")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default=None)
    parser.add_argument("--log-file", type=Path, help="Log file path (default: timestamped file in logs/)")
    parser.add_argument(
        "--no-retry-unknown-errors",
        dest="retry_unknown_errors",
        action="store_false",
        default=None,
        help="Only retry 429/5xx responses, not connection or decoding errors",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="weread-export",
        description="Export WeRead highlights, thoughts and reading progress",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export one book to output/<title>.md
  weread-export book 3300064831 --user-vid 12345678

  # Print one book's markdown to stdout
  weread-export book 3300064831 --user-vid 12345678 --clipboard

  # Export several books into one CSV file
  weread-export batch --book-ids 3300064831,695233 --user-vid 12345678 --format csv

  # Read book ids from a file, slower pacing, more rounds
  weread-export batch --book-ids-file books.txt --user-vid 12345678 --save-config weread.json \\
                      --delay-ms 3000 --retry-schedule 5000,15000,30000 --max-rounds 4
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    book_parser = subparsers.add_parser("book", help="Export one book to Markdown")
    book_parser.add_argument("book_id", help="WeRead book id")
    book_parser.add_argument(
        "--retry-delays",
        type=_int_list,
        help="Comma-separated delays in ms before each request retry (default: first two of the retry schedule)",
    )
    book_parser.add_argument("--clipboard", action="store_true", help="Write markdown to stdout instead of a file")
    _add_common_arguments(book_parser)

    batch_parser = subparsers.add_parser("batch", help="Export many books into one combined file")
    batch_parser.add_argument("--book-ids", help="Comma-separated list of book ids")
    batch_parser.add_argument("--book-ids-file", help="File with one book id per line ('#' starts a comment)")
    batch_parser.add_argument("--format", choices=[fmt.value for fmt in ExportFormat], default=None)
    batch_parser.add_argument("--concurrency", type=int, help="Books exported at the same time (default: 2)")
    batch_parser.add_argument("--delay-ms", type=int, help="Pause per worker between books in ms (default: 1200)")
    batch_parser.add_argument(
        "--retry-schedule",
        type=_int_list,
        help="Comma-separated pauses in ms before each retry round (default: 2000,5000,10000)",
    )
    batch_parser.add_argument("--max-rounds", type=int, help="Total export rounds including retries (default: 3)")
    batch_parser.add_argument("--quiet", action="store_true", help="Do not print progress lines")
    batch_parser.add_argument(
        "--save-config", type=Path, help="Write the resolved settings (without the cookie) to this JSON file"
    )
    _add_common_arguments(batch_parser)

    return parser


def resolve_config(args: argparse.Namespace) -> ExportConfig:
    """
    Merge CLI arguments over the config file and defaults.

    Raises:
        ValueError: If the resulting settings are invalid
    """
    file_config = load_export_config(args.config)
    apply_config_to_args(args, file_config)
    if not args.cookie:
        args.cookie = os.environ.get(COOKIE_ENV_VAR)

    # The book command has no batch pacing options; those come from the file or defaults
    config = ExportConfig(
        user_vid=args.user_vid or "",
        cookie=args.cookie,
        concurrency=getattr(args, "concurrency", file_config.concurrency),
        delay_ms=getattr(args, "delay_ms", file_config.delay_ms),
        retry_schedule=list(getattr(args, "retry_schedule", file_config.retry_schedule)),
        max_rounds=getattr(args, "max_rounds", file_config.max_rounds),
        retry_unknown_errors=args.retry_unknown_errors,
        output_dir=Path(args.output_dir),
        format=getattr(args, "format", file_config.format),
        log_level=args.log_level,
        log_file=args.log_file,
    )
    config.validate()
    if not config.user_vid:
        raise ValueError("--user-vid is required (or set user_vid in the config file)")
    return config


def order_like_input(books: Sequence[ExportedBook], book_ids: Sequence[str]) -> list[ExportedBook]:
    """Sort exported books into the order their ids were requested."""
    position = {book_id: index for index, book_id in enumerate(book_ids)}
    return sorted(books, key=lambda book: position.get(book.book_id, len(position)))


async def cmd_book(args: argparse.Namespace) -> int:
    """Handle the 'book' command."""
    config = resolve_config(args)
    setup_logging(config.log_level, config.log_file, announce=not args.clipboard)

    retry_delays = args.retry_delays if args.retry_delays is not None else config.retry_schedule[:TASK_RETRY_DEPTH]
    logger.info(f"BOOK EXPORT STARTED - book_id={args.book_id} retry_delays={retry_delays}")

    async with WeReadClient(cookie=config.cookie) as client:
        try:
            book = await export_book(
                client, args.book_id, config.user_vid, retry_delays, retry_unknown_errors=config.retry_unknown_errors
            )
        except Exception as e:
            logger.error(f"[{args.book_id}] Export failed: {type(e).__name__}: {e}")
            print(f"Export of {args.book_id} failed: {e}", file=sys.stderr)
            return 1

    if args.clipboard:
        await copy_markdown_to_clipboard(book.markdown, StdoutClipboard())
    else:
        path = await download_markdown_file(book.title, book.markdown, config.output_dir)
        print(f"Exported '{book.title}' ({len(book.notes)} notes) to {path}")
    return 0


async def cmd_batch(args: argparse.Namespace) -> int:
    """Handle the 'batch' command."""
    book_ids = parse_book_id_arguments(args.book_ids, args.book_ids_file)
    if not book_ids:
        raise ValueError("Specify --book-ids or --book-ids-file")

    config = resolve_config(args)
    setup_logging(config.log_level, config.log_file)
    if args.save_config:
        save_export_config(config, args.save_config)
        logger.info(f"Saved export settings to {args.save_config}")
    logger.info(
        f"BATCH EXPORT STARTED - books={len(book_ids)} format={config.format} concurrency={config.concurrency} "
        f"delay_ms={config.delay_ms} retry_schedule={config.retry_schedule} max_rounds={config.max_rounds}"
    )
    logger.info(f"Command: {' '.join(sys.argv)}")

    print(f"Exporting {len(book_ids)} {pluralize(len(book_ids), 'book')} as {config.format}")

    async with WeReadClient(cookie=config.cookie) as client:
        result = await run_batch_export(
            client,
            book_ids,
            config.user_vid,
            concurrency=config.concurrency,
            delay_ms=config.delay_ms,
            retry_schedule=config.retry_schedule,
            max_rounds=config.max_rounds,
            on_progress=ProgressPrinter(quiet=args.quiet),
            retry_unknown_errors=config.retry_unknown_errors,
        )

    # Partial results are always written
    if result.succeeded:
        books = order_like_input(result.succeeded, book_ids)
        path = await download_combined_export(books, config.format, config.output_dir)
        print(f"Exported {len(books)} {pluralize(len(books), 'book')} to {path}")

    if result.permanently_failed:
        failed = [book_id for book_id in book_ids if book_id in result.permanently_failed]
        failed_path = await write_text_file(config.output_dir, FAILED_BOOKS_FILENAME, "\n".join(failed) + "\n")
        print(
            f"{len(failed)} {pluralize(len(failed), 'book')} failed after {result.rounds} "
            f"{pluralize(result.rounds, 'round')}: {', '.join(failed)} (listed in {failed_path})",
            file=sys.stderr,
        )
        return 1

    return 0


async def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the weread-export CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        if args.command == "book":
            return await cmd_book(args)
        return await cmd_batch(args)
    except (ValueError, FileNotFoundError, WeReadExportError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130


def entry_point() -> int:
    """Console script entry point."""
    return asyncio.run(main())
