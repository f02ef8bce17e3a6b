#!/usr/bin/env python3
"""
Constants for weread-export application.

Centralized constants to eliminate duplication across the codebase.
"""

from pathlib import Path

# WeRead web API
WEREAD_BASE_URL = "https://weread.qq.com/web"
BOOKMARK_LIST_PATH = "/book/bookmarklist?bookId={book_id}"
REVIEW_LIST_PATH = (
    "/review/list?bookId={book_id}&mine=1&listType=11&maxIdx=0&count=0&listMode=2&synckey=0&userVid={user_vid}"
)
PROGRESS_PATH = "/book/getProgress?bookId={book_id}"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/126.0 Safari/537.36"
)

# HTTP client limits
DEFAULT_HTTP_TIMEOUT = 30
HTTP_CONNECTION_LIMIT = 20

# Batch pacing defaults
DEFAULT_CONCURRENCY = 2
DEFAULT_DELAY_MS = 1200

# Round-level retry schedule (ms); the per-task micro-retry uses the first TASK_RETRY_DEPTH entries
DEFAULT_RETRY_SCHEDULE: tuple[int, ...] = (2000, 5000, 10000)
DEFAULT_MAX_ROUNDS = 3
TASK_RETRY_DEPTH = 2

# Status codes treated as transient
RETRYABLE_STATUS_CODES = frozenset({429})
SERVER_ERROR_THRESHOLD = 500

# Output
OUTPUT_DIR = Path("output")
COMBINED_EXPORT_BASENAME = "weread-export"
FAILED_BOOKS_FILENAME = "failed_books.txt"
FALLBACK_FILE_NAME = "导出"
COVER_ALT_SUFFIX = "封面"

MIME_TYPES = {
    "markdown": "text/markdown;charset=utf-8",
    "json": "application/json;charset=utf-8",
    "csv": "text/csv;charset=utf-8",
}

FILE_EXTENSIONS = {
    "markdown": "md",
    "json": "json",
    "csv": "csv",
}
