"""
Single-book export: fetch the three payloads with retries, then merge
"""

import logging
import time
from collections.abc import Sequence

from weread_export.client import WeReadClient
from weread_export.common import pluralize
from weread_export.errors import is_retryable_error
from weread_export.merge import merge_book_payloads
from weread_export.models import ExportedBook, ExportRequest
from weread_export.retry import RetryPolicy, build_async_retrying

logger = logging.getLogger(__name__)


async def export_book(
    client: WeReadClient,
    book_id: str,
    user_vid: str,
    retry_delays: Sequence[int] | RetryPolicy = (),
    retry_unknown_errors: bool = True,
) -> ExportedBook:
    """
    Export one book's notes.

    Each attempt issues the three requests concurrently and merges the
    payloads, so merge errors count as attempt failures. A failed attempt is
    repeated while the policy has retries left and the error is retryable;
    otherwise the error propagates unchanged.

    Args:
        client: WeRead API client
        book_id: Book to export
        user_vid: Id of the user whose reviews are exported
        retry_delays: Delay in ms before each retry, or a RetryPolicy
        retry_unknown_errors: Retry errors that are not classified request errors

    Returns:
        ExportedBook with rendered markdown and flattened notes
    """
    policy = RetryPolicy.from_delays(retry_delays)
    retrying = build_async_retrying(
        policy,
        lambda error: is_retryable_error(error, retry_unknown_errors),
        log=logger,
    )

    async def attempt() -> ExportedBook:
        payloads = await client.fetch_book_payloads(book_id, user_vid)
        return merge_book_payloads(book_id, payloads)

    start_time = time.time()
    book = await retrying(attempt)
    attempts = retrying.statistics.get("attempt_number", 1)

    logger.info(
        f"[{book_id}] Exported '{book.title}' with {len(book.notes)} notes "
        f"in {time.time() - start_time:.2f}s ({attempts} {pluralize(attempts, 'attempt')})"
    )
    return book


async def export_request(
    client: WeReadClient, request: ExportRequest, retry_unknown_errors: bool = True
) -> ExportedBook:
    """Export the book described by an ExportRequest."""
    return await export_book(
        client,
        request.book_id,
        request.user_vid,
        request.retry_delays,
        retry_unknown_errors=retry_unknown_errors,
    )
