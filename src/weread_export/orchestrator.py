#!/usr/bin/env python3
"""
Batch Export Orchestrator

Runs the single-book export over a set of books with bounded concurrency and
re-submits only the failed books in later rounds, with an escalating pause
between rounds.
"""

import logging
import time
from collections.abc import Callable, Iterable, Sequence

from weread_export.batch import run_bounded, sleep_ms
from weread_export.client import WeReadClient
from weread_export.common import BookId, dedupe_preserving_order, format_duration, pluralize
from weread_export.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_DELAY_MS,
    DEFAULT_MAX_ROUNDS,
    DEFAULT_RETRY_SCHEDULE,
    TASK_RETRY_DEPTH,
)
from weread_export.exporter import export_request
from weread_export.models import BatchProgress, BatchResult, ExportedBook, ExportRequest
from weread_export.retry import RetryPolicy

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchProgress], None]


class BatchExportOrchestrator:
    """
    Export many books, retrying failures in rounds.

    Two retry layers are in play. Inside a task, each book gets the fast
    request-level ``task_policy``. Books still failing after that are collected
    and re-run as a new round after the ``round_policy`` delay for that round,
    up to ``max_rounds`` rounds in total.
    """

    def __init__(
        self,
        client: WeReadClient,
        user_vid: str,
        concurrency: int = DEFAULT_CONCURRENCY,
        delay_ms: int = DEFAULT_DELAY_MS,
        round_policy: RetryPolicy | None = None,
        task_policy: RetryPolicy | None = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        retry_unknown_errors: bool = True,
        on_progress: ProgressCallback | None = None,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be non-negative, got {delay_ms}")
        if max_rounds < 1:
            raise ValueError(f"max_rounds must be at least 1, got {max_rounds}")

        self.client = client
        self.user_vid = user_vid
        self.concurrency = concurrency
        self.delay_ms = delay_ms
        self.round_policy = round_policy if round_policy is not None else RetryPolicy(DEFAULT_RETRY_SCHEDULE)
        self.task_policy = task_policy if task_policy is not None else self.round_policy.head(TASK_RETRY_DEPTH)
        self.max_rounds = max_rounds
        self.retry_unknown_errors = retry_unknown_errors
        self.on_progress = on_progress

    def _notify(self, progress: BatchProgress) -> None:
        if self.on_progress is not None:
            self.on_progress(progress)

    async def _run_round(
        self, book_ids: list[BookId], progress: BatchProgress, succeeded: list[ExportedBook]
    ) -> set[BookId]:
        """Run one pass of the bounded runner and return the ids that failed."""
        round_failures: set[BookId] = set()

        async def export_task(book_id: BookId, index: int) -> None:
            request = ExportRequest(book_id, self.user_vid, self.task_policy.delays_ms)
            try:
                book = await export_request(self.client, request, retry_unknown_errors=self.retry_unknown_errors)
            except Exception as e:
                logger.warning(f"[{book_id}] Export failed in round {progress.round_index}: {type(e).__name__}: {e}")
                round_failures.add(book_id)
                progress.failed.add(book_id)
            else:
                succeeded.append(book)
                progress.done += 1
                progress.failed.discard(book_id)
            self._notify(progress)

        await run_bounded(book_ids, export_task, concurrency=self.concurrency, delay_ms=self.delay_ms)
        return round_failures

    async def run(self, book_ids: Iterable[BookId]) -> BatchResult:
        """
        Export every book, returning successes and the ids that never succeeded.

        Failures never raise; books exported in earlier rounds are kept.
        """
        pending = dedupe_preserving_order(list(book_ids))
        progress = BatchProgress(total=len(pending))
        succeeded: list[ExportedBook] = []
        start_time = time.time()

        if not pending:
            return BatchResult(succeeded=[], permanently_failed=set(), rounds=0)

        logger.info(
            f"Batch export of {len(pending)} {pluralize(len(pending), 'book')} "
            f"(concurrency {self.concurrency}, delay {self.delay_ms}ms, max rounds {self.max_rounds})"
        )

        while True:
            failures = await self._run_round(pending, progress, succeeded)
            rounds_run = progress.round_index + 1

            if not failures:
                progress.failed.clear()
                permanently_failed: set[BookId] = set()
                break

            if rounds_run >= self.max_rounds:
                permanently_failed = failures
                logger.error(
                    f"{len(failures)} {pluralize(len(failures), 'book')} failed after {rounds_run} "
                    f"{pluralize(rounds_run, 'round')}: {', '.join(sorted(failures))}"
                )
                break

            # Keep the input order for the next round
            pending = [book_id for book_id in pending if book_id in failures]
            progress.round_index += 1
            wait_ms = self.round_policy.wait_ms(progress.round_index - 1)
            logger.info(
                f"Round {progress.round_index}: retrying {len(pending)} failed "
                f"{pluralize(len(pending), 'book')} after {wait_ms}ms"
            )
            self._notify(progress)
            if wait_ms:
                await sleep_ms(wait_ms)

        logger.info(
            f"Batch export finished in {format_duration(time.time() - start_time)}: "
            f"{len(succeeded)} exported, {len(permanently_failed)} failed, {rounds_run} {pluralize(rounds_run, 'round')}"
        )
        return BatchResult(succeeded=succeeded, permanently_failed=permanently_failed, rounds=rounds_run)


async def run_batch_export(
    client: WeReadClient,
    book_ids: Iterable[BookId],
    user_vid: str,
    concurrency: int = DEFAULT_CONCURRENCY,
    delay_ms: int = DEFAULT_DELAY_MS,
    retry_schedule: Sequence[int] | RetryPolicy = DEFAULT_RETRY_SCHEDULE,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
    on_progress: ProgressCallback | None = None,
    retry_unknown_errors: bool = True,
) -> BatchResult:
    """Export ``book_ids``; each task retries with the first two schedule entries, rounds with the full schedule."""
    round_policy = RetryPolicy.from_delays(retry_schedule)
    orchestrator = BatchExportOrchestrator(
        client,
        user_vid,
        concurrency=concurrency,
        delay_ms=delay_ms,
        round_policy=round_policy,
        task_policy=round_policy.head(TASK_RETRY_DEPTH),
        max_rounds=max_rounds,
        retry_unknown_errors=retry_unknown_errors,
        on_progress=on_progress,
    )
    return await orchestrator.run(book_ids)
