#!/usr/bin/env python3
"""
Progress Reporter for Batch Exports

Provides rate calculation and progress display for batch export runs.
"""

import logging
import time

from weread_export.common import format_duration
from weread_export.models import BatchProgress

logger = logging.getLogger(__name__)


class SlidingWindowRateCalculator:
    """
    Calculate processing rates using a sliding window for more accurate ETAs.

    This prevents ETAs from being skewed by startup overhead or retry pauses
    by using only the most recent completions for rate calculation.
    """

    def __init__(self, window_size: int = 5):
        """
        Initialize the rate calculator.

        Args:
            window_size: Number of recent completions to consider for rate calculation
        """
        self.window_size = window_size
        self.batch_times: list[tuple[float, int]] = []  # (timestamp, processed_count)

    def add_batch(self, timestamp: float, processed_count: int) -> None:
        """
        Add a completion record.

        Args:
            timestamp: Time of the completion
            processed_count: Cumulative number of items processed
        """
        self.batch_times.append((timestamp, processed_count))

        if len(self.batch_times) > self.window_size:
            self.batch_times.pop(0)

    def get_rate(self, fallback_start_time: float, fallback_processed_count: int) -> float:
        """
        Calculate current processing rate based on sliding window.

        Args:
            fallback_start_time: Start time for fallback rate calculation
            fallback_processed_count: Total processed count for fallback

        Returns:
            Processing rate in items per second
        """
        if len(self.batch_times) >= 2:
            oldest_time, oldest_count = self.batch_times[0]
            newest_time, newest_count = self.batch_times[-1]

            time_span = newest_time - oldest_time
            count_span = newest_count - oldest_count

            return count_span / max(1, time_span)
        else:
            current_time = time.time()
            overall_elapsed = current_time - fallback_start_time
            return fallback_processed_count / max(1, overall_elapsed)


def format_progress_line(progress: BatchProgress, rate: float, elapsed: float) -> str:
    """Build the one-line status shown while a batch export runs."""
    percentage = (progress.done / progress.total) * 100 if progress.total else 100.0

    eta_text = ""
    if rate > 0 and progress.remaining > 0:
        eta_text = f" (ETA: {format_duration(progress.remaining / rate)})"

    line = (
        f"{progress.done:,}/{progress.total:,} ({percentage:.1f}%) - {rate:.1f} books/sec - "
        f"elapsed: {format_duration(elapsed)}{eta_text}"
    )

    extra_parts = []
    if progress.round_index:
        extra_parts.append(f"round: {progress.round_index + 1}")
    if progress.failed:
        extra_parts.append(f"failed: {len(progress.failed)}")
    if extra_parts:
        line = f"{line} [{', '.join(extra_parts)}]"
    return line


class ProgressPrinter:
    """Progress callback for the orchestrator that prints and logs status lines."""

    def __init__(self, window_size: int = 5, quiet: bool = False):
        self.start_time = time.time()
        self.rate_calculator = SlidingWindowRateCalculator(window_size=window_size)
        self.quiet = quiet
        self.last_line = ""

    def __call__(self, progress: BatchProgress) -> None:
        current_time = time.time()
        self.rate_calculator.add_batch(current_time, progress.done)
        rate = self.rate_calculator.get_rate(self.start_time, progress.done)

        self.last_line = format_progress_line(progress, rate, current_time - self.start_time)
        if not self.quiet:
            print(self.last_line)
        logger.info(f"Progress: {self.last_line}")
