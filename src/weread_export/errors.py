"""
Exceptions for WeRead export operations
"""

from weread_export.retry import RetryDecision, classify_status


class WeReadExportError(Exception):
    """Base exception for export errors."""

    pass


class ExportRequestError(WeReadExportError):
    """Raised when a WeRead endpoint answers with a non-success status.

    ``should_retry`` is derived from the status once, at construction.
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
        self.should_retry = classify_status(status) is RetryDecision.RETRYABLE


class ClipboardUnavailableError(WeReadExportError):
    """Raised when no clipboard is available to write to."""

    pass


def is_retryable_error(error: BaseException, retry_unknown_errors: bool = True) -> bool:
    """Decide whether a failed export attempt may be repeated.

    Classified request errors follow their status. Anything else (connection
    resets, timeouts, malformed JSON) is retried only when
    ``retry_unknown_errors`` is set, which is the default.
    """
    if isinstance(error, ExportRequestError):
        return error.should_retry
    if not isinstance(error, Exception):
        # Cancellation and interpreter exits are never retried
        return False
    return retry_unknown_errors
