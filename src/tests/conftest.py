"""Shared test configuration utilities and fixtures."""

import logging

import pytest

from tests.test_utils.export_fakes import (
    ScriptedClient,
    bookmark_payload,
    progress_payload,
    review_payload,
)
from weread_export.models import BookPayloads


@pytest.fixture
def sample_payloads() -> BookPayloads:
    """The three payloads of one book with two highlights and one thought."""
    return BookPayloads(bookmarks=bookmark_payload(), reviews=review_payload(), progress=progress_payload())


@pytest.fixture
def scripted_client():
    """Client answering every endpoint with the sample payloads."""
    return ScriptedClient()


@pytest.fixture(autouse=True)
def isolated_logging(tmp_path, monkeypatch):
    """Keep log files out of the working tree and restore root handlers afterwards."""
    monkeypatch.setenv("WEREAD_LOG_DIR", str(tmp_path / "logs"))
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
