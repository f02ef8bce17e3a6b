#!/usr/bin/env python3
"""
Tests for the weread-export command line interface
"""

import json
from unittest.mock import patch

import pytest

from tests.test_utils.export_fakes import ScriptedClient, failing_bookmarks
from weread_export.cli import create_parser, main, order_like_input
from weread_export.models import ExportedBook


@pytest.fixture
def fake_client_factory():
    """Patch the CLI's client class with a scripted one and expose the instances."""
    created = []

    def install(respond=None):
        def factory(*args, **kwargs):
            client = ScriptedClient(respond)
            client.init_kwargs = kwargs
            created.append(client)
            return client

        return patch("weread_export.cli.WeReadClient", side_effect=factory)

    install.created = created
    return install


class TestCreateParser:
    """Test argument parsing."""

    def test_batch_arguments(self):
        """Test that batch options parse into the expected types."""
        args = create_parser().parse_args(
            ["batch", "--book-ids", "1,2", "--concurrency", "3", "--retry-schedule", "0,100", "--format", "csv"]
        )

        assert args.command == "batch"
        assert args.concurrency == 3
        assert args.retry_schedule == [0, 100]
        assert args.format == "csv"
        assert args.delay_ms is None
        assert args.retry_unknown_errors is None

    def test_invalid_schedule(self):
        """Test that malformed schedules are rejected by argparse."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["batch", "--retry-schedule", "1,-2"])

    def test_no_retry_unknown_errors_flag(self):
        """Test the flag that disables retrying unclassified errors."""
        args = create_parser().parse_args(["book", "b1", "--no-retry-unknown-errors"])
        assert args.retry_unknown_errors is False


class TestMain:
    """Test CLI command execution."""

    @pytest.mark.asyncio
    async def test_no_command_prints_help(self, capsys):
        """Test that no subcommand shows help and fails."""
        assert await main([]) == 1
        assert "usage:" in capsys.readouterr().out.lower()

    @pytest.mark.asyncio
    async def test_batch_writes_combined_export(self, tmp_path, fake_client_factory):
        """Test a successful batch export to JSON."""
        with fake_client_factory():
            exit_code = await main(
                [
                    "batch",
                    "--book-ids",
                    "2,1",
                    "--user-vid",
                    "42",
                    "--format",
                    "json",
                    "--delay-ms",
                    "0",
                    "--retry-schedule",
                    "0,0,0",
                    "--output-dir",
                    str(tmp_path),
                    "--quiet",
                ]
            )

        assert exit_code == 0
        data = json.loads((tmp_path / "weread-export.json").read_text(encoding="utf-8"))
        assert [book["bookId"] for book in data] == ["2", "1"]
        assert not (tmp_path / "failed_books.txt").exists()

    @pytest.mark.asyncio
    async def test_batch_partial_failure(self, tmp_path, fake_client_factory, capsys):
        """Test that successes are written and failures listed with exit code 1."""
        with fake_client_factory(failing_bookmarks("bad", 404)):
            exit_code = await main(
                [
                    "batch",
                    "--book-ids",
                    "good,bad",
                    "--user-vid",
                    "42",
                    "--delay-ms",
                    "0",
                    "--retry-schedule",
                    "0,0",
                    "--max-rounds",
                    "2",
                    "--output-dir",
                    str(tmp_path),
                    "--quiet",
                ]
            )

        assert exit_code == 1
        assert (tmp_path / "weread-export.md").read_text(encoding="utf-8").startswith("# Book good")
        assert (tmp_path / "failed_books.txt").read_text(encoding="utf-8") == "bad\n"
        assert "failed after 2 rounds" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_batch_requires_user_vid(self, tmp_path, fake_client_factory, capsys, monkeypatch):
        """Test that a missing user id is reported as an error."""
        monkeypatch.chdir(tmp_path)
        with fake_client_factory():
            exit_code = await main(["batch", "--book-ids", "1"])

        assert exit_code == 1
        assert "--user-vid is required" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_batch_requires_book_ids(self, capsys):
        """Test that batch needs ids."""
        assert await main(["batch", "--user-vid", "42"]) == 1
        assert "--book-ids" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_batch_uses_config_file_and_env_cookie(self, tmp_path, fake_client_factory, monkeypatch):
        """Test that config values and the cookie environment variable are applied."""
        config_path = tmp_path / "config.json"
        config_path.write_text(
            json.dumps({"user_vid": "42", "delay_ms": 0, "retry_schedule": [0, 0], "format": "csv"}),
            encoding="utf-8",
        )
        monkeypatch.setenv("WEREAD_COOKIE", "wr_skey=env")

        with fake_client_factory():
            exit_code = await main(
                ["batch", "--book-ids", "1", "--config", str(config_path), "--output-dir", str(tmp_path), "--quiet"]
            )

        assert exit_code == 0
        assert (tmp_path / "weread-export.csv").exists()
        assert fake_client_factory.created[0].init_kwargs["cookie"] == "wr_skey=env"
        assert any(url.endswith("userVid=42") for url in fake_client_factory.created[0].calls)

    @pytest.mark.asyncio
    async def test_batch_save_config_round_trips(self, tmp_path, fake_client_factory):
        """Test that --save-config writes settings a later --config run can reuse."""
        saved = tmp_path / "weread.json"
        with fake_client_factory():
            exit_code = await main(
                [
                    "batch",
                    "--book-ids",
                    "1",
                    "--user-vid",
                    "42",
                    "--cookie",
                    "wr_skey=secret",
                    "--delay-ms",
                    "0",
                    "--retry-schedule",
                    "0,0",
                    "--output-dir",
                    str(tmp_path),
                    "--save-config",
                    str(saved),
                    "--quiet",
                ]
            )

        assert exit_code == 0
        data = json.loads(saved.read_text(encoding="utf-8"))
        assert data["user_vid"] == "42"
        assert data["delay_ms"] == 0
        assert data["retry_schedule"] == [0, 0]
        assert "cookie" not in data

        with fake_client_factory():
            assert await main(["batch", "--book-ids", "2", "--config", str(saved), "--quiet"]) == 0
        assert (tmp_path / "weread-export.md").read_text(encoding="utf-8").startswith("# Book 2")

    @pytest.mark.asyncio
    async def test_book_writes_markdown_file(self, tmp_path, fake_client_factory):
        """Test exporting one book to a file."""
        with fake_client_factory():
            exit_code = await main(
                ["book", "b1", "--user-vid", "42", "--retry-delays", "0", "--output-dir", str(tmp_path)]
            )

        assert exit_code == 0
        assert (tmp_path / "Book b1.md").read_text(encoding="utf-8").startswith("![Book b1 封面]")

    @pytest.mark.asyncio
    async def test_book_to_stdout(self, fake_client_factory, capsys):
        """Test that --clipboard prints only the markdown."""
        with fake_client_factory():
            exit_code = await main(["book", "b1", "--user-vid", "42", "--clipboard"])

        assert exit_code == 0
        assert capsys.readouterr().out.startswith("![Book b1 封面]")

    @pytest.mark.asyncio
    async def test_book_failure(self, tmp_path, fake_client_factory, capsys):
        """Test that a failed single-book export exits with 1."""
        with fake_client_factory(failing_bookmarks("b1", 404)):
            exit_code = await main(["book", "b1", "--user-vid", "42", "--output-dir", str(tmp_path)])

        assert exit_code == 1
        assert "status 404" in capsys.readouterr().err


def test_order_like_input():
    """Test that exported books are sorted into request order."""
    books = [ExportedBook(book_id=book_id, title=book_id, markdown="") for book_id in ["c", "a", "b"]]

    assert [book.book_id for book in order_like_input(books, ["a", "b", "c"])] == ["a", "b", "c"]
