"""Tests for shared helpers."""

import pytest

from weread_export.common import (
    dedupe_preserving_order,
    format_duration,
    parse_book_id_arguments,
    parse_int_list,
    pluralize,
    read_book_ids_from_file,
    validate_and_parse_book_ids,
)


def test_pluralize():
    assert pluralize(1, "book") == "book"
    assert pluralize(0, "book") == "books"
    assert pluralize(3, "round") == "rounds"


@pytest.mark.parametrize(
    "seconds,expected",
    [(0.25, "250ms"), (1.5, "1.5s"), (150, "2m 30s"), (4500, "1h 15m")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


class TestParseIntList:
    def test_parses_values(self):
        assert parse_int_list("0, 2000,5000") == [0, 2000, 5000]

    def test_empty(self):
        assert parse_int_list("") == []
        assert parse_int_list(" ") == []

    def test_rejects_negative(self):
        with pytest.raises(ValueError, match="non-negative"):
            parse_int_list("100,-1")

    def test_rejects_non_integer(self):
        with pytest.raises(ValueError, match="not an integer"):
            parse_int_list("1,abc")


class TestBookIds:
    def test_validate_and_parse(self):
        assert validate_and_parse_book_ids(" 1, 2,,3 ,1") == ["1", "2", "3"]

    def test_empty_string(self):
        with pytest.raises(ValueError):
            validate_and_parse_book_ids("  ")

    def test_whitespace_inside_id(self):
        with pytest.raises(ValueError, match="whitespace"):
            validate_and_parse_book_ids("12 34")

    def test_dedupe_preserving_order(self):
        assert dedupe_preserving_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]

    def test_read_from_file(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("# my books\n3300064831\n\n695233\n3300064831\n", encoding="utf-8")

        assert read_book_ids_from_file(str(path)) == ["3300064831", "695233"]

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_book_ids_from_file(str(tmp_path / "nope.txt"))

    def test_read_file_without_ids(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("# nothing\n\n", encoding="utf-8")

        with pytest.raises(ValueError, match="No valid book ids"):
            read_book_ids_from_file(str(path))

    def test_parse_arguments_exclusive(self, tmp_path):
        with pytest.raises(ValueError, match="Cannot specify both"):
            parse_book_id_arguments("1", str(tmp_path / "ids.txt"))

    def test_parse_arguments_none(self):
        assert parse_book_id_arguments(None, None) is None
        assert parse_book_id_arguments("  ", None) is None
