"""Tests for text utility functions."""

from __future__ import annotations

import pytest

from notefinder.utils.text import fold_newlines, remove_markdown, truncate_string


class TestFoldNewlines:
    def test_fold_unix_and_windows_newlines(self) -> None:
        assert fold_newlines("a\nb\r\nc") == "a b c"

    def test_text_without_newlines_unchanged(self) -> None:
        assert fold_newlines("plain text") == "plain text"


class TestRemoveMarkdown:
    """Test remove_markdown function."""

    @pytest.mark.parametrize(
        ("markdown", "expected"),
        [
            ("**bold** and *italic*", "bold and italic"),
            ("## Heading", "Heading"),
            ("see [the docs](https://example.com)", "see the docs"),
            ("run `make test` now", "run make test now"),
            ("~~old~~ new", "old new"),
            ("> quoted line", "quoted line"),
            ("- first item", "first item"),
            ("link to [[Other Note]]", "link to Other Note"),
            ("![diagram](img.png)", ""),
        ],
    )
    def test_strips_syntax(self, markdown: str, expected: str) -> None:
        assert remove_markdown(markdown) == expected

    def test_plain_text_unchanged(self) -> None:
        assert remove_markdown("Nothing special here.") == "Nothing special here."


class TestTruncateString:
    def test_short_text_unchanged(self) -> None:
        assert truncate_string("hello", 10) == "hello"

    def test_exact_length_unchanged(self) -> None:
        assert truncate_string("hello", 5) == "hello"

    def test_long_text_gets_ellipsis(self) -> None:
        assert truncate_string("hello world", 5) == "hello..."
