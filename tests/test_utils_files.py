"""Tests for file utility functions."""

from __future__ import annotations

from pathlib import Path

import pytest

from notefinder.utils.files import iter_markdown_paths, normalize_path


class TestIterMarkdownPaths:
    """Test iter_markdown_paths function."""

    def test_finds_markdown_in_nested_directories(self, tmp_path: Path) -> None:
        subdir = tmp_path / "subdir"
        subdir.mkdir()
        (tmp_path / "root.md").write_text("root")
        (subdir / "nested.markdown").write_text("nested")
        (subdir / "file.txt").write_text("text")

        paths = list(iter_markdown_paths(tmp_path))

        assert {p.name for p in paths} == {"root.md", "nested.markdown"}

    def test_case_insensitive_extension(self, tmp_path: Path) -> None:
        (tmp_path / "lower.md").write_text("a")
        (tmp_path / "upper.MD").write_text("b")

        assert len(list(iter_markdown_paths(tmp_path))) == 2

    def test_hidden_directories_are_skipped(self, tmp_path: Path) -> None:
        hidden = tmp_path / ".obsidian"
        hidden.mkdir()
        (hidden / "workspace.md").write_text("config")
        (tmp_path / "note.md").write_text("note")

        assert [p.name for p in iter_markdown_paths(tmp_path)] == ["note.md"]

    def test_results_are_sorted(self, tmp_path: Path) -> None:
        for name in ("c.md", "a.md", "b.md"):
            (tmp_path / name).write_text(name)

        assert [p.name for p in iter_markdown_paths(tmp_path)] == ["a.md", "b.md", "c.md"]

    def test_custom_suffixes(self, tmp_path: Path) -> None:
        (tmp_path / "a.md").write_text("a")
        (tmp_path / "b.txt").write_text("b")

        assert [p.name for p in iter_markdown_paths(tmp_path, (".txt",))] == ["b.txt"]

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert list(iter_markdown_paths(tmp_path)) == []


class TestNormalizePath:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("notes/a.md", "notes/a.md"),
            ("./notes//a.md", "notes/a.md"),
            ("notes\\sub\\a.md", "notes/sub/a.md"),
            ("blog/../a.md", "a.md"),
            ("blog/", "blog"),
        ],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        assert normalize_path(raw) == expected
