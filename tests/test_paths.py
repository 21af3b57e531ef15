"""Tests for path resolution helpers."""

import pytest

from core.paths import basename, is_within, join, parent_of, resolve, segments


class TestResolve:
    """Tests for resolve()."""

    @pytest.mark.parametrize(
        "path,cwd,expected",
        [
            ("a", "/", "/a"),
            ("a/b", "/x", "/x/a/b"),
            ("../b", "/a/c", "/a/b"),
            ("./b/", "/a", "/a/b"),
            ("/x/./y/", "/a", "/x/y"),
            ("/a//b", "/", "/a/b"),
            ("", "/a/b", "/a/b"),
            ("..", "/", "/"),
            ("../../..", "/a", "/"),
            ("/", "/a/b", "/"),
        ],
    )
    def test_resolve(self, path, cwd, expected):
        """Should normalize against the working directory."""
        assert resolve(path, cwd) == expected

    @pytest.mark.parametrize("path", ["a/", "a/b//", "/a/b/", "./x/./", "../y/"])
    def test_never_trailing_slash(self, path):
        """Non-root results never end in a slash."""
        result = resolve(path, "/w")
        assert result.startswith("/")
        assert not result.endswith("/")


class TestHelpers:
    """Tests for the small path helpers."""

    def test_parent_of(self):
        assert parent_of("/a") == "/"
        assert parent_of("/a/b") == "/a"

    def test_basename(self):
        assert basename("/a/b.txt") == "b.txt"
        assert basename("/a") == "a"

    def test_join(self):
        assert join("/", "a") == "/a"
        assert join("/a", "b") == "/a/b"

    def test_segments(self):
        assert segments("/") == []
        assert segments("/a/b") == ["a", "b"]

    def test_is_within(self):
        """Should match the path itself and descendants only."""
        assert is_within("/a", "/a")
        assert is_within("/a/b", "/a")
        assert not is_within("/ab", "/a")
        assert is_within("/anything", "/")
