"""
Path resolution: normalization, sandboxing below the root, mount prefixes.
"""

from __future__ import annotations

import itertools
import os

import pytest

from autoindex.errors import AmbiguousPathError, PathEscapeError
from autoindex.paths import PathResolver, normalize_path


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("/", "/"),
        ("", "/"),
        ("//a///b//", "/a/b"),
        ("/a/./b/", "/a/b"),
        ("/a/b/../c", "/a/c"),
        ("/../..", "/"),
        ("a/b/", "/a/b"),
    ],
)
def test_normalize_path(raw: str, expected: str) -> None:
    assert normalize_path(raw) == expected


def test_resolve_root_without_mount(tmp_path) -> None:
    resolver = PathResolver(str(tmp_path))
    resolved = resolver.resolve("/")
    assert resolved.filesystem_path == str(tmp_path)
    assert resolved.normalized_path == "/"
    assert resolved.title == "/"
    assert resolved.segments == ()


def test_resolve_nested_path(tmp_path) -> None:
    resolver = PathResolver(str(tmp_path))
    resolved = resolver.resolve("//docs/./api//v1/")
    assert resolved.filesystem_path == os.path.join(str(tmp_path), "docs", "api", "v1")
    assert resolved.normalized_path == "/docs/api/v1"
    assert resolved.title == "/docs/api/v1/"


def test_resolve_under_mount(tmp_path) -> None:
    resolver = PathResolver(str(tmp_path), "/public")
    resolved = resolver.resolve("/public/docs/")
    assert resolved.filesystem_path == os.path.join(str(tmp_path), "docs")
    assert resolved.normalized_path == "/public/docs"
    assert resolved.title == "/docs/"

    mount_root = resolver.resolve("/public/")
    assert mount_root.filesystem_path == str(tmp_path)
    assert mount_root.normalized_path == "/public"
    assert mount_root.title == "/"


def test_mount_without_trailing_slash_is_ambiguous(tmp_path) -> None:
    resolver = PathResolver(str(tmp_path), "/public")
    with pytest.raises(AmbiguousPathError):
        resolver.resolve("/public")


@pytest.mark.parametrize("path", ["/public/../secret", "/../secret", "/publicity/x", "/other/"])
def test_paths_outside_mount_are_rejected(tmp_path, path: str) -> None:
    resolver = PathResolver(str(tmp_path), "/public")
    with pytest.raises(PathEscapeError):
        resolver.resolve(path)


@pytest.mark.parametrize("path", ["/../etc/passwd", "/a/../../etc/passwd", "/..", "/a/\x00b"])
def test_escaping_paths_are_rejected(tmp_path, path: str) -> None:
    resolver = PathResolver(str(tmp_path))
    with pytest.raises(PathEscapeError):
        resolver.resolve(path)


def test_dotdot_inside_the_tree_is_resolved(tmp_path) -> None:
    resolver = PathResolver(str(tmp_path))
    resolved = resolver.resolve("/a/b/../../c")
    assert resolved.filesystem_path == os.path.join(str(tmp_path), "c")


@pytest.mark.parametrize("mount", [None, "/public", "/a/b"])
def test_resolution_never_leaves_root(tmp_path, mount) -> None:
    """Every combination of hostile segments either fails or stays below the root."""
    root = str(tmp_path)
    resolver = PathResolver(root, mount)
    pieces = ["..", ".", "", "a", "etc", "passwd", "...", "a..b", "public", "b"]

    for length in range(1, 5):
        for combo in itertools.product(pieces, repeat=length):
            path = (mount or "") + "/" + "/".join(combo)
            try:
                resolved = resolver.resolve(path)
            except (PathEscapeError, AmbiguousPathError):
                continue
            assert os.path.commonpath([root, resolved.filesystem_path]) == root
            assert ".." not in resolved.filesystem_path.split(os.sep)


def test_hrefs_include_mount(tmp_path) -> None:
    resolver = PathResolver(str(tmp_path), "/files")
    assert resolver.href_for("/docs/", "a.txt") == "/files/docs/a.txt"
    assert resolver.parent_href(("docs", "api")) == "/files/docs/"
    assert resolver.parent_href(("docs",)) == "/files/"
    assert resolver.parent_href(()) is None


def test_root_mount_is_no_mount(tmp_path) -> None:
    resolver = PathResolver(str(tmp_path), "/")
    assert resolver.mount_prefix is None
    assert resolver.resolve("/x").normalized_path == "/x"


@pytest.mark.parametrize(
    "path", ["//public/docs/", "/public//docs", "/public/../public/docs", "/./public/x/../docs/"]
)
def test_whole_path_is_normalized_before_mount_is_stripped(tmp_path, path: str) -> None:
    resolver = PathResolver(str(tmp_path), "/public")
    resolved = resolver.resolve(path)
    assert resolved.filesystem_path == os.path.join(str(tmp_path), "docs")
    assert resolved.normalized_path == "/public/docs"
    assert resolved.title == "/docs/"


def test_mount_reached_through_dotdot_is_still_ambiguous(tmp_path) -> None:
    resolver = PathResolver(str(tmp_path), "/public")
    assert resolver.resolve("//public/").title == "/"
    with pytest.raises(AmbiguousPathError):
        resolver.resolve("/public/docs/..")


def test_nested_mount_must_match_whole_segments(tmp_path) -> None:
    resolver = PathResolver(str(tmp_path), "/a/b")
    assert resolver.resolve("/a/./b/c").segments == ("c",)
    with pytest.raises(PathEscapeError):
        resolver.resolve("/a/bc/d")
    with pytest.raises(PathEscapeError):
        resolver.resolve("/a/b/../../../b/c")
