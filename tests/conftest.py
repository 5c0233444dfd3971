"""
pytest configuration and shared fixtures.

The ``tree`` fixture builds this layout under a temporary directory, with
fixed modification times:

    root/
        a.txt       "hello"
        b/
            c.txt   "nested"
        .hidden
        skip.log
    secret          (outside root)
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from autoindex.config import MountConfig, RenderOptions
from autoindex.engine import IndexEngine

MTIME = 1700000000  # 2023-11-14T22:13:20Z, a Tuesday


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    root = tmp_path / "root"
    root.mkdir()
    (root / "a.txt").write_bytes(b"hello")
    (root / "b").mkdir()
    (root / "b" / "c.txt").write_bytes(b"nested")
    (root / ".hidden").write_bytes(b"")
    (root / "skip.log").write_bytes(b"log")
    (tmp_path / "secret").write_bytes(b"top secret")

    for path in (root / "a.txt", root / "b" / "c.txt", root / ".hidden", root / "skip.log", root / "b"):
        os.utime(path, (MTIME, MTIME))
    return root


@pytest.fixture
def make_engine(tree: Path):
    """Factory: make_engine(mount=None, cache=None, **render_options) -> IndexEngine."""

    def _make(mount=None, cache=None, **options):
        return IndexEngine(MountConfig.create(str(tree), mount), RenderOptions.create(**options), cache=cache)

    return _make


@pytest.fixture
def request_path():
    """Run one request through an engine synchronously."""

    def _request(engine, path, method="GET"):
        return asyncio.run(engine.handle(method, path))

    return _request


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
