"""Tests for path and existence helpers."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from targz.archive.paths import (
    clean,
    exists,
    file_exists,
    is_contained,
    to_slash,
    with_separator,
)


def test_exists_and_file_exists(tmp_path: Path) -> None:
    f = tmp_path / "f.txt"
    f.write_text("x")
    d = tmp_path / "dir"
    d.mkdir()
    missing = tmp_path / "missing"

    assert exists(f) and file_exists(f)
    assert exists(d) and not file_exists(d)
    assert not exists(missing) and not file_exists(missing)


def test_clean_removes_redundant_segments() -> None:
    assert clean(os.path.join("a", ".", "b", "")) == os.path.join("a", "b")
    assert clean("a" + os.sep + os.sep + "b") == os.path.join("a", "b")


def test_with_separator_is_idempotent() -> None:
    assert with_separator("a") == "a" + os.sep
    assert with_separator("a" + os.sep) == "a" + os.sep


def test_to_slash() -> None:
    assert to_slash(os.path.join("a", "b", "c.txt")) == "a/b/c.txt"
    assert to_slash(os.path.join("a", "b", "")) == "a/b/"


@pytest.mark.parametrize(
    "name, ok",
    [
        ("x.txt", True),
        ("a/b/c.txt", True),
        ("a/../b.txt", True),
        (".", True),
        ("../x.txt", False),
        ("a/../../x.txt", False),
        ("/etc/passwd", False),
    ],
)
def test_is_contained(name: str, ok: bool) -> None:
    assert is_contained(name) is ok
