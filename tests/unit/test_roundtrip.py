"""Pack then unpack: the extracted tree mirrors the source tree."""

from __future__ import annotations

import os
import stat
import sys
from pathlib import Path

import pytest

from targz import EntryOrder, pack, unpack


def _snapshot(root: Path) -> dict[str, bytes | None]:
    """Map relative posix path -> file bytes, or None for directories."""
    out: dict[str, bytes | None] = {}
    for p in sorted(root.rglob("*")):
        rel = p.relative_to(root).as_posix()
        out[rel] = None if p.is_dir() else p.read_bytes()
    return out


def test_directory_scenario(tmp_path: Path) -> None:
    src = tmp_path / "a"
    (src / "b").mkdir(parents=True)
    (src / "x.txt").write_text("hi")
    archive = tmp_path / "out.tar.gz"
    dst = tmp_path / "d"

    pack(src, archive, True)
    unpack(archive, dst)

    assert (dst / "x.txt").read_text() == "hi"
    assert (dst / "b").is_dir()
    assert _snapshot(dst) == {"b": None, "x.txt": b"hi"}


def test_single_file_scenario(tmp_path: Path) -> None:
    src = tmp_path / "f.txt"
    src.write_text("data")
    archive = tmp_path / "out.tar.gz"
    dst = tmp_path / "d"

    pack(src, archive, True)
    result = unpack(archive, dst)

    assert _snapshot(dst) == {"f.txt": b"data"}
    assert result.files_unpacked == 1


@pytest.mark.parametrize("order", list(EntryOrder))
def test_nested_tree_round_trip(sample_tree: Path, tmp_path: Path, order: EntryOrder) -> None:
    archive = tmp_path / "out.tar.gz"
    dst = tmp_path / "d"

    pack(sample_tree, archive, order=order)
    unpack(archive, dst)

    assert _snapshot(dst) == _snapshot(sample_tree)


def test_unpack_twice_is_idempotent(sample_tree: Path, tmp_path: Path) -> None:
    archive = tmp_path / "out.tar.gz"
    dst = tmp_path / "d"
    pack(sample_tree, archive)

    unpack(archive, dst)
    first = _snapshot(dst)
    unpack(archive, dst)

    assert _snapshot(dst) == first


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_permission_bits_survive(tmp_path: Path) -> None:
    src = tmp_path / "src"
    (src / "locked").mkdir(parents=True)
    (src / "locked" / "ro.txt").write_text("read only")
    (src / "tool.sh").write_text("#!/bin/sh\n")
    os.chmod(src / "tool.sh", 0o750)
    os.chmod(src / "locked" / "ro.txt", 0o444)
    os.chmod(src / "locked", 0o555)
    archive = tmp_path / "out.tar.gz"
    dst = tmp_path / "d"

    try:
        pack(src, archive)
        unpack(archive, dst)

        assert stat.S_IMODE(os.stat(dst / "tool.sh").st_mode) == 0o750
        assert stat.S_IMODE(os.stat(dst / "locked" / "ro.txt").st_mode) == 0o444
        assert stat.S_IMODE(os.stat(dst / "locked").st_mode) == 0o555
        assert (dst / "locked" / "ro.txt").read_text() == "read only"
    finally:
        os.chmod(src / "locked", 0o755)
        if (dst / "locked").exists():
            os.chmod(dst / "locked", 0o755)


def _locked_tree(root: Path) -> Path:
    src = root / "src"
    (src / "locked").mkdir(parents=True)
    (src / "locked" / "ro.txt").write_text("read only")
    (src / "open.txt").write_text("open")
    os.chmod(src / "locked" / "ro.txt", 0o444)
    os.chmod(src / "locked", 0o555)
    return src


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
@pytest.mark.skipif(
    hasattr(os, "geteuid") and os.geteuid() == 0, reason="root ignores directory permissions"
)
@pytest.mark.parametrize("order", [EntryOrder.CHILDREN_FIRST, EntryOrder.PARENT_FIRST])
def test_unpack_twice_with_read_only_directory(tmp_path: Path, order: EntryOrder) -> None:
    src = _locked_tree(tmp_path)
    archive = tmp_path / "out.tar.gz"
    dst = tmp_path / "d"

    try:
        pack(src, archive, order=order)
        unpack(archive, dst)
        first = _snapshot(dst)
        unpack(archive, dst)

        assert _snapshot(dst) == first
        assert stat.S_IMODE(os.stat(dst / "locked").st_mode) == 0o555
    finally:
        os.chmod(src / "locked", 0o755)
        if (dst / "locked").exists():
            os.chmod(dst / "locked", 0o755)


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_read_only_directory_mode_restored_after_its_content(tmp_path: Path) -> None:
    src = _locked_tree(tmp_path)
    archive = tmp_path / "out.tar.gz"
    dst = tmp_path / "d"

    try:
        pack(src, archive, order=EntryOrder.PARENT_FIRST)
        unpack(archive, dst)
        unpack(archive, dst)

        assert stat.S_IMODE(os.stat(dst / "locked").st_mode) == 0o555
        assert (dst / "locked" / "ro.txt").read_text() == "read only"
    finally:
        os.chmod(src / "locked", 0o755)
        if (dst / "locked").exists():
            os.chmod(dst / "locked", 0o755)
