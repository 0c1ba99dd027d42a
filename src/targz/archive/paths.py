"""Path and existence helpers shared by the archiver and the extractor."""

from __future__ import annotations

import os
import posixpath
import stat


def exists(path: str | os.PathLike[str]) -> bool:
    """Return True if a stat of path succeeds."""
    try:
        os.stat(path)
    except (OSError, ValueError):
        return False
    return True


def file_exists(path: str | os.PathLike[str]) -> bool:
    """Return True if path exists and is not a directory."""
    try:
        st = os.stat(path)
    except (OSError, ValueError):
        return False
    return not stat.S_ISDIR(st.st_mode)


def clean(path: str | os.PathLike[str]) -> str:
    """Remove redundant separators and '.' segments."""
    return os.path.normpath(os.fspath(path))


def with_separator(path: str) -> str:
    if path.endswith(os.sep):
        return path
    return path + os.sep


def to_slash(path: str) -> str:
    """Return path with host separators replaced by '/'."""
    if os.sep != "/":
        path = path.replace(os.sep, "/")
    if os.altsep and os.altsep != "/":
        path = path.replace(os.altsep, "/")
    return path


def from_slash(path: str) -> str:
    if os.sep == "/":
        return path
    return path.replace("/", os.sep)


def is_contained(name: str) -> bool:
    """Return True if the archive name stays under the destination root.

    Absolute names and names whose '..' segments climb above the root are
    rejected.
    """
    norm = to_slash(name)
    if norm.startswith("/") or posixpath.isabs(norm) or os.path.isabs(from_slash(norm)):
        return False
    if os.path.splitdrive(from_slash(norm))[0]:
        return False
    joined = posixpath.normpath(posixpath.join("root", norm))
    return joined == "root" or joined.startswith("root/")
