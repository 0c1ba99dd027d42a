"""Archive types.

ArchiveEntry is the transient view of one tar header; the enums select the
traversal behavior of the archiver.
"""

from __future__ import annotations

import stat
import tarfile
from dataclasses import dataclass, field
from enum import StrEnum


class EntryOrder(StrEnum):
    """Where a directory header goes relative to its descendants."""

    CHILDREN_FIRST = "children_first"
    PARENT_FIRST = "parent_first"


class TraversalErrorPolicy(StrEnum):
    """What a failure inside a subdirectory does to the traversal."""

    PROPAGATE = "propagate"
    TOLERATE = "tolerate"


@dataclass(frozen=True)
class ArchiveEntry:
    name: str  # slash-separated, relative to the archive root
    is_dir: bool
    mode: int  # permission bits only
    size: int
    mtime: float
    is_file: bool = True

    @classmethod
    def from_tarinfo(cls, info: tarfile.TarInfo) -> ArchiveEntry:
        return cls(
            name=info.name,
            is_dir=info.isdir(),
            mode=stat.S_IMODE(info.mode),
            size=0 if info.isdir() else int(info.size),
            mtime=float(info.mtime),
            is_file=info.isfile(),
        )


@dataclass(frozen=True)
class PackResult:
    src: str
    dest: str
    files_packed: int
    dirs_packed: int
    total_bytes: int
    skipped: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class UnpackResult:
    src: str
    dst_dir: str
    files_unpacked: int
    dirs_unpacked: int
    total_bytes: int
    warnings: list[str] = field(default_factory=list)
