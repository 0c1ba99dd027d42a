"""Extractor: replay a .tar.gz archive into a destination directory.

The archive is read forward-only (tar stream mode over a gzip stream), so
entries are visited exactly once in archive order. Extraction does not rely on
that order: parents of every file are created on demand with a permissive
mode, and recorded permissions are applied afterwards on a best-effort basis.
"""

from __future__ import annotations

import contextlib
import gzip
import os
import shutil
import stat
import tarfile
import zlib
from collections.abc import Callable, Iterator

from targz.core.errors import (
    ArchiveIOError,
    CorruptContainerError,
    NotFoundError,
    TargzError,
    UnsafeEntryError,
)
from targz.core.events import observe_operation
from targz.core.logging import get_logger

from .paths import clean, exists, from_slash, is_contained, with_separator
from .types import ArchiveEntry, UnpackResult

log = get_logger(__name__)

WarningCallback = Callable[[str], None]

DEFAULT_DIR_MODE = 0o777


def iter_entries(tr: tarfile.TarFile) -> Iterator[tuple[ArchiveEntry, tarfile.TarInfo]]:
    """Yield entries until the end-of-archive marker.

    The sequence is lazy and cannot be restarted; the TarInfo is needed to
    read the content of the current entry.
    """
    while True:
        member = tr.next()
        if member is None:
            return
        yield ArchiveEntry.from_tarinfo(member), member


def _prepare_parent(target: str, unlocked: dict[str, int]) -> None:
    """Create the parent of target and make sure its entries can be replaced.

    A directory restored read-only by an earlier extraction gets owner write
    permission back until its own header, or the end of the run, restores it.
    """
    parent = os.path.dirname(target)
    os.makedirs(parent, DEFAULT_DIR_MODE, exist_ok=True)
    mode = stat.S_IMODE(os.stat(parent).st_mode)
    if mode & stat.S_IWUSR:
        return
    os.chmod(parent, mode | stat.S_IWUSR)
    unlocked.setdefault(os.path.normpath(parent), mode)


def _remove_existing(dst_file: str) -> None:
    # A read-only file from an earlier extraction cannot be reopened for writing.
    if os.path.islink(dst_file) or os.path.isfile(dst_file):
        os.remove(dst_file)


def _untar_file(dst_file: str, tr: tarfile.TarFile, member: tarfile.TarInfo) -> None:
    """Create dst_file fresh and copy the current entry's content into it."""
    src = tr.extractfile(member)
    if src is None:
        raise CorruptContainerError(dst_file, f"no content stream for {member.name!r}")

    _remove_existing(dst_file)
    with contextlib.closing(src), open(dst_file, "wb") as fw:
        shutil.copyfileobj(src, fw)


def _link_file(dst_file: str, link_target: str, archive: str, member: tarfile.TarInfo) -> None:
    """Materialize a hard-link entry as a copy of the file it points to.

    The target must have been extracted earlier in the same archive.
    """
    if not os.path.isfile(link_target):
        raise CorruptContainerError(
            archive, f"hard link {member.name!r} points to missing {member.linkname!r}"
        )
    _remove_existing(dst_file)
    shutil.copyfile(link_target, dst_file)


class Extractor:
    """Extract gzip-compressed tar archives."""

    def __init__(self, *, on_warning: WarningCallback | None = None) -> None:
        self._on_warning = on_warning

    def unpack(
        self, archive_path: str | os.PathLike[str], dst_dir: str | os.PathLike[str]
    ) -> UnpackResult:
        """Extract archive_path under dst_dir.

        Raises:
            NotFoundError: archive_path does not exist
            CorruptContainerError: gzip or tar data could not be decoded
            UnsafeEntryError: an entry would land outside dst_dir
            ArchiveIOError: any filesystem failure

        Entries extracted before a failure are left in place.
        """
        src = clean(archive_path)
        dst_root = with_separator(clean(dst_dir))
        base = {"src": src, "dst_dir": dst_root}
        with observe_operation(operation="targz.unpack", base=base) as summary:
            try:
                result = self._unpack(src, dst_root)
            except TargzError:
                raise
            except (tarfile.TarError, EOFError, zlib.error, gzip.BadGzipFile) as e:
                raise CorruptContainerError(src, str(e) or type(e).__name__) from e
            except OSError as e:
                raise ArchiveIOError(f"Unpacking '{src}' into '{dst_root}' failed: {e}") from e
            summary.update(
                {
                    "files_count": result.files_unpacked,
                    "dirs_count": result.dirs_unpacked,
                    "bytes": result.total_bytes,
                }
            )
        return result

    def _unpack(self, src: str, dst_root: str) -> UnpackResult:
        if not exists(src):
            raise NotFoundError(src, what="Archive")

        files = 0
        dirs = 0
        total = 0
        warnings: list[str] = []
        # Directories made writable to replace their content, with the mode to restore.
        unlocked: dict[str, int] = {}

        try:
            with (
                open(src, "rb") as fr,
                gzip.GzipFile(fileobj=fr, mode="rb") as gr,
                tarfile.open(fileobj=gr, mode="r|") as tr,
            ):
                for entry, member in iter_entries(tr):
                    if not is_contained(entry.name):
                        raise UnsafeEntryError(src, entry.name)

                    target = dst_root + from_slash(entry.name)

                    if entry.is_dir:
                        os.makedirs(target, DEFAULT_DIR_MODE, exist_ok=True)
                        self._chmod(target, entry.mode, warnings)
                        unlocked.pop(os.path.normpath(target), None)
                        dirs += 1
                        log.verbose(f"mkdir {entry.name}")
                    elif entry.is_file:
                        _prepare_parent(target, unlocked)
                        _untar_file(target, tr, member)
                        self._chmod(target, entry.mode, warnings)
                        files += 1
                        total += entry.size
                        log.verbose(f"extract {entry.name} size={entry.size}")
                    elif member.islnk():
                        if not is_contained(member.linkname):
                            raise UnsafeEntryError(src, member.linkname)
                        _prepare_parent(target, unlocked)
                        _link_file(target, dst_root + from_slash(member.linkname), src, member)
                        self._chmod(target, entry.mode, warnings)
                        files += 1
                        log.verbose(f"link {entry.name} -> {member.linkname}")
                    else:
                        self._warn(
                            f"skipping {entry.name!r}: unsupported entry type {member.type!r}",
                            warnings,
                        )
        finally:
            for path, mode in unlocked.items():
                self._chmod(path, mode, warnings)

        return UnpackResult(
            src=src,
            dst_dir=dst_root,
            files_unpacked=files,
            dirs_unpacked=dirs,
            total_bytes=total,
            warnings=warnings,
        )

    def _chmod(self, path: str, mode: int, warnings: list[str]) -> None:
        # Permissions are advisory: a failure is reported, never raised.
        try:
            os.chmod(path, mode)
        except OSError as e:
            self._warn(f"chmod {oct(mode)} failed for {path!r}: {e}", warnings)

    def _warn(self, message: str, warnings: list[str]) -> None:
        log.warning(message)
        warnings.append(message)
        if self._on_warning is not None:
            self._on_warning(message)


def unpack(
    archive_path: str | os.PathLike[str],
    dst_dir: str | os.PathLike[str],
    *,
    on_warning: WarningCallback | None = None,
) -> UnpackResult:
    """Extract the gzip-compressed tar archive archive_path under dst_dir."""
    return Extractor(on_warning=on_warning).unpack(archive_path, dst_dir)
