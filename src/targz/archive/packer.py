"""Archiver: pack a file or directory tree into a .tar.gz file.

The output is built as three nested layers (file, gzip, tar). Directory
sources are walked depth-first with names relative to the source root; the
root itself never receives a header.

With EntryOrder.CHILDREN_FIRST a directory header is written after all of its
descendants, which is the layout of archives produced by earlier releases.
"""

from __future__ import annotations

import contextlib
import gzip
import os
import stat
import tarfile
from dataclasses import dataclass, field
from typing import BinaryIO

from targz.core.config import ConfigResolver
from targz.core.errors import (
    AlreadyExistsError,
    ArchiveIOError,
    NotFoundError,
    PartialWriteError,
    TargzError,
)
from targz.core.events import observe_operation
from targz.core.logging import get_logger

from .paths import clean, exists, file_exists, to_slash, with_separator
from .types import EntryOrder, PackResult, TraversalErrorPolicy

log = get_logger(__name__)


@dataclass
class _PackState:
    dest: str = ""
    dest_id: tuple[int, int] | None = None
    files: int = 0
    dirs: int = 0
    total_bytes: int = 0
    skipped: list[str] = field(default_factory=list)


def tarinfo_from_stat(st: os.stat_result, arcname: str, full_path: str) -> tarfile.TarInfo | None:
    """Map file info to a tar header.

    Returns None for file types tar cannot represent (sockets).
    """
    ti = tarfile.TarInfo(name=arcname)
    ti.mode = stat.S_IMODE(st.st_mode)
    ti.uid = st.st_uid
    ti.gid = st.st_gid
    ti.mtime = int(st.st_mtime)
    mode = st.st_mode
    if stat.S_ISREG(mode):
        ti.type = tarfile.REGTYPE
        ti.size = st.st_size
    elif stat.S_ISDIR(mode):
        ti.type = tarfile.DIRTYPE
        if not ti.name.endswith("/"):
            ti.name += "/"
    elif stat.S_ISLNK(mode):
        ti.type = tarfile.SYMTYPE
        ti.linkname = os.readlink(full_path)
    elif stat.S_ISFIFO(mode):
        ti.type = tarfile.FIFOTYPE
    elif stat.S_ISCHR(mode) or stat.S_ISBLK(mode):
        ti.type = tarfile.CHRTYPE if stat.S_ISCHR(mode) else tarfile.BLKTYPE
        ti.devmajor = os.major(st.st_rdev)
        ti.devminor = os.minor(st.st_rdev)
    else:
        return None
    return ti


class Archiver:
    """Write a source path into a gzip-compressed tar archive."""

    def __init__(
        self,
        *,
        order: EntryOrder | str | None = None,
        on_error: TraversalErrorPolicy | str | None = None,
        compresslevel: int | None = None,
        resolver: ConfigResolver | None = None,
    ) -> None:
        if order is None or on_error is None or compresslevel is None:
            resolver = resolver or ConfigResolver()
        self.order = EntryOrder(order if order is not None else resolver.resolve_entry_order())
        self.on_error = TraversalErrorPolicy(
            on_error if on_error is not None else resolver.resolve_error_policy()
        )
        self.compresslevel = (
            compresslevel if compresslevel is not None else resolver.resolve_compresslevel()
        )

    def pack(
        self,
        src: str | os.PathLike[str],
        dest: str | os.PathLike[str],
        fail_if_exist: bool = True,
    ) -> PackResult:
        """Pack src into dest.

        Raises:
            NotFoundError: src does not exist
            AlreadyExistsError: dest exists and fail_if_exist is set
            ArchiveIOError: any filesystem failure
            PartialWriteError: the archive trailer could not be written

        A failure after dest was created leaves the partial file in place.
        """
        src_path = clean(src)
        dest_path = os.fspath(dest)
        base = {
            "src": src_path,
            "dest": dest_path,
            "order": self.order.value,
            "on_error": self.on_error.value,
        }
        with observe_operation(operation="targz.pack", base=base) as summary:
            try:
                result = self._pack(src_path, dest_path, fail_if_exist)
            except TargzError:
                raise
            except (OSError, tarfile.TarError) as e:
                raise ArchiveIOError(f"Packing '{src_path}' into '{dest_path}' failed: {e}") from e
            summary.update(
                {
                    "files_count": result.files_packed,
                    "dirs_count": result.dirs_packed,
                    "bytes": result.total_bytes,
                }
            )
        return result

    def _pack(self, src: str, dest: str, fail_if_exist: bool) -> PackResult:
        if not exists(src):
            raise NotFoundError(src, what="Source")

        if file_exists(dest):
            if fail_if_exist:
                raise AlreadyExistsError(dest)
            log.debug(f"removing existing archive {dest!r}")
            os.remove(dest)

        state = _PackState(dest=dest)
        with open(dest, "wb") as fw:
            dest_st = os.fstat(fw.fileno())
            state.dest_id = (dest_st.st_dev, dest_st.st_ino)
            with gzip.GzipFile(fileobj=fw, mode="wb", compresslevel=self.compresslevel) as gw:
                tw = tarfile.open(fileobj=gw, mode="w", format=tarfile.PAX_FORMAT)
                try:
                    self._write_source(src, tw, state)
                except BaseException:
                    with contextlib.suppress(OSError, tarfile.TarError):
                        tw.close()
                    raise
                try:
                    tw.close()
                except (OSError, tarfile.TarError) as e:
                    raise PartialWriteError(dest, str(e)) from e

        return PackResult(
            src=src,
            dest=dest,
            files_packed=state.files,
            dirs_packed=state.dirs,
            total_bytes=state.total_bytes,
            skipped=state.skipped,
        )

    def _write_source(self, src: str, tw: tarfile.TarFile, state: _PackState) -> None:
        st = os.stat(src)
        if stat.S_ISDIR(st.st_mode):
            self._write_directory_entries(with_separator(src), "", tw, state)
            return

        base, name = os.path.split(src)
        self._write_file_entry(with_separator(base) if base else "", name, tw, state, st)

    def _write_directory_entries(
        self, base: str, relative: str, tw: tarfile.TarFile, state: _PackState
    ) -> None:
        """Write every entry under base + relative, then the directory header.

        relative is empty for the archive root and separator-terminated
        otherwise.
        """
        full = base + relative
        names = sorted(os.listdir(full))

        if relative and self.order == EntryOrder.PARENT_FIRST:
            self._write_directory_header(base, relative, tw, state)

        for name in names:
            child = relative + name
            try:
                child_st = os.lstat(base + child)
                if self._is_dest(child_st, state):
                    log.verbose(f"skip {to_slash(child)} (archive being written)")
                    continue
                if stat.S_ISDIR(child_st.st_mode):
                    self._write_directory_entries(base, child + os.sep, tw, state)
                else:
                    self._write_file_entry(base, child, tw, state, child_st)
            except (OSError, tarfile.TarError) as e:
                if self.on_error != TraversalErrorPolicy.TOLERATE:
                    raise
                log.warning(f"skipping {to_slash(child)!r}: {type(e).__name__}: {e}")
                state.skipped.append(to_slash(child))

        if relative and self.order == EntryOrder.CHILDREN_FIRST:
            self._write_directory_header(base, relative, tw, state)

    def _write_directory_header(
        self, base: str, relative: str, tw: tarfile.TarFile, state: _PackState
    ) -> None:
        full = base + relative.rstrip(os.sep)
        ti = tarinfo_from_stat(os.lstat(full), to_slash(relative), full)
        if ti is None:
            return
        self._add_member(tw, ti, state)
        state.dirs += 1
        log.verbose(f"add {ti.name}")

    def _write_file_entry(
        self,
        base: str,
        relative: str,
        tw: tarfile.TarFile,
        state: _PackState,
        st: os.stat_result,
    ) -> None:
        full = base + relative
        ti = tarinfo_from_stat(st, to_slash(relative), full)
        if ti is None:
            log.warning(f"skipping {to_slash(relative)!r}: unsupported file type")
            state.skipped.append(to_slash(relative))
            return

        if not ti.isreg():
            self._add_member(tw, ti, state)
            state.files += 1
            log.verbose(f"add {ti.name} (type={ti.type!r})")
            return

        with open(full, "rb") as fr:
            self._add_member(tw, ti, state, fr)
        state.files += 1
        state.total_bytes += ti.size
        log.verbose(f"add {ti.name} size={ti.size}")

    @staticmethod
    def _add_member(
        tw: tarfile.TarFile,
        ti: tarfile.TarInfo,
        state: _PackState,
        fileobj: BinaryIO | None = None,
    ) -> None:
        """Append one member; a failure after any of its bytes were written is fatal.

        The tar stream cannot be rewound, so a member cut short leaves every
        later header misaligned whatever the traversal policy says.
        """
        start = tw.fileobj.tell()
        try:
            tw.addfile(ti, fileobj)
        except (OSError, tarfile.TarError) as e:
            if tw.fileobj.tell() != start:
                raise PartialWriteError(state.dest, f"entry {ti.name!r} was cut short: {e}") from e
            raise

    @staticmethod
    def _is_dest(st: os.stat_result, state: _PackState) -> bool:
        return state.dest_id is not None and (st.st_dev, st.st_ino) == state.dest_id


def pack(
    src: str | os.PathLike[str],
    dest: str | os.PathLike[str],
    fail_if_exist: bool = True,
    *,
    order: EntryOrder | str | None = None,
    on_error: TraversalErrorPolicy | str | None = None,
    compresslevel: int | None = None,
    resolver: ConfigResolver | None = None,
) -> PackResult:
    """Pack src into the gzip-compressed tar archive dest."""
    archiver = Archiver(
        order=order, on_error=on_error, compresslevel=compresslevel, resolver=resolver
    )
    return archiver.pack(src, dest, fail_if_exist)
