"""Archiver and extractor for gzip-compressed tar archives."""

from .packer import Archiver, pack
from .paths import exists, file_exists
from .types import ArchiveEntry, EntryOrder, PackResult, TraversalErrorPolicy, UnpackResult
from .unpacker import Extractor, iter_entries, unpack

__all__ = [
    "ArchiveEntry",
    "Archiver",
    "EntryOrder",
    "Extractor",
    "PackResult",
    "TraversalErrorPolicy",
    "UnpackResult",
    "exists",
    "file_exists",
    "iter_entries",
    "pack",
    "unpack",
]
