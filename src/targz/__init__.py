"""targz - pack files and directory trees into .tar.gz archives and back."""

__version__ = "1.0.0"

from targz.archive import (
    ArchiveEntry,
    Archiver,
    EntryOrder,
    Extractor,
    PackResult,
    TraversalErrorPolicy,
    UnpackResult,
    exists,
    file_exists,
    iter_entries,
    pack,
    unpack,
)
from targz.core.errors import (
    AlreadyExistsError,
    ArchiveIOError,
    ConfigError,
    CorruptContainerError,
    NotFoundError,
    PartialWriteError,
    TargzError,
    UnsafeEntryError,
)

__all__ = [
    "__version__",
    # Operations
    "pack",
    "unpack",
    "exists",
    "file_exists",
    "iter_entries",
    "Archiver",
    "Extractor",
    # Types
    "ArchiveEntry",
    "EntryOrder",
    "TraversalErrorPolicy",
    "PackResult",
    "UnpackResult",
    # Errors
    "TargzError",
    "ConfigError",
    "NotFoundError",
    "AlreadyExistsError",
    "ArchiveIOError",
    "CorruptContainerError",
    "UnsafeEntryError",
    "PartialWriteError",
]
