"""Error handling with friendly messages."""

from __future__ import annotations


class TargzError(Exception):
    """Base exception for all targz errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(TargzError):
    """Configuration error."""

    pass


class NotFoundError(TargzError):
    """Source path or archive path does not exist."""

    def __init__(self, path: str, *, what: str = "Path") -> None:
        self.path = path
        super().__init__(f"{what} not found: {path}")


class AlreadyExistsError(TargzError):
    """Destination archive exists and overwrite is disabled."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Destination already exists: {path}",
            "Remove it first or pack with fail_if_exist=False (--overwrite)",
        )


class ArchiveIOError(TargzError):
    """Opening, reading, writing, closing or stat-ing a path failed."""

    pass


class CorruptContainerError(TargzError):
    """The gzip stream or a tar header could not be decoded."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        super().__init__(
            f"Archive '{path}' is corrupted or unreadable: {detail}",
            "Check that the file is a complete .tar.gz archive",
        )


class UnsafeEntryError(CorruptContainerError):
    """An archive entry would be written outside the destination root."""

    def __init__(self, path: str, name: str) -> None:
        self.name = name
        super().__init__(path, f"entry escapes destination: {name}")


class PartialWriteError(TargzError):
    """The tar stream could not be completed, so the archive is unreadable."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        super().__init__(
            f"Archive '{path}' was not finalized: {detail}",
            "The file is incomplete; delete it and pack again",
        )
