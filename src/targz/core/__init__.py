"""Core infrastructure shared by the archiver and the extractor."""

from targz.core.config import ConfigResolver, LoggingPolicy
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
from targz.core.events import EventBus, build_envelope, get_event_bus, observe_operation
from targz.core.logging import (
    LogBus,
    LogRecord,
    VerbosityLevel,
    apply_logging_policy,
    get_log_bus,
    get_logger,
    set_verbosity,
)

__all__ = [
    # Errors
    "TargzError",
    "ConfigError",
    "NotFoundError",
    "AlreadyExistsError",
    "ArchiveIOError",
    "CorruptContainerError",
    "UnsafeEntryError",
    "PartialWriteError",
    # Config
    "ConfigResolver",
    "LoggingPolicy",
    # Logging
    "LogBus",
    "LogRecord",
    "VerbosityLevel",
    "apply_logging_policy",
    "get_log_bus",
    "get_logger",
    "set_verbosity",
    # Events
    "EventBus",
    "build_envelope",
    "get_event_bus",
    "observe_operation",
]
