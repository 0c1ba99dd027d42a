"""Centralized logging for targz.

Four verbosity levels:
- QUIET (0): Warnings + errors
- NORMAL (1): Info + warnings + errors
- VERBOSE (2): One line per archive entry
- DEBUG (3): Everything including internal state

Every emitted line is also published as a LogRecord on the process-wide
LogBus so library callers can capture output without parsing stdout.

Usage:
    from targz.core.logging import get_logger, set_verbosity

    log = get_logger(__name__)
    set_verbosity(2)

    log.verbose("add x.txt")
    log.warning("chmod failed")
"""

from __future__ import annotations

import contextlib
import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum

from targz.core.config import LoggingPolicy


class VerbosityLevel(IntEnum):
    """Verbosity levels for targz."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3


_VERBOSITY: VerbosityLevel = VerbosityLevel.NORMAL
_USE_COLORS: bool = True


@dataclass(frozen=True)
class LogRecord:
    level_name: str
    plain: str
    logger_name: str


LogSubscriber = Callable[[LogRecord], None]


class LogBus:
    """Fan log records out to subscribers.

    A subscriber registered without levels receives every record. Subscriber
    exceptions are written to stderr and otherwise ignored.
    """

    def __init__(self) -> None:
        self._subs: list[tuple[LogSubscriber, frozenset[str] | None]] = []

    def subscribe(self, cb: LogSubscriber, *, levels: set[str] | None = None) -> None:
        wanted = None if levels is None else frozenset(lv.upper() for lv in levels)
        self._subs.append((cb, wanted))

    def unsubscribe(self, cb: LogSubscriber) -> None:
        self._subs = [(sub, lv) for sub, lv in self._subs if sub != cb]

    def publish(self, record: LogRecord) -> None:
        for cb, levels in list(self._subs):
            if levels is not None and record.level_name not in levels:
                continue
            try:
                cb(record)
            except Exception:
                # Writing through the logger here would recurse.
                msg = "LogBus subscriber raised; suppressed.\n" + traceback.format_exc()
                with contextlib.suppress(Exception):
                    sys.stderr.write(msg)

    def clear(self) -> None:
        self._subs.clear()


_LOG_BUS: LogBus | None = None


def get_log_bus() -> LogBus:
    global _LOG_BUS
    if _LOG_BUS is None:
        _LOG_BUS = LogBus()
    return _LOG_BUS


def set_verbosity(level: int | VerbosityLevel) -> None:
    """Set global verbosity level.

    Args:
        level: Verbosity level (0-3 or VerbosityLevel enum)
    """
    global _VERBOSITY
    _VERBOSITY = VerbosityLevel(level)


def get_verbosity() -> VerbosityLevel:
    return _VERBOSITY


def set_colors(enabled: bool) -> None:
    global _USE_COLORS
    _USE_COLORS = enabled


def apply_logging_policy(policy: LoggingPolicy) -> None:
    """Bridge a resolved LoggingPolicy to the global verbosity and colors."""
    if policy.level_name == "debug":
        set_verbosity(VerbosityLevel.DEBUG)
    elif policy.level_name == "verbose":
        set_verbosity(VerbosityLevel.VERBOSE)
    elif policy.level_name == "normal":
        set_verbosity(VerbosityLevel.NORMAL)
    else:
        set_verbosity(VerbosityLevel.QUIET)
    set_colors(policy.color)


class TargzLogger:
    """Logger with verbosity support."""

    COLORS = {
        "DEBUG": "\033[36m",
        "VERBOSE": "\033[34m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "RESET": "\033[0m",
    }

    def __init__(self, name: str):
        self.name = name

    def _format_message(self, level_name: str, message: str) -> str:
        if _USE_COLORS and sys.stdout.isatty():
            color = self.COLORS.get(level_name, "")
            reset = self.COLORS["RESET"]
            return f"{color}[{level_name.lower()}]{reset} {message}"
        return f"[{level_name.lower()}] {message}"

    def _log(self, level: VerbosityLevel, level_name: str, message: str) -> None:
        """Publish to the bus and print if the current verbosity allows it.

        Errors bypass the verbosity check and go to stderr.
        """
        if level_name != "ERROR" and level > _VERBOSITY:
            return

        plain = f"[{level_name.lower()}] {message}"
        get_log_bus().publish(LogRecord(level_name=level_name, plain=plain, logger_name=self.name))

        stream = sys.stderr if level_name in ("WARNING", "ERROR") else sys.stdout
        print(self._format_message(level_name, message), file=stream)

    def debug(self, message: str) -> None:
        self._log(VerbosityLevel.DEBUG, "DEBUG", message)

    def verbose(self, message: str) -> None:
        self._log(VerbosityLevel.VERBOSE, "VERBOSE", message)

    def info(self, message: str) -> None:
        self._log(VerbosityLevel.NORMAL, "INFO", message)

    def warning(self, message: str) -> None:
        self._log(VerbosityLevel.QUIET, "WARNING", message)

    def error(self, message: str) -> None:
        self._log(VerbosityLevel.QUIET, "ERROR", message)


_LOGGERS: dict[str, TargzLogger] = {}


def get_logger(name: str = __name__) -> TargzLogger:
    """Get logger instance for module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    if name not in _LOGGERS:
        _LOGGERS[name] = TargzLogger(name)
    return _LOGGERS[name]
