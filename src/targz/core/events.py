"""Event bus and diagnostics envelopes.

pack/unpack publish ``operation.start`` and ``operation.end`` envelopes so a
caller can observe archive operations without wrapping them.
"""

from __future__ import annotations

import time
import traceback
from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from targz.core.logging import get_logger

_logger = get_logger(__name__)

_SUMMARY_KEYS = ("src", "dest", "dst_dir", "files_count", "dirs_count", "bytes")


class EventBus:
    """Simple pub/sub for diagnostics.

    Example:
        bus = get_event_bus()

        def on_end(data):
            print(data["data"]["status"])

        bus.subscribe("operation.end", on_end)
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callable[[dict[str, Any]], None]]] = defaultdict(list)
        self._all_subscribers: list[Callable[[str, dict[str, Any]], None]] = []

    def subscribe(self, event: str, callback: Callable[[dict[str, Any]], None]) -> None:
        self._subscribers[event].append(callback)

    def unsubscribe(self, event: str, callback: Callable[[dict[str, Any]], None]) -> None:
        if event in self._subscribers:
            self._subscribers[event].remove(callback)

    def subscribe_all(self, callback: Callable[[str, dict[str, Any]], None]) -> None:
        self._all_subscribers.append(callback)

    def publish(self, event: str, data: dict[str, Any] | None = None) -> None:
        """Publish an event.

        Handler exceptions are logged and never reach the publisher.
        """
        data = data or {}

        for cb_event in list(self._subscribers.get(event, [])):
            try:
                cb_event(data)
            except Exception as e:
                _logger.error(
                    f"Error in event handler for '{event}': {type(e).__name__}: {e}\n"
                    f"{traceback.format_exc()}"
                )

        for cb_all in list(self._all_subscribers):
            try:
                cb_all(event, data)
            except Exception as e:
                _logger.error(
                    f"Error in all-event handler (event='{event}'): {type(e).__name__}: {e}\n"
                    f"{traceback.format_exc()}"
                )

    def clear(self) -> None:
        self._subscribers.clear()
        self._all_subscribers.clear()


_global_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    global _global_bus
    if _global_bus is None:
        _global_bus = EventBus()
    return _global_bus


def build_envelope(
    *,
    event: str,
    component: str,
    operation: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Build the canonical diagnostics envelope.

    Schema:
        {
          "event": "<string>",
          "component": "<string>",
          "operation": "<string>",
          "timestamp": "<iso8601 utc>",
          "data": { ... }
        }
    """
    ts = datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return {
        "event": event,
        "component": component,
        "operation": operation,
        "timestamp": ts,
        "data": data,
    }


def _short_traceback(*, max_lines: int = 20) -> str:
    tb_lines = traceback.format_exc().strip().splitlines()
    return "\n".join(tb_lines[-max_lines:])


@contextmanager
def observe_operation(*, operation: str, base: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Publish start/end envelopes around an operation.

    The caller fills the yielded dict with summary fields; they are merged into
    the end envelope on success. Exceptions are re-raised after the failed end
    envelope is published.
    """
    bus = get_event_bus()
    start = time.perf_counter()
    bus.publish(
        "operation.start",
        build_envelope(
            event="operation.start", component="targz", operation=operation, data=dict(base)
        ),
    )

    summary: dict[str, Any] = {}
    try:
        yield summary
    except Exception as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        end_data = dict(base)
        end_data.update(
            {
                "status": "failed",
                "duration_ms": duration_ms,
                "error_type": type(e).__name__,
                "error_message": str(e),
                "traceback": _short_traceback(),
            }
        )
        bus.publish(
            "operation.end",
            build_envelope(
                event="operation.end", component="targz", operation=operation, data=end_data
            ),
        )
        _logger.warning(
            f"{operation} status=failed duration_ms={duration_ms} "
            f"error_type={type(e).__name__!r}"
        )
        raise
    else:
        duration_ms = int((time.perf_counter() - start) * 1000)
        end_data = dict(base)
        end_data.update(summary)
        end_data.update({"status": "succeeded", "duration_ms": duration_ms})
        bus.publish(
            "operation.end",
            build_envelope(
                event="operation.end", component="targz", operation=operation, data=end_data
            ),
        )
        parts = ["status=succeeded", f"duration_ms={duration_ms}"]
        parts.extend(f"{k}={end_data[k]!r}" for k in _SUMMARY_KEYS if k in end_data)
        _logger.info(f"{operation} " + " ".join(parts))
