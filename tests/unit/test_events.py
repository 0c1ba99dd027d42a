"""Diagnostics envelopes published by pack/unpack."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from targz import NotFoundError, pack, unpack
from targz.core.events import build_envelope, get_event_bus


@pytest.fixture()
def events() -> list[tuple[str, dict[str, Any]]]:
    collected: list[tuple[str, dict[str, Any]]] = []
    get_event_bus().subscribe_all(lambda name, data: collected.append((name, data)))
    return collected


def test_build_envelope_shape():
    env = build_envelope(event="operation.start", component="targz", operation="x", data={"a": 1})

    assert env["event"] == "operation.start"
    assert env["component"] == "targz"
    assert env["data"] == {"a": 1}
    assert env["timestamp"].endswith("Z")


def test_pack_and_unpack_publish_start_and_end(sample_tree: Path, tmp_path: Path, events):
    archive = tmp_path / "out.tar.gz"
    pack(sample_tree, archive)
    unpack(archive, tmp_path / "d")

    names = [(name, env["operation"]) for name, env in events]
    assert names == [
        ("operation.start", "targz.pack"),
        ("operation.end", "targz.pack"),
        ("operation.start", "targz.unpack"),
        ("operation.end", "targz.unpack"),
    ]

    pack_end = events[1][1]["data"]
    assert pack_end["status"] == "succeeded"
    assert pack_end["files_count"] == 3
    assert pack_end["dirs_count"] == 3

    unpack_end = events[3][1]["data"]
    assert unpack_end["status"] == "succeeded"
    assert unpack_end["files_count"] == 3


def test_failed_operation_reports_error(tmp_path: Path, events):
    with pytest.raises(NotFoundError):
        unpack(tmp_path / "missing.tar.gz", tmp_path / "d")

    name, env = events[-1]
    assert name == "operation.end"
    assert env["data"]["status"] == "failed"
    assert env["data"]["error_type"] == "NotFoundError"


def test_failing_handler_does_not_break_pack(sample_tree: Path, tmp_path: Path):
    def broken(data):
        raise RuntimeError("handler failure")

    get_event_bus().subscribe("operation.end", broken)

    result = pack(sample_tree, tmp_path / "out.tar.gz")

    assert result.files_packed == 3


def test_unsubscribed_handler_is_not_called(sample_tree: Path, tmp_path: Path):
    seen: list[str] = []

    def on_end(data):
        seen.append(data["operation"])

    bus = get_event_bus()
    bus.subscribe("operation.end", on_end)
    pack(sample_tree, tmp_path / "one.tar.gz")
    bus.unsubscribe("operation.end", on_end)
    pack(sample_tree, tmp_path / "two.tar.gz")

    assert seen == ["targz.pack"]


def test_unsubscribe_unknown_event_is_ignored():
    get_event_bus().unsubscribe("operation.start", lambda data: None)
