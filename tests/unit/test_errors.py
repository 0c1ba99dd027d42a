"""Tests for the error hierarchy."""

from __future__ import annotations

import pytest

from targz.core.errors import (
    AlreadyExistsError,
    ArchiveIOError,
    CorruptContainerError,
    NotFoundError,
    PartialWriteError,
    TargzError,
    UnsafeEntryError,
)


def test_message_with_suggestion():
    err = AlreadyExistsError("out.tar.gz")

    assert err.message == "Destination already exists: out.tar.gz"
    assert "Suggestion:" in str(err)


def test_message_without_suggestion():
    err = NotFoundError("src", what="Source")

    assert str(err) == "Source not found: src"
    assert err.path == "src"


@pytest.mark.parametrize(
    "err",
    [
        NotFoundError("x"),
        AlreadyExistsError("x"),
        ArchiveIOError("x"),
        CorruptContainerError("x", "bad header"),
        UnsafeEntryError("x", "../y"),
        PartialWriteError("x", "disk full"),
    ],
)
def test_all_errors_share_base(err):
    assert isinstance(err, TargzError)


def test_unsafe_entry_is_corrupt_container():
    err = UnsafeEntryError("a.tar.gz", "../evil")

    assert isinstance(err, CorruptContainerError)
    assert "../evil" in err.message
