"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

import pytest

# Add src to path (for 'targz.*' imports without an install)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))


@pytest.fixture(autouse=True)
def _isolate_global_state(tmp_path_factory, monkeypatch):
    """Keep config files, env vars and the process-wide buses out of each test."""
    from targz.core.events import get_event_bus
    from targz.core.logging import VerbosityLevel, get_log_bus, set_colors, set_verbosity

    monkeypatch.setenv("HOME", str(tmp_path_factory.mktemp("home")))
    for key in [k for k in os.environ if k.startswith("TARGZ_")]:
        monkeypatch.delenv(key, raising=False)

    get_log_bus().clear()
    get_event_bus().clear()
    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(False)
    yield
    get_log_bus().clear()
    get_event_bus().clear()
    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(True)


@pytest.fixture
def sample_tree(tmp_path):
    """Create a small directory tree.

    Layout:
        a/x.txt        "hi"
        a/b/           (empty)
        a/c/y.txt      "nested"
        a/c/d/z.bin    bytes 0..255

    Returns:
        Path to ``a``
    """
    root = tmp_path / "a"
    (root / "b").mkdir(parents=True)
    (root / "c" / "d").mkdir(parents=True)
    (root / "x.txt").write_text("hi")
    (root / "c" / "y.txt").write_text("nested")
    (root / "c" / "d" / "z.bin").write_bytes(bytes(range(256)))
    return root
