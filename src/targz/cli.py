"""Command line adapter.

Implements:
  targz pack SRC DEST [--overwrite] [--parent-first] [--tolerate-errors] [--level N]
  targz unpack ARCHIVE DEST

Flags are mapped onto ConfigResolver CLI keys so they take priority over
environment variables and config files.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from targz.archive import Archiver, Extractor
from targz.core.config import ConfigResolver
from targz.core.errors import TargzError
from targz.core.logging import apply_logging_policy, get_logger

log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="targz",
        description="Pack a file or directory into a .tar.gz archive, or extract one.",
    )
    p.add_argument("--config", type=Path, help="User config file (YAML).")
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="count", default=0)
    verbosity.add_argument("-q", "--quiet", action="store_true")

    sub = p.add_subparsers(dest="cmd", required=True)

    pk = sub.add_parser("pack", help="Create an archive from SRC.")
    pk.add_argument("src")
    pk.add_argument("dest")
    pk.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace DEST if it already exists.",
    )
    pk.add_argument(
        "--parent-first",
        action="store_true",
        help="Write each directory header before its contents.",
    )
    pk.add_argument(
        "--tolerate-errors",
        action="store_true",
        help="Skip unreadable entries below SRC instead of aborting.",
    )
    pk.add_argument("--level", type=int, choices=range(10), metavar="0-9", help="gzip level.")

    up = sub.add_parser("unpack", help="Extract ARCHIVE under DEST.")
    up.add_argument("archive")
    up.add_argument("dest")

    return p


def _cli_args(ns: argparse.Namespace) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if ns.quiet:
        out["logging.level"] = "quiet"
    elif ns.verbose >= 2:
        out["logging.level"] = "debug"
    elif ns.verbose == 1:
        out["logging.level"] = "verbose"

    if ns.cmd == "pack":
        if ns.parent_first:
            out["archive.entry_order"] = "parent_first"
        if ns.tolerate_errors:
            out["archive.on_error"] = "tolerate"
        if ns.level is not None:
            out["archive.compresslevel"] = ns.level
    return out


def main(argv: list[str] | None = None) -> int:
    ns = build_parser().parse_args(argv)

    try:
        resolver = ConfigResolver(cli_args=_cli_args(ns), user_config_path=ns.config)
        apply_logging_policy(resolver.resolve_logging_policy())

        if ns.cmd == "pack":
            Archiver(resolver=resolver).pack(ns.src, ns.dest, fail_if_exist=not ns.overwrite)
        else:
            result = Extractor().unpack(ns.archive, ns.dest)
            if result.warnings:
                log.warning(f"{len(result.warnings)} warning(s) during extraction")
    except TargzError as e:
        log.error(str(e))
        return 1
    return 0
