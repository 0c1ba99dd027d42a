"""Entry point for ``python -m targz``."""

from __future__ import annotations

import sys

from targz.cli import main

if __name__ == "__main__":
    sys.exit(main())
