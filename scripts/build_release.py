"""CLI to build production releases for the requested platforms."""

from __future__ import annotations

import sys

from nwdist.cli import main


if __name__ == "__main__":
    raise SystemExit(main(["dist", *sys.argv[1:]]))
