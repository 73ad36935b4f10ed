"""Command line entry point: ``nwdist [TASK ...] --platforms=<csv|all>``."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from .build_config import BuildConfig
from .errors import ResolutionError
from .logger import setup_logging
from .pipeline import DistributionPipeline

EXIT_OK = 0
EXIT_TASK_FAILED = 1
EXIT_FATAL = 2


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nwdist",
        description="Build and package NW.js desktop applications",
    )
    parser.add_argument(
        "tasks",
        nargs="*",
        default=["default"],
        help="Tasks to run in order (run, build, dist, test, ...)",
    )
    parser.add_argument(
        "--platforms",
        help="Comma-separated target platforms (linux, win, osx) or 'all'; defaults to the host",
    )
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=Path.cwd(),
        help="Application source tree containing package.json",
    )
    parser.add_argument("--log-level", default="INFO", help="Console log level")
    parser.add_argument("--log-dir", help="Directory for a structured log file")
    parser.add_argument(
        "--tasks",
        dest="list_tasks",
        action="store_true",
        help="Show the task dependency tree and exit",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None, *, pipeline: Optional[DistributionPipeline] = None) -> int:
    args = parse_args(argv)
    setup_logging(console_level=args.log_level, log_directory=args.log_dir)

    try:
        if pipeline is None:
            config = BuildConfig.from_manifest(args.base_dir)
            pipeline = DistributionPipeline(config, platforms=args.platforms)
        graph = pipeline.graph()
    except (FileNotFoundError, ValueError) as exc:
        logger.critical("Cannot set up the pipeline: {}", exc)
        return EXIT_FATAL

    if args.list_tasks:
        print(graph.describe())
        return EXIT_OK

    try:
        for name in args.tasks:
            asyncio.run(graph.invoke(name))
    except ResolutionError as exc:
        logger.critical("{}", exc)
        return EXIT_FATAL
    except Exception as exc:  # noqa: BLE001 - surface every task failure as an exit code
        logger.opt(exception=exc).error("Task failed: {}", exc)
        return EXIT_TASK_FAILED
    return EXIT_OK


__all__ = ["main", "parse_args", "EXIT_OK", "EXIT_TASK_FAILED", "EXIT_FATAL"]
