"""Centralized logging configuration using Loguru."""

from __future__ import annotations

import pathlib
import sys
from typing import Any, Optional

from loguru import logger


def setup_logging(
    *,
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_directory: Optional[str] = None,
    log_filename: str = "nwdist.log",
) -> None:
    """Configure pipeline logging sinks.

    Parameters
    ----------
    console_level:
        Minimum log level for console output.
    file_level:
        Minimum log level for file output.
    log_directory:
        Where to store the structured log file. No file sink is added when
        omitted.
    log_filename:
        Name of the file that captures structured log output.

    Existing handlers are removed to avoid duplicate entries when the CLI
    reconfigures logging.
    """

    logger.remove()

    logger.add(
        sys.stderr,
        level=console_level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
        backtrace=True,
        diagnose=False,
        colorize=True,
    )

    if log_directory is None:
        return

    log_path = pathlib.Path(log_directory).expanduser().resolve()
    log_path.mkdir(parents=True, exist_ok=True)
    file_path = log_path / log_filename

    logger.add(
        file_path,
        level=file_level.upper(),
        enqueue=True,
        backtrace=False,
        diagnose=False,
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        serialize=True,
    )

    logger.bind(log_file=str(file_path)).debug("Logging configured")


def log_platform_event(task: str, platform: str, status: str, **metadata: Any) -> None:
    """Emit a structured record describing one platform outcome of a task.

    Parameters
    ----------
    task:
        Name of the fanned task, e.g. ``"nsis"``.
    platform:
        Target platform tag.
    status:
        ``"success"``, ``"failed"`` or ``"skipped"``.
    **metadata:
        Extra context such as ``duration`` or ``error``.
    """

    logger.bind(task=task, platform=str(platform), status=status, **metadata).debug("platform_event")


__all__ = ["setup_logging", "log_platform_event"]
