"""Subprocess, cleanup and archive helpers used as leaf operations."""

from __future__ import annotations

import asyncio
import glob
import os
import shutil
import tarfile
import zipfile
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Mapping, Optional, Sequence

from loguru import logger

from .errors import CommandFailedError, CommandNotFoundError


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)

    def check(self) -> "CommandResult":
        if not self.ok:
            raise CommandFailedError(self.argv, self.returncode, self.output)
        return self


CommandRunner = Callable[..., Awaitable[CommandResult]]

STREAM_CHUNK = 64 * 1024


async def _spawn(argv: tuple[str, ...], *, cwd: Optional[Path] = None, **kwargs) -> asyncio.subprocess.Process:
    try:
        return await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd is not None else None,
            **kwargs,
        )
    except FileNotFoundError:
        raise CommandNotFoundError(argv[0]) from None


async def _reap(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        with suppress(ProcessLookupError):
            process.kill()
        await process.wait()


async def run_command(
    argv: Sequence[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> CommandResult:
    """Spawn ``argv`` and collect its output once it exits."""

    argv = tuple(str(part) for part in argv)
    logger.debug("Running: {}", " ".join(argv))
    process = await _spawn(
        argv,
        cwd=cwd,
        env=dict(env) if env is not None else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return CommandResult(
        argv=argv,
        returncode=process.returncode,
        stdout=stdout.decode(errors="ignore"),
        stderr=stderr.decode(errors="ignore"),
    )


async def run_pipeline(
    producer: Sequence[str],
    consumer: Sequence[str],
    *,
    output: Path,
    cwd: Optional[Path] = None,
) -> CommandResult:
    """Pipe ``producer`` into ``consumer`` and write the result to ``output``.

    The pipeline fails when either stage exits non-zero, and ``output`` is
    removed in that case so no truncated artifact is left behind.
    """

    producer = tuple(str(part) for part in producer)
    consumer = tuple(str(part) for part in consumer)
    argv = (*producer, "|", *consumer)
    logger.debug("Running: {} > {}", " ".join(argv), output)
    output.parent.mkdir(parents=True, exist_ok=True)

    read_fd, write_fd = os.pipe()
    try:
        upstream = await _spawn(producer, cwd=cwd, stdout=write_fd, stderr=asyncio.subprocess.PIPE)
    except BaseException:
        os.close(read_fd)
        raise
    finally:
        os.close(write_fd)

    try:
        with open(output, "wb") as sink:
            downstream = await _spawn(
                consumer,
                cwd=cwd,
                stdin=read_fd,
                stdout=sink,
                stderr=asyncio.subprocess.PIPE,
            )
    except BaseException:
        await _reap(upstream)
        output.unlink(missing_ok=True)
        raise
    finally:
        os.close(read_fd)

    try:
        (_, upstream_err), (_, downstream_err) = await asyncio.gather(
            upstream.communicate(), downstream.communicate()
        )
    finally:
        await _reap(upstream)
        await _reap(downstream)

    returncode = upstream.returncode or downstream.returncode
    if returncode:
        output.unlink(missing_ok=True)
    return CommandResult(
        argv=argv,
        returncode=returncode,
        stderr="\n".join(
            part.decode(errors="ignore").strip() for part in (upstream_err, downstream_err) if part.strip()
        ),
    )


async def stream_command(
    argv: Sequence[str],
    *,
    cwd: Optional[Path] = None,
    on_line: Callable[[str], None],
) -> int:
    """Run ``argv`` until it exits, handing each stderr line to ``on_line``."""

    argv = tuple(str(part) for part in argv)
    logger.debug("Streaming: {}", " ".join(argv))
    process = await _spawn(argv, cwd=cwd, stderr=asyncio.subprocess.PIPE)

    pending = b""
    try:
        while True:
            chunk = await process.stderr.read(STREAM_CHUNK)
            if not chunk:
                break
            *lines, pending = (pending + chunk).split(b"\n")
            for line in lines:
                on_line(line.decode(errors="ignore").rstrip())
        if pending:
            on_line(pending.decode(errors="ignore").rstrip())
        return await process.wait()
    finally:
        await _reap(process)


# ----------------------------------------------------------------------
# Filesystem cleanup
# ----------------------------------------------------------------------
def _delete_paths(patterns: Sequence[str]) -> list[Path]:
    removed: list[Path] = []
    for pattern in patterns:
        for match in sorted(glob.glob(pattern)):
            path = Path(match)
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path, ignore_errors=True)
            else:
                path.unlink(missing_ok=True)
            removed.append(path)
    return removed


async def delete_globs(patterns: Iterable[str]) -> list[Path]:
    """Delete everything matching ``patterns``; missing paths are not errors."""

    patterns = [pattern for pattern in patterns if pattern]
    removed = await asyncio.to_thread(_delete_paths, patterns)
    logger.debug("Removed {} paths", len(removed))
    return removed


# ----------------------------------------------------------------------
# Archives
# ----------------------------------------------------------------------
def _write_tar_gz(source: Path, destination: Path) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(destination, "w:gz") as archive:
        for entry in sorted(source.rglob("*")):
            if ".git" in entry.relative_to(source).parts:
                continue
            archive.add(entry, arcname=str(entry.relative_to(source)), recursive=False)
    return destination


async def make_tar_gz(source: Path, destination: Path) -> Path:
    if not source.is_dir():
        raise FileNotFoundError(f"Nothing to archive at {source}")
    return await asyncio.to_thread(_write_tar_gz, source, destination)


def _write_zip(source: Path, destination: Path, extra_files: Sequence[Path]) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for entry in sorted(source.rglob("*")):
            archive.write(entry, arcname=str(entry.relative_to(source)))
        for extra in extra_files:
            archive.write(extra, arcname=extra.name)
    return destination


async def make_zip(source: Path, destination: Path, extra_files: Iterable[Path] = ()) -> Path:
    if not source.is_dir():
        raise FileNotFoundError(f"Nothing to archive at {source}")
    extras = [path for path in extra_files if path.is_file()]
    return await asyncio.to_thread(_write_zip, source, destination, extras)


__all__ = [
    "CommandResult",
    "CommandRunner",
    "run_command",
    "run_pipeline",
    "stream_command",
    "delete_globs",
    "make_tar_gz",
    "make_zip",
]
