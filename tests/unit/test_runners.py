"""Tests for the subprocess, cleanup and archive helpers."""

from __future__ import annotations

import asyncio
import os
import sys
import tarfile
import zipfile
from pathlib import Path

import pytest

from nwdist.errors import CommandFailedError, CommandNotFoundError
from nwdist.runners import (
    CommandResult,
    delete_globs,
    make_tar_gz,
    make_zip,
    run_command,
    run_pipeline,
    stream_command,
)


def test_run_command_collects_output() -> None:
    result = asyncio.run(run_command([sys.executable, "-c", "print('hello')"]))
    assert result.ok
    assert result.stdout.strip() == "hello"


def test_run_command_reports_exit_code() -> None:
    result = asyncio.run(run_command([sys.executable, "-c", "import sys; sys.exit(3)"]))
    assert result.returncode == 3
    with pytest.raises(CommandFailedError) as excinfo:
        result.check()
    assert excinfo.value.returncode == 3


def test_run_command_missing_executable() -> None:
    with pytest.raises(CommandNotFoundError):
        asyncio.run(run_command(["definitely-not-a-real-packager-binary"]))


def test_command_result_output_joins_streams() -> None:
    result = CommandResult(argv=("x",), returncode=1, stdout="out\n", stderr="err\n")
    assert result.output == "out\nerr"


def test_delete_globs_is_best_effort(tmp_path: Path) -> None:
    (tmp_path / "pdf.dll").write_text("x")
    (tmp_path / "chrome_100.pak").write_text("x")
    (tmp_path / "pnacl").mkdir()
    (tmp_path / "pnacl" / "nested.bin").write_text("x")
    (tmp_path / "nw").write_text("keep")

    removed = asyncio.run(
        delete_globs([f"{tmp_path}/pdf*", f"{tmp_path}/chrome*", f"{tmp_path}/pnacl", f"{tmp_path}/missing*", ""])
    )

    assert len(removed) == 3
    assert sorted(path.name for path in tmp_path.iterdir()) == ["nw"]


def test_make_tar_gz_skips_vcs(tmp_path: Path) -> None:
    source = tmp_path / "linux"
    (source / ".git").mkdir(parents=True)
    (source / ".git" / "HEAD").write_text("ref")
    (source / "nw").write_text("binary")

    archive = asyncio.run(make_tar_gz(source, tmp_path / "out" / "app.tar.gz"))

    with tarfile.open(archive) as handle:
        assert handle.getnames() == ["nw"]


def test_make_zip_includes_extra_files(tmp_path: Path) -> None:
    source = tmp_path / "win"
    source.mkdir()
    (source / "nw.exe").write_text("binary")
    settings = tmp_path / "portable.json"
    settings.write_text("{}")

    archive = asyncio.run(make_zip(source, tmp_path / "app.zip", [settings, tmp_path / "absent.json"]))

    with zipfile.ZipFile(archive) as handle:
        assert sorted(handle.namelist()) == ["nw.exe", "portable.json"]


def test_archivers_require_a_build(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        asyncio.run(make_zip(tmp_path / "nothing", tmp_path / "out.zip"))


COPY_STDIN = "import shutil, sys; shutil.copyfileobj(sys.stdin.buffer, sys.stdout.buffer)"


def test_run_pipeline_writes_consumer_output(tmp_path: Path) -> None:
    output = tmp_path / "out" / "archive.bin"
    result = asyncio.run(
        run_pipeline(
            [sys.executable, "-c", "print('payload')"],
            [sys.executable, "-c", COPY_STDIN],
            output=output,
        )
    )
    assert result.ok
    assert output.read_text().strip() == "payload"


def test_run_pipeline_fails_when_producer_fails(tmp_path: Path) -> None:
    output = tmp_path / "archive.bin"
    producer = "import sys; print('partial'); sys.stderr.write('cannot stat'); sys.exit(2)"
    result = asyncio.run(
        run_pipeline([sys.executable, "-c", producer], [sys.executable, "-c", COPY_STDIN], output=output)
    )
    assert result.returncode == 2
    assert "cannot stat" in result.stderr
    assert not output.exists()


def test_run_pipeline_fails_when_consumer_fails(tmp_path: Path) -> None:
    output = tmp_path / "archive.bin"
    result = asyncio.run(
        run_pipeline(
            [sys.executable, "-c", "print('payload')"],
            [sys.executable, "-c", "import sys; sys.stdin.read(); sys.exit(4)"],
            output=output,
        )
    )
    assert result.returncode == 4
    assert not output.exists()


def test_run_pipeline_missing_consumer(tmp_path: Path) -> None:
    output = tmp_path / "archive.bin"
    with pytest.raises(CommandNotFoundError):
        asyncio.run(
            run_pipeline(
                [sys.executable, "-c", "print('payload')"],
                ["definitely-not-a-real-compressor"],
                output=output,
            )
        )
    assert not output.exists()


def test_stream_command_handles_long_lines() -> None:
    script = "import sys; sys.stderr.write('x' * 200000 + '\\nshort\\ntail')"
    lines: list[str] = []
    exit_code = asyncio.run(stream_command([sys.executable, "-c", script], on_line=lines.append))
    assert exit_code == 0
    assert [len(line) for line in lines] == [200000, 5, 4]
    assert lines[1:] == ["short", "tail"]


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX signal 0")
def test_stream_command_kills_child_when_handler_fails() -> None:
    script = "import os, sys, time; sys.stderr.write(f'{os.getpid()}\\n'); sys.stderr.flush(); time.sleep(60)"
    pids: list[int] = []

    def on_line(line: str) -> None:
        pids.append(int(line))
        raise RuntimeError("handler failed")

    with pytest.raises(RuntimeError, match="handler failed"):
        asyncio.run(stream_command([sys.executable, "-c", script], on_line=on_line))

    with pytest.raises(ProcessLookupError):
        os.kill(pids[0], 0)
