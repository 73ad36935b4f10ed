"""Pytest configuration and shared fakes for the pipeline tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Callable, Iterator

import pytest
from loguru import logger

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nwdist.build_config import BuildConfig  # noqa: E402
from nwdist.runners import CommandResult  # noqa: E402


class FakeRunner:
    """Records every command and answers with a configurable exit code."""

    def __init__(self, returncode_for: Callable[[tuple[str, ...]], int] | None = None) -> None:
        self.calls: list[tuple[tuple[str, ...], Path | None]] = []
        self.returncode_for = returncode_for or (lambda argv: 0)

    async def __call__(self, argv, *, cwd=None, env=None) -> CommandResult:
        argv = tuple(str(part) for part in argv)
        self.calls.append((argv, cwd))
        code = self.returncode_for(argv)
        return CommandResult(argv=argv, returncode=code, stdout="", stderr="boom" if code else "")

    def commands(self, executable: str) -> list[tuple[str, ...]]:
        return [argv for argv, _ in self.calls if argv[0] == executable]


class FakeProvisioner:
    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.options = []

    async def provision(self, options) -> None:
        self.options.append(options)
        if options.platform in self.failing:
            raise RuntimeError(f"no runtime for {options.platform}")
        options.out_dir.mkdir(parents=True, exist_ok=True)


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    messages: list[str] = []
    sink_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(sink_id)


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    manifest = {
        "name": "demo-app",
        "version": "1.2.3",
        "releaseName": "Demo App",
        "description": "Demo desktop application",
        "author": {"name": "Demo Corp"},
        "license": "GPL-3.0",
        "icon": "app/images/icon.png",
    }
    (tmp_path / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
    return tmp_path


@pytest.fixture
def make_config(app_dir: Path) -> Callable[..., BuildConfig]:
    def factory(host: str = "linux", arch: str = "x64", **environ: str) -> BuildConfig:
        return BuildConfig.from_manifest(app_dir, environ, host=host, arch=arch)

    return factory


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fake_provisioner() -> FakeProvisioner:
    return FakeProvisioner()


@pytest.fixture
def runner_factory() -> type[FakeRunner]:
    return FakeRunner


@pytest.fixture
def provisioner_factory() -> type[FakeProvisioner]:
    return FakeProvisioner
