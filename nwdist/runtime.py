"""Runtime provisioning: fetch the NW.js runtime and assemble the bundle."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

from loguru import logger

from .build_config import AppMetadata, BuildConfig
from .errors import OperationError, ProvisioningError
from .runners import CommandRunner, run_command


@dataclass(frozen=True, slots=True)
class RuntimeOptions:
    src_globs: tuple[str, ...]
    out_dir: Path
    cache_dir: Path
    app: AppMetadata
    version: str
    flavor: str
    platform: str
    arch: str
    mode: str = "build"
    zip: bool = False

    @classmethod
    def for_platform(cls, config: BuildConfig, platform: str) -> "RuntimeOptions":
        return cls(
            src_globs=config.source_globs,
            out_dir=config.platform_dir(platform),
            cache_dir=config.platform_cache_dir(platform),
            app=config.app,
            version=config.nw_version,
            flavor=config.flavor,
            platform=str(platform),
            arch=config.host_arch,
        )


class RuntimeProvisioner(Protocol):
    async def provision(self, options: RuntimeOptions) -> None:
        """Produce the runtime+app bundle in ``options.out_dir`` or raise."""


class NwBuilderProvisioner:
    """Drive the ``nw-builder`` command line tool."""

    def __init__(
        self,
        command: Sequence[str] = ("npx", "nwbuild"),
        *,
        cwd: Optional[Path] = None,
        runner: CommandRunner = run_command,
    ) -> None:
        self.command = tuple(command)
        self.cwd = cwd
        self.runner = runner

    def build_argv(self, options: RuntimeOptions) -> list[str]:
        app = options.app
        argv = [
            *self.command,
            *options.src_globs,
            f"--mode={options.mode}",
            f"--version={options.version}",
            f"--flavor={options.flavor}",
            f"--platform={options.platform}",
            f"--arch={options.arch}",
            f"--outDir={options.out_dir}",
            f"--cacheDir={options.cache_dir}",
            f"--zip={str(options.zip).lower()}",
            f"--app.name={app.name}",
            f"--app.company={app.company}",
            f"--app.fileDescription={app.description}",
            f"--app.productName={app.release_name}",
            f"--app.legalCopyright={app.license}",
        ]
        if app.icon:
            argv.append(f"--app.icon={app.icon}")
        return argv

    async def provision(self, options: RuntimeOptions) -> None:
        logger.info("Provisioning NW.js {} ({}) for {}-{}", options.version, options.flavor, options.platform, options.arch)
        try:
            result = await self.runner(self.build_argv(options), cwd=self.cwd)
        except OperationError as exc:
            raise ProvisioningError(str(exc)) from exc
        if not result.ok:
            if result.output:
                logger.debug(result.output)
            raise ProvisioningError(f"nw-builder exited with code {result.returncode} for {options.platform}")


__all__ = ["RuntimeOptions", "RuntimeProvisioner", "NwBuilderProvisioner"]
