"""Build and distribution tasks for the desktop application."""

from __future__ import annotations

import glob
import shutil
from pathlib import Path
from typing import Awaitable, Callable, Optional

from loguru import logger

from .applicability import LINUX_ONLY, NOT_WINDOWS, WINDOWS_ONLY, Applicability
from .build_config import (
    MEDIAINFO_APP_BUNDLE_LIBS,
    MEDIAINFO_LIB_DIR,
    MEDIAINFO_NATIVE_LIBS,
    NWJS_CLEANUP_GLOBS,
    BuildConfig,
)
from .errors import (
    CommandFailedError,
    CommandNotFoundError,
    LintError,
    OperationError,
    RuntimeBinaryMissingError,
)
from .fanout import PlatformOperation, PlatformOutcome, fan_out
from .platforms import parse_platforms, require_platforms
from .runners import (
    CommandResult,
    CommandRunner,
    delete_globs,
    make_tar_gz,
    make_zip,
    run_command,
    run_pipeline,
    stream_command,
)
from .runtime import NwBuilderProvisioner, RuntimeOptions, RuntimeProvisioner
from .system import PlatformFamily, platform_family
from .tasks import TaskGraph

BUILD_TASKS = ("npm:clean_modules", "nwjs", "clean:mediainfo", "clean:nwjs", "build:prune")
DIST_TASKS = ("build", "compress", "deb", "nsis", "portable")
TEST_TASKS = ("jshint", "build")

JSHINT_ARGS = ["--config", ".jshintrc", "--exclude", "app/js/vendor", "app/js"]
XZ_COMPRESSORS = ("pxz", "xz")
XZ_ARGS = ("-T8", "-7")


def _under(directory: Path, *patterns: str) -> list[str]:
    root = glob.escape(str(directory))
    return [f"{root}/{pattern}" for pattern in patterns]


class DistributionPipeline:
    """Declares the pipeline tasks and the per-platform work behind them."""

    def __init__(
        self,
        config: BuildConfig,
        *,
        platforms: Optional[str] = None,
        provisioner: Optional[RuntimeProvisioner] = None,
        runner: CommandRunner = run_command,
        pipe_runner: Callable[..., Awaitable[CommandResult]] = run_pipeline,
        streamer: Callable[..., Awaitable[int]] = stream_command,
    ) -> None:
        self.config = config
        self.request = platforms if platforms is not None else config.default_platforms
        self.provisioner = provisioner or NwBuilderProvisioner(cwd=config.base_dir, runner=runner)
        self.runner = runner
        self.pipe_runner = pipe_runner
        self.streamer = streamer
        self.outcomes: dict[str, list[PlatformOutcome]] = {}

    # ------------------------------------------------------------------
    # Platform handling
    # ------------------------------------------------------------------
    def resolve_platforms(self) -> list[str]:
        supported = self.config.supported_platforms
        platforms = parse_platforms(self.request, supported, self.config.host_platform)
        return require_platforms(platforms, request=self.request, supported=supported)

    async def _fan_out(
        self,
        task: str,
        operation: PlatformOperation,
        applicability: Optional[Applicability] = None,
    ) -> list[PlatformOutcome]:
        outcomes = await fan_out(
            self.resolve_platforms(),
            operation,
            task=task,
            applicability=applicability,
            host=self.config.host_platform,
        )
        self.outcomes[task] = outcomes
        return outcomes

    @staticmethod
    def _check(result: CommandResult, platform: str, what: str) -> None:
        # packager output is only worth showing when it failed
        if result.ok:
            if result.output:
                logger.debug(result.output)
            return
        if result.output:
            logger.warning("{} output for {}:\n{}", what, platform, result.output)
        raise CommandFailedError(result.argv, result.returncode, result.output)

    # ------------------------------------------------------------------
    # Informational tasks
    # ------------------------------------------------------------------
    async def show_help(self) -> None:
        logger.info(
            "\n".join(
                [
                    "",
                    "Basic usage:",
                    " nwdist run\tStart the application in dev mode",
                    " nwdist build\tBuild the application",
                    " nwdist dist\tCreate a redistributable package",
                    "",
                    "Available options:",
                    " --platforms=<platform>",
                    f"\tArguments: {','.join(self.config.supported_platforms)},all",
                    "\tExample:   `nwdist build --platforms=all`",
                    "",
                    "Use `nwdist --tasks` to show the task dependency tree",
                ]
            )
        )

    async def run_app(self) -> None:
        platform = self.resolve_platforms()[0]
        binary = self.config.runtime_binary(platform)
        logger.info("Running {} from cache", platform)
        try:
            exit_code = await self.streamer(
                [str(binary), ".", "--development"],
                cwd=self.config.base_dir,
                on_line=logger.info,
            )
        except CommandNotFoundError:
            raise RuntimeBinaryMissingError(platform, str(binary)) from None
        logger.info("{} exited with code {}", self.config.app.name, exit_code)

    # ------------------------------------------------------------------
    # Build tasks
    # ------------------------------------------------------------------
    async def clean_modules(self) -> None:
        try:
            result = await self.runner(["npx", "clean-modules", "--yes"], cwd=self.config.base_dir)
            result.check()
        except OperationError as exc:
            logger.warning("Clean Modules failed, continuing: {}", exc)
            return
        logger.info("Clean Modules: {}", result.stdout.strip() or "done")

    async def provision_runtime(self) -> None:
        await self._fan_out("nwjs", self._provision_platform)

    async def _provision_platform(self, platform: str) -> str:
        options = RuntimeOptions.for_platform(self.config, platform)
        await self.provisioner.provision(options)
        return f"runtime bundle assembled in {options.out_dir}"

    async def clean_nwjs(self) -> None:
        await self._fan_out("clean:nwjs", self._clean_nwjs_platform)

    async def _clean_nwjs_platform(self, platform: str) -> str:
        removed = await delete_globs(_under(self.config.platform_dir(platform), *NWJS_CLEANUP_GLOBS))
        return f"removed {len(removed)} unused runtime files"

    async def clean_mediainfo(self) -> None:
        await self._fan_out("clean:mediainfo", self._clean_mediainfo_platform)

    async def _clean_mediainfo_platform(self, platform: str) -> str:
        sources = self.config.platform_dir(platform)
        family = platform_family(platform)
        foreign = [lib for owner, lib in MEDIAINFO_NATIVE_LIBS.items() if owner is not family]
        bundled = sources / f"{self.config.app.name}.app" / "Contents" / "Resources" / "app.nw"
        patterns = _under(sources / MEDIAINFO_LIB_DIR, *foreign)
        patterns += _under(bundled / MEDIAINFO_LIB_DIR, *MEDIAINFO_APP_BUNDLE_LIBS)
        removed = await delete_globs(patterns)
        return f"removed {len(removed)} foreign mediainfo libraries"

    async def prune(self) -> None:
        await self._fan_out("build:prune", self._prune_platform)

    async def _prune_platform(self, platform: str) -> str:
        result = await self.runner(["npm", "prune"], cwd=self.config.platform_dir(platform))
        if not result.ok:
            logger.warning("`npm prune` failed for {}, continuing anyway", platform)
        self._check(result, platform, "npm prune")
        return "dev dependencies pruned"

    # ------------------------------------------------------------------
    # Distribution tasks
    # ------------------------------------------------------------------
    async def compress(self) -> None:
        await self._fan_out("compress", self._compress_platform, Applicability(NOT_WINDOWS))

    async def _compress_platform(self, platform: str) -> str:
        sources = self.config.platform_dir(platform)
        if not sources.is_dir():
            raise FileNotFoundError(f"No build found at {sources}")

        if platform_family(self.config.host_platform) is PlatformFamily.WINDOWS:
            archive = await make_tar_gz(sources, self.config.archive_path(platform, ".tar.gz"))
            return f"tar packaged in {archive}"

        archive = self.config.archive_path(platform, ".tar.xz")
        if platform_family(platform) is PlatformFamily.LINUX:
            platform_cwd = "."
        else:
            platform_cwd = f"{self.config.app.name}.app"
        xz = next(filter(None, map(shutil.which, XZ_COMPRESSORS)), None)
        if xz is None:
            raise CommandNotFoundError("xz")
        result = await self.pipe_runner(
            ["tar", "--exclude-vcs", "-c", platform_cwd],
            [xz, *XZ_ARGS],
            output=archive,
            cwd=sources,
        )
        self._check(result, platform, "tar")
        return f"tar packaged in {archive}"

    async def deb(self) -> None:
        await self._fan_out("deb", self._deb_platform, Applicability(LINUX_ONLY, host_rule=LINUX_ONLY))

    async def _deb_platform(self, platform: str) -> str:
        app = self.config.app
        argv = [
            "bash",
            str(self.config.dist_dir / "deb-maker.sh"),
            platform,
            app.name,
            app.release_name,
            app.version,
            str(self.config.releases_dir),
        ]
        logger.info("Packaging deb for: {}", platform)
        self._check(await self.runner(argv, cwd=self.config.base_dir), platform, "deb")
        return f"deb packaged in {self.config.releases_dir}"

    async def nsis(self) -> None:
        await self._fan_out("nsis", self._nsis_platform, Applicability(WINDOWS_ONLY))

    async def _nsis_platform(self, platform: str) -> str:
        on_windows = platform_family(self.config.host_platform) is PlatformFamily.WINDOWS
        argv = [
            "makensis.exe" if on_windows else "makensis",
            f"-DARCH={platform}",
            f"-DOUTDIR={self.config.releases_dir}",
            str(self.config.dist_dir / "win-installer.nsi"),
        ]
        logger.info("Packaging nsis for: {}", platform)
        self._check(await self.runner(argv, cwd=self.config.base_dir), platform, "nsis")
        return f"nsis packaged in {self.config.releases_dir}"

    async def portable(self) -> None:
        await self._fan_out("portable", self._portable_platform, Applicability(WINDOWS_ONLY))

    async def _portable_platform(self, platform: str) -> str:
        logger.info("Packaging portable for: {}", platform)
        archive = await make_zip(
            self.config.platform_dir(platform),
            self.config.portable_path(platform),
            [self.config.dist_dir / "portable.json"],
        )
        return f"portable packaged in {archive}"

    # ------------------------------------------------------------------
    # Quality
    # ------------------------------------------------------------------
    async def jshint(self) -> None:
        result = await self.runner(["npx", "jshint", *JSHINT_ARGS], cwd=self.config.base_dir)
        if not result.ok:
            if result.output:
                logger.error(result.output)
            raise LintError(f"jshint reported problems (exit code {result.returncode})")
        logger.success("jshint: no problems found")

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------
    def graph(self) -> TaskGraph:
        graph = TaskGraph()
        graph.declare("default", body=self.show_help, description="Show usage")
        graph.declare("help", ["default"])
        graph.declare("run", body=self.run_app, description="Start the application in dev mode")

        graph.declare("npm:clean_modules", body=self.clean_modules, description="Remove unused node_modules files")
        graph.declare("nwjs", body=self.provision_runtime, description="Download NW.js and assemble the bundle")
        graph.declare("clean:mediainfo", body=self.clean_mediainfo, description="Drop foreign mediainfo libraries")
        graph.declare("clean:nwjs", body=self.clean_nwjs, description="Remove unused runtime components")
        graph.declare("build:prune", body=self.prune, description="Prune dev dependencies from the bundle")
        graph.declare("compress", body=self.compress, description="Package tar archives")
        graph.declare("deb", body=self.deb, description="Package Debian archives")
        graph.declare("nsis", body=self.nsis, description="Compile the NSIS installer")
        graph.declare("portable", body=self.portable, description="Package the portable zip")
        graph.declare("jshint", body=self.jshint, description="Lint the application sources")

        graph.declare("build", BUILD_TASKS, description="Build the application")
        graph.declare("dist", DIST_TASKS, description="Create redistributable packages")
        graph.declare("test", TEST_TASKS, description="Lint and build")
        return graph


def build_pipeline(config: BuildConfig, **kwargs) -> TaskGraph:
    return DistributionPipeline(config, **kwargs).graph()


__all__ = ["DistributionPipeline", "build_pipeline", "BUILD_TASKS", "DIST_TASKS", "TEST_TASKS"]
