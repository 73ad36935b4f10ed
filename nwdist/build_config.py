"""Packaging configuration dataclasses."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .system import PlatformFamily, host_architecture, host_platform, platform_family

DEFAULT_NW_VERSION = "0.106.1"
DEFAULT_FLAVOR = "sdk"
DEFAULT_PLATFORMS = ("linux", "win", "osx")

SOURCE_GLOBS = ("./app/**", "package.json", "./README.md", "./node_modules/**")

# Runtime components the application never loads.
NWJS_CLEANUP_GLOBS = (
    "pdf*",
    "chrome*",
    "nacl*",
    "pnacl",
    "payload*",
    "nwjc*",
    "credit*",
    "debug*",
    "swift*",
    "notification_helper*",
    "d3dcompiler*",
)

MEDIAINFO_LIB_DIR = "node_modules/mediainfo-wrapper/lib"
MEDIAINFO_NATIVE_LIBS = {
    PlatformFamily.WINDOWS: "win32",
    PlatformFamily.MACOS: "osx64",
    PlatformFamily.LINUX: "linux32",
}
MEDIAINFO_APP_BUNDLE_LIBS = ("win32", "linux32", "linux64")

RUNTIME_BINARIES = {
    PlatformFamily.MACOS: "nwjs.app/Contents/MacOS/nwjs",
    PlatformFamily.LINUX: "nw",
    PlatformFamily.WINDOWS: "nw.exe",
}


@dataclass(frozen=True, slots=True)
class AppMetadata:
    """Application identity read from ``package.json``."""

    name: str
    version: str
    release_name: str
    description: str = ""
    company: str = ""
    license: str = ""
    icon: Optional[str] = None
    homepage: Optional[str] = None

    @classmethod
    def from_manifest(cls, manifest: Mapping[str, object]) -> "AppMetadata":
        name = str(manifest.get("name") or "")
        if not name:
            raise ValueError("package.json is missing a 'name'")
        author = manifest.get("author") or {}
        company = author.get("name", "") if isinstance(author, dict) else str(author)
        icon = manifest.get("icon")
        homepage = manifest.get("homepage")
        return cls(
            name=name,
            version=str(manifest.get("version") or "0.0.0"),
            release_name=str(manifest.get("releaseName") or name),
            description=str(manifest.get("description") or ""),
            company=str(company),
            license=str(manifest.get("license") or ""),
            icon=str(icon) if icon else None,
            homepage=str(homepage) if homepage else None,
        )


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Everything the pipeline needs to know, built once per process."""

    app: AppMetadata
    base_dir: Path
    releases_dir: Path
    cache_dir: Path
    dist_dir: Path
    host_platform: str
    host_arch: str
    nw_version: str = DEFAULT_NW_VERSION
    flavor: str = DEFAULT_FLAVOR
    supported_platforms: tuple[str, ...] = DEFAULT_PLATFORMS
    default_platforms: Optional[str] = None
    source_globs: tuple[str, ...] = SOURCE_GLOBS

    @classmethod
    def from_manifest(
        cls,
        base_dir: Path,
        environ: Optional[Mapping[str, str]] = None,
        *,
        host: Optional[str] = None,
        arch: Optional[str] = None,
    ) -> "BuildConfig":
        base_dir = Path(base_dir).resolve()
        if environ is None:
            load_dotenv(base_dir / ".env", override=False)
            environ = os.environ

        manifest_path = base_dir / "package.json"
        if not manifest_path.is_file():
            raise FileNotFoundError(f"No package.json found in {base_dir}")
        app = AppMetadata.from_manifest(json.loads(manifest_path.read_text(encoding="utf-8")))

        return cls(
            app=app,
            base_dir=base_dir,
            releases_dir=base_dir / environ.get("NWDIST_RELEASES_DIR", "build"),
            cache_dir=base_dir / environ.get("NWDIST_CACHE_DIR", "cache"),
            dist_dir=base_dir / "dist",
            host_platform=host or str(host_platform()),
            host_arch=arch or str(host_architecture()),
            nw_version=environ.get("NWDIST_NW_VERSION", DEFAULT_NW_VERSION),
            flavor=environ.get("NWDIST_FLAVOR", DEFAULT_FLAVOR),
            default_platforms=environ.get("NWDIST_PLATFORMS") or None,
        )

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------
    def platform_dir(self, platform: str) -> Path:
        return self.releases_dir / self.app.name / str(platform)

    def archive_path(self, platform: str, suffix: str) -> Path:
        return self.releases_dir / f"{self.app.name}-{self.app.version}_{platform}{suffix}"

    def portable_path(self, platform: str) -> Path:
        return self.releases_dir / f"{self.app.name}-{self.app.version}-{platform}-portable.zip"

    def platform_cache_dir(self, platform: str) -> Path:
        return self.cache_dir / str(platform)

    def cached_runtime_dir(self, platform: str) -> Path:
        return self.platform_cache_dir(platform) / f"nwjs-{self.flavor}-v{self.nw_version}-{platform}-{self.host_arch}"

    def runtime_binary(self, platform: str) -> Path:
        return self.cached_runtime_dir(platform) / RUNTIME_BINARIES[platform_family(platform)]


__all__ = [
    "AppMetadata",
    "BuildConfig",
    "DEFAULT_NW_VERSION",
    "DEFAULT_FLAVOR",
    "DEFAULT_PLATFORMS",
    "NWJS_CLEANUP_GLOBS",
    "MEDIAINFO_LIB_DIR",
    "MEDIAINFO_NATIVE_LIBS",
    "MEDIAINFO_APP_BUNDLE_LIBS",
    "RUNTIME_BINARIES",
]
