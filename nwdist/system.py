"""Host platform and architecture resolution."""

from __future__ import annotations

import platform as _platform
import sys
from enum import Enum

from .errors import UnsupportedArchitecture, UnsupportedPlatform


class PlatformTag(str, Enum):
    """Closed set of target platform tags."""

    LINUX = "linux"
    WIN = "win"
    OSX = "osx"

    def __str__(self) -> str:
        return self.value


class ArchitectureTag(str, Enum):
    IA32 = "ia32"
    X64 = "x64"
    ARM64 = "arm64"

    def __str__(self) -> str:
        return self.value


class PlatformFamily(str, Enum):
    """Operating system family a platform tag or sub-variant belongs to."""

    LINUX = "linux"
    WINDOWS = "windows"
    MACOS = "macos"


_RAW_PLATFORMS = {
    "darwin": PlatformTag.OSX,
    "win32": PlatformTag.WIN,
    "linux": PlatformTag.LINUX,
}

# Python reports machine names, the runtime vocabulary uses Node's.
_MACHINE_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "i386": "ia32",
    "i686": "ia32",
    "x86": "ia32",
    "aarch64": "arm64",
    "arm64": "arm64",
}

_FAMILIES = {
    "linux": PlatformFamily.LINUX,
    "linux32": PlatformFamily.LINUX,
    "linux64": PlatformFamily.LINUX,
    "win": PlatformFamily.WINDOWS,
    "win32": PlatformFamily.WINDOWS,
    "win64": PlatformFamily.WINDOWS,
    "osx": PlatformFamily.MACOS,
    "osx32": PlatformFamily.MACOS,
    "osx64": PlatformFamily.MACOS,
}


def resolve_platform(raw_platform: str) -> PlatformTag:
    """Map a host platform identifier (``sys.platform``) to a platform tag."""

    try:
        return _RAW_PLATFORMS[raw_platform]
    except KeyError:
        raise UnsupportedPlatform(raw_platform) from None


def resolve_architecture(raw_arch: str) -> ArchitectureTag:
    try:
        return ArchitectureTag(raw_arch)
    except ValueError:
        raise UnsupportedArchitecture(raw_arch) from None


def platform_family(tag: str) -> PlatformFamily:
    """Classify a platform tag, or one of its sub-variants, into its family."""

    try:
        return _FAMILIES[str(tag)]
    except KeyError:
        raise UnsupportedPlatform(str(tag)) from None


def canonical_platform(token: str) -> PlatformTag | None:
    """Return the closed-set tag a sub-variant like ``win32`` normalizes to."""

    family = _FAMILIES.get(token)
    if family is None:
        return None
    return {
        PlatformFamily.LINUX: PlatformTag.LINUX,
        PlatformFamily.WINDOWS: PlatformTag.WIN,
        PlatformFamily.MACOS: PlatformTag.OSX,
    }[family]


def host_platform() -> PlatformTag:
    return resolve_platform(sys.platform)


def host_architecture() -> ArchitectureTag:
    machine = _platform.machine()
    return resolve_architecture(_MACHINE_ALIASES.get(machine.lower(), machine))


__all__ = [
    "PlatformTag",
    "ArchitectureTag",
    "PlatformFamily",
    "resolve_platform",
    "resolve_architecture",
    "platform_family",
    "canonical_platform",
    "host_platform",
    "host_architecture",
]
