"""Tests for host platform and architecture resolution."""

from __future__ import annotations

import pytest

from nwdist.errors import UnsupportedArchitecture, UnsupportedPlatform
from nwdist.system import (
    ArchitectureTag,
    PlatformFamily,
    PlatformTag,
    canonical_platform,
    host_architecture,
    platform_family,
    resolve_architecture,
    resolve_platform,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("darwin", PlatformTag.OSX), ("win32", PlatformTag.WIN), ("linux", PlatformTag.LINUX)],
)
def test_resolve_platform_maps_host_identifiers(raw: str, expected: PlatformTag) -> None:
    assert resolve_platform(raw) is expected
    assert resolve_platform(raw) == expected.value


@pytest.mark.parametrize("raw", ["freebsd", "cygwin", "aix", "", "Linux"])
def test_resolve_platform_rejects_other_hosts(raw: str) -> None:
    with pytest.raises(UnsupportedPlatform):
        resolve_platform(raw)


@pytest.mark.parametrize("raw", ["ia32", "x64", "arm64"])
def test_resolve_architecture_passes_through(raw: str) -> None:
    assert resolve_architecture(raw) == raw
    assert isinstance(resolve_architecture(raw), ArchitectureTag)


@pytest.mark.parametrize("raw", ["x86_64", "mips", "arm", ""])
def test_resolve_architecture_rejects_unknown(raw: str) -> None:
    with pytest.raises(UnsupportedArchitecture):
        resolve_architecture(raw)


def test_unsupported_errors_are_value_errors() -> None:
    with pytest.raises(ValueError):
        resolve_platform("sunos5")


@pytest.mark.parametrize(
    ("tag", "family"),
    [
        ("win", PlatformFamily.WINDOWS),
        ("win64", PlatformFamily.WINDOWS),
        ("osx32", PlatformFamily.MACOS),
        ("linux", PlatformFamily.LINUX),
        (PlatformTag.OSX, PlatformFamily.MACOS),
    ],
)
def test_platform_family_classifies_variants(tag: str, family: PlatformFamily) -> None:
    assert platform_family(tag) is family


def test_platform_family_does_not_match_by_prefix() -> None:
    with pytest.raises(UnsupportedPlatform):
        platform_family("windows-arm")


def test_canonical_platform_normalizes_sub_variants() -> None:
    assert canonical_platform("win32") is PlatformTag.WIN
    assert canonical_platform("osx64") is PlatformTag.OSX
    assert canonical_platform("beos") is None


def test_host_architecture_translates_machine_names(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("nwdist.system._platform.machine", lambda: "AMD64")
    assert host_architecture() is ArchitectureTag.X64
    monkeypatch.setattr("nwdist.system._platform.machine", lambda: "aarch64")
    assert host_architecture() is ArchitectureTag.ARM64
