"""Rules deciding whether a task means anything for a given platform."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

from .system import PlatformFamily, platform_family


@dataclass(frozen=True, slots=True)
class ApplicabilityRule:
    """A named set of platform families a task applies to."""

    description: str
    families: FrozenSet[PlatformFamily]

    def matches(self, platform: str) -> bool:
        return platform_family(platform) in self.families


WINDOWS_ONLY = ApplicabilityRule("Windows only", frozenset({PlatformFamily.WINDOWS}))
NOT_MACOS_OR_LINUX = ApplicabilityRule("not macOS and not Linux", frozenset({PlatformFamily.WINDOWS}))
LINUX_ONLY = ApplicabilityRule("Linux only", frozenset({PlatformFamily.LINUX}))
NOT_MACOS_OR_WINDOWS = ApplicabilityRule("not macOS and not Windows", frozenset({PlatformFamily.LINUX}))
NOT_WINDOWS = ApplicabilityRule("not Windows", frozenset({PlatformFamily.LINUX, PlatformFamily.MACOS}))


def is_applicable(platform: str, rule: Optional[ApplicabilityRule]) -> bool:
    return rule is None or rule.matches(platform)


@dataclass(frozen=True, slots=True)
class Applicability:
    """Target rule plus an optional requirement on the build host itself."""

    rule: Optional[ApplicabilityRule] = None
    host_rule: Optional[ApplicabilityRule] = None

    def skip_reason(self, task: str, platform: str, host: str) -> Optional[str]:
        """Return why ``task`` is skipped for ``platform``, or ``None`` to run it."""

        if not is_applicable(platform, self.rule):
            return f"No `{task}` task for {platform} ({self.rule.description})"
        if not is_applicable(host, self.host_rule):
            return f"Packaging `{task}` requires a build host that is {self.host_rule.description} (host is {host})"
        return None


__all__ = [
    "ApplicabilityRule",
    "Applicability",
    "WINDOWS_ONLY",
    "NOT_MACOS_OR_LINUX",
    "LINUX_ONLY",
    "NOT_MACOS_OR_WINDOWS",
    "NOT_WINDOWS",
    "is_applicable",
]
