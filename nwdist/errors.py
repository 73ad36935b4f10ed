"""Exception hierarchy for the distribution pipeline."""

from __future__ import annotations

from typing import Sequence


class NwdistError(Exception):
    """Base class for every error raised by ``nwdist``."""


# ----------------------------------------------------------------------
# Fatal resolution errors: abort the whole invocation
# ----------------------------------------------------------------------
class ResolutionError(NwdistError, ValueError):
    """Configuration or input that makes the invocation meaningless."""


class UnsupportedPlatform(ResolutionError):
    def __init__(self, raw_platform: str) -> None:
        super().__init__(f"Your OS is not supported by NW.js: {raw_platform!r}")
        self.raw_platform = raw_platform


class UnsupportedArchitecture(ResolutionError):
    def __init__(self, raw_arch: str) -> None:
        super().__init__(f"Your architecture is not supported by NW.js: {raw_arch!r}")
        self.raw_arch = raw_arch


class EmptyPlatformSetError(ResolutionError):
    def __init__(self, request: str | None, supported: Sequence[str]) -> None:
        self.request = request
        self.supported = tuple(supported)
        super().__init__(
            "No valid platform resolved.\n"
            f"Requested: {request or '(auto)'}\n"
            f"Available: {', '.join(self.supported)}\n"
            "Tip: pass --platforms explicitly or check the detected host platform."
        )


class UnknownTaskError(ResolutionError):
    def __init__(self, name: str, referenced_by: str | None = None) -> None:
        self.name = name
        self.referenced_by = referenced_by
        if referenced_by:
            message = f"Task '{referenced_by}' depends on unknown task '{name}'"
        else:
            message = f"Task '{name}' is not declared"
        super().__init__(message)


class TaskCycleError(ResolutionError):
    def __init__(self, path: Sequence[str]) -> None:
        self.path = tuple(path)
        super().__init__(f"Task dependency cycle: {' -> '.join(self.path)}")


# ----------------------------------------------------------------------
# Operational errors: absorbed per platform inside a fan-out
# ----------------------------------------------------------------------
class OperationError(NwdistError, RuntimeError):
    """An external collaborator did not complete successfully."""


class CommandNotFoundError(OperationError):
    def __init__(self, executable: str) -> None:
        super().__init__(f"Command not found: {executable}")
        self.executable = executable


class CommandFailedError(OperationError):
    def __init__(self, argv: Sequence[str], returncode: int, output: str = "") -> None:
        self.argv = tuple(argv)
        self.returncode = returncode
        self.output = output
        super().__init__(f"'{' '.join(self.argv)}' exited with code {returncode}")


class ProvisioningError(OperationError):
    """The runtime provisioning service could not produce a bundle."""


class RuntimeBinaryMissingError(OperationError):
    def __init__(self, platform: str, binary: str) -> None:
        super().__init__(
            f"{platform} runtime is not available in cache ({binary}). "
            "Try running `build` beforehand"
        )
        self.platform = platform
        self.binary = binary


class LintError(OperationError):
    """Static analysis reported problems in the application sources."""


__all__ = [
    "NwdistError",
    "ResolutionError",
    "UnsupportedPlatform",
    "UnsupportedArchitecture",
    "EmptyPlatformSetError",
    "UnknownTaskError",
    "TaskCycleError",
    "OperationError",
    "CommandNotFoundError",
    "CommandFailedError",
    "ProvisioningError",
    "RuntimeBinaryMissingError",
    "LintError",
]
