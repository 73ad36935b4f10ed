"""Packaging pipeline for NW.js desktop applications."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("nwdist")
except PackageNotFoundError:  # pragma: no cover - package metadata absent in dev
    __version__ = "0.0.0"

from .build_config import AppMetadata, BuildConfig
from .fanout import OutcomeStatus, PlatformOutcome, fan_out
from .pipeline import DistributionPipeline, build_pipeline
from .platforms import parse_platforms
from .system import resolve_architecture, resolve_platform
from .tasks import TaskGraph

__all__ = [
    "__version__",
    "AppMetadata",
    "BuildConfig",
    "DistributionPipeline",
    "OutcomeStatus",
    "PlatformOutcome",
    "TaskGraph",
    "build_pipeline",
    "fan_out",
    "parse_platforms",
    "resolve_architecture",
    "resolve_platform",
]
