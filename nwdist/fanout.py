"""Run one operation per platform concurrently with isolated failures."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional, Sequence

from loguru import logger

from .applicability import Applicability
from .errors import EmptyPlatformSetError
from .logger import log_platform_event

PlatformOperation = Callable[[str], Awaitable[Optional[str]]]


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class PlatformOutcome:
    platform: str
    status: OutcomeStatus
    message: str = ""

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status is OutcomeStatus.SKIPPED


@dataclass(frozen=True, slots=True)
class FanOutSummary:
    succeeded: int
    failed: int
    skipped: int

    def __str__(self) -> str:
        return f"{self.succeeded} succeeded, {self.failed} failed, {self.skipped} skipped"


def summarize(outcomes: Iterable[PlatformOutcome]) -> FanOutSummary:
    outcomes = list(outcomes)
    return FanOutSummary(
        succeeded=sum(outcome.success for outcome in outcomes),
        failed=sum(outcome.failed for outcome in outcomes),
        skipped=sum(outcome.skipped for outcome in outcomes),
    )


async def _settle(
    task: str,
    platform: str,
    operation: PlatformOperation,
    applicability: Optional[Applicability],
    host: Optional[str],
) -> PlatformOutcome:
    if applicability is not None:
        reason = applicability.skip_reason(task, platform, host or platform)
        if reason is not None:
            logger.info("[{}] skipped: {}", platform, reason)
            log_platform_event(task, platform, OutcomeStatus.SKIPPED.value, reason=reason)
            return PlatformOutcome(platform, OutcomeStatus.SKIPPED, reason)

    started = time.perf_counter()
    try:
        message = await operation(platform)
    except Exception as exc:  # noqa: BLE001 - one platform must not abort the others
        logger.error("[{}] {} failed: {}", platform, task, exc)
        log_platform_event(
            task,
            platform,
            OutcomeStatus.FAILED.value,
            error=str(exc),
            duration=time.perf_counter() - started,
        )
        return PlatformOutcome(platform, OutcomeStatus.FAILED, str(exc))

    message = message or f"{task} completed"
    logger.success("[{}] {}", platform, message)
    log_platform_event(
        task,
        platform,
        OutcomeStatus.SUCCESS.value,
        duration=time.perf_counter() - started,
    )
    return PlatformOutcome(platform, OutcomeStatus.SUCCESS, message)


async def fan_out(
    platforms: Sequence[str],
    operation: PlatformOperation,
    *,
    task: str = "task",
    applicability: Optional[Applicability] = None,
    host: Optional[str] = None,
) -> list[PlatformOutcome]:
    """Run ``operation`` once per platform and wait for every one to settle.

    Failures are logged and recorded as failed outcomes; they never propagate.
    Platforms rejected by ``applicability`` are recorded as skipped without
    calling ``operation``. Outcomes follow the order of ``platforms``.
    """

    platforms = list(platforms)
    if not platforms:
        raise EmptyPlatformSetError(None, ())

    outcomes = await asyncio.gather(
        *(_settle(task, platform, operation, applicability, host) for platform in platforms)
    )
    logger.info("{}: {}", task, summarize(outcomes))
    return list(outcomes)


__all__ = [
    "OutcomeStatus",
    "PlatformOutcome",
    "PlatformOperation",
    "FanOutSummary",
    "summarize",
    "fan_out",
]
