"""Named tasks with ordered prerequisites."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Optional

from loguru import logger

from .errors import TaskCycleError, UnknownTaskError

TaskBody = Callable[[], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Task:
    name: str
    prerequisites: tuple[str, ...] = ()
    body: Optional[TaskBody] = None
    description: str = ""


@dataclass
class TaskGraph:
    """Registry of tasks forming a directed acyclic graph keyed by name.

    Invoking a task first runs its prerequisites depth-first in declared
    order. Within one top-level :meth:`invoke` every task runs at most once.
    """

    _tasks: dict[str, Task] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------
    def declare(
        self,
        name: str,
        prerequisites: Iterable[str] = (),
        body: Optional[TaskBody] = None,
        *,
        description: str = "",
    ) -> Task:
        prerequisites = tuple(prerequisites)
        for prerequisite in prerequisites:
            if prerequisite not in self._tasks:
                raise UnknownTaskError(prerequisite, referenced_by=name)
            cycle = self._path_between(prerequisite, name)
            if cycle is not None:
                raise TaskCycleError([name, *cycle])

        task = Task(name=name, prerequisites=prerequisites, body=body, description=description)
        if name in self._tasks:
            logger.debug("Redeclaring task '{}'", name)
        self._tasks[name] = task
        return task

    def _path_between(self, start: str, target: str) -> Optional[list[str]]:
        if start == target:
            return [start]
        for prerequisite in self._tasks[start].prerequisites:
            path = self._path_between(prerequisite, target)
            if path is not None:
                return [start, *path]
        return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __getitem__(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise UnknownTaskError(name) from None

    @property
    def names(self) -> list[str]:
        return list(self._tasks)

    def execution_order(self, name: str) -> list[str]:
        """Names in the order :meth:`invoke` would reach them."""

        order: list[str] = []

        def visit(current: str) -> None:
            if current in order:
                return
            for prerequisite in self[current].prerequisites:
                visit(prerequisite)
            order.append(current)

        visit(name)
        return order

    def describe(self) -> str:
        """Render the dependency tree of every declared task."""

        lines: list[str] = []

        def render(name: str, depth: int) -> None:
            task = self._tasks[name]
            suffix = f"  {task.description}" if task.description and depth == 0 else ""
            lines.append(f"{'    ' * depth}{'└── ' if depth else ''}{name}{suffix}")
            for prerequisite in task.prerequisites:
                render(prerequisite, depth + 1)

        for name in self._tasks:
            render(name, 0)
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    async def invoke(self, name: str) -> list[str]:
        """Run ``name`` and its prerequisites; return the names that ran."""

        completed: list[str] = []
        await self._run(self[name].name, completed)
        return completed

    async def _run(self, name: str, completed: list[str]) -> None:
        if name in completed:
            return
        task = self._tasks[name]
        for prerequisite in task.prerequisites:
            await self._run(prerequisite, completed)

        if task.body is not None:
            logger.info("Starting '{}'...", name)
            started = time.perf_counter()
            try:
                await task.body()
            except Exception:
                logger.error("'{}' errored after {:.2f}s", name, time.perf_counter() - started)
                raise
            logger.info("Finished '{}' after {:.2f}s", name, time.perf_counter() - started)
        completed.append(name)


__all__ = ["Task", "TaskBody", "TaskGraph"]
