"""Minimal named-task graph with must-run-before edges.

Stands in for the packager's task runtime: tasks are registered by name,
edges say "prerequisite completes before task", and run() executes a task
after all of its prerequisites, stopping at the first failure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, NamedTuple

from ndk_bridge.errors import NativeBuildError, TaskCycleError, TaskFailed

log = logging.getLogger(__name__)


class TaskDependencyEdge(NamedTuple):
    before: str
    after: str


class TaskGraph:
    def __init__(self) -> None:
        self._actions: dict[str, Callable[[], Any] | None] = {}
        self._deps: dict[str, list[str]] = {}
        self._listeners: list[Callable[[str], None]] = []

    def __contains__(self, name: str) -> bool:
        return name in self._actions

    def tasks(self) -> list[str]:
        return list(self._actions)

    def register(self, name: str, action: Callable[[], Any] | None = None) -> None:
        """Add a task. Listeners from when_task_added see it immediately."""
        if name in self._actions:
            raise ValueError(f"Task already registered: {name}")
        self._actions[name] = action
        self._deps[name] = []
        for listener in list(self._listeners):
            listener(name)

    def when_task_added(self, listener: Callable[[str], None]) -> None:
        """Call listener for every existing task and every task registered later."""
        self._listeners.append(listener)
        for name in list(self._actions):
            listener(name)

    def depends_on(self, task: str, prerequisite: str) -> None:
        for name in (task, prerequisite):
            if name not in self._actions:
                raise KeyError(f"Unknown task: {name}")
        if prerequisite not in self._deps[task]:
            self._deps[task].append(prerequisite)

    def dependencies(self, task: str) -> list[str]:
        return list(self._deps[task])

    def edges(self) -> list[TaskDependencyEdge]:
        return [TaskDependencyEdge(dep, task) for task, deps in self._deps.items() for dep in deps]

    def execution_order(self, name: str) -> list[str]:
        """Prerequisites first (depth-first), each once, name last. Raises TaskCycleError."""
        if name not in self._actions:
            raise KeyError(f"Unknown task: {name}")
        order: list[str] = []
        visiting: list[str] = []

        def visit(task: str) -> None:
            if task in order:
                return
            if task in visiting:
                cycle = " -> ".join(visiting[visiting.index(task) :] + [task])
                raise TaskCycleError(f"Task dependency cycle: {cycle}")
            visiting.append(task)
            for dep in self._deps[task]:
                visit(dep)
            visiting.pop()
            order.append(task)

        visit(name)
        return order

    def run(self, name: str) -> list[str]:
        """Run name and its prerequisites. NativeBuildErrors propagate unchanged; others become TaskFailed."""
        executed: list[str] = []
        for task in self.execution_order(name):
            action = self._actions[task]
            log.info("> Task :%s", task)
            if action is not None:
                try:
                    action()
                except NativeBuildError:
                    raise
                except Exception as e:
                    raise TaskFailed(task, e) from e
            executed.append(task)
        return executed
