"""Wire native builds in front of the packager's per-variant compile step.

For each variant V: buildCargoNdk<V> runs the native build, and
javaPreCompile<V> depends on it, whether the packager registers its hook
before or after wiring. Only debug and release are wired; any other
javaPreCompile<X> is left alone.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from functools import partial
from typing import Any

from ndk_bridge.build.variants import BuildVariant
from ndk_bridge.tasks.graph import TaskDependencyEdge, TaskGraph

log = logging.getLogger(__name__)

NATIVE_TASK_PREFIX = "buildCargoNdk"
HOOK_TASK_PREFIX = "javaPreCompile"


def native_task_name(variant: str | BuildVariant) -> str:
    return NATIVE_TASK_PREFIX + BuildVariant.parse(variant).task_suffix


def hook_task_name(variant: str | BuildVariant) -> str:
    return HOOK_TASK_PREFIX + BuildVariant.parse(variant).task_suffix


def hook_variant(task_name: str) -> BuildVariant | None:
    """Variant of a javaPreCompile<V> task, or None for other tasks and unrecognized variants."""
    if not task_name.startswith(HOOK_TASK_PREFIX):
        return None
    suffix = task_name[len(HOOK_TASK_PREFIX) :]
    for v in BuildVariant:
        if suffix == v.task_suffix:
            return v
    log.debug("Not wiring %s: variant %r is not Debug or Release", task_name, suffix)
    return None


def wire_native_build(
    graph: TaskGraph,
    build: Callable[[BuildVariant], Any],
    variants: Iterable[BuildVariant] = tuple(BuildVariant),
) -> list[TaskDependencyEdge]:
    """Register buildCargoNdk<V> for each variant and hook every javaPreCompile<V> onto it.

    Returns the edges present right after wiring; hooks registered later are
    wired as they appear.
    """
    wired = [BuildVariant.parse(v) for v in variants]
    for v in wired:
        graph.register(native_task_name(v), partial(build, v))

    def on_task_added(name: str) -> None:
        v = hook_variant(name)
        if v is None or v not in wired:
            return
        graph.depends_on(name, native_task_name(v))
        log.debug("%s dependsOn %s", name, native_task_name(v))

    graph.when_task_added(on_task_added)
    natives = {native_task_name(v) for v in wired}
    return [e for e in graph.edges() if e.before in natives]
