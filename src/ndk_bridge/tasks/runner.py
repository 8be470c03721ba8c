"""Run a packager hook task (javaPreCompile<V>) with its native build prerequisite."""

from __future__ import annotations

import sys
from pathlib import Path

from ndk_bridge.build.variants import BuildVariant
from ndk_bridge.config import NativeBuildConfig, load_config
from ndk_bridge.errors import NativeBuildError
from ndk_bridge.pipeline import build_native, report_error
from ndk_bridge.tasks.graph import TaskGraph
from ndk_bridge.tasks.wiring import hook_task_name, wire_native_build


def build_task_graph(config: NativeBuildConfig) -> TaskGraph:
    """Graph with buildCargoNdk<V> and an action-less javaPreCompile<V> hook for each variant."""
    graph = TaskGraph()
    wire_native_build(graph, lambda v: build_native(config, v))
    for v in BuildVariant:
        graph.register(hook_task_name(v))
    return graph


def run(task: str, config_path: Path, project_root: Path | None = None) -> int:
    """Run task and its prerequisites. Returns 0 or 1."""
    try:
        graph = build_task_graph(load_config(config_path, project_root))
        if task not in graph:
            print(f"❌ Unknown task: {task}. Available: {', '.join(graph.tasks())}", file=sys.stderr)
            return 1
        executed = graph.run(task)
    except NativeBuildError as e:
        report_error(e)
        return 1
    for name in executed:
        print(f"✅ :{name}")
    return 0


def run_list(config_path: Path, project_root: Path | None = None) -> int:
    """Print dependency edges as `<task> dependsOn <prerequisite>`. Returns 0 or 1."""
    try:
        graph = build_task_graph(load_config(config_path, project_root))
    except NativeBuildError as e:
        report_error(e)
        return 1
    for edge in graph.edges():
        print(f"{edge.after} dependsOn {edge.before}")
    return 0
